"""Video-to-still sampling with ffmpeg (oversample, then pick one frame per batch).

Frames are decoded at ``target_fps * batch_size`` and ffmpeg's ``thumbnail``
filter keeps the most representative frame of every ``batch_size`` run, which
avoids landing on a blurred or mid-transition frame at any single instant.

Requires ffmpeg 5.1 or newer for ``-fps_mode``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import tempfile
from pathlib import Path

from intake.config import settings

logger = logging.getLogger(__name__)

_FRAME_PREFIX = "frame_"
_FRAME_PATTERN = f"{_FRAME_PREFIX}%05d.jpg"


class FrameSamplingError(RuntimeError):
    """Raised when a video cannot be decoded into frames."""


class FrameSampler:
    """Converts video bytes into an ordered list of JPEG frames.

    Every call works in its own temporary directory, which is removed on both
    success and failure.
    """

    def __init__(
        self,
        ffmpeg_binary: str | None = None,
        batch_size: int | None = None,
        tmp_root: Path | None = None,
    ) -> None:
        self.ffmpeg_binary = ffmpeg_binary or settings.ffmpeg_binary
        self.batch_size = batch_size or settings.frame_batch_size
        self._tmp_root = tmp_root

    def build_command(self, input_path: Path, output_pattern: Path, target_fps: int) -> list[str]:
        """Return the ffmpeg argv for one sampling run."""
        decode_fps = target_fps * self.batch_size
        return [
            self.ffmpeg_binary,
            "-hide_banner",
            "-loglevel", "error",
            "-y",
            "-i", str(input_path),
            "-vf", f"fps={decode_fps},thumbnail={self.batch_size}",
            "-fps_mode", "passthrough",
            "-q:v", "2",
            str(output_pattern),
        ]

    async def sample(self, video: bytes, target_fps: int | None = None) -> list[bytes]:
        """Decode *video* and return JPEG frames in source order.

        Raises ``FrameSamplingError`` if ffmpeg is missing, fails, or produces
        no frames. An empty list is never returned.
        """
        fps = settings.default_sample_fps if target_fps is None else target_fps
        if fps <= 0:
            msg = f"target_fps must be positive, got {fps}"
            raise ValueError(msg)

        if self._tmp_root is not None:
            self._tmp_root.mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory(prefix="intake_video_", dir=self._tmp_root) as workdir:
            work = Path(workdir)
            input_path = work / "input.mp4"
            input_path.write_bytes(video)
            cmd = self.build_command(input_path, work / _FRAME_PATTERN, fps)

            logger.info(
                "Sampling video (%d bytes): target %d fps, batch %d",
                len(video), fps, self.batch_size,
            )
            await self._run(cmd)

            frame_paths = sorted(work.glob(f"{_FRAME_PREFIX}*.jpg"))
            if not frame_paths:
                msg = "ffmpeg produced no frames"
                raise FrameSamplingError(msg)

            frames = [path.read_bytes() for path in frame_paths]

        logger.info("Extracted %d frames", len(frames))
        return frames

    async def _run(self, cmd: list[str]) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
            )
        except OSError as exc:
            msg = f"Could not start {self.ffmpeg_binary}: {exc}"
            raise FrameSamplingError(msg) from exc

        try:
            _, stderr = await process.communicate()
        finally:
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()

        if process.returncode != 0:
            detail = stderr.decode(errors="replace").strip() if stderr else "unknown error"
            msg = f"ffmpeg exited with {process.returncode}: {detail}"
            raise FrameSamplingError(msg)
