"""Tests for outbound chunking and Markdown fallback."""

from unittest.mock import AsyncMock, MagicMock

from telegram.error import BadRequest

from intake.bot.telegram.replies import reply_markdown, send_chunks, split_message


class TestSplitMessage:
    def test_short_text_is_one_chunk(self):
        assert split_message("hello", limit=10) == ["hello"]

    def test_empty_text_has_no_chunks(self):
        assert split_message("", limit=10) == []

    def test_hard_split_without_newlines(self):
        assert split_message("abcdefghij" * 2 + "xy", limit=10) == ["abcdefghij", "abcdefghij", "xy"]

    def test_prefers_newline_boundaries(self):
        text = "line one\nline two\nline three"
        assert split_message(text, limit=18) == ["line one\nline two", "line three"]

    def test_chunks_preserve_content_order(self):
        text = "\n".join(f"row {i}" for i in range(50))
        chunks = split_message(text, limit=40)
        assert all(len(c) <= 40 for c in chunks)
        assert "\n".join(chunks) == text

    def test_default_limit_from_settings(self):
        chunks = split_message("x" * 8001)
        assert [len(c) for c in chunks] == [4000, 4000, 1]

    def test_astral_characters_count_as_two_units(self):
        chunks = split_message("\N{GRINNING FACE}" * 4000)
        assert [len(c.encode("utf-16-le")) // 2 for c in chunks] == [4000, 4000]
        assert "".join(chunks) == "\N{GRINNING FACE}" * 4000

    def test_astral_character_is_never_split(self):
        chunks = split_message("ab\N{GRINNING FACE}cd", limit=3)
        assert chunks == ["ab", "\N{GRINNING FACE}c", "d"]


async def test_reply_markdown_uses_markdown() -> None:
    message = MagicMock()
    message.reply_text = AsyncMock(return_value="sent")

    assert await reply_markdown(message, "*bold*") == "sent"
    message.reply_text.assert_awaited_once_with("*bold*", parse_mode="Markdown")


async def test_reply_markdown_falls_back_to_plain_text() -> None:
    message = MagicMock()
    message.reply_text = AsyncMock(side_effect=[BadRequest("Can't parse entities"), "plain"])

    assert await reply_markdown(message, "*broken") == "plain"
    assert message.reply_text.await_args_list[1].args == ("*broken",)
    assert message.reply_text.await_args_list[1].kwargs == {}


async def test_send_chunks_returns_last_message(monkeypatch) -> None:
    monkeypatch.setattr("intake.config.settings.max_message_length", 5)
    message = MagicMock()
    message.reply_text = AsyncMock(side_effect=["m1", "m2", "m3"])

    last = await send_chunks(message, "aaaaabbbbbcc")

    assert last == "m3"
    sent = [c.args[0] for c in message.reply_text.await_args_list]
    assert sent == ["aaaaa", "bbbbb", "cc"]


async def test_send_chunks_empty_text_sends_nothing() -> None:
    message = MagicMock()
    message.reply_text = AsyncMock()

    assert await send_chunks(message, "") is None
    message.reply_text.assert_not_awaited()
