"""Instruction profiles, follow-up classification and per-mode prompt text."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from intake.models import Mode

if TYPE_CHECKING:
    from collections.abc import Sequence

PRIMARY_INSTRUCTION = """\
You are an expert medical AI assistant specializing in radiology. You have two modes of operation.

**MODE 1: CLINICAL PROFILE GENERATION**
When provided with medical files (images, PDFs, audio recordings, video frames) and/or text \
context, extract and analyze all content to create a concise and comprehensive "Clinical Profile".

If handwritten text is not legible, use the surrounding documents and clinical logic to decipher it.

For audio: transcribe carefully and extract all relevant medical information mentioned.
For video frames: extract all visible medical information, including text, scans and documents shown.
For text notes: treat them as additional clinical context, history or notes to incorporate.

Base the response solely on the provided content (files and text).

Extract key information such as:
- Scan types (e.g. USG, CT Brain).
- Dates of scans or documents.
- Key findings, measurements or impressions from reports.
- Relevant clinical history from notes, audio, video or text.

Synthesize:
- Combine everything into a single cohesive paragraph that recreates all relevant clinical details.
- Merge repeated or vague findings across documents into one concise statement.
- Be concise but never omit important clinical details; completeness wins over brevity.
- Never mention the patient's name, age or gender.
- Arrange multiple dated scan reports chronologically, oldest first.
- Refer to an undated scan as "Previous [Scan Type]...".

Formatting:
- Output a single paragraph starting with "Clinical Profile:", the whole paragraph (prefix \
included) wrapped in single asterisks, e.g. "*Clinical Profile: Previous USG dated 01/01/2023 \
showed mild hepatomegaly. Patient also has a H/o hypertension as noted in the clinical sheet.*"
- Do not output raw transcriptions, JSON or Markdown code blocks.

**MODE 2: FOLLOW-UP INTERACTION**
When the user replies to a previously generated Clinical Profile:
1. If the user asks a question, answer it directly from the profile and the supplied content, \
explain medical terms in plain language, and remind them this is AI analysis, not medical advice.
2. If the user provides additional context or corrections, incorporate them and return an \
UPDATED Clinical Profile following the Mode 1 rules.
3. If the user sends additional files, analyze them with the original context and return an \
UPDATED Clinical Profile covering everything.
"""

SECONDARY_INSTRUCTION = """\
You are an expert radiology assistant who prepares imaging requisitions. You have two modes of \
operation.

**MODE 1: CLINICAL BRIEF**
The input is a Clinical Profile produced from a patient's records. Condense it into a \
requisition-ready "Clinical Brief":
- State the working clinical question in one sentence.
- List only the findings and history that bear on that question, most recent first.
- Keep measurements, dates and laterality exactly as given; never invent findings.
- Never mention the patient's name, age or gender.
- Output a single paragraph starting with "Clinical Brief:", wrapped in single asterisks.
- Do not output JSON or Markdown code blocks.

**MODE 2: FOLLOW-UP INTERACTION**
When the user replies to a previously generated Clinical Brief:
1. If the user asks a question, answer it directly from the brief, in plain language, and \
remind them this is AI analysis, not medical advice.
2. If the user provides additional context or corrections, return an UPDATED Clinical Brief \
following the Mode 1 rules.
"""

_INSTRUCTIONS: dict[Mode, str] = {
    Mode.PRIMARY: PRIMARY_INSTRUCTION,
    Mode.SECONDARY: SECONDARY_INSTRUCTION,
}

_ARTIFACTS: dict[Mode, str] = {
    Mode.PRIMARY: "Clinical Profile",
    Mode.SECONDARY: "Clinical Brief",
}

QUESTION_WORDS = frozenset({"what", "why", "how", "is", "does", "can", "explain"})

_LEADING_WORD_RE = re.compile(r"[a-z]+")


def instruction_for(mode: Mode) -> str:
    """Return the instruction profile for *mode*. Unknown modes raise KeyError."""
    return _INSTRUCTIONS[mode]


def artifact_name(mode: Mode) -> str:
    return _ARTIFACTS[mode]


def is_question(text: str | None) -> bool:
    """Heuristic: a trailing ``?`` or a leading interrogative word."""
    if not text:
        return False
    normalized = text.strip().lower()
    if normalized.endswith("?"):
        return True
    match = _LEADING_WORD_RE.match(normalized)
    return match is not None and match.group(0) in QUESTION_WORDS


def build_synthesis_prompt(notes: Sequence[str]) -> str:
    """Prompt for a fresh synthesis over the buffered content."""
    joined = "\n".join(notes)
    return (
        "Analyze these medical files.\n"
        "=== NOTES ===\n"
        f"{joined}\n\n"
        "Generate the Clinical Profile."
    )


def build_question_prompt(previous: str, notes: Sequence[str], question: str, mode: Mode) -> str:
    """Prompt for answering a question about a previous answer."""
    artifact = artifact_name(mode)
    joined = "\n".join(notes)
    return (
        f"User asks a QUESTION about the previous {artifact}.\n"
        f"=== PREVIOUS {artifact.upper()} ===\n"
        f"{previous}\n"
        "=== ORIGINAL CONTEXT ===\n"
        f"{joined}\n"
        "=== USER QUESTION ===\n"
        f"{question}\n\n"
        "Answer the question directly based on the context."
    )


def build_correction_prompt(previous: str, notes: Sequence[str], update: str, mode: Mode) -> str:
    """Prompt for regenerating a previous answer with new information."""
    artifact = artifact_name(mode)
    joined = "\n".join([update, *notes])
    return (
        "User provides UPDATE/CORRECTION.\n"
        f"=== PREVIOUS {artifact.upper()} ===\n"
        f"{previous}\n"
        "=== NEW INFO ===\n"
        f"{joined}\n\n"
        f"Generate UPDATED {artifact}."
    )
