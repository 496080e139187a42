"""Parser for the tutor's markdown reply.

Recovers the four sections of a diary analysis from free-text model output:
- Native Version (corrected passage)
- Grammar & Feedback (bulleted correction lines)
- Vocabulary (pipe table)
- Key Sentence (quote block with translation and tip)

2-phase approach:
    1. Locate each section by its heading line (``extract_section``).
    2. Decode the section body with the matching decoder.

The model is non-deterministic, so nothing here raises on malformed input:
a missing section or an unreadable row degrades to empty data.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from diarylens.analysis_types import AnalysisDocument, KeySentence, VocabularyEntry

log = logging.getLogger(__name__)


class SectionKind(str, Enum):
    NATIVE = "native"
    FEEDBACK = "feedback"
    VOCABULARY = "vocabulary"
    KEY_SENTENCE = "key_sentence"


# ---------------------------------------------------------------------------
# Heading patterns
# ---------------------------------------------------------------------------

def _heading(keywords: str) -> re.Pattern[str]:
    """Heading line: a run of '#', anything, a keyword, anything to EOL."""
    return re.compile(
        r"^[ \t]*#+[^\n]*?(?:" + keywords + r")[^\n]*",
        re.MULTILINE,
    )


# Keywords are case-sensitive. "Grammer" is a misspelling the model produces.
_SECTION_KEYWORDS: dict[SectionKind, str] = {
    SectionKind.NATIVE: r"Native Version",
    SectionKind.FEEDBACK: r"Grammar|Grammer|Feedback",
    SectionKind.VOCABULARY: r"Vocabulary",
    SectionKind.KEY_SENTENCE: r"Key Sentence",
}

SECTION_HEADERS: dict[SectionKind, re.Pattern[str]] = {
    kind: _heading(keywords) for kind, keywords in _SECTION_KEYWORDS.items()
}

# Start of any heading line; ends the current section. The "#" run must be
# followed by whitespace or EOL unless the line names a section, so a hashtag
# line like "#grateful #family" stays in the body.
HEADING_LINE_RE = re.compile(
    r"^[ \t]*#+(?:(?=[ \t]|$)|(?=[^\n]*?(?:"
    + "|".join(_SECTION_KEYWORDS.values())
    + r")))",
    re.MULTILINE,
)


# ---------------------------------------------------------------------------
# Section extraction
# ---------------------------------------------------------------------------

def extract_section(
    document: str,
    header: re.Pattern[str],
    boundary: re.Pattern[str] | None = HEADING_LINE_RE,
) -> str:
    """Return the trimmed body between ``header`` and the next ``boundary``.

    The body starts after the end of the first line matching ``header`` and
    runs up to the start of the next ``boundary`` match, or to the end of the
    document when ``boundary`` is None or never matches. Returns ``""`` when
    the header is not present.
    """
    if not document:
        return ""
    match = header.search(document)
    if match is None:
        return ""
    body_start = match.end()
    body_end = len(document)
    if boundary is not None:
        # MULTILINE '^' cannot match at body_start (mid-line), so the header
        # line itself is never its own boundary.
        nxt = boundary.search(document, body_start)
        if nxt is not None:
            body_end = nxt.start()
    return document[body_start:body_end].strip()


# ---------------------------------------------------------------------------
# Native version
# ---------------------------------------------------------------------------

_QUOTE_MARKER_RE = re.compile(r"^[ \t]*>[ \t]*", re.MULTILINE)


def decode_native(raw: str) -> str:
    """Strip block-quote markers from every line, keeping paragraph breaks."""
    return _QUOTE_MARKER_RE.sub("", raw).strip()


# ---------------------------------------------------------------------------
# Grammar & feedback
# ---------------------------------------------------------------------------

_NUMBERED_RE = re.compile(r"^\d+\.")
_RULE_LINE_RE = re.compile(r"^(?:-{3,}|\*{3,}|_{3,})$")
# A single '*' is a bullet; '**' opens an emphasis span and is kept.
_BULLET_MARKER_RE = re.compile(r"^(?:\*(?!\*)|-)\s*")
_NUMBER_MARKER_RE = re.compile(r"^\d+\.\s*")
ARROW_TOKENS: tuple[str, ...] = ("->", "→")


def _is_feedback_item(line: str) -> bool:
    if _RULE_LINE_RE.match(line):
        return False
    return (
        line.startswith(("*", "-"))
        or _NUMBERED_RE.match(line) is not None
        or any(arrow in line for arrow in ARROW_TOKENS)
    )


def decode_feedback(raw: str) -> tuple[str, ...]:
    """Keep list-item lines in document order, minus their list marker.

    Arrow tokens and ``**`` emphasis are left in place; splitting a line
    into original/corrected/explanation is a presentation concern
    (see ``diarylens.presentation.split_feedback_line``).
    """
    items: list[str] = []
    for line in raw.splitlines():
        line = line.strip()
        if not line or not _is_feedback_item(line):
            continue
        item = _BULLET_MARKER_RE.sub("", line, count=1)
        item = _NUMBER_MARKER_RE.sub("", item, count=1).strip()
        if item:
            items.append(item)
    return tuple(items)


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

_SEPARATOR_RUN_RE = re.compile(r"-{3,}")


def _is_header_or_separator(row: str) -> bool:
    # Heuristic: also discards a genuine row whose text contains "word".
    return _SEPARATOR_RUN_RE.search(row) is not None or "word" in row.lower()


def decode_vocabulary(raw: str) -> tuple[VocabularyEntry, ...]:
    """Decode pipe-table rows into entries; malformed rows are dropped."""
    entries: list[VocabularyEntry] = []
    for line in raw.splitlines():
        row = line.strip()
        if not row.startswith("|") or _is_header_or_separator(row):
            continue
        cells = [c.strip() for c in row.split("|")]
        cells = [c for c in cells if c]
        if len(cells) == 3:
            entries.append(VocabularyEntry(cells[0], cells[1], cells[2]))
        elif len(cells) == 2:
            entries.append(VocabularyEntry("-", cells[0], cells[1]))
    return tuple(entries)


# ---------------------------------------------------------------------------
# Key sentence (ordered rule table)
# ---------------------------------------------------------------------------

_QUOTE_CHARS = "\"“”"
_QUOTE_CHARS_RE = re.compile(f"[{_QUOTE_CHARS}]")
_BULLET_RE = re.compile(r"^[*\-]\s*")


def _unwrap(line: str) -> str:
    return _QUOTE_CHARS_RE.sub("", line.replace("**", "")).strip()


@dataclass(frozen=True, slots=True)
class KeySentenceRule:
    """One predicate→action step. ``matches`` sees the line and current slots."""

    name: str
    slot: str  # "english" | "korean" | "tip"
    matches: Callable[[str, dict[str, str]], bool]
    extract: Callable[[str], str]


KEY_SENTENCE_RULES: tuple[KeySentenceRule, ...] = (
    KeySentenceRule(
        name="emphasized_sentence",
        slot="english",
        matches=lambda line, _: len(line) >= 4 and line.startswith("**") and line.endswith("**"),
        extract=_unwrap,
    ),
    KeySentenceRule(
        name="quoted_sentence",
        slot="english",
        matches=lambda line, _: (
            len(line) >= 2 and line[0] in _QUOTE_CHARS and line[-1] in _QUOTE_CHARS
        ),
        extract=lambda line: _QUOTE_CHARS_RE.sub("", line).strip(),
    ),
    KeySentenceRule(
        name="bulleted_tip",
        slot="tip",
        matches=lambda line, _: line.startswith(("*", "-")),
        extract=lambda line: _BULLET_RE.sub("", line, count=1).replace("**", "").strip(),
    ),
    KeySentenceRule(
        name="unformatted_sentence",
        slot="english",
        matches=lambda line, slots: not slots["english"] and line[:1].isascii() and line[:1].isalpha(),
        extract=_unwrap,
    ),
    KeySentenceRule(
        name="translation",
        slot="korean",
        matches=lambda line, _: True,
        extract=lambda line: line,
    ),
)


def decode_key_sentence(raw: str) -> KeySentence:
    """Assign each non-blank line to a slot via ``KEY_SENTENCE_RULES``.

    First matching rule wins per line; a later line overwrites an earlier
    value in the same slot. Horizontal rules are skipped.
    """
    slots = {"english": "", "korean": "", "tip": ""}
    for line in raw.splitlines():
        clean = _QUOTE_MARKER_RE.sub("", line, count=1).strip()
        if not clean or _RULE_LINE_RE.match(clean):
            continue
        for rule in KEY_SENTENCE_RULES:
            if rule.matches(clean, slots):
                slots[rule.slot] = rule.extract(clean)
                break
    return KeySentence(**slots)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_analysis(markdown: str | None) -> AnalysisDocument:
    """Parse one tutor reply into an ``AnalysisDocument``.

    Pure function of its input: no state is kept between calls and no
    exception is raised for malformed or partial replies.
    """
    if not markdown:
        return AnalysisDocument.empty()

    sections = {
        kind: extract_section(markdown, pattern)
        for kind, pattern in SECTION_HEADERS.items()
    }
    missing = [kind.value for kind, body in sections.items() if not body]
    if missing:
        log.debug("analysis reply missing sections: %s", ", ".join(missing))

    return AnalysisDocument(
        native_version=decode_native(sections[SectionKind.NATIVE]),
        feedback=decode_feedback(sections[SectionKind.FEEDBACK]),
        vocabulary=decode_vocabulary(sections[SectionKind.VOCABULARY]),
        key_sentence=decode_key_sentence(sections[SectionKind.KEY_SENTENCE]),
    )
