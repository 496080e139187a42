"""Presentation helpers for a parsed analysis.

Pure text operations applied after parsing: splitting feedback lines into
original/corrected/explanation, bold span splitting, and the "Copy for
Notion" bullet format.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from diarylens.analysis_parser import ARROW_TOKENS
from diarylens.analysis_types import AnalysisDocument

_BOLD_SPLIT_RE = re.compile(r"(\*\*.*?\*\*)")


@dataclass(frozen=True, slots=True)
class FeedbackPoint:
    """One feedback line, split when it has an arrow token."""

    raw: str
    original: str = ""
    corrected: str = ""
    explanation: str = ""
    is_structured: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "raw": self.raw,
            "original": self.original,
            "corrected": self.corrected,
            "explanation": self.explanation,
            "structured": self.is_structured,
        }


@dataclass(frozen=True, slots=True)
class TextSpan:
    text: str
    bold: bool = False


def _first_arrow(line: str) -> tuple[int, str] | None:
    hits = [(line.find(a), a) for a in ARROW_TOKENS if a in line]
    return min(hits) if hits else None


def split_feedback_line(line: str) -> FeedbackPoint:
    """Split ``**orig** → **fix** (why)`` into its three parts.

    Splits on the first arrow token. Text after the arrow up to the first
    ``(`` is the correction; the rest, parentheses removed, is the
    explanation. Lines without an arrow come back unstructured.
    """
    arrow = _first_arrow(line)
    if arrow is None:
        return FeedbackPoint(raw=line)
    pos, token = arrow
    original = line[:pos].strip().replace("**", "").strip()
    rest = line[pos + len(token):].strip()
    paren = rest.find("(")
    if paren == -1:
        corrected, explanation = rest, ""
    else:
        corrected = rest[:paren]
        explanation = rest[paren:].replace("(", "").replace(")", "").strip()
    corrected = corrected.strip().replace("**", "").strip()
    return FeedbackPoint(
        raw=line,
        original=original,
        corrected=corrected,
        explanation=explanation,
        is_structured=True,
    )


def bold_spans(text: str) -> list[TextSpan]:
    """Split text into plain and ``**bold**`` spans, markers removed."""
    spans: list[TextSpan] = []
    for part in _BOLD_SPLIT_RE.split(text):
        if not part:
            continue
        if len(part) >= 4 and part.startswith("**") and part.endswith("**"):
            spans.append(TextSpan(part[2:-2], bold=True))
        else:
            spans.append(TextSpan(part))
    return spans


def notion_bullets(native_version: str, link: str | None = None) -> str:
    """Format the corrected passage as one ``- `` bullet per paragraph."""
    paragraphs = [p.strip() for p in re.split(r"\n+", native_version)]
    lines = [f"- {p}" for p in paragraphs if p]
    if link:
        lines.append(f"- [Link to Diary]({link})")
    return "\n".join(lines)


def render_analysis(document: AnalysisDocument) -> dict[str, Any]:
    """JSON-ready view of ``document`` with feedback lines pre-split."""
    payload = document.to_dict()
    payload["feedbackPoints"] = [
        split_feedback_line(line).to_dict() for line in document.feedback
    ]
    return payload
