"""Core types for the tutor analysis pipeline.

Every layer (parser, presentation, API, CLI) shares these records. All
dataclasses are frozen and use slots=True; sequences are tuples so a record
is never mutated after the parser builds it.

Type hierarchy:
  VocabularyEntry   — One row of the vocabulary table
  KeySentence       — English sentence, Korean translation, usage tip
  AnalysisDocument  — The four sections recovered from one model reply
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class VocabularyEntry:
    """A vocabulary table row. ``index`` is ``"-"`` when the row had no number."""

    index: str
    term: str
    meaning: str

    def to_dict(self) -> dict[str, str]:
        return {"index": self.index, "term": self.term, "meaning": self.meaning}


@dataclass(frozen=True, slots=True)
class KeySentence:
    """The "golden sentence" block. Any field may be an empty string."""

    english: str = ""
    korean: str = ""
    tip: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.english or self.korean or self.tip)

    def to_dict(self) -> dict[str, str]:
        return {"english": self.english, "korean": self.korean, "tip": self.tip}


@dataclass(frozen=True, slots=True)
class AnalysisDocument:
    """Structured view of one tutor reply.

    All four fields are always present. A section the model omitted is
    represented by ``""`` or an empty tuple, never by ``None``.

    Usage::

        doc = parse_analysis(reply_markdown)
        for entry in doc.vocabulary:
            print(entry.term, entry.meaning)
    """

    native_version: str = ""
    feedback: tuple[str, ...] = ()
    vocabulary: tuple[VocabularyEntry, ...] = ()
    key_sentence: KeySentence = field(default_factory=KeySentence)

    @classmethod
    def empty(cls) -> AnalysisDocument:
        return cls()

    @property
    def is_empty(self) -> bool:
        return (
            not self.native_version
            and not self.feedback
            and not self.vocabulary
            and self.key_sentence.is_empty
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict with the camelCase keys the frontend reads."""
        return {
            "nativeVersion": self.native_version,
            "feedback": list(self.feedback),
            "vocabulary": [v.to_dict() for v in self.vocabulary],
            "keySentence": self.key_sentence.to_dict(),
        }
