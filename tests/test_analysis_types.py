"""Tests for diarylens.analysis_types records."""
from __future__ import annotations

import dataclasses

import pytest

from diarylens.analysis_types import AnalysisDocument, KeySentence, VocabularyEntry


class TestAnalysisDocument:
    def test_empty_defaults(self) -> None:
        doc = AnalysisDocument.empty()
        assert doc.native_version == ""
        assert doc.feedback == ()
        assert doc.vocabulary == ()
        assert doc.key_sentence == KeySentence("", "", "")
        assert doc.is_empty

    def test_not_empty_with_tip_only(self) -> None:
        doc = AnalysisDocument(key_sentence=KeySentence(tip="팁"))
        assert not doc.is_empty

    def test_frozen(self) -> None:
        doc = AnalysisDocument.empty()
        with pytest.raises(dataclasses.FrozenInstanceError):
            doc.native_version = "x"  # type: ignore[misc]

    def test_to_dict_keys(self) -> None:
        doc = AnalysisDocument(
            native_version="Hi.",
            feedback=("a → b",),
            vocabulary=(VocabularyEntry("1", "hi", "안녕"),),
            key_sentence=KeySentence("Hi.", "안녕.", "인사"),
        )
        assert doc.to_dict() == {
            "nativeVersion": "Hi.",
            "feedback": ["a → b"],
            "vocabulary": [{"index": "1", "term": "hi", "meaning": "안녕"}],
            "keySentence": {"english": "Hi.", "korean": "안녕.", "tip": "인사"},
        }
