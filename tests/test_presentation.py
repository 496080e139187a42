"""Tests for diarylens.presentation helpers."""
from __future__ import annotations

from diarylens.analysis_parser import parse_analysis
from diarylens.presentation import (
    FeedbackPoint,
    TextSpan,
    bold_spans,
    notion_bullets,
    render_analysis,
    split_feedback_line,
)


class TestSplitFeedbackLine:
    def test_structured_line(self) -> None:
        point = split_feedback_line("**I go** → **I went** (past tense needed)")
        assert point.original == "I go"
        assert point.corrected == "I went"
        assert point.explanation == "past tense needed"
        assert point.is_structured

    def test_ascii_arrow_without_explanation(self) -> None:
        point = split_feedback_line("**goed** -> **went**")
        assert (point.original, point.corrected, point.explanation) == ("goed", "went", "")

    def test_splits_on_first_arrow(self) -> None:
        point = split_feedback_line("a → b -> c")
        assert point.original == "a"
        assert point.corrected == "b -> c"

    def test_ascii_arrow_before_unicode(self) -> None:
        point = split_feedback_line("a -> b → c")
        assert point.original == "a"
        assert point.corrected == "b → c"

    def test_nested_parentheses_removed(self) -> None:
        point = split_feedback_line("x → y (use (past) tense)")
        assert point.explanation == "use past tense"

    def test_unstructured_line(self) -> None:
        point = split_feedback_line("(지난 일을 말할 때는 과거형을 씁니다)")
        assert point == FeedbackPoint(raw="(지난 일을 말할 때는 과거형을 씁니다)")
        assert not point.is_structured


class TestBoldSpans:
    def test_mixed(self) -> None:
        assert bold_spans("It was **really** fun") == [
            TextSpan("It was "),
            TextSpan("really", bold=True),
            TextSpan(" fun"),
        ]

    def test_plain(self) -> None:
        assert bold_spans("plain") == [TextSpan("plain")]

    def test_empty(self) -> None:
        assert bold_spans("") == []


class TestNotionBullets:
    def test_one_bullet_per_paragraph(self) -> None:
        text = "First paragraph.\n\nSecond paragraph.\nThird."
        assert notion_bullets(text) == "- First paragraph.\n- Second paragraph.\n- Third."

    def test_link_appended(self) -> None:
        out = notion_bullets("Hi.", link="https://example.com/?date=2026-10-17")
        assert out.splitlines()[-1] == "- [Link to Diary](https://example.com/?date=2026-10-17)"

    def test_empty(self) -> None:
        assert notion_bullets("") == ""


class TestRenderAnalysis:
    def test_feedback_points_added(self) -> None:
        doc = parse_analysis(
            "### Grammar & Feedback\n* **I go** → **I went** (past tense needed)\n* Nice work"
        )
        payload = render_analysis(doc)
        assert payload["feedback"] == [
            "**I go** → **I went** (past tense needed)",
            "Nice work",
        ]
        points = payload["feedbackPoints"]
        assert points[0]["original"] == "I go"
        assert points[0]["structured"] is True
        assert points[1]["structured"] is False
        assert payload["nativeVersion"] == ""
