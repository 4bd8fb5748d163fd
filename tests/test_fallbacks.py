import pytest

import fallbacks
from json_extract import extract_json, strip_fences


@pytest.mark.parametrize("day,band", [(1, "Basic"), (3, "Basic"), (4, "Intermediate"), (6, "Intermediate"), (7, "Advanced"), (9, "Advanced")])
def test_difficulty_band_thirds(day, band):
    assert fallbacks.difficulty_band(day, 9) == band


def test_templates_are_deterministic():
    assert fallbacks.study_plan("Art", "beginner", 5, "visual") == fallbacks.study_plan("Art", "beginner", 5, "visual")
    assert fallbacks.quiz_questions("Art", "easy", 4) == fallbacks.quiz_questions("Art", "easy", 4)
    assert fallbacks.flashcards("Art", 6) == fallbacks.flashcards("Art", 6)


def test_study_plan_days_carry_subject_and_time():
    days = fallbacks.study_plan("Physics", "advanced", 3, "reading")
    assert [d["day"] for d in days] == [1, 2, 3]
    assert all(d["total_time"] == 120 for d in days)
    assert "Physics" in days[0]["content"]["overview"]
    assert "reading" in days[0]["content"]["overview"]


def test_flashcards_cycle_with_suffix():
    cards = fallbacks.flashcards("Rust", 5)
    assert len(cards) == 5
    assert cards[0]["front"] == "Define the core idea of Rust."
    assert cards[4]["front"] == "Define the core idea of Rust. (2)"


def test_structured_fallback_dispatch():
    assert fallbacks.structured_fallback("Make me a study plan").startswith("# Study Plan for Your Course")
    assert "Quiz generation" in fallbacks.structured_fallback("Generate a quiz")
    assert fallbacks.structured_fallback("hello") == fallbacks.generic_response()


def test_extract_topics_strips_markers_only():
    text = "Syllabus\n1. Linear equations\n- Well-known theorems\n* x\nChapter 4: Graph theory\nplain line"
    topics = fallbacks.extract_topics_from_syllabus(text, "Math")
    assert topics == ["Linear equations", "Well-known theorems", "Chapter 4: Graph theory"]


def test_extract_topics_defaults_to_subject_outline():
    topics = fallbacks.extract_topics_from_syllabus("nothing useful here", "Go")
    assert len(topics) == 7
    assert topics[0] == "Introduction to Go"


def test_syllabus_days_spreads_topics():
    days = fallbacks.syllabus_days(["A1", "B2", "C3", "D4", "E5"], "Bio", 3)
    assert [d["title"] for d in days] == ["Day 1: A1", "Day 2: C3", "Day 3: E5"]
    assert all(d["total_time"] == 90 for d in days)


def test_syllabus_days_without_topics_uses_subject():
    days = fallbacks.syllabus_days(["Only"], "Bio", 2)
    assert days[1]["title"] == "Day 2: Bio Concepts"


def test_strip_fences():
    assert strip_fences("```json\n{\"a\": 1}\n```") == '{"a": 1}'


def test_extract_json_finds_embedded_value():
    assert extract_json('Sure! {"overview": "x"} hope it helps', dict) == {"overview": "x"}
    assert extract_json("Result: [1, 2]", list) == [1, 2]


def test_extract_json_rejects_wrong_shape():
    with pytest.raises(ValueError):
        extract_json('{"a": 1}', list)
    with pytest.raises(ValueError):
        extract_json("", dict)
