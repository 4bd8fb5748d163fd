import json

import pytest

from ai_service import (
    AIService,
    GenerationResult,
    parse_duration,
    parse_flashcards,
    parse_quiz_questions,
    usable_key,
)


def ok(name, content):
    return GenerationResult(success=True, content=content, provider=name, model=f"{name}-model")


def failed(name):
    return GenerationResult(success=False, provider=name, error="boom")


@pytest.fixture
def service():
    return AIService(groq_api_key="", gemini_api_key="", openai_api_key="", order=["groq", "gemini", "openai"])


def script(monkeypatch, service, replies):
    """Replace each provider call with a canned reply and record the call order."""
    calls = []

    def make(name):
        def call(messages, **options):
            calls.append(name)
            return replies[name]
        return call

    for name in ("groq", "gemini", "openai"):
        monkeypatch.setattr(service, f"generate_with_{name}", make(name))
    return calls


@pytest.mark.parametrize("value,days", [
    ("2 weeks", 14),
    ("1 month", 30),
    ("3 months", 90),
    ("10 days", 10),
    ("14", 14),
    ("week", 7),
    ("month", 30),
    ("soon", 30),
    ("0 days", 30),
    ("-5", 30),
    (None, 30),
    ("20 months", 365),
])
def test_parse_duration(value, days):
    assert parse_duration(value) == days


def test_usable_key_rejects_placeholders():
    assert not usable_key("")
    assert not usable_key("undefined")
    assert not usable_key("placeholder-key")
    assert not usable_key("sk-abc", "gsk_")
    assert usable_key("gsk_abc", "gsk_")


def test_provider_chain_named_provider_goes_first(service):
    assert service.provider_chain("auto") == ["groq", "gemini", "openai"]
    assert service.provider_chain("openai") == ["openai", "groq", "gemini"]
    assert service.provider_chain("unknown") == ["groq", "gemini", "openai"]


def test_unconfigured_providers_fail_softly(service):
    result = service.generate_with_groq([{"role": "user", "content": "hi"}])
    assert result.success is False
    assert result.error


def test_generate_returns_first_success(monkeypatch, service):
    calls = script(monkeypatch, service, {
        "groq": failed("groq"),
        "gemini": ok("gemini", "answer"),
        "openai": ok("openai", "unused"),
    })
    result = service.generate("hello")
    assert result.content == "answer"
    assert result.provider == "gemini"
    assert result.fallback is False
    assert calls == ["groq", "gemini"]


def test_generate_falls_back_to_template(monkeypatch, service):
    script(monkeypatch, service, {name: failed(name) for name in ("groq", "gemini", "openai")})
    result = service.generate("Please explain this concept")
    assert result.success is True
    assert result.fallback is True
    assert result.provider == "template"
    assert "Understanding" in result.content


def test_malformed_reply_moves_to_next_provider(monkeypatch, service):
    good = json.dumps([{"question": "2+2?", "options": ["4", "5"], "correct": 0, "explanation": "math"}])
    calls = script(monkeypatch, service, {
        "groq": ok("groq", "not json at all"),
        "gemini": ok("gemini", "[{\"question\": \"x\"}]"),
        "openai": ok("openai", good),
    })
    result = service.generate_quiz_questions("Math", "easy", 1)
    assert calls == ["gemini", "groq", "openai"]
    assert result.source == "openai"
    assert result.fallback is False
    assert result.data[0]["options"] == ["4", "5"]


def test_quiz_template_when_all_providers_fail(monkeypatch, service):
    script(monkeypatch, service, {name: failed(name) for name in ("groq", "gemini", "openai")})
    result = service.generate_quiz_questions("Biology", "medium", 3)
    assert result.fallback is True
    assert result.source == "template"
    assert len(result.data) == 3
    assert all(q["correct"] == 0 for q in result.data)


def test_study_plan_parses_fenced_json(monkeypatch, service):
    reply = "```json\n" + json.dumps([{"day": 1, "title": "Intro"}]) + "\n```"
    script(monkeypatch, service, {"groq": ok("groq", reply), "gemini": failed("gemini"), "openai": failed("openai")})
    result = service.generate_detailed_study_plan("Chemistry", "beginner", "1 week", "visual")
    assert result.source == "groq"
    assert result.data == [{"day": 1, "title": "Intro"}]


def test_study_plan_template_has_one_day_per_duration_day(service):
    result = service.generate_detailed_study_plan("Chemistry", "beginner", "2 weeks", "visual")
    assert result.fallback is True
    assert len(result.data) == 14
    assert result.data[0]["title"] == "Day 1: Chemistry - Basic Concepts"
    assert result.data[-1]["title"] == "Day 14: Chemistry - Advanced Concepts"


def test_daily_content_requires_overview(monkeypatch, service):
    script(monkeypatch, service, {
        "groq": ok("groq", json.dumps({"key_points": ["a"]})),
        "gemini": ok("gemini", json.dumps({"overview": "All about loops", "key_points": ["for"]})),
        "openai": failed("openai"),
    })
    result = service.generate_daily_content("Loops", 2, "beginner", ["Variables"], "Python")
    assert result.source == "gemini"
    assert result.data["overview"] == "All about loops"


def test_continue_conversation_sends_recent_context(monkeypatch, service):
    seen = {}

    def groq(messages, **options):
        seen["messages"] = messages
        seen["options"] = options
        return ok("groq", "reply")

    monkeypatch.setattr(service, "generate_with_groq", groq)
    history = [{"role": "user" if i % 2 == 0 else "assistant", "content": f"m{i}"} for i in range(15)]

    result = service.continue_conversation(history, "Be brief", temperature=0.2)

    assert result.data == "reply"
    assert seen["messages"][0] == {"role": "system", "content": "Be brief"}
    assert [m["content"] for m in seen["messages"][1:]] == [f"m{i}" for i in range(5, 15)]
    assert seen["options"] == {"temperature": 0.2}


def test_health_check_reports_missing_providers(service):
    health = service.health_check()
    assert health["providers"] == {"groq": "missing", "gemini": "missing", "openai": "missing"}
    assert health["order"] == ["groq", "gemini", "openai"]


def test_parse_quiz_questions_drops_invalid_items():
    content = json.dumps([
        {"question": "ok", "options": ["a", "b"], "correct": 1},
        {"question": "bad index", "options": ["a", "b"], "correct": 5},
        {"question": "bool", "options": ["a", "b"], "correct": True},
        {"question": "", "options": ["a", "b"], "correct": 0},
        "junk",
    ])
    questions = parse_quiz_questions(content, 10)
    assert [q["question"] for q in questions] == ["ok"]


def test_parse_quiz_questions_rejects_when_none_valid():
    with pytest.raises(ValueError):
        parse_quiz_questions(json.dumps([{"question": "x", "options": ["a"], "correct": 0}]), 5)


def test_parse_flashcards_accepts_question_answer_keys():
    cards = parse_flashcards('Here you go: [{"question": "Q", "answer": "A"}, {"front": "F"}]')
    assert cards == [{"front": "Q", "back": "A"}]
