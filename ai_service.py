"""
AI provider orchestration.

Providers are tried one after another in the configured order. A provider that
is not configured, raises, returns nothing, or returns content that does not
parse into the expected shape counts as a soft failure and the next one is
tried. When every provider has failed the caller's deterministic template from
`fallbacks` is used, so generation never fails because a provider did.
"""
import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional

import google.generativeai as genai
from openai import OpenAI
from pydantic import BaseModel

import config
import fallbacks
from json_extract import extract_json

logger = logging.getLogger(__name__)

KNOWN_PROVIDERS = ("groq", "gemini", "openai")
FALLBACK_SOURCE = "template"
PLACEHOLDER_KEYS = {"", "undefined", "placeholder-key", "none", "null"}
MAX_PLAN_DAYS = 365
CONTEXT_MESSAGES = 10


class GenerationResult(BaseModel):
    success: bool
    content: Any = None
    provider: Optional[str] = None
    model: Optional[str] = None
    fallback: bool = False
    error: Optional[str] = None
    response_time: int = 0  # milliseconds


class StructuredResult(BaseModel):
    data: Any
    source: str
    fallback: bool = False
    model: Optional[str] = None
    response_time: int = 0


# ----------------- Helpers -----------------

def parse_duration(duration: Any) -> int:
    """Turn '2 weeks', '1 month', '10 days' or '14' into a number of days (default 30)."""
    if duration is None:
        return 30
    text = str(duration).strip().lower()
    match = re.match(r"[+-]?\d+", text)
    number = int(match.group(0)) if match else 0

    if "month" in text:
        days = (number or 1) * 30
    elif "week" in text:
        days = (number or 1) * 7
    else:
        days = number or 30

    if days < 1:
        return 30
    return min(days, MAX_PLAN_DAYS)


def usable_key(key: Optional[str], prefix: Optional[str] = None) -> bool:
    if not key or key.strip().lower() in PLACEHOLDER_KEYS:
        return False
    return key.startswith(prefix) if prefix else True


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _user_messages(prompt: str) -> List[Dict[str, str]]:
    return [{"role": "user", "content": prompt}]


# ----------------- Response parsers -----------------
# Each parser raises ValueError (or returns None) when a reply has the wrong shape.

def parse_text(content: Any) -> str:
    if not isinstance(content, str) or not content.strip():
        raise ValueError("empty text")
    return content.strip()


def parse_study_plan(content: str) -> List[Dict[str, Any]]:
    days = extract_json(content, list)
    if not days or not all(isinstance(day, dict) for day in days):
        raise ValueError("study plan must be a non-empty array of objects")
    return days


def parse_quiz_questions(content: str, count: int) -> List[Dict[str, Any]]:
    raw = extract_json(content, list)
    questions = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        text = item.get("question")
        options = item.get("options")
        correct = item.get("correct")
        if not isinstance(text, str) or not text.strip():
            continue
        if not isinstance(options, list) or len(options) < 2:
            continue
        if isinstance(correct, bool) or not isinstance(correct, int):
            continue
        if not 0 <= correct < len(options):
            continue
        questions.append({
            "question": text.strip(),
            "options": [str(o) for o in options],
            "correct": correct,
            "explanation": str(item.get("explanation") or ""),
        })
    if not questions:
        raise ValueError("no valid quiz questions")
    return questions[:count]


def parse_day_content(content: str) -> Dict[str, Any]:
    data = extract_json(content, dict)
    if not isinstance(data.get("overview"), str) or not data["overview"].strip():
        raise ValueError("day content needs an overview")
    return data


def parse_flashcards(content: str) -> List[Dict[str, str]]:
    raw = extract_json(content, list)
    cards = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        front = item.get("front") or item.get("question")
        back = item.get("back") or item.get("answer")
        if front and back:
            cards.append({"front": str(front), "back": str(back)})
    if not cards:
        raise ValueError("no valid flashcards")
    return cards


# ----------------- Service -----------------

class AIService:
    def __init__(
        self,
        groq_api_key: Optional[str] = None,
        gemini_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        order: Optional[List[str]] = None,
    ):
        self.groq_api_key = config.GROQ_API_KEY if groq_api_key is None else groq_api_key
        self.gemini_api_key = config.GEMINI_API_KEY if gemini_api_key is None else gemini_api_key
        self.openai_api_key = config.OPENAI_API_KEY if openai_api_key is None else openai_api_key
        self.order = [p for p in (order or config.AI_PROVIDER_ORDER) if p in KNOWN_PROVIDERS]
        self._groq = None
        self._openai = None
        self._gemini_ready = False
        self.initialized = False

    def initialize_services(self) -> None:
        if self.initialized:
            return

        if usable_key(self.groq_api_key, "gsk_"):
            try:
                self._groq = OpenAI(api_key=self.groq_api_key, base_url=config.GROQ_BASE_URL)
            except Exception as e:
                logger.error("Failed to initialize Groq client: %s", e)
        else:
            logger.warning("Groq API key not found or invalid")

        if usable_key(self.gemini_api_key, "AIza"):
            try:
                genai.configure(api_key=self.gemini_api_key)
                self._gemini_ready = True
            except Exception as e:
                logger.error("Failed to configure Gemini: %s", e)
        else:
            logger.warning("Gemini API key not found or invalid")

        if usable_key(self.openai_api_key):
            try:
                self._openai = OpenAI(api_key=self.openai_api_key)
            except Exception as e:
                logger.error("Failed to initialize OpenAI client: %s", e)

        self.initialized = True
        logger.info("AI service initialized: %s", self.status())

    def status(self) -> Dict[str, str]:
        return {
            "groq": "configured" if self._groq is not None else "missing",
            "gemini": "configured" if self._gemini_ready else "missing",
            "openai": "configured" if self._openai is not None else "missing",
        }

    # ----- providers -----

    def _chat_completion(self, client, name: str, model: str, messages, options) -> GenerationResult:
        started = time.monotonic()
        try:
            resp = client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=options.get("temperature", 0.7),
                max_tokens=options.get("max_tokens", 2000),
                top_p=options.get("top_p", 0.9),
            )
            content = resp.choices[0].message.content or ""
        except Exception as e:
            logger.error("%s error: %s", name, e)
            return GenerationResult(success=False, provider=name, error=str(e))

        if not content.strip():
            return GenerationResult(success=False, provider=name, error="empty response")
        return GenerationResult(
            success=True, content=content, provider=name, model=model, response_time=_elapsed_ms(started)
        )

    def generate_with_groq(self, messages: List[Dict[str, str]], **options) -> GenerationResult:
        self.initialize_services()
        if self._groq is None:
            return GenerationResult(success=False, provider="groq", error="Groq client not initialized")
        return self._chat_completion(self._groq, "groq", config.GROQ_MODEL, messages, options)

    def generate_with_openai(self, messages: List[Dict[str, str]], **options) -> GenerationResult:
        self.initialize_services()
        if self._openai is None:
            return GenerationResult(success=False, provider="openai", error="OpenAI client not initialized")
        return self._chat_completion(self._openai, "openai", config.OPENAI_MODEL, messages, options)

    def generate_with_gemini(self, messages: List[Dict[str, str]], **options) -> GenerationResult:
        self.initialize_services()
        if not self._gemini_ready:
            return GenerationResult(
                success=False, provider="gemini", error="Gemini API key not configured or invalid"
            )

        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        contents = [
            {"role": "model" if m["role"] == "assistant" else "user", "parts": [m["content"]]}
            for m in messages
            if m["role"] != "system"
        ]
        started = time.monotonic()
        try:
            model = genai.GenerativeModel(config.GEMINI_MODEL, system_instruction=system or None)
            resp = model.generate_content(
                contents,
                generation_config={
                    "temperature": options.get("temperature", 0.7),
                    "max_output_tokens": options.get("max_tokens", 2000),
                    "top_p": options.get("top_p", 0.8),
                    "top_k": options.get("top_k", 40),
                },
            )
            content = resp.text or ""
        except Exception as e:
            logger.error("Gemini API error: %s", e)
            return GenerationResult(success=False, provider="gemini", error=str(e))

        if not content.strip():
            return GenerationResult(success=False, provider="gemini", error="No candidates returned")
        return GenerationResult(
            success=True,
            content=content,
            provider="gemini",
            model=config.GEMINI_MODEL,
            response_time=_elapsed_ms(started),
        )

    # ----- orchestration -----

    def provider_chain(self, provider: str = "auto") -> List[str]:
        """`auto` follows the configured order; a named provider goes first, then the rest."""
        if provider not in KNOWN_PROVIDERS:
            return list(self.order)
        return [provider] + [p for p in self.order if p != provider]

    def _run_chain(self, messages, provider: str, parse: Callable[[Any], Any], options):
        for name in self.provider_chain(provider):
            logger.info("Attempting %s generation...", name)
            result = getattr(self, f"generate_with_{name}")(messages, **options)
            if not result.success:
                logger.warning("%s generation failed: %s", name, result.error)
                continue
            try:
                data = parse(result.content)
            except (ValueError, TypeError, KeyError) as e:
                logger.warning("%s returned an unusable response: %s", name, e)
                continue
            if data is None:
                logger.warning("%s returned an empty response", name)
                continue
            logger.info("%s generation successful", name)
            return result, data
        return None, None

    def generate(self, prompt: str, provider: str = "auto", **options) -> GenerationResult:
        result, _ = self._run_chain(_user_messages(prompt), provider, parse_text, options)
        if result is not None:
            return result
        logger.warning("All AI providers failed, using structured fallback")
        return GenerationResult(
            success=True,
            content=fallbacks.structured_fallback(prompt),
            provider=FALLBACK_SOURCE,
            fallback=True,
        )

    def generate_structured(
        self,
        prompt: Optional[str],
        parse: Callable[[Any], Any],
        fallback: Callable[[], Any],
        provider: str = "auto",
        messages: Optional[List[Dict[str, str]]] = None,
        **options,
    ) -> StructuredResult:
        result, data = self._run_chain(messages or _user_messages(prompt), provider, parse, options)
        if result is not None:
            return StructuredResult(
                data=data, source=result.provider, model=result.model, response_time=result.response_time
            )
        logger.warning("All AI providers failed, using structured fallback")
        return StructuredResult(data=fallback(), source=FALLBACK_SOURCE, fallback=True)

    # ----- domain operations -----

    def generate_detailed_study_plan(
        self, subject: str, level: str, duration: Any, learning_style: str
    ) -> StructuredResult:
        days = parse_duration(duration)
        prompt = f"""Create a comprehensive {days}-day study plan for {subject} at {level} level.
Learning style: {learning_style}

Return ONLY a valid JSON array with one entry per day and this structure:
[
  {{
    "day": 1,
    "title": "Introduction to [Specific Topic]",
    "objectives": ["Learn basics", "Understand fundamentals", "Apply knowledge"],
    "content": {{
      "overview": "Detailed overview (200+ words)",
      "key_points": ["Concept 1", "Concept 2"],
      "examples": ["Example 1", "Example 2"],
      "exercises": ["Exercise 1", "Exercise 2"]
    }},
    "total_time": 90
  }}
]"""
        return self.generate_structured(
            prompt,
            parse_study_plan,
            lambda: fallbacks.study_plan(subject, level, days, learning_style),
            max_tokens=4000,
        )

    def generate_quiz_questions(self, topic: str, difficulty: str, count: int = 10) -> StructuredResult:
        prompt = f"""Create {count} {difficulty} multiple choice quiz questions about {topic}.
Return ONLY a valid JSON array with this format:
[
  {{
    "question": "What is ...?",
    "options": ["A", "B", "C", "D"],
    "correct": 0,
    "explanation": "Why correct"
  }}
]"""
        logger.info("Generating %s %s quiz questions for %s", count, difficulty, topic)
        return self.generate_structured(
            prompt,
            lambda content: parse_quiz_questions(content, count),
            lambda: fallbacks.quiz_questions(topic, difficulty, count),
            provider="gemini",
            max_tokens=2000,
        )

    def explain_concept(self, concept: str, level: str = "intermediate") -> StructuredResult:
        prompt = f"""Explain "{concept}" at {level} level:
1. Definition
2. Key principles
3. Real-world examples
4. Misconceptions
5. Related concepts"""
        logger.info("Explaining concept: %s at %s", concept, level)
        return self.generate_structured(
            prompt, parse_text, lambda: fallbacks.explanation(concept, level), max_tokens=1500
        )

    def generate_daily_content(
        self, topic: str, day: int, level: str, previous_topics: List[str], subject: str = ""
    ) -> StructuredResult:
        prompt = f"""Generate content for Day {day}: {topic} at {level} level.
Previous topics: {', '.join(previous_topics) or 'none'}

Return ONLY valid JSON:
{{
  "overview": "...",
  "key_points": ["..."],
  "examples": ["..."],
  "exercises": ["..."],
  "resources": [{{"type": "video", "title": "..."}}]
}}"""
        logger.info("Generating daily content for Day %s: %s", day, topic)
        return self.generate_structured(
            prompt,
            parse_day_content,
            lambda: fallbacks.topic_content(topic, subject or topic, level),
            max_tokens=3000,
        )

    def generate_flashcards(self, topic: str, count: int = 20) -> StructuredResult:
        prompt = f"""Create {count} concise study flashcards about {topic}.
Return ONLY a valid JSON array: [{{"front": "question or term", "back": "answer"}}]"""
        return self.generate_structured(
            prompt,
            lambda content: parse_flashcards(content)[:count],
            lambda: fallbacks.flashcards(topic, count),
            max_tokens=2000,
        )

    def continue_conversation(
        self,
        messages: List[Dict[str, str]],
        system_prompt: Optional[str] = None,
        provider: str = "auto",
        **options,
    ) -> StructuredResult:
        recent = [{"role": m["role"], "content": m["content"]} for m in messages[-CONTEXT_MESSAGES:]]
        if system_prompt:
            recent.insert(0, {"role": "system", "content": system_prompt})
        last_user = next((m["content"] for m in reversed(messages) if m["role"] == "user"), "")
        return self.generate_structured(
            None,
            parse_text,
            lambda: fallbacks.conversation_reply(last_user),
            provider=provider,
            messages=recent,
            **options,
        )

    def generate_syllabus_plan(
        self, text: str, subject: str, level: str, duration: str, learning_style: str
    ) -> StructuredResult:
        prompt = f"""Create a comprehensive study plan based on the following syllabus/course content:

{text[:6000]}

Subject: {subject}
Level: {level}
Duration: {duration}
Learning Style: {learning_style}

Please provide:
1. Weekly breakdown of topics
2. Recommended study schedule
3. Key concepts to focus on
4. Practice exercises suggestions
5. Assessment milestones"""
        return self.generate_structured(
            prompt,
            parse_text,
            lambda: fallbacks.syllabus_plan(subject, level, duration, learning_style),
            max_tokens=2000,
        )

    def health_check(self) -> Dict[str, Any]:
        self.initialize_services()
        return {"providers": self.status(), "order": self.order}


ai_service = AIService()
