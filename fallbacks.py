"""
Deterministic content used when no AI provider produced a usable answer.

Every function here is pure: the same arguments always give the same output,
built by interpolating the subject/topic into a fixed structure.
"""
import re
from typing import Any, Dict, List


def difficulty_band(day: int, total_days: int) -> str:
    if day <= total_days / 3:
        return "Basic"
    if day <= (total_days * 2) / 3:
        return "Intermediate"
    return "Advanced"


def study_plan(subject: str, level: str, days: int, learning_style: str) -> List[Dict[str, Any]]:
    plan = []
    for day in range(1, days + 1):
        band = difficulty_band(day, days)
        plan.append({
            "day": day,
            "title": f"Day {day}: {subject} - {band} Concepts",
            "objectives": [
                f"Master fundamentals for Day {day}",
                f"Apply {band} {subject} concepts",
                "Do practical exercises",
                "Prepare for next stage",
            ],
            "content": {
                "overview": (
                    f"Day {day} focuses on {band} {subject} concepts at {level} level "
                    f"with {learning_style} learning approach."
                ),
                "key_points": [f"Concept {day}-1", f"Concept {day}-2"],
                "examples": [f"Example {day}-1", f"Example {day}-2"],
                "exercises": [f"Exercise {day}-1", f"Exercise {day}-2"],
            },
            "resources": [{"type": "article", "title": f"{subject} Guide Day {day}"}],
            "total_time": 120,
        })
    return plan


def quiz_questions(topic: str, difficulty: str, count: int) -> List[Dict[str, Any]]:
    return [
        {
            "question": f"What is an important {difficulty} level concept in {topic}?",
            "options": [
                f"Correct answer about {topic} concept {i}",
                f"Incorrect option A for {topic}",
                f"Incorrect option B for {topic}",
                f"Incorrect option C for {topic}",
            ],
            "correct": 0,
            "explanation": (
                f"This is correct because it represents a fundamental {difficulty} "
                f"level concept in {topic} that students need to master."
            ),
        }
        for i in range(1, count + 1)
    ]


def explanation(concept: str, level: str) -> str:
    return f"""# Understanding {concept} ({level})

## Overview
{concept} is an important idea in its domain. At {level} level, you need both theory and applications.

## Key Principles
- Definition and meaning
- Applications
- Importance
- Practical use

## Real-World Examples
- Simple applications
- Advanced use
- Industry cases
- Problem solving

## Misconceptions
- It's not only theory
- Practical relevance matters
- Builds on basics
- Requires practice

## Next Steps
- Do exercises
- Explore related ideas
- Apply in projects
- Review regularly"""


def topic_content(topic_title: str, subject: str, level: str) -> Dict[str, Any]:
    return {
        "overview": (
            f"Learn about {topic_title} in this comprehensive study session. This topic is "
            f"essential for understanding {subject} at the {level} level."
        ),
        "key_points": [
            f"Understanding {topic_title} fundamentals",
            "Key principles and concepts",
            "Practical applications and use cases",
            "Common challenges and solutions",
            f"Advanced techniques in {topic_title}",
        ],
        "examples": [
            f"Example 1: Basic {topic_title} demonstration with step-by-step explanation",
            f"Example 2: Real-world application of {topic_title} in practice",
            f"Example 3: Problem-solving scenario using {topic_title}",
            f"Example 4: Advanced {topic_title} implementation",
        ],
        "exercises": [
            f"Practice: Apply {topic_title} concepts to solve basic problems",
            f"Exercise: Implement {topic_title} in a practical scenario",
            f"Activity: Create your own examples using {topic_title}",
            f"Challenge: Solve advanced problems with {topic_title}",
        ],
        "resources": [
            {
                "type": "article",
                "title": f"{topic_title} Comprehensive Guide",
                "description": f"In-depth article covering all aspects of {topic_title}",
            },
            {
                "type": "practice",
                "title": f"{topic_title} Practice Exercises",
                "description": f"Interactive exercises to master {topic_title}",
            },
        ],
    }


def flashcards(topic: str, count: int) -> List[Dict[str, str]]:
    prompts = [
        ("Define the core idea of {t}.", "The core idea of {t} is its fundamental definition and scope."),
        ("Name a key principle of {t}.", "A key principle of {t} underlies how it is applied in practice."),
        ("Give a real-world use of {t}.", "{t} is applied in professional and everyday problem solving."),
        ("What is a common misconception about {t}?", "That {t} is only theory; it has practical relevance."),
    ]
    cards = []
    for i in range(count):
        front, back = prompts[i % len(prompts)]
        n = i // len(prompts) + 1
        suffix = f" ({n})" if n > 1 else ""
        cards.append({"front": front.format(t=topic) + suffix, "back": back.format(t=topic)})
    return cards


def conversation_reply(message: str) -> str:
    return (
        "I could not reach the AI tutor right now, but here is a structured way to approach "
        f"your question about \"{message[:80]}\":\n\n"
        "- Focus on understanding fundamental concepts\n"
        "- Apply learning practically\n"
        "- Practice and review consistently\n"
        "- Break down complex topics into smaller parts"
    )


def syllabus_plan(subject: str, level: str, duration: str, learning_style: str) -> str:
    return f"""# Study Plan for {subject or 'Your Course'}

## Course Details
- **Level**: {level}
- **Duration**: {duration}
- **Learning Style**: {learning_style}

## Weekly Breakdown

### Week 1-2: Foundation
- Review basic concepts and terminology
- Set up study environment and materials
- Complete introductory exercises

### Week 3-4: Core Concepts
- Deep dive into main topics
- Practice problems and examples
- Review and reinforce learning

### Week 5-6: Advanced Topics
- Explore complex concepts
- Work on challenging problems
- Apply knowledge to real scenarios

### Week 7-8: Review and Assessment
- Comprehensive review of all topics
- Practice tests and assessments
- Final project or presentation

## Study Schedule
- **Daily**: 1-2 hours of focused study
- **Weekly**: Review and practice sessions
- **Monthly**: Progress assessment and adjustment

## Milestones
- Week 2: Complete foundation review
- Week 4: Master core concepts
- Week 6: Apply advanced topics
- Week 8: Final assessment ready

This study plan has been generated based on your preferences and can be customized as needed."""


def generic_response() -> str:
    return """Based on your request, here's a structured fallback response:

- Focus on understanding fundamental concepts
- Apply learning practically
- Practice and review consistently
- Break down complex topics into smaller parts"""


def structured_fallback(prompt: str) -> str:
    """Pick a template from the wording of a free-form prompt."""
    lowered = prompt.lower()
    if "study plan" in lowered:
        return syllabus_plan("", "", "", "")
    if "quiz" in lowered:
        return "Quiz generation is unavailable; review the key concepts of this topic and try again."
    if "explain" in lowered or "concept" in lowered:
        return explanation("this concept", "intermediate")
    return generic_response()


# ----------------- Syllabus helpers -----------------

_TOPIC_LINE = re.compile(r"^(\d+\.|[-*•])")
_TOPIC_WORDS = ("Chapter", "Unit", "Module", "Topic")


def extract_topics_from_syllabus(text: str, subject: str) -> List[str]:
    topics = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if _TOPIC_LINE.match(stripped) or any(word in stripped for word in _TOPIC_WORDS):
            topic = _TOPIC_LINE.sub("", stripped).strip()
            if 3 < len(topic) < 100:
                topics.append(topic)

    if not topics:
        topics = [
            f"Introduction to {subject}",
            f"{subject} Fundamentals",
            f"Core {subject} Concepts",
            f"Practical {subject} Applications",
            f"Advanced {subject} Topics",
            f"{subject} Best Practices",
            "Review and Assessment",
        ]
    return topics


def syllabus_days(topics: List[str], subject: str, days: int) -> List[Dict[str, Any]]:
    per_day = max(1, -(-len(topics) // days))
    plan = []
    for day in range(1, days + 1):
        day_topics = topics[(day - 1) * per_day: day * per_day]
        main_topic = day_topics[0] if day_topics else f"{subject} Concepts"
        plan.append({
            "day": day,
            "title": f"Day {day}: {main_topic}",
            "objectives": [
                f"Understand {main_topic} fundamentals",
                "Learn key principles and concepts",
                "Apply knowledge through practical exercises",
                "Prepare for advanced topics",
            ],
            "content": {
                "overview": (
                    f"Today's session focuses on {main_topic}. This is a crucial topic in {subject} "
                    "that will provide you with essential knowledge and skills."
                ),
                "key_points": [
                    f"Core definition and scope of {main_topic}",
                    f"Key principles underlying {main_topic}",
                    "Common applications and use cases",
                    "Best practices and methodologies",
                    f"Integration with other {subject} concepts",
                ],
                "examples": [
                    f"Real-world application of {main_topic} in professional settings",
                    f"Step-by-step demonstration of {main_topic} implementation",
                ],
                "exercises": [
                    f"Practice: Apply {main_topic} concepts to solve basic problems",
                    f"Challenge: Create your own {main_topic} solution",
                ],
            },
            "resources": [
                {
                    "type": "article",
                    "title": f"{main_topic} Comprehensive Guide",
                    "description": f"In-depth coverage of {main_topic} concepts and applications",
                },
                {
                    "type": "practice",
                    "title": f"{main_topic} Practice Exercises",
                    "description": f"Hands-on exercises to master {main_topic}",
                },
            ],
            "total_time": 90,
        })
    return plan
