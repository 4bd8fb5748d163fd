"""Study plan construction and bookkeeping shared by the study and upload routes."""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from schemas import DailyContent, DayContent, Resource, Topic

RESOURCE_TYPES = {"video", "article", "book", "practice", "quiz"}

SYLLABUS_TOPICS = [
    ("Course Introduction", "Overview and getting started with the course materials", 90, "easy"),
    ("Foundation Concepts", "Core principles and fundamental concepts", 120, "easy"),
    ("Practical Applications", "Hands-on exercises and real-world examples", 150, "medium"),
    ("Advanced Topics", "Complex concepts and advanced techniques", 180, "hard"),
    ("Final Assessment", "Review, practice tests, and final evaluation", 120, "medium"),
]


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item not in (None, "")]


def _resources(value: Any) -> List[Resource]:
    resources = []
    if not isinstance(value, list):
        return resources
    for item in value:
        if not isinstance(item, dict):
            continue
        kind = item.get("type") if item.get("type") in RESOURCE_TYPES else "article"
        resources.append(Resource(
            type=kind,
            title=str(item.get("title") or ""),
            url=str(item["url"]) if item.get("url") else None,
            description=str(item["description"]) if item.get("description") else None,
        ))
    return resources


def build_day_content(raw: Dict[str, Any]) -> DayContent:
    return DayContent(
        overview=str(raw.get("overview") or ""),
        key_points=_str_list(raw.get("key_points", raw.get("keyPoints"))),
        examples=_str_list(raw.get("examples")),
        exercises=_str_list(raw.get("exercises")),
    )


def build_daily_content(days: List[Dict[str, Any]], subject: str, start: datetime) -> List[DailyContent]:
    """Normalize generated day items (nested `content` or flat) into DailyContent entries."""
    entries = []
    for index, item in enumerate(days):
        day = _as_int(item.get("day")) or index + 1
        raw = item["content"] if isinstance(item.get("content"), dict) else item
        entries.append(DailyContent(
            day=day,
            date=start + timedelta(days=day - 1),
            title=str(item.get("title") or f"Day {day}: {subject}"),
            objectives=_str_list(item.get("objectives")),
            content=build_day_content(raw),
            resources=_resources(item.get("resources", raw.get("resources"))),
            homework=str(item.get("homework") or ""),
            total_time=_as_int(item.get("total_time", item.get("totalTime"))) or 90,
        ))
    return entries


def syllabus_topics() -> List[Topic]:
    return [
        Topic(title=title, description=description, order=order, estimated_time=minutes, difficulty=difficulty)
        for order, (title, description, minutes, difficulty) in enumerate(SYLLABUS_TOPICS, start=1)
    ]


def recompute_progress(plan: Dict[str, Any]) -> Dict[str, Any]:
    topics = plan.get("topics", [])
    completed = sum(1 for t in topics if t.get("status") == "completed")
    total = len(topics)
    progress = plan.setdefault("progress", {})
    progress["completed_topics"] = completed
    progress["total_topics"] = total
    progress["percentage"] = round(completed / total * 100) if total else 0
    return plan


def find_topic(plan: Dict[str, Any], topic_id: str) -> Optional[Dict[str, Any]]:
    return next((t for t in plan.get("topics", []) if t.get("id") == topic_id), None)


def find_day(plan: Dict[str, Any], day: str) -> Optional[Dict[str, Any]]:
    return next((d for d in plan.get("daily_content", []) if str(d.get("day")) == str(day)), None)


def next_topic(plan: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    pending = [t for t in plan.get("topics", []) if t.get("status") == "not_started"]
    return min(pending, key=lambda t: t.get("order", 0)) if pending else None


def topic_as_day(topic: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "day": topic.get("order", 1),
        "title": topic["title"],
        "objectives": [f"Learn {topic['title']}", "Master key concepts"],
        "content": {
            "overview": topic.get("description") or f"Study session for {topic['title']}",
            "key_points": [f"Key concept 1 for {topic['title']}", "Important principle", "Practical application"],
            "examples": ["Example 1: Basic demonstration", "Example 2: Real-world application"],
            "exercises": ["Practice exercise 1", "Practice exercise 2"],
        },
        "resources": topic.get("resources") or [],
        "total_time": topic.get("estimated_time") or 90,
    }
