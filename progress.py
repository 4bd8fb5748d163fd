"""
Study session tracking.

A StudyProgress document exists per (user, plan, topic). Each visit appends a
session to it; the session is addressed as "<progress id>-<index>". A session
is open until it is ended, and only open sessions accept section updates.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from fastapi import HTTPException

from database import (
    create_document,
    get_document,
    get_document_by_id,
    get_documents,
    replace_document,
    to_object_id,
    update_document,
)
from plans import find_day, find_topic, recompute_progress
from schemas import SectionCompletion, StudyProgress, StudySession

logger = logging.getLogger(__name__)

PROGRESS = "studyprogress"
PLANS = "studyplan"
USERS = "user"


def format_session_id(progress_id: Any, index: int) -> str:
    return f"{progress_id}-{index}"


def parse_session_id(session_id: str) -> Tuple[Any, int]:
    progress_id, sep, index = (session_id or "").rpartition("-")
    oid = to_object_id(progress_id) if sep else None
    if oid is None or not (index.isascii() and index.isdecimal()):
        raise HTTPException(status_code=400, detail="Invalid session id")
    return oid, int(index)


def next_streak(streak: int, last_study_date: Optional[datetime], now: datetime) -> int:
    if last_study_date is None:
        return 1
    gap = (now.date() - last_study_date.date()).days
    if gap <= 0:
        return max(streak, 1)
    if gap == 1:
        return streak + 1
    return 1


def _load_session(user_id: str, session_id: str) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    oid, index = parse_session_id(session_id)
    progress = get_document(PROGRESS, {"_id": oid, "user_id": user_id})
    if not progress:
        raise HTTPException(status_code=404, detail="Progress record not found")
    sessions = progress.get("sessions", [])
    if index >= len(sessions):
        raise HTTPException(status_code=404, detail="Study session not found")
    return progress, sessions[index]


def start_session(user_id: str, study_plan_id: str, topic_id: str) -> str:
    if not get_document_by_id(PLANS, study_plan_id, {"user_id": user_id}):
        raise HTTPException(status_code=404, detail="Study plan not found")

    filter_dict = {"user_id": user_id, "study_plan_id": study_plan_id, "topic_id": topic_id}
    progress = get_document(PROGRESS, filter_dict)
    if progress is None:
        progress_id = create_document(PROGRESS, StudyProgress(**filter_dict))
        progress = get_document_by_id(PROGRESS, progress_id)

    session = StudySession().model_dump()
    progress = update_document(
        PROGRESS,
        {"_id": progress["_id"]},
        {"$push": {"sessions": session}, "$set": {"last_session_at": session["started_at"]}},
    )
    index = len(progress["sessions"]) - 1
    logger.info("Study session %s started for user %s", index, user_id)
    return format_session_id(progress["_id"], index)


def track_section(user_id: str, session_id: str, section_name: str, time_spent: int = 0) -> Dict[str, Any]:
    progress, session = _load_session(user_id, session_id)
    if session.get("ended_at") is not None:
        raise HTTPException(status_code=400, detail="Study session already ended")

    sections = session.setdefault("sections_completed", [])
    existing = next((s for s in sections if s["name"] == section_name), None)
    if existing:
        existing["time_spent"] = existing.get("time_spent", 0) + time_spent
    else:
        sections.append(SectionCompletion(name=section_name, time_spent=time_spent).model_dump())

    replace_document(PROGRESS, progress)
    return session


def _apply_to_plan(progress: Dict[str, Any], minutes: int, completed: bool, now: datetime) -> bool:
    """Roll a finished session into its plan. Returns True if a topic became completed."""
    plan = get_document_by_id(PLANS, progress["study_plan_id"], {"user_id": progress["user_id"]})
    if not plan:
        return False

    newly_completed = False
    plan_progress = plan.setdefault("progress", {})
    plan_progress["time_spent"] = plan_progress.get("time_spent", 0) + minutes
    plan_progress["last_studied"] = now

    topic = find_topic(plan, progress["topic_id"])
    if topic is not None and completed and topic.get("status") != "completed":
        topic["status"] = "completed"
        topic["completed_at"] = now
        newly_completed = True

    day = find_day(plan, progress["topic_id"])
    if day is not None:
        day["time_spent"] = day.get("time_spent", 0) + minutes
        day["status"] = "completed" if completed else "in_progress"

    replace_document(PLANS, recompute_progress(plan))
    return newly_completed


def end_session(
    user_id: str, session_id: str, completed: bool = False, study_time: Optional[int] = None
) -> Dict[str, Any]:
    progress, session = _load_session(user_id, session_id)
    if session.get("ended_at") is not None:
        raise HTTPException(status_code=400, detail="Study session already ended")

    now = datetime.utcnow()
    if study_time is None:
        minutes = max(0, round((now - session["started_at"]).total_seconds() / 60))
    else:
        minutes = study_time

    session["ended_at"] = now
    session["duration"] = minutes
    session["completed"] = completed
    progress["total_time"] = progress.get("total_time", 0) + minutes
    progress["last_session_at"] = now
    if completed:
        progress["status"] = "completed"
    replace_document(PROGRESS, progress)

    topic_completed = _apply_to_plan(progress, minutes, completed, now)

    user = get_document_by_id(USERS, user_id)
    if user:
        stats = user.get("stats", {})
        update_document(USERS, {"_id": user["_id"]}, {
            "stats.total_study_time": stats.get("total_study_time", 0) + minutes,
            "stats.topics_completed": stats.get("topics_completed", 0) + (1 if topic_completed else 0),
            "stats.streak": next_streak(stats.get("streak", 0), stats.get("last_study_date"), now),
            "stats.last_study_date": now,
        })

    logger.info("Study session %s ended after %s min (completed=%s)", session_id, minutes, completed)
    return session


def user_stats(user_id: str) -> Dict[str, Any]:
    records = get_documents(PROGRESS, {"user_id": user_id})
    sessions = [s for r in records for s in r.get("sessions", [])]
    user = get_document_by_id(USERS, user_id) or {}
    stats = user.get("stats", {})

    return {
        "total_study_time": sum(r.get("total_time", 0) for r in records),
        "total_sessions": len(sessions),
        "completed_sessions": sum(1 for s in sessions if s.get("completed")),
        "active_sessions": sum(1 for s in sessions if s.get("ended_at") is None),
        "topics_studied": len(records),
        "topics_completed": sum(1 for r in records if r.get("status") == "completed"),
        "sections_completed": sum(len(s.get("sections_completed", [])) for s in sessions),
        "streak": stats.get("streak", 0),
        "last_study_date": stats.get("last_study_date"),
        "quizzes_completed": stats.get("quizzes_completed", 0),
        "average_score": stats.get("average_score", 0),
    }
