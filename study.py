import logging
import random
import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

import progress
from ai_service import ai_service, parse_duration
from auth import get_current_user
from database import (
    count_documents,
    create_document,
    delete_document,
    get_document,
    get_document_by_id,
    get_documents,
    replace_document,
    serialize_document,
    to_object_id,
    update_document,
)
from plans import (
    build_daily_content,
    build_day_content,
    find_day,
    find_topic,
    next_topic,
    recompute_progress,
    topic_as_day,
)
from schemas import Difficulty, PlanSchedule, Quiz, QuizAttempt, QuestionResult, StudyPlan, Topic, TopicStatus

logger = logging.getLogger(__name__)

PLANS = "studyplan"
QUIZZES = "quiz"
ATTEMPTS = "quizattempt"
USERS = "user"

ACCESS_CODE_CHARS = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ACCESS_CODE_LENGTH = 6
PLAN_UPDATE_FIELDS = {"title", "description", "status", "tags", "is_public"}

router = APIRouter(prefix="/api/study", tags=["study"])


def _owned_plan(plan_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    plan = get_document_by_id(PLANS, plan_id, {"user_id": user["id"]})
    if not plan:
        raise HTTPException(status_code=404, detail="Study plan not found")
    return plan


def generate_access_code() -> str:
    while True:
        code = "".join(random.choice(ACCESS_CODE_CHARS) for _ in range(ACCESS_CODE_LENGTH))
        if not get_document(QUIZZES, {"access_code": code}):
            return code


def running_average(average: float, count: int, value: float) -> float:
    """Average after adding `value` to `count` earlier samples."""
    return round((average * count + value) / (count + 1), 2)


# ----------------- Study plans -----------------

class PlanReq(BaseModel):
    subject: str = Field(..., min_length=1, max_length=80)
    level: Difficulty = "beginner"
    duration: str = "30 days"
    learning_style: str = "visual"
    goals: List[str] = Field(default_factory=list)


class PlanUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    status: Optional[Literal["draft", "active", "completed", "paused", "archived"]] = None
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None


class TopicStatusReq(BaseModel):
    status: TopicStatus


@router.post("/plans", status_code=201)
def create_plan(req: PlanReq, user: Dict[str, Any] = Depends(get_current_user)):
    logger.info("Creating study plan for %s (%s)", req.subject, req.duration)
    days = parse_duration(req.duration)
    start = datetime.utcnow()

    generated = ai_service.generate_detailed_study_plan(req.subject, req.level, req.duration, req.learning_style)

    plan = StudyPlan(
        user_id=user["id"],
        title=f"{req.subject} - {req.duration} Study Plan"[:100],
        subject=req.subject,
        difficulty=req.level,
        estimated_duration=days,
        topics=[Topic(title="Getting Started", description="Introduction and overview",
                      order=1, estimated_time=60, difficulty="easy")],
        daily_content=build_daily_content(generated.data, req.subject, start),
        schedule=PlanSchedule(start_date=start, end_date=start + timedelta(days=days)),
        ai_generated=not generated.fallback,
        ai_prompt=(f"Subject: {req.subject}, Level: {req.level}, Duration: {req.duration}, "
                   f"Style: {req.learning_style}")[:1000],
        generation_source=generated.source,
        tags=req.goals,
        status="active",
    )
    doc = recompute_progress(plan.model_dump())
    plan_id = create_document(PLANS, doc)

    return {
        "success": True,
        "message": "Study plan created successfully",
        "study_plan": serialize_document(get_document_by_id(PLANS, plan_id)),
    }


@router.get("/plans")
def list_plans(user: Dict[str, Any] = Depends(get_current_user)):
    plans = get_documents(PLANS, {"user_id": user["id"]}, sort=[("created_at", -1)])
    return {"success": True, "study_plans": serialize_document(plans)}


@router.get("/plans/{plan_id}")
def get_plan(plan_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "study_plan": serialize_document(_owned_plan(plan_id, user))}


@router.put("/plans/{plan_id}")
def update_plan(plan_id: str, req: PlanUpdate, user: Dict[str, Any] = Depends(get_current_user)):
    updates = {k: v for k, v in req.model_dump(exclude_none=True).items() if k in PLAN_UPDATE_FIELDS}
    if not updates:
        raise HTTPException(status_code=400, detail="No plan fields to update")
    oid = to_object_id(plan_id)
    plan = update_document(PLANS, {"_id": oid, "user_id": user["id"]}, updates) if oid else None
    if not plan:
        raise HTTPException(status_code=404, detail="Study plan not found")
    return {"success": True, "message": "Study plan updated successfully", "study_plan": serialize_document(plan)}


@router.delete("/plans/{plan_id}")
def delete_plan(plan_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    plan = _owned_plan(plan_id, user)
    delete_document(PLANS, {"_id": plan["_id"]})
    logger.info("Study plan %s deleted by %s", plan_id, user["id"])
    return {"success": True, "message": "Study plan deleted successfully"}


@router.put("/plans/{plan_id}/topics/{topic_id}")
def update_topic_status(
    plan_id: str, topic_id: str, req: TopicStatusReq, user: Dict[str, Any] = Depends(get_current_user)
):
    plan = _owned_plan(plan_id, user)
    topic = find_topic(plan, topic_id)
    if topic is None:
        raise HTTPException(status_code=404, detail="Topic not found")

    topic["status"] = req.status
    if req.status == "completed":
        topic["completed_at"] = datetime.utcnow()

    plan = replace_document(PLANS, recompute_progress(plan))
    return {"success": True, "message": "Topic status updated successfully", "study_plan": serialize_document(plan)}


@router.get("/plans/{plan_id}/topics/{topic_id}/content")
def get_topic_content(plan_id: str, topic_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    plan = _owned_plan(plan_id, user)

    day = find_day(plan, topic_id)
    if day is not None:
        return {"success": True, "content": serialize_document(day)}

    topic = find_topic(plan, topic_id)
    if topic is None:
        raise HTTPException(status_code=404, detail="Content not found")

    start = plan["schedule"]["start_date"]
    entry = build_daily_content([topic_as_day(topic)], plan["subject"], start)[0]
    return {"success": True, "content": entry.model_dump()}


@router.post("/plans/{plan_id}/topics/{topic_id}/generate")
def generate_topic_content(plan_id: str, topic_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    plan = _owned_plan(plan_id, user)

    day = find_day(plan, topic_id)
    topic = find_topic(plan, topic_id)
    if day is not None:
        title, number = day["title"], day["day"]
        previous = [d["title"] for d in plan.get("daily_content", []) if d["day"] < number]
    elif topic is not None:
        title, number = topic["title"], topic.get("order", 1)
        previous = [t["title"] for t in plan.get("topics", []) if t.get("order", 0) < number]
    else:
        raise HTTPException(status_code=404, detail="Content not found")

    generated = ai_service.generate_daily_content(title, number, plan["difficulty"], previous, plan["subject"])
    content = build_day_content(generated.data).model_dump()

    if day is not None:
        day["content"] = content
        replace_document(PLANS, plan)

    return {
        "success": True,
        "content": content,
        "resources": generated.data.get("resources", []),
        "source": generated.source,
        "fallback": generated.fallback,
    }


@router.get("/plans/{plan_id}/next-topic")
def get_next_topic(plan_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    plan = _owned_plan(plan_id, user)
    return {"success": True, "topic": next_topic(plan)}


# ----------------- Quizzes -----------------

class QuizReq(BaseModel):
    topic: str = Field(..., min_length=1, max_length=80)
    difficulty: str = "intermediate"
    question_count: int = Field(default=10, ge=1, le=50)
    is_public: bool = True
    subject: Optional[str] = None
    study_plan_id: Optional[str] = None


class ManualQuizReq(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    topic: str = Field(..., min_length=1)
    difficulty: str = Field(..., min_length=1)
    questions: List[Any]
    is_public: bool = True
    description: Optional[str] = None
    subject: Optional[str] = None


class JoinQuizReq(BaseModel):
    access_code: Optional[str] = None


class AttemptReq(BaseModel):
    quiz_id: str
    answers: List[Optional[int]]


def valid_question(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    options = item.get("options")
    correct = item.get("correct")
    return (
        isinstance(item.get("question"), str) and bool(item["question"].strip())
        and isinstance(options, list) and len(options) >= 2
        and isinstance(correct, int) and not isinstance(correct, bool)
        and 0 <= correct < len(options)
        and isinstance(item.get("explanation"), str) and bool(item["explanation"].strip())
    )


def _save_quiz(quiz: Quiz) -> Dict[str, Any]:
    quiz_id = create_document(QUIZZES, quiz)
    logger.info("Quiz created: %s", quiz_id)
    return serialize_document(get_document_by_id(QUIZZES, quiz_id))


@router.post("/quizzes", status_code=201)
def create_quiz(req: QuizReq, user: Dict[str, Any] = Depends(get_current_user)):
    logger.info("Creating quiz: %s, %s, %s questions", req.topic, req.difficulty, req.question_count)
    generated = ai_service.generate_quiz_questions(req.topic, req.difficulty, req.question_count)

    quiz = Quiz(
        title=f"{req.topic} - {req.difficulty} Quiz"[:100],
        subject=req.subject,
        topic=req.topic,
        difficulty=req.difficulty,
        questions=generated.data,
        is_public=req.is_public,
        access_code=None if req.is_public else generate_access_code(),
        creator_id=user["id"],
        ai_generated=not generated.fallback,
        generation_source=generated.source,
        study_plan_id=req.study_plan_id,
    )
    return {"success": True, "message": "Quiz created successfully", "quiz": _save_quiz(quiz)}


@router.post("/quizzes/manual", status_code=201)
def create_manual_quiz(req: ManualQuizReq, user: Dict[str, Any] = Depends(get_current_user)):
    if not req.questions or not all(valid_question(q) for q in req.questions):
        raise HTTPException(status_code=400, detail="Invalid question format")

    quiz = Quiz(
        title=req.title,
        description=req.description,
        subject=req.subject,
        topic=req.topic,
        difficulty=req.difficulty,
        questions=req.questions,
        is_public=req.is_public,
        access_code=None if req.is_public else generate_access_code(),
        creator_id=user["id"],
    )
    return {"success": True, "message": "Manual quiz created successfully", "quiz": _save_quiz(quiz)}


@router.post("/quizzes/join")
def join_quiz(req: JoinQuizReq, user: Dict[str, Any] = Depends(get_current_user)):
    code = (req.access_code or "").strip().upper()
    if not code:
        raise HTTPException(status_code=400, detail="Access code is required")

    quiz = get_document(QUIZZES, {"access_code": code})
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found with the provided access code")

    if user["id"] not in quiz.get("participants", []):
        quiz = update_document(QUIZZES, {"_id": quiz["_id"]}, {"$addToSet": {"participants": user["id"]}})
    return {"success": True, "message": "Successfully joined the quiz", "quiz": serialize_document(quiz)}


@router.get("/quizzes")
def list_quizzes(
    topic: Optional[str] = None,
    difficulty: Optional[str] = None,
    user: Dict[str, Any] = Depends(get_current_user),
):
    filter_dict: Dict[str, Any] = {"is_public": True}
    if topic:
        filter_dict["topic"] = {"$regex": re.escape(topic), "$options": "i"}
    if difficulty:
        filter_dict["difficulty"] = difficulty
    quizzes = get_documents(QUIZZES, filter_dict, sort=[("created_at", -1)])
    return {"success": True, "quizzes": serialize_document(quizzes)}


@router.get("/quizzes/{quiz_id}")
def get_quiz(quiz_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    quiz = get_document_by_id(QUIZZES, quiz_id)
    allowed = quiz and (
        quiz.get("is_public") or quiz.get("creator_id") == user["id"] or user["id"] in quiz.get("participants", [])
    )
    if not allowed:
        raise HTTPException(status_code=404, detail="Quiz not found")
    return {"success": True, "quiz": serialize_document(quiz)}


@router.post("/quiz-attempts")
def submit_attempt(req: AttemptReq, user: Dict[str, Any] = Depends(get_current_user)):
    quiz = get_document_by_id(QUIZZES, req.quiz_id)
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")

    questions = quiz.get("questions", [])
    results = []
    for index, question in enumerate(questions):
        answer = req.answers[index] if index < len(req.answers) else None
        results.append(QuestionResult(
            question_index=index,
            user_answer=answer,
            correct_answer=question["correct"],
            is_correct=answer == question["correct"],
        ))
    correct = sum(1 for r in results if r.is_correct)
    total = len(questions)
    score = round(correct / total * 100, 2) if total else 0

    quiz_id = str(quiz["_id"])
    attempt = QuizAttempt(
        user_id=user["id"],
        quiz_id=quiz_id,
        answers=req.answers,
        results=results,
        score=score,
        correct_answers=correct,
        total_questions=total,
        attempt_number=count_documents(ATTEMPTS, {"user_id": user["id"], "quiz_id": quiz_id}) + 1,
    )
    attempt_id = create_document(ATTEMPTS, attempt)

    quiz_stats = quiz.get("stats", {})
    attempts_so_far = quiz_stats.get("total_attempts", 0)
    update_document(QUIZZES, {"_id": quiz["_id"]}, {
        "stats.total_attempts": attempts_so_far + 1,
        "stats.average_score": running_average(quiz_stats.get("average_score", 0), attempts_so_far, score),
    })

    user_stats = user.get("stats", {})
    completed = user_stats.get("quizzes_completed", 0)
    update_document(USERS, {"_id": user["_id"]}, {
        "stats.quizzes_completed": completed + 1,
        "stats.average_score": running_average(user_stats.get("average_score", 0), completed, score),
    })

    logger.info("Quiz %s attempt %s scored %s", quiz_id, attempt.attempt_number, score)
    return {
        "success": True,
        "message": "Quiz submitted successfully",
        "attempt": serialize_document(get_document_by_id(ATTEMPTS, attempt_id)),
        "score": score,
        "correct_answers": correct,
        "total_questions": total,
    }


@router.get("/quiz-attempts")
def list_attempts(user: Dict[str, Any] = Depends(get_current_user)):
    attempts = serialize_document(get_documents(ATTEMPTS, {"user_id": user["id"]}, sort=[("completed_at", -1)]))
    for attempt in attempts:
        quiz = get_document_by_id(QUIZZES, attempt["quiz_id"])
        attempt["quiz"] = {
            "id": attempt["quiz_id"],
            "title": quiz.get("title"),
            "topic": quiz.get("topic"),
            "difficulty": quiz.get("difficulty"),
        } if quiz else None
    return {"success": True, "attempts": attempts}


# ----------------- AI helpers -----------------

class ExplainReq(BaseModel):
    concept: str = Field(..., min_length=1, max_length=200)
    level: str = "intermediate"


class FlashcardReq(BaseModel):
    topic: str = Field(..., min_length=1, max_length=200)
    count: int = Field(default=20, ge=1, le=50)


@router.post("/explain-concept")
def explain_concept(req: ExplainReq, user: Dict[str, Any] = Depends(get_current_user)):
    result = ai_service.explain_concept(req.concept, req.level)
    return {"success": True, "explanation": result.data, "source": result.source, "fallback": result.fallback}


@router.post("/generate-flashcards")
def generate_flashcards(req: FlashcardReq, user: Dict[str, Any] = Depends(get_current_user)):
    result = ai_service.generate_flashcards(req.topic, req.count)
    return {"success": True, "flashcards": result.data, "source": result.source, "fallback": result.fallback}


# ----------------- Progress -----------------

class StartSessionReq(BaseModel):
    study_plan_id: str
    topic_id: str


class SectionReq(BaseModel):
    session_id: str
    section_name: str = Field(..., min_length=1, max_length=100)
    time_spent: int = Field(default=0, ge=0)


class EndSessionReq(BaseModel):
    session_id: str
    completed: bool = False
    study_time: Optional[int] = Field(default=None, ge=0)


@router.post("/progress/start")
def start_session(req: StartSessionReq, user: Dict[str, Any] = Depends(get_current_user)):
    session_id = progress.start_session(user["id"], req.study_plan_id, req.topic_id)
    return {"success": True, "message": "Study session started", "session_id": session_id}


@router.post("/progress/section")
def track_section(req: SectionReq, user: Dict[str, Any] = Depends(get_current_user)):
    session = progress.track_section(user["id"], req.session_id, req.section_name, req.time_spent)
    return {"success": True, "message": "Section completion tracked", "session": session}


@router.post("/progress/end")
def end_session(req: EndSessionReq, user: Dict[str, Any] = Depends(get_current_user)):
    session = progress.end_session(user["id"], req.session_id, req.completed, req.study_time)
    return {"success": True, "message": "Study session ended", "session": session}


@router.get("/progress/stats")
def progress_stats(user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "stats": progress.user_stats(user["id"])}
