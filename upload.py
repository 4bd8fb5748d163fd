import io
import logging
import os
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from ai_service import ai_service, parse_duration
from auth import get_current_user
from config import UPLOAD_ALLOWED_EXTENSIONS, UPLOAD_MAX_BYTES, UPLOAD_MAX_FILES
from database import create_document, get_document_by_id, serialize_document
from fallbacks import extract_topics_from_syllabus, syllabus_days
from plans import build_daily_content, recompute_progress, syllabus_topics
from schemas import PlanSchedule, StudyPlan

logger = logging.getLogger(__name__)

PLANS = "studyplan"
LEVELS = {"beginner", "intermediate", "advanced"}

router = APIRouter(prefix="/api/upload", tags=["upload"])


# ----------------- Utility functions -----------------

def extract_text_from_pdf(file_bytes: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(file_bytes))
        return "\n".join(page.extract_text() or "" for page in reader.pages)
    except (PyPdfError, ValueError, KeyError, TypeError) as e:
        # An unreadable PDF still yields a plan from the subject alone
        logger.warning("Could not read PDF: %s", e)
        return ""


def extract_text(filename: str, data: bytes) -> str:
    ext = os.path.splitext(filename)[1].lower()
    if ext == ".txt":
        return data.decode("utf-8", errors="replace")
    if ext == ".pdf":
        return extract_text_from_pdf(data)
    return f"Content from {filename}"


# ----------------- Endpoints -----------------

@router.post("/syllabus")
async def upload_syllabus(
    files: Optional[List[UploadFile]] = File(default=None),
    subject: Optional[str] = Form(default=None),
    level: str = Form(default="beginner"),
    duration: str = Form(default="30 days"),
    learning_style: str = Form(default="visual"),
    user: Dict[str, Any] = Depends(get_current_user),
):
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded")
    if len(files) > UPLOAD_MAX_FILES:
        raise HTTPException(status_code=400, detail=f"At most {UPLOAD_MAX_FILES} files can be uploaded")
    if level not in LEVELS:
        raise HTTPException(status_code=400, detail="Level must be beginner, intermediate or advanced")

    texts = []
    for upload in files:
        filename = upload.filename or ""
        if os.path.splitext(filename)[1].lower() not in UPLOAD_ALLOWED_EXTENSIONS:
            raise HTTPException(
                status_code=400, detail="Invalid file type. Only PDF, DOC, DOCX, and TXT files are allowed."
            )
        data = await upload.read()
        if len(data) > UPLOAD_MAX_BYTES:
            raise HTTPException(status_code=400, detail=f"{filename} exceeds the upload size limit")
        texts.append(extract_text(filename, data))

    subject = (subject or "").strip() or "Uploaded Course"
    syllabus = "\n\n".join(texts)
    logger.info("Syllabus upload: %s file(s) for %s", len(files), subject)

    summary = ai_service.generate_syllabus_plan(syllabus, subject, level, duration, learning_style)

    days = parse_duration(duration)
    start = datetime.utcnow()
    topics = extract_topics_from_syllabus(syllabus, subject)
    plan = StudyPlan(
        user_id=user["id"],
        title=f"{subject} Study Plan"[:100],
        subject=subject,
        difficulty=level,
        estimated_duration=days,
        topics=syllabus_topics(),
        daily_content=build_daily_content(syllabus_days(topics, subject, days), subject, start),
        schedule=PlanSchedule(start_date=start, end_date=start + timedelta(days=days)),
        ai_generated=not summary.fallback,
        ai_prompt=f"Subject: {subject}, Level: {level}, Duration: {duration}, Style: {learning_style}"[:1000],
        ai_summary=summary.data,
        generation_source=summary.source,
        status="active",
    )
    plan_id = create_document(PLANS, recompute_progress(plan.model_dump()))

    return {
        "success": True,
        "message": "Study plan generated successfully",
        "study_plan": serialize_document(get_document_by_id(PLANS, plan_id)),
        "ai_summary": summary.data,
    }
