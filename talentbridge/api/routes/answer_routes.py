"""
Screening Answer Routes

POST /answers - Submit a text answer (JSON)
POST /answers/voice - Submit a voice answer (multipart audio)
GET  /answers?application_id= - List answers of an application
GET  /audio/{key} - Stream a stored voice answer

Resubmitting for the same question replaces the previous answer.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Response, UploadFile, File, Form
from sqlalchemy import text

from talentbridge.db.postgres import get_db_session, execute_raw_sql, fetch_one
from talentbridge.core.auth import get_current_user, get_optional_user, require_org_member
from talentbridge.services import application_service
from talentbridge.services.mongo_service import get_audio_store
from talentbridge.utils.file_upload import read_audio_upload
from talentbridge.schemas.schemas import TextAnswerCreate, AnswerResponse

router = APIRouter(tags=["Answers"])
logger = logging.getLogger(__name__)

ANSWER_COLUMNS = "id, application_id, question_id, audio_key, duration_sec, text_answer, created_at"


def load_question(question_id: int) -> dict:
    question = fetch_one(
        "SELECT id, job_id, kind, max_sec, max_chars FROM job_questions WHERE id = :id",
        {"id": question_id}
    )
    if not question:
        raise HTTPException(status_code=404, detail="Question not found")
    return question


def answerable_application(application_id: int, user: Optional[dict]) -> dict:
    """
    The applicant answers their own application. Email-only applications
    (no user attached) accept answers from the submitting session.
    """
    application = application_service.get_application(application_id)
    if application["applicant_user_id"] is None:
        return application
    if not user or application["applicant_user_id"] != user["user_id"]:
        raise HTTPException(status_code=403, detail="Not your application")
    return application


def save_answer(application_id: int, question_id: int, **values) -> dict:
    """Insert an answer, replacing any earlier one (and its audio) for the same question."""
    previous = fetch_one(
        "SELECT id, audio_key FROM answers WHERE application_id = :app_id AND question_id = :q_id",
        {"app_id": application_id, "q_id": question_id}
    )
    with get_db_session() as db:
        if previous:
            db.execute(text("DELETE FROM answers WHERE id = :id"), {"id": previous["id"]})
        result = db.execute(
            text(f"""
                INSERT INTO answers (application_id, question_id, audio_key, duration_sec, text_answer)
                VALUES (:app_id, :q_id, :audio_key, :duration_sec, :text_answer)
                RETURNING {ANSWER_COLUMNS}
            """),
            {
                "app_id": application_id, "q_id": question_id,
                "audio_key": values.get("audio_key"), "duration_sec": values.get("duration_sec"),
                "text_answer": values.get("text_answer"),
            }
        )
        row = dict(result.fetchone()._mapping)

    if previous and previous["audio_key"]:
        get_audio_store().delete(previous["audio_key"])
    return row


@router.post("/answers", response_model=AnswerResponse, status_code=201)
async def submit_text_answer(answer: TextAnswerCreate, user: Optional[dict] = Depends(get_optional_user)):
    application = answerable_application(answer.application_id, user)
    question = load_question(answer.question_id)
    application_service.validate_answer(question, application, "text", text_answer=answer.text_answer)

    row = save_answer(
        answer.application_id, answer.question_id,
        text_answer=answer.text_answer, duration_sec=answer.duration_sec,
    )
    return AnswerResponse(**row)


@router.post("/answers/voice", response_model=AnswerResponse, status_code=201)
async def submit_voice_answer(
    application_id: int = Form(...),
    question_id: int = Form(...),
    duration_sec: int = Form(..., ge=0),
    audio: UploadFile = File(..., description="Recorded answer (audio/*)"),
    user: Optional[dict] = Depends(get_optional_user)
):
    application = answerable_application(application_id, user)
    question = load_question(question_id)
    application_service.validate_answer(question, application, "voice", duration_sec=duration_sec)

    data, filename, content_type = await read_audio_upload(audio)
    store = get_audio_store()
    audio_key = store.put(
        data, filename, content_type, application_id=application_id, question_id=question_id
    )

    try:
        row = save_answer(application_id, question_id, audio_key=audio_key, duration_sec=duration_sec)
    except Exception:
        # No answer row points at the upload
        logger.warning("voice_answer_failed application_id=%s question_id=%s audio_key=%s",
                       application_id, question_id, audio_key)
        store.delete(audio_key)
        raise
    logger.info("voice_answer_saved application_id=%s question_id=%s bytes=%s",
                application_id, question_id, len(data))
    return AnswerResponse(**row)


@router.get("/answers", response_model=List[AnswerResponse])
async def list_answers(application_id: int = Query(...), user: dict = Depends(get_current_user)):
    application = application_service.get_application(application_id)
    if not application_service.can_view_application(application, user):
        require_org_member(application["org_id"], user)

    rows = execute_raw_sql("""
        SELECT an.id, an.application_id, an.question_id, an.audio_key, an.duration_sec,
               an.text_answer, an.created_at
        FROM answers an JOIN job_questions q ON q.id = an.question_id
        WHERE an.application_id = :id
        ORDER BY q.order_index NULLS LAST, an.id
    """, {"id": application_id})
    return [AnswerResponse(**r) for r in rows]


@router.get("/audio/{key}")
async def get_audio(key: str, user: dict = Depends(get_current_user)):
    """Stream a voice answer to its applicant or the hiring organization."""
    answer = fetch_one("SELECT application_id FROM answers WHERE audio_key = :key", {"key": key})
    if not answer:
        raise HTTPException(status_code=404, detail="Audio not found")

    application = application_service.get_application(answer["application_id"])
    if not application_service.can_view_application(application, user):
        require_org_member(application["org_id"], user)

    stored = get_audio_store().get(key)
    if stored is None:
        raise HTTPException(status_code=404, detail="Audio not found")

    data, filename, content_type = stored
    return Response(
        content=data,
        media_type=content_type,
        headers={"Content-Disposition": f'inline; filename="{filename}"'}
    )
