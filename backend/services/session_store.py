# backend/services/session_store.py
"""
Session Store

Persistence helpers shared by the agents:
- Owner-checked loading of sessions, resumes and questions
- Forward-only session status changes
- Question insertion that never duplicates text within a session
- Answer recording and agent audit logs
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from models import (
    SESSION_STATUSES,
    AgentLog,
    InterviewQuestion,
    InterviewSession,
    Resume,
    UserAnswer,
    utcnow,
)
from services.errors import AuthError, NotFoundError, StorageError

logger = logging.getLogger(__name__)


def require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise AuthError("User not authenticated")
    return user_id


# ============================================================================
# Ownership-checked loading
# ============================================================================

def load_owned_session(db: Session, user_id: str, session_id: str) -> InterviewSession:
    """
    Fetch a session only if it belongs to the caller. A missing session and
    somebody else's session look the same from outside.
    """
    session = db.get(InterviewSession, session_id) if session_id else None
    if session is None or session.profile_id != user_id:
        raise NotFoundError("Interview session not found or access denied")
    return session


def load_owned_resume(db: Session, user_id: str, resume_id: str) -> Resume:
    resume = db.get(Resume, resume_id) if resume_id else None
    if resume is None or resume.profile_id != user_id:
        raise NotFoundError("Resume not found or access denied")
    return resume


def load_session_question(db: Session, session_id: str, question_id: str) -> InterviewQuestion:
    question = db.get(InterviewQuestion, question_id)
    if question is None or question.session_id != session_id:
        raise NotFoundError("Interview question not found for this session")
    return question


def ordered_questions(db: Session, session_id: str) -> List[InterviewQuestion]:
    return list(db.exec(
        select(InterviewQuestion)
        .where(InterviewQuestion.session_id == session_id)
        .order_by(InterviewQuestion.question_order, InterviewQuestion.created_at)
    ).all())


def question_to_dict(question: InterviewQuestion) -> Dict[str, Any]:
    return {
        "id": question.id,
        "question_text": question.question_text,
        "question_type": question.question_type,
        "related_skill": question.related_skill,
        "difficulty": question.difficulty,
        "focus_area": question.focus_area,
        "question_order": question.question_order,
        "source": question.source,
    }


# ============================================================================
# Status
# ============================================================================

def advance_session_status(db: Session, session: InterviewSession, new_status: str) -> bool:
    """
    Move a session forward through planned -> in_progress -> completed.

    Requests that would keep or lower the current status are ignored.

    Returns:
        True if the status changed
    """
    if new_status not in SESSION_STATUSES:
        raise ValueError(f"Unknown session status: {new_status}")

    current_rank = SESSION_STATUSES.index(session.status) if session.status in SESSION_STATUSES else -1
    if SESSION_STATUSES.index(new_status) <= current_rank:
        if new_status != session.status:
            logger.info(
                f"Ignoring status change {session.status} -> {new_status} for session {session.id}"
            )
        return False

    previous = session.status
    session.status = new_status
    session.updated_at = utcnow()
    db.add(session)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Failed to update interview session: {e}")
    db.refresh(session)

    logger.info(f"Session {session.id} status {previous} -> {new_status}")
    return True


def remember_thread(db: Session, session: InterviewSession, thread_id: str) -> None:
    """Bind the interviewer's assistant thread to the session."""
    if session.thread_id == thread_id:
        return
    session.thread_id = thread_id
    session.updated_at = utcnow()
    db.add(session)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Failed to update interview session: {e}")
    db.refresh(session)


# ============================================================================
# Questions
# ============================================================================

def find_question_by_text(db: Session, session_id: str, question_text: str) -> Optional[InterviewQuestion]:
    return db.exec(
        select(InterviewQuestion)
        .where(InterviewQuestion.session_id == session_id)
        .where(InterviewQuestion.question_text == question_text)
    ).first()


def next_interviewer_order(db: Session, session_id: str, requested_order: int) -> int:
    """
    Keep interviewer-assigned orders strictly increasing even when the
    assistant reports a stale question index.
    """
    highest = db.exec(
        select(func.max(InterviewQuestion.question_order))
        .where(InterviewQuestion.session_id == session_id)
        .where(InterviewQuestion.source == "interviewer")
    ).one()
    if highest is not None and requested_order <= highest:
        return highest + 1
    return requested_order


def insert_question_if_absent(
    db: Session,
    session_id: str,
    question_data: Dict[str, Any],
    question_order: int,
    source: str,
) -> InterviewQuestion:
    """
    Store a question unless the session already has one with the exact
    same text, in which case the existing row is returned.

    The (session_id, question_text) unique constraint settles concurrent
    inserts: the loser rolls back and picks up the winner's row.
    """
    question_text = question_data["question_text"]

    existing = find_question_by_text(db, session_id, question_text)
    if existing is not None:
        logger.info(f"Question already in session {session_id}, reusing {existing.id}")
        return existing

    question = InterviewQuestion(
        session_id=session_id,
        question_text=question_text,
        question_type=question_data.get("question_type"),
        related_skill=question_data.get("related_skill"),
        difficulty=question_data.get("difficulty"),
        focus_area=question_data.get("focus_area"),
        question_order=question_order,
        source=source,
    )
    db.add(question)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = find_question_by_text(db, session_id, question_text)
        if existing is None:
            raise StorageError("Failed to save interview question")
        logger.info(f"Concurrent insert of the same question in session {session_id}, reusing {existing.id}")
        return existing
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Failed to save interview question: {e}")

    db.refresh(question)
    logger.info(f"Stored question #{question_order} ({source}) for session {session_id}")
    return question


# ============================================================================
# Answers and audit logs
# ============================================================================

def record_answer(
    db: Session,
    question_id: str,
    answer_text: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> UserAnswer:
    answer = UserAnswer(question_id=question_id, answer_text=answer_text, answer_metadata=metadata)
    db.add(answer)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError(f"Failed to save answer: {e}")
    db.refresh(answer)
    return answer


def record_agent_log(
    db: Session,
    agent_type: str,
    session_id: Optional[str],
    input_summary: Dict[str, Any],
    output_summary: Dict[str, Any],
    processing_time_ms: int,
) -> None:
    """Write one audit row. Failures are logged, never raised."""
    entry = AgentLog(
        agent_type=agent_type,
        session_id=session_id,
        input=input_summary,
        output=output_summary,
        processing_time=processing_time_ms,
    )
    db.add(entry)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to write {agent_type} agent log for session {session_id}: {e}")
