# backend/services/session_service.py
"""
Session Service

Owner-checked reads and writes around interview sessions that do not need
an assistant: strategy lookup, history, session detail, results, deletion
and stand-alone answer submission.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from models import InterviewQuestion, InterviewSession, JobPosting, UserAnswer
from services.errors import IzzyError, NotFoundError, StorageError, failure
from services.evaluator import quick_feedback
from services.session_store import (
    advance_session_status,
    load_owned_session,
    load_session_question,
    ordered_questions,
    question_to_dict,
    record_answer,
    require_user,
)

logger = logging.getLogger(__name__)


def _job_summary(job_posting: Optional[JobPosting]) -> Optional[Dict[str, Any]]:
    if job_posting is None:
        return None
    return {
        "id": job_posting.id,
        "title": job_posting.title,
        "company": job_posting.company,
        "description": job_posting.description,
        "parsed_requirements": job_posting.parsed_requirements,
    }


def _answer_to_dict(answer: UserAnswer) -> Dict[str, Any]:
    return {
        "id": answer.id,
        "question_id": answer.question_id,
        "answer_text": answer.answer_text,
        "created_at": answer.created_at.isoformat(),
    }


def get_interview_strategy(db: Session, user_id: Optional[str], session_id: str) -> Dict[str, Any]:
    try:
        user_id = require_user(user_id)
        session = load_owned_session(db, user_id, session_id)
        if not session.strategy:
            raise NotFoundError("No strategy found for this session")
        return {
            "success": True,
            "data": {
                "session_id": session.id,
                "status": session.status,
                "job_posting": _job_summary(session.job_posting),
                "strategy": session.strategy,
            },
        }
    except IzzyError as e:
        return failure(e)
    except Exception as e:
        logger.exception("get_interview_strategy failed unexpectedly")
        return failure(e)


def list_sessions(db: Session, user_id: Optional[str]) -> Dict[str, Any]:
    """Caller's sessions, newest first, with question and answer counts."""
    try:
        user_id = require_user(user_id)

        sessions = db.exec(
            select(InterviewSession)
            .where(InterviewSession.profile_id == user_id)
            .order_by(InterviewSession.created_at.desc())
        ).all()

        question_counts = dict(db.exec(
            select(InterviewQuestion.session_id, func.count(InterviewQuestion.id))
            .join(InterviewSession, InterviewSession.id == InterviewQuestion.session_id)
            .where(InterviewSession.profile_id == user_id)
            .group_by(InterviewQuestion.session_id)
        ).all())
        answer_counts = dict(db.exec(
            select(InterviewQuestion.session_id, func.count(UserAnswer.id))
            .join(UserAnswer, UserAnswer.question_id == InterviewQuestion.id)
            .join(InterviewSession, InterviewSession.id == InterviewQuestion.session_id)
            .where(InterviewSession.profile_id == user_id)
            .group_by(InterviewQuestion.session_id)
        ).all())

        items: List[Dict[str, Any]] = []
        for session in sessions:
            job_posting = session.job_posting
            items.append({
                "id": session.id,
                "status": session.status,
                "created_at": session.created_at.isoformat(),
                "updated_at": session.updated_at.isoformat(),
                "job_posting_id": session.job_posting_id,
                "job_title": job_posting.title if job_posting else None,
                "company": job_posting.company if job_posting else None,
                "question_count": question_counts.get(session.id, 0),
                "answer_count": answer_counts.get(session.id, 0),
                "overall_score": (session.session_feedback or {}).get("overall_score"),
            })

        return {"success": True, "data": items}

    except IzzyError as e:
        return failure(e)
    except Exception as e:
        logger.exception("list_sessions failed unexpectedly")
        return failure(e)


def get_session_detail(db: Session, user_id: Optional[str], session_id: str) -> Dict[str, Any]:
    """Session with its job posting, ordered questions and their answers."""
    try:
        user_id = require_user(user_id)
        session = load_owned_session(db, user_id, session_id)

        questions = []
        for question in ordered_questions(db, session.id):
            item = question_to_dict(question)
            item["answers"] = [
                _answer_to_dict(a)
                for a in sorted(question.answers, key=lambda a: a.created_at)
            ]
            questions.append(item)

        return {
            "success": True,
            "data": {
                "id": session.id,
                "status": session.status,
                "created_at": session.created_at.isoformat(),
                "resume_id": session.resume_id,
                "thread_id": session.thread_id,
                "job_posting": _job_summary(session.job_posting),
                "strategy": session.strategy,
                "session_feedback": session.session_feedback,
                "questions": questions,
            },
        }

    except IzzyError as e:
        return failure(e)
    except Exception as e:
        logger.exception("get_session_detail failed unexpectedly")
        return failure(e)


PENDING_SUMMARY = (
    "Your interview session is still being evaluated. Detailed feedback will be "
    "available soon. Please check back in a few minutes."
)


def _latest(rows):
    return max(rows, key=lambda row: row.created_at) if rows else None


def get_interview_results(db: Session, user_id: Optional[str], session_id: str) -> Dict[str, Any]:
    """
    Results view of a session: the evaluator's session verdict plus, per
    question, the latest answer and its evaluation.

    A session that has not been evaluated yet still returns success, with
    zero scores and an "evaluation in progress" notice.
    """
    try:
        user_id = require_user(user_id)
        session = load_owned_session(db, user_id, session_id)
        job_posting = session.job_posting
        feedback = session.session_feedback
        evaluated = bool(feedback)

        questions = []
        for question in ordered_questions(db, session.id):
            answer = _latest(question.answers)
            evaluation = _latest(answer.evaluations) if answer is not None else None
            questions.append({
                "id": question.id,
                "text": question.question_text,
                "type": question.question_type,
                "score": evaluation.overall_score if evaluation and evaluation.overall_score else 0,
                "answer": answer.answer_text if answer is not None else "",
                "feedback": evaluation.feedback if evaluation else ("" if evaluated else "Evaluation in progress"),
                "strengths": (evaluation.strengths if evaluation else None) or [],
                "areas_for_improvement": (evaluation.areas_for_improvement if evaluation else None) or [],
                "suggested_response": (evaluation.suggested_response if evaluation else None) or "",
            })

        result = {
            "session_id": session.id,
            "title": "Interview Results",
            "company": job_posting.company if job_posting else None,
            "position": job_posting.title if job_posting else None,
            "date": session.created_at.isoformat(),
            "status": session.status,
            "evaluated": evaluated,
            "questions": questions,
        }

        if evaluated:
            result.update({
                "overall_score": feedback.get("overall_score", 0),
                "score_breakdown": {
                    "technical": feedback.get("technical_score", 0),
                    "communication": feedback.get("communication_score", 0),
                    "problem_solving": feedback.get("problem_solving_score", 0),
                    "culture_fit": feedback.get("culture_fit_score", 0),
                },
                "strengths": feedback.get("strengths") or [],
                "weaknesses": feedback.get("weaknesses") or [],
                "recommendations": feedback.get("recommendations") or [],
                "summary": feedback.get("summary") or "",
            })
        else:
            result.update({
                "overall_score": 0,
                "score_breakdown": {"technical": 0, "communication": 0, "problem_solving": 0, "culture_fit": 0},
                "strengths": ["Evaluation in progress"],
                "weaknesses": ["Please check back later"],
                "recommendations": ["Your interview is still being evaluated"],
                "summary": PENDING_SUMMARY,
            })

        return {"success": True, "data": result}

    except IzzyError as e:
        return failure(e)
    except Exception as e:
        logger.exception("get_interview_results failed unexpectedly")
        return failure(e)


def delete_interview(db: Session, user_id: Optional[str], job_posting_id: str) -> Dict[str, Any]:
    """
    Delete a job posting and, through the cascade, its sessions, questions,
    answers and evaluations.
    """
    try:
        user_id = require_user(user_id)

        job_posting = db.get(JobPosting, job_posting_id) if job_posting_id else None
        if job_posting is None or job_posting.profile_id != user_id:
            raise NotFoundError("Job posting not found or access denied")

        db.delete(job_posting)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Failed to delete job posting: {e}")

        logger.info(f"Deleted job posting {job_posting_id} and its sessions for {user_id}")
        return {"success": True}

    except IzzyError as e:
        logger.warning(f"delete_interview failed: {e}")
        return failure(e)
    except Exception as e:
        logger.exception("delete_interview failed unexpectedly")
        return failure(e)


def submit_answer(
    db: Session,
    user_id: Optional[str],
    session_id: str,
    question_id: str,
    answer_text: str,
) -> Dict[str, Any]:
    """
    Record an answer outside the chat loop and return quick feedback.
    A planned session moves to in_progress.
    """
    try:
        user_id = require_user(user_id)
        session = load_owned_session(db, user_id, session_id)
        question = load_session_question(db, session.id, question_id)

        answer = record_answer(db, question.id, answer_text)
        advance_session_status(db, session, "in_progress")

        logger.info(f"Stored answer {answer.id} for question {question.id}")
        return {
            "success": True,
            "data": {
                "answer_id": answer.id,
                "feedback": quick_feedback(answer_text, question.question_type),
            },
        }

    except IzzyError as e:
        logger.warning(f"submit_answer failed: {e}")
        return failure(e)
    except Exception as e:
        logger.exception("submit_answer failed unexpectedly")
        return failure(e)
