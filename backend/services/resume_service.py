# backend/services/resume_service.py
"""
Resume Service

Stores parsed resumes and answers "what is my current resume?".
Each profile has at most one active resume; saving a new one retires
the previous one.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from models import Resume
from services.errors import IzzyError, NotFoundError, StorageError, failure
from services.resume_parser import ResumeParser
from services.session_store import load_owned_resume, require_user

logger = logging.getLogger(__name__)


def resume_to_dict(resume: Resume) -> Dict[str, Any]:
    return {
        "id": resume.id,
        "title": resume.title,
        "content": resume.content,
        "parsed_skills": resume.parsed_skills,
        "experience": resume.experience,
        "education": resume.education,
        "projects": resume.projects,
        "is_active": resume.is_active,
        "created_at": resume.created_at.isoformat(),
    }


def summarize_resume(resume: Resume) -> Dict[str, Any]:
    """Resume plus the counts shown on the dashboard."""
    parsed_skills = resume.parsed_skills or {}
    experience = resume.experience or []
    education = resume.education or []

    total_years = sum(
        (entry.get("duration") or {}).get("years") or 0
        for entry in experience
    )
    first_education = education[0] if education else None

    summary = resume_to_dict(resume)
    summary.update({
        "technical_skills_count": len(parsed_skills.get("technical") or []),
        "soft_skills_count": len(parsed_skills.get("soft") or []),
        "total_years_experience": total_years,
        "education_summary": {
            "degree": first_education.get("degree"),
            "institution": first_education.get("institution"),
            "year": first_education.get("year"),
        } if first_education else None,
    })
    return summary


def find_active_resume(db: Session, user_id: str) -> Optional[Resume]:
    return db.exec(
        select(Resume)
        .where(Resume.profile_id == user_id)
        .where(Resume.is_active == True)  # noqa: E712
        .order_by(Resume.created_at.desc())
    ).first()


def save_resume(
    db: Session,
    user_id: Optional[str],
    content: str,
    structured: Dict[str, Any],
    title: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Store a parsed resume as the caller's active resume.

    Args:
        content: Raw resume text
        structured: Parser output (parsed_skills, experience, education, projects)
    """
    try:
        user_id = require_user(user_id)

        previous = db.exec(
            select(Resume)
            .where(Resume.profile_id == user_id)
            .where(Resume.is_active == True)  # noqa: E712
        ).all()
        for old in previous:
            old.is_active = False
            db.add(old)

        resume = Resume(
            profile_id=user_id,
            title=title,
            content=content,
            is_active=True,
            parsed_skills=structured.get("parsed_skills") or {},
            experience=structured.get("experience") or [],
            education=structured.get("education") or [],
            projects=structured.get("projects") or [],
        )
        db.add(resume)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Failed to save resume: {e}")
        db.refresh(resume)

        logger.info(f"Saved resume {resume.id} for {user_id} (retired {len(previous)})")
        return {"success": True, "data": resume_to_dict(resume)}

    except IzzyError as e:
        logger.warning(f"save_resume failed: {e}")
        return failure(e)
    except Exception as e:
        logger.exception("save_resume failed unexpectedly")
        return failure(e)


def ingest_resume(
    db: Session,
    parser: ResumeParser,
    user_id: Optional[str],
    resume_text: str,
    title: Optional[str] = None,
) -> Dict[str, Any]:
    """Parse resume text and, if that worked, store it as the active resume."""
    if not user_id:
        return {"success": False, "error": "User not authenticated"}

    parsed = parser.parse(resume_text)
    if not parsed["success"]:
        return parsed

    return save_resume(db, user_id, resume_text, parsed["data"], title=title)


def get_active_resume(db: Session, user_id: Optional[str]) -> Dict[str, Any]:
    try:
        user_id = require_user(user_id)
        resume = find_active_resume(db, user_id)
        if resume is None:
            raise NotFoundError("No active resume found. Please upload your resume first.")
        return {"success": True, "data": summarize_resume(resume)}
    except IzzyError as e:
        return failure(e)
    except Exception as e:
        logger.exception("get_active_resume failed unexpectedly")
        return failure(e)


def delete_resume(db: Session, user_id: Optional[str], resume_id: str) -> Dict[str, Any]:
    """
    Delete one of the caller's resumes. Sessions built from it keep their
    history; their resume reference is cleared.
    """
    try:
        user_id = require_user(user_id)
        resume = load_owned_resume(db, user_id, resume_id)

        db.delete(resume)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(f"Failed to delete resume: {e}")

        logger.info(f"Deleted resume {resume_id} for {user_id}")
        return {"success": True}

    except IzzyError as e:
        logger.warning(f"delete_resume failed: {e}")
        return failure(e)
    except Exception as e:
        logger.exception("delete_resume failed unexpectedly")
        return failure(e)
