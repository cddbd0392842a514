# backend/services/strategist.py
"""
Strategist Agent

Combines a parsed resume with a job description and asks the strategy
assistant for:
- a job analysis (title, company, required/preferred skills, experience level)
- a skills mapping (strong matches, partial matches, gaps)
- an interview strategy (weighted focus areas, preparation tips)
- a flat list of recommended questions

The result is persisted as a new JobPosting, a new InterviewSession in
'planned' status, and the recommended questions (source='strategist').
"""

import logging
import time
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

import config
from models import InterviewQuestion, InterviewSession, JobPosting
from prompts.agent_prompts import AgentPrompts
from schemas import RecommendedQuestion, StrategistResponse
from services.assistant_client import AssistantClient
from services.errors import IzzyError, StorageError, failure
from services.reply_parsing import parse_reply
from services.resume_service import find_active_resume
from services.session_store import load_owned_resume, record_agent_log, require_user

logger = logging.getLogger(__name__)

UNTITLED_POSITION = "Untitled Position"


class Strategist:
    """
    Interview strategy agent.

    Attributes:
        db: Database session used for every read and write of one call
        assistant: Conversation provider
        assistant_id: Hosted assistant identifier; read from the environment
            on each call when not given
    """

    def __init__(self, db: Session, assistant: AssistantClient, assistant_id: Optional[str] = None):
        self.db = db
        self.assistant = assistant
        self.assistant_id = assistant_id

    def analyze(self, user_id: Optional[str], job_description: str, resume_id: str) -> Dict[str, Any]:
        """
        Build an interview strategy for one job description.

        Args:
            user_id: Authenticated caller
            job_description: Raw job description text
            resume_id: Caller's resume to compare against

        Returns:
            {"success": True, "data": {"sessionId": ..., "strategy": {...}}} or
            {"success": False, "error": "..."}
        """
        start_time = time.time()

        try:
            user_id = require_user(user_id)
            resume = load_owned_resume(self.db, user_id, resume_id)

            assistant_id = self.assistant_id or config.get_assistant_id(config.STRATEGY_ASSISTANT_ENV)

            if not resume.parsed_skills or not resume.experience or not resume.education:
                raise IzzyError(
                    "Resume data is incomplete. Please ensure your resume is properly processed."
                )

            resume_record = {
                "parsed_skills": resume.parsed_skills or {},
                "experience": resume.experience or [],
                "education": resume.education or [],
                "projects": resume.projects or [],
            }

            logger.info(f"Strategist: analyzing job ({len(job_description)} chars) against resume {resume_id}")
            reply = self.assistant.converse(
                assistant_id,
                AgentPrompts.strategist(resume_record, job_description),
            )
            response = parse_reply(reply.text, StrategistResponse)
            strategy = response.model_dump(exclude_none=True)

            job_posting = self._save_job_posting(user_id, job_description, response)
            session = self._create_session(user_id, resume.id, job_posting.id, strategy)
            question_count = self._save_questions(session.id, response.recommended_questions)

            processing_time = int((time.time() - start_time) * 1000)
            record_agent_log(
                self.db,
                agent_type="strategist",
                session_id=session.id,
                input_summary={
                    "job_description_length": len(job_description),
                    "resume_id": resume_id,
                },
                output_summary={
                    "success": True,
                    "session_id": session.id,
                    "question_count": question_count,
                },
                processing_time_ms=processing_time,
            )

            logger.info(f"Strategist: session {session.id} planned with {question_count} questions ({processing_time}ms)")
            return {
                "success": True,
                "data": {
                    "sessionId": session.id,
                    "strategy": strategy,
                },
            }

        except IzzyError as e:
            logger.warning(f"Strategist failed: {e}")
            return failure(e)
        except Exception as e:
            logger.exception("Strategist failed unexpectedly")
            return failure(e)

    def analyze_with_active_resume(self, user_id: Optional[str], job_description: str) -> Dict[str, Any]:
        """Same as analyze() using the caller's active resume."""
        if not user_id:
            return {"success": False, "error": "User not authenticated"}

        resume = find_active_resume(self.db, user_id)
        if resume is None:
            return {"success": False, "error": "No active resume found. Please upload your resume first."}

        return self.analyze(user_id, job_description, resume.id)

    # ------------------------------------------------------------------
    # Persistence steps
    # ------------------------------------------------------------------

    def _save_job_posting(self, user_id: str, job_description: str, response: StrategistResponse) -> JobPosting:
        analysis = response.job_analysis
        job_posting = JobPosting(
            profile_id=user_id,
            title=(analysis.title or "").strip() or UNTITLED_POSITION,
            company=analysis.company,
            description=job_description,
            parsed_requirements=analysis.model_dump(exclude_none=True),
            is_active=True,
        )
        self.db.add(job_posting)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to save job posting: {e}")
        self.db.refresh(job_posting)
        return job_posting

    def _create_session(
        self,
        user_id: str,
        resume_id: str,
        job_posting_id: str,
        strategy: Dict[str, Any],
    ) -> InterviewSession:
        session = InterviewSession(
            profile_id=user_id,
            resume_id=resume_id,
            job_posting_id=job_posting_id,
            strategy=strategy,
            status="planned",
        )
        self.db.add(session)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to create interview session: {e}")
        self.db.refresh(session)
        return session

    def _save_questions(self, session_id: str, questions: List[RecommendedQuestion]) -> int:
        """
        Bulk-insert the recommended questions in the order returned.

        A failure here is logged and swallowed: the session stays usable with
        no pre-planned questions.

        Returns:
            Number of questions stored
        """
        seen = set()
        rows = []
        for item in questions:
            text = item.question_text.strip()
            if text in seen:
                continue
            seen.add(text)
            rows.append(InterviewQuestion(
                session_id=session_id,
                question_text=text,
                question_type=item.question_type,
                related_skill=item.related_skill,
                difficulty=item.difficulty,
                focus_area=item.focus_area,
                question_order=len(rows) + 1,
                source="strategist",
            ))

        if not rows:
            return 0

        self.db.add_all(rows)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error saving interview questions for session {session_id}: {e}")
            return 0

        return len(rows)
