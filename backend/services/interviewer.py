# backend/services/interviewer.py
"""
Interviewer Agent

Runs the mock interview conversation on one assistant thread:

    start_interview     not-started -> greeting sent (session becomes in_progress)
    continue_interview  answer recorded -> next question, or conclusion
                        (session becomes completed)

Each assistant turn carries a reaction_type, an optional next_question and an
interview_status snapshot. Questions the interviewer introduces are stored
with source='interviewer'; a question whose exact text is already in the
session reuses the existing row.
"""

import logging
import time
from typing import Any, Dict, Optional

from sqlmodel import Session

import config
from models import InterviewQuestion, InterviewSession
from prompts.agent_prompts import AgentPrompts
from schemas import InterviewerResponse, InterviewerTurn
from services.assistant_client import AssistantClient
from services.errors import IzzyError, failure
from services.reply_parsing import parse_reply
from services.session_store import (
    advance_session_status,
    insert_question_if_absent,
    load_owned_session,
    load_session_question,
    next_interviewer_order,
    ordered_questions,
    question_to_dict,
    record_agent_log,
    record_answer,
    remember_thread,
    require_user,
)

logger = logging.getLogger(__name__)


class Interviewer:
    """
    Interview conversation agent.

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

    def _resolve_assistant_id(self) -> str:
        return self.assistant_id or config.get_assistant_id(config.INTERVIEWER_ASSISTANT_ENV)

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    def start_interview(self, user_id: Optional[str], session_id: str) -> Dict[str, Any]:
        """
        Open a new thread and get the interviewer's greeting.

        Args:
            user_id: Authenticated caller
            session_id: Planned session produced by the strategist

        Returns:
            {"success": True, "data": {thread_id, message, reaction_type,
            next_question, interview_status, status, is_complete}} or
            {"success": False, "error": "..."}
        """
        start_time = time.time()

        try:
            user_id = require_user(user_id)
            session = load_owned_session(self.db, user_id, session_id)

            questions = ordered_questions(self.db, session.id)
            if not questions:
                raise IzzyError("No interview questions found for this session")

            assistant_id = self._resolve_assistant_id()

            job_posting = session.job_posting
            job_info = {
                "title": job_posting.title if job_posting else None,
                "company": job_posting.company if job_posting else None,
                "description": job_posting.description if job_posting else None,
                "requirements": job_posting.parsed_requirements if job_posting else None,
            }

            logger.info(f"Interviewer: starting session {session.id} with {len(questions)} planned questions")
            reply = self.assistant.converse(
                assistant_id,
                AgentPrompts.interviewer_start(
                    job_info,
                    session.strategy or {},
                    [question_to_dict(q) for q in questions],
                ),
            )
            turn = parse_reply(reply.text, InterviewerResponse).interviewer_response

            remember_thread(self.db, session, reply.thread_id)
            advance_session_status(self.db, session, "in_progress")

            stored_question = None
            if turn.next_question is not None:
                stored_question = self._store_next_question(session, turn, requested_order=1)

            processing_time = int((time.time() - start_time) * 1000)
            record_agent_log(
                self.db,
                agent_type="interviewer",
                session_id=session.id,
                input_summary={"start_interview": True},
                output_summary={
                    "success": True,
                    "message_type": turn.reaction_type,
                },
                processing_time_ms=processing_time,
            )

            return {
                "success": True,
                "data": self._turn_payload(reply.thread_id, session, turn, stored_question),
            }

        except IzzyError as e:
            logger.warning(f"Interviewer start failed for session {session_id}: {e}")
            return failure(e)
        except Exception as e:
            logger.exception(f"Interviewer start failed unexpectedly for session {session_id}")
            return failure(e)

    # ------------------------------------------------------------------
    # Continue
    # ------------------------------------------------------------------

    def continue_interview(
        self,
        user_id: Optional[str],
        session_id: str,
        thread_id: str,
        answer_text: str,
        current_question_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Record the candidate's answer and get the next interviewer turn.

        The answer is stored only when current_question_id is given. It stays
        stored even if the assistant call afterwards fails.

        Args:
            user_id: Authenticated caller
            session_id: Session being interviewed
            thread_id: Thread returned by start_interview
            answer_text: Candidate's free-text answer
            current_question_id: Question the answer responds to, if tracked

        Returns:
            Same shape as start_interview()
        """
        start_time = time.time()

        try:
            user_id = require_user(user_id)
            session = load_owned_session(self.db, user_id, session_id)

            if session.status == "completed":
                raise IzzyError("Interview session is already completed")

            if session.thread_id and thread_id != session.thread_id:
                raise IzzyError("Interview thread does not belong to this session")

            question = None
            if current_question_id:
                question = load_session_question(self.db, session.id, current_question_id)

            assistant_id = self._resolve_assistant_id()

            if question is not None:
                record_answer(self.db, question.id, answer_text, metadata={"thread_id": thread_id})
                logger.info(f"Interviewer: stored answer to question {question.id}")
            else:
                logger.info(f"Interviewer: no current question for session {session.id}, answer not stored")

            reply = self.assistant.converse(assistant_id, answer_text, thread_id=thread_id)
            turn = parse_reply(reply.text, InterviewerResponse).interviewer_response

            stored_question = None
            if turn.is_conclusion:
                advance_session_status(self.db, session, "completed")
                logger.info(f"Interviewer: session {session.id} concluded")
            else:
                advance_session_status(self.db, session, "in_progress")
                if turn.next_question is not None:
                    stored_question = self._store_next_question(
                        session,
                        turn,
                        requested_order=turn.interview_status.current_question_index + 1,
                    )
                else:
                    logger.info(f"Interviewer: message-only turn for session {session.id}")

            processing_time = int((time.time() - start_time) * 1000)
            record_agent_log(
                self.db,
                agent_type="interviewer",
                session_id=session.id,
                input_summary={
                    "answer_length": len(answer_text or ""),
                    "current_question_index": turn.interview_status.current_question_index,
                },
                output_summary={
                    "success": True,
                    "message_type": turn.reaction_type,
                    "completion_percentage": turn.interview_status.estimated_completion_percentage,
                },
                processing_time_ms=processing_time,
            )

            return {
                "success": True,
                "data": self._turn_payload(reply.thread_id, session, turn, stored_question),
            }

        except IzzyError as e:
            logger.warning(f"Interviewer continue failed for session {session_id}: {e}")
            return failure(e)
        except Exception as e:
            logger.exception(f"Interviewer continue failed unexpectedly for session {session_id}")
            return failure(e)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _store_next_question(
        self,
        session: InterviewSession,
        turn: InterviewerTurn,
        requested_order: int,
    ) -> InterviewQuestion:
        question_order = next_interviewer_order(self.db, session.id, requested_order)
        return insert_question_if_absent(
            self.db,
            session.id,
            turn.next_question.model_dump(exclude={"id"}),
            question_order=question_order,
            source="interviewer",
        )

    @staticmethod
    def _turn_payload(
        thread_id: str,
        session: InterviewSession,
        turn: InterviewerTurn,
        stored_question: Optional[InterviewQuestion],
    ) -> Dict[str, Any]:
        next_question = None
        if stored_question is not None:
            next_question = turn.next_question.model_dump(exclude_none=True)
            next_question["id"] = stored_question.id

        return {
            "thread_id": thread_id,
            "message": turn.message,
            "reaction_type": turn.reaction_type,
            "next_question": next_question,
            "interview_status": turn.interview_status.model_dump(),
            "status": session.status,
            "is_complete": turn.is_conclusion,
        }
