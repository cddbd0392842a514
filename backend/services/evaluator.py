# backend/services/evaluator.py
"""
Evaluator Agent

- evaluate_answer(): per-answer scoring entry point. Not implemented yet,
  always answers with a placeholder.
- quick_feedback(): instant word-count / keyword feedback shown right after
  an answer is submitted.
- Evaluator.evaluate_session(): batch evaluation of every answered question
  in a session by the evaluator assistant. Scores use a 1-10 scale.
"""

import logging
import re
import time
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

import config
from models import Evaluation, InterviewQuestion, UserAnswer, utcnow
from prompts.agent_prompts import AgentPrompts
from schemas import CombinedEvaluationResponse
from services.assistant_client import AssistantClient
from services.errors import IzzyError, StorageError, failure
from services.reply_parsing import parse_reply
from services.session_store import (
    advance_session_status,
    load_owned_session,
    ordered_questions,
    record_agent_log,
    require_user,
)

logger = logging.getLogger(__name__)

MIN_SCORE = 1
MAX_SCORE = 10

EXAMPLE_WORDS = ("example", "instance", "case")
WORD_RE = re.compile(r"[a-z']+")


def clamp_score(value: float) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, int(round(value))))


def evaluate_answer(
    db: Session,
    user_id: Optional[str],
    session_id: str,
    question_id: str,
    answer_text: str,
) -> Dict[str, Any]:
    """Placeholder for per-answer evaluation. Only the caller's own sessions are accepted."""
    try:
        user_id = require_user(user_id)
        load_owned_session(db, user_id, session_id)
    except IzzyError as e:
        return failure(e)

    logger.info(f"evaluate_answer called for question {question_id} in session {session_id}")
    return {
        "success": True,
        "data": {
            "message": "Evaluation not yet implemented",
            "session_id": session_id,
            "question_id": question_id,
        },
    }


def quick_feedback(answer_text: str, question_type: Optional[str]) -> Dict[str, Any]:
    """
    Immediate feedback from simple heuristics. The evaluator assistant gives
    the detailed verdict later.

    Returns:
        {"summary": str, "strengths": [...], "improvements": [...]}
    """
    answer = answer_text or ""
    word_count = len(answer.split())
    words = set(WORD_RE.findall(answer.lower()))
    question_type = (question_type or "").lower()

    strengths: List[str] = []
    improvements: List[str] = []

    if word_count > 50:
        strengths.append("Provided a detailed response")
    elif word_count < 20:
        improvements.append("Consider elaborating more on your answer")

    if any(word in answer for word in EXAMPLE_WORDS):
        strengths.append("Used concrete examples")
    else:
        improvements.append("Consider including specific examples")

    if "technical" in question_type:
        strengths.append("Addressed technical concepts")
    elif "behavioral" in question_type:
        if "i" in words or "my" in words:
            strengths.append("Shared personal experiences")
        else:
            improvements.append("Consider sharing more personal experiences")

    if word_count > 80:
        summary = "Good depth in your answer. The evaluator will analyze it in detail."
    elif word_count > 30:
        summary = "Reasonable response. The evaluator will provide detailed feedback."
    else:
        summary = "Brief response. Consider adding more details in future answers."

    return {
        "summary": summary,
        "strengths": strengths or ["Response recorded"],
        "improvements": improvements or ["Wait for detailed evaluation"],
    }


class Evaluator:
    """
    Session evaluation agent.

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

    def evaluate_session(self, user_id: Optional[str], session_id: str) -> Dict[str, Any]:
        """
        Evaluate every answered question in a session and the session as a whole.

        Existing evaluations of those answers are replaced. The session gets
        the session-level verdict in session_feedback and is marked completed.

        Returns:
            {"success": True, "data": {"session_evaluation": {...},
            "answer_evaluations": [...]}} or {"success": False, "error": "..."}
        """
        start_time = time.time()

        try:
            user_id = require_user(user_id)
            session = load_owned_session(self.db, user_id, session_id)

            questions = ordered_questions(self.db, session.id)
            latest_answers = self._latest_answers(questions)
            if not latest_answers:
                raise IzzyError("No answers found for evaluation")

            assistant_id = self.assistant_id or config.get_assistant_id(config.EVALUATOR_ASSISTANT_ENV)

            job_posting = session.job_posting
            context = {
                "job_info": {
                    "title": job_posting.title if job_posting else None,
                    "company": job_posting.company if job_posting else None,
                    "description": job_posting.description if job_posting else None,
                    "requirements": job_posting.parsed_requirements if job_posting else None,
                },
                "strategy": session.strategy,
                "questions_and_answers": [
                    {
                        "question": {
                            "id": q.id,
                            "text": q.question_text,
                            "type": q.question_type,
                            "related_skill": q.related_skill,
                            "difficulty": q.difficulty,
                            "focus_area": q.focus_area,
                            "order": q.question_order,
                        },
                        "answer": {
                            "id": latest_answers[q.id].id,
                            "text": latest_answers[q.id].answer_text,
                            "created_at": latest_answers[q.id].created_at.isoformat(),
                        },
                    }
                    for q in questions
                    if q.id in latest_answers
                ],
            }

            logger.info(f"Evaluator: evaluating {len(latest_answers)} answers in session {session.id}")
            reply = self.assistant.converse(assistant_id, AgentPrompts.evaluator_session(context))
            response = parse_reply(reply.text, CombinedEvaluationResponse)

            session_evaluation = response.session_evaluation.model_dump()
            for key in ("overall_score", "technical_score", "communication_score",
                        "problem_solving_score", "culture_fit_score"):
                session_evaluation[key] = clamp_score(session_evaluation[key])

            stored = self._replace_evaluations(latest_answers, response)

            session.session_feedback = session_evaluation
            session.updated_at = utcnow()
            self.db.add(session)
            try:
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                raise StorageError(f"Failed to save session evaluation: {e}")

            advance_session_status(self.db, session, "completed")

            processing_time = int((time.time() - start_time) * 1000)
            record_agent_log(
                self.db,
                agent_type="evaluator",
                session_id=session.id,
                input_summary={
                    "action": "evaluate_session",
                    "answers_count": len(latest_answers),
                    "questions_count": len(questions),
                },
                output_summary={
                    "success": True,
                    "overall_score": session_evaluation["overall_score"],
                    "evaluations_stored": stored,
                },
                processing_time_ms=processing_time,
            )

            return {
                "success": True,
                "data": {
                    "session_evaluation": session_evaluation,
                    "answer_evaluations": [
                        {**item.model_dump(), "answer_quality": clamp_score(item.answer_quality)}
                        for item in response.answer_evaluations
                    ],
                },
            }

        except IzzyError as e:
            logger.warning(f"Session evaluation failed for {session_id}: {e}")
            return failure(e)
        except Exception as e:
            logger.exception(f"Session evaluation failed unexpectedly for {session_id}")
            return failure(e)

    def _latest_answers(self, questions: List[InterviewQuestion]) -> Dict[str, UserAnswer]:
        """Newest answer per question, keyed by question id."""
        if not questions:
            return {}

        answers = self.db.exec(
            select(UserAnswer)
            .where(UserAnswer.question_id.in_([q.id for q in questions]))
            .order_by(UserAnswer.created_at)
        ).all()

        latest: Dict[str, UserAnswer] = {}
        for answer in answers:
            latest[answer.question_id] = answer
        return latest

    def _replace_evaluations(
        self,
        latest_answers: Dict[str, UserAnswer],
        response: CombinedEvaluationResponse,
    ) -> int:
        """
        Drop old evaluations of the answers being scored and insert the new
        ones. Evaluations naming an unknown question are skipped.

        Returns:
            Number of evaluations stored
        """
        answer_ids = [answer.id for answer in latest_answers.values()]
        for old in self.db.exec(select(Evaluation).where(Evaluation.answer_id.in_(answer_ids))).all():
            self.db.delete(old)

        stored = 0
        for item in response.answer_evaluations:
            answer = latest_answers.get(item.question_id)
            if answer is None:
                logger.error(f"Could not find answer for question {item.question_id}")
                continue

            score = clamp_score(item.answer_quality)
            self.db.add(Evaluation(
                answer_id=answer.id,
                overall_score=score,
                clarity_score=score,
                relevance_score=score,
                feedback=item.feedback,
                strengths=item.strengths,
                areas_for_improvement=item.areas_for_improvement,
                improvement_suggestions="\n".join(item.areas_for_improvement),
                suggested_response=item.suggested_response,
            ))
            stored += 1

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to save evaluations: {e}")

        logger.info(f"Stored {stored} answer evaluations")
        return stored
