"""
Pytest configuration and shared fixtures for all tests.

This file is automatically loaded by pytest before running tests.
It points the app at an in-memory SQLite database and fake assistant ids
before any backend module is imported.
"""

import os
import sys
import json
from datetime import datetime, timedelta, timezone

# Add backend directory to path for imports FIRST
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Forced, not setdefault: a developer's .env must never point tests at a real database
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = "test-api-key-for-testing"
os.environ["AUTH_JWT_SECRET"] = "test-jwt-secret"
os.environ["AUTH_JWT_AUDIENCE"] = "authenticated"
os.environ["OPENAI_RESUME_PARSER_ASSISTANT_ID"] = "asst_resume_parser"
os.environ["OPENAI_STRATEGY_ASSISTANT_ID"] = "asst_strategist"
os.environ["OPENAI_INTERVIEWER_ASSISTANT_ID"] = "asst_interviewer"
os.environ["OPENAI_EVALUATOR_ASSISTANT_ID"] = "asst_evaluator"

import pytest
from jose import jwt
from unittest.mock import MagicMock
from sqlmodel import SQLModel, Session

from db import engine
from models import InterviewQuestion, InterviewSession, JobPosting, Resume, UserAnswer
from services.assistant_client import AssistantClient, AssistantReply


USER_ID = "user-1"
OTHER_USER_ID = "user-2"


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
def db():
    """Fresh schema per test on the shared in-memory engine."""
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


# ============================================================================
# ASSISTANT FAKE
# ============================================================================

def fenced(payload: dict, preamble: str = "Here you go:") -> str:
    """Wrap a payload the way the assistants usually answer."""
    return f"{preamble}\n\n```json\n{json.dumps(payload)}\n```\n"


@pytest.fixture
def fake_assistant():
    """
    MagicMock standing in for AssistantClient.

    Queue replies with fake_assistant.queue(text, ...); each converse() call
    returns the next one on thread "thread_1" (or the thread passed in).
    """
    fake = MagicMock(spec=AssistantClient)
    replies = []

    def converse(assistant_id, content, thread_id=None):
        if not replies:
            raise AssertionError("Unexpected assistant call")
        return AssistantReply(thread_id=thread_id or "thread_1", text=replies.pop(0))

    def queue(*texts):
        replies.extend(texts)

    fake.converse.side_effect = converse
    fake.queue = queue
    return fake


# ============================================================================
# FACTORIES
# ============================================================================

@pytest.fixture
def make_resume(db):
    def create(user_id: str = USER_ID, complete: bool = True, is_active: bool = True) -> Resume:
        resume = Resume(
            profile_id=user_id,
            title="Main resume",
            content="Jane Doe. Python developer.",
            is_active=is_active,
            parsed_skills={
                "technical": [{"skill": "Python", "level": "expert", "years": 5}],
                "soft": [{"skill": "Communication"}],
                "certifications": [],
            } if complete else {},
            experience=[{
                "title": "Backend Engineer",
                "company": "Acme",
                "duration": {"years": 3, "months": 2},
                "highlights": ["Built APIs"],
            }] if complete else [],
            education=[{"degree": "BSc Computer Science", "institution": "State U", "year": 2018}] if complete else [],
            projects=[],
        )
        db.add(resume)
        db.commit()
        db.refresh(resume)
        return resume
    return create


@pytest.fixture
def make_session(db):
    """
    Create a job posting plus a session owned by user_id, with strategist
    questions for each text given.
    """
    def create(
        user_id: str = USER_ID,
        question_texts=("Tell me about yourself", "Explain Python generators", "Describe a conflict you resolved"),
        status: str = "planned",
        resume_id=None,
    ) -> InterviewSession:
        job = JobPosting(
            profile_id=user_id,
            title="Backend Engineer",
            company="Globex",
            description="We need a Python backend engineer.",
            parsed_requirements={"title": "Backend Engineer", "required_skills": []},
        )
        db.add(job)
        db.commit()
        db.refresh(job)

        session = InterviewSession(
            profile_id=user_id,
            job_posting_id=job.id,
            resume_id=resume_id,
            status=status,
            strategy={"interview_strategy": {"focus_areas": []}},
        )
        db.add(session)
        db.commit()
        db.refresh(session)

        for order, text in enumerate(question_texts, start=1):
            db.add(InterviewQuestion(
                session_id=session.id,
                question_text=text,
                question_type="behavioral" if order != 2 else "technical",
                question_order=order,
                source="strategist",
            ))
        db.commit()
        return session
    return create


@pytest.fixture
def make_answer(db):
    def create(question_id: str, text: str = "I built a payment service, for example.") -> UserAnswer:
        answer = UserAnswer(question_id=question_id, answer_text=text)
        db.add(answer)
        db.commit()
        db.refresh(answer)
        return answer
    return create


# ============================================================================
# AUTH
# ============================================================================

def make_token(sub: str, audience: str = "authenticated", secret: str = "test-jwt-secret", expires_in: int = 3600) -> str:
    claims = {
        "sub": sub,
        "aud": audience,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_header(sub: str = USER_ID) -> dict:
    return {"Authorization": f"Bearer {make_token(sub)}"}
