# models.py
"""
Relational schema for resumes, job postings, interview sessions and
everything hanging off a session.

Top-level rows (Resume, JobPosting, InterviewSession) carry the owning
profile_id. Questions, answers and evaluations are reached only through
their session and inherit its ownership.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel


SESSION_STATUSES = ("planned", "in_progress", "completed")
QUESTION_SOURCES = ("strategist", "interviewer")


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Resume(SQLModel, table=True):
    """
    One parsed resume. At most one row per profile is active at a time;
    saving a new resume deactivates the previous one.
    """
    __tablename__ = "resumes"

    id: str = Field(default_factory=new_id, primary_key=True)
    profile_id: str = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    title: Optional[str] = None
    content: str
    is_active: bool = Field(default=True, index=True)

    # structured output of the resume parser, stored as json
    parsed_skills: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    experience: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON))
    education: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON))
    projects: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON))

    sessions: List["InterviewSession"] = Relationship(back_populates="resume")


class JobPosting(SQLModel, table=True):
    __tablename__ = "job_postings"

    id: str = Field(default_factory=new_id, primary_key=True)
    profile_id: str = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    title: str
    company: Optional[str] = None
    description: str
    parsed_requirements: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    is_active: bool = Field(default=True)

    # deleting a posting removes its sessions and everything below them
    sessions: List["InterviewSession"] = Relationship(
        back_populates="job_posting",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class InterviewSession(SQLModel, table=True):
    __tablename__ = "interview_sessions"

    id: str = Field(default_factory=new_id, primary_key=True)
    profile_id: str = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)

    resume_id: Optional[str] = Field(default=None, foreign_key="resumes.id", index=True)
    job_posting_id: str = Field(foreign_key="job_postings.id", index=True)

    status: str = Field(default="planned", index=True)
    # assistant thread opened when the interview starts
    thread_id: Optional[str] = None

    # full strategist output, persisted verbatim
    strategy: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    # evaluator's session-level verdict
    session_feedback: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    resume: Optional[Resume] = Relationship(back_populates="sessions")
    job_posting: Optional[JobPosting] = Relationship(back_populates="sessions")
    questions: List["InterviewQuestion"] = Relationship(
        back_populates="session",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class InterviewQuestion(SQLModel, table=True):
    __tablename__ = "interview_questions"
    __table_args__ = (
        UniqueConstraint("session_id", "question_text", name="uq_interview_questions_session_text"),
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    session_id: str = Field(foreign_key="interview_sessions.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    question_text: str
    question_type: Optional[str] = None
    related_skill: Optional[str] = None
    difficulty: Optional[str] = None
    focus_area: Optional[str] = None
    question_order: int
    source: str = Field(default="strategist")

    session: Optional[InterviewSession] = Relationship(back_populates="questions")
    answers: List["UserAnswer"] = Relationship(
        back_populates="question",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class UserAnswer(SQLModel, table=True):
    __tablename__ = "user_answers"

    id: str = Field(default_factory=new_id, primary_key=True)
    question_id: str = Field(foreign_key="interview_questions.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    answer_text: str
    answer_metadata: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    question: Optional[InterviewQuestion] = Relationship(back_populates="answers")
    evaluations: List["Evaluation"] = Relationship(
        back_populates="answer",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class Evaluation(SQLModel, table=True):
    __tablename__ = "evaluations"

    id: str = Field(default_factory=new_id, primary_key=True)
    answer_id: str = Field(foreign_key="user_answers.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    # 1-10 scale
    overall_score: Optional[int] = None
    clarity_score: Optional[int] = None
    relevance_score: Optional[int] = None

    feedback: str
    strengths: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    areas_for_improvement: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    improvement_suggestions: Optional[str] = None
    suggested_response: Optional[str] = None

    answer: Optional[UserAnswer] = Relationship(back_populates="evaluations")


class AgentLog(SQLModel, table=True):
    """Append-only audit row, one per successful agent call."""
    __tablename__ = "agent_logs"

    id: str = Field(default_factory=new_id, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    agent_type: str = Field(index=True)
    # plain column: logs outlive the sessions they describe
    session_id: Optional[str] = Field(default=None, index=True)
    input: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    output: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    processing_time: Optional[int] = None
    error_message: Optional[str] = None
