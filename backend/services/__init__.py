# backend/services/__init__.py
"""
Services Package for Izzy

Agents (each talks to its own hosted assistant through AssistantClient):
    - resume_parser: resume text -> structured resume record
    - strategist: resume + job description -> job posting, session, planned questions
    - interviewer: greeting / answer / next question loop on one thread
    - evaluator: placeholder per-answer evaluation, quick feedback, session evaluation

Supporting services:
    - assistant_client: OpenAI Assistants threads/runs wrapper with bounded polling
    - reply_parsing: JSON extraction and validation of assistant replies
    - session_store: owner checks, status changes, deduplicated question inserts
    - resume_service / resume_text: resume storage and file text extraction
    - session_service: history, detail, deletion, stand-alone answers
    - errors: error taxonomy and the uniform failure result

Submodules are imported directly (``from services.interviewer import Interviewer``);
only the error types are re-exported here, since config imports them while
the other modules import config.
"""

from .errors import (
    AssistantTimeoutError,
    AuthError,
    ConfigError,
    IzzyError,
    NotFoundError,
    ParseError,
    ProviderError,
    StorageError,
    failure,
)

__all__ = [
    "IzzyError",
    "AuthError",
    "ConfigError",
    "NotFoundError",
    "ProviderError",
    "AssistantTimeoutError",
    "ParseError",
    "StorageError",
    "failure",
]
