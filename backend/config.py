# backend/config.py
"""
Runtime settings read from the environment (.env is loaded first).

Assistant identifiers are resolved lazily so a missing identifier only
breaks the agent that needs it.
"""

import os
from typing import List

from dotenv import load_dotenv

from services.errors import ConfigError

load_dotenv()


# ---------- Assistant identifiers ----------
RESUME_PARSER_ASSISTANT_ENV = "OPENAI_RESUME_PARSER_ASSISTANT_ID"
STRATEGY_ASSISTANT_ENV = "OPENAI_STRATEGY_ASSISTANT_ID"
INTERVIEWER_ASSISTANT_ENV = "OPENAI_INTERVIEWER_ASSISTANT_ID"
EVALUATOR_ASSISTANT_ENV = "OPENAI_EVALUATOR_ASSISTANT_ID"

ASSISTANT_LABELS = {
    RESUME_PARSER_ASSISTANT_ENV: "Resume parser",
    STRATEGY_ASSISTANT_ENV: "Strategy",
    INTERVIEWER_ASSISTANT_ENV: "Interviewer",
    EVALUATOR_ASSISTANT_ENV: "Evaluator",
}


def get_assistant_id(env_name: str) -> str:
    """Return the configured assistant id or raise ConfigError."""
    value = (os.environ.get(env_name) or "").strip()
    if not value:
        label = ASSISTANT_LABELS.get(env_name, env_name)
        raise ConfigError(f"{label} assistant ID not configured")
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


# ---------- Run polling ----------
def poll_initial_seconds() -> float:
    return _float_env("ASSISTANT_POLL_INITIAL_SECONDS", 1.0)


def poll_max_seconds() -> float:
    return _float_env("ASSISTANT_POLL_MAX_SECONDS", 8.0)


def run_timeout_seconds() -> float:
    return _float_env("ASSISTANT_RUN_TIMEOUT_SECONDS", 120.0)


# ---------- Auth ----------
def jwt_secret() -> str:
    return os.environ.get("AUTH_JWT_SECRET", "")


def jwt_audience() -> str:
    return os.environ.get("AUTH_JWT_AUDIENCE", "authenticated")


JWT_ALGORITHM = "HS256"


# ---------- HTTP ----------
def cors_origins() -> List[str]:
    raw = os.environ.get("CORS_ORIGINS", "http://localhost:3000")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
