# backend/services/resume_parser.py
"""
Resume Parser Agent

Turns raw resume text into the structured record stored on a Resume row
(parsed skills, experience, education, projects).

The assistant has answered in two shapes over time:
- current: {"parsed_skills": {"technical": [{"skill", "level", "years"}], ...}, ...}
- legacy:  {"skills": {"technical": ["Python", ...], "soft": [...]}, ...}
           with free-text durations such as "2 years 3 months"
normalize_resume_payload() maps both onto StructuredResume.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

import config
from prompts.agent_prompts import AgentPrompts
from schemas import LegacyResumePayload, StructuredResume
from services.assistant_client import AssistantClient
from services.errors import IzzyError, ParseError, failure
from services.reply_parsing import extract_json_block

logger = logging.getLogger(__name__)


def is_legacy_payload(payload: Dict[str, Any]) -> bool:
    return "skills" in payload and "parsed_skills" not in payload


def normalize_resume_payload(payload: Dict[str, Any]) -> StructuredResume:
    """
    Convert either reply shape into the canonical StructuredResume.

    Pure function: no network, no database.

    Raises:
        ParseError: the payload matches neither shape
    """
    try:
        if is_legacy_payload(payload):
            logger.info("Converting legacy resume format to current schema")
            return LegacyResumePayload.model_validate(payload).to_structured()
        return StructuredResume.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Resume payload rejected: {e.error_count()} validation errors")
        raise ParseError("Failed to parse JSON response")


class ResumeParser:
    """
    Resume parsing agent.

    Attributes:
        assistant: Conversation provider
        assistant_id: Hosted assistant identifier; read from the environment
            on each call when not given
    """

    def __init__(self, assistant: AssistantClient, assistant_id: Optional[str] = None):
        self.assistant = assistant
        self.assistant_id = assistant_id

    def parse(self, resume_text: str) -> Dict[str, Any]:
        """
        Parse resume text into a structured record.

        Args:
            resume_text: Plain text extracted from a PDF or pasted by the user

        Returns:
            {"success": True, "data": <structured resume dict>} or
            {"success": False, "error": "..."}
        """
        try:
            return {"success": True, "data": self.parse_structured(resume_text).to_record()}
        except IzzyError as e:
            logger.warning(f"Resume parsing failed: {e}")
            return failure(e)
        except Exception as e:
            logger.exception("Resume parsing failed unexpectedly")
            return failure(e)

    def parse_structured(self, resume_text: str) -> StructuredResume:
        """Same as parse() but raises instead of returning a failure result."""
        assistant_id = self.assistant_id or config.get_assistant_id(config.RESUME_PARSER_ASSISTANT_ENV)

        logger.info(f"Parsing resume ({len(resume_text or '')} chars)")
        reply = self.assistant.converse(assistant_id, AgentPrompts.resume_parser(resume_text))

        payload = extract_json_block(reply.text)
        structured = normalize_resume_payload(payload)

        logger.info(
            f"Parsed resume: {len(structured.parsed_skills.technical)} technical skills, "
            f"{len(structured.experience)} experience entries"
        )
        return structured
