# backend/services/reply_parsing.py
"""
JSON extraction from free-form assistant replies.

Assistants are asked for JSON but answer in prose more often than not.
The reply is searched for a fenced ```json block first; failing that, the
widest {...} span in the whole text is used.
"""

import json
import logging
import re
from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel, ValidationError

from services.errors import ParseError

logger = logging.getLogger(__name__)

FENCED_JSON_RE = re.compile(r"```json\s*\n([\s\S]*?)\n\s*```")
BARE_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

ModelT = TypeVar("ModelT", bound=BaseModel)


def extract_json_block(text: str) -> Dict[str, Any]:
    """
    Pull the JSON object out of an assistant reply.

    Raises:
        ParseError: no candidate block was found, the block is not valid
            JSON, or it decodes to something other than an object.
    """
    text = text or ""
    match = FENCED_JSON_RE.search(text)
    candidate = match.group(1) if match else None

    if candidate is None:
        match = BARE_OBJECT_RE.search(text)
        candidate = match.group(0) if match else None

    if candidate is None:
        raise ParseError("Could not parse JSON response from assistant")

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning(f"Assistant reply held malformed JSON: {e}")
        raise ParseError("Failed to parse JSON response")

    if not isinstance(data, dict):
        raise ParseError("Failed to parse JSON response")

    return data


def parse_reply(text: str, model: Type[ModelT]) -> ModelT:
    """Extract the JSON block and validate it against a payload model."""
    data = extract_json_block(text)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Assistant reply did not match {model.__name__}: {e.error_count()} errors")
        raise ParseError(f"Unexpected response format from assistant: {_first_error(e)}")


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
