# backend/services/errors.py
"""
Error taxonomy shared by every agent and service.

Internal helpers raise these; public entry points catch them and turn them
into the uniform {"success": False, "error": "..."} result.
"""


class IzzyError(Exception):
    """Base class for all expected failures."""


class AuthError(IzzyError):
    """No authenticated user, or the caller does not own the entity."""


class ConfigError(IzzyError):
    """A required assistant identifier or setting is missing."""


class NotFoundError(IzzyError):
    """The referenced entity does not exist or is not visible to the caller."""


class ProviderError(IzzyError):
    """The hosted assistant run failed or returned an unusable reply."""


class AssistantTimeoutError(ProviderError):
    """The assistant run did not reach a terminal status before the deadline."""


class ParseError(IzzyError):
    """The assistant reply contained no JSON, or the JSON did not parse."""


class StorageError(IzzyError):
    """The relational store rejected a read or write."""


def failure(error: Exception) -> dict:
    """Build the uniform failure result."""
    return {"success": False, "error": str(error)}
