# backend/prompts/__init__.py
"""
Agent Prompts Package

Contains the message templates sent to the hosted assistants.
"""

from .agent_prompts import AgentPrompts

__all__ = [
    "AgentPrompts",
]
