# backend/prompts/agent_prompts.py
"""
Agent Prompt Templates

User-message templates sent to the hosted assistants. Each assistant carries
its own system instructions and output schema on the provider side; these
templates only wrap the per-request data.

Usage:
    from prompts.agent_prompts import AgentPrompts

    content = AgentPrompts.strategist(resume_record, job_description)
"""

import json
from typing import Any, Dict, List


def _dump(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, default=str)


class AgentPrompts:
    """
    Static class containing the message templates for every agent.

    All methods are static and return the exact text placed on the thread.
    """

    @staticmethod
    def resume_parser(resume_text: str) -> str:
        return f"Please analyze this resume and extract the key information:\n\n{resume_text}"

    @staticmethod
    def strategist(resume_record: Dict[str, Any], job_description: str) -> str:
        """
        Args:
            resume_record: parsed_skills / experience / education / projects
            job_description: Raw job description pasted by the user
        """
        return (
            "I need to prepare for a job interview. Here is my resume data in JSON format:\n\n"
            f"{_dump(resume_record)}\n\n"
            "And here is the job description:\n\n"
            f"{job_description}\n\n"
            "Please analyze these and create an interview strategy."
        )

    @staticmethod
    def interviewer_start(
        job_info: Dict[str, Any],
        strategy: Dict[str, Any],
        questions: List[Dict[str, Any]],
    ) -> str:
        """
        First message of an interview thread. Bundles everything the
        interviewer persona needs, flagged as the first interaction.
        """
        context = {
            "job_info": job_info,
            "strategy": strategy,
            "questions": questions,
            "session_status": {
                "is_first_interaction": True,
                "current_question_index": 0,
            },
        }
        return (
            "I'm ready to start my interview preparation. This is the first message, "
            "please greet me and start the interview based on this context:\n\n"
            f"{_dump(context)}"
        )

    @staticmethod
    def evaluator_session(context: Dict[str, Any]) -> str:
        return (
            "Please provide a comprehensive evaluation of this interview session. "
            "Analyze each individual answer AND provide an overall session evaluation. "
            "Return your response in a structured JSON format that includes both the "
            "session-level evaluation and individual answer evaluations.\n\n"
            f"Context:\n{_dump(context)}"
        )
