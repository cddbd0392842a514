# backend/services/assistant_client.py
"""
Assistant Client Service

Thin wrapper over the OpenAI Assistants API (threads, messages, runs).

Every agent talks to its hosted assistant through the same protocol:
1. Create a thread (or reuse one for a multi-turn conversation)
2. Append the user message
3. Start a run against the assistant
4. Poll the run until it leaves the in-progress states
5. Read the newest assistant message as plain text

Polling backs off exponentially and gives up at a deadline, raising
AssistantTimeoutError instead of waiting forever on a stuck run.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Optional

from openai import OpenAI

import config
from services.errors import AssistantTimeoutError, ConfigError, ProviderError

logger = logging.getLogger(__name__)


@dataclass
class AssistantReply:
    """Text of the newest assistant message plus the thread it lives on."""
    thread_id: str
    text: str


class AssistantClient:
    """
    Conversation provider used by the resume parser, strategist,
    interviewer and evaluator.

    Attributes:
        client: OpenAI SDK client (injected in tests)
        initial_poll_interval: Seconds to wait before the first re-check
        max_poll_interval: Ceiling for the backoff delay
        backoff_factor: Multiplier applied to the delay after each poll
        timeout_seconds: Deadline for a single run
    """

    # Run statuses that mean "keep waiting"
    IN_PROGRESS_STATUSES = {"queued", "in_progress", "cancelling"}
    COMPLETED_STATUS = "completed"

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        initial_poll_interval: Optional[float] = None,
        max_poll_interval: Optional[float] = None,
        backoff_factor: float = 2.0,
        timeout_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self.initial_poll_interval = (
            initial_poll_interval if initial_poll_interval is not None else config.poll_initial_seconds()
        )
        self.max_poll_interval = (
            max_poll_interval if max_poll_interval is not None else config.poll_max_seconds()
        )
        self.backoff_factor = backoff_factor
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else config.run_timeout_seconds()
        )
        self._sleep = sleep
        self._clock = clock

    @property
    def client(self) -> OpenAI:
        """OpenAI SDK client, built on first use."""
        if self._client is None:
            api_key = os.environ.get("OPENAI_API_KEY")
            if not api_key:
                raise ConfigError("OpenAI API key not configured")
            self._client = OpenAI(api_key=api_key)
        return self._client

    # ------------------------------------------------------------------
    # Low-level protocol steps
    # ------------------------------------------------------------------

    def create_thread(self) -> str:
        thread = self.client.beta.threads.create()
        logger.info(f"Created assistant thread {thread.id}")
        return thread.id

    def add_user_message(self, thread_id: str, content: str) -> None:
        self.client.beta.threads.messages.create(
            thread_id=thread_id,
            role="user",
            content=content,
        )

    def start_run(self, thread_id: str, assistant_id: str) -> str:
        run = self.client.beta.threads.runs.create(
            thread_id=thread_id,
            assistant_id=assistant_id,
        )
        return run.id

    def wait_for_run(self, thread_id: str, run_id: str):
        """
        Poll a run until it completes.

        Raises:
            AssistantTimeoutError: the deadline passed while the run was
                still queued or in progress
            ProviderError: the run ended in any status other than completed
        """
        deadline = self._clock() + self.timeout_seconds
        interval = self.initial_poll_interval

        run = self.client.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
        polls = 1

        while run.status in self.IN_PROGRESS_STATUSES:
            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.error(
                    f"Run {run_id} on thread {thread_id} still '{run.status}' "
                    f"after {self.timeout_seconds:.0f}s ({polls} polls)"
                )
                raise AssistantTimeoutError(
                    f"Assistant did not respond within {self.timeout_seconds:.0f} seconds"
                )

            self._sleep(min(interval, remaining))
            interval = min(interval * self.backoff_factor, self.max_poll_interval)

            run = self.client.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
            polls += 1

        if run.status != self.COMPLETED_STATUS:
            logger.error(f"Run {run_id} on thread {thread_id} ended with status '{run.status}'")
            raise ProviderError("Assistant processing failed")

        logger.info(f"Run {run_id} completed after {polls} polls")
        return run

    def latest_reply(self, thread_id: str) -> str:
        """Return the text of the newest assistant message on the thread."""
        messages = self.client.beta.threads.messages.list(thread_id=thread_id, order="desc")

        assistant_messages = [m for m in messages.data if m.role == "assistant"]
        if not assistant_messages:
            raise ProviderError("No response from assistant")

        content = assistant_messages[0].content[0]
        if content.type != "text":
            raise ProviderError("Expected text response from assistant")

        return content.text.value

    # ------------------------------------------------------------------
    # Full round trip
    # ------------------------------------------------------------------

    def converse(
        self,
        assistant_id: str,
        content: str,
        thread_id: Optional[str] = None,
    ) -> AssistantReply:
        """
        Send one user message and wait for the assistant's answer.

        Args:
            assistant_id: Hosted assistant to run
            content: User message text
            thread_id: Existing thread to continue, or None for a new one

        Returns:
            AssistantReply with the thread id and the reply text
        """
        start_time = time.time()

        if thread_id is None:
            thread_id = self.create_thread()

        self.add_user_message(thread_id, content)
        run_id = self.start_run(thread_id, assistant_id)
        self.wait_for_run(thread_id, run_id)
        text = self.latest_reply(thread_id)

        elapsed = (time.time() - start_time) * 1000
        logger.info(
            f"Assistant {assistant_id} replied on thread {thread_id} "
            f"({len(text)} chars, {elapsed:.0f}ms)"
        )
        return AssistantReply(thread_id=thread_id, text=text)


_assistant_client_instance: Optional[AssistantClient] = None


def get_assistant_client() -> AssistantClient:
    """
    Get or create the shared AssistantClient instance.

    Returns:
        Shared AssistantClient instance
    """
    global _assistant_client_instance

    if _assistant_client_instance is None:
        _assistant_client_instance = AssistantClient()

    return _assistant_client_instance


def reset_assistant_client():
    """Reset the shared instance (useful for testing)."""
    global _assistant_client_instance
    _assistant_client_instance = None
    logger.info("AssistantClient singleton reset")
