"""StatementAgent: LLM-backed extraction of transactions from bank statements.

This module defines the StatementAgent class, which sends statement text or page images to a Groq-hosted
language model in JSON mode and returns the raw transaction rows it finds. Calls are retried with a linear
backoff; once the retries are spent the failure is raised as an ExtractionError so the import batch fails as
a whole.
"""

import json
import time
from collections.abc import Callable

from colorlog.escape_codes import escape_codes
from groq import Groq

from ledger.agents.base import BaseAgent, StatementImage
from ledger.agents.prompts import (
    TEXT_PROMPT_LOG_LABEL,
    TEXT_SYSTEM_PROMPT,
    TEXT_USER_PROMPT_TEMPLATE,
    VISION_PROMPT_LOG_LABEL,
    VISION_SYSTEM_PROMPT,
    VISION_USER_PROMPT,
)
from ledger.agents.registry import AgentRegistry
from ledger.core.errors import ExtractionError
from ledger.core.settings import Settings
from ledger.core.utils import get_logger

MAX_OUTPUT_LOG_LEN = 300

logger = get_logger("ledger.agent")


def _get_color(color: str) -> str:
    return escape_codes.get(color, "")


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    text = raw.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_transactions_payload(raw: str) -> list[dict]:
    """Parse ``{"transactions": [...]}`` out of an LLM response."""
    try:
        data = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError as exc:
        msg = f"LLM returned invalid JSON: {exc}"
        raise ValueError(msg) from exc
    transactions = data.get("transactions", []) if isinstance(data, dict) else data
    if not isinstance(transactions, list):
        msg = "Invalid response format: transactions is not an array"
        raise ValueError(msg)
    return transactions


class StatementAgent(BaseAgent):
    """Agent responsible for LLM-based extraction of statement transactions."""

    def __init__(self, llm_client: object, settings: Settings, sleep: Callable[[float], None] = time.sleep) -> None:
        """Initialize the StatementAgent with an LLM client and settings."""
        self.llm_client = llm_client
        self.settings = settings
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "StatementAgent":
        """Build an agent backed by a Groq client."""
        return cls(Groq(api_key=settings.groq_api_key), settings)

    def extract_text(self, content: str, file_type: str) -> list[dict]:
        """Send statement text to the text model."""
        limit = self.settings.max_statement_chars
        if len(content) > limit:
            logger.warning(f"Statement text truncated from {len(content)} to {limit} characters")
            content = content[:limit] + "\n... (truncated)"
        user_prompt = TEXT_USER_PROMPT_TEMPLATE.format(file_type=file_type.upper(), content=content)
        messages = [
            {"role": "system", "content": TEXT_SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]
        return self._complete(self.settings.groq_text_model, messages, TEXT_PROMPT_LOG_LABEL)

    def extract_images(self, images: list[StatementImage]) -> list[dict]:
        """Send statement page images to the vision model."""
        if not images:
            return []
        parts: list[dict] = [{"type": "text", "text": VISION_USER_PROMPT}]
        parts.extend({"type": "image_url", "image_url": {"url": image.data_url}} for image in images)
        messages = [
            {"role": "system", "content": VISION_SYSTEM_PROMPT},
            {"role": "user", "content": parts},
        ]
        return self._complete(self.settings.groq_vision_model, messages, VISION_PROMPT_LOG_LABEL)

    def _complete(self, model: str, messages: list[dict], label: str) -> list[dict]:
        """Call the LLM with retries and return the parsed transaction rows."""
        cyan = _get_color("cyan")
        green = _get_color("green")
        yellow = _get_color("yellow")
        reset = _get_color("reset")
        attempts = max(1, self.settings.llm_max_retries)
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            logger.info(f"{yellow}[{attempt}/{attempts}] PROMPT: {label} ({model}){reset}")
            try:
                completion = self.llm_client.chat.completions.create(
                    model=model,
                    messages=messages,
                    temperature=self.settings.llm_temperature,
                    max_completion_tokens=self.settings.llm_max_completion_tokens,
                    response_format={"type": "json_object"},
                )
                raw_output = completion.choices[0].message.content
                if not raw_output:
                    msg = "No response content from the LLM"
                    raise ValueError(msg)
                logger.info(f"{cyan}OUTPUT: {raw_output[:MAX_OUTPUT_LOG_LEN]}{reset}")
                rows = parse_transactions_payload(raw_output)
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                logger.warning(f"Attempt {attempt}/{attempts} failed: {exc}")
                if attempt < attempts:
                    self._sleep(self.settings.llm_retry_delay_seconds * attempt)
                continue
            logger.info(f"{green}AGENT: Extracted {len(rows)} transaction rows{reset}")
            return rows
        msg = f"Groq extraction failed after {attempts} attempts: {last_error}"
        logger.error(msg)
        raise ExtractionError(msg) from last_error


AgentRegistry.register("groq", StatementAgent)
