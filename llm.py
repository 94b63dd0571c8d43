"""Meeting summary generation over an OpenAI-compatible chat completion API."""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Callable, Optional

from openai import OpenAI

from errors import LLMError
from schemas import SummaryOutput

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
FALLBACK_CONFIDENCE = 0.3

SYSTEM_PROMPT = """You are DayBrief, an expert meeting summarizer. Your job is to create a succinct, factual, and action-oriented brief based solely on the provided event metadata. Do not invent details. Prefer bullet points. When uncertain, state assumptions clearly.

Always respond with valid JSON in exactly this format:
{
  "summaryMd": "markdown bullets only",
  "actionItems": ["Owner: Task — Due (if any)", ...],
  "confidence": 0.0
}"""

FENCED_JSON = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")


# ---- Response parsing ----
#
# Each stage returns a SummaryOutput or None to hand over to the next one.
# The last resort never fails: the raw text becomes the summary.

def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


def _validate(data: Any) -> Optional[SummaryOutput]:
    if not isinstance(data, dict):
        return None
    summary_md = data.get("summaryMd")
    action_items = data.get("actionItems")
    confidence = data.get("confidence")
    if not isinstance(summary_md, str) or not isinstance(action_items, list):
        return None
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        return None
    return SummaryOutput(
        summary_md=summary_md,
        action_items=[str(item) for item in action_items],
        confidence=min(max(float(confidence), 0.0), 1.0),
    )


def parse_direct(content: str) -> Optional[SummaryOutput]:
    return _validate(_load_json(content))


def parse_fenced(content: str) -> Optional[SummaryOutput]:
    match = FENCED_JSON.search(content)
    if not match:
        return None
    return _validate(_load_json(match.group(1)))


def parse_fallback(content: str) -> SummaryOutput:
    return SummaryOutput(summary_md=content, action_items=[], confidence=FALLBACK_CONFIDENCE)


PARSE_STAGES: tuple[Callable[[str], Optional[SummaryOutput]], ...] = (
    parse_direct,
    parse_fenced,
)


def parse_summary(content: str) -> SummaryOutput:
    for stage in PARSE_STAGES:
        result = stage(content)
        if result is not None:
            return result
    logger.warning("LLM response was not valid summary JSON, using raw text")
    return parse_fallback(content)


class SummaryGenerator:
    """Turns a built prompt into a SummaryOutput.

    Args:
        api_key: OpenAI API key.
        base_url: API base, e.g. ``https://api.openai.com/v1``.
        max_retries: Extra attempts after the first failure. Attempt ``n``
            is preceded by an ``n`` second pause.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None = None,
        model: str = DEFAULT_MODEL,
        max_retries: int = 2,
        temperature: float = 0.1,
        max_tokens: int = 1000,
        timeout: float = 60.0,
    ):
        if not api_key:
            raise LLMError(
                "OpenAI API key is required. "
                "Pass it directly or set OPENAI_API_KEY in your environment."
            )
        # retries are handled below, not by the SDK
        self._client = OpenAI(api_key=api_key, base_url=base_url, max_retries=0, timeout=timeout)
        self.model = model
        self.max_retries = max_retries
        self.temperature = temperature
        self.max_tokens = max_tokens

    @property
    def client(self):
        """Access the underlying OpenAI SDK client."""
        return self._client

    def complete(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise LLMError("No content in LLM response")
        return content

    def generate(self, prompt: str) -> SummaryOutput:
        last_error: Exception | None = None
        for attempt in range(self.max_retries + 1):
            try:
                return parse_summary(self.complete(prompt))
            except Exception as e:
                last_error = e
                logger.warning(f"Summary attempt {attempt + 1} failed: {e}")
                if attempt < self.max_retries:
                    time.sleep(attempt + 1)

        if isinstance(last_error, LLMError):
            raise last_error
        raise LLMError(f"LLM API error: {last_error}") from last_error
