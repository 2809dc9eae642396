"""
Extraction service: free text → list[ParsedHabit] via an OpenAI chat model.

Public API
----------
HabitExtractor                      — interface used by the habit service
OpenAIHabitExtractor(...).extract() → list[ParsedHabit]
parse_extraction_output(raw)        → list[ParsedHabit]

An empty list is a valid answer ("no habits detected"). Anything that is not
a JSON array of valid items is an upstream failure and raises
ExtractionFailedError; nothing here retries.
"""
from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

from openai import OpenAI, OpenAIError
from pydantic import TypeAdapter, ValidationError

from habitflow.core.errors import ExtractionFailedError
from habitflow.schemas.habit import HABIT_CATEGORIES, ParsedHabit

logger = logging.getLogger(__name__)

_PARSED_LIST = TypeAdapter(list[ParsedHabit])

# ```json ... ``` wrappers some models add despite being told not to
_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)

SYSTEM_PROMPT = f"""\
You are a data extraction engine. Parse the user's habit-tracking text and
output ONLY a JSON array of objects, nothing else.

Each object must follow this schema:
  {{"activity": string, "quantity": number, "unit": string,
    "category": string, "confidence": number}}

Rules:
1. Identify every habit mentioned and create one object per habit.
2. Default quantity to 1 when no numeric value is present.
3. Normalize units ("hrs" -> "hours", "mins" -> "minutes").
4. category is one of: {", ".join(HABIT_CATEGORIES)}.
5. confidence is between 0 and 1, based on how clear and specific the input is.
6. If no habits are found, return an empty array: [].

Example:
Input: "Ran 5 miles and meditated for 10 minutes"
Output: [{{"activity":"running","quantity":5,"unit":"miles","category":"fitness","confidence":0.95}},
{{"activity":"meditation","quantity":10,"unit":"minutes","category":"self_care","confidence":0.9}}]

Respond with valid JSON only, no comments, explanations or extra keys.
"""


def parse_extraction_output(raw: Optional[str]) -> list[ParsedHabit]:
    """Validate the model's text answer into ParsedHabit items."""
    clean = _FENCE_RE.sub("", raw or "").strip()
    if not clean:
        raise ExtractionFailedError(reason="empty response from extraction model")
    try:
        data = json.loads(clean)
    except json.JSONDecodeError as exc:
        raise ExtractionFailedError(reason="extraction model returned invalid JSON") from exc

    if not isinstance(data, list):
        raise ExtractionFailedError(reason="extraction model did not return a JSON array")

    try:
        return _PARSED_LIST.validate_python(data)
    except ValidationError as exc:
        raise ExtractionFailedError(
            reason=f"extraction model returned {exc.error_count()} invalid item field(s)"
        ) from exc


class HabitExtractor(ABC):
    """Turns free text into structured habit items."""

    @abstractmethod
    def extract(self, text: str) -> list[ParsedHabit]:
        """Return the items found in `text`; raise ExtractionFailedError on upstream failure."""


class OpenAIHabitExtractor(HabitExtractor):
    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
    ):
        self.model = model
        self._client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0) if api_key else None

    def extract(self, text: str) -> list[ParsedHabit]:
        if self._client is None:
            logger.error("Habit extraction requested but OPENAI_API_KEY is not set")
            raise ExtractionFailedError(reason="extraction service is not configured")

        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": text},
                ],
                temperature=0,
            )
        except OpenAIError as exc:
            logger.warning("Extraction call to %s failed: %s", self.model, exc)
            raise ExtractionFailedError(reason=type(exc).__name__) from exc

        content = response.choices[0].message.content if response.choices else None
        items = parse_extraction_output(content)
        logger.info("Extracted %d habit item(s) with %s", len(items), self.model)
        return items
