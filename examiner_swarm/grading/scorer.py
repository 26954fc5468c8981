"""
Response parser for examiner and summary output.

Model output is not guaranteed to be well-formed JSON. The parser never
raises to its callers: every response becomes either a StructuredOutput or a
FallbackOutput, and the runner builds its result from whichever it gets.
"""

import json
import math
import re
from typing import Any, NamedTuple

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


class ScoringError(Exception):
    """Raised when a JSON object cannot be extracted from a response."""

    def __init__(self, message: str, raw_response: str | None = None):
        self.raw_response = raw_response
        super().__init__(message)


class StructuredOutput(NamedTuple):
    """A response that contained a JSON object with a numeric score."""

    score: float
    feedback: str | None
    strengths: tuple[str, ...]
    improvements: tuple[str, ...]
    band: str | None


class FallbackOutput(NamedTuple):
    """A response that could not be read as structured output."""

    raw_text_prefix: str
    reason: str


ParsedExaminerOutput = StructuredOutput | FallbackOutput


class ResponseParser:
    """
    Extracts JSON objects from free-form model output.

    Handles fenced markdown blocks and objects embedded in surrounding prose.
    """

    def __init__(self, fallback_chars: int = 500):
        """
        Args:
            fallback_chars: Length of the raw-text prefix kept on fallback.
        """
        self._fallback_chars = fallback_chars

    def parse_examiner(self, response: str) -> ParsedExaminerOutput:
        """
        Parse one examiner's raw response.

        Args:
            response: Raw model output.

        Returns:
            StructuredOutput when a JSON object with a numeric `score` is found,
            otherwise FallbackOutput carrying a prefix of the raw text.
        """
        try:
            data = self.extract_json(response)
        except ScoringError as e:
            return self._fallback(response, str(e))

        score = _as_number(data.get("score"))
        if score is None:
            return self._fallback(response, "Response JSON has no numeric score")

        feedback = data.get("feedback")
        band = data.get("band")
        return StructuredOutput(
            score=score,
            feedback=str(feedback) if feedback not in (None, "") else None,
            strengths=_as_string_tuple(data.get("strengths")),
            improvements=_as_string_tuple(data.get("improvements")),
            band=str(band) if isinstance(band, str) and band else None,
        )

    def parse_summary(self, response: str) -> tuple[str, tuple[str, ...]]:
        """
        Parse the summary response.

        Returns:
            (summary, improvements); improvements capped at three.

        Raises:
            ScoringError: If no JSON object is present.
        """
        data = self.extract_json(response)
        summary = data.get("summary")
        improvements = _as_string_tuple(data.get("improvements"))
        return (str(summary).strip() if summary else "", improvements[:3])

    def truncate(self, response: str) -> str:
        """Stripped prefix of a raw response, as kept on fallback."""
        return response.strip()[: self._fallback_chars]

    def extract_json(self, response: str) -> dict[str, Any]:
        """
        Extract the first JSON object from a response.

        Args:
            response: Raw response text.

        Returns:
            The decoded object.

        Raises:
            ScoringError: If no decodable JSON object is present.
        """
        fenced = _FENCED_BLOCK.search(response)
        if fenced:
            try:
                data = json.loads(fenced.group(1).strip())
            except json.JSONDecodeError:
                data = None
            if isinstance(data, dict):
                return data

        start = response.find("{")
        if start == -1:
            raise ScoringError("No JSON object found in response", raw_response=response)

        while start != -1:
            candidate = _balanced_object(response, start)
            if candidate is None:
                # An unclosed brace; a later one may still open a complete object.
                start = response.find("{", start + 1)
                continue
            try:
                data = json.loads(candidate)
            except json.JSONDecodeError:
                data = None
            if isinstance(data, dict):
                return data
            start = response.find("{", start + 1)

        raise ScoringError("No valid JSON object in response", raw_response=response)

    def _fallback(self, response: str, reason: str) -> FallbackOutput:
        return FallbackOutput(
            raw_text_prefix=self.truncate(response),
            reason=reason,
        )


def _balanced_object(text: str, start: int) -> str | None:
    """Return the brace-balanced substring opening at `start`, ignoring braces in strings."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _as_string_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item).strip() for item in value if item is not None and str(item).strip())
