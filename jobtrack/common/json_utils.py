"""
JSON Utilities for LLM Response Parsing.

Turns raw model output into a parsed JSON object or array. Small local
models wrap JSON in markdown fences, prefix it with chatter, and make
small syntax mistakes (single quotes, trailing commas, unquoted keys,
comments, a dangling tail). The pipeline is:

    clean_response -> locate_structure -> repair_and_parse

repair_and_parse tries an ordered list of strategies and returns the first
success:

    1. parse_repaired        json-repair, then json.loads
    2. parse_direct          json.loads on the candidate as-is
    3. parse_longest_prefix  json.loads on ever-shorter prefixes

Every strategy only ever returns a dict or a list.
"""

import json
import logging
import re
from typing import Any, Callable, List, Sequence, Tuple, Union

from json_repair import repair_json

from jobtrack.common.errors import (
    EmptyResponseError,
    JsonExtractionFailedError,
    NoJsonFoundError,
)

logger = logging.getLogger(__name__)

JsonValue = Union[dict, list]
Strategy = Callable[[str], Any]

# ``` or ```json / ```JSON / ```javascript ...
_FENCE_PATTERN = re.compile(r"```[A-Za-z0-9_+-]*")
# Everything before the first structural opener, parenthetical chatter included
_LEADING_CHATTER_PATTERN = re.compile(r"^[^{\[]*(?=[{\[])", re.DOTALL)

_DECODER = json.JSONDecoder()


class AllStrategiesFailed(Exception):
    """
    Raised by first_ok when no strategy succeeds.

    Attributes:
        failures: (strategy name, exception) per attempted strategy, in order
    """

    def __init__(self, failures: List[Tuple[str, Exception]]):
        self.failures = failures
        summary = "; ".join(f"{name}: {error}" for name, error in failures)
        super().__init__(f"All strategies failed ({summary})")


def first_ok(strategies: Sequence[Strategy], value: str) -> Any:
    """
    Return the result of the first strategy that does not raise.

    Strategies run strictly in order and later ones are never attempted
    once one succeeds.

    Args:
        strategies: Callables taking the value
        value: Input passed to each strategy

    Returns:
        The first successful result

    Raises:
        AllStrategiesFailed: If every strategy raised
    """
    failures: List[Tuple[str, Exception]] = []
    for strategy in strategies:
        name = getattr(strategy, "__name__", repr(strategy))
        try:
            return strategy(value)
        except Exception as e:
            logger.debug(f"[json_utils] {name} failed: {type(e).__name__}: {e}")
            failures.append((name, e))
    raise AllStrategiesFailed(failures)


def strip_code_fences(text: str) -> str:
    """
    Remove every markdown code fence marker from text.

    Handles:
    - ```json ... ```
    - ``` ... ```
    - fences in the middle of surrounding prose

    Args:
        text: Text that may contain code fences

    Returns:
        Trimmed text with all fence markers removed
    """
    return _FENCE_PATTERN.sub("", text).strip()


def clean_response(text: str) -> str:
    """
    Remove presentation artifacts wrapped around structured output.

    Strips code fences, then the leading run of characters before the first
    '{' or '['. When neither bracket appears, the fence-free text is kept
    so the locator can report it.

    Args:
        text: Raw model response

    Returns:
        Trimmed cleaned candidate

    Raises:
        EmptyResponseError: If text is None, empty, whitespace-only, or
            nothing but fences

    Example:
        >>> clean_response('Sure! ```json\\n{"a": 1}\\n```')
        '{"a": 1}'
    """
    if not text or not text.strip():
        raise EmptyResponseError("Empty response: no content to parse")

    result = strip_code_fences(text)
    if not result:
        raise EmptyResponseError("Empty response: only code fences, no content", text)
    result = _LEADING_CHATTER_PATTERN.sub("", result, count=1)
    return result.strip()


def locate_structure(candidate: str) -> str:
    """
    Return candidate from the start of its JSON structure.

    The earlier of the first '{' and the first '[' wins, whatever its type,
    so array-rooted output is handled as well as object-rooted output.

    Raises:
        NoJsonFoundError: If neither bracket appears anywhere
    """
    starts = [index for index in (candidate.find("{"), candidate.find("[")) if index != -1]
    if not starts:
        raise NoJsonFoundError(
            f"No JSON object or array found in text: {candidate[:200]}",
            candidate,
        )
    return candidate[min(starts):]


def _require_structure(value: Any) -> JsonValue:
    if not isinstance(value, (dict, list)):
        raise ValueError(f"Expected JSON object or array, got {type(value).__name__}")
    return value


def _has_valid_head_and_tail(candidate: str) -> bool:
    try:
        _, end = _DECODER.raw_decode(candidate)
    except ValueError:
        return False
    return bool(candidate[end:].strip())


def parse_repaired(candidate: str) -> JsonValue:
    """
    Repair common syntax mistakes with json-repair, then parse.

    json-repair collects every top-level value it can find into one list,
    so prose after the answer such as "scores are in [0, 10]" would end up
    next to it. Two guards keep the leading value intact:

    - valid JSON followed by a tail is left to parse_longest_prefix
    - an object-rooted candidate that repairs to a list yields its first
      element, the repaired leading object

    Raises:
        ValueError: If the repaired text is not a single object or array
    """
    if _has_valid_head_and_tail(candidate):
        raise ValueError("Valid JSON followed by trailing text, not repairing")

    repaired = json.loads(repair_json(candidate))
    if candidate.startswith("{") and isinstance(repaired, list):
        if repaired and isinstance(repaired[0], dict):
            logger.debug(
                f"[json_utils] Repair gathered {len(repaired)} top-level values, "
                f"keeping the leading object"
            )
            return repaired[0]
        raise ValueError("Object-rooted candidate repaired to an array")
    return _require_structure(repaired)


def parse_direct(candidate: str) -> JsonValue:
    """Parse the candidate unchanged."""
    return _require_structure(json.loads(candidate))


def parse_longest_prefix(candidate: str) -> JsonValue:
    """
    Parse the longest prefix of candidate that is valid JSON.

    Walks from the full length down to zero, so trailing garbage is dropped
    one character at a time and the longest valid prefix wins. Never adds
    content; total over every length.

    Raises:
        ValueError: If no prefix parses
    """
    for length in range(len(candidate), -1, -1):
        try:
            value = json.loads(candidate[:length])
        except ValueError:
            continue
        if isinstance(value, (dict, list)):
            if length < len(candidate):
                logger.debug(
                    f"[json_utils] Recovered JSON by dropping "
                    f"{len(candidate) - length} trailing chars"
                )
            return value
    raise ValueError("No prefix of the candidate is valid JSON")


PARSE_STRATEGIES: Tuple[Strategy, ...] = (
    parse_repaired,
    parse_direct,
    parse_longest_prefix,
)


def repair_and_parse(candidate: str) -> JsonValue:
    """
    Convert a located candidate into a parsed object or array.

    Raises:
        JsonExtractionFailedError: If every strategy fails; carries a
            preview of at most 2000 characters of the candidate
    """
    try:
        return first_ok(PARSE_STRATEGIES, candidate)
    except AllStrategiesFailed as e:
        raise JsonExtractionFailedError(
            f"Failed to parse or repair JSON after {len(e.failures)} strategies",
            candidate,
        ) from e


def parse_llm_json(text: str) -> JsonValue:
    """
    Parse JSON from an LLM response with robust error recovery.

    Handles common LLM output issues:
    - Markdown code blocks (```json ... ```)
    - JSON embedded in surrounding text
    - Object- or array-rooted output
    - Single quotes, trailing commas, unquoted keys, comments
    - Trailing garbage after the JSON

    Args:
        text: Raw LLM response text that may contain JSON

    Returns:
        Parsed dict or list

    Raises:
        EmptyResponseError: If text is empty
        NoJsonFoundError: If the text has no '{' or '['
        JsonExtractionFailedError: If no strategy could parse it

    Example:
        >>> parse_llm_json('```json\\n{"key": "value"}\\n```')
        {'key': 'value'}
        >>> parse_llm_json("{'name': 'test',}")
        {'name': 'test'}
    """
    candidate = locate_structure(clean_response(text))
    return repair_and_parse(candidate)
