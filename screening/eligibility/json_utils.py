"""JSON extraction for criteria extractor output, which may arrive wrapped in prose."""
import json
import re
from typing import Any, Union

from screening.config.logging_config import get_logger

logger = get_logger(__name__)

_CLOSERS = {"{": "}", "[": "]"}


def extract_json_from_text(text: str) -> Union[dict, list]:
    """
    Extract a JSON object or array from extractor output text.

    Uses a three-step approach:
    1. Direct parse (text is pure JSON)
    2. Markdown code block extraction
    3. Bracket-counting parser (robust against leading/trailing prose)

    Raises:
        json.JSONDecodeError: If no valid JSON found
    """
    # Step 1: Direct parse
    try:
        parsed = json.loads(text)
        if isinstance(parsed, (dict, list)):
            return parsed
    except json.JSONDecodeError:
        pass

    # Step 2: Extract from markdown code blocks
    fence = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
    if fence:
        try:
            parsed = json.loads(fence.group(1))
            if isinstance(parsed, (dict, list)):
                return parsed
        except json.JSONDecodeError:
            logger.debug("Fenced block is not valid JSON, scanning text")

    # Step 3: Bracket-counting parser, starting at the first { or [
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        raise json.JSONDecodeError("No valid JSON found", text, 0)
    first = min(starts)
    opener = text[first]
    closer = _CLOSERS[opener]

    depth = 0
    last = -1
    in_string = False
    escape_next = False

    for i, char in enumerate(text[first:], first):
        if escape_next:
            escape_next = False
            continue
        if char == '\\':
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                last = i
                break

    if last == -1:
        raise json.JSONDecodeError("Unclosed brackets in JSON", text, first)

    return json.loads(text[first:last + 1])


def loads_any(payload: Any) -> Any:
    """Return payload unchanged unless it is text, in which case extract JSON from it."""
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8")
    if isinstance(payload, str):
        return extract_json_from_text(payload)
    return payload
