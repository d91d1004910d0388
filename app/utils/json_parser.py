import json
import re
from typing import Any, Dict, List, Union

from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_TRAILING_COMMA_PATTERN = re.compile(r",\s*([}\]])")


def parse_json_safely(text: str) -> Union[Dict[str, Any], List[Any], None]:
    """Parse JSON from LLM output, tolerating common formatting issues.

    Handles:
    - Markdown code fences (```json ... ```)
    - Prose before or after the JSON payload
    - Trailing commas before a closing bracket

    Args:
        text: The text containing JSON

    Returns:
        Parsed JSON object or None if parsing fails
    """
    if not text:
        return None

    cleaned_text = _FENCE_PATTERN.sub("", text.strip()).strip()

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Initial JSON parse failed: {e}, attempting repairs...")

    candidate = _outermost_json(cleaned_text)
    if candidate is None:
        LOGGER.error("No JSON payload found in response", extra={"preview": cleaned_text[:200]})
        return None

    for attempt in (candidate, _TRAILING_COMMA_PATTERN.sub(r"\1", candidate)):
        try:
            return json.loads(attempt)
        except json.JSONDecodeError:
            continue

    LOGGER.error("Failed to parse JSON after repairs", extra={"preview": cleaned_text[:200]})
    return None


def _outermost_json(text: str) -> Union[str, None]:
    """Slice from the first opening bracket to its last matching closer."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None

    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        return None
    return text[start:end + 1]
