import json
import logging
import re
from typing import Any, Optional

import json5
import demjson3

logger = logging.getLogger(__name__)


class JSONParseError(ValueError):
    """Raised when an LLM response cannot be turned into JSON by any layer."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Return the body of the first markdown code block, or the text unchanged."""
    match = _FENCE_PATTERN.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def extract_json_block(text: str) -> Optional[str]:
    """
    Find the first balanced {...} or [...] block in text.

    String literals are tracked so braces inside quoted values do not
    affect the depth count.
    """
    start = None
    for i, ch in enumerate(text):
        if ch in "{[":
            start = i
            break
    if start is None:
        return None

    opener = text[start]
    closer = "}" if opener == "{" else "]"
    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    # Unbalanced: hand the tail to the tolerant parsers
    return text[start:]


# JSON Repair and Parsing Function
def repair_and_parse_json(response_text: str) -> Any:
    """
    Multi-layered JSON parsing with auto-repair capabilities.

    Attempts to parse JSON through multiple strategies:
    1. Standard json.loads() on the fence-stripped text
    2. Standard json.loads() on the first balanced JSON block
    3. Clean common issues (trailing commas, comments)
    4. json5 parser (tolerates comments and trailing commas)
    5. demjson3 parser (auto-repairs many errors)

    Args:
        response_text: Raw text response from an LLM provider

    Returns:
        Parsed JSON value (usually a dict)

    Raises:
        JSONParseError: If all parsing attempts fail
    """
    if not response_text or not response_text.strip():
        raise JSONParseError("Empty response from AI provider", response_text or "")

    errors = []
    text = strip_code_fences(response_text)

    # Layer 1: Standard JSON parser
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        errors.append(f"Standard JSON: {str(e)}")
        logger.debug(f"❌ Layer 1 failed: {str(e)}")

    candidate = extract_json_block(text) or text

    # Layer 2: Balanced block extraction (prose around the JSON)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        errors.append(f"Extracted JSON: {str(e)}")
        logger.debug(f"❌ Layer 2 failed: {str(e)}")

    # Layer 3: Clean common LLM JSON mistakes
    try:
        cleaned = candidate

        # Remove trailing commas before closing braces/brackets
        cleaned = re.sub(r",(\s*[}\]])", r"\1", cleaned)

        # Remove multi-line comments (/* ... */)
        cleaned = re.sub(r"/\*.*?\*/", "", cleaned, flags=re.DOTALL)

        # Remove single-line comments, keeping URLs intact
        cleaned = re.sub(r"(?<![:\"'])//[^\n]*", "", cleaned)

        result = json.loads(cleaned)
        logger.info("🔧 Parsed AI response after cleaning")
        return result
    except json.JSONDecodeError as e:
        errors.append(f"Cleaned JSON: {str(e)}")
        logger.debug(f"❌ Layer 3 failed: {str(e)}")

    # Layer 4: json5 (tolerates trailing commas, comments and single quotes)
    try:
        result = json5.loads(candidate)
        logger.info("🔧 Parsed AI response with json5")
        return result
    except Exception as e:
        errors.append(f"JSON5: {str(e)}")
        logger.debug(f"❌ Layer 4 failed: {str(e)}")

    # Layer 5: demjson3 (auto-repairs many JSON errors)
    try:
        result = demjson3.decode(candidate)
        logger.info("🔧 Parsed AI response with demjson3")
        return result
    except Exception as e:
        errors.append(f"DemJSON: {str(e)}")
        logger.debug(f"❌ Layer 5 failed: {str(e)}")

    logger.warning(
        f"⚠️ JSON parsing failed after all layers. Preview: {response_text[:200]}..."
    )
    raise JSONParseError(
        f"Failed to parse JSON after all attempts. Errors: {'; '.join(errors[:2])}",
        response_text,
    )
