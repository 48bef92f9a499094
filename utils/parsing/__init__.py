# Parsing subpackage - LLM response parsing utilities
from .json import JSONParseError, extract_json_block, repair_and_parse_json, strip_code_fences

__all__ = [
    "JSONParseError",
    "extract_json_block",
    "repair_and_parse_json",
    "strip_code_fences",
]
