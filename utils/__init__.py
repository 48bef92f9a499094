# Utils package - Utility modules organized by domain
# Import from subpackages for convenience

from .concurrency import Outcome, gather_settled
from .parsing.json import JSONParseError, repair_and_parse_json

__all__ = [
    "JSONParseError",
    "Outcome",
    "gather_settled",
    "repair_and_parse_json",
]
