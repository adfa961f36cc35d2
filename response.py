import re
from typing import Any, Dict, Optional

from pydantic import BaseModel

PROFILE_URL_PATTERN = re.compile(r"^https?://(www\.)?linkedin\.com/in/([a-zA-Z0-9_-]+)/?$")
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
CANONICAL_PREFIX = "https://www.linkedin.com/in/"

INVALID_URL_MESSAGE = "Invalid LinkedIn profile URL. Example: https://www.linkedin.com/in/username"


def validate_linkedin_url(value: Optional[str]) -> Optional[str]:
    """Normalize a profile URL or bare username to `https://www.linkedin.com/in/<slug>`.

    Returns None for anything that is not a single-profile URL.
    """
    if not value or not isinstance(value, str):
        return None

    cleaned = value.strip().rstrip("/")
    if cleaned.startswith(("linkedin.com", "www.linkedin.com")):
        cleaned = "https://" + cleaned

    m = PROFILE_URL_PATTERN.match(cleaned)
    if m:
        return CANONICAL_PREFIX + m.group(2)

    if USERNAME_PATTERN.match(cleaned):
        return CANONICAL_PREFIX + cleaned

    return None


def build_response(data: Any) -> Dict[str, Any]:
    """Success envelope shared by every route.

    Pydantic documents are dumped here so routes can hand back either a
    model or a plain dict.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump()
    return {"success": True, "data": data}


def build_error(error: str, code: str = "internal_error") -> Dict[str, Any]:
    """Error envelope; `error` is always a human-readable message, never a raw traceback."""
    return {"success": False, "error": error, "code": code}
