import re

# Simple, pragmatic pattern
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

def as_text(val) -> str:
    """JSON bodies can carry numbers, lists or objects; anything but a string reads as blank."""
    return val if isinstance(val, str) else ""

def clean_str(val: str | None, max_len: int = 255) -> str | None:
    """
    Collapse whitespace, trim, enforce max length. Returns None if empty after cleaning
    or if the value is not a string.
    """
    if not isinstance(val, str):
        return None
    s = re.sub(r"\s+", " ", val).strip()
    if not s:
        return None
    return s[:max_len]

def is_valid_email(val: str | None) -> bool:
    if not isinstance(val, str) or not val:
        return False
    return bool(_EMAIL_RE.match(val))
