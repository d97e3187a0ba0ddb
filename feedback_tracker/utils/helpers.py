from flask import request, url_for

from feedback_tracker.errors import ValidationFailed

def wants_json() -> bool:
    """Match the app's JSON detection style: Accept header or a JSON body."""
    return (
        "application/json" in (request.headers.get("Accept") or "").lower()
        or request.is_json
    )

def request_data() -> dict:
    """JSON body for fetch() clients, form fields for plain HTML forms."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationFailed({"__all__": "Request body must be a JSON object."})
        return data
    return request.form

# Only allow internal paths like "/feedback" (no external URLs or "//" protocol-relative).
def safe_next_path(next_raw: str | None, fallback_endpoint: str = "main.dashboard") -> str:
    next_raw = (next_raw or "").strip()
    if next_raw.startswith("/") and not next_raw.startswith("//"):
        return next_raw
    return url_for(fallback_endpoint)
