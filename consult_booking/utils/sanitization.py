import html
from typing import Any, Optional


def escape_text(value: Optional[str]) -> Optional[str]:
    """HTML-escape client-supplied text before it is interpolated into an email template"""
    if not isinstance(value, str):
        return value
    return html.escape(value, quote=True)


def escape_context(context: dict[str, Any]) -> dict[str, Any]:
    """
    Escape every string in a template context, including strings inside lists
    (uploaded file names). Other values pass through unchanged.
    """
    escaped = {}
    for key, value in (context or {}).items():
        if isinstance(value, list):
            escaped[key] = [escape_text(item) for item in value]
        else:
            escaped[key] = escape_text(value)
    return escaped
