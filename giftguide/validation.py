import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Tuple

from .errors import ValidationError


EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DOMAIN_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9]*\.[a-zA-Z]{2,}$")


@dataclass(frozen=True)
class IdentityRequest:
    company_name: str
    domain: str
    recipient_email: str
    contact_name: str
    contact_email: str
    contact_phone: str


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value))


def is_valid_domain(value: str) -> bool:
    return bool(DOMAIN_RE.match(value))


# (wire key, attribute, format check, format error) in checking order.
_FIELDS: Tuple[Tuple[str, str, Optional[Callable[[str], bool]], Optional[str]], ...] = (
    ("companyName", "company_name", None, None),
    ("domain", "domain", is_valid_domain, "Invalid domain format (e.g., example.com)"),
    ("recipientEmail", "recipient_email", is_valid_email, "Invalid recipient email format"),
    ("aeName", "contact_name", None, None),
    ("aeEmail", "contact_email", is_valid_email, "Invalid AE email format"),
    ("aePhone", "contact_phone", None, None),
)


def validate_request(raw: Any) -> IdentityRequest:
    """
    Turn a raw request body into an IdentityRequest.

    Fields are checked in a fixed order and the first offending one raises
    ValidationError naming its wire key. Values are trimmed before the
    format checks and stored trimmed.
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("Request body must be a JSON object")

    values = {}
    for key, attr, check, format_error in _FIELDS:
        value = raw.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Missing or invalid required field: {key}", field=key)
        value = value.strip()
        if check is not None and not check(value):
            raise ValidationError(format_error, field=key)
        values[attr] = value

    return IdentityRequest(**values)
