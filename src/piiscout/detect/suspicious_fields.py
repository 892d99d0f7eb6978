"""Sensitive JSON key detector."""

import json
import re

from piiscout.models import Detection

from .base import DetectionContext, SpanDetector


SUSPICIOUS_COLOR = '#ffd93d'

SUSPICIOUS_FIELDS = [
    'email', 'Email', 'EMail', 'e-mail', 'E-mail',
    'password', 'Password', 'PASSWORD', 'passwd',
    'id', 'Id', 'ID', 'userId', 'user_id', 'userID',
    'token', 'Token', 'TOKEN', 'accessToken', 'access_token',
    'secret', 'Secret', 'SECRET', 'apiKey', 'api_key', 'API_KEY',
    'ssn', 'SSN', 'social', 'socialSecurity',
    'phone', 'Phone', 'PHONE', 'mobile', 'Mobile',
    'creditCard', 'credit_card', 'cardNumber',
    'address', 'Address', 'street', 'Street',
]

_KEY_PATTERNS = {name: re.compile(f'"{re.escape(name)}"\\s*:') for name in SUSPICIOUS_FIELDS}

# Quoted string, integer, or a flat object following the colon
VALUE_RE = re.compile(r'\s*"([^"]+)"|\s*(\d+)|\s*(\{[^}]*\})')


def is_json(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


class SuspiciousFieldDetector(SpanDetector):
    """Flags the values of sensitive keys when the text is a JSON document.

    The key is matched case-sensitively, and the span runs from the opening
    quote of the key to the end of its value. Offsets are positions in the
    scanned text itself.
    """

    @property
    def name(self) -> str:
        return 'suspicious_field'

    def scan(self, ctx: DetectionContext) -> list[Detection]:
        if not is_json(ctx.text):
            return []

        detections = []
        for name, key_regex in _KEY_PATTERNS.items():
            for match in key_regex.finditer(ctx.text):
                value_match = VALUE_RE.match(ctx.text, match.end())
                if not value_match:
                    continue
                value = next(group for group in value_match.groups() if group is not None)
                detections.append(
                    Detection(
                        type=f'Suspicious Field: {name}',
                        value=value,
                        start=match.start(),
                        end=value_match.end(),
                        color=SUSPICIOUS_COLOR,
                        pattern='suspicious_field',
                    )
                )
        return detections
