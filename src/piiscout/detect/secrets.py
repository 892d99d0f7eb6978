"""Known secret formats: JWTs and labelled API tokens."""

import re

from piiscout.models import BASE_REGEX_FLAGS, Detection

from .base import DetectionContext, SpanDetector


# id -> (regex, type label, color)
SECRET_PATTERNS = {
    'jwt': (
        re.compile(r'\beyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\b', BASE_REGEX_FLAGS),
        'JWT Token',
        '#a8e6cf',
    ),
    'api_token': (
        re.compile(
            r'\b(token|api[_-]?key|secret)[\s:=]+([A-Za-z0-9_-]{20,})',
            BASE_REGEX_FLAGS | re.IGNORECASE,
        ),
        'API Token/Secret',
        '#ff9ff3',
    ),
}


class SecretDetector(SpanDetector):
    """Flags JWTs and ``token=...``/``api_key: ...``/``secret ...`` values. Always active."""

    @property
    def name(self) -> str:
        return 'secrets'

    def scan(self, ctx: DetectionContext) -> list[Detection]:
        detections = []
        for secret_id, (regex, label, color) in SECRET_PATTERNS.items():
            for match in regex.finditer(ctx.text):
                detections.append(
                    Detection(
                        type=label,
                        value=match.group(0),
                        start=match.start(),
                        end=match.end(),
                        color=color,
                        pattern=secret_id,
                    )
                )
        return detections
