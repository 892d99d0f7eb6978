"""Base64 encoded data detector."""

import base64
import binascii
import re

from piiscout.models import BASE_REGEX_FLAGS, Detection

from .base import DetectionContext, SpanDetector


# Greedy run of Base64 alphabet with optional padding; no word boundaries so
# payloads inside quotes or query strings are found too
BASE64_CANDIDATE = re.compile(r'[A-Za-z0-9+/]{16,}={0,2}', BASE_REGEX_FLAGS)
BASE64_STRICT = re.compile(r'^[A-Za-z0-9+/]+={0,2}$', BASE_REGEX_FLAGS)

MIN_CANDIDATE_LENGTH = 16
PREVIEW_LENGTH = 50


def is_valid_base64(value: str) -> bool:
    """Strict Base64 check: alphabet, length multiple of 4, padding only at the end, decodable."""
    if not value or len(value) < 4:
        return False
    if not BASE64_STRICT.match(value):
        return False
    if len(value) % 4 != 0:
        return False

    padding = value.count('=')
    if padding > 2:
        return False
    if padding and not value.endswith('=' * padding):
        return False

    try:
        base64.b64decode(value, validate=True)
    except binascii.Error:
        return False
    return True


def decode_preview(value: str) -> str | None:
    """Decode Base64 as UTF-8 text for display, None when it is not text."""
    try:
        decoded = base64.b64decode(value, validate=True).decode('utf-8')
    except (binascii.Error, UnicodeDecodeError):
        return None
    if len(decoded) > PREVIEW_LENGTH:
        return decoded[:PREVIEW_LENGTH] + '...'
    return decoded


class Base64Detector(SpanDetector):
    """Flags strictly valid Base64 runs of 16+ characters, with a decoded preview."""

    @property
    def name(self) -> str:
        return 'base64'

    def scan(self, ctx: DetectionContext) -> list[Detection]:
        pattern = ctx.pattern('base64')
        if not ctx.catalog.is_enabled('base64'):
            return []

        detections = []
        for match in BASE64_CANDIDATE.finditer(ctx.text):
            candidate = match.group(0)
            if len(candidate) < MIN_CANDIDATE_LENGTH or not is_valid_base64(candidate):
                continue
            # Hashes are more specific than Base64
            if ctx.inside_hash(match.start(), match.end()):
                continue
            detections.append(
                Detection(
                    type=pattern.name,
                    value=candidate,
                    start=match.start(),
                    end=match.end(),
                    color=pattern.color,
                    pattern='base64',
                    preview=decode_preview(candidate),
                )
            )
        return detections
