"""High entropy detector for secrets and tokens."""

import math
import re
from collections import Counter

from piiscout.catalog import DEFAULT_MIN_ENTROPY
from piiscout.models import BASE_REGEX_FLAGS, Detection

from .base import DetectionContext, SpanDetector


# URL-safe base64 / API key shaped runs
CANDIDATE_TOKEN = re.compile(r'\b[A-Za-z0-9_-]{20,}\b', BASE_REGEX_FLAGS)


def shannon_entropy(s: str) -> float:
    """Calculate Shannon entropy of a string in bits per character."""
    if not s:
        return 0.0

    counts = Counter(s)
    length = len(s)
    entropy = 0.0

    for count in counts.values():
        p = count / length
        entropy -= p * math.log2(p)

    return entropy


class HighEntropyDetector(SpanDetector):
    """Detects random-looking tokens not already claimed by a more specific detector."""

    @property
    def name(self) -> str:
        return 'high_entropy'

    def scan(self, ctx: DetectionContext) -> list[Detection]:
        if not ctx.catalog.is_enabled('high_entropy'):
            return []
        pattern = ctx.pattern('high_entropy')
        min_entropy = pattern.min_entropy if pattern.min_entropy is not None else DEFAULT_MIN_ENTROPY

        detections = []
        for match in CANDIDATE_TOKEN.finditer(ctx.text):
            token = match.group(0)
            entropy = shannon_entropy(token)
            if entropy < min_entropy:
                continue
            if ctx.overlaps_any(match.start(), match.end()):
                continue
            detections.append(
                Detection(
                    type=pattern.name,
                    value=token,
                    start=match.start(),
                    end=match.end(),
                    color=pattern.color,
                    pattern='high_entropy',
                    entropy=round(entropy, 2),
                )
            )
        return detections
