"""Hex digest detector (MD5, SHA1, SHA256, SHA512)."""

import re

from piiscout.models import BASE_REGEX_FLAGS, Detection

from .base import DetectionContext, SpanDetector


HASH_COLOR = '#95e1d3'

# Digest length in hex characters, by algorithm
HASH_PATTERNS = {
    'md5': re.compile(r'\b[a-fA-F0-9]{32}\b', BASE_REGEX_FLAGS),
    'sha1': re.compile(r'\b[a-fA-F0-9]{40}\b', BASE_REGEX_FLAGS),
    'sha256': re.compile(r'\b[a-fA-F0-9]{64}\b', BASE_REGEX_FLAGS),
    'sha512': re.compile(r'\b[a-fA-F0-9]{128}\b', BASE_REGEX_FLAGS),
}


class HashDetector(SpanDetector):
    """Flags standalone hex digests. Always active, whatever the catalog says."""

    @property
    def name(self) -> str:
        return 'hashes'

    def scan(self, ctx: DetectionContext) -> list[Detection]:
        detections = []
        for algo, regex in HASH_PATTERNS.items():
            for match in regex.finditer(ctx.text):
                detections.append(
                    Detection(
                        type=f'{algo.upper()} Hash',
                        value=match.group(0),
                        start=match.start(),
                        end=match.end(),
                        color=HASH_COLOR,
                        pattern=algo,
                    )
                )
        return detections
