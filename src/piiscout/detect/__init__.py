"""Span detectors for PII, secrets and hashes.

This package contains all detectors run by the detection engine.
"""

from .base import DetectionContext, SpanDetector
from .base64_data import Base64Detector, decode_preview, is_valid_base64
from .catalog_patterns import CatalogPatternDetector
from .hashes import HashDetector
from .high_entropy import HighEntropyDetector, shannon_entropy
from .secrets import SecretDetector
from .suspicious_fields import SUSPICIOUS_FIELDS, SuspiciousFieldDetector


__all__ = [
    # Base classes
    'DetectionContext',
    'SpanDetector',
    # Detectors
    'Base64Detector',
    'CatalogPatternDetector',
    'HashDetector',
    'HighEntropyDetector',
    'SecretDetector',
    'SuspiciousFieldDetector',
    # Helpers
    'SUSPICIOUS_FIELDS',
    'decode_preview',
    'is_valid_base64',
    'shannon_entropy',
    # Factory
    'default_detectors',
]


def default_detectors() -> list[SpanDetector]:
    """Get the detectors in precedence order.

    Earlier detectors own a span: later ones that check for overlap skip
    anything already recorded.
    """
    return [
        Base64Detector(),
        HashDetector(),
        SecretDetector(),
        HighEntropyDetector(),
        CatalogPatternDetector(),
        SuspiciousFieldDetector(),
    ]
