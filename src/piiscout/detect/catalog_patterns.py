"""Generic regex scan over the enabled catalog patterns."""

import logging

from piiscout.catalog import DEFAULT_MIN_ENTROPY, RESERVED_KEYS
from piiscout.models import Detection, Pattern, ValidatorKind

from .base import DetectionContext, SpanDetector
from .base64_data import is_valid_base64
from .high_entropy import shannon_entropy


logger = logging.getLogger(__name__)


def passes_validation(pattern: Pattern, value: str) -> bool:
    """Apply the pattern's extra validation to a matched substring."""
    if pattern.validation == ValidatorKind.BASE64:
        return is_valid_base64(value)
    if pattern.validation == ValidatorKind.ENTROPY:
        threshold = pattern.min_entropy if pattern.min_entropy is not None else DEFAULT_MIN_ENTROPY
        return shannon_entropy(value) >= threshold
    return True


class CatalogPatternDetector(SpanDetector):
    """Runs every enabled catalog pattern except the reserved keys.

    A match is kept only if it does not overlap anything recorded by the
    earlier detectors or by an earlier match of this scan.
    """

    @property
    def name(self) -> str:
        return 'catalog'

    def scan(self, ctx: DetectionContext) -> list[Detection]:
        detections: list[Detection] = []
        for key, pattern in ctx.catalog.items():
            if key in RESERVED_KEYS or not pattern.enabled:
                continue
            try:
                self._scan_pattern(ctx, key, pattern, detections)
            except Exception as e:
                logger.warning(f'Pattern {key!r} failed, skipping it: {e}')
        return detections

    def _scan_pattern(self, ctx: DetectionContext, key: str, pattern: Pattern, detections: list[Detection]):
        regex = pattern.compile()
        for match in regex.finditer(ctx.text):
            start, end = match.span()
            if start == end:
                continue
            value = match.group(0)
            if not passes_validation(pattern, value):
                continue
            if ctx.overlaps_any(start, end, pending=detections):
                continue
            detections.append(
                Detection(
                    type=pattern.name or key,
                    value=value,
                    start=start,
                    end=end,
                    color=pattern.color,
                    pattern=key,
                )
            )
