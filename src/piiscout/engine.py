"""Detection engine: runs the detectors over one text in precedence order.

Order (earlier detectors own contested spans):

1. Base64 data, if the ``base64`` catalog entry is enabled
2. Hex digests, always
3. JWTs and labelled API tokens, always
4. High entropy tokens, if ``high_entropy`` is enabled, skipping spans
   that overlap steps 1-3
5. Remaining enabled catalog patterns, skipping overlaps with everything
   recorded so far
6. Sensitive JSON keys, without overlap suppression

The result is sorted by start offset; detections with equal starts keep
the order in which they were recorded.
"""

import json
import logging
from typing import Any

from piiscout.catalog import PatternCatalog, get_store
from piiscout.detect import DetectionContext, SpanDetector, default_detectors
from piiscout.models import Detection


logger = logging.getLogger(__name__)


def to_text(value: Any) -> str:
    """Text form of a scanned value; structured values become compact JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(',', ':'), ensure_ascii=False)


class DetectionEngine:
    """Runs a fixed sequence of detectors and merges their results."""

    def __init__(self, detectors: list[SpanDetector] | None = None):
        self.detectors = detectors if detectors is not None else default_detectors()

    def detect(self, text: Any, catalog: PatternCatalog | None = None) -> list[Detection]:
        """Find all detections in a text.

        Args:
            text: String or JSON-serializable value to scan
            catalog: Patterns to apply (defaults to the catalog in force)

        Returns:
            Detections sorted by start offset. Offsets index into the string
            form of ``text``.
        """
        if text is None or text == '':
            return []
        if catalog is None:
            catalog = get_store().get()

        ctx = DetectionContext(text=to_text(text), catalog=catalog)
        for detector in self.detectors:
            found = detector.scan(ctx)
            if found:
                logger.debug(f'{detector.name}: {len(found)} detection(s)')
                ctx.found.extend(found)

        return sorted(ctx.found, key=lambda d: d.start)


_engine = DetectionEngine()


def detect(text: Any, catalog: PatternCatalog | None = None) -> list[Detection]:
    """Detect PII, secrets and hashes in a text with the default detector set."""
    return _engine.detect(text, catalog)
