"""Base classes for span detectors."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from piiscout.catalog import DEFAULT_PATTERNS, PatternCatalog
from piiscout.models import Detection, Pattern


HASH_DETECTOR_IDS = frozenset({'md5', 'sha1', 'sha256', 'sha512'})


@dataclass
class DetectionContext:
    """State shared by the detectors during one scan of one text.

    Detectors run in a fixed order; ``found`` holds the detections recorded
    by the detectors that already ran, in the order they were recorded.
    """

    text: str
    catalog: PatternCatalog
    found: list[Detection] = field(default_factory=list)

    def pattern(self, key: str) -> Pattern | None:
        """Catalog entry for a key, falling back to the built-in one."""
        return self.catalog.get(key) or DEFAULT_PATTERNS.get(key)

    def overlaps_any(self, start: int, end: int, pending: list[Detection] | None = None) -> bool:
        """Return True if [start, end) intersects a recorded (or pending) detection."""
        if any(d.overlaps(start, end) for d in self.found):
            return True
        return bool(pending) and any(d.overlaps(start, end) for d in pending)

    def inside_hash(self, start: int, end: int) -> bool:
        return any(d.pattern in HASH_DETECTOR_IDS and d.contains(start, end) for d in self.found)


class SpanDetector(ABC):
    """Base class for all detectors run by the detection engine.

    A detector scans the context text and returns new detections. It must
    not modify the catalog or the detections already recorded.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Detector identifier (e.g., 'base64', 'hashes')."""
        pass

    @abstractmethod
    def scan(self, ctx: DetectionContext) -> list[Detection]:
        """Scan the context text.

        Args:
            ctx: Text, catalog in force and detections recorded so far.

        Returns:
            Detections found by this detector, in match order.
        """
        pass
