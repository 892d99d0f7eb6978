"""Record analysis: runs the detection engine over the scanned fields of log records.

Each analysis is a pure function of one record and the pattern catalog,
so batches can be fanned out across threads with no coordination besides
sharing the (immutable) catalog.
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from time import time

from piiscout.catalog import PatternCatalog, get_store
from piiscout.engine import DetectionEngine
from piiscout.log_parser import read_log_file
from piiscout.models import AnalyzedRecord, AnalyzeResponse, Detection, LogRecord
from piiscout.summary import filter_records
from piiscout.utils import get_int_env


logger = logging.getLogger(__name__)

# Record attribute -> field name attached to detections
SCANNED_FIELDS = {
    'request_body': 'requestBody',
    'response_body': 'responseBody',
    'url': 'url',
    'user_agent': 'userAgent',
}

# Below this many records a thread pool costs more than it saves
MIN_PARALLEL_BATCH = 64

_engine = DetectionEngine()


def render_field(value) -> tuple[str, bool]:
    """Text that is scanned for a field value, and whether it was structured."""
    if isinstance(value, str):
        return value, False
    return json.dumps(value, indent=2, ensure_ascii=False), True


def analyze_record(record: LogRecord, catalog: PatternCatalog | None = None) -> AnalyzedRecord:
    """Analyze one log record.

    Structured body values are scanned as 2-space indented JSON, and that
    text is cached on the returned record's ``<field>_string`` attribute so
    detection offsets can be resolved against it. The input record is not
    modified.

    Args:
        record: Parsed log record
        catalog: Patterns to apply (defaults to the catalog in force)

    Returns:
        AnalyzedRecord with detections from all scanned fields
    """
    if catalog is None:
        catalog = get_store().get()

    detections: list[Detection] = []
    cached: dict[str, str] = {}

    for attr, field_name in SCANNED_FIELDS.items():
        value = getattr(record, attr)
        if not value:
            continue
        text, structured = render_field(value)
        if structured:
            cached[f'{attr}_string'] = text
        for detection in _engine.detect(text, catalog):
            detections.append(detection.model_copy(update={'field': field_name}))

    entry = record.model_copy(update=cached) if cached else record
    detection_types = list(dict.fromkeys(d.type for d in detections))

    return AnalyzedRecord(
        log_entry=entry,
        detections=detections,
        has_pii=bool(detections),
        detection_count=len(detections),
        detection_types=detection_types,
    )


def analyze_all(
    records: list[LogRecord],
    catalog: PatternCatalog | None = None,
    max_workers: int | None = None,
) -> list[AnalyzedRecord]:
    """Analyze records independently, preserving input order.

    The catalog is resolved once so the whole batch sees the same patterns.

    Args:
        records: Parsed log records
        catalog: Patterns to apply (defaults to the catalog in force)
        max_workers: Thread count; defaults to SCOUT_MAX_WORKERS, 0/1 runs serially
    """
    if catalog is None:
        catalog = get_store().get()
    if max_workers is None:
        max_workers = get_int_env('SCOUT_MAX_WORKERS')

    records = list(records)
    analyze = partial(analyze_record, catalog=catalog)

    if max_workers <= 1 or len(records) < MIN_PARALLEL_BATCH:
        return [analyze(record) for record in records]

    logger.debug(f'Analyzing {len(records)} records with {max_workers} workers')
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(analyze, records))


def analyze_path(
    path: str | Path,
    catalog: PatternCatalog | None = None,
    filter_mode: str = 'all',
    limit: int | None = None,
    max_workers: int | None = None,
) -> tuple[AnalyzeResponse, list[AnalyzedRecord]]:
    """Parse and analyze a proxy log file.

    Returns:
        The response (records filtered and limited) and the full list of
        analyzed records for further aggregation.

    Raises:
        FileNotFoundError: If the log file does not exist
        ValueError: If filter_mode is unknown
    """
    start_time = time()
    records = read_log_file(path)
    analyzed = analyze_all(records, catalog, max_workers=max_workers)
    selected = filter_records(analyzed, filter_mode, limit)

    response = AnalyzeResponse(
        path=str(path),
        time=time() - start_time,
        total_records=len(analyzed),
        flagged_records=sum(1 for r in analyzed if r.has_pii),
        records=selected,
    )
    logger.debug(f'Analyzed {path}: {response.total_records} records, {response.flagged_records} flagged')
    return response, analyzed
