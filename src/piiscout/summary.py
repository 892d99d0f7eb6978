"""Aggregation of analyzed traffic for reports and the dashboard API"""

from collections import Counter
from datetime import datetime

from piiscout.models import AnalyzedRecord, DateStat, EndpointStat, SummaryResponse, TypeStat


FILTER_MODES = ('all', 'flagged', 'unflagged')


def filter_records(records: list[AnalyzedRecord], mode: str = 'all', limit: int | None = None) -> list[AnalyzedRecord]:
    """Select records by flag state, keeping at most ``limit`` of them.

    Raises:
        ValueError: If mode is not one of FILTER_MODES
    """
    if mode not in FILTER_MODES:
        raise ValueError(f'Unknown filter {mode!r}, expected one of {", ".join(FILTER_MODES)}')
    if mode == 'flagged':
        records = [r for r in records if r.has_pii]
    elif mode == 'unflagged':
        records = [r for r in records if not r.has_pii]
    if limit is not None:
        records = records[:limit]
    return list(records)


def _day(timestamp: str | None) -> str | None:
    if not timestamp:
        return None
    try:
        return datetime.fromisoformat(timestamp.replace('Z', '+00:00')).date().isoformat()
    except ValueError:
        return None


def summarize(records: list[AnalyzedRecord], limit: int = 10) -> SummaryResponse:
    """Summarize flagged records by endpoint, detection type and day.

    Args:
        records: Analyzed records, flagged or not
        limit: Maximum entries per list; the timeline keeps the latest days

    Returns:
        SummaryResponse with lists sorted by count (timeline by date)
    """
    flagged = [r for r in records if r.has_pii]

    endpoint_counts: Counter = Counter()
    endpoint_types: dict[str, dict[str, None]] = {}
    type_counts: Counter = Counter()
    day_counts: Counter = Counter()

    for record in flagged:
        endpoint = record.log_entry.endpoint or 'Unknown'
        endpoint_counts[endpoint] += 1
        types = endpoint_types.setdefault(endpoint, {})
        for detection_type in record.detection_types:
            types[detection_type] = None
        for detection in record.detections:
            type_counts[detection.type] += 1
        day = _day(record.log_entry.timestamp)
        if day:
            day_counts[day] += 1

    endpoints = [
        EndpointStat(endpoint=endpoint, count=count, types=list(endpoint_types[endpoint]))
        for endpoint, count in endpoint_counts.most_common(limit)
    ]
    types = [TypeStat(type=t, count=count) for t, count in type_counts.most_common(limit)]
    timeline = [DateStat(date=day, count=day_counts[day]) for day in sorted(day_counts)[-limit:]] if limit else []

    return SummaryResponse(
        total_records=len(records),
        flagged_records=len(flagged),
        total_detections=sum(r.detection_count for r in records),
        endpoints=endpoints,
        types=types,
        timeline=timeline,
    )
