"""Parser for the logging proxy's access log format.

Each HTTP exchange is written by the proxy as a single line:

    [<ISO timestamp>] ENDPOINT: <METHOD> <url> STATUS: <int>
    RESPONSE_SIZE: <bytes> bytes RESPONSE_TIME: <float> seconds
    REMOTE_ADDR: <ip> USER_AGENT: "<escaped>" REFERER: "<escaped>"
    CONTENT_TYPE: "<escaped>" REQUEST_BODY: "<escaped>"
    RESPONSE_BODY: "<escaped>" ---

Every token is optional. Fields are extracted by independent scans so a
missing or mangled token never prevents extraction of the others.
"""

import json
import logging
import re
from pathlib import Path

from piiscout.models import LogRecord


logger = logging.getLogger(__name__)

TIMESTAMP_RE = re.compile(r'\[([^\]]+)\]')
ENDPOINT_RE = re.compile(r'ENDPOINT:\s+([A-Z]+)\s+(\S+)')
STATUS_RE = re.compile(r'STATUS:\s+(\d+)')
RESPONSE_SIZE_RE = re.compile(r'RESPONSE_SIZE:\s+(\S+)')
RESPONSE_TIME_RE = re.compile(r'RESPONSE_TIME:\s+(\d+(?:\.\d+)?|\.\d+)\s+seconds')
REMOTE_ADDR_RE = re.compile(r'REMOTE_ADDR:\s+(\S+)')

USER_AGENT_RE = re.compile(r'USER_AGENT:\s+"')
REFERER_RE = re.compile(r'REFERER:\s+"')
CONTENT_TYPE_RE = re.compile(r'CONTENT_TYPE:\s+"')
REQUEST_BODY_RE = re.compile(r'REQUEST_BODY:\s+"')
RESPONSE_BODY_RE = re.compile(r'RESPONSE_BODY:\s+"')

# Marks the end of a record; the response body is the last quoted field
RECORD_END = '" ---'

_ESCAPE_RE = re.compile(r'\\(["n\\])')
_ESCAPES = {'"': '"', 'n': '\n', '\\': '\\'}


def unescape(value: str) -> str:
    """Undo the proxy's escaping of quotes, newlines and backslashes."""
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(1)], value)


def _find_closing_quote(line: str, start: int) -> int:
    """Return the index of the first unescaped quote at or after start, or -1.

    A backslash escapes the character after it, so in ``\\\\"`` the quote
    closes the field.
    """
    end = start
    while end < len(line):
        if line[end] == '\\':
            end += 2
            continue
        if line[end] == '"':
            return end
        end += 1
    return -1


def _reject_constant(name: str):
    raise ValueError(f'{name} is not valid JSON')


def _quoted_field(line: str, opener: re.Pattern) -> str | None:
    match = opener.search(line)
    if not match:
        return None
    start = match.end()
    end = _find_closing_quote(line, start)
    if end == -1:
        return None
    return unescape(line[start:end])


def _response_body(line: str):
    match = RESPONSE_BODY_RE.search(line)
    if not match:
        return None
    start = match.end()

    end = line.find(RECORD_END, start)
    if end == -1:
        # No sentinel: take everything up to the last quote on the line
        end = line.rfind('"')
        if end <= start:
            return None

    text = unescape(line[start:end])
    try:
        # NaN and Infinity stay text
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return text


def parse_log_line(line: str) -> LogRecord | None:
    """Parse one proxy log line.

    Args:
        line: Raw log line (a trailing newline is ignored)

    Returns:
        A LogRecord, possibly partially populated, or None for a blank line.
        Callers are expected to drop records without a timestamp.
    """
    if not line or not line.strip():
        return None

    line = line.rstrip('\r\n')
    fields = {'raw': line}

    timestamp_match = TIMESTAMP_RE.search(line)
    if timestamp_match:
        fields['timestamp'] = timestamp_match.group(1)

    endpoint_match = ENDPOINT_RE.search(line)
    if endpoint_match:
        method, url = endpoint_match.group(1), endpoint_match.group(2)
        fields['method'] = method
        fields['url'] = url
        fields['endpoint'] = f'{method} {url}'

    status_match = STATUS_RE.search(line)
    if status_match:
        fields['status'] = int(status_match.group(1))

    size_match = RESPONSE_SIZE_RE.search(line)
    if size_match:
        fields['response_size'] = size_match.group(1)

    time_match = RESPONSE_TIME_RE.search(line)
    if time_match:
        fields['response_time'] = float(time_match.group(1))

    addr_match = REMOTE_ADDR_RE.search(line)
    if addr_match:
        fields['remote_addr'] = addr_match.group(1)

    fields['user_agent'] = _quoted_field(line, USER_AGENT_RE)
    fields['referer'] = _quoted_field(line, REFERER_RE)
    fields['content_type'] = _quoted_field(line, CONTENT_TYPE_RE)
    fields['request_body'] = _quoted_field(line, REQUEST_BODY_RE)
    fields['response_body'] = _response_body(line)

    return LogRecord(**fields)


def parse_log_lines(lines) -> list[LogRecord]:
    """Parse an iterable of lines, keeping only valid records."""
    records = []
    for line in lines:
        record = parse_log_line(line)
        if record is not None and record.is_valid:
            records.append(record)
    return records


def parse_log_content(content: str) -> list[LogRecord]:
    """Parse the full text of a proxy log."""
    if not content:
        return []
    return parse_log_lines(content.split('\n'))


def iter_log_file(path: str | Path):
    """Lazily yield valid records from a proxy log file.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f'Log file not found: {path}')

    skipped = 0
    with open(path, encoding='utf-8', errors='replace') as f:
        for line in f:
            record = parse_log_line(line)
            if record is None:
                continue
            if not record.is_valid:
                skipped += 1
                continue
            yield record

    if skipped:
        logger.debug(f'Skipped {skipped} lines without timestamp in {path}')


def read_log_file(path: str | Path) -> list[LogRecord]:
    return list(iter_log_file(path))
