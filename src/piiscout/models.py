"""Pydantic models for parsed log records, detections and API responses"""

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# Regexes are compiled ASCII-only so \b, \d and \w keep the meaning they have
# in the proxy dashboard patterns.
BASE_REGEX_FLAGS = re.ASCII


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, accepting snake_case too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LogRecord(CamelModel):
    """One parsed line of proxy access log output.

    Every field except ``raw`` is optional: the parser extracts each one
    independently. A record without a timestamp is not a valid record and
    is dropped before analysis.
    """

    raw: str = Field(..., description="Original log line, verbatim")
    timestamp: str | None = Field(None, example="2025-01-15T10:30:00.000Z")
    method: str | None = Field(None, example="POST")
    url: str | None = Field(None, example="/api/users?id=42")
    endpoint: str | None = Field(None, example="POST /api/users?id=42", description="METHOD URL")
    status: int | None = Field(None, example=200)
    response_size: str | None = Field(None, example="512")
    response_time: float | None = Field(None, example=0.042, description="Seconds")
    remote_addr: str | None = Field(None, example="::1")
    user_agent: str | None = Field(None, example="curl/8.4.0")
    referer: str | None = Field(None, example="-")
    content_type: str | None = Field(None, example="application/json")
    request_body: Any = Field(None, description="Unescaped request body text")
    response_body: Any = Field(None, description="Parsed JSON value, or the raw text when not JSON")

    # Text rendering of structured bodies, cached by the analyzer so that
    # detection offsets and display refer to the same characters.
    request_body_string: str | None = Field(None, alias='requestBody_string')
    response_body_string: str | None = Field(None, alias='responseBody_string')

    @property
    def is_valid(self) -> bool:
        return self.timestamp is not None


class ValidatorKind(str, Enum):
    """Extra check applied to a pattern match before it becomes a detection."""

    NONE = 'none'
    BASE64 = 'base64'
    ENTROPY = 'entropy'


class Pattern(CamelModel):
    """A named detection rule from the pattern catalog.

    The regex is held as source text and compiled on use. Validation fails
    for a regex that does not compile, so an invalid user pattern never
    reaches the catalog.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str = Field(..., example="Email")
    regex: str = Field(..., example=r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
    ignore_case: bool = Field(False, description="Case-insensitive matching")
    color: str = Field('#4ecdc4', example="#ff6b6b", description="Display color, carried through untouched")
    enabled: bool = True
    validation: ValidatorKind = ValidatorKind.NONE
    min_entropy: float | None = Field(None, example=3.5, description="Threshold for entropy validation")

    @field_validator('regex')
    @classmethod
    def _regex_must_compile(cls, value: str) -> str:
        if not value:
            raise ValueError('regex must not be empty')
        try:
            re.compile(value, BASE_REGEX_FLAGS)
        except re.error as e:
            raise ValueError(f'invalid regex: {e}') from e
        return value

    @property
    def flags(self) -> int:
        return BASE_REGEX_FLAGS | (re.IGNORECASE if self.ignore_case else 0)

    def compile(self) -> re.Pattern:
        """Compile the regex with its case semantics."""
        return re.compile(self.regex, self.flags)


class Detection(CamelModel):
    """A flagged span of a scanned text.

    Attributes:
        type: Human readable label, e.g. "Email" or "SHA256 Hash"
        value: The matched substring
        start: Offset of the first character (inclusive)
        end: Offset past the last character (exclusive)
        color: Display color of the pattern that produced it
        pattern: Catalog key or fixed detector id
        preview: Decoded preview for Base64 data
        entropy: Shannon entropy score for high-entropy tokens
        field: LogRecord field the text came from (set by the analyzer)
    """

    type: str = Field(..., example="Email")
    value: str = Field(..., example="alice@example.com")
    start: int = Field(..., ge=0, example=9)
    end: int = Field(..., ge=0, example=26)
    color: str = Field(..., example="#ff6b6b")
    pattern: str = Field(..., example="email")
    preview: str | None = None
    entropy: float | None = None
    field: str | None = Field(None, example="responseBody")

    def overlaps(self, start: int, end: int) -> bool:
        """Return True if the half-open span [start, end) intersects this one."""
        return self.start < end and start < self.end

    def contains(self, start: int, end: int) -> bool:
        return self.start <= start and self.end >= end


class AnalyzedRecord(CamelModel):
    """Detections for one log record, as consumed by presentation layers."""

    log_entry: LogRecord
    detections: list[Detection] = Field(default_factory=list)
    has_pii: bool = Field(False, alias='hasPII')
    detection_count: int = 0
    detection_types: list[str] = Field(default_factory=list, description="Distinct detection types, first seen first")


# ANSI color codes shared by the CLI renderers
GREY = '\033[90m'
RED = '\033[91m'
GREEN = '\033[32m'
YELLOW = '\033[33m'
CYAN = '\033[36m'
BOLD = '\033[1m'
BOLD_CYAN = '\033[1;36m'
RESET = '\033[0m'


def _format_detection(detection: Detection, colorize: bool) -> str:
    where = f"{detection.start}-{detection.end}"
    field = f"[{detection.field}] " if detection.field else ""
    extra = ""
    if detection.entropy is not None:
        extra = f" (entropy {detection.entropy:.2f})"
    elif detection.preview is not None:
        extra = f" (decoded: {detection.preview!r})"
    value = detection.value.replace('\n', '\\n')
    if colorize:
        return f"    {GREY}{field}{where}{RESET} {YELLOW}{detection.type}{RESET}: {RED}{value}{RESET}{GREY}{extra}{RESET}"
    return f"    {field}{where} {detection.type}: {value}{extra}"


class DetectResponse(BaseModel):
    """Response from the detect endpoint and command"""

    text: str = Field(..., description="Text that was scanned")
    detections: list[Detection] = Field(default_factory=list)

    def to_cli(self, colorize: bool = False) -> str:
        lines = []
        if colorize:
            lines.append(f"{GREY}Detections:{RESET} {BOLD}{len(self.detections)}{RESET}")
        else:
            lines.append(f"Detections: {len(self.detections)}")
        for detection in self.detections:
            lines.append(_format_detection(detection, colorize))
        return "\n".join(lines)


class AnalyzeResponse(BaseModel):
    """Response from log analysis

    Attributes:
        path: Log file that was analyzed (None for inline text)
        time: Analysis duration in seconds
        total_records: Number of valid records parsed
        flagged_records: Number of records with at least one detection
        records: Analyzed records after filtering and limiting
    """

    path: str | None = Field(None, example="/var/log/proxy-access.log")
    time: float = Field(..., example=0.012)
    total_records: int = Field(..., example=120)
    flagged_records: int = Field(..., example=37)
    records: list[AnalyzedRecord] = Field(default_factory=list)

    def to_cli(self, colorize: bool = False) -> str:
        """Format response for CLI output"""
        lines = []
        if colorize:
            if self.path:
                lines.append(f"{GREY}Path:{RESET} {BOLD_CYAN}{self.path}{RESET}")
            lines.append(f"{GREY}Time:{RESET} {YELLOW}{self.time:.3f}s{RESET}")
            lines.append(
                f"{GREY}Records:{RESET} {GREEN}{self.total_records}{RESET} "
                f"{GREY}({RESET}{RED}{self.flagged_records}{RESET}{GREY} flagged){RESET}"
            )
        else:
            if self.path:
                lines.append(f"Path: {self.path}")
            lines.append(f"Time: {self.time:.3f}s")
            lines.append(f"Records: {self.total_records} ({self.flagged_records} flagged)")

        for record in self.records:
            entry = record.log_entry
            lines.append("")
            header = f"[{entry.timestamp}] {entry.endpoint or 'Unknown'}"
            if entry.status is not None:
                header += f" {entry.status}"
            if colorize:
                marker = f"{RED}PII{RESET}" if record.has_pii else f"{GREEN}clean{RESET}"
                lines.append(f"{CYAN}{header}{RESET} {marker}")
            else:
                lines.append(f"{header} {'PII' if record.has_pii else 'clean'}")
            if record.detection_types:
                lines.append(f"  Types: {', '.join(record.detection_types)}")
            for detection in record.detections:
                lines.append(_format_detection(detection, colorize))

        return "\n".join(lines)


class EndpointStat(BaseModel):
    endpoint: str
    count: int
    types: list[str]


class TypeStat(BaseModel):
    type: str
    count: int


class DateStat(BaseModel):
    date: str
    count: int


class SummaryResponse(BaseModel):
    """Aggregated view of flagged traffic"""

    total_records: int = Field(..., example=120)
    flagged_records: int = Field(..., example=37)
    total_detections: int = Field(..., example=140)
    endpoints: list[EndpointStat] = Field(default_factory=list, description="Endpoints by flagged record count")
    types: list[TypeStat] = Field(default_factory=list, description="Detection counts by type")
    timeline: list[DateStat] = Field(default_factory=list, description="Flagged records per day")

    def to_cli(self, colorize: bool = False) -> str:
        title = f"{BOLD}PII Summary{RESET}" if colorize else "PII Summary"
        lines = [title]
        lines.append(f"Records: {self.total_records}")
        lines.append(f"Flagged: {self.flagged_records}")
        lines.append(f"Detections: {self.total_detections}")

        if self.endpoints:
            lines.append("")
            lines.append("Top endpoints:")
            for stat in self.endpoints:
                name = f"{CYAN}{stat.endpoint}{RESET}" if colorize else stat.endpoint
                lines.append(f"  {name}: {stat.count} ({', '.join(stat.types)})")
        if self.types:
            lines.append("")
            lines.append("Detection types:")
            for stat in self.types:
                name = f"{YELLOW}{stat.type}{RESET}" if colorize else stat.type
                lines.append(f"  {name}: {stat.count}")
        if self.timeline:
            lines.append("")
            lines.append("Flagged per day:")
            for stat in self.timeline:
                lines.append(f"  {stat.date}: {stat.count}")

        return "\n".join(lines)


class PatternsUpdateRequest(BaseModel):
    """Catalog overrides, keyed by pattern key"""

    patterns: dict[str, dict[str, Any]] = Field(
        ...,
        example={"email": {"enabled": False}, "ipv4": {"name": "IPv4", "regex": r"\b(?:\d{1,3}\.){3}\d{1,3}\b"}},
    )


class AnalyzeRequest(BaseModel):
    """Raw proxy log text to analyze"""

    content: str = Field(..., description="One or more log lines")


class DetectRequest(BaseModel):
    """A text or JSON value to scan"""

    text: Any = Field(..., example="contact: alice@example.com")
