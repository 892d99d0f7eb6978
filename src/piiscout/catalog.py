"""Pattern catalog: built-in detection patterns plus user overrides.

The catalog is process-wide configuration. It is never edited in place:
every change builds a complete new catalog (defaults first, overrides on
top, validated) and publishes it with a single assignment, so a scan in
progress sees either the old catalog or the new one.
"""

import json
import logging
import re
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from piiscout.models import Pattern, ValidatorKind
from piiscout.utils import get_patterns_file


logger = logging.getLogger(__name__)

DEFAULT_MIN_ENTROPY = 3.5

# Only these attributes of a built-in pattern can be changed by the user
USER_OVERRIDABLE = ('enabled', 'color')

DEFAULT_PATTERNS: dict[str, Pattern] = {
    'email': Pattern(
        name='Email',
        regex=r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b',
        color='#ff6b6b',
    ),
    'phone': Pattern(name='Phone Number', regex=r'\b\d{10,}\b', color='#4ecdc4'),
    'ssn': Pattern(name='SSN', regex=r'\b\d{3}-?\d{2}-?\d{4}\b', color='#ffe66d'),
    'md5': Pattern(name='MD5 Hash', regex=r'\b[a-fA-F0-9]{32}\b', color='#95e1d3'),
    'sha1': Pattern(name='SHA1 Hash', regex=r'\b[a-fA-F0-9]{40}\b', color='#95e1d3'),
    'sha256': Pattern(name='SHA256 Hash', regex=r'\b[a-fA-F0-9]{64}\b', color='#95e1d3'),
    'token': Pattern(
        name='API Token',
        regex=r'\b(token|Token|TOKEN|api[-_]?key|API[-_]?KEY|secret|Secret|SECRET)[\s:=]+([A-Za-z0-9_-]{20,})',
        ignore_case=True,
        color='#ff9ff3',
    ),
    'jwt': Pattern(
        name='JWT Token',
        regex=r'\beyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\b',
        color='#a8e6cf',
    ),
    'base64': Pattern(
        name='Base64 Encoded Data',
        regex=r'[A-Za-z0-9+/]{16,}={0,2}',
        color='#ff8787',
        validation=ValidatorKind.BASE64,
    ),
    'high_entropy': Pattern(
        name='High Entropy Token',
        regex=r'\b[A-Za-z0-9_-]{20,}\b',
        color='#ff6b9d',
        validation=ValidatorKind.ENTROPY,
        min_entropy=DEFAULT_MIN_ENTROPY,
    ),
}

# Handled by fixed detectors rather than the generic catalog scan
RESERVED_KEYS = frozenset({'base64', 'high_entropy'})


class PatternConfigError(ValueError):
    """Raised when a catalog update contains an invalid pattern."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f'Invalid pattern {key!r}: {message}')


class PatternCatalog(Mapping):
    """Immutable mapping of catalog key to Pattern."""

    def __init__(self, patterns: Mapping[str, Pattern]):
        self._patterns = dict(patterns)

    def __getitem__(self, key: str) -> Pattern:
        return self._patterns[key]

    def __iter__(self):
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def __repr__(self) -> str:
        return f'PatternCatalog({sorted(self._patterns)})'

    def is_enabled(self, key: str) -> bool:
        pattern = self._patterns.get(key)
        return pattern is not None and pattern.enabled

    def to_json(self) -> dict[str, dict[str, Any]]:
        """Plain JSON-serializable form, regexes as source text."""
        return {key: pattern.model_dump(by_alias=True, mode='json') for key, pattern in self._patterns.items()}


def default_catalog() -> PatternCatalog:
    return PatternCatalog(DEFAULT_PATTERNS)


def _entry_data(entry) -> dict[str, Any]:
    if isinstance(entry, Pattern):
        return entry.model_dump()
    if isinstance(entry, Mapping):
        return dict(entry)
    raise TypeError(f'pattern entry must be a mapping, got {type(entry).__name__}')


def merge_overrides(overrides: Mapping[str, Any] | None) -> PatternCatalog:
    """Build a catalog from the defaults with user overrides applied key by key.

    For a built-in key only ``enabled`` and ``color`` are taken from the
    override; the regex, case semantics and validation always stay the
    built-in ones. Other keys are free-form patterns.

    Raises:
        PatternConfigError: If any entry is not a valid pattern
    """
    merged = dict(DEFAULT_PATTERNS)
    for key, entry in (overrides or {}).items():
        try:
            data = _entry_data(entry)
            default = DEFAULT_PATTERNS.get(key)
            if default is not None:
                updates = {name: data[name] for name in USER_OVERRIDABLE if name in data}
                merged[key] = Pattern.model_validate({**default.model_dump(), **updates})
            else:
                merged[key] = Pattern.model_validate(data)
        except (ValidationError, TypeError) as e:
            raise PatternConfigError(key, str(e)) from e
    return PatternCatalog(merged)


def make_key(name: str) -> str:
    """Derive a catalog key from a display name, e.g. 'Credit Card' -> 'credit_card'."""
    return re.sub(r'\s+', '_', name.strip().lower())


def add_pattern(
    catalog: PatternCatalog,
    name: str,
    regex: str,
    color: str = '#4ecdc4',
    enabled: bool = True,
    ignore_case: bool = False,
) -> PatternCatalog:
    """Return a new catalog with a user pattern added under a key derived from its name."""
    key = make_key(name)
    if not key:
        raise PatternConfigError(name, 'name must not be empty')
    if key in DEFAULT_PATTERNS:
        raise PatternConfigError(key, 'conflicts with a built-in pattern')
    overrides = catalog.to_json()
    overrides[key] = {'name': name, 'regex': regex, 'color': color, 'enabled': enabled, 'ignoreCase': ignore_case}
    return merge_overrides(overrides)


def remove_pattern(catalog: PatternCatalog, key: str) -> PatternCatalog:
    """Return a new catalog without the given user pattern."""
    if key in DEFAULT_PATTERNS:
        raise PatternConfigError(key, 'built-in patterns cannot be removed, disable it instead')
    if key not in catalog:
        raise KeyError(key)
    overrides = catalog.to_json()
    del overrides[key]
    return merge_overrides(overrides)


def update_pattern(catalog: PatternCatalog, key: str, **changes) -> PatternCatalog:
    """Return a new catalog with changed attributes for one key.

    Changes are given by attribute name, e.g. ``ignore_case=True``.
    """
    if key not in catalog:
        raise KeyError(key)
    overrides = catalog.to_json()
    overrides[key].update({to_camel(name): value for name, value in changes.items()})
    return merge_overrides(overrides)


def load_catalog(path: str | Path) -> PatternCatalog:
    """Load persisted overrides from a JSON file and merge them over the defaults.

    A missing file yields the default catalog.

    Raises:
        PatternConfigError: If the file is not a JSON object of valid patterns
    """
    path = Path(path)
    if not path.exists():
        return default_catalog()
    try:
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
    except ValueError as e:
        raise PatternConfigError(str(path), f'not valid JSON: {e}') from e
    if not isinstance(data, dict):
        raise PatternConfigError(str(path), 'expected a JSON object of patterns')
    return merge_overrides(data)


def save_catalog(catalog: PatternCatalog, path: str | Path):
    """Persist a catalog as JSON, writing through a temporary file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + '.tmp')
    with open(tmp_path, 'w', encoding='utf-8') as f:
        json.dump(catalog.to_json(), f, indent=2)
    tmp_path.replace(path)


class CatalogStore:
    """Holder of the catalog in force for the process.

    Readers call get() and use the returned catalog for a whole scan.
    Writers build and validate a complete catalog before publishing it, so
    a failed update leaves the previous catalog in force.
    """

    def __init__(self, catalog: PatternCatalog | None = None):
        self._catalog = catalog if catalog is not None else default_catalog()
        self._lock = threading.Lock()

    def get(self) -> PatternCatalog:
        return self._catalog

    def publish(self, catalog: PatternCatalog) -> PatternCatalog:
        with self._lock:
            self._catalog = catalog
        return catalog

    def replace(self, overrides: Mapping[str, Any] | None) -> PatternCatalog:
        """Merge overrides over the defaults and publish the result."""
        return self.publish(merge_overrides(overrides))

    def reset(self) -> PatternCatalog:
        return self.publish(default_catalog())

    def load_from(self, path: str | Path | None = None) -> PatternCatalog:
        """Load the persisted catalog; keep the current one if the file is invalid."""
        path = Path(path) if path is not None else get_patterns_file()
        try:
            catalog = load_catalog(path)
        except PatternConfigError as e:
            logger.warning(f'Ignoring pattern file {path}: {e}')
            return self._catalog
        logger.debug(f'Loaded {len(catalog)} patterns from {path}')
        return self.publish(catalog)

    def save_and_publish(self, catalog: PatternCatalog, path: str | Path | None = None) -> PatternCatalog:
        """Persist a catalog, then put it in force.

        Raises:
            OSError: If the file cannot be written; the current catalog stays in force
        """
        path = Path(path) if path is not None else get_patterns_file()
        save_catalog(catalog, path)
        logger.info(f'Saved {len(catalog)} patterns to {path}')
        return self.publish(catalog)


_store = CatalogStore()


def get_store() -> CatalogStore:
    return _store
