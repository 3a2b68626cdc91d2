"""Desired-state table loading.

The drive mapping table is a CSV file with the columns ``DriveName``,
``DriveLetter``, ``DomainName``, ``DrivePath`` and either ``GroupName``
(local directory) or ``GroupID`` (identity provider). It is read from a
local path, a file-share path, or an http(s) URL, and every row is parsed
into a validated DriveMapping at this boundary. Malformed rows are
collected as row errors instead of failing the whole table.
"""

import csv
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from pydantic import ValidationError

from egnytectl.models.mapping import DriveMapping, mount_point_mismatch
from egnytectl.utils.http import DownloadError, download, is_url

logger = logging.getLogger(__name__)

# Normalized header -> DriveMapping field
COLUMN_FIELDS: dict[str, str] = {
    "drivename": "drive_name",
    "driveletter": "drive_letter",
    "domainname": "domain_name",
    "drivepath": "drive_path",
    "groupname": "group_key",
    "groupid": "group_key",
}

REQUIRED_FIELDS = ("drive_name", "drive_letter", "domain_name", "drive_path", "group_key")

# Export-Csv in Windows PowerShell 5 writes a type header before the columns
_POWERSHELL_TYPE_PREFIX = "#TYPE"


class MappingError(Exception):
    """Base exception for mapping table errors."""


class MappingSourceError(MappingError):
    """Raised when the mapping table cannot be read or downloaded."""


class MappingParseError(MappingError):
    """Raised when the mapping table as a whole is unusable."""


@dataclass(frozen=True, slots=True)
class MappingRowError:
    """A rejected row of the mapping table.

    Attributes:
        line: Line number in the source file (header is line 1).
        message: Why the row was rejected.
    """

    line: int
    message: str

    def __str__(self) -> str:
        return f"line {self.line}: {self.message}"


@dataclass(frozen=True, slots=True)
class MappingTable:
    """Parsed desired-state table.

    Attributes:
        mappings: Valid mappings in file order.
        errors: Rows that were rejected.
        source: Where the table was read from.
    """

    mappings: tuple[DriveMapping, ...]
    errors: tuple[MappingRowError, ...] = ()
    source: str = "<memory>"

    @property
    def has_errors(self) -> bool:
        """Check if any row was rejected."""
        return bool(self.errors)


def _normalize_header(name: str) -> str:
    return name.strip().replace(" ", "").replace("_", "").lower()


def _format_validation_error(error: ValidationError) -> str:
    """Condense a Pydantic error into one line per offending field."""
    parts: list[str] = []
    for item in error.errors():
        location = ".".join(str(loc) for loc in item["loc"]) or "row"
        message = item["msg"].removeprefix("Value error, ")
        parts.append(f"{location}: {message}")
    return "; ".join(parts)


def _resolve_columns(fieldnames: list[str]) -> dict[str, str]:
    """Map CSV header names to DriveMapping fields.

    Raises:
        MappingParseError: If a required column is missing or the group
            column is ambiguous.
    """
    columns: dict[str, str] = {}
    for name in fieldnames:
        field = COLUMN_FIELDS.get(_normalize_header(name))
        if field is None:
            continue
        if field in columns.values():
            msg = f"Ambiguous column {name!r}: {field} is already provided"
            raise MappingParseError(msg)
        columns[name] = field

    missing = [field for field in REQUIRED_FIELDS if field not in columns.values()]
    if missing:
        msg = f"Missing required column(s): {', '.join(missing)}"
        raise MappingParseError(msg)
    return columns


def parse_mappings(
    text: str, source: str = "<memory>", kind: str | None = None
) -> MappingTable:
    """Parse CSV text into a mapping table.

    Rows keep their file order. A drive letter that was already claimed by
    an earlier valid row is rejected on the later row. With a backend kind,
    rows whose mount point does not suit that backend are rejected too.

    Args:
        text: CSV content.
        source: Label for log messages.
        kind: Backend kind to check mount points against, if any.

    Returns:
        MappingTable with valid mappings and collected row errors.

    Raises:
        MappingParseError: If the table has no header or lacks required columns.
    """
    lines = text.lstrip("\ufeff").splitlines()
    line_offset = 0
    if lines and lines[0].startswith(_POWERSHELL_TYPE_PREFIX):
        lines = lines[1:]
        line_offset = 1

    reader = csv.DictReader(io.StringIO("\n".join(lines)))
    if not reader.fieldnames:
        raise MappingParseError(f"Mapping table {source} is empty")

    columns = _resolve_columns(list(reader.fieldnames))

    mappings: list[DriveMapping] = []
    errors: list[MappingRowError] = []
    claimed: dict[str, int] = {}

    for row in reader:
        line = reader.line_num + line_offset
        values = {field: (row.get(name) or "").strip() for name, field in columns.items()}
        if not any(values.values()):
            continue

        try:
            mapping = DriveMapping(**values)
        except ValidationError as e:
            errors.append(MappingRowError(line, _format_validation_error(e)))
            continue

        mismatch = mount_point_mismatch(mapping.drive_letter, kind) if kind else None
        if mismatch:
            errors.append(MappingRowError(line, mismatch))
            continue

        key = mapping.drive_letter.casefold()
        if key in claimed:
            errors.append(
                MappingRowError(
                    line,
                    f"drive letter {mapping.drive_letter} is already used on line {claimed[key]}",
                )
            )
            continue

        claimed[key] = line
        mappings.append(mapping)

    for error in errors:
        logger.warning("Rejected mapping row in %s %s", source, error)
    logger.info("Loaded %d mapping(s) from %s", len(mappings), source)

    return MappingTable(mappings=tuple(mappings), errors=tuple(errors), source=source)


def _decode(data: bytes, source: str) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise MappingParseError(f"Mapping table {source} is not valid UTF-8: {e}") from e


def read_source(source: str, cache_dir: Path | None = None, timeout: float = 30.0) -> str:
    """Read the raw mapping table from a path or URL.

    Downloaded tables are also written to ``cache_dir`` so the last copy can
    be inspected after a run.

    Args:
        source: Local path, file-share path, or http(s) URL.
        cache_dir: Where to keep a copy of downloaded tables.
        timeout: HTTP timeout in seconds.
        kind: Backend kind to check mount points against, if any.

    Returns:
        Decoded CSV text.

    Raises:
        MappingSourceError: If the source cannot be read.
        MappingParseError: If the content is not valid UTF-8.
    """
    if is_url(source):
        try:
            data = download(source, timeout=timeout)
        except DownloadError as e:
            raise MappingSourceError(str(e)) from e
        if cache_dir is not None:
            name = Path(urlparse(source).path).name or "mappings.csv"
            try:
                cache_dir.mkdir(parents=True, exist_ok=True)
                (cache_dir / name).write_bytes(data)
            except OSError as e:
                logger.warning("Could not cache mapping table: %s", e)
        return _decode(data, source)

    path = Path(source)
    try:
        data = path.read_bytes()
    except FileNotFoundError as e:
        raise MappingSourceError(f"Mapping table not found: {source}") from e
    except OSError as e:
        raise MappingSourceError(f"Failed to read mapping table {source}: {e}") from e
    return _decode(data, source)


def load_mappings(
    source: str,
    cache_dir: Path | None = None,
    timeout: float = 30.0,
    kind: str | None = None,
) -> MappingTable:
    """Read and parse the desired-state table.

    Args:
        source: Local path, file-share path, or http(s) URL.
        cache_dir: Where to keep a copy of downloaded tables.
        timeout: HTTP timeout in seconds.
        kind: Backend kind to check mount points against, if any.

    Returns:
        Parsed MappingTable.

    Raises:
        MappingError: If the table cannot be read or is unusable as a whole.
    """
    text = read_source(source, cache_dir=cache_dir, timeout=timeout)
    return parse_mappings(text, source=source, kind=kind)
