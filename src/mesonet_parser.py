# ABOUTME: Parser for the IEM ASOS comma-separated download format.
# ABOUTME: Turns a header-plus-rows text body into a stream of Observation models.

import csv
import math
from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Protocol

from src.models import Observation

MISSING_VALUES = frozenset({"", "null", "M"})

REQUIRED_COLUMNS = ("station", "valid", "wxcodes")

FLOAT_FIELDS = (
    "lat",
    "lon",
    "tmpf",
    "dwpf",
    "relh",
    "drct",
    "sknt",
    "gust",
    "vsby",
    "alti",
    "mslp",
    "skyl1",
    "skyl2",
    "skyl3",
    "skyl4",
)

TEXT_FIELDS = ("skyc1", "skyc2", "skyc3", "skyc4", "wxcodes", "metar")


class MesonetParseError(ValueError):
    """The upstream body could not be read as ASOS tabular data."""


class ObservationParser(Protocol):
    """Turns a raw upstream body into observations, in upstream row order."""

    def __call__(self, text: str) -> Iterator[Observation]: ...


def iter_observations(text: str) -> Iterator[Observation]:
    """Lazily parse an ASOS `onlycomma` body.

    An empty body yields nothing. A body that reports an upstream error, lacks a
    header, or lacks one of the required columns raises MesonetParseError.
    """
    if not text.strip():
        return

    lines = []
    for line in text.splitlines():
        if line.startswith("#ERROR"):
            raise MesonetParseError(f"Upstream reported an error: {line[1:].strip()}")
        if line.startswith("#") or not line.strip():
            continue
        lines.append(line)

    reader = csv.DictReader(lines)
    columns = reader.fieldnames or []
    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise MesonetParseError(f"Response header is missing columns: {', '.join(missing)}")

    for row in reader:
        yield parse_row(row)


def parse_row(row: dict[str, str | None]) -> Observation:
    """Convert one CSV row into an Observation."""
    values: dict[str, object] = {
        "station": (row.get("station") or "").strip(),
        "valid": _parse_valid(row.get("valid")),
    }
    for field in FLOAT_FIELDS:
        values[field] = _to_float(row.get(field))
    for field in TEXT_FIELDS:
        values[field] = _to_text(row.get(field))
    return Observation(**values)


def _parse_valid(raw: str | None) -> datetime:
    try:
        ts = datetime.fromisoformat((raw or "").strip())
    except ValueError as e:
        raise MesonetParseError(f"Unreadable observation time: {raw!r}") from e
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _to_float(raw: str | None) -> float | None:
    if raw is None or raw.strip() in MISSING_VALUES:
        return None
    try:
        return float(raw)
    except ValueError:
        return math.nan


def _to_text(raw: str | None) -> str | None:
    if raw is None or raw.strip() in MISSING_VALUES:
        return None
    return raw.strip()
