"""UTC-focused helpers for deterministic run metadata and record dates."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone

_COMPACT_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})(?:T|$)")
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_YEAR_RE = re.compile(r"^(\d{4})")


def utc_today_iso() -> str:
    return datetime.now(tz=timezone.utc).date().isoformat()


def parse_run_date(value: str | None) -> str:
    if not value:
        return utc_today_iso()
    parsed = date.fromisoformat(value)
    return parsed.isoformat()


def utc_timestamp_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")


def generate_run_id() -> str:
    now = datetime.now(tz=timezone.utc)
    return now.strftime("run-%Y%m%dT%H%M%S%fZ")


def parse_record_date(value: str | None) -> date | None:
    """Parse the date formats found in the open-data extracts.

    Handles ``20191125T15:17:17.3065280``, ``20191125``, ``2019-11-25`` and
    ``2019-11-25T00:00:00Z``. Anything else yields ``None``.
    """
    if not value:
        return None
    text = value.strip()
    match = _COMPACT_DATE_RE.match(text) or _ISO_DATE_RE.match(text)
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def parse_record_year(value: str | None) -> int | None:
    if not value:
        return None
    match = _YEAR_RE.match(value.strip())
    if not match:
        return None
    return int(match.group(1))


def _years_before(anchor: date, years: int) -> date:
    try:
        return anchor.replace(year=anchor.year - years)
    except ValueError:
        # 29 February in a non-leap target year.
        return anchor.replace(year=anchor.year - years, day=28)


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive date range used for the "recent" subtotals."""

    start: date | None
    end: date | None

    def contains(self, value: date | None) -> bool:
        if value is None:
            return False
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value > self.end:
            return False
        return True

    def contains_year(self, year: int | None) -> bool:
        if year is None:
            return False
        if self.start is not None and year < self.start.year:
            return False
        if self.end is not None and year > self.end.year:
            return False
        return True


def resolve_window(window_config: dict, run_date: str) -> TimeWindow:
    anchor = date.fromisoformat(run_date)
    if "years_back" in window_config:
        return TimeWindow(start=_years_before(anchor, int(window_config["years_back"])), end=anchor)

    from_year = window_config.get("from_year")
    to_year = window_config.get("to_year")
    return TimeWindow(
        start=date(int(from_year), 1, 1) if from_year is not None else None,
        end=date(int(to_year), 12, 31) if to_year is not None else None,
    )
