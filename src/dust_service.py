# ABOUTME: Query facade used by the route layer: cached fetches plus the aggregate views over them.
# ABOUTME: Validates caller input before any upstream request is made.

import logging
from collections.abc import Awaitable, Callable
from datetime import date

from pydantic import ValidationError

from src import aggregation
from src.cache import ResultCache
from src.deps import DustDeps
from src.mesonet_service import get_dust_data
from src.models import MapPoint, Observation, Report, Summary, TimeWindow, WindRoseBin
from src.report_service import build_report

logger = logging.getLogger(__name__)

Fetcher = Callable[[DustDeps, TimeWindow], Awaitable[list[Observation]]]


class InvalidRequestError(ValueError):
    """Caller input that cannot be turned into a query."""


def make_window(hours: int | None = None, start: str | None = None, end: str | None = None) -> TimeWindow:
    """Build a TimeWindow from raw query values.

    Both dates are needed for an explicit range; with only one, the hour lookback is used.
    """
    try:
        if start and end:
            return TimeWindow(start=start, end=end)
        if hours is None:
            return TimeWindow()
        return TimeWindow(hours=hours)
    except ValidationError as e:
        raise InvalidRequestError(str(e)) from e


def parse_report_date(value: str | None) -> date:
    if not value:
        raise InvalidRequestError("Date parameter required (YYYY-MM-DD)")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidRequestError(f"Invalid date {value!r}, use YYYY-MM-DD") from e


class DustService:
    """Serves every dust view from one cached fetch per time window."""

    def __init__(self, deps: DustDeps, cache: ResultCache, fetcher: Fetcher = get_dust_data) -> None:
        self.deps = deps
        self.cache = cache
        self._fetch = fetcher

    async def get_data(self, window: TimeWindow) -> list[Observation]:
        key = window.cache_key()
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Serving dust data from cache for key %s", key)
            return cached

        logger.info("Cache miss for key %s, fetching", key)
        observations = await self._fetch(self.deps, window)
        self.cache.set(key, observations)
        return observations

    async def all_observations(self, window: TimeWindow) -> list[Observation]:
        return aggregation.to_table(await self.get_data(window))

    async def summary(self, window: TimeWindow) -> Summary:
        return aggregation.to_summary(await self.get_data(window))

    async def map_points(self, window: TimeWindow) -> list[MapPoint]:
        return aggregation.to_map_points(await self.get_data(window))

    async def wind_rose(self, window: TimeWindow, station: str | None = None) -> list[WindRoseBin]:
        observations = aggregation.filter_by_station(await self.get_data(window), station)
        return aggregation.to_wind_rose(observations)

    async def report(self, date_str: str | None) -> Report:
        """Report for one UTC calendar day; the date is validated before fetching."""
        day = parse_report_date(date_str)
        observations = await self.get_data(TimeWindow(start=day, end=day))
        return build_report(day, observations)
