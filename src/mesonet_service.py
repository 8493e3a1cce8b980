# ABOUTME: Fetch orchestrator for the Iowa Environmental Mesonet ASOS archive.
# ABOUTME: Splits a query by network group and sub-window, fetches with bounded concurrency, keeps dust reports.

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime, time, timedelta, timezone

import httpx

from src.deps import DustDeps
from src.dust_codes import classify
from src.mesonet_parser import ObservationParser, iter_observations
from src.models import Observation, TimeWindow
from src.retry import RetryPolicy
from src.stations import patch_coordinates

logger = logging.getLogger(__name__)

NETWORKS = (
    "SA__ASOS",
    "KW__ASOS",
    "AE__ASOS",
    "QA__ASOS",
    "BH__ASOS",
    "OM__ASOS",
    "YE__ASOS",
    "JO__ASOS",
    "IQ__ASOS",
    "SY__ASOS",
    "LB__ASOS",
    "IR__ASOS",
)

BASE_PARAMS = (
    ("data", "all"),
    ("tz", "Etc/UTC"),
    ("format", "onlycomma"),
    ("latlon", "yes"),
    ("missing", "null"),
    ("trace", "T"),
)

_END_OF_DAY = time(23, 59, 59, 999000)


def chunk_networks(networks: Sequence[str], size: int) -> list[list[str]]:
    """Split the network list into groups of at most `size`."""
    return [list(networks[i : i + size]) for i in range(0, len(networks), size)]


def split_time_range(start: datetime, end: datetime, days: int) -> list[tuple[datetime, datetime]]:
    """Split [start, end] into consecutive, non-overlapping spans of at most `days` calendar days.

    Every span but the last ends at 23:59:59.999 UTC; the next one starts 1 ms later.
    """
    spans = []
    current = start
    while current < end:
        last_day = (current + timedelta(days=days - 1)).date()
        span_end = min(end, datetime.combine(last_day, _END_OF_DAY, tzinfo=timezone.utc))
        spans.append((current, span_end))
        current = span_end + timedelta(milliseconds=1)
    return spans


def build_params(networks: Sequence[str], start: datetime, end: datetime) -> list[tuple[str, str | int]]:
    """Query parameters for one upstream request.

    The archive treats the second date as exclusive, so the day after `end` is sent.
    """
    stop = end.date() + timedelta(days=1)
    params: list[tuple[str, str | int]] = [("network", net) for net in networks]
    params.extend(BASE_PARAMS)
    params.extend(
        [
            ("year1", start.year),
            ("month1", start.month),
            ("day1", start.day),
            ("year2", stop.year),
            ("month2", stop.month),
            ("day2", stop.day),
        ]
    )
    return params


async def fetch_partition(
    client: httpx.AsyncClient,
    base_url: str,
    networks: Sequence[str],
    start: datetime,
    end: datetime,
    retry_policy: RetryPolicy,
    timeout: float | None = None,
    parser: ObservationParser = iter_observations,
) -> list[Observation]:
    """Fetch one (network group, sub-window) partition and keep only dust reports inside the window.

    Transient HTTP failures are retried per `retry_policy`; when attempts run out the
    partition is logged and treated as empty. A malformed body raises MesonetParseError.
    """
    params = build_params(networks, start, end)
    try:
        async for attempt in retry_policy.retrying():
            with attempt:
                resp = await client.get(base_url, params=params, timeout=timeout)
                resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(
            "Giving up on %s for %s..%s after %d attempts: %s",
            ",".join(networks),
            start.isoformat(),
            end.isoformat(),
            retry_policy.max_attempts,
            e,
        )
        return []

    raw_count = 0
    kept = []
    for obs in parser(resp.text):
        raw_count += 1
        if not start <= obs.valid <= end or not classify(obs.wxcodes):
            continue
        kept.append(patch_coordinates(obs))
    logger.debug("Partition %s: %d raw records, %d dust records", ",".join(networks), raw_count, len(kept))
    return kept


async def get_dust_data(
    deps: DustDeps,
    window: TimeWindow,
    now: datetime | None = None,
    networks: Sequence[str] = NETWORKS,
    parser: ObservationParser = iter_observations,
) -> list[Observation]:
    """Fetch every partition of the window and return the concatenated dust observations.

    At most `settings.max_concurrency` partitions are in flight at once. Partitions that
    fail after retries contribute nothing; a parse error from any partition is re-raised
    once all partitions have settled.
    """
    settings = deps.settings
    start, end = window.resolve(now or datetime.now(timezone.utc))
    spans = split_time_range(start, end, settings.window_days)
    groups = chunk_networks(networks, settings.network_chunk_size)
    semaphore = asyncio.Semaphore(settings.max_concurrency)
    retry_policy = deps.retry_policy

    async def run(group: list[str], span_start: datetime, span_end: datetime) -> list[Observation]:
        async with semaphore:
            return await fetch_partition(
                deps.http_client,
                settings.mesonet_url,
                group,
                span_start,
                span_end,
                retry_policy,
                timeout=settings.request_timeout,
                parser=parser,
            )

    logger.info(
        "Fetching %s..%s as %d partitions (%d windows x %d network groups)",
        start.isoformat(),
        end.isoformat(),
        len(spans) * len(groups),
        len(spans),
        len(groups),
    )
    results = await asyncio.gather(
        *(run(group, s, e) for s, e in spans for group in groups),
        return_exceptions=True,
    )

    observations: list[Observation] = []
    for result in results:
        if isinstance(result, BaseException):
            raise result
        observations.extend(result)
    logger.info("Fetched %d dust observations", len(observations))
    return observations
