# ABOUTME: Contract tests for the Mesonet fetch orchestrator.
# ABOUTME: Validates partitioning, request params, retry downgrade, filtering and bounded concurrency.

import asyncio
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest
from asos_samples import asos_body, asos_row

from src.config import Settings
from src.deps import DustDeps
from src.mesonet_parser import MesonetParseError
from src.mesonet_service import (
    NETWORKS,
    build_params,
    chunk_networks,
    fetch_partition,
    get_dust_data,
    split_time_range,
)
from src.models import TimeWindow
from src.retry import RetryPolicy

URL = "https://mesonet.test/asos.py"
NO_WAIT = RetryPolicy(backoff_seconds=0)


def _response(text: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code=status_code, text=text, request=httpx.Request("GET", URL))


def _mock_client(*responses) -> httpx.AsyncClient:
    """Create a mock httpx.AsyncClient whose successive GETs return or raise the given items."""
    mock = AsyncMock(spec=httpx.AsyncClient)
    mock.get.side_effect = list(responses)
    return mock


def _deps(client: httpx.AsyncClient, **overrides) -> DustDeps:
    settings = Settings(mesonet_url=URL, retry_backoff_seconds=0, **overrides)
    return DustDeps(http_client=client, settings=settings)


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestPartitioning:
    def test_chunk_networks(self):
        """The 12 networks split into three groups of four.

        Implementation: Chunks NETWORKS with the default size.
        Passing implies: Each upstream request names at most four networks.
        """
        groups = chunk_networks(NETWORKS, 4)
        assert len(groups) == 3
        assert groups[0] == ["SA__ASOS", "KW__ASOS", "AE__ASOS", "QA__ASOS"]
        assert sum(len(g) for g in groups) == 12

    def test_chunk_networks_uneven(self):
        """A size that does not divide the list leaves a short last group.

        Implementation: Chunks five items by two.
        Passing implies: No network is dropped.
        """
        assert chunk_networks(["a", "b", "c", "d", "e"], 2) == [["a", "b"], ["c", "d"], ["e"]]

    def test_short_range_is_one_span(self):
        """A range shorter than the span length is fetched in one piece.

        Implementation: Splits a 24-hour range into 10-day spans.
        Passing implies: Typical dashboard queries make one request per network group.
        """
        start, end = _utc(2025, 3, 9, 12), _utc(2025, 3, 10, 12)
        assert split_time_range(start, end, 10) == [(start, end)]

    def test_long_range_splits_on_day_boundaries(self):
        """A 25-day range becomes 10 + 10 + 5 day spans that do not overlap.

        Implementation: Splits March 1 to March 25 inclusive.
        Passing implies: Long queries are bounded and adjacent spans share no instant.
        """
        start = _utc(2025, 3, 1)
        end = datetime(2025, 3, 25, 23, 59, 59, 999000, tzinfo=timezone.utc)
        spans = split_time_range(start, end, 10)

        assert len(spans) == 3
        assert spans[0] == (start, datetime(2025, 3, 10, 23, 59, 59, 999000, tzinfo=timezone.utc))
        assert spans[1][0] == _utc(2025, 3, 11)
        assert spans[2] == (_utc(2025, 3, 21), end)

    def test_build_params(self):
        """Request params repeat `network` and send an exclusive end date.

        Implementation: Builds params for one day and inspects them.
        Passing implies: The upstream receives the whole requested day.
        """
        params = build_params(["SA__ASOS", "KW__ASOS"], _utc(2025, 3, 10), _utc(2025, 3, 10, 23, 59))
        assert params[:2] == [("network", "SA__ASOS"), ("network", "KW__ASOS")]
        d = dict(params[2:])
        assert d["format"] == "onlycomma"
        assert d["missing"] == "null"
        assert d["latlon"] == "yes"
        assert (d["year1"], d["month1"], d["day1"]) == (2025, 3, 10)
        assert (d["year2"], d["month2"], d["day2"]) == (2025, 3, 11)


class TestFetchPartition:
    @pytest.mark.asyncio
    async def test_keeps_only_dust_inside_window(self):
        """Only dust reports within the partition window are kept, with coordinates patched.

        Implementation: Serves one dust row, one rain row, one out-of-window dust row and one OERS row.
        Passing implies: Filtering happens per partition before accumulation.
        """
        body = asos_body(
            asos_row("OERK", "2025-03-10 12:00", wxcodes="+BLDU"),
            asos_row("OEJN", "2025-03-10 12:00", wxcodes="RA"),
            asos_row("OEDR", "2025-03-12 12:00", wxcodes="DU"),
            asos_row("OERS", "2025-03-10 13:00", wxcodes="SA"),
        )
        client = _mock_client(_response(body))
        result = await fetch_partition(client, URL, ["SA__ASOS"], _utc(2025, 3, 10), _utc(2025, 3, 10, 23), NO_WAIT)

        assert [o.station for o in result] == ["OERK", "OERS"]
        assert (result[1].lat, result[1].lon) == (25.6283, 37.0889)

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        """A 503 followed by a good response yields the good data.

        Implementation: First GET returns 503, second returns a dust row.
        Passing implies: Non-success statuses are retried.
        """
        client = _mock_client(
            _response("busy", status_code=503),
            _response(asos_body(asos_row("OERK", "2025-03-10 12:00", wxcodes="DS"))),
        )
        result = await fetch_partition(client, URL, ["SA__ASOS"], _utc(2025, 3, 10), _utc(2025, 3, 10, 23), NO_WAIT)

        assert len(result) == 1
        assert client.get.call_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_yield_empty(self):
        """Three failed attempts produce an empty partition instead of an error.

        Implementation: Every GET raises a connection error.
        Passing implies: One unreachable network group cannot fail the whole query.
        """
        error = httpx.ConnectError("down")
        client = _mock_client(error, error, error)
        result = await fetch_partition(client, URL, ["SA__ASOS"], _utc(2025, 3, 10), _utc(2025, 3, 10, 23), NO_WAIT)

        assert result == []
        assert client.get.call_count == 3

    @pytest.mark.asyncio
    async def test_malformed_body_raises(self):
        """A body that is not ASOS CSV raises MesonetParseError.

        Implementation: Returns an upstream error line with status 200.
        Passing implies: Malformed payloads are not mistaken for empty partitions.
        """
        client = _mock_client(_response("#ERROR: bad request\n"))
        with pytest.raises(MesonetParseError):
            await fetch_partition(client, URL, ["SA__ASOS"], _utc(2025, 3, 10), _utc(2025, 3, 10, 23), NO_WAIT)

    @pytest.mark.asyncio
    async def test_sends_params_and_timeout(self):
        """The GET goes to the configured URL with built params and the per-request timeout.

        Implementation: Inspects the mock client's call args.
        Passing implies: Every partition request carries a deadline.
        """
        client = _mock_client(_response(asos_body()))
        await fetch_partition(
            client, URL, ["SA__ASOS"], _utc(2025, 3, 10), _utc(2025, 3, 10, 23), NO_WAIT, timeout=45.0
        )

        call = client.get.call_args
        assert call.args[0] == URL
        assert ("network", "SA__ASOS") in call.kwargs["params"]
        assert call.kwargs["timeout"] == 45.0


class TestGetDustData:
    @pytest.mark.asyncio
    async def test_surviving_partition_results_returned(self):
        """With one partition succeeding and one exhausting retries, only the survivor's records come back.

        Implementation: Two network groups; the first GET returns three dust rows, the rest fail.
        Passing implies: Partial upstream outages degrade to partial results without raising.
        """
        body = asos_body(
            asos_row("OERK", "2025-03-10 01:00", wxcodes="DU"),
            asos_row("OERK", "2025-03-10 02:00", wxcodes="+SS"),
            asos_row("OEJN", "2025-03-10 03:00", wxcodes="BLSA"),
        )
        error = httpx.ReadTimeout("slow")
        client = _mock_client(_response(body), error, error, error)
        deps = _deps(client, network_chunk_size=1, max_concurrency=1)

        window = TimeWindow(start=date(2025, 3, 10), end=date(2025, 3, 10))
        result = await get_dust_data(deps, window, networks=["SA__ASOS", "KW__ASOS"])

        assert len(result) == 3
        assert client.get.call_count == 4

    @pytest.mark.asyncio
    async def test_all_partitions_fail_returns_empty(self):
        """When every partition fails the result is an empty list.

        Implementation: All GETs raise connection errors.
        Passing implies: Total upstream failure is soft.
        """
        error = httpx.ConnectError("down")
        client = _mock_client(*[error] * 9)
        deps = _deps(client)

        result = await get_dust_data(deps, TimeWindow(hours=6), now=_utc(2025, 3, 10, 12))
        assert result == []
        assert client.get.call_count == 9

    @pytest.mark.asyncio
    async def test_partition_count_is_windows_times_groups(self):
        """A 25-day range over 12 networks makes 3 x 3 requests.

        Implementation: Serves empty bodies and counts GETs.
        Passing implies: Time spans and network groups are independent partition axes.
        """
        client = AsyncMock(spec=httpx.AsyncClient)
        client.get.return_value = _response(asos_body())
        deps = _deps(client)

        window = TimeWindow(start=date(2025, 3, 1), end=date(2025, 3, 25))
        await get_dust_data(deps, window)
        assert client.get.call_count == 9

    @pytest.mark.asyncio
    async def test_parse_error_propagates(self):
        """A malformed body from any partition fails the whole fetch.

        Implementation: The only GET returns text without the required columns.
        Passing implies: Callers see malformed-payload errors.
        """
        client = _mock_client(_response("not,a,metar,file\n1,2,3,4\n"))
        deps = _deps(client)
        with pytest.raises(MesonetParseError):
            await get_dust_data(deps, TimeWindow(hours=6), now=_utc(2025, 3, 10, 12), networks=["SA__ASOS"])

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        """No more than max_concurrency partitions are in flight at once.

        Implementation: A fake GET tracks how many calls overlap while yielding to the loop.
        Passing implies: The semaphore caps simultaneous upstream requests.
        """
        in_flight = 0
        peak = 0

        async def slow_get(*args, **kwargs):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return _response(asos_body())

        client = AsyncMock(spec=httpx.AsyncClient)
        client.get.side_effect = slow_get
        deps = _deps(client, network_chunk_size=1, max_concurrency=2)

        await get_dust_data(deps, TimeWindow(hours=6), now=_utc(2025, 3, 10, 12))
        assert client.get.call_count == 12
        assert peak == 2
