# ABOUTME: Projections over a classified observation set: table, map points, summary and wind rose.
# ABOUTME: Pure functions; none of them mutate the observations they are given.

import math
from collections.abc import Iterable, Sequence

from src.dust_codes import SEVERE_CODES, codes_in
from src.models import MapPoint, Observation, StationSummary, Summary, WindRoseBin

DIRECTIONS = ("N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE", "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW")

# (label, exclusive upper bound in knots, color)
WIND_BINS = (
    ("< 2", 2, "blue"),
    ("2-5", 5, "deepskyblue"),
    ("5-7", 7, "limegreen"),
    ("7-10", 10, "yellow"),
    ("10-15", 15, "orange"),
    ("15-20", 20, "red"),
    ("> 20", math.inf, "darkred"),
)


def is_number(value: float | None) -> bool:
    return value is not None and not math.isnan(value)


def to_table(observations: Iterable[Observation]) -> list[Observation]:
    return list(observations)


def filter_by_station(observations: Iterable[Observation], station: str | None) -> list[Observation]:
    """Keep one station's observations; no station means keep everything."""
    if not station:
        return list(observations)
    return [obs for obs in observations if obs.station == station]


def calculate_intensity(wxcodes: str | None, vsby: float | None) -> float:
    """Heatmap weight: lower visibility weighs more, DS/SS always weigh 1.0."""
    weight = 0.6
    if is_number(vsby):
        if vsby < 1:
            weight = 1.0
        elif vsby < 3:
            weight = 0.8
        elif vsby < 5:
            weight = 0.6
    if SEVERE_CODES.intersection(codes_in(wxcodes)):
        weight = 1.0
    return weight


def to_map_points(observations: Iterable[Observation]) -> list[MapPoint]:
    return [
        MapPoint(**obs.model_dump(), intensity=calculate_intensity(obs.wxcodes, obs.vsby))
        for obs in observations
    ]


def to_summary(observations: Sequence[Observation]) -> Summary:
    """Single-pass counters: per code token, per station, and the most recent event.

    A report carrying two codes counts once for each. On equal timestamps the
    first observation seen stays the latest event.
    """
    by_type: dict[str, int] = {}
    by_station: dict[str, StationSummary] = {}
    latest: Observation | None = None

    for obs in observations:
        for code in codes_in(obs.wxcodes):
            by_type[code] = by_type.get(code, 0) + 1

        entry = by_station.get(obs.station)
        if entry is None:
            entry = by_station[obs.station] = StationSummary(name=obs.station, last_event=obs.valid)
        entry.count += 1
        if obs.valid > entry.last_event:
            entry.last_event = obs.valid
        wind = obs.sknt if is_number(obs.sknt) else 0.0
        if wind > entry.max_wind:
            entry.max_wind = wind

        if latest is None or obs.valid > latest.valid:
            latest = obs

    return Summary(
        total_events=len(observations),
        by_type=by_type,
        by_station=by_station,
        latest_event=latest,
    )


def direction_index(drct: float) -> int:
    """Nearest of the 16 compass points; 360 wraps to N."""
    return math.floor(drct / 22.5 + 0.5) % 16


def speed_bin_index(sknt: float) -> int:
    for i, (_, upper, _) in enumerate(WIND_BINS):
        if sknt < upper:
            return i
    return len(WIND_BINS) - 1


def to_wind_rose(observations: Iterable[Observation]) -> list[WindRoseBin]:
    """Count observations into 7 speed bins x 16 directions.

    Observations missing direction or speed are skipped, and so are calm reports
    (0 kt from 0 degrees).
    """
    counts = [[0] * len(DIRECTIONS) for _ in WIND_BINS]
    for obs in observations:
        drct, sknt = obs.drct, obs.sknt
        if not (is_number(drct) and is_number(sknt)):
            continue
        if sknt == 0 and drct == 0:
            continue
        counts[speed_bin_index(sknt)][direction_index(drct)] += 1

    return [
        WindRoseBin(label=label, color=color, r=row, theta=list(DIRECTIONS))
        for (label, _, color), row in zip(WIND_BINS, counts)
    ]
