# ABOUTME: Daily dust report: per-country phenomenon counts, per-station detail and regional totals.
# ABOUTME: Converts observations to metric units and groups them by ICAO country prefix.

import math
from collections.abc import Iterable
from datetime import date

from src.aggregation import DIRECTIONS, direction_index, is_number
from src.dust_codes import PHENOMENA, PHENOMENA_LABELS, detect_phenomenon
from src.models import (
    CountrySummaryRow,
    Observation,
    Report,
    ReportObservation,
    ReportTotals,
    StationDetail,
)
from src.stations import COUNTRIES_ORDER, PRIMARY_COUNTRY, UNKNOWN_COUNTRY, country_for_station

KMH_PER_KNOT = 1.852
METERS_PER_MILE = 1609.344


def round_half_up(value: float) -> int:
    """Nearest integer with halves rounded up, so 2.5 gives 3."""
    return math.floor(value + 0.5)


def f_to_c(deg_f: float | None) -> int | None:
    if not is_number(deg_f):
        return None
    return round_half_up((deg_f - 32) * 5 / 9)


def knots_to_kmh(knots: float) -> int:
    return round_half_up(knots * KMH_PER_KNOT)


def miles_to_meters(miles: float | None) -> int | None:
    """Statute miles to meters, rounded to the nearest 100 m."""
    if not is_number(miles):
        return None
    return round_half_up(miles * METERS_PER_MILE / 100) * 100


def deg_to_compass(deg: float | None) -> str:
    if not is_number(deg):
        return "N/A"
    return DIRECTIONS[direction_index(deg)]


def to_report_observation(obs: Observation) -> ReportObservation:
    wind_kt = obs.sknt if is_number(obs.sknt) else 0.0
    return ReportObservation(
        time=obs.valid,
        temp_c=f_to_c(obs.tmpf),
        dew_c=f_to_c(obs.dwpf),
        wind_kt=wind_kt,
        wind_kmh=knots_to_kmh(wind_kt),
        wind_dir=obs.drct if is_number(obs.drct) else None,
        wind_dir_compass=deg_to_compass(obs.drct),
        vis_meters=miles_to_meters(obs.vsby),
        vis_miles=obs.vsby if is_number(obs.vsby) else None,
        wxcodes=obs.wxcodes or "",
        metar=obs.metar or "",
        lat=obs.lat if is_number(obs.lat) else None,
        lon=obs.lon if is_number(obs.lon) else None,
    )


def build_report(day: date, observations: Iterable[Observation]) -> Report:
    """Build the report for `day` from that day's dust observations.

    Every tracked country appears in the summary table, in canonical order, even
    with zero counts. Stations whose prefix maps to no tracked country are left out.
    """
    counts = {country: dict.fromkeys(PHENOMENA, 0) for country in COUNTRIES_ORDER}
    details: dict[str, StationDetail] = {}

    for obs in observations:
        country = country_for_station(obs.station)
        if country == UNKNOWN_COUNTRY:
            continue

        phenomenon = detect_phenomenon(obs.wxcodes)
        if phenomenon is not None:
            counts[country][phenomenon] += 1

        detail = details.get(obs.station)
        if detail is None:
            detail = details[obs.station] = StationDetail(country=country, station=obs.station)
        detail.observations.append(to_report_observation(obs))
        if obs.wxcodes and obs.wxcodes not in detail.wxcodes:
            detail.wxcodes.append(obs.wxcodes)

    for detail in details.values():
        detail.observations.sort(key=lambda o: o.time)

    summary_table = [
        CountrySummaryRow(country=country, counts=counts[country], total=sum(counts[country].values()))
        for country in COUNTRIES_ORDER
    ]
    primary = sum(row.total for row in summary_table if row.country == PRIMARY_COUNTRY)
    totals = ReportTotals(
        primary_country=PRIMARY_COUNTRY,
        primary=primary,
        region=sum(row.total for row in summary_table) - primary,
        by_phenomenon={ph: sum(row.counts[ph] for row in summary_table) for ph in PHENOMENA},
    )

    stations_by_country: dict[str, list[StationDetail]] = {}
    for country in COUNTRIES_ORDER:
        stations = sorted((d for d in details.values() if d.country == country), key=lambda d: d.station)
        if stations:
            stations_by_country[country] = stations

    return Report(
        date=day,
        summary_table=summary_table,
        totals=totals,
        stations_by_country=stations_by_country,
        phenomena_labels=dict(PHENOMENA_LABELS),
    )
