# ABOUTME: Pydantic BaseModels for METAR observations, query windows and derived views.
# ABOUTME: Defines the structured types shared by the fetcher, aggregations and report builder.

from datetime import date, datetime, time, timedelta, timezone

from pydantic import BaseModel, Field, model_validator

# One leap year of lookback.
MAX_HOURS = 8784


class Observation(BaseModel):
    """One ASOS/METAR surface report as returned by the Mesonet archive.

    Numeric fields are None when upstream marked them missing and NaN when the
    text could not be read as a number.
    """

    station: str
    valid: datetime
    lat: float | None = None
    lon: float | None = None
    tmpf: float | None = None
    dwpf: float | None = None
    relh: float | None = None
    drct: float | None = None
    sknt: float | None = None
    gust: float | None = None
    vsby: float | None = None
    alti: float | None = None
    mslp: float | None = None
    skyc1: str | None = None
    skyc2: str | None = None
    skyc3: str | None = None
    skyc4: str | None = None
    skyl1: float | None = None
    skyl2: float | None = None
    skyl3: float | None = None
    skyl4: float | None = None
    wxcodes: str | None = None
    metar: str | None = None


class TimeWindow(BaseModel):
    """Requested time range: a lookback of `hours` ending now, or an explicit date pair."""

    hours: int = Field(default=24, gt=0, le=MAX_HOURS)
    start: date | None = None
    end: date | None = None

    @model_validator(mode="after")
    def _check_order(self) -> "TimeWindow":
        if self.is_explicit and self.start > self.end:
            raise ValueError(f"start date {self.start} is after end date {self.end}")
        return self

    @property
    def is_explicit(self) -> bool:
        return self.start is not None and self.end is not None

    def cache_key(self) -> str:
        """Canonical key: the date pair when both dates are given, otherwise the hour count."""
        if self.is_explicit:
            return f"{self.start.isoformat()}_{self.end.isoformat()}"
        return str(self.hours)

    def resolve(self, now: datetime) -> tuple[datetime, datetime]:
        """Turn the window into concrete UTC instants.

        An explicit end date extends to 23:59:59.999 of that day.
        """
        if self.is_explicit:
            start = datetime.combine(self.start, time.min, tzinfo=timezone.utc)
            end = datetime.combine(self.end, time(23, 59, 59, 999000), tzinfo=timezone.utc)
            return start, end
        return now - timedelta(hours=self.hours), now


class MapPoint(Observation):
    """Observation with a heatmap weight in [0, 1]."""

    intensity: float


class StationSummary(BaseModel):
    """Running aggregate for one station."""

    name: str
    count: int = 0
    last_event: datetime
    max_wind: float = 0.0


class Summary(BaseModel):
    """Counters over a classified observation set."""

    total_events: int = 0
    by_type: dict[str, int] = {}
    by_station: dict[str, StationSummary] = {}
    latest_event: Observation | None = None


class WindRoseBin(BaseModel):
    """One speed band of the wind rose: a count per compass direction."""

    label: str
    color: str
    r: list[int]
    theta: list[str]


class ReportObservation(BaseModel):
    """One observation as shown in the daily report, in metric units."""

    time: datetime
    temp_c: int | None = None
    dew_c: int | None = None
    wind_kt: float = 0.0
    wind_kmh: int = 0
    wind_dir: float | None = None
    wind_dir_compass: str = "N/A"
    vis_meters: int | None = None
    vis_miles: float | None = None
    wxcodes: str = ""
    metar: str = ""
    lat: float | None = None
    lon: float | None = None


class StationDetail(BaseModel):
    """All dust observations of one station for the report day."""

    country: str
    station: str
    observations: list[ReportObservation] = []
    wxcodes: list[str] = []


class CountrySummaryRow(BaseModel):
    """Per-country phenomenon counts; `counts` always holds all seven codes."""

    country: str
    counts: dict[str, int]
    total: int


class ReportTotals(BaseModel):
    primary_country: str
    primary: int
    region: int
    by_phenomenon: dict[str, int]


class Report(BaseModel):
    """Daily dust report for the tracked countries."""

    date: date
    summary_table: list[CountrySummaryRow]
    totals: ReportTotals
    stations_by_country: dict[str, list[StationDetail]] = {}
    phenomena_labels: dict[str, str] = {}
