"""HTTP API for the weather dashboard and advice engine."""

import hmac
import threading
from datetime import datetime, timezone
from typing import List, Optional

import redis
from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel, Field

from weatherguide.advice_engine import build_advice, generate_advisory_items, group_advisories_by_category, severity_label
from weatherguide.app_types import CachedDashboard
from weatherguide.config import settings
from weatherguide.data_sources import alert_severity_class, default_data_source
from weatherguide.domain import (
    CATEGORY_TITLES,
    AdvisoryCategory,
    AdvisoryItem,
    AdvisorySeverity,
    AdvisorySummary,
    DisplayStats,
    HourlySample,
)
from weatherguide.errors import (
    ForecastDataError,
    ForecastError,
    ForecastNetworkError,
    GeocodeError,
    GeocodeNetworkError,
    InvalidInputError,
    LocationNotFoundError,
    RateLimitError,
    WeatherGuideError,
)
from weatherguide.forecast_service import WeatherDashboard, get_dashboard_for_city, get_dashboard_for_coordinates
from weatherguide.window_stats import compute_apparent_aware_stats, compute_window_stats
from utils.logging_utils import get_tagged_logger, mask_url_credentials

logger = get_tagged_logger(__name__, tag="api")

# Redis-backed API key set when configured; otherwise only the static key is checked
_redis_client = None
if settings.api_key_redis_url:
    try:
        _redis_client = redis.Redis.from_url(settings.api_key_redis_url)
        logger.info("API key checks will use Redis backend",
                    extra={"redis_url": mask_url_credentials(settings.api_key_redis_url)})
    except (redis.RedisError, ValueError) as exc:
        logger.warning("Failed to connect to Redis for API key checks; falling back to static key",
                       extra={"error": str(exc)})


def require_api_key(x_api_key: str | None = Header(default=None)):
    """
    Validate X-API-Key header against Redis (if configured) or the static api_key setting.
    """
    # No key configured anywhere: open access (dev/default mode).
    if not settings.api_key and not _redis_client:
        logger.debug("No API key configured; allowing all requests")
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if _redis_client:
        try:
            if _redis_client.sismember(settings.api_key_redis_set, x_api_key):
                return
        except redis.RedisError as e:
            logger.warning("Redis API key lookup error; falling back to static key",
                           extra={"error": str(e)})

    if settings.api_key and hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_api_key)])
DATA_SOURCE = default_data_source()

MAX_CACHED_DASHBOARDS = 256

_dashboard_cache: dict[str, CachedDashboard] = {}
_cache_lock = threading.Lock()


class AdvisoryView(BaseModel):
    """Advisory item plus its display label."""
    id: str
    category: AdvisoryCategory
    severity: AdvisorySeverity
    severity_label: str
    message: str
    icon: str
    color: str


class AdvisoryGroup(BaseModel):
    """Advisories of one category, in display order."""
    category: AdvisoryCategory
    title: str
    items: List[AdvisoryView]


class AlertView(BaseModel):
    """Serialized weather alert."""
    title: str
    description: str
    severity: str
    severity_class: str
    effective: datetime
    expires: datetime


class CityView(BaseModel):
    name: str
    latitude: float
    longitude: float


class DashboardResponse(BaseModel):
    """Forecast hours, alerts, outlook stats and both advice representations."""
    city: CityView
    hours: List[HourlySample]
    alerts: List[AlertView]
    outlook: DisplayStats
    advisories: List[AdvisoryView]
    advisory_groups: List[AdvisoryGroup]
    summary: AdvisorySummary


class AdviceRequest(BaseModel):
    """Hourly samples to evaluate, earliest first."""
    hours: List[HourlySample]
    window_hours: int = Field(default=6, ge=1, le=48)
    apparent_aware: bool = False


class AdviceResponse(BaseModel):
    """Stats and advice computed from caller-supplied hours."""
    window_hours: int
    stats: DisplayStats
    advisories: List[AdvisoryView]
    advisory_groups: List[AdvisoryGroup]
    summary: AdvisorySummary


def _advisory_view(item: AdvisoryItem) -> AdvisoryView:
    return AdvisoryView(
        id=item.id,
        category=item.category,
        severity=item.severity,
        severity_label=severity_label(item.severity),
        message=item.message,
        icon=item.icon,
        color=item.color,
    )


def _advisory_groups(items: List[AdvisoryItem]) -> List[AdvisoryGroup]:
    return [
        AdvisoryGroup(
            category=category,
            title=CATEGORY_TITLES[category],
            items=[_advisory_view(i) for i in members],
        )
        for category, members in group_advisories_by_category(items).items()
    ]


def _dashboard_response(dashboard: WeatherDashboard) -> DashboardResponse:
    return DashboardResponse(
        city=CityView(
            name=dashboard.city.name,
            latitude=dashboard.city.latitude,
            longitude=dashboard.city.longitude,
        ),
        hours=dashboard.hours,
        alerts=[
            AlertView(
                title=a.title,
                description=a.description,
                severity=a.severity,
                severity_class=alert_severity_class(a.severity),
                effective=a.effective,
                expires=a.expires,
            )
            for a in dashboard.alerts
        ],
        outlook=dashboard.outlook.stats,
        advisories=[_advisory_view(i) for i in dashboard.advisories],
        advisory_groups=_advisory_groups(dashboard.advisories),
        summary=dashboard.summary,
    )


def _http_error(exc: WeatherGuideError) -> HTTPException:
    """Translate domain errors into HTTP status codes."""
    if isinstance(exc, LocationNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, RateLimitError):
        code = status.HTTP_429_TOO_MANY_REQUESTS
    elif isinstance(exc, (ForecastNetworkError, GeocodeNetworkError, ForecastDataError)):
        code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(exc, (InvalidInputError, ForecastError, GeocodeError)):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    logger.warning("Request failed", extra={"error": exc.message, "code": exc.code, "status": code})
    return HTTPException(status_code=code, detail=exc.message)


def _cached(key: str) -> Optional[WeatherDashboard]:
    with _cache_lock:
        entry = _dashboard_cache.get(key)
        if entry and entry.is_fresh(settings.dashboard_ttl_seconds):
            return entry.data
        if entry:
            _dashboard_cache.pop(key, None)
    return None


def _store(key: str, dashboard: WeatherDashboard) -> None:
    """Cache a dashboard, sweeping expired entries and capping the cache size."""
    with _cache_lock:
        stale = [k for k, entry in _dashboard_cache.items() if not entry.is_fresh(settings.dashboard_ttl_seconds)]
        for k in stale:
            del _dashboard_cache[k]
        _dashboard_cache.pop(key, None)
        # insertion order is oldest first
        while len(_dashboard_cache) >= MAX_CACHED_DASHBOARDS:
            del _dashboard_cache[next(iter(_dashboard_cache))]
        _dashboard_cache[key] = CachedDashboard(data=dashboard, fetched_at=datetime.now(tz=timezone.utc))


def clear_dashboard_cache() -> None:
    """Drop every cached dashboard."""
    with _cache_lock:
        _dashboard_cache.clear()


@router.get("/health")
def health():
    """Liveness probe."""
    return {"status": "ok"}


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard_for_city(city: str = Query(default="", max_length=200)):
    """Geocode a city name and return its dashboard."""
    query = city.strip() or settings.default_city
    key = f"city:{query.lower()}"
    dashboard = _cached(key)
    if dashboard is None:
        try:
            dashboard = get_dashboard_for_city(query, data_source=DATA_SOURCE)
        except WeatherGuideError as exc:
            raise _http_error(exc)
        _store(key, dashboard)
    return _dashboard_response(dashboard)


@router.get("/dashboard/coordinates", response_model=DashboardResponse)
def dashboard_for_coordinates(
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180),
    name: str | None = Query(default=None, max_length=200),
):
    """Return the dashboard for explicit coordinates."""
    key = f"coords:{latitude:.4f},{longitude:.4f}"
    dashboard = _cached(key)
    if dashboard is None:
        try:
            dashboard = get_dashboard_for_coordinates(latitude, longitude, name=name, data_source=DATA_SOURCE)
        except WeatherGuideError as exc:
            raise _http_error(exc)
        _store(key, dashboard)
    return _dashboard_response(dashboard)


@router.post("/advice", response_model=AdviceResponse)
def advice(req: AdviceRequest):
    """Compute window stats, advisory items and the badge summary for supplied hours."""
    compute = compute_apparent_aware_stats if req.apparent_aware else compute_window_stats
    try:
        result = compute(req.hours, req.window_hours)
        items = generate_advisory_items(result.raw) if result.window else []
        summary = build_advice(req.hours)
    except WeatherGuideError as exc:
        raise _http_error(exc)

    return AdviceResponse(
        window_hours=req.window_hours,
        stats=result.stats,
        advisories=[_advisory_view(i) for i in items],
        advisory_groups=_advisory_groups(items),
        summary=summary,
    )
