"""Jinja2 environment for the dashboard, with our formatting filters registered."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from fastapi.templating import Jinja2Templates

from .config import AppSettings


def _to_dt(value: Any, tz: ZoneInfo | None) -> datetime | None:
    """Convert stored ISO strings into timezone-aware datetimes for safe formatting."""

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None and tz:
        dt = dt.replace(tzinfo=tz)
    if tz:
        dt = dt.astimezone(tz)
    return dt


def get_templates(settings: AppSettings) -> Jinja2Templates:
    """Create a ``Jinja2Templates`` instance with our standard filters registered."""

    local_tz = ZoneInfo(settings.TZ) if settings.TZ else None

    def fmt_dt(value: Any, fmt: str = "%Y-%m-%d %I:%M %p") -> str:
        dt = _to_dt(value, local_tz)
        return dt.strftime(fmt) if dt else ""

    def fmt_date(value: Any, fmt: str = "%Y-%m-%d") -> str:
        dt = _to_dt(value, local_tz)
        return dt.strftime(fmt) if dt else ""

    templates = Jinja2Templates(directory=str(settings.templates_dir))
    templates.env.filters["fmt_dt"] = fmt_dt
    templates.env.filters["fmt_date"] = fmt_date
    return templates
