"""Template filters applied after `|` inside `{{ }}` expressions.

Filters live in a registry keyed by name. An expression naming a filter
that is not registered passes its value through unchanged.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from babel import Locale, UnknownLocaleError, dates

log = logging.getLogger(__name__)

Filter = Callable[[Any, Any], Any]

FILTERS: Dict[str, Filter] = {}

DATE_PRESETS = ("iso", "date", "time", "datetime")
DATE_STYLES = ("full", "long", "medium", "short")
DEFAULT_LOCALE = "en_US"

_PRESET_STYLES = {
    "date": ("medium", None),
    "time": (None, "short"),
    "datetime": ("medium", "short"),
}


def register_filter(name: str) -> Callable[[Filter], Filter]:
    """Decorator adding a filter to the registry under `name`."""

    def decorator(fn: Filter) -> Filter:
        FILTERS[name] = fn
        return fn

    return decorator


def apply_filter(name: str, value: Any, arg: Any = None) -> Any:
    fn = FILTERS.get(name)
    if fn is None:
        log.debug("Unknown filter %r, passing value through", name)
        return value
    return fn(value, arg)


@register_filter("uppercase")
def uppercase(value: Any, arg: Any = None) -> Any:
    return value.upper() if isinstance(value, str) else value


@register_filter("trim")
def trim(value: Any, arg: Any = None) -> Any:
    return value.strip() if isinstance(value, str) else value


def coerce_to_datetime(value: Any) -> Optional[datetime]:
    """Best-effort conversion of epoch numbers and ISO strings to an aware datetime.

    Numbers above 1e12 are taken as milliseconds, anything else as seconds.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e12 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            return coerce_to_datetime(float(trimmed))
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(trimmed)
        except ValueError:
            return None
        return coerce_to_datetime(parsed)
    return None


def _normalize_date_config(arg: Any) -> Dict[str, Any]:
    if arg is None:
        return {}
    if isinstance(arg, dict):
        keys = ("preset", "locale", "options", "format")
        return {k: arg.get(k) for k in keys if arg.get(k)}
    if isinstance(arg, str):
        trimmed = arg.strip()
        if trimmed in DATE_PRESETS:
            return {"preset": trimmed}
        return {"locale": trimmed} if trimmed else {}
    return {"locale": str(arg)}


def _iso(moment: datetime) -> str:
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def _locale(name: Any) -> Locale:
    if not name:
        return Locale.parse(DEFAULT_LOCALE)
    try:
        return Locale.parse(str(name).strip().replace("-", "_"))
    except (UnknownLocaleError, ValueError, TypeError):
        log.debug("Unknown locale %r, using %s", name, DEFAULT_LOCALE)
        return Locale.parse(DEFAULT_LOCALE)


def _styles(config: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """(date style, time style) for a config; either may be None."""
    options = config.get("options")
    if isinstance(options, dict):
        date_style = options.get("dateStyle")
        time_style = options.get("timeStyle")
        if date_style or time_style:
            return date_style, time_style
        log.debug("Date options %r name no style, using defaults", options)
    preset = config.get("preset")
    if not isinstance(preset, str) or preset not in _PRESET_STYLES:
        preset = "datetime"
    return _PRESET_STYLES[preset]


def _format_styles(
    moment: datetime, date_style: Optional[str], time_style: Optional[str], locale: Locale
) -> str:
    for style in (date_style, time_style):
        if style is not None and style not in DATE_STYLES:
            raise ValueError(f"unknown date style {style!r}")
    if date_style and time_style:
        pattern = dates.get_datetime_format(date_style, locale=locale)
        return (
            pattern.replace("'", "")
            .replace("{0}", dates.format_time(moment, time_style, locale=locale))
            .replace("{1}", dates.format_date(moment, date_style, locale=locale))
        )
    if time_style:
        return dates.format_time(moment, time_style, locale=locale)
    return dates.format_date(moment, date_style, locale=locale)


@register_filter("format_date")
def format_date(value: Any, arg: Any = None) -> str:
    """Format a timestamp.

    `arg` may be a preset name (iso, date, time, datetime), a locale string
    such as `de-DE`, or a mapping with `preset`, `locale`, `options`
    (`dateStyle` / `timeStyle`: full, long, medium or short) and/or a
    strftime `format`. Output is always rendered in UTC. An unknown locale
    or style falls back to the default medium date, short time in en_US.
    """
    moment = coerce_to_datetime(value)
    if moment is None:
        return ""
    moment = moment.astimezone(timezone.utc)
    config = _normalize_date_config(arg)

    if config.get("preset") == "iso":
        return _iso(moment)
    if config.get("format"):
        try:
            return moment.strftime(str(config["format"]))
        except ValueError:
            log.debug("Bad strftime format %r, using default", config["format"])
    date_style, time_style = _styles(config)
    try:
        return _format_styles(moment, date_style, time_style, _locale(config.get("locale")))
    except ValueError as exc:
        log.debug("Cannot format date (%s), using defaults", exc)
        return _format_styles(moment, "medium", "short", Locale.parse(DEFAULT_LOCALE))
