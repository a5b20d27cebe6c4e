from __future__ import annotations

from datetime import date
from typing import Any, List, Mapping, Optional

from entities import LOG_KINDS, Attempt, Group, Line, LogEntry, Settings, Tank, WaterEntry, new_id
from parameters import ALL_PARAM_KEYS, WaterLimit, parse_count, parse_num_or_null
from persistence import iso_date
import views


class FormError(ValueError):
    pass


def clean(v: Any) -> str:
    return (v or "").strip() if isinstance(v, str) or v is None else str(v).strip()

def is_on(v: Any) -> bool:
    return v in ("1", "on", "true", "True")

def _date_or_today(v: Any) -> str:
    return iso_date(clean(v)) or date.today().isoformat()


def build_tank(form: Mapping[str, Any], existing: Optional[Tank] = None) -> Tank:
    name = clean(form.get("name"))
    if not name:
        raise FormError("Tank name is required")
    return Tank(
        id=existing.id if existing else new_id(),
        name=name,
        volume_liters=parse_num_or_null(form.get("volume_liters")) or 0.0,
        location=clean(form.get("location")),
        purpose=clean(form.get("purpose")),
        active=existing.active if existing else True,
        enabled_parameters=[k for k in ALL_PARAM_KEYS if is_on(form.get(f"param_{k}"))],
    )


def build_line(form: Mapping[str, Any], existing: Optional[Line] = None) -> Line:
    name = clean(form.get("name"))
    if not name:
        raise FormError("Line name is required")
    return Line(
        id=existing.id if existing else new_id(),
        name=name,
        code=clean(form.get("code")),
        traits=[t.strip() for t in clean(form.get("traits")).split(",") if t.strip()],
        notes=clean(form.get("notes")),
        archived=existing.archived if existing else False,
    )


def build_attempt(form: Mapping[str, Any], tank_ids: List[str], existing: Optional[Attempt] = None) -> Attempt:
    name = clean(form.get("name"))
    if not name:
        raise FormError("Attempt name is required")
    selected = []
    for tid in tank_ids:
        tid = clean(tid)
        if tid and tid not in selected:
            selected.append(tid)
    if not selected:
        raise FormError("Select at least one tank")
    return Attempt(
        id=existing.id if existing else new_id(),
        name=name,
        line_id=clean(form.get("line_id")),
        tank_ids=selected,
        start_date=_date_or_today(form.get("start_date")),
        end_date=existing.end_date if existing else "",
        goal=clean(form.get("goal")),
        notes=clean(form.get("notes")),
        active=existing.active if existing else True,
        archived=existing.archived if existing else False,
    )


def end_date(form: Mapping[str, Any]) -> Optional[str]:
    """Optional end date; blank means "keep or use today", junk is rejected."""
    raw = clean(form.get("end_date"))
    if not raw:
        return None
    d = iso_date(raw)
    if not d:
        raise FormError("End date must be a date (YYYY-MM-DD)")
    return d


def build_group(form: Mapping[str, Any], attempt: Attempt) -> Group:
    tank_id = clean(form.get("tank_id"))
    if tank_id not in attempt.tank_ids:
        raise FormError("Group tank must belong to the attempt")
    return Group(
        id=new_id(),
        attempt_id=attempt.id,
        tank_id=tank_id,
        name=clean(form.get("name")) or "Group",
        male_count=parse_count(form.get("male_count")),
        female_count=parse_count(form.get("female_count")),
        notes=clean(form.get("notes")),
    )


def build_water_entry(form: Mapping[str, Any], tank: Tank) -> WaterEntry:
    values = {}
    for k in views.active_parameters(tank):
        v = parse_num_or_null(form.get(f"value_{k}"))
        if v is not None:
            values[k] = v
    return WaterEntry(
        id=new_id(),
        tank_id=tank.id,
        date=_date_or_today(form.get("date")),
        note=clean(form.get("note")),
        values=values,
    )


def build_log_entry(form: Mapping[str, Any], attempt: Attempt) -> LogEntry:
    tank_id = clean(form.get("tank_id"))
    if tank_id and tank_id not in attempt.tank_ids:
        raise FormError("Log tank must belong to the attempt")
    kind = clean(form.get("kind"))
    return LogEntry(
        id=new_id(),
        attempt_id=attempt.id,
        tank_id=tank_id,
        date=_date_or_today(form.get("date")),
        kind=kind if kind in LOG_KINDS else "Other",
        title=clean(form.get("title")),
        notes=clean(form.get("notes")),
    )


def build_settings(form: Mapping[str, Any], current: Settings) -> Settings:
    max_photo = parse_num_or_null(form.get("max_photo_mb"))
    return Settings(
        breeder_name=clean(form.get("breeder_name")),
        max_photo_mb=max_photo if max_photo is not None and max_photo > 0 else 1.5,
        water_limits=dict(current.water_limits),
    )


def build_limits(form: Mapping[str, Any], current: Settings) -> Settings:
    limits = {
        k: WaterLimit(parse_num_or_null(form.get(f"min_{k}")), parse_num_or_null(form.get(f"max_{k}")))
        for k in ALL_PARAM_KEYS
    }
    return Settings(breeder_name=current.breeder_name, max_photo_mb=current.max_photo_mb, water_limits=limits)
