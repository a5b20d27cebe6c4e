from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Any, Dict, List, Optional

from entities import Attempt, Document, Group, LogEntry, Tank, WaterEntry
from parameters import ALL_PARAM_KEYS, DEFAULT_PARAM_KEY, PARAMS_BY_KEY, WaterLimit, classify


def short_date(iso: Any) -> str:
    """``2025-03-07`` -> ``07.03.25``; dash for anything unparseable."""
    try:
        d = date.fromisoformat(str(iso)[:10])
    except ValueError:
        return "–"
    return d.strftime("%d.%m.%y")


def by_id(items) -> Dict[str, Any]:
    return {x.id: x for x in items}


def tank_name(doc: Document, tank_id: str) -> str:
    tank = by_id(doc.tanks).get(tank_id)
    return tank.name if tank else "–"


def active_parameters(tank: Optional[Tank]) -> List[str]:
    if tank is None:
        return list(ALL_PARAM_KEYS)
    keys = [k for k in ALL_PARAM_KEYS if k in tank.enabled_parameters]
    return keys or [DEFAULT_PARAM_KEY]


def water_for_tank(doc: Document, tank_id: str) -> List[WaterEntry]:
    """Oldest first; entries on the same day keep their stored order."""
    return sorted((w for w in doc.water if w.tank_id == tank_id), key=lambda w: w.date)


def parameter_series(doc: Document, tank_id: str, key: str) -> List[Dict[str, Any]]:
    return [{"x": short_date(w.date), "y": w.value(key)} for w in water_for_tank(doc, tank_id)]


def chart_series(doc: Document, tank_id: str) -> List[Dict[str, Any]]:
    tank = by_id(doc.tanks).get(tank_id)
    series = []
    for k in active_parameters(tank):
        p = PARAMS_BY_KEY[k]
        series.append({"key": k, "label": p.short, "unit": p.unit, "points": parameter_series(doc, tank_id, k)})
    return series


def reading_status(entry: WaterEntry, keys: List[str], limits: Dict[str, WaterLimit]) -> Dict[str, str]:
    return {k: classify(entry.value(k), limits.get(k)) for k in keys}


def water_table(doc: Document, tank_id: str) -> List[Dict[str, Any]]:
    """Newest reading first, with a threshold status for each active parameter."""
    keys = active_parameters(by_id(doc.tanks).get(tank_id))
    limits = doc.settings.water_limits
    rows = []
    for w in sorted(water_for_tank(doc, tank_id), key=lambda w: w.date, reverse=True):
        rows.append({
            "id": w.id,
            "date": w.date,
            "note": w.note,
            "values": {k: w.value(k) for k in keys},
            "status": reading_status(w, keys, limits),
        })
    return rows


def latest_reading(doc: Document, tank_id: str) -> Optional[WaterEntry]:
    entries = [w for w in doc.water if w.tank_id == tank_id]
    return max(entries, key=lambda w: w.date) if entries else None


def most_recent_log(doc: Document) -> Optional[LogEntry]:
    entries = sorted(doc.log, key=lambda e: e.date, reverse=True)
    return entries[0] if entries else None


def open_attempts(doc: Document) -> List[Attempt]:
    return sorted((a for a in doc.attempts if not a.archived), key=lambda a: a.start_date, reverse=True)


def linked_attempt_count(doc: Document, line_id: str) -> int:
    return sum(1 for a in doc.attempts if a.line_id == line_id and not a.archived)


def groups_for_attempt(doc: Document, attempt_id: str) -> List[Group]:
    return [g for g in doc.groups if g.attempt_id == attempt_id and not g.archived]


def log_for_attempt(doc: Document, attempt_id: str) -> List[LogEntry]:
    return sorted((e for e in doc.log if e.attempt_id == attempt_id), key=lambda e: e.date, reverse=True)


def dashboard(doc: Document) -> Dict[str, Any]:
    return {
        "active_attempts": sum(1 for a in doc.attempts if a.active and not a.archived),
        "active_tanks": sum(1 for t in doc.tanks if t.active),
        "last_log": most_recent_log(doc),
    }


def attempt_detail(doc: Document, attempt: Attempt) -> Dict[str, Any]:
    lines = by_id(doc.lines)
    return {
        "attempt": asdict(attempt),
        "line_name": lines[attempt.line_id].name if attempt.line_id in lines else "–",
        "tanks": [{"id": tid, "name": tank_name(doc, tid)} for tid in attempt.tank_ids],
        "groups": [dict(asdict(g), tank_name=tank_name(doc, g.tank_id)) for g in groups_for_attempt(doc, attempt.id)],
        "log": [dict(asdict(e), tank_name=tank_name(doc, e.tank_id) if e.tank_id else "") for e in log_for_attempt(doc, attempt.id)],
    }


def tank_cards(doc: Document) -> List[Dict[str, Any]]:
    limits = doc.settings.water_limits
    cards = []
    for t in doc.tanks:
        latest = latest_reading(doc, t.id)
        readings = []
        if latest:
            for k in active_parameters(t):
                p = PARAMS_BY_KEY[k]
                readings.append({
                    "key": k, "label": p.short, "unit": p.unit,
                    "value": latest.value(k), "status": classify(latest.value(k), limits.get(k)),
                })
        cards.append({"tank": t, "latest_date": latest.date if latest else "", "readings": readings})
    return cards
