"""Reading and writing the journal document.

The whole journal lives as one JSON document in a single key-value slot. Anything
read back from the slot (or imported by a user) is untrusted: ``decode_document``
re-types every field and falls back to defaults field by field, so ``load`` never
raises and never hands out a structurally broken document.
"""
from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Union

from entities import (
    LOG_KINDS, Attempt, Document, Group, Line, LogEntry, Settings, Tank, WaterEntry, new_id,
)
from models import StorageSlot
from parameters import (
    ALL_PARAM_KEYS, WaterLimit, catalog_order, finite_or_none, make_default_limits,
    parse_count, parse_num_or_null,
)
from seed import seed_document

logger = logging.getLogger(__name__)

BACKUP_FILENAME = "guppy-journal-backup.json"
BACKUP_MEDIA_TYPE = "application/json"

# Log kinds written by the older German edition of the journal.
LEGACY_LOG_KINDS = {
    "Futter": "Feeding",
    "Pflege": "Maintenance",
    "Wurf": "Spawn",
    "Beobachtung": "Observation",
    "Sonstiges": "Other",
}


class ImportRejected(ValueError):
    pass


class KeyValueSlot:
    """A named row in ``storage_slots`` holding the serialized document."""

    def __init__(self, session_factory: Callable, key: str):
        self.session_factory = session_factory
        self.key = key

    def read(self) -> Optional[str]:
        db = self.session_factory()
        try:
            row = db.get(StorageSlot, self.key)
            return row.value if row else None
        finally:
            db.close()

    def write(self, value: str) -> None:
        db = self.session_factory()
        try:
            row = db.get(StorageSlot, self.key)
            if row is None:
                row = StorageSlot(key=self.key)
                db.add(row)
            row.value = value
            row.updated_at = datetime.utcnow().isoformat()
            db.commit()
        finally:
            db.close()

    def clear(self) -> None:
        db = self.session_factory()
        try:
            db.query(StorageSlot).filter(StorageSlot.key == self.key).delete()
            db.commit()
        finally:
            db.close()


# --- field decoders ---

def _text(v: Any, default: str = "") -> str:
    if isinstance(v, str): return v
    if isinstance(v, (int, float)) and not isinstance(v, bool): return str(v)
    return default

def _name(v: Any, placeholder: str) -> str:
    s = _text(v)
    return s if s.strip() else placeholder

def _ident(v: Any) -> str:
    s = _text(v).strip()
    return s or new_id()

def _flag(v: Any, default: bool) -> bool:
    return v if isinstance(v, bool) else default

def _list(v: Any) -> List[Any]:
    return v if isinstance(v, list) else []

def _ids(v: Any) -> List[str]:
    out: List[str] = []
    for item in _list(v):
        s = _text(item).strip()
        if s and s not in out:
            out.append(s)
    return out

def iso_date(v: Any) -> str:
    """``YYYY-MM-DD`` for anything date-like, ``""`` otherwise."""
    if isinstance(v, datetime): return v.date().isoformat()
    if isinstance(v, date): return v.isoformat()
    s = _text(v).strip()
    if len(s) < 10: return ""
    try:
        return date.fromisoformat(s[:10]).isoformat()
    except ValueError:
        return ""

def _traits(v: Any) -> List[str]:
    if isinstance(v, str):
        v = v.split(",")
    return [t.strip() for t in (_text(x) for x in _list(v)) if t.strip()]

def _enabled_parameters(raw: Dict[str, Any]) -> List[str]:
    if isinstance(raw.get("enabledParameters"), list):
        return catalog_order(k for k in raw["enabledParameters"] if isinstance(k, str))
    legacy = raw.get("waterParams")
    if isinstance(legacy, dict):
        return catalog_order(k for k, on in legacy.items() if on is True)
    return []

def _log_kind(v: Any) -> str:
    s = _text(v).strip()
    if s in LOG_KINDS: return s
    return LEGACY_LOG_KINDS.get(s, "Other")


# --- entity decoders ---

def decode_tank(raw: Any) -> Tank:
    raw = raw if isinstance(raw, dict) else {}
    volume = raw.get("volumeLiters", raw.get("volumeL"))
    return Tank(
        id=_ident(raw.get("id")),
        name=_name(raw.get("name"), "Tank"),
        volume_liters=parse_num_or_null(volume) or 0.0,
        location=_text(raw.get("location")),
        purpose=_text(raw.get("purpose")),
        active=_flag(raw.get("active"), True),
        enabled_parameters=_enabled_parameters(raw),
    )

def decode_line(raw: Any) -> Line:
    raw = raw if isinstance(raw, dict) else {}
    return Line(
        id=_ident(raw.get("id")),
        name=_name(raw.get("name"), "Line"),
        code=_text(raw.get("code")),
        traits=_traits(raw.get("traits")),
        notes=_text(raw.get("notes")),
        archived=_flag(raw.get("archived"), False),
    )

def decode_attempt(raw: Any) -> Attempt:
    raw = raw if isinstance(raw, dict) else {}
    return Attempt(
        id=_ident(raw.get("id")),
        name=_name(raw.get("name"), "Attempt"),
        line_id=_text(raw.get("lineId")),
        tank_ids=_ids(raw.get("tankIds")),
        start_date=iso_date(raw.get("startDate")),
        end_date=iso_date(raw.get("endDate")),
        goal=_text(raw.get("goal")),
        notes=_text(raw.get("notes")),
        active=_flag(raw.get("active"), True),
        archived=_flag(raw.get("archived"), False),
    )

def decode_group(raw: Any) -> Group:
    raw = raw if isinstance(raw, dict) else {}
    return Group(
        id=_ident(raw.get("id")),
        attempt_id=_text(raw.get("attemptId")),
        tank_id=_text(raw.get("tankId")),
        name=_name(raw.get("name"), "Group"),
        male_count=parse_count(raw.get("maleCount")),
        female_count=parse_count(raw.get("femaleCount")),
        notes=_text(raw.get("notes")),
        active=_flag(raw.get("active"), True),
        archived=_flag(raw.get("archived"), False),
    )

def decode_water_entry(raw: Any) -> WaterEntry:
    raw = raw if isinstance(raw, dict) else {}
    values: Dict[str, float] = {}
    for k in ALL_PARAM_KEYS:
        v = finite_or_none(raw.get(k))
        if v is not None:
            values[k] = v
    return WaterEntry(
        id=_ident(raw.get("id")),
        tank_id=_text(raw.get("tankId")),
        date=iso_date(raw.get("date")),
        note=_text(raw.get("note")),
        values=values,
    )

def decode_log_entry(raw: Any) -> LogEntry:
    raw = raw if isinstance(raw, dict) else {}
    return LogEntry(
        id=_ident(raw.get("id")),
        attempt_id=_text(raw.get("attemptId")),
        tank_id=_text(raw.get("tankId")),
        date=iso_date(raw.get("date")),
        kind=_log_kind(raw.get("kind")),
        title=_text(raw.get("title")),
        notes=_text(raw.get("notes")),
    )

def decode_settings(raw: Any) -> Settings:
    raw = raw if isinstance(raw, dict) else {}
    limits = make_default_limits()
    incoming = raw.get("waterLimits")
    if isinstance(incoming, dict):
        for k in ALL_PARAM_KEYS:
            x = incoming.get(k)
            if isinstance(x, dict):
                limits[k] = WaterLimit(finite_or_none(x.get("min")), finite_or_none(x.get("max")))
    max_photo = finite_or_none(raw.get("maxPhotoMB"))
    return Settings(
        breeder_name=_text(raw.get("breederName")),
        max_photo_mb=max_photo if max_photo is not None and max_photo > 0 else 1.5,
        water_limits=limits,
    )

def decode_document(raw: Dict[str, Any]) -> Document:
    attempts = [decode_attempt(x) for x in _list(raw.get("attempts"))]
    # An attempt always spans at least one tank; ones without are dropped with their groups and log.
    dropped = {a.id for a in attempts if not a.tank_ids}
    if dropped:
        logger.warning(f"Dropping {len(dropped)} stored attempt(s) without tanks")
    return Document(
        settings=decode_settings(raw.get("settings")),
        tanks=[decode_tank(x) for x in _list(raw.get("tanks"))],
        lines=[decode_line(x) for x in _list(raw.get("lines"))],
        attempts=[a for a in attempts if a.id not in dropped],
        groups=[g for g in (decode_group(x) for x in _list(raw.get("groups"))) if g.attempt_id not in dropped],
        water=[decode_water_entry(x) for x in _list(raw.get("water"))],
        log=[e for e in (decode_log_entry(x) for x in _list(raw.get("log"))) if e.attempt_id not in dropped],
    )


# --- encoding ---

def encode_document(doc: Document) -> Dict[str, Any]:
    s = doc.settings
    return {
        "settings": {
            "breederName": s.breeder_name,
            "maxPhotoMB": s.max_photo_mb,
            "waterLimits": {k: {"min": lim.min, "max": lim.max} for k, lim in s.water_limits.items()},
        },
        "tanks": [
            {"id": t.id, "name": t.name, "volumeLiters": t.volume_liters, "location": t.location,
             "purpose": t.purpose, "active": t.active, "enabledParameters": list(t.enabled_parameters)}
            for t in doc.tanks
        ],
        "lines": [
            {"id": l.id, "name": l.name, "code": l.code, "traits": list(l.traits), "notes": l.notes,
             "archived": l.archived}
            for l in doc.lines
        ],
        "attempts": [
            {"id": a.id, "name": a.name, "lineId": a.line_id, "tankIds": list(a.tank_ids),
             "startDate": a.start_date, "endDate": a.end_date, "goal": a.goal, "notes": a.notes,
             "active": a.active, "archived": a.archived}
            for a in doc.attempts
        ],
        "groups": [
            {"id": g.id, "attemptId": g.attempt_id, "tankId": g.tank_id, "name": g.name,
             "maleCount": g.male_count, "femaleCount": g.female_count, "notes": g.notes,
             "active": g.active, "archived": g.archived}
            for g in doc.groups
        ],
        "water": [
            {"id": w.id, "tankId": w.tank_id, "date": w.date, "note": w.note, **w.values}
            for w in doc.water
        ],
        "log": [
            {"id": e.id, "attemptId": e.attempt_id, "tankId": e.tank_id, "date": e.date, "kind": e.kind,
             "title": e.title, "notes": e.notes}
            for e in doc.log
        ],
    }

def serialize(doc: Document) -> str:
    return json.dumps(encode_document(doc), ensure_ascii=False)


# --- slot access ---

def load_text(raw: Any) -> Document:
    if not raw or not isinstance(raw, (str, bytes)):
        return seed_document()
    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError):
        logger.warning("Stored journal is not valid JSON, starting from the example data")
        return seed_document()
    if not isinstance(parsed, dict):
        logger.warning("Stored journal is not a JSON object, starting from the example data")
        return seed_document()
    return decode_document(parsed)

def load(slot) -> Document:
    try:
        raw = slot.read()
    except Exception as e:
        logger.warning(f"Could not read journal slot: {e}")
        return seed_document()
    return load_text(raw)

def _write(slot, text: str) -> bool:
    try:
        slot.write(text)
    except Exception as e:
        logger.warning(f"Could not write journal slot, change not persisted: {e}")
        return False
    return True

def save(slot, doc: Document) -> bool:
    return _write(slot, serialize(doc))

def save_raw(slot, payload: Dict[str, Any]) -> bool:
    return _write(slot, json.dumps(payload, ensure_ascii=False))


# --- backups ---

def export_document(doc: Document) -> bytes:
    return serialize(doc).encode("utf-8")

def import_document(data: Union[bytes, str]) -> Dict[str, Any]:
    try:
        text = data.decode("utf-8") if isinstance(data, bytes) else data
        parsed = json.loads(text)
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise ImportRejected(f"Backup is not valid JSON: {e}")
    if not isinstance(parsed, dict):
        raise ImportRejected("Backup must contain a JSON object")
    return parsed
