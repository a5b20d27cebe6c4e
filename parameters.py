from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class Parameter:
    key: str
    label: str
    short: str
    unit: str


PARAMETERS: List[Parameter] = [
    Parameter("temp", "Temperature", "Temp", "°C"),
    Parameter("ph", "pH", "pH", ""),
    Parameter("gh", "General hardness", "GH", "°dH"),
    Parameter("kh", "Carbonate hardness", "KH", "°dH"),
    Parameter("no2", "Nitrite", "NO2", "mg/L"),
    Parameter("no3", "Nitrate", "NO3", "mg/L"),
    Parameter("tds", "TDS", "TDS", "ppm"),
    Parameter("cond", "Conductivity", "µS/cm", "µS/cm"),
]

PARAMS_BY_KEY: Dict[str, Parameter] = {p.key: p for p in PARAMETERS}
ALL_PARAM_KEYS: List[str] = [p.key for p in PARAMETERS]
DEFAULT_PARAM_KEY = "temp"

# Preselected on the new-tank form.
NEW_TANK_PARAM_KEYS = ["temp", "ph", "no2", "no3"]


@dataclass
class WaterLimit:
    min: Optional[float] = None
    max: Optional[float] = None


def make_default_limits() -> Dict[str, WaterLimit]:
    return {k: WaterLimit() for k in ALL_PARAM_KEYS}


def catalog_order(keys: Iterable[str]) -> List[str]:
    """Known parameter keys from ``keys``, deduplicated, in catalog order."""
    wanted = set(keys)
    return [k for k in ALL_PARAM_KEYS if k in wanted]


def finite_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool): return None
    if isinstance(value, (int, float)):
        try:
            fv = float(value)
        except OverflowError:
            return None
        return fv if math.isfinite(fv) else None
    return None


def parse_num_or_null(value: Any) -> Optional[float]:
    """Parse user input like ``"7,2"`` into a finite float; blanks and junk become None."""
    if value is None or isinstance(value, bool): return None
    if isinstance(value, (int, float)): return finite_or_none(value)
    text = str(value).strip().replace(",", ".")
    if not text: return None
    try:
        fv = float(text)
    except ValueError:
        return None
    return fv if math.isfinite(fv) else None


def parse_count(value: Any) -> int:
    """Fish counts: numbers or numeric text, anything else is 0, never negative."""
    fv = parse_num_or_null(value)
    if fv is None: return 0
    return max(0, int(fv))


def classify(value: Optional[float], limit: Optional[WaterLimit]) -> str:
    if value is None: return "na"
    if limit is None: return "ok"
    if limit.min is not None and value < limit.min: return "low"
    if limit.max is not None and value > limit.max: return "high"
    return "ok"
