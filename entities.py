import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from parameters import WaterLimit, make_default_limits

LOG_KINDS = ["Feeding", "Maintenance", "Spawn", "Observation", "Other"]

COLLECTIONS = ("tanks", "lines", "attempts", "groups", "water", "log")


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Tank:
    id: str
    name: str
    volume_liters: float = 0.0
    location: str = ""
    purpose: str = ""
    active: bool = True
    enabled_parameters: List[str] = field(default_factory=list)


@dataclass
class Line:
    id: str
    name: str
    code: str = ""
    traits: List[str] = field(default_factory=list)
    notes: str = ""
    archived: bool = False


@dataclass
class Attempt:
    id: str
    name: str
    line_id: str = ""
    tank_ids: List[str] = field(default_factory=list)
    start_date: str = ""
    end_date: str = ""
    goal: str = ""
    notes: str = ""
    active: bool = True
    archived: bool = False


@dataclass
class Group:
    id: str
    attempt_id: str
    tank_id: str
    name: str
    male_count: int = 0
    female_count: int = 0
    notes: str = ""
    active: bool = True
    archived: bool = False


@dataclass
class WaterEntry:
    id: str
    tank_id: str
    date: str
    note: str = ""
    # parameter key -> measured value; missing key means not measured
    values: Dict[str, float] = field(default_factory=dict)

    def value(self, key: str) -> Optional[float]:
        return self.values.get(key)


@dataclass
class LogEntry:
    id: str
    attempt_id: str
    date: str
    kind: str = "Other"
    title: str = ""
    notes: str = ""
    tank_id: str = ""


@dataclass
class Settings:
    breeder_name: str = ""
    max_photo_mb: float = 1.5
    water_limits: Dict[str, WaterLimit] = field(default_factory=make_default_limits)


@dataclass
class Document:
    settings: Settings = field(default_factory=Settings)
    tanks: List[Tank] = field(default_factory=list)
    lines: List[Line] = field(default_factory=list)
    attempts: List[Attempt] = field(default_factory=list)
    groups: List[Group] = field(default_factory=list)
    water: List[WaterEntry] = field(default_factory=list)
    log: List[LogEntry] = field(default_factory=list)
