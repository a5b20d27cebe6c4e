from datetime import date, timedelta
from typing import Optional

from entities import Attempt, Document, Group, Line, LogEntry, Settings, Tank, WaterEntry, new_id
from parameters import WaterLimit, make_default_limits


def seed_document(today: Optional[date] = None) -> Document:
    """Example journal used on first start and whenever the stored one is unusable."""
    today = today or date.today()
    started = (today - timedelta(days=21)).isoformat()
    measured = (today - timedelta(days=7)).isoformat()

    tank_a = Tank(id=new_id(), name="Tank 01", volume_liters=54.0, location="Living room", purpose="Breeding",
                  enabled_parameters=["temp", "ph", "gh", "kh", "no2", "no3"])
    tank_b = Tank(id=new_id(), name="Tank 02", volume_liters=30.0, location="Shelf", purpose="Grow-out",
                  enabled_parameters=["temp", "ph", "no2", "no3", "tds", "cond"])

    line = Line(id=new_id(), name="Endler - Japan Blue", code="JB-01", traits=["Japan Blue", "Endler"],
                notes="Stable strain, strong blue tones.")

    attempt = Attempt(id=new_id(), name="Attempt 2025-01 (A)", line_id=line.id, tank_ids=[tank_a.id, tank_b.id],
                      start_date=started, goal="Colour intensity and fin shape",
                      notes="Tank 01 breeding, Tank 02 grow-out.")

    groups = [
        Group(id=new_id(), attempt_id=attempt.id, tank_id=tank_a.id, name="Breeding group",
              male_count=2, female_count=5, notes="Main group"),
        Group(id=new_id(), attempt_id=attempt.id, tank_id=tank_b.id, name="Fry",
              male_count=0, female_count=0, notes="Batch 1"),
    ]

    limits = make_default_limits()
    limits["temp"] = WaterLimit(22.0, 28.0)
    limits["ph"] = WaterLimit(6.5, 7.8)
    limits["no2"] = WaterLimit(0.0, 0.1)
    limits["no3"] = WaterLimit(0.0, 30.0)

    water = [
        WaterEntry(id=new_id(), tank_id=tank_a.id, date=measured,
                   values={"temp": 25.2, "ph": 7.1, "gh": 10.0, "kh": 6.0, "no2": 0.0, "no3": 12.0}),
        WaterEntry(id=new_id(), tank_id=tank_b.id, date=measured,
                   values={"temp": 26.0, "ph": 7.0, "no2": 0.0, "no3": 18.0, "tds": 280.0, "cond": 520.0}),
    ]

    log = [
        LogEntry(id=new_id(), attempt_id=attempt.id, tank_id=tank_a.id, date=measured, kind="Maintenance",
                 title="Water change 30%", notes="added a little salt"),
        LogEntry(id=new_id(), attempt_id=attempt.id, tank_id="", date=measured, kind="Observation",
                 title="Colour showing", notes="first blue flanks"),
    ]

    return Document(
        settings=Settings(breeder_name="", max_photo_mb=1.5, water_limits=limits),
        tanks=[tank_a, tank_b],
        lines=[line],
        attempts=[attempt],
        groups=groups,
        water=water,
        log=log,
    )
