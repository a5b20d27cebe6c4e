import json
import math

import pytest

import persistence
from entities import LOG_KINDS, Attempt, Document, Group, Line, LogEntry, Settings, Tank, WaterEntry
from parameters import ALL_PARAM_KEYS, WaterLimit, make_default_limits
from seed import seed_document


def assert_well_formed(doc):
    assert isinstance(doc, Document)
    assert isinstance(doc.settings.breeder_name, str)
    assert doc.settings.max_photo_mb > 0
    assert set(doc.settings.water_limits) == set(ALL_PARAM_KEYS)
    for t in doc.tanks:
        assert isinstance(t.id, str) and t.id
        assert isinstance(t.name, str) and t.name
        assert isinstance(t.volume_liters, float)
        assert isinstance(t.active, bool)
        assert all(k in ALL_PARAM_KEYS for k in t.enabled_parameters)
    for lim in doc.settings.water_limits.values():
        assert lim.min is None or isinstance(lim.min, float)
        assert lim.max is None or isinstance(lim.max, float)
    for a in doc.attempts:
        assert a.tank_ids
        assert all(isinstance(x, str) for x in a.tank_ids)
        assert isinstance(a.archived, bool)
    for g in doc.groups:
        assert isinstance(g.male_count, int) and g.male_count >= 0
        assert isinstance(g.female_count, int) and g.female_count >= 0
    for w in doc.water:
        assert all(isinstance(v, float) and math.isfinite(v) for v in w.values.values())
    for e in doc.log:
        assert e.kind in LOG_KINDS


class TestKeyValueSlot:
    def test_empty_slot_reads_none(self, slot):
        assert slot.read() is None

    def test_write_then_read(self, slot):
        slot.write('{"tanks": []}')
        slot.write('{"lines": []}')
        assert slot.read() == '{"lines": []}'

    def test_clear(self, slot):
        slot.write("{}")
        slot.clear()
        assert slot.read() is None


class TestLoad:
    def test_empty_slot_gives_seed(self, slot):
        doc = persistence.load(slot)
        assert [t.name for t in doc.tanks] == ["Tank 01", "Tank 02"]
        assert len(doc.attempts[0].tank_ids) == 2
        assert len(doc.groups) == 2

    def test_round_trip_seed(self, slot):
        doc = seed_document()
        persistence.save(slot, doc)
        assert persistence.load(slot) == doc

    def test_round_trip_hand_built(self, slot):
        limits = make_default_limits()
        limits["ph"] = WaterLimit(6.5, None)
        doc = Document(
            settings=Settings(breeder_name="Ana", max_photo_mb=2.0, water_limits=limits),
            tanks=[Tank(id="t1", name=" Quarantine ", volume_liters=12.5, active=False, enabled_parameters=["ph", "tds"])],
            lines=[Line(id="l1", name="Moscow Blue", code="MB", traits=["Blue", "Solid"], archived=True)],
            attempts=[Attempt(id="a1", name="Run", line_id="l1", tank_ids=["t1"], start_date="2025-03-01",
                              end_date="2025-04-01", active=False)],
            groups=[Group(id="g1", attempt_id="a1", tank_id="t1", name="Pair", male_count=1, female_count=1)],
            water=[WaterEntry(id="w1", tank_id="t1", date="2025-03-02", note="cloudy", values={"ph": 7.4})],
            log=[LogEntry(id="e1", attempt_id="a1", date="2025-03-05", kind="Spawn", title="Fry", notes="12")],
        )
        persistence.save(slot, doc)
        assert persistence.load(slot) == doc

    def test_seed_is_well_typed(self):
        assert_well_formed(seed_document())

    def test_attempt_without_tanks_is_dropped_with_dependents(self):
        doc = persistence.load_text(json.dumps({
            "tanks": [{"id": "t", "name": "T"}],
            "attempts": [
                {"id": "empty", "name": "Empty", "tankIds": []},
                {"id": "gone", "name": "Gone", "tankIds": [None, ""]},
                {"id": "kept", "name": "Kept", "tankIds": ["t"]},
            ],
            "groups": [
                {"id": "g1", "attemptId": "empty", "tankId": "t"},
                {"id": "g2", "attemptId": "kept", "tankId": "t"},
            ],
            "log": [
                {"id": "e1", "attemptId": "gone", "date": "2025-01-01"},
                {"id": "e2", "attemptId": "kept", "date": "2025-01-01"},
            ],
        }))
        assert [a.id for a in doc.attempts] == ["kept"]
        assert [g.id for g in doc.groups] == ["g2"]
        assert [e.id for e in doc.log] == ["e2"]

    def test_unreadable_slot_gives_seed(self, broken_slot):
        assert len(persistence.load(broken_slot).tanks) == 2

    @pytest.mark.parametrize("raw", [
        "",
        "not json at all",
        "{",
        "[1, 2, 3]",
        "null",
        "42",
        "[" * 100000,
        '{"tanks": 5, "lines": "x", "attempts": {}, "groups": null}',
        '{"settings": [], "tanks": [null, 3, "x", {"name": 7, "active": "yes", "waterParams": {"temp": true, "bogus": true}}]}',
        '{"water": [{"tankId": "t", "temp": "abc", "ph": NaN, "no3": 1e999, "gh": true, "kh": 4}]}',
        '{"groups": [{"maleCount": "three", "femaleCount": -2}], "log": [{"kind": 5}]}',
        '{"settings": {"maxPhotoMB": -1, "waterLimits": {"temp": {"min": "22", "max": Infinity}, "ph": 3}}}',
        '{"attempts": [{"tankIds": [1, null, "t", "t"], "startDate": "yesterday"}]}',
        '{"tanks": [{"volumeL": 100000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000}]}',
    ])
    def test_garbage_never_raises(self, raw):
        assert_well_formed(persistence.load_text(raw))

    def test_malformed_fields_get_defaults(self):
        doc = persistence.load_text(json.dumps({
            "tanks": [{"id": 17}],
            "groups": [{"maleCount": "3", "femaleCount": "junk"}],
            "water": [{"tankId": "t", "temp": "abc", "ph": 7.1}],
            "attempts": [{"tankIds": [1, "t", "t"], "startDate": "2025-01-05T10:00:00"}],
            "log": [{"kind": "Dance"}],
        }))
        tank = doc.tanks[0]
        assert (tank.id, tank.name, tank.active, tank.volume_liters) == ("17", "Tank", True, 0.0)
        assert (doc.groups[0].male_count, doc.groups[0].female_count) == (3, 0)
        assert doc.water[0].values == {"ph": 7.1}
        assert doc.attempts[0].tank_ids == ["1", "t"]
        assert doc.attempts[0].start_date == "2025-01-05"
        assert doc.log[0].kind == "Other"
        assert doc.settings.max_photo_mb == 1.5

    def test_legacy_browser_document(self):
        doc = persistence.load_text(json.dumps({
            "settings": {"breederName": "Kai", "maxPhotoMB": 2, "waterLimits": {"temp": {"min": 22, "max": 28}}},
            "tanks": [{"id": "b1", "name": "Becken 01", "volumeL": 54,
                       "waterParams": {"temp": True, "ph": True, "gh": False, "cond": True}}],
            "log": [{"id": "x", "attemptId": "a", "tankId": "", "date": "2025-01-02", "kind": "Pflege", "title": "WW"}],
        }))
        assert doc.settings.breeder_name == "Kai"
        assert doc.settings.water_limits["temp"] == WaterLimit(22, 28)
        assert doc.settings.water_limits["ph"] == WaterLimit()
        assert doc.tanks[0].volume_liters == 54
        assert doc.tanks[0].enabled_parameters == ["temp", "ph", "cond"]
        assert doc.log[0].kind == "Maintenance"


class TestSave:
    def test_write_failure_is_swallowed(self, broken_slot):
        assert persistence.save(broken_slot, seed_document()) is False

    def test_document_layout(self, slot):
        persistence.save(slot, seed_document())
        stored = json.loads(slot.read())
        assert set(stored) == {"settings", "tanks", "lines", "attempts", "groups", "water", "log"}
        assert set(stored["tanks"][0]) == {"id", "name", "volumeLiters", "location", "purpose", "active", "enabledParameters"}
        assert stored["water"][0]["temp"] == 25.2
        assert stored["settings"]["waterLimits"]["gh"] == {"min": None, "max": None}


class TestBackup:
    def test_export_is_serialized_document(self):
        doc = seed_document()
        data = persistence.export_document(doc)
        assert json.loads(data.decode("utf-8")) == persistence.encode_document(doc)

    def test_import_accepts_objects(self):
        assert persistence.import_document(b'{"tanks": []}') == {"tanks": []}
        assert persistence.import_document('{"anything": 1}') == {"anything": 1}

    @pytest.mark.parametrize("data", [b"[]", b"null", b"3", b"{oops", b"\xff"])
    def test_import_rejects_non_objects(self, data):
        with pytest.raises(persistence.ImportRejected):
            persistence.import_document(data)
