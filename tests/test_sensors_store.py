"""Unit tests for the in-memory sensors store."""

from __future__ import annotations

import json

from datastore.sensors_store import DuplicatePolicy, SensorsStore, build_default_store
from models.entities import Range, Sensor, SensorReading, SensorType
from models.errors import Err, ErrorCode, Ok
from models.searches import SensorReadingSearch, SensorSearch, SensorTypeSearch
from settings import get_settings


def _sensor_type(type_id: str = "hw123", manufacturer: str = "honeywell") -> SensorType:
    return SensorType(
        id=type_id,
        manufacturer=manufacturer,
        model_number="123",
        quantity="pressure",
        unit="PSI",
        limits=Range(min=10, max=100),
    )


def _sensor(sensor_id: str = "ln1120", period: int = 1000) -> Sensor:
    return Sensor(
        id=sensor_id,
        sensor_type_id="hw123",
        period=period,
        expected=Range(min=15, max=85),
    )


def _reading(timestamp: int, value: float = 12.4, sensor_id: str = "ln1120") -> SensorReading:
    return SensorReading(sensor_id=sensor_id, timestamp=timestamp, value=value)


def test_find_sorts_by_id_and_returns_stored_values() -> None:
    store = SensorsStore()
    for type_id in ("c", "a", "b"):
        store.add_sensor_type(_sensor_type(type_id))

    result = store.find_sensor_types(SensorTypeSearch())

    assert isinstance(result, Ok)
    assert [item.id for item in result.value] == ["a", "b", "c"]


def test_find_by_id_filters_and_missing_id_is_empty() -> None:
    store = SensorsStore()
    store.add_sensor(_sensor("s1"))
    store.add_sensor(_sensor("s2", period=5))

    assert [s.id for s in store.find_sensors(SensorSearch(id="s2")).value] == ["s2"]
    assert store.find_sensors(SensorSearch(id="s3")).value == []
    assert [s.id for s in store.find_sensors(SensorSearch(period=1000)).value] == ["s1"]


def test_readings_sorted_numerically_by_timestamp() -> None:
    store = SensorsStore()
    for timestamp in (100, 9, 20):
        store.add_sensor_reading(_reading(timestamp))
    store.add_sensor_reading(_reading(5, sensor_id="other"))

    result = store.find_sensor_readings(SensorReadingSearch(sensor_id="ln1120"))

    assert [r.timestamp for r in result.value] == [9, 20, 100]


def test_window_applies_after_sorting() -> None:
    store = SensorsStore()
    for timestamp in range(10, 0, -1):
        store.add_sensor_reading(_reading(timestamp))

    result = store.find_sensor_readings(SensorReadingSearch(sensor_id="ln1120", index=3, count=4))

    assert [r.timestamp for r in result.value] == [4, 5, 6, 7]


def test_replace_policy_overwrites_duplicates() -> None:
    store = SensorsStore()
    store.add_sensor_type(_sensor_type())
    store.add_sensor_type(_sensor_type(manufacturer="acme"))
    store.add_sensor_reading(_reading(1, 12.4))
    replaced = store.add_sensor_reading(_reading(1, 13.4))

    assert isinstance(replaced, Ok)
    assert [t.manufacturer for t in store.find_sensor_types(SensorTypeSearch()).value] == ["acme"]
    readings = store.find_sensor_readings(SensorReadingSearch(sensor_id="ln1120")).value
    assert [r.value for r in readings] == [13.4]


def test_reject_policy_reports_exists() -> None:
    store = SensorsStore(on_duplicate=DuplicatePolicy.REJECT)
    store.add_sensor_type(_sensor_type())
    store.add_sensor(_sensor())
    store.add_sensor_reading(_reading(1, 12.4))

    for result in (
        store.add_sensor_type(_sensor_type(manufacturer="acme")),
        store.add_sensor(_sensor(period=1)),
        store.add_sensor_reading(_reading(1, 13.4)),
    ):
        assert isinstance(result, Err)
        assert result.codes == [ErrorCode.EXISTS]

    readings = store.find_sensor_readings(SensorReadingSearch(sensor_id="ln1120")).value
    assert [r.value for r in readings] == [12.4]


def test_clear_is_idempotent() -> None:
    store = SensorsStore()
    store.add_sensor_type(_sensor_type())

    assert store.clear().is_ok
    assert store.clear().is_ok
    assert store.find_sensor_types(SensorTypeSearch()).value == []


def test_persistence_round_trip(tmp_path) -> None:
    path = tmp_path / "store" / "sensors.json"
    store = SensorsStore(persistence_path=path)
    store.add_sensor_type(_sensor_type())
    store.add_sensor(_sensor())
    store.add_sensor_reading(_reading(7))

    data = json.loads(path.read_text())
    assert data["sensorTypes"][0]["modelNumber"] == "123"
    assert data["sensorReadings"] == [{"sensorId": "ln1120", "timestamp": 7, "value": 12.4}]

    reloaded = SensorsStore(persistence_path=path)
    assert reloaded.find_sensor_types(SensorTypeSearch()).value == [_sensor_type()]
    assert reloaded.find_sensors(SensorSearch()).value == [_sensor()]
    assert reloaded.find_sensor_readings(SensorReadingSearch(sensor_id="ln1120")).value == [_reading(7)]


def test_unreadable_store_file_is_ignored(tmp_path) -> None:
    path = tmp_path / "sensors.json"
    path.write_text("{not json")

    store = SensorsStore(persistence_path=path)

    assert store.find_sensor_types(SensorTypeSearch()).value == []


def test_write_failure_is_db_error_and_rolls_back(tmp_path) -> None:
    path = tmp_path / "sensors.json"
    store = SensorsStore(persistence_path=path)
    store.add_sensor_type(_sensor_type())
    path.unlink()
    path.mkdir()

    added = store.add_sensor_type(_sensor_type("other"))
    cleared = store.clear()

    assert isinstance(added, Err) and added.codes == [ErrorCode.DB]
    assert isinstance(cleared, Err) and cleared.codes == [ErrorCode.DB]
    assert [t.id for t in store.find_sensor_types(SensorTypeSearch()).value] == ["hw123"]


def test_closed_store_rejects_operations() -> None:
    store = SensorsStore()
    assert store.close().is_ok

    for result in (
        store.add_sensor_type(_sensor_type()),
        store.find_sensors(SensorSearch()),
        store.find_sensor_readings(SensorReadingSearch(sensor_id="x")),
        store.clear(),
    ):
        assert isinstance(result, Err)
        assert result.codes == [ErrorCode.DB]


def test_build_default_store_reads_settings(monkeypatch, tmp_path) -> None:
    path = tmp_path / "default.json"
    monkeypatch.setenv("SENSORS_STORE_PATH", str(path))
    monkeypatch.setenv("SENSORS_ON_DUPLICATE", "reject")
    get_settings.cache_clear()
    build_default_store.cache_clear()

    try:
        store = build_default_store()
        assert store.persistence_path == path
        assert store.on_duplicate is DuplicatePolicy.REJECT
    finally:
        build_default_store.cache_clear()
        get_settings.cache_clear()
