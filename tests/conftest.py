from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, ContextManager, Dict, Iterator, List

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.sensors_store import DuplicatePolicy, SensorsStore
from services.sensors_info import SensorsInfo
from settings import get_settings

SENSOR_TYPE_REQ: Dict[str, str] = {
    "id": "hw123",
    "manufacturer": "honeywell",
    "modelNumber": "123",
    "quantity": "pressure",
    "unit": "PSI",
    "min": "10.0",
    "max": "100",
}

SENSOR_REQ: Dict[str, str] = {
    "id": "ln1120",
    "sensorTypeId": "hw123",
    "period": "1000",
    "min": "15",
    "max": "85",
}

READING_REQ: Dict[str, str] = {
    "sensorId": "ln1120",
    "timestamp": "1694129048",
    "value": "12.4",
}


def make_sensor_types(n: int = 4) -> List[Dict[str, str]]:
    """Sensor-type requests, added in reverse id order; limits are [-100, 100]."""
    manufacturers = ("acme", "honeywell")
    return [
        {
            "id": f"type-{i:02d}",
            "manufacturer": manufacturers[i % 2],
            "modelNumber": f"m{i}",
            "quantity": "temperature",
            "unit": "C",
            "min": "-100",
            "max": "100",
        }
        for i in reversed(range(n))
    ]


def make_sensors(sensor_types: List[Dict[str, str]], per_type: int = 2) -> List[Dict[str, str]]:
    return [
        {
            "id": f"{sensor_type['id']}-s{j}",
            "sensorTypeId": sensor_type["id"],
            "period": str(10 * (j + 1)),
            "min": "-50",
            "max": "50",
        }
        for sensor_type in sensor_types
        for j in range(per_type)
    ]


def make_readings(
    sensors: List[Dict[str, str]], n_readings: int = 20, spread: int = 2
) -> List[Dict[str, str]]:
    """Readings whose values cycle through ``2 * spread + 1`` consecutive integers."""
    width = 2 * spread + 1
    return [
        {
            "sensorId": sensor["id"],
            "timestamp": str(1000 + 10 * k),
            "value": str(k % width - spread),
        }
        for sensor in sensors
        for k in reversed(range(n_readings))
    ]


@pytest.fixture
def store() -> SensorsStore:
    return SensorsStore()


@pytest.fixture
def sensors_info(store: SensorsStore) -> SensorsInfo:
    return SensorsInfo(store)


@pytest.fixture
def rejecting_info() -> SensorsInfo:
    return SensorsInfo(SensorsStore(on_duplicate=DuplicatePolicy.REJECT))


@pytest.fixture
def sensor_type_req() -> Dict[str, str]:
    return dict(SENSOR_TYPE_REQ)


@pytest.fixture
def sensor_req() -> Dict[str, str]:
    return dict(SENSOR_REQ)


@pytest.fixture
def reading_req() -> Dict[str, str]:
    return dict(READING_REQ)


@pytest.fixture
def catalog() -> Dict[str, List[Dict[str, str]]]:
    """Four sensor-types, two sensors each, twenty readings per sensor."""
    sensor_types = make_sensor_types()
    sensors = make_sensors(sensor_types)
    return {
        "sensorTypes": sensor_types,
        "sensors": sensors,
        "sensorReadings": make_readings(sensors),
    }


_ENV_VARS = (
    "SENSORS_STORE_PATH",
    "SENSORS_ON_DUPLICATE",
    "SENSORS_API_BASE",
    "SENSORS_PAGE_COUNT",
    "SENSORS_DATA_PATH",
)


@pytest.fixture
def serve(monkeypatch) -> Callable[..., ContextManager[TestClient]]:
    """Run the app around a given SensorsInfo; keyword arguments become env vars."""

    @contextmanager
    def _serve(sensors_info: SensorsInfo, **env: str) -> Iterator[TestClient]:
        for name in _ENV_VARS:
            monkeypatch.delenv(name, raising=False)
        for name, value in env.items():
            monkeypatch.setenv(name, value)
        get_settings.cache_clear()

        def build_test_sensors_info() -> SensorsInfo:
            return sensors_info

        build_test_sensors_info.cache_clear = lambda: None  # type: ignore[attr-defined]

        monkeypatch.setattr("app.main.build_default_sensors_info", build_test_sensors_info)
        monkeypatch.setattr("app.api.build_default_sensors_info", build_test_sensors_info)
        monkeypatch.setattr("app.web.build_default_sensors_info", build_test_sensors_info)

        app = create_app()
        try:
            with TestClient(app) as client:
                yield client
        finally:
            get_settings.cache_clear()

    return _serve
