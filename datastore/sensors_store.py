from __future__ import annotations
import json
import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, Optional, TypeVar

from pydantic import ValidationError

from models.entities import Entity, Sensor, SensorReading, SensorType
from models.errors import VOID_RESULT, ErrorCode, Ok, Result, err_result
from models.searches import Search, SensorReadingSearch, SensorSearch, SensorTypeSearch
from settings import get_settings

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


class DuplicatePolicy(str, Enum):
    """What an add does when the key is already stored."""

    REPLACE = "replace"
    REJECT = "reject"


class SensorsStore:
    """Sensor types, sensors and readings held in memory, optionally mirrored to JSON.

    Every public operation runs under one lock, so each add or find is atomic
    with respect to the others. Failures are returned as ``DB`` errors.
    """

    def __init__(
        self,
        persistence_path: Optional[Path] = None,
        on_duplicate: DuplicatePolicy = DuplicatePolicy.REPLACE,
    ) -> None:
        self.persistence_path = persistence_path
        self.on_duplicate = on_duplicate
        self._sensor_types: Dict[str, SensorType] = {}
        self._sensors: Dict[str, Sensor] = {}
        # sensor id -> timestamp -> reading
        self._readings: Dict[str, Dict[int, SensorReading]] = {}
        self._lock = Lock()
        self._closed = False
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def add_sensor_type(self, sensor_type: SensorType) -> Result[SensorType]:
        return self._add(self._sensor_types, sensor_type.id, sensor_type, "sensor-type")

    def add_sensor(self, sensor: Sensor) -> Result[Sensor]:
        return self._add(self._sensors, sensor.id, sensor, "sensor")

    def add_sensor_reading(self, reading: SensorReading) -> Result[SensorReading]:
        with self._lock:
            if self._closed:
                return _closed_error()
            readings = self._readings.setdefault(reading.sensor_id, {})
            return self._put(
                readings,
                reading.timestamp,
                reading,
                f"sensor-reading for sensor {reading.sensor_id!r} "
                f"at timestamp {reading.timestamp}",
            )

    def find_sensor_types(self, search: SensorTypeSearch) -> Result[list[SensorType]]:
        with self._lock:
            if self._closed:
                return _closed_error()
            candidates = self._by_id(self._sensor_types, search.id)
            return Ok(_select("sensor-types", candidates, search, key=lambda item: item.id))

    def find_sensors(self, search: SensorSearch) -> Result[list[Sensor]]:
        with self._lock:
            if self._closed:
                return _closed_error()
            candidates = self._by_id(self._sensors, search.id)
            return Ok(_select("sensors", candidates, search, key=lambda item: item.id))

    def find_sensor_readings(
        self, search: SensorReadingSearch
    ) -> Result[list[SensorReading]]:
        with self._lock:
            if self._closed:
                return _closed_error()
            candidates = self._readings.get(search.sensor_id, {}).values()
            return Ok(_select("sensor-readings", candidates, search, key=lambda item: item.timestamp))

    def clear(self) -> Result[None]:
        with self._lock:
            if self._closed:
                return _closed_error()
            snapshot = (
                dict(self._sensor_types),
                dict(self._sensors),
                dict(self._readings),
            )
            self._sensor_types.clear()
            self._sensors.clear()
            self._readings.clear()
            try:
                self._persist()
            except (OSError, TypeError, ValueError) as exc:
                self._sensor_types, self._sensors, self._readings = snapshot
                logger.error("Failed to clear persisted store", extra={"reason": str(exc)})
                return err_result(f"cannot clear store: {exc}", ErrorCode.DB)
            return VOID_RESULT

    def close(self) -> Result[None]:
        with self._lock:
            self._closed = True
        return VOID_RESULT

    def _add(self, table: Dict[str, E], key: str, entity: E, kind: str) -> Result[E]:
        with self._lock:
            if self._closed:
                return _closed_error()
            return self._put(table, key, entity, f"{kind} {key!r}")

    def _put(self, table: dict, key, entity: E, description: str) -> Result[E]:
        previous = table.get(key)
        if previous is not None and self.on_duplicate is DuplicatePolicy.REJECT:
            return err_result(f"duplicate {description}", ErrorCode.EXISTS)
        table[key] = entity
        try:
            self._persist()
        except (OSError, TypeError, ValueError) as exc:
            if previous is None:
                del table[key]
            else:
                table[key] = previous
            logger.error(
                "Failed to persist %s", description, extra={"reason": str(exc)}
            )
            return err_result(f"cannot add {description}: {exc}", ErrorCode.DB)
        return Ok(entity)

    @staticmethod
    def _by_id(table: Dict[str, E], entity_id: Optional[str]) -> Iterable[E]:
        if entity_id is None:
            return table.values()
        entity = table.get(entity_id)
        return [entity] if entity is not None else []

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            "sensorTypes": [item.to_json() for item in self._sensor_types.values()],
            "sensors": [item.to_json() for item in self._sensors.values()],
            "sensorReadings": [
                reading.to_json()
                for readings in self._readings.values()
                for reading in readings.values()
            ],
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
            sensor_types = [SensorType.model_validate(item) for item in data.get("sensorTypes", [])]
            sensors = [Sensor.model_validate(item) for item in data.get("sensors", [])]
            readings = [
                SensorReading.model_validate(item) for item in data.get("sensorReadings", [])
            ]
        except (OSError, json.JSONDecodeError, AttributeError, ValidationError) as exc:
            logger.warning(
                "Ignoring unreadable store file %s",
                self.persistence_path,
                extra={"reason": str(exc)},
            )
            return

        for sensor_type in sensor_types:
            self._sensor_types[sensor_type.id] = sensor_type
        for sensor in sensors:
            self._sensors[sensor.id] = sensor
        for reading in readings:
            self._readings.setdefault(reading.sensor_id, {})[reading.timestamp] = reading


def _select(kind: str, candidates: Iterable[E], search: Search, key) -> list[E]:
    matches = sorted((item for item in candidates if search.matches(item)), key=key)
    selected = search.window(matches)
    logger.debug(
        "Found %s",
        kind,
        extra={"result_count": len(selected), "index": search.index, "count": search.count},
    )
    return selected


def _closed_error():
    return err_result("sensors store is closed", ErrorCode.DB)


@lru_cache
def build_default_store(
    path: Optional[str] = None,
    on_duplicate: Optional[str] = None,
) -> SensorsStore:
    settings = get_settings()
    store_path = settings.store_path if path is None else path
    policy = DuplicatePolicy(settings.on_duplicate if on_duplicate is None else on_duplicate)
    persistence = Path(store_path) if store_path else None
    return SensorsStore(persistence_path=persistence, on_duplicate=policy)
