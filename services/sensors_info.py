"""Validation and cross-entity consistency for sensor types, sensors and readings."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Mapping

from datastore.sensors_store import SensorsStore, build_default_store
from models.entities import Sensor, SensorReading, SensorType
from models.errors import VOID_RESULT, Err, ErrorCode, Ok, Result, err_result
from models.searches import SensorReadingSearch, SensorSearch, SensorTypeSearch

logger = logging.getLogger(__name__)

FlatReq = Mapping[str, Any]


class SensorsInfo:
    """Front door for every sensors operation.

    Requests are untyped flat mappings. Each add validates the request,
    checks it against already stored entities and only then hands it to the
    store; each find validates the search criteria and lets the store filter,
    sort and page. Every method returns an ``Ok``/``Err`` result.
    """

    def __init__(self, store: SensorsStore) -> None:
        self.store = store

    def clear(self) -> Result[None]:
        """Remove all sensor types, sensors and readings."""
        result = self.store.clear()
        if result.is_ok:
            logger.info("Cleared sensors info")
        return result

    def close(self) -> Result[None]:
        return self.store.close()

    def add_sensor_type(self, req: FlatReq) -> Result[SensorType]:
        """Add the sensor-type described by ``req``.

        Error codes: ``REQUIRED``, ``BAD_VAL``, ``BAD_RANGE`` (min > max),
        plus ``EXISTS``/``DB`` from the store.
        """
        result = SensorType.make(req)
        if isinstance(result, Err):
            return _rejected("sensor-type", result)
        sensor_type = result.value
        added = self.store.add_sensor_type(sensor_type)
        if added.is_ok:
            logger.debug("Added sensor-type", extra={"sensor_type_id": sensor_type.id})
        return added

    def add_sensor(self, req: FlatReq) -> Result[Sensor]:
        """Add the sensor described by ``req``.

        Error codes: ``REQUIRED``, ``BAD_VAL``, ``BAD_RANGE`` (min > max or
        expected range outside the sensor-type limits), ``BAD_ID`` (unknown
        sensorTypeId), plus ``EXISTS``/``DB`` from the store.
        """
        result = Sensor.make(req)
        if isinstance(result, Err):
            return _rejected("sensor", result)
        sensor = result.value

        found = self.store.find_sensor_types(SensorTypeSearch(id=sensor.sensor_type_id))
        if isinstance(found, Err):
            return found
        if len(found.value) != 1:
            return _rejected(
                "sensor",
                err_result(
                    f'unknown sensor type "{sensor.sensor_type_id}"',
                    ErrorCode.BAD_ID,
                    "sensorTypeId",
                ),
            )
        sensor_type = found.value[0]
        if not sensor.expected.is_subrange(sensor_type.limits):
            return _rejected(
                "sensor",
                err_result(
                    f"expected range {sensor.expected} of sensor "
                    f'"{sensor.id}" is not within the limits {sensor_type.limits} '
                    f'of sensor-type "{sensor_type.id}"',
                    ErrorCode.BAD_RANGE,
                    "min",
                ),
            )

        added = self.store.add_sensor(sensor)
        if added.is_ok:
            logger.debug(
                "Added sensor",
                extra={"sensor_id": sensor.id, "sensor_type_id": sensor.sensor_type_id},
            )
        return added

    def add_sensor_reading(self, req: FlatReq) -> Result[SensorReading]:
        """Add the reading described by ``req``.

        Error codes: ``REQUIRED``, ``BAD_VAL``, ``BAD_ID`` (unknown sensorId),
        plus ``EXISTS``/``DB`` from the store.
        """
        result = SensorReading.make(req)
        if isinstance(result, Err):
            return _rejected("sensor-reading", result)
        reading = result.value

        found = self.store.find_sensors(SensorSearch(id=reading.sensor_id))
        if isinstance(found, Err):
            return found
        if len(found.value) != 1:
            return _rejected(
                "sensor-reading",
                err_result(
                    f'unknown sensor id "{reading.sensor_id}"',
                    ErrorCode.BAD_ID,
                    "sensorId",
                ),
            )

        added = self.store.add_sensor_reading(reading)
        if added.is_ok:
            logger.debug(
                "Added sensor-reading",
                extra={"sensor_id": reading.sensor_id, "timestamp": reading.timestamp},
            )
        return added

    def find_sensor_types(self, req: FlatReq) -> Result[list[SensorType]]:
        """Sensor-types matching ``req`` sorted by id; ``[]`` if none."""
        result = SensorTypeSearch.make(req)
        if isinstance(result, Err):
            return _rejected("sensor-type search", result)
        return self.store.find_sensor_types(result.value)

    def find_sensors(self, req: FlatReq) -> Result[list[Sensor]]:
        """Sensors matching ``req`` sorted by id; ``[]`` if none."""
        result = SensorSearch.make(req)
        if isinstance(result, Err):
            return _rejected("sensor search", result)
        return self.store.find_sensors(result.value)

    def find_sensor_readings(self, req: FlatReq) -> Result[list[SensorReading]]:
        """Readings of ``req["sensorId"]`` sorted by timestamp; ``[]`` if none.

        ``minTimestamp``/``maxTimestamp`` and ``minValue``/``maxValue`` are
        optional inclusive bounds.
        """
        result = SensorReadingSearch.make(req)
        if isinstance(result, Err):
            return _rejected("sensor-reading search", result)
        return self.store.find_sensor_readings(result.value)


def _rejected(kind: str, result: Err) -> Err:
    logger.info(
        "Rejected %s request",
        kind,
        extra={"error_code": result.codes, "error_count": len(result.errors)},
    )
    return result


def add_sensors_info(
    sensors_info: SensorsInfo,
    sensor_types: Iterable[FlatReq] = (),
    sensors: Iterable[FlatReq] = (),
    sensor_readings: Iterable[FlatReq] = (),
) -> Result[None]:
    """Add all requests in dependency order, stopping at the first failure."""
    for req in sensor_types:
        result = sensors_info.add_sensor_type(req)
        if isinstance(result, Err):
            return result
    for req in sensors:
        result = sensors_info.add_sensor(req)
        if isinstance(result, Err):
            return result
    for req in sensor_readings:
        result = sensors_info.add_sensor_reading(req)
        if isinstance(result, Err):
            return result
    return VOID_RESULT


def make_sensors_info(
    store: SensorsStore,
    sensor_types: Iterable[FlatReq] = (),
    sensors: Iterable[FlatReq] = (),
    sensor_readings: Iterable[FlatReq] = (),
) -> Result[SensorsInfo]:
    sensors_info = SensorsInfo(store)
    result = add_sensors_info(sensors_info, sensor_types, sensors, sensor_readings)
    if isinstance(result, Err):
        return result
    return Ok(sensors_info)


def load_sensors_data(sensors_info: SensorsInfo, path: Path) -> Result[None]:
    """Replace the contents of ``sensors_info`` with a JSON data file.

    The file holds optional ``sensorTypes``, ``sensors`` and
    ``sensorReadings`` lists of flat requests.
    """
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        return err_result(f"cannot read sensors data {str(path)!r}: {exc}", ErrorCode.BAD_REQ)
    if not isinstance(data, dict):
        return err_result(
            f"sensors data {str(path)!r} must be a JSON object", ErrorCode.BAD_REQ
        )

    cleared = sensors_info.clear()
    if isinstance(cleared, Err):
        return cleared
    result = add_sensors_info(
        sensors_info,
        data.get("sensorTypes") or [],
        data.get("sensors") or [],
        data.get("sensorReadings") or [],
    )
    if result.is_ok:
        logger.info("Loaded sensors data", extra={"path": path})
    return result


@lru_cache
def build_default_sensors_info() -> SensorsInfo:
    """Factory that wires SensorsInfo with the default store."""
    return SensorsInfo(store=build_default_store())
