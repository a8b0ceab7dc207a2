"""Domain entities built from validated flat requests."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from models.errors import Err, Ok, Result
from models.validators import (
    INTEGER_CHK,
    NUMBER_CHK,
    POSITIVE_INTEGER_CHK,
    FlatReqChecks,
    RangeCheck,
    check_flat_req,
    required,
)


class Entity(BaseModel):
    """Immutable value; camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Range(Entity):
    """Inclusive numeric interval. ``min <= max`` is checked by the callers."""

    min: float
    max: float

    def is_within(self, value: float) -> bool:
        return self.min <= value <= self.max

    def is_subrange(self, other: "Range") -> bool:
        return other.min <= self.min and self.max <= other.max

    def __str__(self) -> str:
        return f"[{self.min:g}, {self.max:g}]"


ADD_SENSOR_TYPE_CHECKS = FlatReqChecks(
    fields=(
        required("id"),
        required("manufacturer"),
        required("modelNumber"),
        required("quantity"),
        required("unit"),
        required("min", check=NUMBER_CHK, coerce=float),
        required("max", check=NUMBER_CHK, coerce=float),
    ),
    range_checks=(RangeCheck("min", "max"),),
)


class SensorType(Entity):
    id: str
    manufacturer: str
    model_number: str = Field(alias="modelNumber")
    quantity: str
    unit: str
    limits: Range

    @classmethod
    def make(cls, req) -> Result["SensorType"]:
        result = check_flat_req(req, ADD_SENSOR_TYPE_CHECKS)
        if isinstance(result, Err):
            return result
        fields = result.value
        return Ok(
            cls(
                id=fields["id"],
                manufacturer=fields["manufacturer"],
                model_number=fields["modelNumber"],
                quantity=fields["quantity"],
                unit=fields["unit"],
                limits=Range(min=fields["min"], max=fields["max"]),
            )
        )


ADD_SENSOR_CHECKS = FlatReqChecks(
    fields=(
        required("id"),
        required("sensorTypeId"),
        required("period", check=POSITIVE_INTEGER_CHK, coerce=int),
        required("min", check=NUMBER_CHK, coerce=float, label="min expected"),
        required("max", check=NUMBER_CHK, coerce=float, label="max expected"),
    ),
    range_checks=(RangeCheck("min", "max"),),
)


class Sensor(Entity):
    id: str
    sensor_type_id: str = Field(alias="sensorTypeId")
    period: int
    expected: Range

    @classmethod
    def make(cls, req) -> Result["Sensor"]:
        result = check_flat_req(req, ADD_SENSOR_CHECKS)
        if isinstance(result, Err):
            return result
        fields = result.value
        return Ok(
            cls(
                id=fields["id"],
                sensor_type_id=fields["sensorTypeId"],
                period=fields["period"],
                expected=Range(min=fields["min"], max=fields["max"]),
            )
        )


ADD_SENSOR_READING_CHECKS = FlatReqChecks(
    fields=(
        required("sensorId"),
        required("timestamp", check=INTEGER_CHK, coerce=int),
        required("value", check=NUMBER_CHK, coerce=float),
    ),
)


class SensorReading(Entity):
    sensor_id: str = Field(alias="sensorId")
    timestamp: int
    value: float

    @property
    def key(self) -> tuple[str, int]:
        return (self.sensor_id, self.timestamp)

    @classmethod
    def make(cls, req) -> Result["SensorReading"]:
        result = check_flat_req(req, ADD_SENSOR_READING_CHECKS)
        if isinstance(result, Err):
            return result
        fields = result.value
        return Ok(
            cls(
                sensor_id=fields["sensorId"],
                timestamp=fields["timestamp"],
                value=fields["value"],
            )
        )

