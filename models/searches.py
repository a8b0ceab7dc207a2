"""Search criteria used to filter and page stored entities."""

from __future__ import annotations

import math
from typing import Any, ClassVar, Dict, Optional, Union

from pydantic import Field

from models.entities import Entity, Range, SensorReading
from models.errors import Err, Ok, Result
from models.validators import (
    INTEGER_CHK,
    NUMBER_CHK,
    FlatReqChecks,
    RangeCheck,
    check_flat_req,
    optional,
    required,
)

PAGING_FIELDS = (
    optional("count", check=INTEGER_CHK, coerce=int),
    optional("index", check=INTEGER_CHK, coerce=int),
)


class Search(Entity):
    """Equality filter over the fields named in ``filter_fields``.

    A field left as ``None`` imposes no constraint.
    """

    filter_fields: ClassVar[tuple[str, ...]] = ()

    count: Optional[int] = None
    index: Optional[int] = None

    def constraints(self) -> Dict[str, Any]:
        values = {name: getattr(self, name) for name in self.filter_fields}
        return {name: value for name, value in values.items() if value is not None}

    def matches(self, entity: Entity) -> bool:
        return all(
            getattr(entity, name) == value for name, value in self.constraints().items()
        )

    def window(self, results: list) -> list:
        """Slice ``results`` to ``[index, index + count)``."""
        start = self.index or 0
        if self.count is None:
            return results[start:]
        return results[start : start + self.count]


SENSOR_TYPE_SEARCH_CHECKS = FlatReqChecks(
    fields=(
        optional("id"),
        optional("manufacturer"),
        optional("modelNumber"),
        optional("quantity"),
        optional("unit"),
        *PAGING_FIELDS,
    ),
)


class SensorTypeSearch(Search):
    filter_fields: ClassVar[tuple[str, ...]] = (
        "id",
        "manufacturer",
        "model_number",
        "quantity",
        "unit",
    )

    id: Optional[str] = None
    manufacturer: Optional[str] = None
    model_number: Optional[str] = Field(default=None, alias="modelNumber")
    quantity: Optional[str] = None
    unit: Optional[str] = None

    @classmethod
    def make(cls, req) -> Result["SensorTypeSearch"]:
        result = check_flat_req(req, SENSOR_TYPE_SEARCH_CHECKS)
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
                count=fields["count"],
                index=fields["index"],
            )
        )


SENSOR_SEARCH_CHECKS = FlatReqChecks(
    fields=(
        optional("id"),
        optional("sensorTypeId"),
        optional("period", check=INTEGER_CHK, coerce=int),
        *PAGING_FIELDS,
    ),
)


class SensorSearch(Search):
    filter_fields: ClassVar[tuple[str, ...]] = ("id", "sensor_type_id", "period")

    id: Optional[str] = None
    sensor_type_id: Optional[str] = Field(default=None, alias="sensorTypeId")
    period: Optional[int] = None

    @classmethod
    def make(cls, req) -> Result["SensorSearch"]:
        result = check_flat_req(req, SENSOR_SEARCH_CHECKS)
        if isinstance(result, Err):
            return result
        fields = result.value
        return Ok(
            cls(
                id=fields["id"],
                sensor_type_id=fields["sensorTypeId"],
                period=fields["period"],
                count=fields["count"],
                index=fields["index"],
            )
        )


SENSOR_READING_SEARCH_CHECKS = FlatReqChecks(
    fields=(
        required("sensorId"),
        optional("minTimestamp", check=INTEGER_CHK, coerce=int, default=-math.inf),
        optional("maxTimestamp", check=INTEGER_CHK, coerce=int, default=math.inf),
        optional("minValue", check=NUMBER_CHK, coerce=float, default=-math.inf),
        optional("maxValue", check=NUMBER_CHK, coerce=float, default=math.inf),
        *PAGING_FIELDS,
    ),
    range_checks=(
        RangeCheck("minTimestamp", "maxTimestamp"),
        RangeCheck("minValue", "maxValue"),
    ),
)


class SensorReadingSearch(Search):
    filter_fields: ClassVar[tuple[str, ...]] = ("sensor_id",)

    sensor_id: str = Field(alias="sensorId")
    # int when given, -inf/+inf when open
    min_timestamp: Union[int, float] = Field(default=-math.inf, alias="minTimestamp")
    max_timestamp: Union[int, float] = Field(default=math.inf, alias="maxTimestamp")
    min_value: float = Field(default=-math.inf, alias="minValue")
    max_value: float = Field(default=math.inf, alias="maxValue")

    @property
    def value_range(self) -> Range:
        return Range(min=self.min_value, max=self.max_value)

    @classmethod
    def make(cls, req) -> Result["SensorReadingSearch"]:
        result = check_flat_req(req, SENSOR_READING_SEARCH_CHECKS)
        if isinstance(result, Err):
            return result
        fields = result.value
        return Ok(
            cls(
                sensor_id=fields["sensorId"],
                min_timestamp=fields["minTimestamp"],
                max_timestamp=fields["maxTimestamp"],
                min_value=fields["minValue"],
                max_value=fields["maxValue"],
                count=fields["count"],
                index=fields["index"],
            )
        )

    def matches(self, entity: SensorReading) -> bool:
        return (
            super().matches(entity)
            and self.min_timestamp <= entity.timestamp <= self.max_timestamp
            and self.value_range.is_within(entity.value)
        )
