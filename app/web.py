from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from models.entities import Entity
from models.errors import AppError, Err, Result
from services.paging import Page, PageRequest
from services.sensors_info import SensorsInfo, build_default_sensors_info
from settings import get_settings


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


@dataclass(frozen=True)
class FormField:
    name: str
    label: str
    required: bool = False


@dataclass(frozen=True)
class FormSpec:
    root_id: str
    title: str
    fields: Tuple[FormField, ...]


ADD_SENSOR_TYPE_FORM = FormSpec(
    root_id="addSensorType",
    title="Add Sensor Type",
    fields=(
        FormField("id", "Sensor Type ID", required=True),
        FormField("manufacturer", "Manufacturer", required=True),
        FormField("modelNumber", "Model Number", required=True),
        FormField("quantity", "Quantity", required=True),
        FormField("unit", "Unit", required=True),
        FormField("min", "Min Limit", required=True),
        FormField("max", "Max Limit", required=True),
    ),
)

ADD_SENSOR_FORM = FormSpec(
    root_id="addSensor",
    title="Add Sensor",
    fields=(
        FormField("id", "Sensor ID", required=True),
        FormField("sensorTypeId", "Sensor Type ID", required=True),
        FormField("period", "Period", required=True),
        FormField("min", "Min Expected", required=True),
        FormField("max", "Max Expected", required=True),
    ),
)

FIND_SENSOR_TYPES_FORM = FormSpec(
    root_id="findSensorTypes",
    title="Find Sensor Types",
    fields=(
        FormField("id", "Sensor Type ID"),
        FormField("manufacturer", "Manufacturer"),
        FormField("modelNumber", "Model Number"),
        FormField("quantity", "Quantity"),
        FormField("unit", "Unit"),
    ),
)

FIND_SENSORS_FORM = FormSpec(
    root_id="findSensors",
    title="Find Sensors",
    fields=(
        FormField("id", "Sensor ID"),
        FormField("sensorTypeId", "Sensor Type ID"),
        FormField("period", "Period"),
    ),
)

TABS = (
    ("ui_add_sensor_type", ADD_SENSOR_TYPE_FORM),
    ("ui_add_sensor", ADD_SENSOR_FORM),
    ("ui_find_sensor_types", FIND_SENSOR_TYPES_FORM),
    ("ui_find_sensors", FIND_SENSORS_FORM),
)


def get_sensors_info() -> SensorsInfo:
    return build_default_sensors_info()


def _form_values(data: Mapping[str, Any]) -> Dict[str, str]:
    """Keep only the non-blank text values of a submitted form."""
    return {
        key: value
        for key, value in data.items()
        if isinstance(value, str) and value.strip()
    }


def _split_errors(
    errors: List[AppError], spec: FormSpec
) -> Tuple[List[str], Dict[str, List[str]]]:
    """Errors not tied to a form field, and messages keyed by field name."""
    names = {form_field.name for form_field in spec.fields}
    general: List[str] = []
    by_field: Dict[str, List[str]] = {}
    for error in errors:
        if error.field in names:
            by_field.setdefault(error.field, []).append(error.message)
        else:
            general.append(error.message)
    return general, by_field


def _display_pairs(entity: Entity) -> List[Tuple[str, str]]:
    pairs: List[Tuple[str, str]] = []
    for key, value in entity.to_json().items():
        if isinstance(value, dict) and {"min", "max"} <= value.keys():
            value = f"[{value['min']:g}, {value['max']:g}]"
        pairs.append((key, str(value)))
    return pairs


router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_index")
async def ui_index() -> RedirectResponse:
    return RedirectResponse(url="/ui/add-sensor-type")


async def _render_add(
    request: Request,
    spec: FormSpec,
    add: Optional[Callable[[Dict[str, str]], Result[Entity]]] = None,
) -> HTMLResponse:
    values: Dict[str, str] = {}
    general: List[str] = []
    by_field: Dict[str, List[str]] = {}
    added: Optional[List[Tuple[str, str]]] = None
    status_code = 200

    if add is not None:
        values = _form_values(await request.form())
        result = add(values)
        if isinstance(result, Err):
            general, by_field = _split_errors(result.errors, spec)
            status_code = 400
        else:
            added = _display_pairs(result.value)

    return templates.TemplateResponse(
        request,
        "ui/add.html",
        {
            "tabs": TABS,
            "spec": spec,
            "values": values,
            "general_errors": general,
            "field_errors": by_field,
            "added": added,
        },
        status_code=status_code,
    )


async def _render_find(
    request: Request,
    spec: FormSpec,
    find: Callable[[Dict[str, str]], Result[List[Entity]]],
) -> HTMLResponse:
    values = _form_values(request.query_params)
    general: List[str] = []
    by_field: Dict[str, List[str]] = {}
    results: Optional[List[List[Tuple[str, str]]]] = None
    prev_href: Optional[str] = None
    next_href: Optional[str] = None
    status_code = 200

    if request.query_params:
        page_request = PageRequest.from_query(values, get_settings().page_count)
        result = find(page_request.lookahead_query(values))
        if isinstance(result, Err):
            general, by_field = _split_errors(result.errors, spec)
            status_code = 400
        else:
            page = Page.from_lookahead(result.value, page_request)
            results = [_display_pairs(entity) for entity in page.values]
            if page.has_next:
                next_href = str(
                    request.url.include_query_params(
                        index=page_request.next_index, count=page_request.count
                    )
                )
            if page.has_prev:
                prev_href = str(
                    request.url.include_query_params(
                        index=page_request.prev_index, count=page_request.count
                    )
                )

    return templates.TemplateResponse(
        request,
        "ui/find.html",
        {
            "tabs": TABS,
            "spec": spec,
            "values": values,
            "general_errors": general,
            "field_errors": by_field,
            "results": results,
            "prev_href": prev_href,
            "next_href": next_href,
        },
        status_code=status_code,
    )


@router.get("/ui/add-sensor-type", name="ui_add_sensor_type", response_class=HTMLResponse)
async def ui_add_sensor_type_form(request: Request) -> HTMLResponse:
    return await _render_add(request, ADD_SENSOR_TYPE_FORM)


@router.post("/ui/add-sensor-type", response_class=HTMLResponse)
async def ui_add_sensor_type(
    request: Request,
    sensors_info: SensorsInfo = Depends(get_sensors_info),
) -> HTMLResponse:
    return await _render_add(request, ADD_SENSOR_TYPE_FORM, sensors_info.add_sensor_type)


@router.get("/ui/add-sensor", name="ui_add_sensor", response_class=HTMLResponse)
async def ui_add_sensor_form(request: Request) -> HTMLResponse:
    return await _render_add(request, ADD_SENSOR_FORM)


@router.post("/ui/add-sensor", response_class=HTMLResponse)
async def ui_add_sensor(
    request: Request,
    sensors_info: SensorsInfo = Depends(get_sensors_info),
) -> HTMLResponse:
    return await _render_add(request, ADD_SENSOR_FORM, sensors_info.add_sensor)


@router.get("/ui/find-sensor-types", name="ui_find_sensor_types", response_class=HTMLResponse)
async def ui_find_sensor_types(
    request: Request,
    sensors_info: SensorsInfo = Depends(get_sensors_info),
) -> HTMLResponse:
    return await _render_find(request, FIND_SENSOR_TYPES_FORM, sensors_info.find_sensor_types)


@router.get("/ui/find-sensors", name="ui_find_sensors", response_class=HTMLResponse)
async def ui_find_sensors(
    request: Request,
    sensors_info: SensorsInfo = Depends(get_sensors_info),
) -> HTMLResponse:
    return await _render_find(request, FIND_SENSORS_FORM, sensors_info.find_sensors)
