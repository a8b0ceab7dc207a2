"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, TypeVar
from urllib.parse import quote, urlencode

from fastapi import APIRouter, Depends, Request, Response, status

from app.errors import SensorsApiError
from app.schemas import Link, PagedEnvelope, PagedItem, SuccessEnvelope
from models.entities import Entity, SensorReading
from models.errors import Err, ErrorCode, Result
from services.paging import Page, PageRequest
from services.sensors_info import SensorsInfo, build_default_sensors_info
from settings import get_settings

T = TypeVar("T")

# Mounted under the configured API base (``/sensors-info`` by default).
router = APIRouter()

# Routes outside the API base.
service_router = APIRouter()


def get_sensors_info() -> SensorsInfo:
    return build_default_sensors_info()


def _unwrap(result: Result[T]) -> T:
    if isinstance(result, Err):
        raise SensorsApiError(result.errors)
    return result.value


async def _read_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except (ValueError, UnicodeDecodeError) as exc:
        raise SensorsApiError.single(
            f"request body is not valid JSON: {exc}", ErrorCode.BAD_REQ
        ) from exc
    if not isinstance(body, dict):
        raise SensorsApiError.single(
            "request body must be a JSON object", ErrorCode.BAD_REQ
        )
    return body


def _request_href(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def _page_href(request: Request, index: int, count: int) -> str:
    url = request.url.include_query_params(index=index, count=count)
    return f"{url.path}?{url.query}"


def _reading_href(path: str, reading: SensorReading) -> str:
    query = urlencode(
        {
            "sensorId": reading.sensor_id,
            "minTimestamp": reading.timestamp,
            "maxTimestamp": reading.timestamp,
        }
    )
    return f"{path}?{query}"


def _created(request: Request, response: Response, entity: Entity, location: str) -> SuccessEnvelope:
    response.headers["Location"] = location
    return SuccessEnvelope(
        status=status.HTTP_201_CREATED,
        links={"self": Link(rel="self", href=_request_href(request), method=request.method)},
        result=entity.to_json(),
    )


def _single(request: Request, results: List[Entity], kind: str, entity_id: str) -> SuccessEnvelope:
    if len(results) != 1:
        raise SensorsApiError.single(
            f'{kind} "{entity_id}" not found', ErrorCode.NOT_FOUND
        )
    return SuccessEnvelope(
        status=status.HTTP_200_OK,
        links={"self": Link(rel="self", href=_request_href(request), method="GET")},
        result=results[0].to_json(),
    )


def _paged(
    request: Request,
    find: Callable[[Dict[str, Any]], Result[List[Entity]]],
    item_href: Callable[[Entity], str],
) -> PagedEnvelope:
    query = dict(request.query_params)
    page_request = PageRequest.from_query(query, get_settings().page_count)
    results = _unwrap(find(page_request.lookahead_query(query)))
    page = Page.from_lookahead(results, page_request)

    links = {"self": Link(rel="self", href=_request_href(request))}
    if page.has_next:
        links["next"] = Link(
            rel="next",
            href=_page_href(request, page_request.next_index, page_request.count),
        )
    if page.has_prev:
        links["prev"] = Link(
            rel="prev",
            href=_page_href(request, page_request.prev_index, page_request.count),
        )
    items = [
        PagedItem(
            result=entity.to_json(),
            links={"self": Link(rel="self", href=item_href(entity))},
        )
        for entity in page.values
    ]
    return PagedEnvelope(status=status.HTTP_200_OK, links=links, result=items)


@router.api_route(
    "/sensor-types",
    methods=["PUT", "POST"],
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessEnvelope,
    summary="Add a sensor-type.",
)
async def create_sensor_type(
    request: Request,
    response: Response,
    sensors_info: SensorsInfo = Depends(get_sensors_info),
) -> SuccessEnvelope:
    body = await _read_body(request)
    sensor_type = _unwrap(sensors_info.add_sensor_type(body))
    location = f"{request.url.path}/{quote(sensor_type.id, safe='')}"
    return _created(request, response, sensor_type, location)


@router.get(
    "/sensor-types/{sensor_type_id}",
    response_model=SuccessEnvelope,
    summary="Fetch a single sensor-type by id.",
)
async def get_sensor_type(
    request: Request,
    sensor_type_id: str,
    sensors_info: SensorsInfo = Depends(get_sensors_info),
) -> SuccessEnvelope:
    results = _unwrap(sensors_info.find_sensor_types({"id": sensor_type_id}))
    return _single(request, results, "sensor-type", sensor_type_id)


@router.get(
    "/sensor-types",
    response_model=PagedEnvelope,
    summary="Find sensor-types, one page at a time.",
)
async def find_sensor_types(
    request: Request,
    sensors_info: SensorsInfo = Depends(get_sensors_info),
) -> PagedEnvelope:
    path = request.url.path
    return _paged(
        request,
        sensors_info.find_sensor_types,
        lambda entity: f"{path}/{quote(entity.id, safe='')}",
    )


@router.api_route(
    "/sensors",
    methods=["PUT", "POST"],
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessEnvelope,
    summary="Add a sensor.",
)
async def create_sensor(
    request: Request,
    response: Response,
    sensors_info: SensorsInfo = Depends(get_sensors_info),
) -> SuccessEnvelope:
    body = await _read_body(request)
    sensor = _unwrap(sensors_info.add_sensor(body))
    location = f"{request.url.path}/{quote(sensor.id, safe='')}"
    return _created(request, response, sensor, location)


@router.get(
    "/sensors/{sensor_id}",
    response_model=SuccessEnvelope,
    summary="Fetch a single sensor by id.",
)
async def get_sensor(
    request: Request,
    sensor_id: str,
    sensors_info: SensorsInfo = Depends(get_sensors_info),
) -> SuccessEnvelope:
    results = _unwrap(sensors_info.find_sensors({"id": sensor_id}))
    return _single(request, results, "sensor", sensor_id)


@router.get(
    "/sensors",
    response_model=PagedEnvelope,
    summary="Find sensors, one page at a time.",
)
async def find_sensors(
    request: Request,
    sensors_info: SensorsInfo = Depends(get_sensors_info),
) -> PagedEnvelope:
    path = request.url.path
    return _paged(
        request,
        sensors_info.find_sensors,
        lambda entity: f"{path}/{quote(entity.id, safe='')}",
    )


@router.api_route(
    "/sensor-readings",
    methods=["PUT", "POST"],
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessEnvelope,
    summary="Add a sensor-reading.",
)
async def create_sensor_reading(
    request: Request,
    response: Response,
    sensors_info: SensorsInfo = Depends(get_sensors_info),
) -> SuccessEnvelope:
    body = await _read_body(request)
    reading = _unwrap(sensors_info.add_sensor_reading(body))
    return _created(request, response, reading, _reading_href(request.url.path, reading))


@router.get(
    "/sensor-readings",
    response_model=PagedEnvelope,
    summary="Find readings of one sensor, one page at a time.",
)
async def find_sensor_readings(
    request: Request,
    sensors_info: SensorsInfo = Depends(get_sensors_info),
) -> PagedEnvelope:
    path = request.url.path
    return _paged(
        request,
        sensors_info.find_sensor_readings,
        lambda entity: _reading_href(path, entity),
    )


@router.delete(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Remove all sensor-types, sensors and readings.",
)
async def clear_sensors_info(
    sensors_info: SensorsInfo = Depends(get_sensors_info),
) -> Response:
    _unwrap(sensors_info.clear())
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@service_router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@service_router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status and /ui for the browser client."}
