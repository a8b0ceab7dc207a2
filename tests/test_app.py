from __future__ import annotations

import json
from typing import Iterator, List
from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi.testclient import TestClient

from datastore.sensors_store import DuplicatePolicy, SensorsStore
from services.sensors_info import SensorsInfo

BASE = "/sensors-info"


@pytest.fixture
def api_client(serve) -> Iterator[TestClient]:
    with serve(SensorsInfo(SensorsStore())) as client:
        yield client


@pytest.fixture
def seeded_client(api_client, sensor_type_req, sensor_req) -> TestClient:
    assert api_client.put(f"{BASE}/sensor-types", json=sensor_type_req).status_code == 201
    assert api_client.put(f"{BASE}/sensors", json=sensor_req).status_code == 201
    return api_client


def _query(href: str) -> dict:
    return {key: values[0] for key, values in parse_qs(urlsplit(href).query).items()}


def _ids(body: dict) -> List[str]:
    return [item["result"]["id"] for item in body["result"]]


def test_health_endpoints(api_client: TestClient) -> None:
    assert api_client.get("/health").json() == {"status": "ok"}
    assert api_client.get("/").json()["status"] == "ok"


def test_put_sensor_type_returns_created_envelope(api_client: TestClient, sensor_type_req) -> None:
    response = api_client.put(f"{BASE}/sensor-types", json=sensor_type_req)

    assert response.status_code == 201
    assert response.headers["location"] == f"{BASE}/sensor-types/hw123"
    body = response.json()
    assert body["isOk"] is True
    assert body["status"] == 201
    assert body["links"]["self"]["method"] == "PUT"
    assert body["result"]["limits"] == {"min": 10.0, "max": 100.0}
    assert body["result"]["modelNumber"] == "123"


def test_post_is_accepted_for_add(api_client: TestClient, sensor_type_req) -> None:
    response = api_client.post(f"{BASE}/sensor-types", json=sensor_type_req)

    assert response.status_code == 201
    assert response.json()["links"]["self"]["method"] == "POST"


def test_validation_errors_are_400(api_client: TestClient, sensor_type_req) -> None:
    del sensor_type_req["unit"]
    sensor_type_req["min"] = "low"

    response = api_client.put(f"{BASE}/sensor-types", json=sensor_type_req)

    assert response.status_code == 400
    body = response.json()
    assert body["isOk"] is False
    assert body["status"] == 400
    assert [(e["code"], e["field"]) for e in body["errors"]] == [
        ("REQUIRED", "unit"),
        ("BAD_VAL", "min"),
    ]


@pytest.mark.parametrize("content", [b"{oops", b"[1, 2]"])
def test_malformed_body_is_bad_req(api_client: TestClient, content: bytes) -> None:
    response = api_client.put(
        f"{BASE}/sensor-types",
        content=content,
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["code"] == "BAD_REQ"


def test_add_sensor_with_unknown_type_is_400(api_client: TestClient, sensor_req) -> None:
    response = api_client.put(f"{BASE}/sensors", json=sensor_req)

    assert response.status_code == 400
    assert response.json()["errors"][0]["code"] == "BAD_ID"


def test_get_by_id(seeded_client: TestClient) -> None:
    sensor_type = seeded_client.get(f"{BASE}/sensor-types/hw123")
    sensor = seeded_client.get(f"{BASE}/sensors/ln1120")

    assert sensor_type.status_code == 200
    assert sensor_type.json()["result"]["id"] == "hw123"
    assert sensor.json()["result"]["sensorTypeId"] == "hw123"
    assert sensor.json()["links"]["self"]["href"] == f"{BASE}/sensors/ln1120"


def test_get_missing_id_is_404(api_client: TestClient) -> None:
    response = api_client.get(f"{BASE}/sensors/nope")

    assert response.status_code == 404
    error = response.json()["errors"][0]
    assert error["code"] == "NOT_FOUND"
    assert "nope" in error["message"]


def test_find_pages_with_next_and_prev_links(api_client: TestClient, catalog) -> None:
    for req in catalog["sensorTypes"]:
        api_client.put(f"{BASE}/sensor-types", json=req)
    for req in catalog["sensors"]:
        api_client.put(f"{BASE}/sensors", json=req)
    all_ids = sorted(req["id"] for req in catalog["sensors"])

    first = api_client.get(f"{BASE}/sensors", params={"count": 3}).json()

    assert _ids(first) == all_ids[:3]
    assert "prev" not in first["links"]
    assert _query(first["links"]["next"]["href"]) == {"count": "3", "index": "3"}
    assert first["result"][0]["links"]["self"]["href"] == f"{BASE}/sensors/{all_ids[0]}"

    second = api_client.get(first["links"]["next"]["href"]).json()
    assert _ids(second) == all_ids[3:6]
    assert _query(second["links"]["prev"]["href"]) == {"count": "3", "index": "0"}

    last = api_client.get(f"{BASE}/sensors", params={"count": 3, "index": 6}).json()
    assert _ids(last) == all_ids[6:]
    assert "next" not in last["links"]


def test_find_uses_default_page_size(api_client: TestClient, catalog) -> None:
    for req in catalog["sensorTypes"]:
        api_client.put(f"{BASE}/sensor-types", json=req)
    for req in catalog["sensors"]:
        api_client.put(f"{BASE}/sensors", json=req)

    body = api_client.get(f"{BASE}/sensors").json()

    assert len(body["result"]) == 5
    assert "next" in body["links"]


def test_find_filters_by_query(seeded_client: TestClient) -> None:
    found = seeded_client.get(f"{BASE}/sensor-types", params={"manufacturer": "honeywell"}).json()
    missing = seeded_client.get(f"{BASE}/sensor-types", params={"manufacturer": "acme"}).json()

    assert _ids(found) == ["hw123"]
    assert missing["result"] == []


def test_find_bad_paging_value_is_400(api_client: TestClient) -> None:
    response = api_client.get(f"{BASE}/sensor-types", params={"count": "lots"})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "count"


def test_readings_round_trip(seeded_client: TestClient, reading_req) -> None:
    created = seeded_client.put(f"{BASE}/sensor-readings", json=reading_req)

    assert created.status_code == 201
    location = created.headers["location"]
    assert _query(location) == {
        "sensorId": "ln1120",
        "minTimestamp": "1694129048",
        "maxTimestamp": "1694129048",
    }
    found = seeded_client.get(location).json()
    assert [item["result"]["value"] for item in found["result"]] == [12.4]
    assert found["result"][0]["links"]["self"]["href"] == location


def test_readings_search_without_sensor_is_400(api_client: TestClient) -> None:
    response = api_client.get(f"{BASE}/sensor-readings")

    assert response.status_code == 400
    assert response.json()["errors"][0]["code"] == "REQUIRED"


def test_duplicate_rejected_with_409(serve, sensor_type_req) -> None:
    sensors_info = SensorsInfo(SensorsStore(on_duplicate=DuplicatePolicy.REJECT))
    with serve(sensors_info) as client:
        assert client.put(f"{BASE}/sensor-types", json=sensor_type_req).status_code == 201

        response = client.put(f"{BASE}/sensor-types", json=sensor_type_req)

    assert response.status_code == 409
    assert response.json()["errors"][0]["code"] == "EXISTS"


def test_clear_removes_everything(seeded_client: TestClient) -> None:
    response = seeded_client.delete(BASE)

    assert response.status_code == 204
    assert seeded_client.get(f"{BASE}/sensor-types").json()["result"] == []


def test_store_failure_is_500(serve, sensor_type_req) -> None:
    store = SensorsStore()
    with serve(SensorsInfo(store)) as client:
        store.close()
        response = client.put(f"{BASE}/sensor-types", json=sensor_type_req)

    assert response.status_code == 500
    assert response.json()["errors"][0]["code"] == "DB"


def test_unknown_route_is_404_envelope(api_client: TestClient) -> None:
    response = api_client.get(f"{BASE}/widgets")

    assert response.status_code == 404
    body = response.json()
    assert body["isOk"] is False
    assert body["errors"][0]["message"] == f"GET not supported for {BASE}/widgets"


def test_cors_exposes_location(api_client: TestClient, sensor_type_req) -> None:
    response = api_client.put(
        f"{BASE}/sensor-types",
        json=sensor_type_req,
        headers={"Origin": "http://example.com"},
    )

    assert response.headers["access-control-allow-origin"] == "*"
    assert "Location" in response.headers["access-control-expose-headers"]


def test_lifespan_loads_data_file(serve, tmp_path, catalog) -> None:
    path = tmp_path / "data.json"
    path.write_text(json.dumps(catalog))

    with serve(SensorsInfo(SensorsStore()), SENSORS_DATA_PATH=str(path)) as client:
        body = client.get(f"{BASE}/sensor-types", params={"count": 10}).json()

    assert len(body["result"]) == len(catalog["sensorTypes"])


def test_lifespan_fails_on_bad_data_file(serve, tmp_path) -> None:
    path = tmp_path / "data.json"
    path.write_text("[]")

    with pytest.raises(RuntimeError):
        with serve(SensorsInfo(SensorsStore()), SENSORS_DATA_PATH=str(path)):
            pass


def test_api_base_is_configurable(serve, sensor_type_req) -> None:
    with serve(SensorsInfo(SensorsStore()), SENSORS_API_BASE="api/v2/") as client:
        response = client.put("/api/v2/sensor-types", json=sensor_type_req)

    assert response.status_code == 201
    assert response.headers["location"] == "/api/v2/sensor-types/hw123"


@pytest.mark.parametrize("value", [0.00001, 1e16])
def test_json_float_values_are_accepted(seeded_client: TestClient, value: float) -> None:
    response = seeded_client.put(
        f"{BASE}/sensor-readings",
        json={"sensorId": "ln1120", "timestamp": 1694129048, "value": value},
    )

    assert response.status_code == 201
    assert response.json()["result"]["value"] == value


def test_zero_count_returns_empty_page_without_links(seeded_client: TestClient) -> None:
    body = seeded_client.get(f"{BASE}/sensors", params={"count": 0}).json()

    assert body["result"] == []
    assert set(body["links"]) == {"self"}
