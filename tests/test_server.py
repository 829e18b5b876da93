"""Tests for the Flask HTTP API."""
import pytest

from solarplan_optimiser.optimiser.server import app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def request_body(flat_forecast):
    return {
        "date": "2025-01-15",
        "solar_forecast": flat_forecast["solar"],
        "load_forecast": flat_forecast["load"],
        "prices": flat_forecast["prices"],
        "battery": {
            "capacity_kwh": 10,
            "grid_charge_per_segment_kwh": 2,
            "start_charge_kwh": 0,
        },
        "optimiser": "dynamic",
    }


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"


def test_status_lists_optimisers(client):
    data = client.get("/status").get_json()

    assert data["success"] is True
    assert data["optimisers"] == ["graph", "dynamic", "genetic", "do_nothing"]
    assert data["config"]["segments_per_day"] == 48


def test_plan(client, request_body):
    response = client.post("/plan", json=request_body)

    assert response.status_code == 200
    data = response.get_json()
    assert data["success"] is True
    assert data["date"] == "2025-01-15"
    assert len(data["schedule"]) == 48
    assert data["summary"]["total_cost"] == pytest.approx(4.80)
    assert data["optimiser"]["name"] == "dynamic"


def test_plan_requires_a_body(client):
    response = client.post("/plan", json={})

    assert response.status_code == 400
    assert response.get_json() == {"success": False, "error": "No data provided"}


def test_plan_requires_prices(client, request_body):
    del request_body["prices"]
    response = client.post("/plan", json=request_body)

    assert response.status_code == 400
    assert response.get_json()["error"] == "prices required"


def test_unknown_optimiser(client, request_body):
    request_body["optimiser"] = "annealing"
    response = client.post("/plan", json=request_body)

    assert response.status_code == 400
    assert "annealing" in response.get_json()["error"]


def test_short_forecast(client, request_body):
    request_body["solar_forecast"] = request_body["solar_forecast"][:24]
    response = client.post("/plan", json=request_body)

    assert response.status_code == 400
    assert "48 entries" in response.get_json()["error"]


def test_invalid_battery(client, request_body):
    request_body["battery"]["capacity_kwh"] = 0
    response = client.post("/plan", json=request_body)

    assert response.status_code == 400


def test_start_charge_above_capacity(client, request_body):
    request_body["battery"]["start_charge_kwh"] = 12
    response = client.post("/plan", json=request_body)

    assert response.status_code == 400
    assert response.get_json()["success"] is False


def test_missing_price_without_average(client, request_body):
    request_body["prices"][3] = None
    response = client.post("/plan", json=request_body)

    assert response.status_code == 400
    assert "No grid price" in response.get_json()["error"]


def test_missing_price_with_average(client, request_body):
    request_body["prices"][3] = None
    request_body["average_prices"] = [0.20] * 48
    response = client.post("/plan", json=request_body)

    assert response.status_code == 200
    assert response.get_json()["schedule"][3]["price_gbp_per_kwh"] == pytest.approx(0.20)


def test_bad_date(client, request_body):
    request_body["date"] = "15/01/2025"
    response = client.post("/plan", json=request_body)

    assert response.status_code == 400


def test_plan_rejects_non_object_body(client):
    response = client.post("/plan", json=[1, 2])

    assert response.status_code == 400
    assert response.get_json()["error"] == "Request body must be a JSON object"


def test_plan_rejects_non_object_battery(client, request_body):
    request_body["battery"] = 5
    response = client.post("/plan", json=request_body)

    assert response.status_code == 400
    assert response.get_json()["error"] == "battery must be an object"


def test_battery_above_sanity_ceiling(client, request_body):
    request_body["battery"]["capacity_kwh"] = 40
    response = client.post("/plan", json=request_body)

    assert response.status_code == 400
    assert "sanity ceiling" in response.get_json()["error"]
