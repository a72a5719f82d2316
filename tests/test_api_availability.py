"""Tests for destination availability endpoints."""

from datetime import date

import pytest

from travelmate.domain.availability import AvailabilityPolicy


@pytest.fixture
def booked(lifecycle):
    """A stay on dest-x from June 10 to June 15 (checkout day free)."""
    lifecycle.create(
        user_id="user-2",
        destination_id="dest-x",
        start_date=date(2024, 6, 10),
        end_date=date(2024, 6, 15),
        number_of_people=2,
        total_price="500.00",
    )


def test_overlapping_range_unavailable(client, booked):
    response = client.get(
        "/destinations/dest-x/availability",
        params={"start_date": "2024-06-12", "end_date": "2024-06-14"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["available"] is False
    assert data["conflicting_reservation_id"] == "res-1"


def test_range_from_checkout_day_available(client, booked):
    response = client.get(
        "/destinations/dest-x/availability",
        params={"start_date": "2024-06-15", "end_date": "2024-06-17"},
    )

    assert response.json()["available"] is True
    assert response.json()["conflicting_reservation_id"] is None


def test_reversed_range_is_400(client):
    response = client.get(
        "/destinations/dest-x/availability",
        params={"start_date": "2024-06-17", "end_date": "2024-06-15"},
    )

    assert response.status_code == 400


def test_reserved_days_for_month(client, booked):
    response = client.get("/destinations/dest-x/reserved-days", params={"month": "2024-06"})

    assert response.status_code == 200
    assert response.json()["reserved_days"] == [
        "2024-06-10",
        "2024-06-11",
        "2024-06-12",
        "2024-06-13",
        "2024-06-14",
    ]


def test_reserved_days_other_month_empty(client, booked):
    response = client.get("/destinations/dest-x/reserved-days", params={"month": "2024-07"})
    assert response.json()["reserved_days"] == []


@pytest.mark.parametrize("month", ["2024", "2024-13", "june"])
def test_malformed_month_is_400(client, month):
    response = client.get("/destinations/dest-x/reserved-days", params={"month": month})
    assert response.status_code == 400


def test_cancelled_stay_follows_policy(client, lifecycle, booked):
    lifecycle.cancel("res-1", "user-2")
    params = {"start_date": "2024-06-12", "end_date": "2024-06-14"}

    assert client.get("/destinations/dest-x/availability", params=params).json()["available"] is False

    lifecycle.policy = AvailabilityPolicy(cancelled_blocks=False)
    assert client.get("/destinations/dest-x/availability", params=params).json()["available"] is True


def test_no_auth_needed(lifecycle):
    from fastapi.testclient import TestClient

    from travelmate.api.deps import get_lifecycle
    from travelmate.api.factory import create_app

    app = create_app()
    app.dependency_overrides[get_lifecycle] = lambda: lifecycle

    response = TestClient(app).get("/destinations/dest-x/reserved-days", params={"month": "2024-06"})

    assert response.status_code == 200
