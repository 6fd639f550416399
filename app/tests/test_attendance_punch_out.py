"""
Tests for attendance punch-out endpoint
"""
from datetime import timedelta

from fastapi import status

from conftest import BASE_TIME, auth_headers

PUNCH_IN = "/api/v1/attendance/punch-in"
PUNCH_OUT = "/api/v1/attendance/punch-out"


def _punch_in(client, employee, **payload):
    response = client.post(PUNCH_IN, json=payload, headers=auth_headers(employee))
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()["data"]


def test_punch_out_success(client, db, employee, clock):
    """Punch-out after a full day closes the session as PRESENT."""
    opened = _punch_in(client, employee, lat=12.9716, lng=77.5946)
    clock.now = BASE_TIME + timedelta(hours=9)
    response = client.post(
        PUNCH_OUT,
        json={"lat": 12.9717, "lng": 77.5947, "proof_ref": "s3://selfies/out.jpg"},
        headers=auth_headers(employee),
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["message"] == "Punch-out successful"
    data = body["data"]
    assert data["id"] == opened["id"]
    assert data["punch_out_at"] == "2026-03-02T18:10:00Z"
    assert data["working_hours"] == 9.0
    assert data["status"] == "PRESENT"
    assert data["is_within_geofence"] is True
    assert data["punch_out_lat"] == 12.9717
    assert data["punch_out_proof_ref"] == "s3://selfies/out.jpg"


def test_punch_out_half_day(client, db, employee, clock):
    _punch_in(client, employee)
    clock.now = BASE_TIME + timedelta(hours=6, minutes=15)
    data = client.post(PUNCH_OUT, json={}, headers=auth_headers(employee)).json()["data"]
    assert data["status"] == "HALF_DAY"
    assert data["working_hours"] == 6.25


def test_punch_out_short_session_absent(client, db, employee, clock):
    _punch_in(client, employee)
    clock.now = BASE_TIME + timedelta(hours=3, minutes=30)
    data = client.post(PUNCH_OUT, json={}, headers=auth_headers(employee)).json()["data"]
    assert data["status"] == "ABSENT"
    assert data["working_hours"] == 3.5


def test_punch_out_without_punch_in_rejected(client, db, employee):
    response = client.post(PUNCH_OUT, json={}, headers=auth_headers(employee))
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert "no active session" in response.json()["detail"].lower()


def test_punch_out_too_soon_rejected(client, db, employee, clock):
    _punch_in(client, employee)
    clock.now = BASE_TIME + timedelta(minutes=5)
    response = client.post(PUNCH_OUT, json={}, headers=auth_headers(employee))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "minimum shift duration is 15 minutes" in response.json()["detail"].lower()

    status_body = client.get("/api/v1/attendance/status", headers=auth_headers(employee)).json()
    assert status_body["active"] is True


def test_double_punch_out_rejected(client, db, employee, clock):
    _punch_in(client, employee)
    clock.now = BASE_TIME + timedelta(hours=9)
    assert client.post(PUNCH_OUT, json={}, headers=auth_headers(employee)).status_code == 200
    clock.now = BASE_TIME + timedelta(hours=9, minutes=1)
    response = client.post(PUNCH_OUT, json={}, headers=auth_headers(employee))
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_punch_out_outside_geofence_marks_session(client, db, employee, clock):
    _punch_in(client, employee, lat=12.9716, lng=77.5946)
    clock.now = BASE_TIME + timedelta(hours=9)
    response = client.post(
        PUNCH_OUT,
        json={"lat": 12.9716 + 0.0045, "lng": 77.5946},
        headers=auth_headers(employee),
    )
    assert response.json()["data"]["is_within_geofence"] is False


def test_status_reflects_lifecycle(client, db, employee, clock):
    url = "/api/v1/attendance/status"
    assert client.get(url, headers=auth_headers(employee)).json() == {"success": True, "active": False, "data": None}
    opened = _punch_in(client, employee)
    body = client.get(url, headers=auth_headers(employee)).json()
    assert body["active"] is True
    assert body["data"]["id"] == opened["id"]
    clock.now = BASE_TIME + timedelta(hours=8)
    client.post(PUNCH_OUT, json={}, headers=auth_headers(employee))
    assert client.get(url, headers=auth_headers(employee)).json()["active"] is False
