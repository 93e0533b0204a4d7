"""Integration tests for appointments and the calendar."""
import pytest


@pytest.fixture
def booking():
    return {
        "patient_id": "p1",
        "doctor_id": "d1",
        "date": "2024-07-10",
        "start_time": "09:00",
        "end_time": "09:30",
        "reason": "Annual check-up",
    }


@pytest.fixture
def appointment_id(client, admin_headers, booking):
    response = client.post("/api/v1/appointments", json=booking, headers=admin_headers)
    assert response.status_code == 201
    return response.json()["record"]["id"]


def test_create_appointment(client, admin_headers, appointment_id):
    response = client.get("/api/v1/appointments", params={"today": "2024-07-11"}, headers=admin_headers)

    assert response.status_code == 200
    [view] = response.json()
    assert view["appointment"]["id"] == appointment_id
    assert view["patient"]["name"] == "Ahmed Mahmoud"
    assert view["free_return_eligible"] is False


def test_blank_field_returns_field_errors(client, admin_headers, booking):
    response = client.post("/api/v1/appointments", json={**booking, "reason": ""}, headers=admin_headers)

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["errors"] == [{"field": "reason", "message": "reason is required", "code": "required"}]
    assert client.get("/api/v1/appointments", headers=admin_headers).json() == []


def test_malformed_body_is_422(client, admin_headers):
    response = client.post("/api/v1/appointments", json={"patient_id": ["p1"]}, headers=admin_headers)

    assert response.status_code == 422
    assert response.json()["code"] == "REQUEST_VALIDATION_ERROR"


def test_status_flow(client, admin_headers, appointment_id):
    url = f"/api/v1/appointments/{appointment_id}/status"

    assert client.patch(url, json={"status": "Waiting"}, headers=admin_headers).status_code == 200
    assert client.patch(url, json={"status": "Completed"}, headers=admin_headers).status_code == 200

    response = client.patch(url, json={"status": "Scheduled"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["errors"][0]["code"] == "transition"

    listed = client.get("/api/v1/appointments", params={"today": "2024-07-17"}, headers=admin_headers).json()
    assert listed[0]["free_return_eligible"] is True


def test_cancel_keeps_appointment(client, admin_headers, appointment_id):
    response = client.post(f"/api/v1/appointments/{appointment_id}/cancel", headers=admin_headers)

    assert response.status_code == 200
    listed = client.get("/api/v1/appointments", params={"status": "Canceled"}, headers=admin_headers).json()
    assert [v["appointment"]["id"] for v in listed] == [appointment_id]


def test_reschedule(client, admin_headers, appointment_id):
    response = client.patch(
        f"/api/v1/appointments/{appointment_id}/reschedule",
        json={"date": "2024-07-11", "start_time": "13:00", "end_time": "13:45"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    [view] = client.get("/api/v1/appointments", params={"day": "2024-07-11"}, headers=admin_headers).json()
    assert view["appointment"]["start_time"] == "13:00"


def test_delete_then_not_found(client, admin_headers, appointment_id):
    assert client.delete(f"/api/v1/appointments/{appointment_id}", headers=admin_headers).status_code == 200

    response = client.delete(f"/api/v1/appointments/{appointment_id}", headers=admin_headers)
    assert response.status_code == 404
    assert client.get(f"/api/v1/appointments/{appointment_id}/conflicts", headers=admin_headers).status_code == 404


def test_doctor_cannot_delete(client, clinic, login, appointment_id):
    clinic.store.set("users", "ben@clinicflow.com", {"name": "Dr. Ben Hanson", "role": "Doctor"})
    headers = login("ben@clinicflow.com")

    response = client.delete(f"/api/v1/appointments/{appointment_id}", headers=headers)

    assert response.status_code == 403
    assert response.json()["code"] == "PERMISSION_DENIED"


def test_conflicts(client, admin_headers, booking, appointment_id):
    overlapping = client.post(
        "/api/v1/appointments", json={**booking, "patient_id": "p2", "start_time": "09:15", "end_time": "09:45"},
        headers=admin_headers,
    ).json()["record"]["id"]

    response = client.get(f"/api/v1/appointments/{appointment_id}/conflicts", headers=admin_headers)

    assert [a["id"] for a in response.json()] == [overlapping]


def test_calendar_week(client, admin_headers, appointment_id):
    response = client.get("/api/v1/calendar/week", params={"anchor": "2024-07-12"}, headers=admin_headers)

    assert response.status_code == 200
    week = response.json()
    assert week["week_start"] == "2024-07-08"
    assert week["week_end"] == "2024-07-14"
    assert week["previous_anchor"] == "2024-07-05"
    assert week["hours"][0] == "08:00"
    assert len(week["days"]) == 7
    wednesday = week["days"][2]
    assert wednesday["date"] == "2024-07-10"
    [item] = wednesday["items"]
    assert item["top_percent"] == pytest.approx(8.333, abs=0.01)
    assert item["height_percent"] == pytest.approx(4.1667, abs=0.01)
