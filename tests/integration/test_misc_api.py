"""Integration tests for messaging, notifications, reports and outages."""


def test_messages(client, admin_headers, receptionist_headers):
    sent = client.post("/api/v1/messages", json={"receiver_email": "rita@clinicflow.com", "text": "Hi Rita"},
                       headers=admin_headers)
    assert sent.status_code == 201

    response = client.get("/api/v1/messages/emily.carter@clinicflow.com", headers=receptionist_headers)

    assert [m["text"] for m in response.json()] == ["Hi Rita"]


def test_blank_message(client, admin_headers):
    response = client.post("/api/v1/messages", json={"receiver_email": "rita@clinicflow.com", "text": " "},
                           headers=admin_headers)

    assert response.status_code == 400


def test_notifications_mark_read(client, admin_headers):
    client.post("/api/v1/patients", json={"name": "Omar Said"}, headers=admin_headers)
    [notification] = client.get("/api/v1/notifications", params={"unread_only": True}, headers=admin_headers).json()

    assert notification["type"] == "new_patient"
    assert client.post(f"/api/v1/notifications/{notification['id']}/read", headers=admin_headers).status_code == 200
    assert client.get("/api/v1/notifications", params={"unread_only": True}, headers=admin_headers).json() == []
    assert client.post("/api/v1/notifications/nope/read", headers=admin_headers).status_code == 404


def test_audit_log_admin_only(client, receptionist_headers):
    assert client.get("/api/v1/audit-log", headers=receptionist_headers).status_code == 403


def test_dashboard_stats(client, admin_headers):
    response = client.get("/api/v1/dashboard/stats", headers=admin_headers)

    assert response.json()["total_appointments"] == 0


def test_explain_term(client, admin_headers):
    response = client.post("/api/v1/reports/explain-term", json={"term": "Tachycardia"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"explanation": "A fast heart rate."}


def test_explain_blank_term(client, admin_headers):
    response = client.post("/api/v1/reports/explain-term", json={"term": "  "}, headers=admin_headers)

    assert response.status_code == 422


def test_unparseable_report_is_503(client, admin_headers):
    response = client.post("/api/v1/reports/draft", json={"appointment_notes": "Ear pain"}, headers=admin_headers)

    assert response.status_code == 503
    assert response.json()["code"] == "TEXT_GENERATION_UNAVAILABLE"


def test_store_outage_is_503(client, store, admin_headers):
    store.available = False

    response = client.post("/api/v1/patients", json={"name": "Omar Said"}, headers=admin_headers)

    assert response.status_code == 503
    assert response.json()["code"] == "STORE_UNAVAILABLE"
    titles = [n["title"] for n in client.get("/api/v1/notifications", headers=admin_headers).json()]
    assert "Could not save changes" in titles


def test_dashboard_range_and_upcoming(client, clinic, admin_headers):
    for appointment_id, day, status in [("a1", "2024-07-01", "Completed"), ("a2", "2024-07-29", "Completed"),
                                        ("a3", "2024-08-02", "Scheduled")]:
        clinic.store.set("appointments", appointment_id, {
            "patient_id": "p1", "doctor_id": "d1", "date": day,
            "start_time": "09:00", "end_time": "09:30", "status": status, "reason": "Visit",
        })

    week = client.get("/api/v1/dashboard/stats", params={"range": "7d", "today": "2024-07-31"},
                      headers=admin_headers).json()
    everything = client.get("/api/v1/dashboard/stats", params={"range": "all"}, headers=admin_headers).json()
    upcoming = client.get("/api/v1/dashboard/upcoming", params={"today": "2024-07-31"}, headers=admin_headers)

    assert (week["total_appointments"], week["estimated_revenue"]) == (1, 200.0)
    assert everything["total_appointments"] == 3
    assert [v["appointment"]["id"] for v in upcoming.json()] == ["a3"]


def test_dashboard_unknown_range(client, admin_headers):
    response = client.get("/api/v1/dashboard/stats", params={"range": "1y"}, headers=admin_headers)

    assert response.status_code == 422
