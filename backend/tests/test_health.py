from conftest import make_term


def test_health_endpoints(client, db_session):
    live = client.get("/api/health/live")
    assert live.status_code == 200
    assert live.json()["status"] == "ok"

    term = make_term(db_session)
    ready = client.get("/api/health/ready")
    assert ready.status_code == 200
    payload = ready.json()
    assert payload["database"]["schema_ok"] is True
    assert payload["schedule"]["active_term_id"] == term.id


def test_security_headers_present(client):
    response = client.get("/api/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
