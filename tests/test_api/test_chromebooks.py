"""API tests for the inventory endpoints and the scan lookup."""
from app.models.chromebook import Chromebook


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_security_headers(client):
    res = client.get("/api/health")
    assert res.headers["X-Content-Type-Options"] == "nosniff"
    assert res.headers["X-Frame-Options"] == "DENY"


def test_list_chromebooks(client):
    res = client.get("/api/chromebooks")
    assert res.status_code == 200
    data = res.json()
    assert data["total"] == 8
    assert [cb["chromebook_id"] for cb in data["items"]][:2] == ["CHR001", "CHR002"]


def test_list_chromebooks_search_and_status(client):
    res = client.get("/api/chromebooks", params={"search": "lenovo"})
    assert {cb["chromebook_id"] for cb in res.json()["items"]} == {"CHR002", "CHR005"}

    res = client.get("/api/chromebooks", params={"status": "under_maintenance"})
    assert [cb["chromebook_id"] for cb in res.json()["items"]] == ["CHR006"]

    assert client.get("/api/chromebooks", params={"status": "stolen"}).status_code == 422


def test_deprovisioned_are_hidden(client, test_session):
    db = test_session()
    db.add(Chromebook(chromebook_id="CHR900", model="Chromebook Old", is_deprovisioned=True))
    db.commit()
    db.close()

    assert client.get("/api/chromebooks").json()["total"] == 8
    assert client.get("/api/chromebooks/summary").json()["total"] == 8
    assert client.get("/api/scan/resolve/CHR900").status_code == 404


def test_get_chromebook(client):
    first = client.get("/api/chromebooks").json()["items"][0]
    res = client.get(f"/api/chromebooks/{first['id']}")
    assert res.status_code == 200
    assert res.json()["chromebook_id"] == first["chromebook_id"]
    assert client.get("/api/chromebooks/99999").status_code == 404


def test_inventory_summary(client):
    res = client.get("/api/chromebooks/summary")
    assert res.status_code == 200
    data = res.json()
    assert data["total"] == 8
    assert data["by_status"] == {
        "available": 4,
        "loaned": 1,
        "fixed": 1,
        "out_of_service": 1,
        "under_maintenance": 1,
    }


def test_resolve_without_audit(client):
    res = client.get("/api/scan/resolve/7")
    assert res.status_code == 200
    data = res.json()
    assert data["normalized"] == "CHR007"
    assert data["chromebook_id"] == "CHR007"
    assert data["location"] is None
    assert data["status"] == "out_of_service"
    assert data["audit_id"] is None
    assert data["audit_status"] is None


def test_resolve_reports_count_status(client):
    audit = client.post("/api/audits", json={"name": "Scan"}).json()
    client.post("/api/audits/active/items", json={"token": "CHR001", "method": "qr_code"})

    counted = client.get("/api/scan/resolve/SN001").json()
    assert counted["audit_id"] == audit["id"]
    assert counted["audit_status"] == "counted"
    assert client.get("/api/scan/resolve/2").json()["audit_status"] == "not_counted"


def test_resolve_unknown(client):
    res = client.get("/api/scan/resolve/NOPE-1")
    assert res.status_code == 404
    assert res.json()["error"] == "not_found"
