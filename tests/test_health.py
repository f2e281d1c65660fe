"""
Health probes, reference data, error envelope and request-timing headers.
"""
from tracker.models import db
from tracker.models.reference import NORTHERN_MINDANAO_PROVINCES, Province, seed_provinces


class TestHealth:
    def test_ready(self, client):
        res = client.get("/api/health/ready")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok"}

    def test_live_reports_database(self, client):
        res = client.get("/api/health/live")
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "ok"
        assert data["checks"]["redis"]["status"] == "skipped"

    def test_request_id_header(self, client):
        res = client.get("/api/health/ready", headers={"X-Request-ID": "abc-123"})
        assert res.headers["X-Request-ID"] == "abc-123"
        assert "X-Request-Duration-Ms" in res.headers


class TestErrorEnvelope:
    def test_unknown_route(self, client):
        res = client.get("/api/nothing-here")
        assert res.status_code == 404
        body = res.get_json()
        assert body["code"] == "ERR_NOT_FOUND"
        assert "error" in body

    def test_method_not_allowed(self, client):
        res = client.put("/api/health/ready")
        assert res.status_code == 405

    def test_non_json_body(self, client, staff, as_user):
        res = client.post("/api/cest-projects", data="title=x", headers=as_user(staff),
                          content_type="text/plain")
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"


class TestProvinces:
    def test_seed_is_idempotent(self):
        assert seed_provinces() == len(NORTHERN_MINDANAO_PROVINCES)
        db.session.commit()
        assert seed_provinces() == 0
        assert Province.query.count() == len(NORTHERN_MINDANAO_PROVINCES)

    def test_list_sorted(self, client):
        db.session.add_all([Province(name="Misamis Oriental"), Province(name="Bukidnon")])
        db.session.commit()
        data = client.get("/api/address/provinces").get_json()
        assert [p["name"] for p in data] == ["Bukidnon", "Misamis Oriental"]

    def test_seed_cli(self, app):
        result = app.test_cli_runner().invoke(args=["seed-provinces"])
        assert result.exit_code == 0
        assert Province.query.count() == len(NORTHERN_MINDANAO_PROVINCES)
