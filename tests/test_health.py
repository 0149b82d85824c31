"""Health probes and cross-cutting response headers."""

import json
import logging

from surveys.middleware.logging_config import JSONFormatter, ReadableFormatter


class TestHealth:
    def test_ready(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok"}

    def test_live_checks_database(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "ok"

    def test_web_app_exposes_health_too(self, web_client):
        assert web_client.get("/api/v1/health/ready").status_code == 200


class TestResponseHeaders:
    def test_request_id_is_echoed(self, client):
        res = client.get("/api/v1/health/ready", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
        assert "X-Request-Duration-Ms" in res.headers

    def test_security_headers(self, web_client):
        res = web_client.get("/")
        assert res.headers["X-Content-Type-Options"] == "nosniff"
        assert res.headers["X-Frame-Options"] == "DENY"

    def test_unknown_api_route_is_json_404(self, client):
        res = client.get("/api/v1/nope")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


class TestLogFormatting:
    def _record(self, **extra):
        record = logging.LogRecord("surveys.test", logging.INFO, __file__, 1, "Survey %s", ("created",), None)
        for key, val in extra.items():
            setattr(record, key, val)
        return record

    def test_json_formatter_lifts_known_extras(self):
        out = json.loads(JSONFormatter().format(self._record(tenant_id=3, action="CreateSurvey", secret="x")))
        assert out["message"] == "Survey created"
        assert out["tenant_id"] == 3
        assert out["action"] == "CreateSurvey"
        assert "secret" not in out

    def test_readable_formatter_shows_request_id(self):
        line = ReadableFormatter().format(self._record(request_id="rid-1", duration_ms=12.3))
        assert "(rid-1)" in line
        assert "[12ms]" in line
