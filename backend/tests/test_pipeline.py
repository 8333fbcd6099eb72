"""
Request pipeline tests.

Verifies:
- Bodies carrying markup-injection markers are rejected before any handler
- Write requests on /api must carry a JSON object
- Security headers are present on every response, errors included
- CORS headers only for allow-listed origins
"""

import pytest

from payportal.models import User
from payportal.pipeline import DEFAULT_STAGES, SECURITY_HEADERS


REGISTER = "/api/auth/register"


class TestStageOrder:

    def test_installed_in_order(self, app):
        names = [stage.name for stage in app.extensions["pipeline"]]
        assert names == [
            "screen_markup", "require_json_object", "add_security_headers", "add_cors_headers",
        ]

    def test_default_stages_are_installed(self, app):
        assert app.extensions["pipeline"] == DEFAULT_STAGES


class TestMarkupScreen:

    @pytest.mark.parametrize("name", [
        "<script>alert(1)</script>",
        "javascript:void(0)",
        "x onerror=alert(1)",
        "<IFRAME src=x>",
    ])
    def test_rejected_before_handler(self, client, db_session, name):
        resp = client.post(REGISTER, json={"name": name, "email": "a@b.co", "password": "Abcdef1!"})
        assert resp.status_code == 400
        assert resp.get_json() == {"message": "Potentially malicious input detected"}
        assert db_session.query(User).count() == 0

    def test_plain_text_passes(self, client, db_session):
        resp = client.post(REGISTER, json={"name": "Ann Lee", "email": "a@b.co", "password": "Abcdef1!"})
        assert resp.status_code == 201


class TestJsonObject:

    def test_array_body_rejected(self, client, db_session):
        resp = client.post(REGISTER, json=["Ann Lee"])
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Invalid JSON payload"

    def test_malformed_json_rejected(self, client, db_session):
        resp = client.post(REGISTER, data="{not json", content_type="application/json")
        assert resp.status_code == 400

    def test_form_body_rejected(self, client, db_session):
        resp = client.post(REGISTER, data={"name": "Ann Lee"})
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Content-Type must be application/json"

    def test_empty_body_reaches_handler(self, client, customer_headers):
        resp = client.post("/api/auth/logout", headers=customer_headers)
        assert resp.status_code == 200


class TestSecurityHeaders:

    @pytest.mark.parametrize("path", ["/health", "/api/auth/me", "/api/nowhere"])
    def test_present_on_every_response(self, client, db_session, path):
        resp = client.get(path)
        for header, value in SECURITY_HEADERS.items():
            assert resp.headers[header] == value

    def test_not_found_is_json(self, client, db_session):
        resp = client.get("/api/nowhere")
        assert resp.status_code == 404
        assert resp.get_json() == {"message": "Route not found"}

    def test_method_not_allowed_is_json(self, client, db_session):
        resp = client.delete("/api/auth/login")
        assert resp.status_code == 405
        assert resp.get_json()["message"]


class TestCors:

    def test_allowed_origin_echoed(self, client, db_session):
        resp = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
        assert "Authorization" in resp.headers["Access-Control-Allow-Headers"]

    def test_unknown_origin_gets_nothing(self, client, db_session):
        resp = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers

    def test_no_origin_no_cors(self, client, db_session):
        assert "Access-Control-Allow-Origin" not in client.get("/health").headers
