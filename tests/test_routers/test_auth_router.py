"""
Tests for Auth Router
Tests for /api/auth/* endpoints

Test Cases:
- TC-ROUTER-01: register returns 201, duplicate email returns 409
- TC-ROUTER-02: login without 2FA returns a session
- TC-ROUTER-03: login with 2FA enabled asks for a second factor
- TC-ROUTER-04: otp/generate returns base32 and otpauth_url
- TC-ROUTER-05: otp/verify enables 2FA, bad code returns 401 fail envelope
- TC-ROUTER-06: otp/validate issues a session for a valid code
- TC-ROUTER-07: otp/disable keeps the secret; 404/409 error mapping
- TC-ROUTER-08: unknown routes get the fail envelope
"""

import pytest
from fastapi.testclient import TestClient

from otpgate.main import app
from otpgate.services import base32_codec
from otpgate.services.auth_coordinator import get_auth_coordinator

PASSWORD = "s3cret-password"
GENERIC_CODE_MESSAGE = "Token is invalid or user doesn't exist"


@pytest.fixture
def client(coordinator):
    """Test client wired to an isolated coordinator."""
    app.dependency_overrides[get_auth_coordinator] = lambda: coordinator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register_and_login(client, email="grace@example.com"):
    response = client.post(
        "/api/auth/register",
        json={"name": "Grace", "email": email, "password": PASSWORD},
    )
    assert response.status_code == 201

    login = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert login.status_code == 200
    return login.json()["user"]["id"]


def current_code(coordinator, base32: str) -> str:
    params = coordinator.login_params
    step = coordinator.engine.time_step_index(coordinator.clock(), params)
    return coordinator.engine.compute_code(base32_codec.decode(base32), step, params)


def enable_2fa(client, coordinator, user_id):
    generated = client.post("/api/auth/otp/generate", json={"user_id": user_id}).json()
    response = client.post(
        "/api/auth/otp/verify",
        json={"user_id": user_id, "token": current_code(coordinator, generated["base32"])},
    )
    assert response.status_code == 200
    return generated["base32"]


class TestRegisterAndLogin:
    """Tests for /api/auth/register and /api/auth/login."""

    def test_tc_router_01_register(self, client):
        """TC-ROUTER-01: Registration and duplicate email."""
        body = {"name": "Grace", "email": "grace@example.com", "password": PASSWORD}

        created = client.post("/api/auth/register", json=body)
        duplicate = client.post("/api/auth/register", json=body)

        assert created.status_code == 201
        assert created.json()["status"] == "success"
        assert duplicate.status_code == 409

    def test_register_validates_body(self, client):
        response = client.post("/api/auth/register", json={"email": "x@example.com"})

        assert response.status_code == 422

    def test_tc_router_02_login_without_2fa(self, client, coordinator):
        """TC-ROUTER-02: Password-only accounts get a session straight away."""
        client.post(
            "/api/auth/register",
            json={"name": "Grace", "email": "grace@example.com", "password": PASSWORD},
        )

        response = client.post(
            "/api/auth/login", json={"email": "grace@example.com", "password": PASSWORD}
        )
        data = response.json()

        assert response.status_code == 200
        assert data["requires_second_factor"] is False
        assert data["user"]["otp_enabled"] is False
        assert "otp_secret" not in data["user"]
        assert coordinator.session_issuer.read(data["session"])["sub"] == data["user"]["id"]

    def test_login_wrong_password(self, client):
        register_and_login(client)

        response = client.post(
            "/api/auth/login", json={"email": "grace@example.com", "password": "nope"}
        )

        assert response.status_code == 401
        assert response.json() == {"status": "fail", "message": "Invalid email or password"}

    def test_tc_router_03_login_with_2fa_requires_code(self, client, coordinator):
        """TC-ROUTER-03: No session until the second factor is validated."""
        user_id = register_and_login(client)
        enable_2fa(client, coordinator, user_id)

        response = client.post(
            "/api/auth/login", json={"email": "grace@example.com", "password": PASSWORD}
        )
        data = response.json()

        assert data["requires_second_factor"] is True
        assert data["session"] is None
        assert data["user"]["otp_enabled"] is True


class TestOTPEndpoints:
    """Tests for /api/auth/otp/*."""

    def test_tc_router_04_generate(self, client):
        """TC-ROUTER-04: Provisioning data for the authenticator app."""
        user_id = register_and_login(client)

        response = client.post("/api/auth/otp/generate", json={"user_id": user_id})
        data = response.json()

        assert response.status_code == 200
        assert len(base32_codec.decode(data["base32"])) == 20
        assert data["otpauth_url"].startswith("otpauth://totp/OTP%20Gate:grace@example.com?")
        assert f"secret={data['base32']}" in data["otpauth_url"]

    def test_generate_unknown_user(self, client):
        response = client.post("/api/auth/otp/generate", json={"user_id": "missing"})

        assert response.status_code == 404
        assert response.json() == {"detail": "User not found"}

    def test_tc_router_05_verify(self, client, coordinator):
        """TC-ROUTER-05: First valid code enables two-factor."""
        user_id = register_and_login(client)
        base32 = client.post("/api/auth/otp/generate", json={"user_id": user_id}).json()["base32"]

        response = client.post(
            "/api/auth/otp/verify",
            json={"user_id": user_id, "token": current_code(coordinator, base32)},
        )
        data = response.json()

        assert response.status_code == 200
        assert data["otp_verified"] is True
        assert data["user"]["otp_status"] == "enabled"

    @pytest.mark.parametrize("user_id", ["missing", None])
    def test_verify_failures_share_one_message(self, client, user_id):
        real_user = register_and_login(client)

        response = client.post(
            "/api/auth/otp/verify",
            json={"user_id": user_id or real_user, "token": "12345"},
        )

        assert response.status_code == 401
        assert response.json() == {"status": "fail", "message": GENERIC_CODE_MESSAGE}

    def test_tc_router_06_validate(self, client, coordinator):
        """TC-ROUTER-06: Valid login code yields a session."""
        user_id = register_and_login(client)
        base32 = enable_2fa(client, coordinator, user_id)

        response = client.post(
            "/api/auth/otp/validate",
            json={"user_id": user_id, "token": current_code(coordinator, base32)},
        )
        data = response.json()

        assert response.status_code == 200
        assert data["otp_valid"] is True
        assert coordinator.session_issuer.read(data["session"])["sub"] == user_id

    def test_validate_bad_code(self, client, coordinator):
        user_id = register_and_login(client)
        enable_2fa(client, coordinator, user_id)

        response = client.post(
            "/api/auth/otp/validate", json={"user_id": user_id, "token": "abcdef"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == GENERIC_CODE_MESSAGE

    def test_tc_router_07_disable(self, client, coordinator):
        """TC-ROUTER-07: Disable turns off the login challenge."""
        user_id = register_and_login(client)
        enable_2fa(client, coordinator, user_id)

        response = client.post("/api/auth/otp/disable", json={"user_id": user_id})
        login = client.post(
            "/api/auth/login", json={"email": "grace@example.com", "password": PASSWORD}
        )

        assert response.status_code == 200
        assert response.json()["user"]["otp_status"] == "disabled"
        assert login.json()["requires_second_factor"] is False

    def test_disable_before_setup_conflicts(self, client):
        user_id = register_and_login(client)

        response = client.post("/api/auth/otp/disable", json={"user_id": user_id})

        assert response.status_code == 409

    def test_disable_unknown_user(self, client):
        response = client.post("/api/auth/otp/disable", json={"user_id": "missing"})

        assert response.status_code == 404

    def test_disable_with_code_policy(self, client, coordinator):
        coordinator.settings.disable_requires_code = True
        user_id = register_and_login(client)
        base32 = enable_2fa(client, coordinator, user_id)

        refused = client.post("/api/auth/otp/disable", json={"user_id": user_id})
        accepted = client.post(
            "/api/auth/otp/disable",
            json={"user_id": user_id, "token": current_code(coordinator, base32)},
        )

        assert refused.status_code == 401
        assert accepted.status_code == 200


class TestAppErrors:
    """Application-level error envelopes."""

    def test_tc_router_08_unknown_route(self, client):
        """TC-ROUTER-08: Unknown routes use the fail envelope."""
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        assert response.json() == {
            "status": "fail",
            "message": "Route: /api/nothing-here not found",
        }

    def test_unhandled_error_returns_500(self, coordinator):
        async def explode(*args, **kwargs):
            raise RuntimeError("store offline")

        coordinator.login = explode
        app.dependency_overrides[get_auth_coordinator] = lambda: coordinator
        try:
            with TestClient(app, raise_server_exceptions=False) as client:
                response = client.post(
                    "/api/auth/login", json={"email": "a@example.com", "password": "x"}
                )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json()["status"] == "error"
