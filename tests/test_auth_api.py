"""
Auth lifecycle over HTTP: register → verify → login → logout, password reset,
admin account creation.
"""
import pytest

from origin_api.models import AuditLog, OTPRecord, User
from origin_api.schemas.auth import CreateUserRequest
from origin_api.core.exceptions import InvalidOTPException
from origin_api.services import auth_service, email_service, otp_service


REGISTER_BODY = {
    "email": "new.user@example.com",
    "password": "Str0ng-pass",
    "firstName": "New",
    "lastName": "User",
    "phone": "+15550100",
}


def _register(client, **overrides):
    body = {**REGISTER_BODY, **overrides}
    return client.post("/auth/register", json=body)


def _user(db, email):
    db.expire_all()
    return db.query(User).filter_by(email=email).first()


# =============================================================================
# REGISTER + VERIFY
# =============================================================================


class TestRegistration:

    def test_register_creates_unverified_user_and_sends_otp(self, client, db, outbox):
        resp = _register(client)
        assert resp.status_code == 201
        assert resp.json() == {
            "message": "Registration successful. Please check your email for verification.",
            "email": REGISTER_BODY["email"],
        }

        user = _user(db, REGISTER_BODY["email"])
        assert user is not None
        assert user.is_verified is False
        assert user.role == "client"
        assert user.first_name == "New"
        assert user.hashed_password != REGISTER_BODY["password"]
        assert len(outbox.otps_for(REGISTER_BODY["email"], "register")) == 1

    def test_response_never_contains_password_material(self, client):
        body = _register(client).json()
        assert "password" not in str(body)
        assert "hashed" not in str(body)

    def test_duplicate_email_conflicts(self, client, make_user):
        make_user(email=REGISTER_BODY["email"])
        resp = _register(client)
        assert resp.status_code == 409
        assert resp.json()["detail"] == "User with this email already exists"

    def test_mail_failure_does_not_fail_registration(self, client, db, failing_mail):
        resp = _register(client)
        assert resp.status_code == 201
        assert _user(db, REGISTER_BODY["email"]) is not None
        assert db.query(OTPRecord).filter_by(email=REGISTER_BODY["email"]).count() == 1

    def test_short_password_is_rejected(self, client):
        assert _register(client, password="short").status_code == 422


class TestVerifyOtp:

    def test_correct_code_verifies_and_issues_token(self, client, db, outbox):
        _register(client)
        code = outbox.last_otp(REGISTER_BODY["email"])

        resp = client.post("/auth/verify-otp", json={"email": REGISTER_BODY["email"], "otp": code})
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Email verified successfully"
        assert body["access_token"]
        assert body["user"]["email"] == REGISTER_BODY["email"]
        assert body["user"]["is_verified"] is True
        assert "hashed_password" not in body["user"]

        assert _user(db, REGISTER_BODY["email"]).is_verified is True
        assert db.query(OTPRecord).filter_by(email=REGISTER_BODY["email"]).count() == 0

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == REGISTER_BODY["email"]

    def test_wrong_code_fails_and_user_stays_unverified(self, client, db, outbox):
        _register(client)
        code = outbox.last_otp(REGISTER_BODY["email"])
        wrong = "100000" if code != "100000" else "100001"

        resp = client.post("/auth/verify-otp", json={"email": REGISTER_BODY["email"], "otp": wrong})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid or expired OTP"
        assert _user(db, REGISTER_BODY["email"]).is_verified is False

    def test_code_cannot_be_replayed(self, client, outbox):
        _register(client)
        code = outbox.last_otp(REGISTER_BODY["email"])
        payload = {"email": REGISTER_BODY["email"], "otp": code}

        assert client.post("/auth/verify-otp", json=payload).status_code == 200
        replay = client.post("/auth/verify-otp", json=payload)
        assert replay.status_code == 400
        assert replay.json()["detail"] == "Invalid or expired OTP"

    def test_resend_invalidates_previous_code(self, client, outbox, monkeypatch):
        codes = iter(["111111", "222222"])
        monkeypatch.setattr(otp_service, "generate_otp", lambda: next(codes))

        _register(client)
        resp = client.post("/auth/resend-otp", json={"email": REGISTER_BODY["email"]})
        assert resp.status_code == 200
        assert outbox.otps_for(REGISTER_BODY["email"]) == ["111111", "222222"]

        old = client.post("/auth/verify-otp", json={"email": REGISTER_BODY["email"], "otp": "111111"})
        assert old.status_code == 400
        new = client.post("/auth/verify-otp", json={"email": REGISTER_BODY["email"], "otp": "222222"})
        assert new.status_code == 200

    def test_resend_for_unknown_or_verified_email_sends_nothing(self, client, make_user, outbox):
        make_user(email="done@example.com")
        for email in ("done@example.com", "ghost@example.com"):
            resp = client.post("/auth/resend-otp", json={"email": email})
            assert resp.status_code == 200
            assert resp.json()["message"] == "If the account is awaiting verification, a new OTP has been sent."
        assert outbox.sent == []

    def test_code_for_vanished_account_gives_same_error(self, db):
        code = otp_service.store_otp(db, "orphan@example.com")

        with pytest.raises(InvalidOTPException):
            auth_service.verify_otp(db, "orphan@example.com", code)
        assert db.query(OTPRecord).filter_by(email="orphan@example.com").count() == 0


# =============================================================================
# LOGIN
# =============================================================================


class TestLogin:

    def test_verified_user_gets_token_and_role(self, client, make_user):
        make_user(email="ctrl@example.com", role="controller", password="Passw0rd!")
        resp = client.post("/auth/login", json={"email": "ctrl@example.com", "password": "Passw0rd!"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["role"] == "controller"
        assert body["access_token"]
        assert "hashed_password" not in body

    def test_unverified_user_is_told_to_verify(self, client, make_user):
        make_user(email="pending@example.com", password="Passw0rd!", is_verified=False)
        resp = client.post("/auth/login", json={"email": "pending@example.com", "password": "Passw0rd!"})
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Please verify your email before logging in"

    def test_unverified_user_with_wrong_password_gets_generic_error(self, client, make_user):
        make_user(email="pending@example.com", password="Passw0rd!", is_verified=False)
        resp = client.post("/auth/login", json={"email": "pending@example.com", "password": "nope-nope"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid email or password"

    def test_wrong_password_and_unknown_email_are_indistinguishable(self, client, make_user):
        make_user(email="known@example.com", password="Passw0rd!")
        wrong_pw = client.post("/auth/login", json={"email": "known@example.com", "password": "bad-password"})
        unknown = client.post("/auth/login", json={"email": "ghost@example.com", "password": "bad-password"})

        assert wrong_pw.status_code == unknown.status_code == 401
        assert wrong_pw.json() == unknown.json()


# =============================================================================
# LOGOUT / TOKEN GATE
# =============================================================================


class TestLogout:

    def _login(self, client, email="someone@example.com"):
        resp = client.post("/auth/login", json={"email": email, "password": "Passw0rd!"})
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}

    def test_logged_out_token_is_rejected(self, client, make_user):
        make_user(email="someone@example.com", password="Passw0rd!")
        headers = self._login(client)
        assert client.get("/auth/me", headers=headers).status_code == 200

        resp = client.delete("/auth/logout", headers=headers)
        assert resp.status_code == 200
        assert resp.json() == {"message": "Successfully logged out"}

        after = client.get("/auth/me", headers=headers)
        assert after.status_code == 401
        assert after.json()["detail"] == "Token has been revoked"
        assert client.delete("/auth/logout", headers=headers).status_code == 401

    def test_other_tokens_stay_valid_and_fresh_login_works(self, client, make_user):
        make_user(email="someone@example.com", password="Passw0rd!")
        first = self._login(client)
        second = self._login(client)

        client.delete("/auth/logout", headers=first)

        assert client.get("/auth/me", headers=second).status_code == 200
        fresh = self._login(client)
        assert client.get("/auth/me", headers=fresh).status_code == 200

    def test_logout_without_token(self, client):
        assert client.delete("/auth/logout").status_code == 401

    def test_logout_with_garbage_token(self, client):
        resp = client.delete("/auth/logout", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid or expired token"


# =============================================================================
# FORGOT / RESET PASSWORD
# =============================================================================


class TestPasswordReset:

    GENERIC = "If the email exists, an OTP has been sent."

    def test_reply_is_identical_for_known_and_unknown_email(self, client, make_user, outbox):
        make_user(email="known@example.com")
        known = client.post("/auth/forgot-password", json={"email": "known@example.com"})
        unknown = client.post("/auth/forgot-password", json={"email": "ghost@example.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json() == {"message": self.GENERIC}
        assert outbox.otps_for("known@example.com", "forgot_password")
        assert outbox.otps_for("ghost@example.com") == []

    def test_mail_failure_is_surfaced(self, client, make_user, failing_mail):
        make_user(email="known@example.com")
        resp = client.post("/auth/forgot-password", json={"email": "known@example.com"})
        assert resp.status_code == 503
        assert resp.json()["detail"] == "Failed to send password reset email"

    def test_mail_failure_for_unknown_email_still_generic(self, client, failing_mail):
        resp = client.post("/auth/forgot-password", json={"email": "ghost@example.com"})
        assert resp.status_code == 200

    def test_reset_changes_password_and_burns_code(self, client, make_user, outbox):
        make_user(email="known@example.com", password="Old-passw0rd")
        client.post("/auth/forgot-password", json={"email": "known@example.com"})
        code = outbox.last_otp("known@example.com", "forgot_password")

        resp = client.post(
            "/auth/reset-password",
            json={"email": "known@example.com", "otp": code, "newPassword": "New-passw0rd"},
        )
        assert resp.status_code == 200
        assert resp.json() == {"message": "Password updated successfully"}
        assert "access_token" not in resp.json()

        old = client.post("/auth/login", json={"email": "known@example.com", "password": "Old-passw0rd"})
        new = client.post("/auth/login", json={"email": "known@example.com", "password": "New-passw0rd"})
        assert old.status_code == 401
        assert new.status_code == 200

        again = client.post(
            "/auth/reset-password",
            json={"email": "known@example.com", "otp": code, "newPassword": "Another-passw0rd"},
        )
        assert again.status_code == 400

    def test_reset_with_wrong_code(self, client, make_user, outbox):
        make_user(email="known@example.com")
        client.post("/auth/forgot-password", json={"email": "known@example.com"})
        code = outbox.last_otp("known@example.com")
        wrong = "999999" if code != "999999" else "999998"

        resp = client.post(
            "/auth/reset-password",
            json={"email": "known@example.com", "otp": wrong, "newPassword": "New-passw0rd"},
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid or expired OTP"

    def test_reset_verifies_account_that_never_confirmed_registration(self, client, db, outbox):
        _register(client)
        email = REGISTER_BODY["email"]
        client.post("/auth/forgot-password", json={"email": email})
        code = outbox.last_otp(email, "forgot_password")

        resp = client.post(
            "/auth/reset-password", json={"email": email, "otp": code, "newPassword": "New-passw0rd"},
        )
        assert resp.status_code == 200
        assert _user(db, email).is_verified is True

        login = client.post("/auth/login", json={"email": email, "password": "New-passw0rd"})
        assert login.status_code == 200

    def test_failed_reset_mail_keeps_previous_code_live(self, client, outbox, monkeypatch):
        _register(client)
        email = REGISTER_BODY["email"]
        registration_code = outbox.last_otp(email, "register")

        async def broken(*args, **kwargs):
            raise ConnectionError("SMTP server unavailable")

        monkeypatch.setattr(email_service, "send_otp_email", broken)
        assert client.post("/auth/forgot-password", json={"email": email}).status_code == 503

        resp = client.post("/auth/verify-otp", json={"email": email, "otp": registration_code})
        assert resp.status_code == 200


# =============================================================================
# ADMIN CREATE-USER
# =============================================================================


class TestCreateUser:

    BODY = {
        "email": "staff@example.com",
        "password": "Staff-passw0rd",
        "firstName": "Staff",
        "lastName": "Member",
        "role": "controller",
    }

    def test_admin_creates_preverified_user(self, client, db, admin_headers, outbox):
        resp = client.post("/auth/create-user", json=self.BODY, headers=admin_headers)
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "User created successfully"
        assert body["user"]["role"] == "controller"
        assert body["user"]["is_verified"] is True
        assert "hashed_password" not in body["user"]
        assert {"to": "staff@example.com", "kind": "account_created"} in outbox.sent

        login = client.post("/auth/login", json={"email": "staff@example.com", "password": "Staff-passw0rd"})
        assert login.status_code == 200

    def test_mail_failure_does_not_fail_creation(self, client, db, admin_headers, failing_mail):
        resp = client.post("/auth/create-user", json=self.BODY, headers=admin_headers)
        assert resp.status_code == 201
        assert _user(db, "staff@example.com").is_verified is True

    def test_duplicate_email_conflicts(self, client, admin_headers, make_user):
        make_user(email="staff@example.com")
        resp = client.post("/auth/create-user", json=self.BODY, headers=admin_headers)
        assert resp.status_code == 409

    @pytest.mark.parametrize("headers_fixture", ["controller_headers", "client_headers"])
    def test_non_admins_are_forbidden(self, client, request, headers_fixture):
        headers = request.getfixturevalue(headers_fixture)
        resp = client.post("/auth/create-user", json=self.BODY, headers=headers)
        assert resp.status_code == 403

    def test_requires_token(self, client):
        assert client.post("/auth/create-user", json=self.BODY).status_code == 401

    def test_creation_is_audited(self, client, db, admin, admin_headers):
        resp = client.post("/auth/create-user", json=self.BODY, headers=admin_headers)

        entry = db.query(AuditLog).filter_by(action="CREATE_USER").one()
        assert entry.admin_id == admin.id
        assert entry.target_id == str(resp.json()["user"]["id"])
        assert entry.details == {"email": "staff@example.com", "role": "controller"}


class TestCurrentUser:

    def test_me_returns_token_owner(self, client, controller, controller_headers):
        resp = client.get("/auth/me", headers=controller_headers)
        assert resp.status_code == 200
        assert resp.json()["email"] == controller.email
        assert resp.json()["role"] == "controller"

    def test_me_requires_token(self, client):
        assert client.get("/auth/me").status_code == 401


class TestInitialAdmin:

    def test_bootstrap_creates_verified_admin_once(self, db):
        created = auth_service.ensure_initial_admin(db, "root@origin.test", "Root-passw0rd")
        assert created.role == "admin"
        assert created.is_verified is True

        assert auth_service.ensure_initial_admin(db, "root@origin.test", "other") is None
        assert db.query(User).filter_by(email="root@origin.test").count() == 1


class TestCreateUserService:

    def test_creation_writes_audit_entry(self, db, admin):
        payload = CreateUserRequest.model_validate(TestCreateUser.BODY)

        user = auth_service.create_user(db, payload, actor_id=admin.id)

        entry = db.query(AuditLog).filter_by(action="CREATE_USER").one()
        assert entry.admin_id == admin.id
        assert entry.target_id == str(user.id)
