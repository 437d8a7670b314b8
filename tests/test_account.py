"""Tests for password reset, email verification and profile pictures."""

from unittest.mock import patch

import pytest

from src.config import get_settings
from src.models.user import User
from src.services.account_tokens import RESET_PREFIX, VERIFY_PREFIX, hash_token, issue_token
from src.tasks.emails import PASSWORD_RESET, VERIFY_EMAIL, send_account_email

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def token_store(mock_redis):
    """Back the mocked Redis get/set/getdel with a dict."""
    store = {}

    def _set(key, value, ex=None, nx=False):
        if nx and key in store:
            return None
        store[key] = value
        return True

    mock_redis.set.side_effect = _set
    mock_redis.get.side_effect = store.get
    mock_redis.getdel.side_effect = lambda key: store.pop(key, None)
    return store


@pytest.fixture
def sent_emails(monkeypatch):
    """Configure SMTP and capture queued account emails."""
    monkeypatch.setattr(get_settings(), "smtp_host", "smtp.example.com")
    with patch.object(send_account_email, "delay") as mock_delay:
        yield mock_delay


def last_token(sent_emails, kind):
    args = sent_emails.call_args.args
    assert args[0] == kind
    return args[3]


class TestPasswordReset:
    def test_forgot_password_queues_reset_email(
        self, client, auth_headers, token_store, sent_emails
    ):
        response = client.post(
            "/api/v1/auth/forgot-password", json={"email": auth_headers.email}
        )

        assert response.status_code == 200
        kind, email, username, token = sent_emails.call_args.args
        assert (kind, email, username) == (PASSWORD_RESET, auth_headers.email, "testuser")
        assert token_store[f"{RESET_PREFIX}{hash_token(token)}"] == str(auth_headers.user_id)
        # Only the hash is stored
        assert not any(token in key for key in token_store)

    def test_unknown_email_gets_same_response(self, client, auth_headers, sent_emails):
        known = client.post("/api/v1/auth/forgot-password", json={"email": auth_headers.email})
        unknown = client.post("/api/v1/auth/forgot-password", json={"email": "nobody@example.com"})

        assert unknown.status_code == 200
        assert unknown.json() == known.json()
        assert sent_emails.call_count == 1

    def test_no_email_without_smtp(self, client, auth_headers):
        with patch.object(send_account_email, "delay") as mock_delay:
            response = client.post(
                "/api/v1/auth/forgot-password", json={"email": auth_headers.email}
            )

        assert response.status_code == 200
        mock_delay.assert_not_called()

    def test_reset_with_token(self, client, auth_headers, token_store, sent_emails):
        client.post("/api/v1/auth/forgot-password", json={"email": auth_headers.email})
        token = last_token(sent_emails, PASSWORD_RESET)

        validate = client.get("/api/v1/auth/reset-password/validate", params={"token": token})
        assert validate.json() == {"valid": True}

        response = client.post(
            "/api/v1/auth/reset-password",
            json={"token": token, "new_password": "newpass456", "confirm_password": "newpass456"},
        )
        assert response.status_code == 200

        login = client.post(
            "/api/v1/auth/login",
            json={"identifier": auth_headers.username, "password": "newpass456"},
        )
        assert login.status_code == 200

        # Tokens work once
        again = client.post(
            "/api/v1/auth/reset-password",
            json={"token": token, "new_password": "other789", "confirm_password": "other789"},
        )
        assert again.status_code == 400
        assert again.json()["code"] == "INVALID_TOKEN"
        validate = client.get("/api/v1/auth/reset-password/validate", params={"token": token})
        assert validate.json() == {"valid": False}

    def test_passwords_must_match(self, client, auth_headers, token_store):
        token = issue_token(RESET_PREFIX, auth_headers.user_id, 60)

        response = client.post(
            "/api/v1/auth/reset-password",
            json={"token": token, "new_password": "newpass456", "confirm_password": "newpass457"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "PASSWORD_MISMATCH"
        # The token survives a rejected attempt
        assert f"{RESET_PREFIX}{hash_token(token)}" in token_store

    def test_unknown_token(self, client):
        response = client.post(
            "/api/v1/auth/reset-password",
            json={
                "token": "deadbeef",
                "new_password": "newpass456",
                "confirm_password": "newpass456",
            },
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_TOKEN"

    def test_validate_without_token(self, client):
        response = client.get("/api/v1/auth/reset-password/validate")
        assert response.status_code == 200
        assert response.json() == {"valid": False}


class TestEmailVerification:
    def test_register_sends_verification(self, client, token_store, sent_emails):
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "new@example.com", "username": "newbie", "password": "testpass123"},
        )
        assert response.status_code == 201
        assert response.json()["user"]["email_verified"] is False
        headers = {"Authorization": f"Bearer {response.json()['access_token']}"}
        token = last_token(sent_emails, VERIFY_EMAIL)

        verify = client.post("/api/v1/auth/verify-email", json={"token": token})
        assert verify.status_code == 200
        assert verify.json()["already_verified"] is False

        me = client.get("/api/v1/auth/me", headers=headers)
        assert me.json()["email_verified"] is True

        again = client.post("/api/v1/auth/verify-email", json={"token": token})
        assert again.status_code == 400
        assert again.json()["code"] == "INVALID_TOKEN"

    def test_verify_is_idempotent(self, client, db, auth_headers, token_store):
        user = db.query(User).filter(User.id == auth_headers.user_id).one()
        user.email_verified = True
        db.commit()
        token = issue_token(VERIFY_PREFIX, auth_headers.user_id, 60)

        response = client.post("/api/v1/auth/verify-email", json={"token": token})

        assert response.status_code == 200
        assert response.json()["already_verified"] is True

    def test_resend_has_cooldown(self, client, auth_headers, token_store, sent_emails):
        first = client.post("/api/v1/auth/resend-verification", headers=auth_headers)
        assert first.status_code == 200
        last_token(sent_emails, VERIFY_EMAIL)

        second = client.post("/api/v1/auth/resend-verification", headers=auth_headers)
        assert second.status_code == 429
        assert second.json()["code"] == "VERIFY_RESEND_COOLDOWN"
        assert sent_emails.call_count == 1

    def test_resend_when_verified(self, client, db, auth_headers, sent_emails):
        user = db.query(User).filter(User.id == auth_headers.user_id).one()
        user.email_verified = True
        db.commit()

        response = client.post("/api/v1/auth/resend-verification", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "ALREADY_VERIFIED"
        sent_emails.assert_not_called()

    def test_resend_without_smtp(self, client, auth_headers):
        response = client.post("/api/v1/auth/resend-verification", headers=auth_headers)
        assert response.status_code == 503
        assert response.json()["code"] == "EMAIL_UNAVAILABLE"


class TestProfilePicture:
    def upload(self, client, headers, content_type="image/png", data=PNG_BYTES):
        return client.post(
            "/api/v1/users/me/profile-picture",
            headers=headers,
            files={"image": ("me.png", data, content_type)},
        )

    def test_upload(self, client, auth_headers, media_root):
        response = self.upload(client, auth_headers)

        assert response.status_code == 200
        url = response.json()["profile_pic"]
        assert url.startswith(
            f"http://testserver/media/profile-pictures/{auth_headers.user_id}/"
        )
        me = client.get("/api/v1/auth/me", headers=auth_headers)
        assert me.json()["profile_pic"] == url

        stored = list((media_root / "profile-pictures" / str(auth_headers.user_id)).iterdir())
        assert [path.read_bytes() for path in stored] == [PNG_BYTES]

    def test_replacing_removes_old_file(self, client, auth_headers, media_root):
        self.upload(client, auth_headers)
        second = self.upload(client, auth_headers, content_type="image/jpeg").json()["profile_pic"]

        stored = list((media_root / "profile-pictures" / str(auth_headers.user_id)).iterdir())
        assert len(stored) == 1
        assert second.endswith(stored[0].name)
        assert stored[0].suffix == ".jpg"

    def test_invalid_type(self, client, auth_headers):
        response = self.upload(client, auth_headers, content_type="text/plain")
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FILE_TYPE"

    def test_too_large(self, client, auth_headers):
        response = self.upload(client, auth_headers, data=b"\x00" * (5 * 1024 * 1024 + 1))
        assert response.status_code == 400
        assert response.json()["code"] == "FILE_TOO_LARGE"

    def test_delete(self, client, auth_headers, media_root):
        self.upload(client, auth_headers)

        response = client.delete("/api/v1/users/me/profile-picture", headers=auth_headers)

        assert response.status_code == 204
        assert client.get("/api/v1/auth/me", headers=auth_headers).json()["profile_pic"] is None
        assert list((media_root / "profile-pictures" / str(auth_headers.user_id)).iterdir()) == []

        again = client.delete("/api/v1/users/me/profile-picture", headers=auth_headers)
        assert again.status_code == 404
        assert again.json()["code"] == "PICTURE_NOT_FOUND"
