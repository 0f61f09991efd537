from unittest.mock import patch

import pytest

import create_admin
from create_admin import create_or_promote_admin
from models.user import User
from security.password import verify_password


class TestCreateAdmin:
    def test_creates_admin(self, db_session_override):
        user, created = create_or_promote_admin(db_session_override, "Boss@Example.com", "StrongPass123")

        assert created is True
        assert user.email == "boss@example.com"
        assert user.is_admin is True
        assert verify_password("StrongPass123", user.password_hash)

    def test_promotes_existing_user_and_keeps_password(self, db_session_override, test_user):
        old_hash = test_user.password_hash

        user, created = create_or_promote_admin(db_session_override, "test@example.com")

        assert created is False
        assert user.id == test_user.id
        assert user.is_admin is True
        assert user.password_hash == old_hash

    def test_promote_can_reset_password(self, db_session_override, test_user):
        user, _ = create_or_promote_admin(db_session_override, "test@example.com", "NewPass12345")
        assert verify_password("NewPass12345", user.password_hash)

    def test_new_admin_needs_password(self, db_session_override):
        with pytest.raises(ValueError):
            create_or_promote_admin(db_session_override, "boss@example.com")
        assert db_session_override.query(User).count() == 0

    def test_short_password_rejected(self, db_session_override):
        with pytest.raises(ValueError):
            create_or_promote_admin(db_session_override, "boss@example.com", "short")

    def test_created_admin_reaches_admin_routes(self, client, db_session_override):
        create_or_promote_admin(db_session_override, "boss@example.com", "StrongPass123")
        tokens = client.post("/auth/login", json={"email": "boss@example.com", "password": "StrongPass123"}).json()

        response = client.get("/orders/admin/all", headers={"Authorization": f"Bearer {tokens['access_token']}"})

        assert response.status_code == 200

    def test_main_reads_environment(self, db_session_override, monkeypatch):
        monkeypatch.setenv("ADMIN_EMAIL", "env-admin@example.com")
        monkeypatch.setenv("ADMIN_PASSWORD", "EnvPass12345")

        with patch("core.db.SessionLocal", return_value=db_session_override):
            assert create_admin.main([]) == 0

        user = db_session_override.query(User).filter(User.email == "env-admin@example.com").one()
        assert user.is_admin is True

    def test_main_fails_without_email(self, db_session_override, monkeypatch):
        monkeypatch.delenv("ADMIN_EMAIL", raising=False)
        with patch("core.db.SessionLocal", return_value=db_session_override):
            assert create_admin.main([]) == 1
