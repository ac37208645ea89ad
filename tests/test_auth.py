"""
Tests for authentication and user management.
"""
import logging

from sqlmodel import select

from fieldservice.models import AuditLog, User
from tests.conftest import ADMIN_PASSWORD


class TestAuth:

    def test_login_success(self, client, admin_user):
        response = client.post("/api/auth/login", json={"email": admin_user.email, "password": ADMIN_PASSWORD})
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["user"]["role"] == "ADMIN"

    def test_login_form_data(self, client, admin_user):
        response = client.post("/api/auth/login", data={"username": admin_user.email, "password": ADMIN_PASSWORD})
        assert response.status_code == 200

    def test_login_wrong_password(self, client, admin_user):
        response = client.post("/api/auth/login", json={"email": admin_user.email, "password": "nope"})
        assert response.status_code == 401

    def test_login_missing_fields(self, client):
        response = client.post("/api/auth/login", json={"email": "x@crb.com.br"})
        assert response.status_code == 400

    def test_me(self, client, auth_headers):
        response = client.get("/api/auth/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["email"] == "admin@crb.com.br"

    def test_me_invalid_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    def test_forgot_and_reset_password(self, client, session, admin_user):
        response = client.post("/api/auth/forgot-password", json={"email": admin_user.email})
        assert response.status_code == 200
        session.expire_all()
        token = session.get(User, admin_user.id).reset_token
        assert token

        response = client.post("/api/auth/reset-password", json={"token": token, "password": "nova-senha"})
        assert response.status_code == 200

        session.expire_all()
        assert session.get(User, admin_user.id).reset_token is None
        login = client.post("/api/auth/login", json={"email": admin_user.email, "password": "nova-senha"})
        assert login.status_code == 200

    def test_forgot_password_never_logs_token(self, client, session, admin_user, caplog):
        with caplog.at_level(logging.DEBUG, logger="fieldservice"):
            response = client.post("/api/auth/forgot-password", json={"email": admin_user.email})
        assert response.status_code == 200

        session.expire_all()
        token = session.get(User, admin_user.id).reset_token
        assert token
        assert token not in caplog.text
        assert "reset-password?token" not in caplog.text
        assert admin_user.email in caplog.text

    def test_forgot_password_unknown_email_is_generic(self, client):
        response = client.post("/api/auth/forgot-password", json={"email": "ninguem@crb.com.br"})
        assert response.status_code == 200

    def test_reset_password_bad_token(self, client):
        response = client.post("/api/auth/reset-password", json={"token": "bad", "password": "x"})
        assert response.status_code == 400


class TestUsers:

    def test_create_user(self, client, session, auth_headers):
        response = client.post(
            "/api/users",
            headers=auth_headers,
            json={
                "email": "novo@crb.com.br",
                "name": "Novo",
                "password": "senha123",
                "role": "OPERATOR",
                "assignments": [{"contractGroup": "Zona Sul", "role": "lead"}],
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["version"] == 1
        assert data["assignments"] == [{"contractGroup": "Zona Sul", "role": "lead"}]
        assert "passwordHash" not in data
        assert session.exec(select(AuditLog)).one().action == "CREATE_USER"

    def test_create_duplicate_email(self, client, auth_headers, admin_user):
        response = client.post(
            "/api/users",
            headers=auth_headers,
            json={"email": admin_user.email, "name": "Dup", "password": "x"},
        )
        assert response.status_code == 409

    def test_update_bumps_version(self, client, auth_headers, operator_user):
        response = client.put(f"/api/users/{operator_user.id}", headers=auth_headers, json={"name": "Outro Nome"})
        assert response.status_code == 200
        assert response.json()["name"] == "Outro Nome"
        assert response.json()["version"] == 2

    def test_operator_cannot_list_users(self, client, operator_headers):
        response = client.get("/api/users", headers=operator_headers)
        assert response.status_code == 403

    def test_cannot_delete_self(self, client, auth_headers, admin_user):
        response = client.delete(f"/api/users/{admin_user.id}", headers=auth_headers)
        assert response.status_code == 400
