from typing import Dict

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.security import create_access_token, hash_password
from app.core.enums import Role


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, school: Dict) -> None:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "HEADTEACHER@greenhill.ac.ug", "password": "Passw0rd!"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "HEADTEACHER"

    # Token works for a protected route
    listed = await client.get(
        "/api/v1/academic-years", headers={"Authorization": f"Bearer {data['access_token']}"}
    )
    assert listed.status_code == 200


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, school: Dict) -> None:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "admin@greenhill.ac.ug", "password": "wrong-password"},
    )
    assert response.status_code == 401
    assert response.json()["detail"]["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_inactive_user(client: AsyncClient, db_session: AsyncSession) -> None:
    db_session.add(
        User(
            full_name="Former Secretary",
            email="former.secretary@greenhill.ac.ug",
            password_hash=hash_password("Passw0rd!"),
            role="SECRETARY",
            status="INACTIVE",
        )
    )
    await db_session.commit()

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "former.secretary@greenhill.ac.ug", "password": "Passw0rd!"},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_oauth_form_login(client: AsyncClient, school: Dict) -> None:
    response = await client.post(
        "/api/v1/auth/login-oauth",
        data={"username": "admin@greenhill.ac.ug", "password": "Passw0rd!"},
    )
    assert response.status_code == 200
    assert response.json()["access_token"]


@pytest.mark.asyncio
async def test_protected_route_requires_token(client: AsyncClient, school: Dict) -> None:
    response = await client.get("/api/v1/academic-years")
    assert response.status_code == 401

    response = await client.get("/api/v1/academic-years", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_returns_token_account(client: AsyncClient, school: Dict) -> None:
    response = await client.get("/api/v1/auth/me", headers=school["headers"][Role.PARENT])
    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "PARENT"
    assert data["email"] == "parent@greenhill.ac.ug"


@pytest.mark.asyncio
async def test_expired_token_rejected(client: AsyncClient, db_session: AsyncSession, school: Dict) -> None:
    admin = await db_session.get(User, school["user_ids"][Role.ADMIN])
    token = create_access_token(user_id=admin.id, role=admin.role, expires_minutes=-5)
    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
