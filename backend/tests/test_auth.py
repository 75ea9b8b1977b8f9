"""
Tests for admin authentication endpoints: registration and login.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient):
    """Successful registration returns user data."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "new@example.com",
        "firstName": "Luka",
        "lastName": "Maric",
        "password": "securepassword123",
    })
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "new@example.com"
    assert data["fullName"] == "Luka Maric"
    assert "hashedPassword" not in data  # Never expose password hash


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, admin_user):
    """Duplicate email returns 409."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "admin@example.com",
        "firstName": "Other",
        "lastName": "Admin",
        "password": "securepassword123",
    })
    assert response.status_code == 409
    assert response.json() == {"error": "Email already registered"}


@pytest.mark.asyncio
async def test_register_short_password(client: AsyncClient):
    """Password under 8 characters returns 422."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "short@example.com",
        "firstName": "Short",
        "lastName": "Password",
        "password": "abc",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, admin_user):
    """Valid credentials return JWT token."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "admin@example.com",
        "password": "adminpassword123",
    })
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, admin_user):
    """Wrong password returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "admin@example.com",
        "password": "wrongpassword",
    })
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password"}


@pytest.mark.asyncio
async def test_login_deactivated_account(client: AsyncClient, admin_user, db_session):
    """Right password on a deactivated account returns 403."""
    admin_user.is_active = False
    await db_session.commit()

    response = await client.post("/api/v1/auth/login", json={
        "email": "admin@example.com",
        "password": "adminpassword123",
    })
    assert response.status_code == 403
    assert response.json() == {"error": "Account is deactivated"}


@pytest.mark.asyncio
async def test_login_nonexistent_user(client: AsyncClient):
    """Non-existent user returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "nobody@example.com",
        "password": "anypassword",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_opens_admin_routes(client: AsyncClient, admin_user):
    login = await client.post("/api/v1/auth/login", json={
        "email": "admin@example.com",
        "password": "adminpassword123",
    })
    token = login.json()["access_token"]

    response = await client.get("/api/v1/dashboard/stats", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
