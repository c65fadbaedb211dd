import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.jwt import create_access_token, create_refresh_token, decode_token
from src.core.auth.models import User, UserRole
from src.core.auth.schemas import OperatorUpdate
from src.core.auth.service import AuthService
from src.core.exceptions import AuthenticationError, DuplicateError, ValidationError

PASSWORD = "Storeroom42"


@pytest.fixture
def create_operator(db_session: AsyncSession):
    async def _create(
        email: str = "clerk@acmeassets.com",
        role: UserRole = UserRole.ADMIN,
        full_name: str = "Store Clerk",
    ) -> User:
        user = await AuthService(db_session).create_user(
            email=email, password=PASSWORD, full_name=full_name, role=role
        )
        await db_session.commit()
        return user

    return _create


class TestTokens:
    def test_access_token_carries_role(self):
        claims = decode_token(create_access_token(7, "Admin"))
        assert claims["sub"] == "7"
        assert claims["role"] == "Admin"

    def test_refresh_token_is_not_an_access_token(self):
        with pytest.raises(AuthenticationError):
            decode_token(create_refresh_token(7), token_type="access")

    def test_garbage_token_rejected(self):
        with pytest.raises(AuthenticationError):
            decode_token("not-a-jwt")


class TestAuthService:
    async def test_create_user_hashes_password_and_lowercases_email(
        self, db_session: AsyncSession
    ):
        user = await AuthService(db_session).create_user(
            email="Clerk@AcmeAssets.com",
            password=PASSWORD,
            full_name="Store Clerk",
            role=UserRole.ADMIN,
        )

        assert user.email == "clerk@acmeassets.com"
        assert user.role == "Admin"
        assert user.password_hash != PASSWORD
        assert user.can_login is True
        assert user.is_manager is True

    async def test_duplicate_email(self, create_operator, db_session: AsyncSession):
        await create_operator()
        with pytest.raises(DuplicateError):
            await AuthService(db_session).create_user(
                email="clerk@acmeassets.com",
                password=PASSWORD,
                full_name="Someone Else",
                role=UserRole.USER,
            )

    async def test_authenticate_stamps_last_login(
        self, create_operator, db_session: AsyncSession
    ):
        await create_operator()

        user, access_token, refresh_token = await AuthService(db_session).authenticate(
            "clerk@acmeassets.com", PASSWORD
        )

        assert user.last_login_at is not None
        assert decode_token(access_token)["sub"] == str(user.id)
        assert decode_token(refresh_token, token_type="refresh")["sub"] == str(user.id)

    async def test_wrong_password(self, create_operator, db_session: AsyncSession):
        await create_operator()
        with pytest.raises(AuthenticationError, match="Invalid email or password"):
            await AuthService(db_session).authenticate("clerk@acmeassets.com", "wrong-password")

    async def test_deactivated_operator_cannot_login(
        self, create_operator, db_session: AsyncSession
    ):
        user = await create_operator()
        user.is_active = False
        await db_session.flush()

        with pytest.raises(AuthenticationError, match="deactivated"):
            await AuthService(db_session).authenticate("clerk@acmeassets.com", PASSWORD)

    async def test_update_user_records_changes(
        self, create_operator, super_admin: User, db_session: AsyncSession
    ):
        user = await create_operator(role=UserRole.USER)

        updated = await AuthService(db_session).update_user(
            user.id, OperatorUpdate(role=UserRole.ADMIN), updated_by=super_admin
        )

        assert updated.role == "Admin"

    async def test_cannot_deactivate_self(self, super_admin: User, db_session: AsyncSession):
        with pytest.raises(ValidationError):
            await AuthService(db_session).update_user(
                super_admin.id, OperatorUpdate(is_active=False), updated_by=super_admin
            )

    async def test_change_password_requires_current(
        self, create_operator, db_session: AsyncSession
    ):
        user = await create_operator()
        service = AuthService(db_session)

        with pytest.raises(ValidationError):
            await service.change_password(user, "wrong-password", "NewStoreroom42")

        await service.change_password(user, PASSWORD, "NewStoreroom42")
        authenticated, _, _ = await service.authenticate("clerk@acmeassets.com", "NewStoreroom42")
        assert authenticated.id == user.id


class TestAuthEndpoints:
    async def _login(self, client: AsyncClient, email: str = "clerk@acmeassets.com") -> dict:
        response = await client.post(
            "/api/v1/auth/login", json={"email": email, "password": PASSWORD}
        )
        assert response.status_code == 200
        return response.json()["data"]

    async def test_login_and_me(self, client: AsyncClient, create_operator):
        await create_operator()

        data = await self._login(client)
        assert data["user"]["role"] == "Admin"

        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["email"] == "clerk@acmeassets.com"

    async def test_login_unknown_email(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": "nobody@acmeassets.com", "password": PASSWORD},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "AuthenticationError"

    async def test_refresh_issues_new_pair(self, client: AsyncClient, create_operator):
        await create_operator()
        data = await self._login(client)

        response = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": data["refresh_token"]}
        )

        assert response.status_code == 200
        assert decode_token(response.json()["data"]["access_token"])["role"] == "Admin"

    async def test_access_token_cannot_refresh(self, client: AsyncClient, create_operator):
        await create_operator()
        data = await self._login(client)

        response = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": data["access_token"]}
        )
        assert response.status_code == 401

    @pytest.mark.parametrize(
        "header", [None, "Token abc", "Bearer ", "Bearer not-a-jwt"]
    )
    async def test_me_rejects_bad_headers(self, client: AsyncClient, header: str | None):
        headers = {"Authorization": header} if header is not None else {}
        response = await client.get("/api/v1/auth/me", headers=headers)
        assert response.status_code == 401

    async def test_super_admin_creates_operator(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/v1/auth/operators",
            json={
                "email": "viewer@acmeassets.com",
                "full_name": "Read Only",
                "role": "User",
                "password": PASSWORD,
            },
            headers=auth_headers,
        )
        assert response.status_code == 201
        assert response.json()["data"]["role"] == "User"

        response = await client.get(
            "/api/v1/auth/operators", params={"role": "User"}, headers=auth_headers
        )
        assert response.json()["data"]["total"] == 1

    async def test_short_password_rejected(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/v1/auth/operators",
            json={"email": "viewer@acmeassets.com", "full_name": "Read Only", "password": "123"},
            headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_admin_cannot_manage_operators(self, client: AsyncClient, create_operator):
        await create_operator(role=UserRole.ADMIN)
        token = (await self._login(client))["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        listed = await client.get("/api/v1/auth/operators", headers=headers)
        created = await client.post(
            "/api/v1/auth/operators",
            json={"email": "x@acmeassets.com", "full_name": "X Person", "password": PASSWORD},
            headers=headers,
        )

        assert listed.status_code == 200
        assert created.status_code == 403

    async def test_deactivated_operator_token_rejected(
        self, client: AsyncClient, auth_headers: dict, create_operator
    ):
        user = await create_operator(role=UserRole.USER)
        user_id = user.id
        token = create_access_token(user_id, "User")

        response = await client.patch(
            f"/api/v1/auth/operators/{user_id}", json={"is_active": False}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["is_active"] is False

        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
