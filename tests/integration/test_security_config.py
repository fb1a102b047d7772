import pytest
from httpx import AsyncClient
from jose import jwt
from pydantic import ValidationError

from hotel_approvals.auth.jwt_handler import decode_access_token
from hotel_approvals.core.config import Settings, settings
from hotel_approvals.core.security import create_access_token


class TestTokens:
    """Access tokens carry the actor id"""

    def test_round_trip(self):
        """A fresh token decodes to its subject"""
        payload = decode_access_token(create_access_token(42, role="supervisor"))

        assert payload["sub"] == "42"
        assert payload["role"] == "supervisor"
        assert payload["type"] == "access"

    def test_expired_token(self):
        """Expired tokens are refused"""
        token = create_access_token(42, expires_minutes=-1)

        assert decode_access_token(token) is None

    def test_wrong_token_type(self):
        """Only access tokens authenticate"""
        token = jwt.encode({"sub": "42", "type": "refresh", "exp": 4102444800}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

        assert decode_access_token(token) is None

    def test_foreign_signature(self):
        """Tokens signed with another key are refused"""
        token = jwt.encode({"sub": "42", "type": "access", "exp": 4102444800}, "someone-else", algorithm="HS256")

        assert decode_access_token(token) is None


class TestSettings:
    """Workflow configuration"""

    def test_configured_flow(self):
        """Known entity types use their configured role slots"""
        assert settings.flow_for("document") == ["supervisor", "property_hr"]

    def test_default_flow(self):
        """Unknown entity types fall back to the default flow"""
        assert settings.flow_for("parking_permit") == settings.DEFAULT_APPROVAL_FLOW

    def test_production_refuses_localhost(self, monkeypatch):
        """Production cannot point at a local database"""
        monkeypatch.setenv("ENVIRONMENT", "production")

        with pytest.raises(ValidationError):
            Settings(DATABASE_URL="postgresql+asyncpg://u:p@localhost:5432/db")


@pytest.mark.asyncio
class TestAccessLogging:
    """Request logging middleware"""

    async def test_process_time_header(self, client: AsyncClient):
        """Every response reports how long it took"""
        response = await client.get("/health", headers={"X-Request-Id": "abc-123"})

        assert "x-process-time" in response.headers
