"""
Unit tests for Supabase token validation and the internal key check
"""
import asyncio
import time
import pytest
from unittest.mock import patch

from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from storefront.core import auth
from storefront.core.config import settings


SECRET = "test-jwt-secret"


def _token(**claims):
    payload = {"sub": "user-1", "email": "shopper@example.com", "role": "authenticated",
               "aud": "authenticated", "exp": int(time.time()) + 3600}
    payload.update(claims)
    return jwt.encode(payload, SECRET, algorithm="HS256")


def _credentials(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.fixture(autouse=True)
def jwt_secret():
    with patch.object(settings, 'SUPABASE_JWT_SECRET', SECRET):
        yield


class TestGetCurrentUser:

    def test_valid_token(self):
        user = asyncio.run(auth.get_current_user(_credentials(_token())))

        assert user.id == "user-1"
        assert user.email == "shopper@example.com"
        assert user.is_admin is False

    def test_missing_credentials(self):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(auth.get_current_user(None))
        assert exc.value.status_code == 401

    def test_expired_token(self):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(auth.get_current_user(_credentials(_token(exp=int(time.time()) - 60))))
        assert exc.value.detail == "Token has expired"

    def test_wrong_signature(self):
        token = jwt.encode({"sub": "user-1", "email": "a@b.com"}, "other-secret", algorithm="HS256")

        with pytest.raises(HTTPException) as exc:
            asyncio.run(auth.get_current_user(_credentials(token)))
        assert exc.value.detail == "Invalid token"

    def test_token_without_email(self):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(auth.get_current_user(_credentials(_token(email=None))))
        assert exc.value.status_code == 401

    def test_unconfigured_secret_is_server_error(self):
        with patch.object(settings, 'SUPABASE_JWT_SECRET', ""):
            with pytest.raises(HTTPException) as exc:
                auth.decode_supabase_token(_token())
        assert exc.value.status_code == 500


class TestAdminChecks:

    @patch('storefront.core.auth.UserRepository')
    def test_admin_role_required(self, mock_users):
        mock_users.return_value.is_admin.return_value = True
        user = auth.TokenUser(id="admin-1", email="admin@example.com")

        admin = asyncio.run(auth.require_admin(user))

        assert admin.is_admin is True

    def test_internal_key(self):
        with patch.object(settings, 'INTERNAL_SERVICE_KEY', 'cron-secret'):
            assert auth.is_internal_key('cron-secret') is True
            assert auth.is_internal_key('nope') is False
            assert auth.is_internal_key(None) is False

    def test_internal_key_disabled_when_unset(self):
        with patch.object(settings, 'INTERNAL_SERVICE_KEY', ''):
            assert auth.is_internal_key('') is False

    def test_internal_caller(self):
        with patch.object(settings, 'INTERNAL_SERVICE_KEY', 'cron-secret'):
            caller = asyncio.run(auth.require_admin_or_internal('cron-secret', None))

        assert caller.is_internal is True
