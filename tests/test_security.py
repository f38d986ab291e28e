"""
tests/test_security.py -- password hashing, tokens, field encryption, durations, RBAC helpers and config checks.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from api import create_app
from api.config import ProductionConfig, TestingConfig, validate_config
from models import storage
from models.base_model import utcnow
from models.permission import Permission
from models.refresh_token import RefreshToken
from models.role import Role
from models.seed import seed_rbac
from models.user import User
from tests.conftest import auth_header
from utils.crypto import CryptoError, FieldCipher, decrypt_field, encrypt_field
from utils.decorators import has_all_permissions, has_any_role, permissions_required
from utils.durations import parse_duration
from utils.security import (
    TokenExpiredError,
    TokenInvalidError,
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)


def _config(cls, **overrides) -> dict:
    values = {key: getattr(cls, key) for key in dir(cls) if key.isupper()}
    values.update(overrides)
    return values


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("Secret@123")
        assert hashed != "Secret@123"
        assert verify_password("Secret@123", hashed)
        assert not verify_password("secret@123", hashed)

    def test_hashes_are_salted(self):
        assert hash_password("Secret@123") != hash_password("Secret@123")

    def test_malformed_hash_is_a_mismatch(self):
        assert verify_password("Secret@123", "not-a-hash") is False


class TestDurations:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("30s", timedelta(seconds=30)),
            ("15m", timedelta(minutes=15)),
            ("12h", timedelta(hours=12)),
            ("7d", timedelta(days=7)),
            ("900", timedelta(seconds=900)),
            (60, timedelta(seconds=60)),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "m15", "1w", "1.5h", "-5m", None])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


class TestAccessTokens:
    def test_round_trip_claims(self, app, user_id):
        with app.app_context():
            user = storage.get_session().get(User, user_id)
            claims = decode_token(create_access_token(user))
        assert claims["sub"] == user_id
        assert claims["email"] == "testuser@test.com"
        assert claims["type"] == "access"
        assert claims["iss"] == app.config["JWT_ISSUER"]
        assert claims["exp"] - claims["iat"] == 15 * 60
        assert claims["jti"]

    def test_wrong_type_is_invalid(self, app, user_tokens):
        with app.app_context():
            with pytest.raises(TokenInvalidError):
                decode_token(user_tokens["accessToken"], expected_type="refresh")

    def test_tampered_token_is_invalid(self, app, user_tokens):
        head, payload, signature = user_tokens["accessToken"].split(".")
        tampered = ".".join([head, payload, signature[::-1]])
        with app.app_context():
            with pytest.raises(TokenInvalidError):
                decode_token(tampered)

    def test_expired_is_reported_separately(self, app, user_id):
        with app.app_context():
            user = storage.get_session().get(User, user_id)
            token = create_access_token(user, now=utcnow() - timedelta(hours=1))
            with pytest.raises(TokenExpiredError):
                decode_token(token)


class TestRbacHelpers:
    def test_has_any_role(self):
        assert has_any_role({"user"}, ["admin", "user"])
        assert not has_any_role({"user"}, ["admin"])
        assert has_any_role(set(), [])

    def test_has_all_permissions(self):
        assert has_all_permissions({"user:read", "user:write"}, ["user:read"])
        assert not has_all_permissions({"user:read"}, ["user:read", "user:write"])
        assert has_all_permissions(set(), [])

    def test_seed_is_idempotent(self, app):
        with app.app_context():
            session = storage.get_session()
            assert seed_rbac(session) == {"permissions": 0, "roles": 0}
            assert session.query(Role).count() == 2
            assert session.query(Permission).count() == 5
            admin = session.query(Role).filter(Role.name == "admin").one()
            assert {p.name for p in admin.permissions} == {
                "user:read",
                "user:write",
                "user:delete",
                "role:read",
                "role:write",
            }


class TestStorage:
    def test_count_and_hard_delete_cascades(self, app, user_id):
        with app.app_context():
            assert storage.count(User) == 1
            assert storage.count(RefreshToken) == 1
            storage.delete(storage.get(User, user_id))
            storage.save()
            assert storage.count(User) == 0
            assert storage.count(RefreshToken) == 0

    def test_get_unknown_model_returns_none(self, app):
        with app.app_context():
            assert storage.get(dict, "anything") is None


class TestPermissionsRequired:
    @pytest.fixture
    def guarded_client(self, app):
        @app.get("/guarded")
        @permissions_required("user:read", "user:delete")
        def guarded():
            return {"ok": True}

        return app.test_client()

    def test_admin_holds_all_permissions(self, guarded_client, admin_tokens):
        resp = guarded_client.get("/guarded", headers=auth_header(admin_tokens["accessToken"]))
        assert resp.status_code == 200

    def test_partial_permissions_forbidden(self, guarded_client, user_tokens):
        resp = guarded_client.get("/guarded", headers=auth_header(user_tokens["accessToken"]))
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "INSUFFICIENT_PERMISSIONS"

    def test_requires_token(self, guarded_client):
        assert guarded_client.get("/guarded").status_code == 401


class TestValidateConfig:
    def test_testing_config_is_valid(self):
        validate_config(_config(TestingConfig))

    def test_production_requires_long_secret(self):
        config = _config(ProductionConfig, JWT_ACCESS_SECRET="short", DATABASE_URL="sqlite://")
        with pytest.raises(RuntimeError, match="JWT_ACCESS_SECRET"):
            validate_config(config)

    def test_production_requires_database_url(self):
        config = _config(ProductionConfig, JWT_ACCESS_SECRET="x" * 40, DATABASE_URL=None)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            validate_config(config)

    def test_bad_duration(self):
        with pytest.raises(RuntimeError, match="JWT_ACCESS_EXPIRES_IN"):
            validate_config(_config(TestingConfig, JWT_ACCESS_EXPIRES_IN="fifteen minutes"))


CRYPTO_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"


class TestFieldCipher:
    def test_encrypt_format_and_round_trip(self):
        cipher = FieldCipher(CRYPTO_KEY)
        token = cipher.encrypt("+1 555 0100")
        iv_hex, tag_hex, ciphertext_hex = token.split(":")
        assert len(iv_hex) == 32
        assert len(tag_hex) == 32
        assert len(ciphertext_hex) == 2 * len("+1 555 0100")
        assert cipher.decrypt(token) == "+1 555 0100"

    def test_fresh_iv_per_value(self):
        cipher = FieldCipher(CRYPTO_KEY)
        assert cipher.encrypt("same") != cipher.encrypt("same")

    def test_tampered_value_rejected(self):
        cipher = FieldCipher(CRYPTO_KEY)
        iv_hex, tag_hex, ciphertext_hex = cipher.encrypt("secret").split(":")
        flipped = format(int(ciphertext_hex[:2], 16) ^ 0x01, "02x") + ciphertext_hex[2:]
        with pytest.raises(CryptoError):
            cipher.decrypt(f"{iv_hex}:{tag_hex}:{flipped}")

    def test_wrong_key_rejected(self):
        token = FieldCipher(CRYPTO_KEY).encrypt("secret")
        with pytest.raises(CryptoError):
            FieldCipher("ff" * 32).decrypt(token)

    def test_malformed_value_rejected(self):
        with pytest.raises(CryptoError):
            FieldCipher(CRYPTO_KEY).decrypt("not-encrypted")

    def test_key_must_be_32_bytes(self):
        with pytest.raises(ValueError):
            FieldCipher("abcd")

    def test_disabled_without_key(self, app):
        with app.app_context():
            assert encrypt_field("plain") == "plain"
            assert decrypt_field("plain") == "plain"

    def test_enabled_with_key(self):
        app = create_app("test", overrides={"CRYPTO_KEY": CRYPTO_KEY, "CRYPTO_IV_LENGTH": 12})
        with app.app_context():
            stored = encrypt_field("plain")
            assert stored != "plain"
            assert len(stored.split(":")[0]) == 24
            assert decrypt_field(stored) == "plain"
            assert encrypt_field(None) is None
        storage.close()

    def test_invalid_key_fails_config_validation(self):
        with pytest.raises(RuntimeError, match="CRYPTO_KEY"):
            validate_config(_config(TestingConfig, CRYPTO_KEY="xyz"))
