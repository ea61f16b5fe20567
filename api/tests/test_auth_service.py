# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for JWT handling, password hashing and account registration.
"""

import time
import jwt
import pytest

from middleware.error_handler import AuthenticationException, ConflictException, ValidationException
from models.entities import FireStation, Ngo, Resident
from services.accounts import AccountService
from services.auth import AuthService, TokenValidationError


class TestAuthService:
    """Test token issue and validation."""

    def test_password_hash_roundtrip(self, auth_service):
        hashed = auth_service.hash_password("relief-demo-123")

        assert hashed != "relief-demo-123"
        assert auth_service.verify_password("relief-demo-123", hashed)
        assert not auth_service.verify_password("wrong-password", hashed)

    def test_verify_against_malformed_hash(self, auth_service):
        assert auth_service.verify_password("anything", "not-a-bcrypt-hash") is False

    def test_access_token_claims(self, auth_service, fire_station):
        tokens = auth_service.generate_tokens(fire_station)

        payload = auth_service.validate_token(tokens["access_token"])

        assert payload["sub"] == fire_station.id
        assert payload["role"] == "fire_station"
        assert payload["name"] == "Station-9"
        assert payload["type"] == "access"
        assert tokens["token_type"] == "Bearer"
        assert tokens["expires_in"] == 15 * 60

    def test_refresh_token_is_not_an_access_token(self, auth_service, resident):
        tokens = auth_service.generate_tokens(resident)

        with pytest.raises(TokenValidationError):
            auth_service.validate_token(tokens["refresh_token"], "access")

        assert auth_service.validate_token(tokens["refresh_token"], "refresh")["sub"] == resident.id

    def test_token_signed_by_other_key_rejected(self, auth_service, ngo):
        other = AuthService()  # fresh development key pair
        token = other.generate_tokens(ngo)["access_token"]

        with pytest.raises(TokenValidationError):
            auth_service.validate_token(token)

    def test_expired_token(self, jwt_keys, ngo):
        private_key, public_key = jwt_keys
        service = AuthService(private_key, public_key, access_token_expire_minutes=-1)
        token = service.generate_tokens(ngo)["access_token"]

        with pytest.raises(TokenValidationError, match="expired"):
            service.validate_token(token)

    def test_refresh_access_token(self, auth_service, ngo):
        tokens = auth_service.generate_tokens(ngo)

        refreshed = auth_service.refresh_access_token(tokens["refresh_token"], ngo)

        assert auth_service.validate_token(refreshed["access_token"])["sub"] == ngo.id

    def test_refresh_for_wrong_user(self, auth_service, ngo, second_ngo):
        tokens = auth_service.generate_tokens(ngo)

        with pytest.raises(TokenValidationError):
            auth_service.refresh_access_token(tokens["refresh_token"], second_ngo)

    def test_token_ids_are_unique(self, auth_service, ngo):
        first = auth_service.generate_tokens(ngo)["access_token"]
        second = auth_service.generate_tokens(ngo)["access_token"]

        assert auth_service.extract_token_id(first) != auth_service.extract_token_id(second)
        assert auth_service.extract_token_id(first).startswith(f"{ngo.id}:")

    def test_extract_token_id_malformed(self, auth_service):
        with pytest.raises(TokenValidationError):
            auth_service.extract_token_id("not.a.jwt")

    def test_remaining_lifetime(self, auth_service, ngo):
        token = auth_service.generate_tokens(ngo)["access_token"]

        assert 0 < auth_service.remaining_lifetime(token) <= 15 * 60

    def test_remaining_lifetime_floor(self, jwt_keys):
        private_key, _ = jwt_keys
        token = jwt.encode({"sub": "u", "exp": int(time.time()) - 60}, private_key, algorithm="RS256")

        assert AuthService(*jwt_keys).remaining_lifetime(token) == 1


class TestAccountService:
    """Test registration and login."""

    @pytest.fixture
    def accounts(self, store, auth_service):
        return AccountService(store, auth_service)

    def test_resident_assigned_to_covering_station(self, accounts, store, fire_station, other_fire_station):
        user = accounts.register({
            "username": "Resident150",
            "password": "relief-demo-123",
            "name": "Alex",
            "role": "resident",
            "postalCode": "150"
        })

        assert isinstance(user, Resident)
        assert user.username == "resident150"
        assert user.assigned_fire_station_id == fire_station.id
        assert store.get_user(user.id).password_hash != "relief-demo-123"

    def test_resident_outside_every_range(self, accounts, fire_station):
        user = accounts.register({
            "username": "farout", "password": "relief-demo-123", "name": "Far", "role": "resident",
            "postal_code": "999"
        })

        assert user.assigned_fire_station_id is None

    def test_assignment_is_a_snapshot(self, accounts, store):
        user = accounts.register({
            "username": "early", "password": "relief-demo-123", "name": "Early", "role": "resident",
            "postalCode": "150"
        })
        accounts.register({
            "username": "station9", "password": "relief-demo-123", "name": "Station-9",
            "role": "fire_station", "postalCodeStart": "100", "postalCodeEnd": "200"
        })

        assert store.get_user(user.id).assigned_fire_station_id is None

    def test_register_fire_station(self, accounts):
        user = accounts.register({
            "username": "station3", "password": "relief-demo-123", "name": "Station-3",
            "role": "fire_station", "postalCodeStart": "300", "postalCodeEnd": "399",
            "registrationId": "FS-003"
        })

        assert isinstance(user, FireStation)
        assert user.has_coverage

    def test_inverted_station_range(self, accounts, store):
        with pytest.raises(ValidationException):
            accounts.register({
                "username": "station3", "password": "relief-demo-123", "name": "Station-3",
                "role": "fire_station", "postalCodeStart": "399", "postalCodeEnd": "300"
            })

        assert store.users == {}

    def test_register_ngo(self, accounts):
        user = accounts.register({
            "username": "foodbank", "password": "relief-demo-123", "name": "Food Bank",
            "role": "ngo", "specialization": "food"
        })

        assert isinstance(user, Ngo)
        assert user.wallet_balance == 0.0

    def test_duplicate_username(self, accounts, fire_station):
        with pytest.raises(ConflictException):
            accounts.register({
                "username": "station9", "password": "relief-demo-123", "name": "Copy", "role": "ngo"
            })

    @pytest.mark.parametrize("payload", [
        {"username": "ab", "password": "relief-demo-123", "name": "X", "role": "ngo"},
        {"username": "valid", "password": "short", "name": "X", "role": "ngo"},
        {"username": "bad name!", "password": "relief-demo-123", "name": "X", "role": "ngo"},
        {"username": "valid", "password": "relief-demo-123", "name": "X", "role": "admin"},
        None,
    ])
    def test_invalid_registration(self, accounts, payload):
        with pytest.raises(ValidationException):
            accounts.register(payload)

    def test_authenticate(self, accounts):
        registered = accounts.register({
            "username": "waterngo2", "password": "relief-demo-123", "name": "Water", "role": "ngo"
        })

        assert accounts.authenticate({"username": "WaterNGO2", "password": "relief-demo-123"}).id == registered.id

    def test_authenticate_wrong_password(self, accounts):
        accounts.register({"username": "waterngo2", "password": "relief-demo-123", "name": "Water", "role": "ngo"})

        with pytest.raises(AuthenticationException):
            accounts.authenticate({"username": "waterngo2", "password": "nope-nope-nope"})

    def test_authenticate_unknown_user(self, accounts):
        with pytest.raises(AuthenticationException):
            accounts.authenticate({"username": "ghost", "password": "relief-demo-123"})
