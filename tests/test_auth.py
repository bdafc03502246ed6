"""Tests for token storage and selection."""

import json
from datetime import datetime, timedelta, timezone

from common.auth import AuthProvider, AuthStorage, AuthToken

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def stored_token(hours=48, value='rf_stored'):
    return AuthToken(
        access_token=value,
        expires_at=datetime.now(timezone.utc) + timedelta(hours=hours),
        authenticated_at=datetime.now(timezone.utc),
    )


class TestAuthToken:
    """Test token expiry and serialization."""

    def test_from_response(self):
        token = AuthToken.from_response('abc', '', 3600)

        assert token.token_type == 'Bearer'
        assert token.expires_at - token.authenticated_at == timedelta(seconds=3600)

    def test_expiry(self):
        token = AuthToken(access_token='abc', expires_at=NOW)

        assert not token.is_expired(NOW - timedelta(seconds=1))
        assert token.is_expired(NOW + timedelta(seconds=1))
        assert token.expires_within(5, NOW - timedelta(minutes=3))

    def test_no_expiry_never_expires(self):
        assert not AuthToken(access_token='abc').is_expired()

    def test_json_round_trip(self):
        token = AuthToken(access_token='abc', expires_at=NOW, authenticated_at=NOW)

        assert AuthToken.from_json_map(token.to_json_map()) == token

    def test_z_suffix_is_parsed(self):
        token = AuthToken.from_json_map({'accessToken': 'abc', 'expiresAt': '2026-01-01T12:00:00Z'})

        assert token.expires_at == NOW

    def test_token_not_in_repr(self):
        assert 'secret' not in repr(AuthToken(access_token='secret'))


class TestAuthStorage:
    """Test the JSON token file."""

    def test_save_and_load(self, tmp_path):
        storage = AuthStorage(tmp_path / 'auth.json')

        storage.save(stored_token())

        assert storage.load().access_token == 'rf_stored'

    def test_expired_token_is_not_returned(self, tmp_path):
        storage = AuthStorage(tmp_path / 'auth.json')
        storage.save(stored_token(hours=-1))

        assert storage.exists()
        assert storage.load() is None

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / 'auth.json'
        path.write_text(json.dumps({'tokenType': 'Bearer'}))

        assert AuthStorage(path).load() is None

    def test_clear(self, tmp_path):
        storage = AuthStorage(tmp_path / 'auth.json')
        storage.save(stored_token())

        storage.clear()

        assert not storage.exists()


class TestAuthProvider:
    """Test token precedence."""

    def test_stored_token_wins(self, auth_provider, temp_config):
        temp_config.data['auth_token'] = 'rf_config'
        auth_provider.save_token(stored_token())

        assert auth_provider.get_auth_token() == 'rf_stored'
        assert auth_provider.get_auth_source() == AuthProvider.SOURCE_STORED

    def test_config_token_fallback(self, auth_provider, temp_config):
        temp_config.data['auth_token'] = ' rf_config '

        assert auth_provider() == 'rf_config'
        assert auth_provider.get_auth_source() == AuthProvider.SOURCE_CONFIG

    def test_expired_stored_token_falls_back(self, auth_provider, temp_config):
        temp_config.data['auth_token'] = 'rf_config'
        auth_provider.save_token(stored_token(hours=-1))

        assert auth_provider.get_auth_token() == 'rf_config'

    def test_not_authenticated(self, auth_provider):
        assert auth_provider.get_auth_token() == ''
        assert not auth_provider.is_authenticated()
        assert auth_provider.get_auth_source() == AuthProvider.SOURCE_NONE

    def test_expiration_info(self, auth_provider):
        assert auth_provider.get_token_expiration_info() is None

        auth_provider.save_token(stored_token(hours=72))

        assert auth_provider.get_token_expiration_info().startswith('expires in')

    def test_expiration_info_for_expired_token(self, auth_provider):
        auth_provider.save_token(stored_token(hours=-1))

        assert auth_provider.get_token_expiration_info() == 'expired'

    def test_clear_token(self, auth_provider):
        auth_provider.save_token(stored_token())

        auth_provider.clear_token()

        assert not auth_provider.is_authenticated()
