#!/usr/bin/env python3
"""
Unit tests for secret_store.py

Tests cover:
- Password extracted from a JSON SecretString
- Retrieval and parsing failures raise SecretUnavailableError
- Password never appears in repr or error messages
"""

import json
import os

import pytest
from unittest.mock import MagicMock
from botocore.exceptions import ClientError, ReadTimeoutError

os.environ.setdefault('POWERTOOLS_TRACE_DISABLED', '1')

import secret_store
from secret_store import SecretUnavailableError, SharedSecret


@pytest.fixture
def secrets():
    client = MagicMock()
    client.get_secret_value.return_value = {
        'Name': 'tempPassword',
        'SecretString': '{"password": "Xx1!aaaa"}'
    }
    return client


class TestGetSharedSecret:
    """Test get_shared_secret() function."""

    def test_extracts_password(self, secrets):
        secret = secret_store.get_shared_secret(secrets, 'tempPassword')

        assert secret == SharedSecret(password='Xx1!aaaa')
        secrets.get_secret_value.assert_called_once_with(SecretId='tempPassword')

    def test_default_secret_id(self, secrets):
        secret_store.get_shared_secret(secrets)

        secrets.get_secret_value.assert_called_once_with(SecretId='tempPassword')

    def test_ignores_extra_fields(self, secrets):
        secrets.get_secret_value.return_value = {
            'SecretString': '{"password": "Xx1!aaaa", "username": "ignored"}'
        }

        assert secret_store.get_shared_secret(secrets).password == 'Xx1!aaaa'

    def test_client_error_raises(self, secrets):
        secrets.get_secret_value.side_effect = ClientError(
            {'Error': {'Code': 'ResourceNotFoundException', 'Message': 'not found'}},
            'GetSecretValue'
        )

        with pytest.raises(SecretUnavailableError, match='ResourceNotFoundException'):
            secret_store.get_shared_secret(secrets, 'tempPassword')

    def test_client_error_is_chained(self, secrets):
        error = ClientError({'Error': {'Code': 'AccessDeniedException', 'Message': 'denied'}}, 'GetSecretValue')
        secrets.get_secret_value.side_effect = error

        with pytest.raises(SecretUnavailableError) as excinfo:
            secret_store.get_shared_secret(secrets, 'tempPassword')

        assert excinfo.value.__cause__ is error

    def test_transport_error_raises(self, secrets):
        error = ReadTimeoutError(endpoint_url='https://secretsmanager')
        secrets.get_secret_value.side_effect = error

        with pytest.raises(SecretUnavailableError) as excinfo:
            secret_store.get_shared_secret(secrets, 'tempPassword')

        assert excinfo.value.__cause__ is error

    def test_invalid_json_is_chained(self, secrets):
        secrets.get_secret_value.return_value = {'SecretString': 'not json'}

        with pytest.raises(SecretUnavailableError) as excinfo:
            secret_store.get_shared_secret(secrets, 'tempPassword')

        assert isinstance(excinfo.value.__cause__, json.JSONDecodeError)

    def test_binary_secret_raises(self, secrets):
        secrets.get_secret_value.return_value = {'SecretBinary': b'\x00\x01'}

        with pytest.raises(SecretUnavailableError, match='no SecretString'):
            secret_store.get_shared_secret(secrets, 'tempPassword')

    @pytest.mark.parametrize('secret_string', [
        'Xx1!aaaa',
        '["Xx1!aaaa"]',
        '{}',
        '{"password": ""}',
        '{"password": 12345678}',
    ])
    def test_unusable_secret_string_raises(self, secrets, secret_string):
        secrets.get_secret_value.return_value = {'SecretString': secret_string}

        with pytest.raises(SecretUnavailableError) as excinfo:
            secret_store.get_shared_secret(secrets, 'tempPassword')

        assert 'Xx1!aaaa' not in str(excinfo.value)


class TestSharedSecret:
    """Test SharedSecret representation."""

    def test_repr_hides_password(self):
        assert 'Xx1!aaaa' not in repr(SharedSecret(password='Xx1!aaaa'))


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
