"""
Tests for credential persistence
"""

import json
import os

import pytest

from modules.shared.azure_oauth import AuthSettings, DeviceCodeAuth
from modules.shared.token_store import (
    Credential, FileTokenStore, MemoryTokenStore, create_token_store
)


@pytest.fixture
def credential():
    return Credential(
        access_token='access',
        refresh_token='refresh',
        expires_at=1_700_003_600_000,
        resource='https://test-org.crm4.dynamics.com',
    )


def test_credential_serializes_camel_case(credential):
    assert credential.to_dict() == {
        'accessToken': 'access',
        'refreshToken': 'refresh',
        'expiresAt': 1_700_003_600_000,
        'resource': 'https://test-org.crm4.dynamics.com',
    }
    assert Credential.from_dict(credential.to_dict()) == credential


def test_credential_validity(credential):
    assert credential.is_valid(credential.expires_at - 1)
    assert not credential.is_valid(credential.expires_at)


def test_memory_store(credential):
    store = MemoryTokenStore()
    assert store.load() is None
    store.save(credential)
    assert store.load() == credential
    store.delete()
    assert store.load() is None


def test_file_store_round_trip(tmp_path, credential):
    path = tmp_path / 'cache' / 'token.json'
    store = FileTokenStore(str(path))

    assert store.load() is None
    store.save(credential)

    assert json.loads(path.read_text(encoding='utf-8'))['accessToken'] == 'access'
    assert store.load() == credential
    # no temp files left beside the cache
    assert os.listdir(path.parent) == ['token.json']


def test_file_store_replaces_whole_record(tmp_path, credential):
    store = FileTokenStore(str(tmp_path / 'token.json'))
    store.save(credential)
    store.save(Credential('other', '', 1, 'res'))

    loaded = store.load()
    assert loaded.access_token == 'other'
    assert loaded.refresh_token == ''


@pytest.mark.parametrize('content', [
    '{not json',
    '[1, 2, 3]',
    '',
    '{"accessToken": "a", "expiresAt": [1]}',
    '{"accessToken": ["a"], "expiresAt": 1700000000000}',
    '{"accessToken": "a", "expiresAt": "soon"}',
])
def test_file_store_ignores_corrupt_file(tmp_path, content):
    path = tmp_path / 'token.json'
    path.write_text(content, encoding='utf-8')
    assert FileTokenStore(str(path)).load() is None


def test_file_store_delete_is_idempotent(tmp_path, credential):
    path = tmp_path / 'token.json'
    store = FileTokenStore(str(path))
    store.save(credential)

    store.delete()
    assert not path.exists()
    store.delete()
    assert store.load() is None


def test_create_token_store(tmp_path):
    assert isinstance(create_token_store(str(tmp_path / 'token.json')), FileTokenStore)
    assert isinstance(create_token_store(None), MemoryTokenStore)


def test_corrupt_cache_reads_as_signed_out(tmp_path, clock):
    path = tmp_path / 'token.json'
    path.write_text('{"accessToken": "a", "expiresAt": [1]}', encoding='utf-8')
    auth = DeviceCodeAuth(AuthSettings(resource='https://org.crm4.dynamics.com', client_id='c'),
                          FileTokenStore(str(path)), clock=clock)

    assert not auth.is_authenticated()
    assert not auth.get_auth_status().is_authenticated
