"""
Shared fixtures: fake clock, in-memory credential store, mocked HTTP responses
and a Flask test client wired to them.
"""

from unittest.mock import Mock

import pytest

from modules.shared.azure_oauth import AuthSettings, DeviceCodeAuth
from modules.shared.token_store import Credential, MemoryTokenStore

DATAVERSE_URL = 'https://test-org.crm4.dynamics.com'
START_TIME = 1_700_000_000.0


class FakeClock:
    """Callable clock returning epoch seconds, advanced by hand"""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    @property
    def now_ms(self) -> int:
        return int(self.now * 1000)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return AuthSettings(
        resource=DATAVERSE_URL,
        client_id='client-123',
        tenant_id='tenant-abc',
    )


@pytest.fixture
def store():
    return MemoryTokenStore()


@pytest.fixture
def auth(settings, store, clock):
    return DeviceCodeAuth(settings, store, clock=clock)


@pytest.fixture
def stored_credential(store, clock):
    """Store a credential valid for the given number of seconds"""
    def _store(valid_for: int = 3600, access_token: str = 'stored-access',
               refresh_token: str = 'stored-refresh') -> Credential:
        credential = Credential(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=clock.now_ms + valid_for * 1000,
            resource=DATAVERSE_URL,
        )
        store.save(credential)
        return credential
    return _store


@pytest.fixture
def make_response():
    """Factory for requests.Response stand-ins"""
    def _make(status_code: int = 200, json_data=None, text: str = '', reason: str = None):
        response = Mock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 300
        response.reason = reason or ('OK' if response.ok else 'Error')
        response.text = text
        if json_data is None:
            response.json.side_effect = ValueError('No JSON object could be decoded')
        else:
            response.json.return_value = json_data
        return response
    return _make


@pytest.fixture
def app(auth):
    from app import create_app
    return create_app('testing', auth=auth)


@pytest.fixture
def client(app):
    return app.test_client()
