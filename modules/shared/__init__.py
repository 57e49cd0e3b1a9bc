"""
Shared Module Package

This package contains shared utilities used across different modules:
- Azure AD device code authentication (azure_oauth)
- Credential persistence (token_store)
- Dataverse Web API client (dataverse_api)
- Planning timeline logic (calendar_components)
- Common response helpers (ui_helpers)
"""

from .azure_oauth import (
    AuthSettings, DeviceCodeAuth, ConfigurationError, NotAuthenticatedError,
    RefreshFailedError, UpstreamError
)
from .token_store import Credential, FileTokenStore, MemoryTokenStore, create_token_store
from .dataverse_api import DataverseAPI

__all__ = [
    'AuthSettings', 'DeviceCodeAuth', 'ConfigurationError', 'NotAuthenticatedError',
    'RefreshFailedError', 'UpstreamError',
    'Credential', 'FileTokenStore', 'MemoryTokenStore', 'create_token_store',
    'DataverseAPI'
]
