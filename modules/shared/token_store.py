"""
Credential persistence for the Dataverse device code flow.

Exactly one credential is stored at a time. Saving always replaces the
whole record; there is no field-level patching.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class Credential:
    """Access/refresh token pair plus expiry (epoch milliseconds)"""
    access_token: str
    refresh_token: str
    expires_at: int
    resource: str

    def is_valid(self, now_ms: int) -> bool:
        return bool(self.access_token) and self.expires_at > now_ms

    def to_dict(self) -> Dict:
        return {
            'accessToken': self.access_token,
            'refreshToken': self.refresh_token,
            'expiresAt': self.expires_at,
            'resource': self.resource,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Credential':
        """ValueError when a field has the wrong type"""
        for key in ('accessToken', 'refreshToken', 'resource'):
            if data.get(key) is not None and not isinstance(data[key], str):
                raise ValueError(f"{key} must be a string")
        expires_at = data.get('expiresAt')
        if expires_at is not None and (isinstance(expires_at, bool) or not isinstance(expires_at, (int, float))):
            raise ValueError("expiresAt must be a number")

        return cls(
            access_token=data.get('accessToken') or '',
            refresh_token=data.get('refreshToken') or '',
            expires_at=int(data.get('expiresAt') or 0),
            resource=data.get('resource') or '',
        )


class TokenStore:
    """Load/save/delete interface for the single stored credential"""

    def load(self) -> Optional[Credential]:
        raise NotImplementedError

    def save(self, credential: Credential) -> None:
        raise NotImplementedError

    def delete(self) -> None:
        raise NotImplementedError


class MemoryTokenStore(TokenStore):
    """Process-local store, lost on restart"""

    def __init__(self):
        self._credential = None

    def load(self) -> Optional[Credential]:
        return self._credential

    def save(self, credential: Credential) -> None:
        self._credential = credential

    def delete(self) -> None:
        self._credential = None


class FileTokenStore(TokenStore):
    """JSON file store, survives worker restarts"""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Optional[Credential]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                logger.error(f"Token cache {self.path} has unexpected content, ignoring it")
                return None
            return Credential.from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Error loading token cache: {e}")
            return None

    def save(self, credential: Credential) -> None:
        directory = os.path.dirname(self.path) or '.'
        os.makedirs(directory, exist_ok=True)

        # Write beside the target, then swap in one step
        fd, tmp_path = tempfile.mkstemp(prefix='.token-', suffix='.json', dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(credential.to_dict(), f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug(f"Token cache written to {self.path}")

    def delete(self) -> None:
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass


def create_token_store(path: Optional[str]) -> TokenStore:
    """File store when a path is configured, memory store otherwise"""
    if path:
        return FileTokenStore(path)
    logger.warning("No token cache file configured, credentials will not survive a restart")
    return MemoryTokenStore()
