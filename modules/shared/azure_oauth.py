"""
Azure AD device code authentication for Dataverse

Uses the v1 device code flow with the Dataverse URL as resource, so no own
app registration is needed. The user enters a short code on
microsoft.com/devicelogin while the front-end polls for the result.
"""

import logging
import time
import requests
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .token_store import Credential, TokenStore

logger = logging.getLogger(__name__)

# Poll outcomes
STATUS_PENDING = 'pending'
STATUS_SUCCESS = 'success'
STATUS_EXPIRED = 'expired'
STATUS_ERROR = 'error'

PENDING_ERRORS = {'authorization_pending', 'slow_down'}
EXPIRED_ERRORS = {'expired_token', 'code_expired'}

EXPIRED_MESSAGE = 'Der Anmelde-Code ist abgelaufen. Bitte erneut starten.'


# Custom exceptions
class AuthError(Exception):
    """Base class for authentication errors"""
    pass

class ConfigurationError(AuthError):
    """Required endpoint or resource configuration is missing"""
    pass

class NotAuthenticatedError(AuthError):
    """No valid credential is stored"""
    pass

class RefreshFailedError(NotAuthenticatedError):
    """Refresh was rejected; the stored credential has been cleared"""
    pass

class UpstreamError(Exception):
    """Non-2xx or malformed response from an upstream service"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

class NetworkError(UpstreamError):
    """Timeout or connection failure"""
    pass


@dataclass
class AuthSettings:
    """Endpoint and client configuration for the device code flow"""
    resource: str
    client_id: str
    tenant_id: str = 'common'
    authority_host: str = 'https://login.microsoftonline.com'
    refresh_buffer_seconds: int = 300
    timeout: int = 30

    @property
    def device_code_url(self) -> str:
        return f"{self.authority_host}/{self.tenant_id}/oauth2/devicecode"

    @property
    def token_url(self) -> str:
        return f"{self.authority_host}/{self.tenant_id}/oauth2/token"

    @classmethod
    def from_config(cls, cfg) -> 'AuthSettings':
        return cls(
            resource=cfg.DATAVERSE_URL,
            client_id=cfg.DATAVERSE_CLIENT_ID,
            tenant_id=cfg.DATAVERSE_TENANT_ID,
            authority_host=cfg.AUTHORITY_HOST,
            refresh_buffer_seconds=cfg.TOKEN_REFRESH_BUFFER_SECONDS,
            timeout=cfg.HTTP_TIMEOUT,
        )


@dataclass
class DeviceAuthorizationRequest:
    """Result of starting the flow; lives only for one login attempt"""
    device_code: str
    user_code: str
    verification_url: str
    expires_in: int
    interval: int
    message: str = ''


@dataclass
class PollResult:
    status: str
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == STATUS_SUCCESS


@dataclass
class AuthStatus:
    is_authenticated: bool
    expires_in: Optional[int] = None


class DeviceCodeAuth:
    """Owns the device code flow and the stored Dataverse credential"""

    def __init__(self, settings: AuthSettings, store: TokenStore,
                 clock: Callable[[], float] = time.time):
        self.settings = settings
        self.store = store
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _post_form(self, url: str, data: Dict) -> requests.Response:
        """POST a form to the identity provider; network errors propagate"""
        try:
            return requests.post(
                url,
                data=data,
                headers={'Content-Type': 'application/x-www-form-urlencoded'},
                timeout=self.settings.timeout
            )
        except requests.exceptions.Timeout:
            logger.error(f"Request to {url} timed out")
            raise NetworkError("Identity provider request timed out")
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error calling {url}: {e}")
            raise NetworkError(f"Network error: {str(e)}")

    @staticmethod
    def _json_body(response: requests.Response) -> Dict:
        try:
            data = response.json()
        except ValueError:
            raise UpstreamError(
                f"Invalid response from identity provider: {response.status_code}",
                status_code=response.status_code
            )
        if not isinstance(data, dict):
            raise UpstreamError("Unexpected response format from identity provider",
                                status_code=response.status_code)
        return data

    # ------------------------------------------------------------------
    # Device code flow
    # ------------------------------------------------------------------

    def initiate(self) -> DeviceAuthorizationRequest:
        """Start the device code flow and return the code for the user"""
        if not self.settings.resource:
            raise ConfigurationError('DATAVERSE_URL ist nicht konfiguriert. Bitte .env prüfen.')

        response = self._post_form(self.settings.device_code_url, {
            'client_id': self.settings.client_id,
            'resource': self.settings.resource,
        })

        if not response.ok:
            logger.error(f"❌ Device code request failed: {response.status_code}")
            raise UpstreamError(
                f"Device Code Flow fehlgeschlagen: {response.status_code} - {response.text}",
                status_code=response.status_code
            )

        data = self._json_body(response)
        try:
            request = DeviceAuthorizationRequest(
                device_code=data['device_code'],
                user_code=data['user_code'],
                # v1 returns verification_url, v2 verification_uri
                verification_url=data.get('verification_url') or data['verification_uri'],
                expires_in=int(data['expires_in']),
                interval=int(data.get('interval') or 5),
                message=data.get('message', ''),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamError(f"Incomplete device code response: missing {e}")

        logger.info(f"🔗 Device code flow started, expires in {request.expires_in}s")
        return request

    def poll(self, device_code: str) -> PollResult:
        """Check once whether the user completed the sign-in"""
        response = self._post_form(self.settings.token_url, {
            'client_id': self.settings.client_id,
            'grant_type': 'device_code',
            'code': device_code,
        })
        data = self._json_body(response)

        error = data.get('error')
        if error:
            if error in PENDING_ERRORS:
                logger.debug("Authorization still pending")
                return PollResult(STATUS_PENDING)
            if error in EXPIRED_ERRORS:
                logger.info("Device code expired")
                return PollResult(STATUS_EXPIRED, EXPIRED_MESSAGE)
            logger.error(f"❌ Device code poll failed: {error}")
            return PollResult(STATUS_ERROR, data.get('error_description') or error)

        if not response.ok or not data.get('access_token'):
            logger.error(f"❌ Unexpected token response: {response.status_code}")
            return PollResult(STATUS_ERROR, f"Unexpected token response: {response.status_code}")

        self.store.save(self._credential_from(data))
        logger.info("✅ Device code sign-in completed")
        return PollResult(STATUS_SUCCESS)

    def _credential_from(self, data: Dict, previous: Optional[Credential] = None) -> Credential:
        refresh_token = data.get('refresh_token') or (previous.refresh_token if previous else '')
        resource = data.get('resource') or (previous.resource if previous else '') or self.settings.resource
        return Credential(
            access_token=data['access_token'],
            refresh_token=refresh_token,
            expires_at=self._now_ms() + int(data.get('expires_in', 3600)) * 1000,
            resource=resource,
        )

    # ------------------------------------------------------------------
    # Token access
    # ------------------------------------------------------------------

    def is_authenticated(self) -> bool:
        credential = self.store.load()
        return credential is not None and credential.is_valid(self._now_ms())

    def get_valid_token(self) -> str:
        """Return a usable access token, refreshing shortly before expiry"""
        credential = self.store.load()
        if credential is None or not credential.access_token:
            raise NotAuthenticatedError('Nicht authentifiziert. Bitte zuerst anmelden.')

        buffer_ms = self.settings.refresh_buffer_seconds * 1000
        if credential.expires_at - self._now_ms() < buffer_ms:
            logger.info("🔄 Token expires soon, refreshing")
            credential = self._refresh(credential)

        return credential.access_token

    def _refresh(self, credential: Credential) -> Credential:
        try:
            if not credential.refresh_token:
                raise UpstreamError("No refresh token stored")

            response = self._post_form(self.settings.token_url, {
                'client_id': self.settings.client_id,
                'grant_type': 'refresh_token',
                'refresh_token': credential.refresh_token,
                'resource': credential.resource or self.settings.resource,
            })
            if not response.ok:
                raise UpstreamError(f"Token refresh rejected: {response.status_code}",
                                    status_code=response.status_code)

            data = self._json_body(response)
            if not data.get('access_token'):
                raise UpstreamError("Token refresh returned no access token")
        except UpstreamError as e:
            logger.error(f"❌ Token refresh failed: {e}")
            self.store.delete()
            raise RefreshFailedError('Token konnte nicht erneuert werden. Bitte erneut anmelden.')

        new_credential = self._credential_from(data, previous=credential)
        self.store.save(new_credential)
        logger.info("✅ Token refreshed")
        return new_credential

    def get_auth_status(self) -> AuthStatus:
        """Status for display only; never triggers a refresh"""
        credential = self.store.load()
        now_ms = self._now_ms()
        if credential is None or not credential.is_valid(now_ms):
            return AuthStatus(is_authenticated=False)
        return AuthStatus(
            is_authenticated=True,
            expires_in=(credential.expires_at - now_ms) // 1000
        )

    def logout(self) -> None:
        self.store.delete()
        logger.info("User logged out, token cache cleared")
