import requests
from typing import Callable, Dict, List, Optional
import logging

from .azure_oauth import NotAuthenticatedError, UpstreamError, NetworkError

logger = logging.getLogger(__name__)

# Custom exceptions
class DataverseAPIError(UpstreamError):
    """Non-2xx response from the Dataverse Web API"""
    pass

class DataverseNotFoundError(DataverseAPIError):
    """Record or entity set not found"""
    pass

class DataverseAuthError(NotAuthenticatedError):
    """Dataverse rejected the bearer token"""
    pass

class DataversePermissionError(DataverseAPIError):
    """Permission related errors"""
    pass


class DataverseAPI:
    """Generic OData client for Dataverse tables"""

    def __init__(self, base_url: str, token_provider: Callable[[], str],
                 api_version: str = 'v9.2', timeout: int = 30):
        self.base_url = f"{base_url.rstrip('/')}/api/data/{api_version}"
        self.token_provider = token_provider
        self.timeout = timeout

    def _headers(self, prefer_representation: bool = False) -> Dict[str, str]:
        headers = {
            'Authorization': f'Bearer {self.token_provider()}',
            'OData-Version': '4.0',
            'OData-MaxVersion': '4.0',
            'Accept': 'application/json',
            'Content-Type': 'application/json; charset=utf-8'
        }
        if prefer_representation:
            headers['Prefer'] = 'return=representation'
        return headers

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        message = f"HTTP {response.status_code}: {response.reason}"
        try:
            error = response.json().get('error') or {}
            if error.get('message'):
                message = error['message']
        except (ValueError, AttributeError):
            pass
        return message

    def _make_request(self, url: str, method: str = 'GET',
                      prefer_representation: bool = False, **kwargs):
        """Make API request with comprehensive error handling"""
        headers = self._headers(prefer_representation)
        try:
            logger.info(f"Making {method} request to: {url}")

            response = requests.request(
                method=method,
                url=url,
                headers=headers,
                timeout=self.timeout,
                **kwargs
            )
        except requests.exceptions.Timeout:
            logger.error("Request timeout")
            raise NetworkError("Request timed out")
        except requests.exceptions.ConnectionError:
            logger.error("Connection error")
            raise NetworkError("Unable to connect to Dataverse")
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error: {e}")
            raise NetworkError(f"Network error: {str(e)}")

        logger.info(f"Response status: {response.status_code}")

        if response.status_code == 204:
            return {}
        if response.ok:
            try:
                return response.json()
            except ValueError:
                raise DataverseAPIError("Invalid JSON in Dataverse response",
                                        status_code=response.status_code)

        message = self._error_message(response)
        if response.status_code == 401:
            logger.error("Access token expired or invalid")
            raise DataverseAuthError(message)
        elif response.status_code == 403:
            logger.error("Insufficient permissions")
            raise DataversePermissionError(message, status_code=403)
        elif response.status_code == 404:
            logger.error("Resource not found")
            raise DataverseNotFoundError(message, status_code=404)
        else:
            logger.error(f"API error {response.status_code}: {message}")
            raise DataverseAPIError(message, status_code=response.status_code)

    @staticmethod
    def _query(select: Optional[List[str]] = None, filter: Optional[str] = None,
               top: Optional[int] = None, orderby: Optional[str] = None) -> Dict[str, str]:
        params = {}
        if select:
            params['$select'] = ','.join(select)
        if filter:
            params['$filter'] = filter
        if top:
            params['$top'] = str(top)
        if orderby:
            params['$orderby'] = orderby
        return params

    # ============================================
    # CRUD operations
    # ============================================

    def list(self, entity_set: str, select: Optional[List[str]] = None,
             filter: Optional[str] = None, top: Optional[int] = None,
             orderby: Optional[str] = None) -> List[Dict]:
        """List records of a table, following server paging unless top is set"""
        records = []
        url = f"{self.base_url}/{entity_set}"
        params = self._query(select, filter, top, orderby)

        while url:
            result = self._make_request(url, params=params)
            records.extend(result.get('value', []))
            if top:
                break
            # nextLink already carries the query
            url = result.get('@odata.nextLink')
            params = None

        return records

    def get(self, entity_set: str, record_id: str, select: Optional[List[str]] = None) -> Dict:
        url = f"{self.base_url}/{entity_set}({record_id})"
        return self._make_request(url, params=self._query(select))

    def create(self, entity_set: str, data: Dict) -> Dict:
        url = f"{self.base_url}/{entity_set}"
        return self._make_request(url, method='POST', prefer_representation=True, json=data)

    def update(self, entity_set: str, record_id: str, data: Dict) -> Dict:
        """Partial update (PATCH)"""
        url = f"{self.base_url}/{entity_set}({record_id})"
        return self._make_request(url, method='PATCH', prefer_representation=True, json=data)

    def delete(self, entity_set: str, record_id: str) -> None:
        url = f"{self.base_url}/{entity_set}({record_id})"
        self._make_request(url, method='DELETE')

    def who_am_i(self) -> Dict:
        """Current user; useful to verify the connection"""
        return self._make_request(f"{self.base_url}/WhoAmI")
