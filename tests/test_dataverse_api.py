"""
Tests for the Dataverse Web API client
"""

from unittest.mock import Mock, patch

import pytest
import requests

from modules.shared.azure_oauth import NetworkError, NotAuthenticatedError
from modules.shared.dataverse_api import (
    DataverseAPI, DataverseAPIError, DataverseAuthError, DataverseNotFoundError,
    DataversePermissionError
)

REQUEST = 'modules.shared.dataverse_api.requests.request'
BASE = 'https://test-org.crm4.dynamics.com/api/data/v9.2'


@pytest.fixture
def token_provider():
    return Mock(return_value='token-abc')


@pytest.fixture
def api(token_provider):
    return DataverseAPI('https://test-org.crm4.dynamics.com/', token_provider)


def test_base_url(api):
    assert api.base_url == BASE


def test_headers_carry_bearer_token(api, token_provider, make_response):
    with patch(REQUEST, return_value=make_response(200, {'value': []})) as request:
        api.list('accounts')

    headers = request.call_args.kwargs['headers']
    assert headers['Authorization'] == 'Bearer token-abc'
    assert headers['OData-Version'] == '4.0'
    assert 'Prefer' not in headers
    token_provider.assert_called_once()


def test_list_builds_query(api, make_response):
    with patch(REQUEST, return_value=make_response(200, {'value': [{'id': 1}]})) as request:
        records = api.list('accounts', select=['name', 'id'], filter='statecode eq 0',
                           orderby='createdon desc')

    assert records == [{'id': 1}]
    kwargs = request.call_args.kwargs
    assert kwargs['method'] == 'GET'
    assert kwargs['url'] == f'{BASE}/accounts'
    assert kwargs['params'] == {
        '$select': 'name,id',
        '$filter': 'statecode eq 0',
        '$orderby': 'createdon desc',
    }


def test_list_follows_next_link(api, make_response):
    next_link = f'{BASE}/accounts?$skiptoken=abc'
    pages = [
        make_response(200, {'value': [{'id': 1}, {'id': 2}], '@odata.nextLink': next_link}),
        make_response(200, {'value': [{'id': 3}]}),
    ]
    with patch(REQUEST, side_effect=pages) as request:
        records = api.list('accounts', select=['id'])

    assert [r['id'] for r in records] == [1, 2, 3]
    second = request.call_args_list[1].kwargs
    assert second['url'] == next_link
    assert second['params'] is None


def test_list_with_top_reads_one_page(api, make_response):
    page = make_response(200, {'value': [{'id': 1}], '@odata.nextLink': f'{BASE}/accounts?next'})
    with patch(REQUEST, return_value=page) as request:
        records = api.list('accounts', top=1)

    assert records == [{'id': 1}]
    assert request.call_count == 1
    assert request.call_args.kwargs['params'] == {'$top': '1'}


def test_get_record(api, make_response):
    with patch(REQUEST, return_value=make_response(200, {'accountid': 'a1'})) as request:
        record = api.get('accounts', 'a1', select=['name'])

    assert record == {'accountid': 'a1'}
    assert request.call_args.kwargs['url'] == f'{BASE}/accounts(a1)'


def test_create_and_update_request_representation(api, make_response):
    with patch(REQUEST, return_value=make_response(201, {'accountid': 'new'})) as request:
        assert api.create('accounts', {'name': 'X'}) == {'accountid': 'new'}

    kwargs = request.call_args.kwargs
    assert kwargs['method'] == 'POST'
    assert kwargs['json'] == {'name': 'X'}
    assert kwargs['headers']['Prefer'] == 'return=representation'

    with patch(REQUEST, return_value=make_response(200, {'accountid': 'a1'})) as request:
        api.update('accounts', 'a1', {'name': 'Y'})

    kwargs = request.call_args.kwargs
    assert kwargs['method'] == 'PATCH'
    assert kwargs['url'] == f'{BASE}/accounts(a1)'


def test_no_content_returns_empty_dict(api, make_response):
    with patch(REQUEST, return_value=make_response(204)) as request:
        assert api.delete('accounts', 'a1') is None
        assert api.update('accounts', 'a1', {'name': 'Y'}) == {}

    assert request.call_args_list[0].kwargs['method'] == 'DELETE'


def test_who_am_i(api, make_response):
    body = {'UserId': 'u1', 'BusinessUnitId': 'b1', 'OrganizationId': 'o1'}
    with patch(REQUEST, return_value=make_response(200, body)) as request:
        assert api.who_am_i()['UserId'] == 'u1'
    assert request.call_args.kwargs['url'] == f'{BASE}/WhoAmI'


@pytest.mark.parametrize('status, error_class', [
    (401, DataverseAuthError),
    (403, DataversePermissionError),
    (404, DataverseNotFoundError),
    (400, DataverseAPIError),
    (500, DataverseAPIError),
])
def test_error_mapping(api, make_response, status, error_class):
    body = {'error': {'code': '0x80040217', 'message': 'Dataverse says no'}}
    with patch(REQUEST, return_value=make_response(status, body)):
        with pytest.raises(error_class) as exc:
            api.get('accounts', 'a1')
    assert str(exc.value) == 'Dataverse says no'


def test_auth_error_is_not_authenticated(api, make_response):
    with patch(REQUEST, return_value=make_response(401, {})):
        with pytest.raises(NotAuthenticatedError):
            api.list('accounts')


def test_error_without_body_uses_reason(api, make_response):
    with patch(REQUEST, return_value=make_response(503, reason='Service Unavailable')):
        with pytest.raises(DataverseAPIError) as exc:
            api.list('accounts')
    assert str(exc.value) == 'HTTP 503: Service Unavailable'
    assert exc.value.status_code == 503


def test_network_errors(api):
    with patch(REQUEST, side_effect=requests.exceptions.ConnectionError()):
        with pytest.raises(NetworkError):
            api.list('accounts')
    with patch(REQUEST, side_effect=requests.exceptions.Timeout()):
        with pytest.raises(NetworkError):
            api.list('accounts')


def test_token_errors_propagate_before_request(make_response):
    provider = Mock(side_effect=NotAuthenticatedError('not signed in'))
    api = DataverseAPI('https://test-org.crm4.dynamics.com', provider)
    with patch(REQUEST) as request:
        with pytest.raises(NotAuthenticatedError):
            api.list('accounts')
    request.assert_not_called()
