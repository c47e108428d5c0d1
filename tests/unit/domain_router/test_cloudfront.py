"""CloudFront Lambda@Edge event codec tests."""

from __future__ import annotations

import pytest

from domain_router.edge import cloudfront
from domain_router.errors import MalformedRequest
from domain_router.models import EdgeRequest
from domain_router.routing.responses import not_configured


def _cf_request(**overrides):
    request = {
        'clientIp': '203.0.113.10',
        'method': 'GET',
        'uri': '/dashboard',
        'querystring': 'tab=1',
        'headers': {
            'host': [{'key': 'Host', 'value': 'gallery.example.com'}],
            'accept': [{'key': 'Accept', 'value': 'text/html'}],
            'cookie': [
                {'key': 'Cookie', 'value': 'a=1'},
                {'key': 'Cookie', 'value': 'b=2'},
            ],
        },
    }
    request.update(overrides)
    return request


def _event(cf_request):
    return {
        'Records': [{
            'cf': {
                'config': {'requestId': 'req-abc-123456'},
                'request': cf_request,
            },
        }],
    }


def test_canonical_header_name():
    assert cloudfront.canonical_header_name('x-custom-host') == 'X-Custom-Host'
    assert cloudfront.canonical_header_name('host') == 'Host'


class TestExtract:

    def test_extracts_request_and_id(self):
        cf_request = _cf_request()
        event = _event(cf_request)
        assert cloudfront.extract_request(event) is cf_request
        assert cloudfront.extract_request_id(event) == 'req-abc-123456'

    @pytest.mark.parametrize(
        'event',
        [{}, {'Records': []}, {'Records': [{'cf': {}}]}, {'Records': [{'cf': {'request': 'x'}}]}, None],
    )
    def test_invalid_structure(self, event):
        with pytest.raises(MalformedRequest):
            cloudfront.extract_request(event)

    def test_missing_request_id(self):
        assert cloudfront.extract_request_id({'Records': [{'cf': {}}]}) is None


class TestRequestCodec:

    def test_request_from_cloudfront(self):
        edge = cloudfront.request_from_cloudfront(_cf_request())

        assert edge.host == 'gallery.example.com'
        assert edge.path == '/dashboard'
        assert edge.query == 'tab=1'
        assert edge.method == 'GET'
        assert 'host' not in edge.headers
        assert edge.headers['accept'] == 'text/html'

    def test_missing_host_header(self):
        edge = cloudfront.request_from_cloudfront(_cf_request(headers={}))
        assert edge.host is None

    def test_round_trip_preserves_multi_value_headers(self):
        cf_request = _cf_request()
        edge = cloudfront.request_from_cloudfront(cf_request)
        result = cloudfront.request_to_cloudfront(edge, cf_request)

        assert result['headers']['cookie'] == cf_request['headers']['cookie']
        assert result['headers']['host'] == [{'key': 'Host', 'value': 'gallery.example.com'}]
        assert result['clientIp'] == '203.0.113.10'

    def test_rewritten_request_written_back(self):
        cf_request = _cf_request()
        edge = EdgeRequest(
            host='main.d1abc.amplifyapp.com',
            path='/workspace-1/dashboard',
            query='tab=1',
            headers={'accept': 'text/html', 'x-debug-workspace': 'workspace-1'},
        )

        result = cloudfront.request_to_cloudfront(edge, cf_request)

        assert result['uri'] == '/workspace-1/dashboard'
        assert result['headers']['host'] == [{'key': 'Host', 'value': 'main.d1abc.amplifyapp.com'}]
        assert result['headers']['x-debug-workspace'] == [
            {'key': 'X-Debug-Workspace', 'value': 'workspace-1'},
        ]
        # Dropped headers do not survive.
        assert 'cookie' not in result['headers']
        # Original request untouched.
        assert cf_request['uri'] == '/dashboard'


def test_response_to_cloudfront():
    result = cloudfront.response_to_cloudfront(not_configured('unknown.example.com'))
    assert result == {
        'status': '404',
        'statusDescription': 'Not Found',
        'headers': {'content-type': [{'key': 'Content-Type', 'value': 'text/plain'}]},
        'body': 'Domain unknown.example.com is not configured',
    }
