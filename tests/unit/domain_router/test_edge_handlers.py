"""Lambda@Edge handler tests: both stages chained as CloudFront would run them."""

from __future__ import annotations

import json

import httpx
import pytest

from domain_router.edge import handlers
from domain_router.edge.handlers import (
    EdgeRuntime,
    configure,
    get_runtime,
    origin_request_handler,
    viewer_request_handler,
)
from domain_router.inmemory import InMemoryDomainMappingStore
from domain_router.observability.logging import request_id_ctx
from domain_router.settings import RouterSettings

ORIGIN = 'main.d1abc.amplifyapp.com'


def _event(host='gallery.example.com', uri='/', extra_headers=None):
    headers = {'host': [{'key': 'Host', 'value': host}]} if host else {}
    headers.update(extra_headers or {})
    return {
        'Records': [{
            'cf': {
                'config': {'requestId': 'edge-req-0001'},
                'request': {
                    'method': 'GET',
                    'uri': uri,
                    'querystring': '',
                    'headers': headers,
                },
            },
        }],
    }


def _origin_event(viewer_result):
    return {'Records': [{'cf': {'request': viewer_result}}]}


@pytest.fixture
def store():
    store = InMemoryDomainMappingStore()
    store.add('gallery.example.com', 'workspace-1')
    return store


@pytest.fixture(autouse=True)
def runtime(store):
    runtime = configure(RouterSettings(origin_host=ORIGIN), store=store)
    yield runtime
    if handlers._runtime is not None:
        handlers._runtime.close()
    handlers._runtime = None


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in (
        "AWS_LAMBDA_FUNCTION_NAME",
        "AWS_EXECUTION_ENV",
        "ENVIRONMENT",
        "ORIGIN_HOST",
        "SUPABASE_URL",
        "SUPABASE_SERVICE_ROLE_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LAMBDA_TASK_ROOT", str(tmp_path))
    return tmp_path


def test_mapped_host_full_pipeline():
    viewer_result = viewer_request_handler(_event(uri='/'))

    assert viewer_result['uri'] == '/workspace-1/'
    assert viewer_result['headers']['host'][0]['value'] == 'gallery.example.com'
    assert viewer_result['headers']['x-custom-host'] == [
        {'key': 'X-Custom-Host', 'value': ORIGIN},
    ]

    origin_result = origin_request_handler(_origin_event(viewer_result))

    assert origin_result['uri'] == '/workspace-1/'
    assert origin_result['headers']['host'][0]['value'] == ORIGIN
    assert 'x-custom-host' not in origin_result['headers']
    assert origin_result['headers']['x-debug-workspace'][0]['value'] == 'workspace-1'


def test_unmapped_host_generates_404():
    result = viewer_request_handler(_event(host='unknown.example.com', uri='/a'))
    assert result['status'] == '404'
    assert result['body'] == 'Domain unknown.example.com is not configured'


def test_cache_survives_between_invocations(store):
    viewer_request_handler(_event(uri='/a'))
    viewer_request_handler(_event(uri='/b'))
    assert store.lookups == 1


def test_missing_host_returns_400():
    result = viewer_request_handler(_event(host=None))
    assert result['status'] == '400'


def test_forged_carrier_stripped_before_origin():
    forged = {'x-custom-host': [{'key': 'X-Custom-Host', 'value': 'evil.example.net'}]}
    viewer_result = viewer_request_handler(
        _event(host='main.d1abc.amplifyapp.com', uri='/workspace-2/', extra_headers=forged),
    )
    assert 'x-custom-host' not in viewer_result['headers']

    origin_result = origin_request_handler(_origin_event(viewer_result))
    assert origin_result['headers']['host'][0]['value'] == 'main.d1abc.amplifyapp.com'


@pytest.mark.parametrize('handler', [viewer_request_handler, origin_request_handler])
def test_invalid_event_returns_500(handler):
    result = handler({'Records': []})
    assert result['status'] == '500'


def test_origin_handler_without_carrier_is_noop():
    event = _event(host=ORIGIN, uri='/workspace-1/x')
    result = origin_request_handler(event)
    assert result == event['Records'][0]['cf']['request']


def test_get_runtime_returns_configured_instance(runtime):
    assert get_runtime() is runtime
    assert isinstance(runtime, EdgeRuntime)


def test_configure_rejects_invalid_settings():
    with pytest.raises(ValueError):
        configure(RouterSettings(cache_ttl_seconds=0))


def test_configure_from_env_local_uses_in_memory_store(clean_env):
    runtime = configure()
    assert isinstance(runtime.store, InMemoryDomainMappingStore)


def _supabase_settings(**overrides):
    values = dict(
        environment='production',
        origin_host=ORIGIN,
        supabase_url='https://prod.supabase.co',
        supabase_service_role_key='prod-key',
    )
    values.update(overrides)
    return RouterSettings(**values)


def test_invocations_share_one_client_and_loop():
    clients = []

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json=[{'domain': 'gallery.example.com', 'workspace_id': 'workspace-1', 'status': 'active'}],
        )

    class RecordingTransport(httpx.MockTransport):
        async def handle_async_request(self, request):
            clients.append(runtime.http_client)
            return await super().handle_async_request(request)

    http_client = httpx.AsyncClient(transport=RecordingTransport(handler))
    runtime = configure(_supabase_settings(), http_client=http_client)

    first = viewer_request_handler(_event(host='gallery.example.com', uri='/a'))
    runtime.cache.clear()
    second = viewer_request_handler(_event(host='gallery.example.com', uri='/b'))

    assert first['uri'] == '/workspace-1/a'
    assert second['uri'] == '/workspace-1/b'
    assert len(clients) == 2
    assert clients[0] is clients[1] is http_client
    assert get_runtime() is runtime
    runtime.run(http_client.aclose())


def test_non_local_runtime_owns_a_single_client():
    runtime = configure(_supabase_settings())
    client = runtime.http_client

    assert isinstance(client, httpx.AsyncClient)
    assert runtime.store is not None
    assert get_runtime().http_client is client

    runtime.close()
    assert client.is_closed


def test_reconfigure_closes_previous_runtime():
    first = configure(_supabase_settings())
    configure(_supabase_settings())
    assert first.http_client.is_closed


def test_configure_reads_bundled_config_file(clean_env):
    (clean_env / 'domain_router.json').write_text(json.dumps({
        'ENVIRONMENT': 'production',
        'ORIGIN_HOST': ORIGIN,
        'SUPABASE_URL': 'https://prod.supabase.co',
        'SUPABASE_SERVICE_ROLE_KEY': 'prod-key',
        'PLATFORM_HOST_SUFFIXES': ['amplifyapp.com', 'cloudfront.net'],
        'DIAGNOSTIC_HEADERS': False,
    }))

    runtime = configure()

    assert runtime.settings.environment == 'production'
    assert runtime.settings.origin_host == ORIGIN
    assert runtime.settings.platform_host_suffixes == ('amplifyapp.com', 'cloudfront.net')
    assert runtime.settings.diagnostic_headers is False
    assert runtime.http_client is not None


def test_lambda_cold_start_without_config_refuses_local_defaults(clean_env, monkeypatch):
    monkeypatch.setenv('AWS_LAMBDA_FUNCTION_NAME', 'us-east-1.domain-mapper-edge')
    handlers._runtime.close()
    handlers._runtime = None

    with pytest.raises(ValueError, match='local defaults'):
        viewer_request_handler(_event())


def test_request_id_falls_back_to_lambda_context():
    class Context:
        aws_request_id = 'lambda-req-0001'

    event = _event()
    del event['Records'][0]['cf']['config']
    token = request_id_ctx.set(None)
    try:
        viewer_request_handler(event, Context())
        assert request_id_ctx.get() == 'lambda-req-0001'
    finally:
        request_id_ctx.reset(token)
