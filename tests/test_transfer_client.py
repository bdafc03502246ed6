"""Unit tests for TransferClient."""

import gzip
import json

import httpx
import pytest

from common.exceptions import (
    AuthError,
    IntegrityError,
    NetworkError,
    NotFoundError,
    RequestError,
    ServerError,
)
from common.hashing import compute_hash
from transfer.client import TransferClient
from transfer.retry import RetryPolicy

UPLOAD_BASE = '/api/modpacks/test-pack/versions/1.0.0/upload'


class Recorder:
    """Mock transport handler that records requests and replays responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return httpx.Response(response.status_code, headers=response.headers, content=response.content)


@pytest.fixture
def make_client(configured_config):
    """Build a TransferClient over a mock transport; sleeps are recorded."""
    def factory(handler, token='rf_test_token', max_attempts=3):
        sleeps = []
        client = TransferClient(
            configured_config,
            lambda: token,
            policy=RetryPolicy(max_attempts=max_attempts),
            sleep=sleeps.append,
        )
        client.session = httpx.Client(transport=httpx.MockTransport(handler), base_url='http://test')
        client.sleeps = sleeps
        return client
    return factory


class TestRequests:
    """Test request shapes for each protocol step."""

    def test_start_session(self, make_client):
        handler = Recorder(httpx.Response(200, json={'sessionId': 'sess-1'}))
        client = make_client(handler)

        session_id = client.start_session('1.0.0', 'recipes', 1000, 400, 3, 'sha256:abc')

        request = handler.requests[0]
        assert session_id == 'sess-1'
        assert request.method == 'POST'
        assert request.url.path == f'{UPLOAD_BASE}/start'
        assert json.loads(request.content) == {
            'type': 'recipes',
            'totalSize': 1000,
            'chunkSize': 400,
            'totalChunks': 3,
            'finalHash': 'sha256:abc',
        }

    def test_common_headers(self, make_client):
        handler = Recorder(httpx.Response(200, json={'sessionId': 'sess-1'}))
        client = make_client(handler)

        client.start_session('1.0.0', 'recipes', 10, 10, 1, 'sha256:abc')

        headers = handler.requests[0].headers
        assert headers['Authorization'] == 'Bearer rf_test_token'
        assert headers['User-Agent'] == 'RecipeFlow-Mod/1.0'
        assert headers['X-Request-ID']

    def test_missing_session_id_is_server_error(self, make_client):
        client = make_client(Recorder(httpx.Response(200, json={})))

        with pytest.raises(ServerError):
            client.start_session('1.0.0', 'recipes', 10, 10, 1, 'sha256:abc')

    def test_status_reads_uploaded_chunks(self, make_client):
        client = make_client(Recorder(httpx.Response(200, json={'uploadedChunks': [0, 2]})))

        assert client.get_status('1.0.0', 'sess-1') == {0, 2}

    def test_status_falls_back_to_chunks_received(self, make_client):
        client = make_client(Recorder(httpx.Response(200, json={'chunksReceived': [1]})))

        assert client.get_status('1.0.0', 'sess-1') == {1}

    def test_send_chunk_plain(self, make_client):
        handler = Recorder(httpx.Response(200, json={'index': 1}))
        client = make_client(handler)
        data = b'chunk-bytes'

        client.send_chunk('1.0.0', 'sess-1', 1, data, compute_hash(data))

        request = handler.requests[0]
        assert request.url.path == f'{UPLOAD_BASE}/sess-1/chunk/1'
        assert request.content == data
        assert request.headers['X-Chunk-Hash'] == compute_hash(data)
        assert 'Content-Encoding' not in request.headers

    def test_send_chunk_compressed(self, make_client, configured_config):
        configured_config.data['compression_enabled'] = True
        handler = Recorder(httpx.Response(200, json={'index': 0}))
        client = make_client(handler)
        data = b'a' * 1000

        client.send_chunk('1.0.0', 'sess-1', 0, data, compute_hash(data))

        request = handler.requests[0]
        assert request.headers['Content-Encoding'] == 'gzip'
        assert gzip.decompress(request.content) == data
        assert request.headers['X-Chunk-Hash'] == compute_hash(data)

    def test_complete(self, make_client):
        handler = Recorder(httpx.Response(200, json={
            'success': True, 'contentHash': 'sha256:abc', 'version': '1.0.0'
        }))
        client = make_client(handler)

        completion = client.complete('1.0.0', 'sess-1', 'sha256:abc')

        assert completion.content_hash == 'sha256:abc'
        assert completion.version == '1.0.0'
        assert json.loads(handler.requests[0].content) == {'contentHash': 'sha256:abc'}

    def test_complete_with_different_server_hash(self, make_client):
        client = make_client(Recorder(httpx.Response(200, json={
            'success': True, 'contentHash': 'sha256:other', 'version': '1.0.0'
        })))

        with pytest.raises(IntegrityError):
            client.complete('1.0.0', 'sess-1', 'sha256:abc')

    def test_complete_reporting_failure(self, make_client):
        client = make_client(Recorder(httpx.Response(200, json={'success': False})))

        with pytest.raises(IntegrityError):
            client.complete('1.0.0', 'sess-1', 'sha256:abc')

    def test_check_upload_exists(self, make_client):
        handler = Recorder(httpx.Response(200, json={'exists': True}))
        client = make_client(handler)

        assert client.check_upload_exists('1.0.0', 'icons') is True
        assert handler.requests[0].url.params['type'] == 'icons'

    def test_check_upload_exists_swallows_errors(self, make_client):
        client = make_client(Recorder(httpx.Response(404, json={'detail': 'no'})))

        assert client.check_upload_exists('1.0.0', 'icons') is False

    def test_slug_and_version_are_quoted(self, make_client, configured_config):
        configured_config.data['modpack_slug'] = 'my pack'
        handler = Recorder(httpx.Response(200, json={'uploadedChunks': []}))
        client = make_client(handler)

        client.get_status('1.0.0/beta', 'sess-1')

        assert handler.requests[0].url.raw_path.startswith(b'/api/modpacks/my%20pack/versions/1.0.0%2Fbeta/')

    def test_post_recipe_sync(self, make_client):
        handler = Recorder(httpx.Response(200, json={'success': True}))
        client = make_client(handler)

        result = client.post_recipe_sync('1.0.0', b'{"recipeCount":0}')

        request = handler.requests[0]
        assert result == {'success': True}
        assert request.url.path == '/api/modpacks/test-pack/versions/1.0.0/recipes/sync'
        assert request.headers['Content-Type'] == 'application/json'
        assert request.content == b'{"recipeCount":0}'


class TestRetries:
    """Test the retry loop."""

    def test_server_error_is_retried_then_succeeds(self, make_client):
        handler = Recorder(
            httpx.Response(503),
            httpx.Response(502),
            httpx.Response(200, json={'uploadedChunks': [0]}),
        )
        client = make_client(handler)

        assert client.get_status('1.0.0', 'sess-1') == {0}
        assert len(handler.requests) == 3
        assert client.sleeps == [1.0, 2.0]

    def test_server_error_gives_up_after_budget(self, make_client):
        handler = Recorder(httpx.Response(500, json={'detail': 'boom'}))
        client = make_client(handler)

        with pytest.raises(ServerError) as exc_info:
            client.get_status('1.0.0', 'sess-1')

        assert len(handler.requests) == 3
        assert exc_info.value.status_code == 500

    def test_connection_error_is_retried(self, make_client):
        handler = Recorder(
            httpx.ConnectError('refused'),
            httpx.Response(200, json={'uploadedChunks': []}),
        )
        client = make_client(handler)

        assert client.get_status('1.0.0', 'sess-1') == set()
        assert len(handler.requests) == 2

    def test_timeouts_exhaust_to_network_error(self, make_client):
        handler = Recorder(httpx.ReadTimeout('slow'))
        client = make_client(handler)

        with pytest.raises(NetworkError):
            client.get_status('1.0.0', 'sess-1')

        assert len(handler.requests) == 3

    def test_throttling_is_retried(self, make_client):
        handler = Recorder(httpx.Response(429), httpx.Response(200, json={'uploadedChunks': []}))
        client = make_client(handler)

        client.get_status('1.0.0', 'sess-1')

        assert len(handler.requests) == 2

    def test_token_is_read_on_every_attempt(self, configured_config):
        tokens = iter(['first', 'second'])
        handler = Recorder(httpx.Response(503), httpx.Response(200, json={'uploadedChunks': []}))
        client = TransferClient(configured_config, lambda: next(tokens), sleep=lambda s: None)
        client.session = httpx.Client(transport=httpx.MockTransport(handler), base_url='http://test')

        client.get_status('1.0.0', 'sess-1')

        assert [r.headers['Authorization'] for r in handler.requests] == ['Bearer first', 'Bearer second']


class TestErrorMapping:
    """Test terminal failures map to the right error type without retrying."""

    @pytest.mark.parametrize('status,body,error_type', [
        (401, {'detail': 'bad token', 'code': 'INVALID_API_KEY'}, AuthError),
        (403, {'detail': 'forbidden'}, AuthError),
        (404, {'detail': 'gone', 'code': 'SESSION_NOT_FOUND'}, NotFoundError),
        (400, {'detail': 'bad', 'code': 'INVALID_CHUNK'}, RequestError),
        (422, {'detail': 'hash', 'code': 'CHUNK_HASH_MISMATCH'}, IntegrityError),
        (409, {'detail': 'hash', 'code': 'CONTENT_HASH_MISMATCH'}, IntegrityError),
    ])
    def test_non_retryable(self, make_client, status, body, error_type):
        handler = Recorder(httpx.Response(status, json=body))
        client = make_client(handler)

        with pytest.raises(error_type) as exc_info:
            client.get_status('1.0.0', 'sess-1')

        assert len(handler.requests) == 1
        assert exc_info.value.status_code == status
        assert client.sleeps == []

    def test_known_code_uses_friendly_message(self, make_client):
        client = make_client(Recorder(httpx.Response(404, json={'detail': 'x', 'code': 'SESSION_NOT_FOUND'})))

        with pytest.raises(NotFoundError, match='Upload session not found'):
            client.get_status('1.0.0', 'sess-1')

    def test_unknown_code_includes_detail(self, make_client):
        client = make_client(Recorder(httpx.Response(400, json={'detail': 'chunkSize too large'})))

        with pytest.raises(RequestError, match='Bad request: chunkSize too large'):
            client.get_status('1.0.0', 'sess-1')

    def test_empty_token_fails_before_sending(self, make_client):
        handler = Recorder(httpx.Response(200, json={}))
        client = make_client(handler, token='')

        with pytest.raises(AuthError):
            client.get_status('1.0.0', 'sess-1')

        assert handler.requests == []
