"""Tests for UploadSessionStore."""

import pytest

from common.hashing import compute_hash
from server import session_store as session_store_module
from server.exceptions import InvalidChunkError
from server.session_store import UploadSessionStore

SLUG = 'test-pack'
VERSION = '1.0.0'


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return UploadSessionStore(clock=clock)


def upload(store, data, chunk_size, upload_type='icons'):
    """Start a session and store every chunk, without completing it."""
    session = store.start_session(SLUG, VERSION, upload_type, len(data), chunk_size, final_hash=compute_hash(data))
    for index in range(session.total_chunks):
        chunk = data[index * chunk_size:(index + 1) * chunk_size]
        store.put_chunk(session.session_id, SLUG, VERSION, index, chunk, compute_hash(chunk))
    return session


def test_chunk_after_complete_is_rejected(store):
    """Test a completed session accepts no more chunks."""
    session = upload(store, b'abcdef', 3)
    store.complete(session.session_id, SLUG, VERSION, compute_hash(b'abcdef'))

    with pytest.raises(InvalidChunkError, match='already complete'):
        store.put_chunk(session.session_id, SLUG, VERSION, 0, b'abc')

    assert session.chunks == {}


def test_chunk_racing_complete_is_not_stored(store, monkeypatch):
    """Test a chunk whose write loses the race against complete() is rejected."""
    data = b'abcdef'
    session = upload(store, data, 3)
    real_compute_hash = session_store_module.compute_hash

    def complete_then_hash(chunk):
        # complete() runs while the late chunk is between validation and write
        monkeypatch.setattr(session_store_module, 'compute_hash', real_compute_hash)
        store.complete(session.session_id, SLUG, VERSION, compute_hash(data))
        return real_compute_hash(chunk)

    monkeypatch.setattr(session_store_module, 'compute_hash', complete_then_hash)

    with pytest.raises(InvalidChunkError, match='already complete'):
        store.put_chunk(session.session_id, SLUG, VERSION, 1, b'def', compute_hash(b'def'))

    assert session.chunks == {}
    assert store.get_completed(SLUG, VERSION, 'icons').data == data


def test_resent_chunk_is_reported_as_duplicate(store):
    """Test identical bytes for a stored index count as a duplicate."""
    session = store.start_session(SLUG, VERSION, 'items', 6, 3)

    assert store.put_chunk(session.session_id, SLUG, VERSION, 1, b'def') is False
    assert store.put_chunk(session.session_id, SLUG, VERSION, 1, b'def') is True


def test_expire_stale_prunes_sessions_and_payloads(store, clock):
    """Test old sessions and completed payloads are both dropped."""
    session = upload(store, b'abcdef', 3)
    store.complete(session.session_id, SLUG, VERSION, compute_hash(b'abcdef'))
    clock.now += 100
    fresh = store.start_session(SLUG, VERSION, 'items', 3, 3)

    removed = store.expire_stale(ttl_seconds=50)

    assert removed == 1
    assert not store.check_exists(SLUG, VERSION, 'icons')
    assert store.get_session(fresh.session_id, SLUG, VERSION) is fresh


def test_expire_stale_keeps_recent_payloads(store, clock):
    """Test payloads inside the TTL still count as existing."""
    session = upload(store, b'abcdef', 3)
    store.complete(session.session_id, SLUG, VERSION, compute_hash(b'abcdef'))
    clock.now += 10

    assert store.expire_stale(ttl_seconds=50) == 0
    assert store.check_exists(SLUG, VERSION, 'icons')
