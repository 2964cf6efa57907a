import urllib.error

import pytest

from mrcoord.web.app import StatusPoller, create_app

MASTER_STATUS = {
    'map': {'total': 3, 'completed': 3, 'running': 0, 'pending': 0},
    'reduce': {'total': 2, 'completed': 1, 'running': 1, 'pending': 0},
    'phase': 'reducing',
    'job_complete': False,
    'reassignments': 1,
    'last_update': '2026-01-01T00:00:00',
}


@pytest.fixture
def poller():
    return StatusPoller('http://master.invalid/status')


def test_status_before_first_poll(poller):
    client = create_app(poller).test_client()
    data = client.get('/api/status').get_json()
    assert data['connected'] is False
    assert data['phase'] == 'unknown'
    assert data['map']['total'] == 0


def test_status_after_successful_poll(poller, monkeypatch):
    monkeypatch.setattr(poller, 'fetch', lambda: MASTER_STATUS)
    poller.poll()

    client = create_app(poller).test_client()
    data = client.get('/api/status').get_json()
    assert data['connected'] is True
    assert data['phase'] == 'reducing'
    assert data['reduce'] == MASTER_STATUS['reduce']
    assert data['reassignments'] == 1
    assert data['last_update'] is not None


def test_unreachable_master_marks_disconnected(poller, monkeypatch):
    monkeypatch.setattr(poller, 'fetch', lambda: MASTER_STATUS)
    poller.poll()

    def unreachable():
        raise urllib.error.URLError('connection refused')

    monkeypatch.setattr(poller, 'fetch', unreachable)
    poller.poll()

    snapshot = poller.snapshot()
    assert snapshot['connected'] is False
    assert snapshot['phase'] == 'reducing'


def test_index_page(poller):
    response = create_app(poller).test_client().get('/')
    assert response.status_code == 200
    assert b'MapReduce job' in response.data


def test_stream_sends_keepalive_when_status_is_unchanged(poller):
    app = create_app(poller, stream_interval=0, keepalive_interval=0)
    response = app.test_client().get('/api/stream', buffered=False)
    chunks = response.iter_encoded()

    first = next(chunks)
    second = next(chunks)
    response.close()

    assert first.startswith(b'data: ')
    assert b'"phase": "unknown"' in first
    assert second == b': keepalive\n\n'
