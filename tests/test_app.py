import json
import time

import pytest

import app as app_module
from core.models import GenerationError


@pytest.fixture
def client():
    app_module.app.config.update(TESTING=True, GEMINI_API_KEY='', PROGRESS_DELAY=0)
    app_module.scan_results.clear()
    app_module.scan_status.clear()
    app_module.client_state.clear()
    with app_module.app.test_client() as client:
        yield client


def wait_for(client, scan_id, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        status = client.get(f'/scan_status/{scan_id}').get_json()
        if status['status'] != 'running':
            return status
        time.sleep(0.01)
    raise AssertionError(f'scan {scan_id} did not finish')


def start(client, count):
    response = client.post('/start_scan', json={'count': count})
    assert response.status_code == 200
    return response.get_json()['scan_id']


def test_index_renders_dashboard(client):
    response = client.get('/')
    assert response.status_code == 200
    assert b'IP-CORE' in response.data
    assert b'max="300"' in response.data


def test_scan_completes_with_requested_count(client):
    scan_id = start(client, 10)
    status = wait_for(client, scan_id)

    assert status['status'] == 'completed'
    assert status['progress'] == 100
    assert len(status['ips']) == 10
    pings = [item['ping'] for item in status['ips']]
    assert pings == sorted(pings)
    assert status['summary']['found'] == 10
    assert status['summary']['total_unique'] == 10

    results = client.get(f'/api/results/{scan_id}').get_json()
    assert results['requested_count'] == 10
    assert results['stats']['synthesized'] == 10


def test_seen_set_accumulates_across_scans(client):
    first = wait_for(client, start(client, 20))
    second = wait_for(client, start(client, 20))

    first_ips = {item['ip'] for item in first['ips']}
    second_ips = {item['ip'] for item in second['ips']}
    assert not first_ips & second_ips
    assert second['summary']['total_unique'] == 40
    assert client.get('/api/session').get_json() == {'total_unique': 40, 'active_scan': None}


def test_sessions_are_isolated(client):
    wait_for(client, start(client, 5))
    with app_module.app.test_client() as other:
        assert other.get('/api/session').get_json()['total_unique'] == 0


@pytest.mark.parametrize('payload', [{'count': 0}, {'count': 301}, {'count': 'many'}, {'count': None}])
def test_invalid_count(client, payload):
    response = client.post('/start_scan', json=payload)
    assert response.status_code == 400
    assert 'error' in response.get_json()


@pytest.mark.parametrize('body', ['{"count": 1e999}', '{"count": -1e999}', '{"count": Infinity}', '{"count": NaN}'])
def test_non_finite_count(client, body):
    response = client.post('/start_scan', data=body, content_type='application/json')
    assert response.status_code == 400
    assert 'error' in response.get_json()


@pytest.mark.parametrize('payload', [[5], '5', 5, [{'count': 5}]])
def test_non_object_body(client, payload):
    response = client.post('/start_scan', json=payload)
    assert response.status_code == 400
    assert response.get_json() == {'error': 'Request body must be a JSON object'}
    assert app_module.client_state == {}


def test_second_scan_while_running_is_rejected(client):
    with client.session_transaction() as sess:
        sess['client_id'] = 'busy-client'
    app_module.client_state['busy-client'] = {'seen': frozenset(), 'active_scan': 'scan-in-flight'}

    response = client.post('/start_scan', json={'count': 5})
    assert response.status_code == 409
    assert response.get_json()['scan_id'] == 'scan-in-flight'


def test_generation_failure_is_reported(client, monkeypatch):
    class ExhaustedBuilder:
        stats = {}

        def __init__(self, *args, **kwargs):
            pass

        def build_pool(self, count, seen, progress=None):
            raise GenerationError('prefix table exhausted')

    monkeypatch.setattr(app_module, 'AddressPoolBuilder', ExhaustedBuilder)

    status = wait_for(client, start(client, 5))
    assert status['status'] == 'error'
    assert status['error'] == 'Generation failed, retry'
    assert status['ips'] == []
    assert client.get('/api/session').get_json() == {'total_unique': 0, 'active_scan': None}


def test_exports(client):
    scan_id = start(client, 8)
    wait_for(client, scan_id)

    text = client.get(f'/export/{scan_id}?format=txt')
    assert text.status_code == 200
    assert len(text.get_data(as_text=True).splitlines()) == 8

    report = client.get(f'/export/{scan_id}?format=json')
    assert json.loads(report.data)['statistics']['found'] == 8

    pdf = client.get(f'/export/{scan_id}?format=pdf')
    assert pdf.headers['Content-Type'] == 'application/pdf'
    assert pdf.data.startswith(b'%PDF')

    assert client.get(f'/export/{scan_id}?format=xml').status_code == 400


def test_unknown_scan_ids(client):
    assert client.get('/scan_status/nope').status_code == 404
    assert client.get('/api/results/nope').status_code == 404
    assert client.get('/export/nope').status_code == 404


def test_health_and_capabilities(client):
    assert client.get('/health').get_json()['ai_enabled'] is False
    assert client.get('/api/capabilities').get_json()['max_count'] == 300


def test_oldest_finished_scans_are_evicted(client, monkeypatch):
    monkeypatch.setitem(app_module.app.config, 'MAX_STORED_SCANS', 2)

    first = start(client, 3)
    wait_for(client, first)
    second = start(client, 3)
    wait_for(client, second)
    third = start(client, 3)
    wait_for(client, third)

    assert client.get(f'/scan_status/{first}').status_code == 404
    assert client.get(f'/export/{first}').status_code == 404
    assert client.get(f'/scan_status/{second}').status_code == 200
    assert client.get(f'/api/results/{third}').status_code == 200
    assert set(app_module.scan_status) == set(app_module.scan_results) == {second, third}
    assert client.get('/api/session').get_json()['total_unique'] == 9


def test_running_scans_are_never_evicted(client, monkeypatch):
    monkeypatch.setitem(app_module.app.config, 'MAX_STORED_SCANS', 1)
    app_module.scan_status['other-scan'] = {'status': 'running'}
    app_module.scan_results['other-scan'] = {'ips': [], 'seen_total': 0}

    scan_id = start(client, 3)
    wait_for(client, scan_id)

    assert 'other-scan' in app_module.scan_status
