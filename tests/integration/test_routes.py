"""Integration tests for the overlap Flask routes.

The ``flask_client`` fixture injects an OverlapService backed by synthetic
glyphs, so no font files or table directory are needed.
"""

import json

import pytest

from overlap_lib.lookup.serialization import load_table

pytestmark = pytest.mark.integration


def _sse_frames(response):
    """Decode every ``data:`` line of an event-stream response."""
    frames = []
    for line in response.get_data(as_text=True).splitlines():
        if line.startswith('data: '):
            frames.append(json.loads(line[len('data: '):]))
    return frames


class TestOverlapQuery:

    def test_fallback_without_table(self, flask_client):
        client, _ = flask_client
        resp = client.get('/api/overlap?first=a&second=b&style=straight')
        assert resp.status_code == 200
        data = resp.get_json()
        assert data['overlap'] == 0.12
        assert data['table'] is False

    def test_explicit_fallback(self, flask_client):
        client, _ = flask_client
        data = client.get('/api/overlap?first=a&second=b&style=bubble&fallback=0.07').get_json()
        assert data['overlap'] == 0.07

    def test_table_value(self, flask_client):
        client, service = flask_client
        service.build_table('straight', alphabet='ab')
        data = client.get('/api/overlap?first=a&second=b').get_json()
        assert data['table'] is True
        assert data['overlap'] == pytest.approx(0.12)

    def test_missing_letter(self, flask_client):
        client, _ = flask_client
        assert client.get('/api/overlap?first=a').status_code == 400
        assert client.get('/api/overlap?first=ab&second=c').status_code == 400

    def test_rotation(self, flask_client):
        client, _ = flask_client
        data = client.get('/api/rotation?letter=a&previous=v').get_json()
        assert data['rotation'] == 0.0
        assert client.get('/api/rotation?letter=a').status_code == 400


class TestTables:

    def test_list_and_stats(self, flask_client):
        client, service = flask_client
        assert client.get('/api/tables').get_json() == {'tables': {}}
        service.build_table('straight', alphabet='abc')

        tables = client.get('/api/tables').get_json()['tables']
        assert tables['straight']['entry_count'] == 9

        stats = client.get('/api/tables/straight').get_json()
        assert stats['complete'] is True
        assert client.get('/api/tables/bubble').status_code == 404

    def test_validate(self, flask_client):
        client, service = flask_client
        service.build_table('straight', alphabet='ab')
        body = {'rules': {
            'default': {'min_overlap': 0.04, 'max_overlap': 0.12},
            'letters': {'a': {'min_overlap': 0.04, 'max_overlap': 0.12,
                              'special_cases': {'b': 0.3}}},
        }}
        resp = client.post('/api/tables/straight/validate', json=body)
        assert resp.status_code == 200
        report = resp.get_json()
        assert report['ok'] is False
        assert report['conflicts'][0]['expected'] == 0.3

    def test_validate_missing_table(self, flask_client):
        client, _ = flask_client
        assert client.post('/api/tables/bubble/validate', json={}).status_code == 404

    def test_validate_invalid_rules(self, flask_client):
        client, service = flask_client
        service.build_table('straight', alphabet='ab')
        body = {'rules': {'default': {'min_overlap': 0.5, 'max_overlap': 0.1}}}
        assert client.post('/api/tables/straight/validate', json=body).status_code == 400


class TestResolve:

    def test_preview(self, flask_client):
        client, _ = flask_client
        resp = client.post('/api/resolve', json={'first': 'a', 'second': 'b'})
        assert resp.status_code == 200
        assert resp.get_json()['overlap'] == pytest.approx(0.12)

    def test_preview_with_rules(self, flask_client):
        client, _ = flask_client
        body = {'first': 'a', 'second': 'b',
                'rules': {'default': {'min_overlap': 0.01, 'max_overlap': 0.03}}}
        assert client.post('/api/resolve', json=body).get_json()['overlap'] == pytest.approx(0.03)

    def test_missing_fields(self, flask_client):
        client, _ = flask_client
        assert client.post('/api/resolve', json={'first': 'a'}).status_code == 400

    def test_unavailable_glyph(self, flask_client):
        client, _ = flask_client
        resp = client.post('/api/resolve', json={'first': 'a', 'second': 'q'})
        assert resp.status_code == 422
        assert 'error' in resp.get_json()


class TestBuildStream:

    def test_streams_progress_and_registers(self, flask_client):
        client, service = flask_client
        resp = client.get('/api/tables/straight/build/stream?alphabet=abc')
        assert resp.mimetype == 'text/event-stream'
        frames = _sse_frames(resp)
        assert frames[-1]['done'] is True
        assert frames[-1]['entry_count'] == 9
        assert frames[-2]['processed'] == 9
        assert service.is_table_available('straight')

    def test_save(self, flask_client, tmp_path):
        client, _ = flask_client
        _sse_frames(client.get('/api/tables/straight/build/stream?alphabet=ab&save=1'))
        table = load_table(tmp_path / 'straight.json')
        assert table.entry_count == 4

    def test_no_fonts(self, flask_client, rules):
        import overlap_flask
        from overlap_lib.api import OverlapService

        client, _ = flask_client
        overlap_flask.set_service(OverlapService(rules))
        frames = _sse_frames(client.get('/api/tables/straight/build/stream'))
        assert frames == [{'error': 'No fonts configured'}]


class TestDiagnostics:

    def test_reports_absorbed_failures(self, flask_client):
        client, _ = flask_client
        _sse_frames(client.get('/api/tables/straight/build/stream?alphabet=aq'))
        data = client.get('/api/diagnostics?kind=glyph_unavailable').get_json()
        assert len(data['events']) == 1
        assert data['events'][0]['details']['letter'] == 'q'
        assert 'cache' in data['stats']
