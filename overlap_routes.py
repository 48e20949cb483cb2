"""Flask routes for overlap queries, live preview and table builds.

JSON endpoints:
    GET  /api/overlap?first=a&second=b&style=straight[&fallback=0.1]
    GET  /api/rotation?letter=v&previous=a&style=straight
    GET  /api/tables
    GET  /api/tables/<style>
    POST /api/resolve            body: {"first", "second", "style", "rules"?}
    POST /api/tables/<style>/validate   body: {"rules"?}
    GET  /api/diagnostics

SSE endpoint:
    GET  /api/tables/<style>/build/stream?alphabet=abc[&save=1]

    Streams one event per builder batch::

        data: {"processed": 64, "total": 1296, "current_pair": "bz", "percent": 4.9}

    and a final event with ``done: true`` and the table stats. A client
    that disconnects closes the generator and the build is abandoned.

Run the dev server with ``python overlap_routes.py`` (port 5001).
"""

import json
import logging
import os
from collections.abc import Generator

from flask import Response, jsonify, request

from overlap_flask import TABLES_DIR, app, configure_logging, get_service
from overlap_lib.config import DEFAULT_ALPHABET, DEFAULT_STYLE
from overlap_lib.domain.rules import RuleSet
from overlap_lib.errors import RuleSetError, TableNotFound
from overlap_lib.lookup import iter_build_table, save_table

_logger = logging.getLogger(__name__)


def _sse_event(data: dict) -> str:
    """Format a dictionary as a Server-Sent Events data line."""
    return f'data: {json.dumps(data)}\n\n'


def _letter_param(name: str):
    """Read a single-character query parameter.

    Returns:
        tuple: (value, None) or (None, error_response).
    """
    value = request.args.get(name)
    if not value or len(value) != 1:
        return None, (jsonify(error=f"Missing or invalid ?{name}= parameter"), 400)
    return value, None


def _rules_from_body(body: dict):
    """Parse an optional 'rules' object from a JSON body.

    Returns:
        tuple: (RuleSet or None, None) or (None, error_response).
    """
    if not body or 'rules' not in body:
        return None, None
    try:
        return RuleSet.from_dict(body['rules']), None
    except RuleSetError as e:
        return None, (jsonify(error=str(e)), 400)


@app.route('/api/overlap')
def api_overlap():
    """Overlap fraction for one letter pair."""
    first, err = _letter_param('first')
    if err:
        return err
    second, err = _letter_param('second')
    if err:
        return err
    style = request.args.get('style', DEFAULT_STYLE)
    fallback = request.args.get('fallback', type=float)

    service = get_service()
    return jsonify(
        first=first, second=second, style=style,
        overlap=service.get_overlap(first, second, style, fallback),
        table=service.is_table_available(style),
    )


@app.route('/api/rotation')
def api_rotation():
    """Rotation in degrees for a letter after its predecessor."""
    letter, err = _letter_param('letter')
    if err:
        return err
    previous, err = _letter_param('previous')
    if err:
        return err
    style = request.args.get('style', DEFAULT_STYLE)
    return jsonify(letter=letter, previous=previous, style=style,
                   rotation=get_service().get_rotation(letter, previous, style))


@app.route('/api/tables')
def api_tables():
    service = get_service()
    return jsonify(tables={style: service.get_table_stats(style)
                           for style in service.registry.styles()})


@app.route('/api/tables/<style>')
def api_table_stats(style):
    service = get_service()
    table = service.registry.get(style)
    if table is None:
        return jsonify(error=f"No table for style '{style}'"), 404
    return jsonify(table.stats())


@app.route('/api/resolve', methods=['POST'])
def api_resolve():
    """Live overlap preview, optionally with unsaved rules."""
    body = request.get_json(silent=True) or {}
    first = body.get('first')
    second = body.get('second')
    if not first or not second:
        return jsonify(error="Body needs 'first' and 'second'"), 400
    rules, err = _rules_from_body(body)
    if err:
        return err

    result = get_service().resolve_pair(first, second, body.get('style', DEFAULT_STYLE), rules)
    if 'error' in result:
        return jsonify(result), 422
    return jsonify(result)


@app.route('/api/tables/<style>/validate', methods=['POST'])
def api_validate(style):
    """Compare the style's table with the current (or posted) rules."""
    rules, err = _rules_from_body(request.get_json(silent=True) or {})
    if err:
        return err
    try:
        report = get_service().validate_table(style, rules)
    except TableNotFound as e:
        return jsonify(error=str(e)), 404
    return jsonify(report)


@app.route('/api/diagnostics')
def api_diagnostics():
    service = get_service()
    return jsonify(events=service.diagnostics.events(kind=request.args.get('kind')),
                   stats=service.stats())


@app.route('/api/tables/<style>/build/stream')
def api_build_stream(style):
    """Rebuild the table for ``style`` and stream progress as SSE."""
    service = get_service()
    if service.provider is None:
        return Response(_sse_event({'error': 'No fonts configured'}),
                        mimetype='text/event-stream')

    alphabet = request.args.get('alphabet', DEFAULT_ALPHABET)
    save = request.args.get('save', '0') == '1'

    def generate() -> Generator[str, None, None]:
        gen = iter_build_table(alphabet, style, service.rules, service.provider,
                               diagnostics=service.diagnostics)
        try:
            while True:
                frame = next(gen)
                yield _sse_event(frame.to_dict())
        except StopIteration as stop:
            table = stop.value
        except Exception as e:
            _logger.exception("Streaming build for %s failed", style)
            yield _sse_event({'error': str(e)})
            return

        service.registry.register(table)
        if save:
            save_table(table, os.path.join(TABLES_DIR, f'{style}.json'))
        yield _sse_event({'done': True, **table.stats()})

    return Response(generate(), mimetype='text/event-stream',
                    headers={
                        'Cache-Control': 'no-cache',
                        'X-Accel-Buffering': 'no',
                    })


if __name__ == '__main__':
    configure_logging(level=os.environ.get('OVERLAP_LOG_LEVEL', 'INFO'))
    app.run(debug=True, host='0.0.0.0', port=5001)
