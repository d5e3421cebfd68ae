import json
import logging
import queue

from flask import Blueprint, Response, current_app, g, jsonify, request

from savora.dashboard.presentation import build_view
from savora.errors import MutationError, SavoraError
from savora.middleware.auth import get_registry, require_auth

logger = logging.getLogger(__name__)

bp = Blueprint('bookmarks', __name__, url_prefix='/api')


def _view():
    return get_registry().call(build_view, g.dashboard, request.args.get('q', ''))


def _error_response(e):
    body = {'error': e.message, 'error_code': e.error_code}
    if isinstance(e, MutationError):
        body['operation'] = e.operation
        body['retryable'] = e.retryable
        if g.dashboard.banner:
            body['banner'] = g.dashboard.banner.to_dict()
    body['view'] = _view()
    return jsonify(body), e.status_code


def _timeout_response():
    return jsonify({
        'error': 'The server took too long to respond. Your change may still be saving.',
        'error_code': 'BACKEND_TIMEOUT',
        'view': _view(),
    }), 504


def _run(coro):
    return get_registry().run(coro)


@bp.route('/bookmarks', methods=['GET'])
@require_auth
def list_bookmarks():
    """Dashboard view model; ``?q=`` filters by title or url."""
    return jsonify(_view())


@bp.route('/bookmarks', methods=['POST'])
@require_auth
def create_bookmark():
    """Optimistically add a bookmark.

    Accepts: { title, url }
    Returns 201 with the confirmed bookmark, or 502 after the placeholder
    has been removed.
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'Request body is required'}), 400

    try:
        bookmark = _run(g.dashboard.create(data.get('title'), data.get('url')))
    except SavoraError as e:
        return _error_response(e)
    except TimeoutError:
        return _timeout_response()

    return jsonify({'bookmark': bookmark.to_dict(), 'view': _view()}), 201


@bp.route('/bookmarks/<bookmark_id>', methods=['PATCH'])
@require_auth
def update_bookmark(bookmark_id):
    """Edit title and/or url; the whole list is restored if the backend refuses."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'Request body is required'}), 400

    try:
        bookmark = _run(g.dashboard.update(
            bookmark_id, title=data.get('title'), url=data.get('url'),
        ))
    except SavoraError as e:
        return _error_response(e)
    except TimeoutError:
        return _timeout_response()

    return jsonify({'bookmark': bookmark.to_dict(), 'view': _view()})


@bp.route('/bookmarks/<bookmark_id>', methods=['DELETE'])
@require_auth
def delete_bookmark(bookmark_id):
    try:
        _run(g.dashboard.delete(bookmark_id))
    except SavoraError as e:
        return _error_response(e)
    except TimeoutError:
        return _timeout_response()

    return jsonify({'ok': True, 'view': _view()})


@bp.route('/banner', methods=['DELETE'])
@require_auth
def dismiss_banner():
    get_registry().call(g.dashboard.dismiss_banner)
    return jsonify({'ok': True, 'view': _view()})


@bp.route('/draft', methods=['PUT'])
@require_auth
def save_draft():
    """Remember what the user has typed into the add form."""
    data = request.get_json(silent=True) or {}
    get_registry().call(g.dashboard.set_draft, data.get('title', ''), data.get('url', ''))
    return jsonify({'draft': g.dashboard.draft.to_dict()})


def _sse(payload, event=None):
    prefix = f'event: {event}\n' if event else ''
    return f'{prefix}data: {json.dumps(payload)}\n\n'


@bp.route('/stream', methods=['GET'])
@require_auth
def stream():
    """Server-sent events: one message per store version.

    The page refetches ``/api/bookmarks`` on each message. A ``session``
    event tells the page to navigate away once the dashboard is torn down.
    """
    registry = get_registry()
    dashboard = g.dashboard
    keepalive = current_app.config['STREAM_KEEPALIVE']
    updates = queue.Queue()
    remove = registry.call(dashboard.store.add_listener, updates.put_nowait)

    def events():
        registry.call(dashboard.open_stream)
        try:
            yield _sse({'version': dashboard.store.version})
            while True:
                if dashboard.torn_down:
                    yield _sse({'redirect': dashboard.redirect_to or '/'}, event='session')
                    return
                try:
                    version = updates.get(timeout=keepalive)
                except queue.Empty:
                    dashboard.touch()
                    yield ': keepalive\n\n'
                    continue
                if not dashboard.torn_down:
                    yield _sse({'version': version})
        finally:
            if registry.runtime.running:
                registry.call(remove)
                registry.call(dashboard.close_stream)

    return Response(events(), mimetype='text/event-stream', headers={
        'Cache-Control': 'no-cache',
        'X-Accel-Buffering': 'no',
    })
