import logging
import uuid
from functools import wraps

from flask import current_app, g, jsonify, redirect, session, url_for

from savora.errors import BackendError

logger = logging.getLogger(__name__)


def get_registry():
    return current_app.extensions['savora']


def browser_id():
    """Random per-browser key stored in the signed session cookie."""
    if 'browser_id' not in session:
        session['browser_id'] = uuid.uuid4().hex
        session.permanent = True
    return session['browser_id']


def _load_dashboard():
    try:
        dashboard = get_registry().dashboard_for(browser_id())
    except (BackendError, TimeoutError) as e:
        logger.warning('Could not load dashboard: %s', e)
        return None
    if dashboard is None:
        return None
    g.dashboard = dashboard
    g.user_id = dashboard.user_id
    g.user_email = dashboard.session.email if dashboard.session else ''
    return dashboard


def require_auth(f):
    """JSON endpoints: 401 unless the browser has a live dashboard."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if _load_dashboard() is None:
            return jsonify({
                'error': 'Sign in to continue',
                'error_code': 'SESSION_REQUIRED',
                'redirect': url_for('pages.landing'),
            }), 401
        return f(*args, **kwargs)
    return decorated


def require_page_auth(f):
    """Page routes: redirect to the landing page unless signed in."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if _load_dashboard() is None:
            return redirect(url_for('pages.landing'))
        return f(*args, **kwargs)
    return decorated
