import logging

from flask import Blueprint, current_app, redirect, request, session, url_for

from savora.errors import AuthStartError, BackendError
from savora.middleware.auth import browser_id, get_registry

logger = logging.getLogger(__name__)

bp = Blueprint('auth', __name__)

AUTH_START_FAILED = 'Failed to start authentication. Please try again.'
AUTH_CALLBACK_FAILED = 'Sign-in did not complete. Please try again.'


def _callback_url():
    base = current_app.config.get('SITE_URL') or request.host_url
    return base.rstrip('/') + url_for('auth.callback')


def _start_oauth():
    """Return the provider url or raise AuthStartError."""
    registry = get_registry()
    provider = current_app.config['OAUTH_PROVIDER']
    try:
        backend = registry.backend_for(browser_id())
        return registry.run(backend.sign_in_with_oauth(provider, _callback_url()))
    except (BackendError, TimeoutError) as e:
        raise AuthStartError(AUTH_START_FAILED) from e


@bp.route('/login', methods=['POST'])
def login():
    """Start the OAuth redirect; failures come back as a landing-page banner."""
    try:
        provider_url = _start_oauth()
    except AuthStartError as e:
        logger.warning('OAuth start failed: %s', e.__cause__)
        session['auth_error'] = e.message
        return redirect(url_for('pages.landing'))
    return redirect(provider_url)


@bp.route('/auth/callback', methods=['GET'])
def callback():
    code = request.args.get('code')
    if not code:
        logger.info('OAuth callback without code: %s', request.args.get('error_description'))
        session['auth_error'] = AUTH_CALLBACK_FAILED
        return redirect(url_for('pages.landing'))

    registry = get_registry()
    try:
        backend = registry.backend_for(browser_id())
        registry.run(backend.exchange_code_for_session(code))
    except (BackendError, TimeoutError) as e:
        logger.warning('OAuth code exchange failed: %s', e)
        session['auth_error'] = AUTH_CALLBACK_FAILED
        return redirect(url_for('pages.landing'))

    return redirect(url_for('pages.dashboard'))


@bp.route('/logout', methods=['POST'])
def logout():
    try:
        get_registry().sign_out(browser_id())
    except (BackendError, TimeoutError) as e:
        # The local dashboard is gone either way
        logger.warning('Sign-out failed: %s', e)
    return redirect(url_for('pages.landing'))
