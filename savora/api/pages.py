import logging

from flask import Blueprint, current_app, g, redirect, render_template_string, session, url_for

from savora.dashboard.presentation import build_view
from savora.errors import BackendError
from savora.middleware.auth import browser_id, get_registry, require_page_auth

logger = logging.getLogger(__name__)

bp = Blueprint('pages', __name__)

BASE_STYLE = '''
    body { font-family: system-ui, sans-serif; background: #faf9f7; color: #1c1917; margin: 0; }
    .container { max-width: 56rem; margin: 0 auto; padding: 2rem 1rem; }
    .brand { display: flex; align-items: center; gap: .75rem; }
    .brand .mark { width: 2.5rem; height: 2.5rem; border-radius: .5rem; background: #1c1917; color: #faf9f7;
                   display: flex; align-items: center; justify-content: center; font-size: 1.25rem; }
    .brand h1 { font-weight: 300; margin: 0; }
    .banner { display: flex; justify-content: space-between; gap: 1rem; padding: .75rem 1rem;
              border-radius: .5rem; background: #fee2e2; color: #b91c1c; margin-bottom: 1.5rem; }
    .banner button { background: none; border: 0; color: inherit; cursor: pointer; }
    button.primary { padding: .75rem 1.5rem; border: 0; border-radius: .5rem; background: #1c1917;
                     color: #faf9f7; font-weight: 500; cursor: pointer; }
    .muted { color: #78716c; }
'''

LANDING_TEMPLATE = '''
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Savora</title>
    <style>{{ style|safe }}
        .landing { min-height: 100vh; display: flex; align-items: center; justify-content: center; }
        .card { width: 100%; max-width: 28rem; text-align: center; }
        .card form button { width: 100%; }
    </style>
</head>
<body>
    <div class="landing">
        <div class="card">
            <div class="brand" style="justify-content:center"><div class="mark">&#10022;</div></div>
            <h1 style="font-weight:300;font-size:2.25rem;margin-bottom:.5rem">Savora</h1>
            <p class="muted">Curate, organize, and discover your finest links</p>
            {% if error %}
            <div class="banner" id="banner" role="alert">
                <span>{{ error }}</span>
                <button type="button" aria-label="Dismiss" onclick="this.parentElement.remove()">&#10005;</button>
            </div>
            {% endif %}
            <form method="post" action="{{ url_for('auth.login') }}">
                <button class="primary" type="submit">Continue with {{ provider|capitalize }}</button>
            </form>
        </div>
    </div>
</body>
</html>
'''

DASHBOARD_TEMPLATE = '''
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Savora &middot; Dashboard</title>
    <style>{{ style|safe }}
        header { border-bottom: 1px solid #e7e5e4; }
        header .container { display: flex; justify-content: space-between; align-items: center; padding-top: 1.5rem; padding-bottom: 1.5rem; }
        .live { font-size: .65rem; letter-spacing: .05em; text-transform: uppercase; color: #15803d; }
        .stats { display: grid; grid-template-columns: repeat(3, 1fr); gap: 1rem; margin-bottom: 2rem; }
        .stat { padding: 1rem; border: 1px solid #e7e5e4; border-radius: 1rem; background: #fff; }
        .stat p { margin: 0; }
        .stat .label { font-size: .7rem; text-transform: uppercase; color: #78716c; }
        .stat .value { font-size: 1.1rem; font-weight: 600; overflow: hidden; text-overflow: ellipsis; }
        form.add { display: grid; grid-template-columns: 1fr 1fr auto; gap: 1rem; margin-bottom: 2rem; }
        input { padding: .75rem 1rem; border: 1px solid #e7e5e4; border-radius: .5rem; font: inherit; }
        .search { width: 100%; box-sizing: border-box; margin-bottom: 1.5rem; }
        .cards { display: grid; gap: 1rem; }
        .bookmark { display: flex; gap: 1rem; align-items: flex-start; padding: 1.25rem; border: 1px solid #e7e5e4;
                    border-radius: 1rem; background: #fff; }
        .bookmark.pending { opacity: .6; }
        .bookmark img { width: 1.5rem; height: 1.5rem; }
        .bookmark .body { flex: 1; min-width: 0; }
        .bookmark h3 { margin: 0; font-size: 1rem; }
        .bookmark a { color: inherit; text-decoration: none; }
        .tag { font-size: .65rem; padding: .1rem .5rem; border-radius: 999px; border: 1px solid #e7e5e4; }
        .actions button { background: none; border: 0; cursor: pointer; color: #78716c; }
        .empty { text-align: center; padding: 5rem 1rem; }
        dialog { border: 1px solid #e7e5e4; border-radius: 1.5rem; padding: 1.5rem; width: 24rem; }
        dialog input { width: 100%; box-sizing: border-box; margin-bottom: 1rem; }
    </style>
</head>
<body>
    <header>
        <div class="container">
            <div>
                <div class="brand"><div class="mark">&#10022;</div><h1>Savora</h1></div>
                <p class="muted">Welcome back, {{ view.user.email }}</p>
            </div>
            <div style="display:flex;gap:1rem;align-items:center">
                <span class="live" id="live" {% if not view.live %}hidden{% endif %}>&#9679; Live sync active</span>
                <form method="post" action="{{ url_for('auth.logout') }}">
                    <button type="submit" class="actions" style="color:#b91c1c;background:none;border:0;cursor:pointer">Sign Out</button>
                </form>
            </div>
        </div>
    </header>
    <main class="container">
        <div id="banner"></div>
        <div class="stats" id="stats"></div>
        <form class="add" id="add-form">
            <input type="text" name="title" placeholder="e.g., Design Inspiration" required>
            <input type="url" name="url" placeholder="https://example.com" required>
            <button class="primary" type="submit">+ Save Bookmark</button>
        </form>
        <input class="search" id="search" type="search" placeholder="Search by title or URL">
        <h2 style="font-weight:500;font-size:1.1rem">Your Collection <span class="muted" id="count"></span></h2>
        <div class="cards" id="cards"></div>
    </main>

    <dialog id="edit-dialog">
        <form method="dialog" id="edit-form">
            <h2 style="margin-top:0">Edit Bookmark</h2>
            <input type="hidden" name="bookmark_id">
            <label class="muted">Title</label>
            <input type="text" name="title" required>
            <label class="muted">URL</label>
            <input type="url" name="url" required>
            <div style="display:flex;gap:.75rem">
                <button type="button" id="edit-cancel">Cancel</button>
                <button class="primary" type="submit">Save Changes</button>
            </div>
        </form>
    </dialog>

    <script>
    let view = {{ view|tojson }};
    let query = '';
    const byId = (id) => document.getElementById(id);

    function esc(text) {
        const div = document.createElement('div');
        div.textContent = text == null ? '' : String(text);
        return div.innerHTML;
    }

    function render(next) {
        view = next;
        byId('live').hidden = !view.live;
        byId('banner').innerHTML = view.banner ? (
            '<div class="banner" role="alert"><span>' + esc(view.banner.message) + '</span>' +
            '<button type="button" aria-label="Dismiss" data-dismiss>&#10005;</button></div>') : '';
        const s = view.stats;
        byId('stats').innerHTML = [
            ['Total Bookmarks', s.total], ['Top Source', s.top_source], ['Last Added', s.last_added_label],
        ].map(([label, value]) =>
            '<div class="stat"><p class="label">' + label + '</p><p class="value">' + esc(value) + '</p></div>'
        ).join('');
        byId('count').textContent = view.empty ? '' : '(' + view.count_label + ')';

        if (view.empty) {
            byId('cards').innerHTML = '<div class="empty"><h2>No bookmarks yet</h2><p class="muted">' +
                'Your digital oasis is looking a bit empty. Start curating your favorite links.</p></div>';
            return;
        }
        if (view.no_matches) {
            byId('cards').innerHTML = '<p class="empty muted">No bookmarks match &ldquo;' + esc(view.query) + '&rdquo;</p>';
            return;
        }
        byId('cards').innerHTML = view.bookmarks.map((b) =>
            '<div class="bookmark' + (b.pending ? ' pending' : '') + '">' +
            '<img src="' + esc(b.favicon_url) + '" alt="">' +
            '<div class="body"><a href="' + esc(b.url) + '" target="_blank" rel="noopener noreferrer"><h3>' +
            esc(b.title) + '</h3></a><p class="muted" style="margin:.25rem 0">' + esc(b.hostname) + '</p>' +
            '<span class="tag">' + esc(b.tag) + '</span> <small class="muted">' + esc(b.created_label) + '</small></div>' +
            '<div class="actions">' +
            '<button type="button" data-edit="' + esc(b.id) + '" title="Edit Bookmark">&#9998;</button>' +
            '<button type="button" data-delete="' + esc(b.id) + '" title="Delete Bookmark">&#10005;</button>' +
            '</div></div>'
        ).join('');
    }

    async function api(method, path, body) {
        const resp = await fetch(path, {
            method,
            headers: {'Content-Type': 'application/json'},
            body: body === undefined ? undefined : JSON.stringify(body),
        });
        const data = await resp.json().catch(() => ({}));
        if (resp.status === 401) {
            window.location.replace(data.redirect || '/');
            return null;
        }
        if (data.view) render(data.view);
        return data;
    }

    const refresh = () => api('GET', '/api/bookmarks?q=' + encodeURIComponent(query));

    let draftTimer = null;
    byId('add-form').addEventListener('submit', (e) => {
        e.preventDefault();
        clearTimeout(draftTimer);
        const form = e.target;
        const fields = form.elements;
        const body = {title: fields['title'].value, url: fields['url'].value};
        form.reset();
        api('POST', '/api/bookmarks', body);
    });

    byId('add-form').addEventListener('input', (e) => {
        const fields = e.currentTarget.elements;
        clearTimeout(draftTimer);
        draftTimer = setTimeout(() => api('PUT', '/api/draft',
            {title: fields['title'].value, url: fields['url'].value}), 400);
    });

    byId('search').addEventListener('input', (e) => { query = e.target.value; refresh(); });

    document.addEventListener('click', (e) => {
        const target = e.target.closest('button');
        if (!target) return;
        if (target.dataset.dismiss !== undefined) api('DELETE', '/api/banner');
        if (target.dataset.delete) api('DELETE', '/api/bookmarks/' + encodeURIComponent(target.dataset.delete));
        if (target.dataset.edit) {
            const b = view.bookmarks.find((item) => item.id === target.dataset.edit);
            const fields = byId('edit-form').elements;
            fields['bookmark_id'].value = b.id;
            fields['title'].value = b.title;
            fields['url'].value = b.url;
            byId('edit-dialog').showModal();
        }
    });

    byId('edit-cancel').addEventListener('click', () => byId('edit-dialog').close());
    byId('edit-form').addEventListener('submit', () => {
        const fields = byId('edit-form').elements;
        api('PATCH', '/api/bookmarks/' + encodeURIComponent(fields['bookmark_id'].value),
            {title: fields['title'].value, url: fields['url'].value});
    });

    const events = new EventSource('/api/stream');
    events.onmessage = (e) => { if (JSON.parse(e.data).version !== view.version) refresh(); };
    events.addEventListener('session', (e) => {
        events.close();
        window.location.replace(JSON.parse(e.data).redirect || '/');
    });

    const addFields = byId('add-form').elements;
    addFields['title'].value = view.draft.title;
    addFields['url'].value = view.draft.url;
    render(view);
    </script>
</body>
</html>
'''


@bp.route('/', methods=['GET'])
def landing():
    """Unauthenticated landing page; signed-in browsers go straight to the dashboard."""
    try:
        if get_registry().has_session(browser_id()):
            return redirect(url_for('pages.dashboard'))
    except (BackendError, TimeoutError) as e:
        logger.warning('Session check failed on landing page: %s', e)

    return render_template_string(
        LANDING_TEMPLATE,
        style=BASE_STYLE,
        error=session.pop('auth_error', None),
        provider=current_app.config['OAUTH_PROVIDER'],
    )


@bp.route('/dashboard', methods=['GET'])
@require_page_auth
def dashboard():
    view = get_registry().call(build_view, g.dashboard, '')
    return render_template_string(DASHBOARD_TEMPLATE, style=BASE_STYLE, view=view)
