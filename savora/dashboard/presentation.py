"""Derived view state for the dashboard.

Everything here is computed from the store contents and never mutates it.
Malformed urls never raise: they fall back to the raw url string.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import quote, urlparse

_SMART_TAGS = (
    ('Video', ('youtube.com', 'vimeo.com')),
    ('Code', ('github.com', 'gitlab.com')),
    ('Article', ('medium.com', 'substack.com')),
    ('Design', ('figma.com', 'dribbble.com')),
    ('Social', ('twitter.com', 'x.com', 'linkedin.com')),
)


@dataclass(frozen=True)
class Stats:
    total: int
    top_source: str | None
    last_added: datetime | None


def display_hostname(url: str) -> str:
    try:
        host = urlparse(url).hostname
    except ValueError:
        return url
    if not host:
        return url
    return host[4:] if host.startswith('www.') else host


def _matches_domain(host, domain):
    return host == domain or host.endswith('.' + domain)


def smart_tag(url: str) -> str:
    try:
        host = (urlparse(url).hostname or '').lower()
    except ValueError:
        return 'Link'
    for tag, domains in _SMART_TAGS:
        if any(_matches_domain(host, domain) for domain in domains):
            return tag
    return 'Link'


def favicon_url(url: str) -> str:
    return f'https://favicon.clearbit.com/{quote(display_hostname(url), safe=".-")}'


def top_source(bookmarks) -> str | None:
    """Most frequent hostname; ties go to the host seen first."""
    counts = {}
    for bookmark in bookmarks:
        host = display_hostname(bookmark.url)
        counts[host] = counts.get(host, 0) + 1
    if not counts:
        return None
    # dicts keep insertion order, so max() returns the first-seen host on ties
    return max(counts, key=counts.get)


def compute_stats(bookmarks) -> Stats:
    bookmarks = list(bookmarks)
    return Stats(
        total=len(bookmarks),
        top_source=top_source(bookmarks),
        last_added=bookmarks[0].created_at if bookmarks else None,
    )


def filter_bookmarks(bookmarks, query):
    """Case-insensitive substring match on title or url."""
    needle = (query or '').lower()
    if not needle:
        return list(bookmarks)
    return [
        b for b in bookmarks
        if needle in b.title.lower() or needle in b.url.lower()
    ]


def relative_time(moment, now=None) -> str:
    now = now or datetime.now(timezone.utc)
    seconds = max(0, (now - moment).total_seconds())
    minutes = round(seconds / 60)
    hours = round(seconds / 3600)
    days = round(seconds / 86400)

    if seconds < 30:
        return 'less than a minute ago'
    if minutes <= 1:
        return '1 minute ago'
    if minutes < 45:
        return f'{minutes} minutes ago'
    if minutes < 90:
        return 'about 1 hour ago'
    if hours < 24:
        return f'about {hours} hours ago'
    if hours < 42:
        return '1 day ago'
    if days < 30:
        return f'{days} days ago'
    if days < 45:
        return 'about 1 month ago'
    if days < 365:
        return f'{round(days / 30)} months ago'
    years = round(days / 365)
    return 'about 1 year ago' if years <= 1 else f'about {years} years ago'


def collection_label(count: int) -> str:
    return '1 item' if count == 1 else f'{count} items'


def bookmark_card(bookmark, now=None) -> dict:
    card = bookmark.to_dict()
    card.update({
        'hostname': display_hostname(bookmark.url),
        'tag': smart_tag(bookmark.url),
        'favicon_url': favicon_url(bookmark.url),
        'created_label': relative_time(bookmark.created_at, now),
    })
    return card


def build_view(dashboard, query='', now=None) -> dict:
    """Assemble the full dashboard view model served to the page."""
    bookmarks = dashboard.store.items
    visible = filter_bookmarks(bookmarks, query)
    stats = compute_stats(bookmarks)
    session = dashboard.session

    return {
        'version': dashboard.store.version,
        'user': {
            'id': session.user_id if session else None,
            'email': session.email if session else None,
        },
        'loading': dashboard.loading,
        'live': dashboard.live_sync,
        'query': query or '',
        'stats': {
            'total': stats.total,
            'top_source': stats.top_source or 'None',
            'last_added': stats.last_added.isoformat() if stats.last_added else None,
            'last_added_label': relative_time(stats.last_added, now) if stats.last_added else 'Never',
        },
        'count_label': collection_label(len(bookmarks)),
        'bookmarks': [bookmark_card(b, now) for b in visible],
        'empty': not bookmarks,
        'no_matches': bool(bookmarks) and not visible,
        'banner': dashboard.banner.to_dict() if dashboard.banner else None,
        'draft': dashboard.draft.to_dict(),
    }
