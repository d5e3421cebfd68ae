from .dashboard import Dashboard
from .models import Banner, Bookmark, Draft
from .store import BookmarkStore

__all__ = ['Banner', 'Bookmark', 'BookmarkStore', 'Dashboard', 'Draft']
