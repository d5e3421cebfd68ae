import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-only-change-me')
    SUPABASE_URL = os.environ.get('SUPABASE_URL', '')
    SUPABASE_PUBLISHABLE_KEY = os.environ.get('SUPABASE_PUBLISHABLE_KEY', '')
    OAUTH_PROVIDER = os.environ.get('OAUTH_PROVIDER', 'google')
    # Base url the OAuth provider sends users back to; falls back to the request host
    SITE_URL = os.environ.get('SITE_URL', '')

    PORT = int(os.environ.get('PORT', '5000'))
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    LANDING_ROUTE = '/'

    BOOKMARKS_TABLE = 'bookmarks'
    REALTIME_CHANNEL = 'bookmarks-changes'

    # Dashboard runtime settings
    BACKEND_TIMEOUT = int(os.environ.get('BACKEND_TIMEOUT', '15'))
    DASHBOARD_IDLE_TIMEOUT = int(os.environ.get('DASHBOARD_IDLE_TIMEOUT', '1800'))
    STREAM_KEEPALIVE = int(os.environ.get('STREAM_KEEPALIVE', '15'))


class DevConfig(Config):
    DEBUG = True


class ProdConfig(Config):
    DEBUG = False
    SESSION_COOKIE_SECURE = True


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SITE_URL = 'http://localhost'
    BACKEND_TIMEOUT = 5
    STREAM_KEEPALIVE = 1
