import pytest

from savora import create_app
from savora.config import TestConfig
from tests.fakes import FakeBackend


@pytest.fixture
def backends():
    """Every FakeBackend the app creates, in creation order."""
    return []


@pytest.fixture
def app(backends):
    """Create a test Flask application backed by in-memory fake backends."""
    async def factory(config):
        backend = FakeBackend()
        backends.append(backend)
        return backend

    application = create_app(TestConfig, backend_factory=factory)
    yield application
    application.extensions['savora.shutdown']()


@pytest.fixture
def client(app):
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def backend(client, backends):
    """Sign the test client in through the OAuth routes; returns its backend."""
    client.post('/login')
    resp = client.get('/auth/callback?code=valid-code')
    assert resp.status_code == 302
    return backends[-1]


@pytest.fixture
def registry(app):
    return app.extensions['savora']
