import pytest

from config import Settings
from analyzer.analyzer import RepositoryAnalyzer, RepositoryRef
from main import create_app


FIXED_NOW = "2024-01-01T00:00:00Z"


def fixed_clock():
    return FIXED_NOW


@pytest.fixture
def settings():
    return Settings(
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test",
        stripe_basic_price_id="price_basic",
        stripe_pro_price_id="price_pro",
        app_url="https://reporevenue.test",
    )


@pytest.fixture
def repo():
    return RepositoryRef(owner="octocat", name="Hello-World", url="https://github.com/octocat/Hello-World")


@pytest.fixture
def analyzer(settings):
    return RepositoryAnalyzer(settings, now=fixed_clock)


@pytest.fixture
def app(settings, analyzer):
    app = create_app(settings=settings, analyzer=analyzer)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
