"""Shared fixtures: an in-memory asset store and an API client wired to it."""

import pytest
from fastapi.testclient import TestClient

from main import app
from models.theme import ThemeRef
from routers import dependencies
from services.comparison_store import ComparisonStore
from services.errors import AssetStoreError
from services.rate_limiter import RateLimiter

SHOP = "test-shop.myshopify.com"


class FakeAssetStore:
    """Themes as {theme_id: {key: body}}; a body of None means listed but absent."""

    def __init__(self, themes, failing_keys=(), failing_listings=(), theme_refs=()):
        self.themes = themes
        self.failing_keys = set(failing_keys)
        self.failing_listings = set(failing_listings)
        self.theme_refs = list(theme_refs)
        self.asset_calls = []
        self.listing_calls = []

    async def list_themes(self):
        return self.theme_refs

    async def list_assets(self, theme_id):
        self.listing_calls.append(theme_id)
        if theme_id in self.failing_listings:
            raise AssetStoreError(500, "listing exploded", f"theme {theme_id} listing")
        return [{"key": key} for key in self.themes[theme_id]]

    async def get_asset(self, theme_id, key):
        self.asset_calls.append((theme_id, key))
        if key in self.failing_keys:
            raise AssetStoreError(500, "internal error", key)
        return self.themes[theme_id].get(key)


def default_config():
    return {
        "shop": SHOP,
        "accessToken": "shpat_test",
        "scan": {"allowedExtensions": [".js", ".json", ".liquid"], "progressEvery": 5},
        "rateLimit": {"intervalMs": 0, "maxRetries": 3, "multiplier": 2},
    }


@pytest.fixture
def store():
    return FakeAssetStore(
        {
            "1": {
                "layout/theme.liquid": "<html>\n<body>\n",
                "config/settings.json": '{"a": 1}\n',
                "assets/app.js": "console.log(1);\n",
                "assets/logo.png": "iVBORw0",
                "templates/only-source.liquid": "x\n",
            },
            "2": {
                "layout/theme.liquid": "<html>\n<body class=\"new\">\n",
                "config/settings.json": '{"a": 1}\n',
                "assets/app.js": "console.log(2);\n",
                "assets/logo.png": "iVBORw1",
                "templates/only-target.liquid": "y\n",
            },
        },
        theme_refs=[
            ThemeRef(id="1", name="Dawn", role="main", created_at="2025-07-01T00:00:00Z"),
            ThemeRef(id="2", name="Dawn copy", role="unpublished"),
        ],
    )


@pytest.fixture
def comparison_store(tmp_path):
    return ComparisonStore(tmp_path / "comparisons.db")


@pytest.fixture
def rate_limiter():
    return RateLimiter(interval=0)


@pytest.fixture
def client(store, comparison_store, rate_limiter):
    app.dependency_overrides[dependencies.get_rate_limiter] = lambda: rate_limiter
    app.dependency_overrides[dependencies.get_config] = default_config
    app.dependency_overrides[dependencies.get_client_factory] = lambda: (lambda: store)
    app.dependency_overrides[dependencies.get_shop] = lambda: SHOP
    app.dependency_overrides[dependencies.get_comparison_store] = lambda: comparison_store
    yield TestClient(app)
    app.dependency_overrides.clear()
