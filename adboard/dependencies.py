from functools import lru_cache

from adboard.config import settings
from adboard.storage import AssetStore, StorageConfig


@lru_cache
def get_asset_store() -> AssetStore:
    """
    FastAPI dependency returning the process-wide asset store.

    Built lazily from ``settings`` on first use.  Tests replace it via
    ``app.dependency_overrides[get_asset_store]`` with a store rooted in a
    temporary directory.
    """
    return AssetStore(StorageConfig.from_settings(settings))
