from .base import ProjectStore
from .local import LocalProjectStore
from .remote import RemoteProjectStore

from ..config import StoreConfig


def create_store(config: StoreConfig) -> ProjectStore:
    if config.backend == "remote":
        if not config.remote_url:
            raise ValueError("store.remote_url is required for the remote backend")
        return RemoteProjectStore(config.remote_url, timeout=config.timeout_seconds)
    return LocalProjectStore(config.path)


__all__ = ["ProjectStore", "LocalProjectStore", "RemoteProjectStore", "create_store"]
