from .sync_client import ShopifySyncClient

__all__ = ["ShopifySyncClient"]
