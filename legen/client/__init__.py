# HTTP client for a remote letter server
from legen.client.store_client import RestStoreClient as RestStoreClient

__all__ = ["RestStoreClient"]
