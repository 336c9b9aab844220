from storefront_app.storage.blob_store import BlobStore, MemoryBlobStore, SqliteBlobStore

__all__ = ["BlobStore", "MemoryBlobStore", "SqliteBlobStore"]
