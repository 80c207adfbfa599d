from .minio_object_store import MinioObjectStore

__all__ = ["MinioObjectStore"]
