from content_node.config.settings import Settings
from content_node.storage.base import BaseContentReferenceHandler
from content_node.storage.file_handler import FileContentReferenceHandler
from content_node.storage.s3_handler import S3ContentReferenceHandler, build_s3_client
from content_node.tempfiles.provider import TempFileProvider


class ContentReferenceHandlerFactory:
    """Creates the configured storage backend."""

    BACKENDS = ("file", "s3")

    @classmethod
    def create(
        cls, settings: Settings, temp_files: TempFileProvider
    ) -> BaseContentReferenceHandler:
        backend = settings.storage_backend.lower()
        if backend == "file":
            root = settings.file_store_root or temp_files.long_life_temp_dir("content")
            return FileContentReferenceHandler(store_root=root)
        if backend == "s3":
            return cls._create_s3(settings)
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )

    @classmethod
    def _create_s3(cls, settings: Settings) -> S3ContentReferenceHandler:
        client = build_s3_client(
            region=settings.s3_bucket_region,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key,
            endpoint_url=settings.s3_endpoint_url,
            max_pool_connections=settings.s3_max_pool_connections,
            connect_timeout_seconds=settings.s3_connect_timeout_seconds,
            read_timeout_seconds=settings.s3_read_timeout_seconds,
        )
        return S3ContentReferenceHandler(
            client=client,
            bucket_name=settings.s3_bucket_name,
            region=settings.s3_bucket_region,
            key_prefix=settings.s3_key_prefix,
        )
