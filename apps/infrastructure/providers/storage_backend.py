import logging
from django.core.files.storage import Storage, default_storage
from apps.domain.interfaces.storage_backend import StorageBackend

logger = logging.getLogger('apps')


class DjangoStorageBackend(StorageBackend):
    def __init__(self, storage: Storage = None):
        self.storage = storage or default_storage

    def get_file_buffer(self, key: str) -> bytes:
        with self.storage.open(key, 'rb') as handle:
            return handle.read()

    def generate_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        # Backends S3 assinam a URL com o prazo configurado no próprio storage
        return self.storage.url(key)

    def delete_file(self, key: str) -> None:
        if self.storage.exists(key):
            self.storage.delete(key)
            logger.info(f'Deleted stored file {key}')
