from abc import ABC, abstractmethod


class StorageBackend(ABC):
    @abstractmethod
    def get_file_buffer(self, key: str) -> bytes:
        pass

    @abstractmethod
    def generate_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        pass

    @abstractmethod
    def delete_file(self, key: str) -> None:
        pass
