"""Local file storage adapter implementation."""
from pathlib import Path
from urllib.parse import quote, unquote

from ports.storage import KeyValueStorePort
from domain.exceptions import StorageError, StorageQuotaExceeded


class LocalStorageAdapter(KeyValueStorePort):
    """
    Adapter for local file system storage.
    Stores each key as one UTF-8 file under a base directory and enforces
    a total size quota across all files, the way browser storage does.
    """

    def __init__(
        self,
        base_path: str = "output/graph-state",
        quota_bytes: int = 10_000_000,
        suffix: str = ".json",
    ):
        """
        Initialize the local storage adapter.

        Args:
            base_path: Directory holding one file per key
            quota_bytes: Maximum total payload size across all keys
            suffix: File extension of stored values
        """
        self.base_path = Path(base_path)
        self.quota_bytes = quota_bytes
        self.suffix = suffix
        self.base_path.mkdir(parents=True, exist_ok=True)

    @property
    def storage_type(self) -> str:
        return "local"

    def _path(self, key: str) -> Path:
        return self.base_path / f"{quote(key, safe='')}{self.suffix}"

    def _usage(self, exclude: Path | None = None) -> int:
        return sum(
            p.stat().st_size
            for p in self.base_path.glob(f"*{self.suffix}")
            if p != exclude
        )

    def get(self, key: str) -> str | None:
        try:
            filepath = self._path(key)
            if not filepath.exists():
                return None
            return filepath.read_text(encoding="utf-8")

        except Exception as e:
            raise StorageError("LocalStorageAdapter", "get", e)

    def set(self, key: str, value: str) -> None:
        filepath = self._path(key)
        requested = len(value.encode("utf-8"))
        try:
            used = self._usage(exclude=filepath)
        except OSError as e:
            raise StorageError("LocalStorageAdapter", "set", e)

        if used + requested > self.quota_bytes:
            raise StorageQuotaExceeded("LocalStorageAdapter", key, used + requested, self.quota_bytes)

        try:
            tmp_path = filepath.with_suffix(filepath.suffix + ".tmp")
            tmp_path.write_text(value, encoding="utf-8")
            tmp_path.replace(filepath)

        except Exception as e:
            raise StorageError("LocalStorageAdapter", "set", e)

    def remove(self, key: str) -> bool:
        try:
            filepath = self._path(key)
            if not filepath.exists():
                return False
            filepath.unlink()
            return True

        except Exception as e:
            raise StorageError("LocalStorageAdapter", "remove", e)

    def keys(self) -> list[str]:
        try:
            files = sorted(self.base_path.glob(f"*{self.suffix}"))
            return [unquote(p.name[: -len(self.suffix)]) for p in files]

        except Exception as e:
            raise StorageError("LocalStorageAdapter", "keys", e)

    def usage_bytes(self) -> int:
        """Total bytes currently stored."""
        try:
            return self._usage()
        except OSError as e:
            raise StorageError("LocalStorageAdapter", "usage_bytes", e)
