from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True, slots=True)
class StoredAsset:
    """
    Reference to an asset persisted by an object store.

    :param url: Publicly resolvable URL of the stored object.
    :type url: str
    :param key: Store-specific object key.
    :type key: str | None
    """

    url: str
    key: str | None = None


class ObjectStore(Protocol):
    """Port for persisting a local file and getting back a public URL.

    Implementations never raise on storage failures: they log and return
    ``None`` so the caller decides whether the asset was mandatory.
    """

    def upload(self, local_path: str) -> StoredAsset | None: ...


class InMemoryObjectStore(ObjectStore):
    """Object store double used in unit tests.

    ``fail_for`` lists file names (basenames) whose upload returns ``None``;
    ``fail_all`` makes every upload fail.
    """

    def __init__(
        self,
        *,
        base_url: str = "https://assets.test",
        fail_for: set[str] | None = None,
        fail_all: bool = False,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.fail_for = set(fail_for or ())
        self.fail_all = fail_all
        self.objects: dict[str, bytes] = {}
        self.attempts: list[str] = []

    def upload(self, local_path: str) -> StoredAsset | None:
        self.attempts.append(local_path)
        path = Path(local_path)
        if self.fail_all or path.name in self.fail_for:
            return None
        try:
            data = path.read_bytes()
        except OSError:
            return None
        key = f"{len(self.objects) + 1:04d}-{path.name}"
        self.objects[key] = data
        return StoredAsset(url=f"{self.base_url}/{key}", key=key)
