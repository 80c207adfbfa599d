"""
credvault.services._shared.ports
================================

*Ports* (hexagonal interfaces) that keep the service layer independent of
infrastructure.

Modules
-------
- :mod:`object_store`:
    Defines :class:`~.ObjectStore` (persist a local file, get back its
    public URL) together with :class:`~.StoredAsset` and the
    :class:`~.InMemoryObjectStore` test double.

Concrete adapters (e.g., MinIO) implement these interfaces under
``credvault.infra``.
"""

from __future__ import annotations

from .object_store import InMemoryObjectStore, ObjectStore, StoredAsset

__all__ = ["ObjectStore", "StoredAsset", "InMemoryObjectStore"]
