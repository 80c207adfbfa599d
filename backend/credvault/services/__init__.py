"""Service layer public API.

This package exposes the shared building blocks for the service layer
(:class:`BaseService`). Concrete services live in
sub-packages and are imported from there, e.g.
``from credvault.services.session import SessionService``; the security
helpers depend on :mod:`credvault.services._shared.errors`, so this module
must stay free of service imports.
"""

from __future__ import annotations

from ._shared.base import BaseService

__all__ = ["BaseService"]
