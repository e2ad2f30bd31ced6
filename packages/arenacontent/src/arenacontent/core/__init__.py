"""arenacontent core package.

Public entrypoints:
- arenacontent.core.api: stable API surface for integrations
- arenacontent.core.service.ContentService: request-level operations

Internal modules may change without notice.
"""

from __future__ import annotations

# Strict architecture enforcement (default ON; set ARENA_STRICT_ARCH=0 to disable).
from arenacontent.core._architecture_guard import assert_architecture as _assert_architecture

_assert_architecture()

from arenacontent.core.service import ContentService

__all__ = ["ContentService"]
