"""Import-time layout checks for arenacontent.

Two rules hold for every module under ``arenacontent/`` (core and server):

1) Exception classes are defined only in ``arenacontent/core/exception.py``.
2) Classes named ``*Spec`` (Kubernetes object views) are defined only in
   ``arenacontent/core/spec.py``.

A violation raises RuntimeError naming the file and class. Set
ARENA_STRICT_ARCH=0 to skip the scan.
"""

from __future__ import annotations

import ast
import os
from pathlib import Path
from typing import Iterable, List, Tuple

_SKIP_PARTS = {"__pycache__", ".venv", "venv", "build", "dist", ".git", "tests", "test"}
_EXCEPTION_BASES = {"BaseException", "Exception"}


def _python_files(root: Path) -> Iterable[Path]:
    for path in root.rglob("*.py"):
        if set(path.parts) & _SKIP_PARTS:
            continue
        yield path


def _dotted(node: ast.expr) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        inner = _dotted(node.value)
        return f"{inner}.{node.attr}" if inner else node.attr
    if isinstance(node, ast.Subscript):
        return _dotted(node.value)
    return None


def _looks_like_exception(cls: ast.ClassDef) -> bool:
    """Any base named like an exception type counts (ValueError, FooError, ...)."""
    for base in cls.bases:
        name = _dotted(base)
        if not name:
            continue
        last = name.rsplit(".", 1)[-1]
        if last in _EXCEPTION_BASES or last.endswith("Error") or last.endswith("Exception"):
            return True
    return False


def find_violations(package_root: Path) -> Tuple[List[Tuple[str, Path]], List[Tuple[str, Path]]]:
    """Return (exception_violations, spec_violations) for a source tree."""
    exception_file = (package_root / "core" / "exception.py").resolve()
    spec_file = (package_root / "core" / "spec.py").resolve()

    exc: List[Tuple[str, Path]] = []
    specs: List[Tuple[str, Path]] = []
    for path in _python_files(package_root):
        resolved = path.resolve()
        try:
            tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
        except (OSError, UnicodeDecodeError, SyntaxError) as e:
            raise RuntimeError(f"[arenacontent strict-arch] cannot parse {path}: {e}") from e

        for node in ast.walk(tree):
            if not isinstance(node, ast.ClassDef):
                continue
            if resolved != exception_file and _looks_like_exception(node):
                exc.append((node.name, path))
            if resolved != spec_file and node.name.endswith("Spec"):
                specs.append((node.name, path))
    return exc, specs


def assert_architecture(package_root: Path | None = None) -> None:
    if os.getenv("ARENA_STRICT_ARCH", "1") == "0":
        return

    root = package_root or Path(__file__).resolve().parent.parent
    exc, specs = find_violations(root)
    if not exc and not specs:
        return

    lines = ["arenacontent strict architecture check failed:"]
    if exc:
        lines.append("")
        lines.append("RULE #1 (exceptions):")
        lines.extend(f"  - {cls} defined in {path}" for cls, path in sorted(exc, key=lambda x: (str(x[1]), x[0])))
        lines.append("Fix: move them into arenacontent/core/exception.py.")
    if specs:
        lines.append("")
        lines.append("RULE #2 (specs):")
        lines.extend(f"  - {cls} defined in {path}" for cls, path in sorted(specs, key=lambda x: (str(x[1]), x[0])))
        lines.append("Fix: move them into arenacontent/core/spec.py.")
    raise RuntimeError("\n".join(lines))
