from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Tuple

from arenacontent.core.spec import ContentRoot, ContentTree, DirectoryRoot, MapRoot, TreeNode

log = logging.getLogger("arenacontent.core.tree")


def _hidden(name: str) -> bool:
    return name.startswith(".")


def _join(prefix: str, name: str) -> str:
    return f"{prefix}/{name}" if prefix else name


def _walk_directory(path: Path, prefix: str) -> List[TreeNode]:
    """One level of a directory root; a subtree that cannot be listed comes back empty."""
    try:
        with os.scandir(path) as it:
            entries = list(it)
    except OSError as e:
        log.warning("failed reading directory %s; treating as empty: %s", path, e)
        return []

    dirs: List[TreeNode] = []
    files: List[TreeNode] = []
    for entry in entries:
        if _hidden(entry.name):
            continue
        rel = _join(prefix, entry.name)
        try:
            # directory symlinks are not followed; file symlinks are
            if entry.is_dir(follow_symlinks=False):
                dirs.append(TreeNode(name=entry.name, path=rel, is_directory=True, children=_walk_directory(Path(entry.path), rel)))
            elif entry.is_file():
                files.append(TreeNode(name=entry.name, path=rel, is_directory=False, size=entry.stat().st_size))
        except OSError as e:
            log.warning("skipping unreadable entry %s: %s", entry.path, e)
    return dirs + files


def _build_from_map(files: Dict[str, bytes]) -> List[TreeNode]:
    # Nested insertion-ordered dicts: name -> (subdirs-or-None, size)
    root: Dict[str, list] = {}
    for key, data in files.items():
        parts = [p for p in key.replace("\\", "/").split("/") if p]
        if not parts or any(_hidden(p) for p in parts):
            continue
        level = root
        for d in parts[:-1]:
            slot = level.setdefault(d, [{}, None])
            if slot[0] is None:
                # a file and a directory share this name; the directory wins
                slot[0], slot[1] = {}, None
            level = slot[0]
        leaf = level.get(parts[-1])
        if leaf is None:
            level[parts[-1]] = [None, len(data)]
        elif leaf[0] is None:
            leaf[1] = len(data)

    def to_nodes(level: Dict[str, list], prefix: str) -> List[TreeNode]:
        dirs: List[TreeNode] = []
        leaves: List[TreeNode] = []
        for name, (children, size) in level.items():
            rel = _join(prefix, name)
            if children is not None:
                dirs.append(TreeNode(name=name, path=rel, is_directory=True, children=to_nodes(children, rel)))
            else:
                leaves.append(TreeNode(name=name, path=rel, is_directory=False, size=size))
        return dirs + leaves

    return to_nodes(root, "")


def _count(nodes: List[TreeNode]) -> Tuple[int, int]:
    files = 0
    dirs = 0
    stack = list(nodes)
    while stack:
        node = stack.pop()
        if node.is_directory:
            dirs += 1
            stack.extend(node.children or [])
        else:
            files += 1
    return files, dirs


def build_tree(root: ContentRoot) -> ContentTree:
    """Client-facing tree for a content root.

    Dot-prefixed names are hidden at every level and directories precede
    files at each level. Counts cover the whole tree.
    """
    if isinstance(root, DirectoryRoot):
        nodes = _walk_directory(Path(root.path), "")
    elif isinstance(root, MapRoot):
        nodes = _build_from_map(root.files)
    else:
        raise TypeError(f"unsupported content root: {type(root).__name__}")
    file_count, directory_count = _count(nodes)
    return ContentTree(nodes=nodes, file_count=file_count, directory_count=directory_count)
