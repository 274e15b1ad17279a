"""Low-level tree manipulation for gitdocs.

Provides path normalization, recursive tree listing and diffing, and
tree rebuild on top of dulwich's object store.
"""

from __future__ import annotations

import os
import posixpath
import stat
from collections import defaultdict
from typing import Iterator

from dulwich.diff_tree import tree_changes
from dulwich.objects import Blob, Tree

GIT_FILEMODE_TREE = 0o040000
GIT_FILEMODE_BLOB = 0o100644


def _normalize_path(path: str | os.PathLike[str]) -> str:
    """Normalize a path: strip leading/trailing slashes, reject bad segments."""
    path = os.fspath(path)
    path = path.replace("\\", "/")
    path = path.strip("/")
    if not path:
        raise ValueError("Path must not be empty")
    segments = path.split("/")
    for seg in segments:
        if not seg:
            raise ValueError(f"Empty segment in path: {path!r}")
        if seg in (".", ".."):
            raise ValueError(f"Invalid path segment: {seg!r}")
    return "/".join(segments)


def normalize_prefix(cwd: str | os.PathLike[str] | None) -> str:
    """Normalize a working-directory prefix.

    Returns ``""`` for the repository root, otherwise a slash-free-edged
    path such as ``"tests/input"``.
    """
    if cwd is None:
        return ""
    p = os.fspath(cwd).replace("\\", "/")
    p = posixpath.normpath(p).strip("/")
    if p == ".":
        return ""
    if p == ".." or p.startswith("../"):
        raise ValueError(f"Working directory escapes the repository: {cwd!r}")
    return p


def under_prefix(path: str, prefix: str) -> bool:
    """Return True if *path* is *prefix* itself or lies below it."""
    if not prefix:
        return True
    return path == prefix or path.startswith(prefix + "/")


def relative_to(path: str, prefix: str) -> str:
    """Strip *prefix* (and its slash) from the front of *path*."""
    if prefix and path.startswith(prefix + "/"):
        return path[len(prefix) + 1:]
    return path


def _walk_to(object_store, tree_id: bytes, path: str):
    """Walk tree to the object at the given path."""
    segments = path.split("/")
    obj = object_store[tree_id]
    for i, seg in enumerate(segments):
        if not isinstance(obj, Tree):
            partial = "/".join(segments[:i])
            raise NotADirectoryError(partial)
        try:
            _mode, sha = obj[seg.encode()]
        except KeyError:
            raise FileNotFoundError(path)
        obj = object_store[sha]
    return obj


def read_blob_at_path(object_store, tree_id: bytes, path: str | os.PathLike[str]) -> bytes:
    """Read a blob at the given path in the tree."""
    path = _normalize_path(path)
    obj = _walk_to(object_store, tree_id, path)
    if isinstance(obj, Tree):
        raise IsADirectoryError(path)
    return obj.data


def iter_tree_paths(object_store, tree_id: bytes, prefix: str = "") -> Iterator[str]:
    """Yield every non-tree path below *tree_id*, in git tree order."""
    tree = object_store[tree_id]
    for entry in tree.iteritems():
        name = entry.path.decode("utf-8", "surrogateescape")
        full = f"{prefix}/{name}" if prefix else name
        if stat.S_ISDIR(entry.mode):
            yield from iter_tree_paths(object_store, entry.sha, full)
        else:
            yield full


def list_paths_under(object_store, tree_id: bytes, root: str = "") -> list[str]:
    """List all file paths under *root* (repo-root-relative).

    A *root* that does not exist, or names a file, yields only the
    paths that match it exactly, mirroring ``git ls-tree -r``.
    """
    if not root:
        return list(iter_tree_paths(object_store, tree_id))
    try:
        obj = _walk_to(object_store, tree_id, root)
    except (FileNotFoundError, NotADirectoryError):
        return []
    if isinstance(obj, Tree):
        return list(iter_tree_paths(object_store, obj.id, root))
    return [root]


def changed_paths(
    object_store,
    old_tree_id: bytes | None,
    new_tree_id: bytes | None,
    root: str = "",
) -> list[str]:
    """Return paths under *root* that differ between two trees.

    Additions, modifications and deletions are all reported, once each,
    in tree walk order.
    """
    seen: dict[str, None] = {}
    for change in tree_changes(object_store, old_tree_id, new_tree_id):
        # deletions carry no new entry (None, or a TreeEntry of Nones)
        entry = change.new
        if entry is None or entry.path is None:
            entry = change.old
        path = entry.path.decode("utf-8", "surrogateescape")
        if under_prefix(path, root):
            seen.setdefault(path, None)
    return list(seen)


def rebuild_tree(
    object_store,
    base_tree_id: bytes | None,
    writes: dict[str, bytes],
    removes: set[str],
) -> bytes:
    """Rebuild a tree with writes and removes applied.

    Only the ancestor chain from changed leaves to root is rebuilt.
    Sibling subtrees are shared by hash reference.

    Args:
        object_store: The dulwich object store.
        base_tree_id: SHA of the existing tree (or None for empty).
        writes: Mapping of normalized path -> blob data.
        removes: Set of normalized paths to remove.

    Returns:
        SHA of the new root tree.
    """
    # Group changes by first path segment
    sub_writes: dict[str, dict[str, bytes]] = defaultdict(dict)
    leaf_writes: dict[str, bytes] = {}
    sub_removes: dict[str, set[str]] = defaultdict(set)
    leaf_removes: set[str] = set()

    for path, data in writes.items():
        parts = path.split("/", 1)
        if len(parts) == 1:
            leaf_writes[parts[0]] = data
        else:
            sub_writes[parts[0]][parts[1]] = data

    for path in removes:
        parts = path.split("/", 1)
        if len(parts) == 1:
            leaf_removes.add(parts[0])
        else:
            sub_removes[parts[0]].add(parts[1])

    entries: dict[bytes, tuple[int, bytes]] = {}
    if base_tree_id is not None:
        for entry in object_store[base_tree_id].iteritems():
            entries[entry.path] = (entry.mode, entry.sha)

    for name in leaf_removes:
        entries.pop(name.encode(), None)

    for name, data in leaf_writes.items():
        blob = Blob.from_string(data)
        object_store.add_object(blob)
        entries[name.encode()] = (GIT_FILEMODE_BLOB, blob.id)

    for subdir in set(sub_writes) | set(sub_removes):
        key = subdir.encode()
        existing = entries.get(key)
        existing_id = existing[1] if existing and stat.S_ISDIR(existing[0]) else None
        if existing_id is None and subdir not in sub_writes:
            # nothing to remove below a missing directory
            continue

        new_subtree_id = rebuild_tree(
            object_store,
            existing_id,
            sub_writes.get(subdir, {}),
            sub_removes.get(subdir, set()),
        )

        # Prune empty directories
        if len(object_store[new_subtree_id]) == 0:
            entries.pop(key, None)
        else:
            entries[key] = (GIT_FILEMODE_TREE, new_subtree_id)

    tree = Tree()
    for name, (mode, sha) in entries.items():
        tree.add(name, mode, sha)
    object_store.add_object(tree)
    return tree.id
