"""Incremental construction of a conflict-free vfs tree."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Optional

from stonekit.vfs.tree import BlitFile, Tree


def _parent(path: PurePosixPath) -> Optional[PurePosixPath]:
    parent = path.parent
    return None if parent == path else parent


def _sort_key(item: BlitFile) -> tuple[int, tuple[str, ...]]:
    """Order by directory depth, then by path components."""
    return str(item.path).count("/"), item.path.parts


class TreeBuilder:
    """Collects files, adds the directories they imply, and builds a Tree."""

    def __init__(self, file_type: type[BlitFile] = BlitFile) -> None:
        self.file_type = file_type
        self._explicit: list[BlitFile] = []
        self._implicit_dirs: dict[PurePosixPath, BlitFile] = {}

    def push(self, item: BlitFile) -> None:
        """Add an item and record all of its parent directories."""
        parent = _parent(item.path)
        if parent is not None:
            leading: Optional[PurePosixPath] = None
            for component in parent.parts:
                full = leading / component if leading is not None else PurePosixPath(component)
                leading = full
                self._implicit_dirs[full] = self.file_type.from_path(full)
        self._explicit.append(item)

    def bake(self) -> None:
        """Sort incoming entries and drop implicit dirs that were given explicitly."""
        self._explicit.sort(key=_sort_key)
        for item in self._explicit:
            self._implicit_dirs.pop(item.path, None)

    def tree(self) -> Tree:
        """Build the final tree, redirecting symlinks that point at directories."""
        all_dirs: dict[str, BlitFile] = {}
        for item in self._explicit:
            if item.kind.is_directory:
                all_dirs[str(item.path)] = item
        for item in self._implicit_dirs.values():
            all_dirs[str(item.path)] = item

        redirects: dict[str, str] = {}
        for link in self._explicit:
            if not link.kind.is_symlink:
                continue
            target = link.kind.target or ""
            if target.startswith("/"):
                resolved = PurePosixPath(target)
            else:
                parent = _parent(link.path)
                resolved = parent / target if parent is not None else PurePosixPath(target)
            if str(resolved) in all_dirs:
                redirects[str(link.path)] = str(resolved)

        full_set = [all_dirs[key] for key in sorted(all_dirs)]
        full_set.extend(item for item in self._explicit if not item.kind.is_directory)
        full_set.sort(key=_sort_key)

        tree = Tree()
        for entry in full_set:
            node = tree.new_node(entry)
            parent = _parent(entry.path)
            if parent is not None:
                tree.add_child_to_node(node, parent)

        for source, target in redirects.items():
            tree.reparent(source, target)
        return tree