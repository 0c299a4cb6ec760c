"""Virtual filesystem tree used to lay out files before blitting them."""

from __future__ import annotations

import dataclasses
import itertools
import sys
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import ClassVar, Iterator, Optional, Union

PathLike = Union[str, PurePosixPath]

_ROOT = PurePosixPath("/")


def _parent(path: PurePosixPath) -> Optional[PurePosixPath]:
    parent = path.parent
    return None if parent == path else parent


@dataclass(frozen=True)
class Kind:
    """The type of a tree entry: regular file, directory or symlink."""

    name: str
    target: Optional[str] = None

    REGULAR: ClassVar["Kind"]
    DIRECTORY: ClassVar["Kind"]

    @classmethod
    def symlink(cls, target: str) -> "Kind":
        return cls("symlink", target)

    @property
    def is_regular(self) -> bool:
        return self.name == "regular"

    @property
    def is_directory(self) -> bool:
        return self.name == "directory"

    @property
    def is_symlink(self) -> bool:
        return self.name == "symlink"


Kind.REGULAR = Kind("regular")
Kind.DIRECTORY = Kind("directory")


@dataclass
class BlitFile:
    """A file that can be placed in the tree. Subclass to carry more detail."""

    path: PurePosixPath
    kind: Kind = Kind.DIRECTORY
    id: str = ""

    def __post_init__(self) -> None:
        self.path = PurePosixPath(self.path)

    @classmethod
    def from_path(cls, path: PathLike) -> "BlitFile":
        """Build a directory entry for the given path."""
        return cls(path=PurePosixPath(path), kind=Kind.DIRECTORY)

    def cloned_to(self, path: PathLike) -> "BlitFile":
        """Return a copy of this entry moved to another path."""
        return dataclasses.replace(self, path=PurePosixPath(path))


class TreeError(Exception):
    """Base error for tree operations."""


class MissingParentError(TreeError):
    def __init__(self, path: PathLike) -> None:
        self.path = PurePosixPath(path)
        super().__init__(f"missing parent: {self.path}")


class DuplicateError(TreeError):
    def __init__(self, path: PathLike, id: str, other_id: str) -> None:
        self.path = PurePosixPath(path)
        self.id = id
        self.other_id = other_id
        super().__init__(
            f"duplicate entry: {self.path} {id} attempts to overwrite {other_id}"
        )


@dataclass
class DirectoryElement:
    name: str
    item: BlitFile
    children: list = field(default_factory=list)


@dataclass
class ChildElement:
    name: str
    item: BlitFile


@dataclass
class _Node:
    data: BlitFile
    parent: Optional[int] = None
    children: list[int] = field(default_factory=list)


class Tree:
    """A tree of BlitFile entries indexed by path."""

    def __init__(self) -> None:
        self._nodes: dict[int, _Node] = {}
        self._map: dict[PurePosixPath, int] = {}
        self._next_id = 0
        self._length = 0

    def __len__(self) -> int:
        """Number of nodes created in this tree."""
        return self._length

    def is_empty(self) -> bool:
        return self._length == 0

    def __iter__(self) -> Iterator[BlitFile]:
        root = self._resolve(_ROOT)
        if root is None:
            return
        for node_id in self._descendants(root):
            yield self._nodes[node_id].data

    def new_node(self, item: BlitFile) -> int:
        """Store a new detached node and record its path."""
        node_id = self._next_id
        self._next_id += 1
        self._nodes[node_id] = _Node(item)
        self._map[item.path] = node_id
        self._length += 1
        return node_id

    def _resolve(self, path: PathLike) -> Optional[int]:
        node_id = self._map.get(PurePosixPath(path))
        return node_id if node_id in self._nodes else None

    def _descendants(self, node_id: int) -> Iterator[int]:
        for _, descendant in self._walk(node_id):
            yield descendant

    def _walk(self, node_id: int) -> Iterator[tuple[int, int]]:
        stack = [(0, node_id)]
        while stack:
            depth, current = stack.pop()
            yield depth, current
            stack.extend((depth + 1, c) for c in reversed(self._nodes[current].children))

    def _detach(self, node_id: int) -> None:
        node = self._nodes[node_id]
        if node.parent is not None:
            self._nodes[node.parent].children.remove(node_id)
            node.parent = None

    def _remove_subtree(self, node_id: int) -> None:
        removed = list(self._descendants(node_id))
        self._detach(node_id)
        for gone in removed:
            del self._nodes[gone]
        self._map = {p: i for p, i in self._map.items() if i in self._nodes}

    def add_child_to_node(self, node: int, parent: PathLike) -> None:
        """Attach a node under the node at the parent path.

        A name clash with an existing child is reported on stderr and skipped.
        """
        parent_path = PurePosixPath(parent)
        item = self._nodes[node].data
        parent_id = self._resolve(parent_path)
        if parent_id is None:
            raise MissingParentError(parent_path)

        clash = next(
            (
                self._nodes[child].data
                for child in self._nodes[parent_id].children
                if self._nodes[child].data.path.name == item.path.name
            ),
            None,
        )
        if clash is not None:
            sys.stderr.write(f"error: {DuplicateError(item.path, item.id, clash.id)}\n")
            return

        self._detach(node)
        self._nodes[parent_id].children.append(node)
        self._nodes[node].parent = parent_id

    def reparent(self, source_tree: PathLike, target_tree: PathLike) -> None:
        """Move all descendants of the source path under the target path."""
        source_path = PurePosixPath(source_tree)
        target_path = PurePosixPath(target_tree)
        orphans: list[BlitFile] = []

        source = self._resolve(source_path)
        if source is not None:
            if self._resolve(target_path) is not None:
                for child in itertools.islice(self._descendants(source), 1, None):
                    original = self._nodes[child].data
                    relative = original.path.relative_to(source_path)
                    orphans.append(original.cloned_to(target_path / relative))

            for child in list(self._nodes[source].children):
                self._remove_subtree(child)

        for orphan in orphans:
            node = self._resolve(orphan.path)
            if node is None:
                node = self.new_node(orphan)
            parent = _parent(orphan.path)
            if parent is not None:
                self.add_child_to_node(node, parent)

    def structured(self) -> Optional[Union[DirectoryElement, ChildElement]]:
        """Nested element view starting at `/`, or None without a root."""
        root = self._resolve(_ROOT)
        if root is None:
            return None
        return self._structured(root)

    def _structured(self, node_id: int) -> Union[DirectoryElement, ChildElement]:
        node = self._nodes[node_id]
        item = node.data
        name = item.path.name
        if item.kind.is_directory:
            children = [self._structured(child) for child in node.children]
            return DirectoryElement(name, item, children)
        return ChildElement(name, item)

    def print(self) -> None:
        """Write an indented listing of the tree to stderr."""
        root = self._resolve(_ROOT)
        if root is None:
            raise TreeError("tree has no root node")
        for depth, node_id in self._walk(root):
            item = self._nodes[node_id].data
            sys.stderr.write(f"{'    ' * depth}{item.path} ({item.kind.name}, {item.id})\n")