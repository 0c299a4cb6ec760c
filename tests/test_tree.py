from pathlib import PurePosixPath

import pytest

from stonekit.vfs.tree import (
    BlitFile,
    ChildElement,
    DirectoryElement,
    Kind,
    MissingParentError,
    Tree,
    TreeError,
)


def _add(tree, path, kind=Kind.DIRECTORY, id="test"):
    item = BlitFile(PurePosixPath(path), kind, id)
    node = tree.new_node(item)
    parent = PurePosixPath(path).parent
    if parent != PurePosixPath(path):
        tree.add_child_to_node(node, parent)
    return node


def _paths(tree):
    return [str(item.path) for item in tree]


def test_kind_helpers():
    link = Kind.symlink("elsewhere")
    assert link.is_symlink
    assert link.target == "elsewhere"
    assert Kind.REGULAR.is_regular
    assert not Kind.REGULAR.is_directory


def test_blitfile_defaults_and_clone():
    item = BlitFile.from_path("/usr")
    assert item.kind == Kind.DIRECTORY
    assert item.path == PurePosixPath("/usr")
    moved = BlitFile(PurePosixPath("/a"), Kind.REGULAR, "pkg").cloned_to("/b/a")
    assert moved == BlitFile(PurePosixPath("/b/a"), Kind.REGULAR, "pkg")


def test_empty_tree():
    tree = Tree()
    assert tree.is_empty()
    assert len(tree) == 0
    assert list(tree) == []
    assert tree.structured() is None


def test_build_and_iterate():
    tree = Tree()
    _add(tree, "/")
    _add(tree, "/a")
    _add(tree, "/a/f", Kind.REGULAR)
    assert len(tree) == 3
    assert not tree.is_empty()
    assert _paths(tree) == ["/", "/a", "/a/f"]


def test_structured_view():
    tree = Tree()
    _add(tree, "/")
    _add(tree, "/a")
    _add(tree, "/a/f", Kind.REGULAR)
    root = tree.structured()
    assert isinstance(root, DirectoryElement)
    assert root.name == ""
    (dir_a,) = root.children
    assert isinstance(dir_a, DirectoryElement)
    assert dir_a.name == "a"
    (leaf,) = dir_a.children
    assert isinstance(leaf, ChildElement)
    assert leaf.name == "f"
    assert leaf.item.kind == Kind.REGULAR


def test_missing_parent():
    tree = Tree()
    node = tree.new_node(BlitFile(PurePosixPath("/nowhere/x"), Kind.REGULAR))
    with pytest.raises(MissingParentError) as info:
        tree.add_child_to_node(node, "/nowhere")
    assert info.value.path == PurePosixPath("/nowhere")
    assert str(info.value) == "missing parent: /nowhere"


def test_duplicate_is_reported_and_skipped(capsys):
    tree = Tree()
    _add(tree, "/")
    _add(tree, "/x", Kind.REGULAR, "first")
    _add(tree, "/x", Kind.REGULAR, "second")
    err = capsys.readouterr().err
    assert "duplicate entry" in err
    assert "second attempts to overwrite first" in err
    assert [item.id for item in tree if item.path == PurePosixPath("/x")] == ["first"]


def test_reparent_moves_descendants():
    tree = Tree()
    _add(tree, "/")
    _add(tree, "/src")
    _add(tree, "/src/x", Kind.REGULAR)
    _add(tree, "/src/sub")
    _add(tree, "/src/sub/y", Kind.REGULAR)
    _add(tree, "/dst")
    tree.reparent("/src", "/dst")
    assert _paths(tree) == ["/", "/src", "/dst", "/dst/x", "/dst/sub", "/dst/sub/y"]
    moved = {str(item.path): item.kind for item in tree}
    assert moved["/dst/sub"] == Kind.DIRECTORY
    assert moved["/dst/sub/y"] == Kind.REGULAR


def test_reparent_without_target_drops_children():
    tree = Tree()
    _add(tree, "/")
    _add(tree, "/src")
    _add(tree, "/src/x", Kind.REGULAR)
    tree.reparent("/src", "/missing")
    assert _paths(tree) == ["/", "/src"]


def test_print_lists_entries(capsys):
    tree = Tree()
    _add(tree, "/")
    _add(tree, "/a")
    _add(tree, "/a/f", Kind.REGULAR)
    tree.print()
    err = capsys.readouterr().err
    assert "/a/f" in err
    assert err.index("/a") < err.index("/a/f")


def test_print_without_root():
    with pytest.raises(TreeError):
        Tree().print()