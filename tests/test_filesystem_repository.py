"""Tests for the directory-backed repository."""

import os

import pytest

from source_resolution.errors import IsNavigableError
from source_resolution.errors import NotFoundError
from source_resolution.errors import NotNavigableError
from source_resolution.errors import RepositoryClosedError
from source_resolution.pattern import REST
from source_resolution.pattern import path
from source_resolution.repositories.base import ChildEntry
from source_resolution.repositories.filesystem import FilesystemRepository
from source_resolution.resolver import resolve


def test_missing_root_rejected(tmp_path):
    with pytest.raises(NotFoundError):
        FilesystemRepository(tmp_path / "missing")


def test_file_root_rejected(tmp_path):
    (tmp_path / "file.txt").write_text("x")
    with pytest.raises(NotNavigableError):
        FilesystemRepository(tmp_path / "file.txt")


def test_file_uri_prefix(source_tree):
    repo = FilesystemRepository(f"file://{source_tree}")
    assert repo.root == source_tree.resolve()


def test_children_sorted_with_kinds(source_tree):
    repo = FilesystemRepository(source_tree)
    children = list(repo.children(repo.root / "pkg"))
    assert children == [
        ChildEntry("README.md", False),
        ChildEntry("mod.src", False),
        ChildEntry("nested", True),
        ChildEntry("util.src", False),
    ]


def test_children_of_empty_directory(source_tree):
    repo = FilesystemRepository(source_tree)
    assert list(repo.children(repo.root / "empty")) == []


def test_children_errors(source_tree):
    repo = FilesystemRepository(source_tree)
    with pytest.raises(NotFoundError):
        repo.children(repo.root / "nope")
    with pytest.raises(NotNavigableError):
        repo.children(repo.root / "pkg" / "mod.src")


def test_open_reads_bytes(source_tree):
    repo = FilesystemRepository(source_tree)
    with repo.open(repo.root / "pkg" / "mod.src") as stream:
        assert stream.read() == b"project mod"


def test_open_errors(source_tree):
    repo = FilesystemRepository(source_tree)
    with pytest.raises(IsNavigableError):
        repo.open(repo.root / "pkg")
    with pytest.raises(NotFoundError):
        repo.open(repo.root / "pkg" / "missing.src")


def test_materialize_returns_real_path(source_tree):
    repo = FilesystemRepository(source_tree)
    target = repo.root / "pkg" / "mod.src"
    assert repo.materialize(target) == target


def test_closed_repository_refuses_access(source_tree):
    with FilesystemRepository(source_tree) as repo:
        pass
    assert repo.closed
    with pytest.raises(RepositoryClosedError):
        repo.children(repo.root)


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_symlink_cycle_does_not_loop(source_tree):
    os.symlink(source_tree / "pkg", source_tree / "pkg" / "nested" / "loop")
    repo = FilesystemRepository(source_tree)

    names = sorted(entry.name for entry in resolve(path("pkg") + REST, repo))

    assert names == ["pkg/README.md", "pkg/mod.src", "pkg/nested/deep.src", "pkg/util.src"]


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_symlinked_directory_not_followed_when_disabled(source_tree):
    os.symlink(source_tree / "other", source_tree / "pkg" / "linked")
    following = FilesystemRepository(source_tree)
    not_following = FilesystemRepository(source_tree, follow_symlinks=False)

    assert "pkg/linked/mod.src" in {e.name for e in resolve(path("pkg") + REST, following)}
    assert "pkg/linked/mod.src" not in {e.name for e in resolve(path("pkg") + REST, not_following)}


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_broken_symlink_skipped(source_tree):
    os.symlink(source_tree / "gone.src", source_tree / "pkg" / "broken.src")
    repo = FilesystemRepository(source_tree)
    assert "broken.src" not in [child.name for child in repo.children(repo.root / "pkg")]


def test_max_depth_bounds_descent(tmp_path):
    deep = tmp_path / "a" / "b" / "c"
    deep.mkdir(parents=True)
    (deep / "leaf.src").write_text("leaf")
    (tmp_path / "a" / "top.src").write_text("top")

    repo = FilesystemRepository(tmp_path, max_depth=2)
    names = [entry.name for entry in resolve(path("a") + REST, repo)]

    assert names == ["a/top.src"]


def test_invalid_max_depth(tmp_path):
    with pytest.raises(ValueError):
        FilesystemRepository(tmp_path, max_depth=0)
