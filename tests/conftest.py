"""Pytest configuration for source resolution tests."""

import sys
import zipfile
from pathlib import Path

import pytest

# Make the source_resolution package importable without installation
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))


@pytest.fixture
def make_archive(tmp_path):
    """Factory writing a ZIP archive from {entry_name: bytes}."""

    def _make(entries: dict[str, bytes], name: str = "repo.jar") -> Path:
        archive_path = tmp_path / name
        with zipfile.ZipFile(archive_path, "w") as zs:
            for entry_name, content in entries.items():
                zs.writestr(entry_name, content)
        return archive_path

    return _make


@pytest.fixture
def source_tree(tmp_path):
    """Directory repository layout:

    project/
        pkg/mod.src
        pkg/util.src
        pkg/nested/deep.src
        pkg/README.md
        other/mod.src
        empty/
    """
    root = tmp_path / "project"
    (root / "pkg" / "nested").mkdir(parents=True)
    (root / "other").mkdir()
    (root / "empty").mkdir()
    (root / "pkg" / "mod.src").write_bytes(b"project mod")
    (root / "pkg" / "util.src").write_bytes(b"project util")
    (root / "pkg" / "nested" / "deep.src").write_bytes(b"project deep")
    (root / "pkg" / "README.md").write_bytes(b"readme")
    (root / "other" / "mod.src").write_bytes(b"other mod")
    return root
