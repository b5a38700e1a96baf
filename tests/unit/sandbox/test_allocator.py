"""
gosandbox — unit tests for sandbox directory allocation

File: tests/unit/sandbox/test_allocator.py

Purpose
- Validate that allocation produces exactly the gopath/work/proxy layout and that any
  failure rolls back every directory it created.

What this test file should cover
- Root naming from prefix and sandbox name.
- Rollback when a subdirectory cannot be created (no residue).
- Removal of a fully allocated tree.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from gosandbox.constants import SANDBOX_SUBDIRS
from gosandbox.sandbox.allocator import allocate_directories, remove_directories
from gosandbox.sandbox.errors import SandboxConstructionError


@pytest.mark.unit
def test_allocate_creates_exactly_three_subdirectories(tmp_path: Path) -> None:
    dirs = allocate_directories("demo", temp_dir=tmp_path, prefix="test-sandbox-")

    assert dirs.root.parent == tmp_path
    assert dirs.root.name.startswith("test-sandbox-demo-")
    assert sorted(item.name for item in dirs.root.iterdir()) == sorted(SANDBOX_SUBDIRS)
    assert dirs.gopath == dirs.root / "gopath"
    assert dirs.workdir == dirs.root / "work"
    assert dirs.proxydir == dirs.root / "proxy"


@pytest.mark.unit
def test_allocations_with_the_same_name_get_distinct_roots(tmp_path: Path) -> None:
    first = allocate_directories("same", temp_dir=tmp_path)
    second = allocate_directories("same", temp_dir=tmp_path)

    assert first.root != second.root


@pytest.mark.unit
@pytest.mark.parametrize("failing_subdir", SANDBOX_SUBDIRS)
def test_subdirectory_failure_leaves_no_residue(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, failing_subdir: str
) -> None:
    original_mkdir = Path.mkdir

    def _failing_mkdir(self: Path, *args: object, **kwargs: object) -> None:
        if self.name == failing_subdir:
            raise PermissionError(13, "Permission denied", str(self))
        original_mkdir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "mkdir", _failing_mkdir)

    with pytest.raises(SandboxConstructionError, match=f"creating {failing_subdir} directory"):
        allocate_directories("broken", temp_dir=tmp_path)

    assert list(tmp_path.iterdir()) == []


@pytest.mark.unit
def test_root_failure_is_reported_as_construction_error(tmp_path: Path) -> None:
    missing_base = tmp_path / "no-such-dir"

    with pytest.raises(SandboxConstructionError, match="creating temporary root") as excinfo:
        allocate_directories("demo", temp_dir=missing_base)

    assert isinstance(excinfo.value.__cause__, OSError)


@pytest.mark.unit
def test_remove_directories_leaves_no_residue(tmp_path: Path) -> None:
    dirs = allocate_directories("demo", temp_dir=tmp_path)
    (dirs.workdir / "main.go").write_text("package main\n", encoding="utf-8")

    remove_directories(dirs)

    assert list(tmp_path.iterdir()) == []
