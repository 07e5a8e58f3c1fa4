from __future__ import annotations

"""
Unit tests for the FileSystem Infrastructure Layer.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from gpgstore.infra.fs import (
    default_store_path,
    get_user_data_dir,
    normalize_path,
    remove_file_quietly,
    write_scratch_file,
)


def test_normalize_path_expands_user_and_fallback(tmp_path: Path) -> None:
    assert normalize_path("", str(tmp_path)) == os.path.abspath(str(tmp_path))
    assert normalize_path(None, str(tmp_path)) == os.path.abspath(str(tmp_path))
    assert normalize_path("~/x", "/unused") == os.path.abspath(os.path.expanduser("~/x"))


def test_default_store_path_is_under_home() -> None:
    assert default_store_path() == os.path.join(os.path.expanduser("~"), ".password-store")


def test_user_data_dir_is_created(tmp_path: Path) -> None:
    with patch("gpgstore.infra.fs.os.path.expanduser", return_value=str(tmp_path)), \
            patch.dict(os.environ, {"LOCALAPPDATA": str(tmp_path), "APPDATA": str(tmp_path)}):
        path = get_user_data_dir()

    assert os.path.isdir(path)
    assert path.startswith(str(tmp_path))


def test_write_scratch_file_roundtrip(tmp_path: Path) -> None:
    path = write_scratch_file("line1\nline2", str(tmp_path))

    assert os.path.dirname(path) == str(tmp_path)
    assert os.path.basename(path).startswith("gpg_edit_")
    with open(path, "r", encoding="utf-8", newline="") as f:
        assert f.read() == "line1\nline2"
    if os.name != "nt":
        assert (os.stat(path).st_mode & 0o777) == 0o600


def test_write_scratch_file_cleans_up_on_write_error(tmp_path: Path) -> None:
    with patch("gpgstore.infra.fs.os.fdopen", side_effect=OSError("boom")):
        with pytest.raises(OSError):
            write_scratch_file("x", str(tmp_path))

    assert list(tmp_path.iterdir()) == []


def test_remove_file_quietly(tmp_path: Path) -> None:
    f = tmp_path / "a"
    f.write_text("x", encoding="utf-8")

    assert remove_file_quietly(str(f)) is True
    assert not f.exists()
    assert remove_file_quietly(str(f)) is True
    assert remove_file_quietly("") is True


def test_remove_file_quietly_reports_failure(tmp_path: Path) -> None:
    with patch("gpgstore.infra.fs.os.remove", side_effect=PermissionError("denied")):
        assert remove_file_quietly(str(tmp_path / "a")) is False
