import os
import sys
import tomllib
from pathlib import Path

import pytest

from pngx.auth import CredentialStore
from pngx.errors import IoFailure


def test_set_then_read(tmp_path: Path):
    store = CredentialStore(tmp_path / "pngx" / "config.toml")
    path = store.set("https://paperless.example", "tok123")

    assert path.exists()
    assert store.read() == {"url": "https://paperless.example", "token": "tok123"}
    assert store.get("url") == "https://paperless.example"
    assert store.get("token") == "tok123"
    assert store.get("missing") is None


def test_values_are_quoted(tmp_path: Path):
    store = CredentialStore(tmp_path / "config.toml")
    store.set("https://x.example", 'we"ird\\token')
    assert tomllib.loads(store.path.read_text(encoding="utf-8"))["token"] == 'we"ird\\token'


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
def test_file_is_private(tmp_path: Path):
    store = CredentialStore(tmp_path / "config.toml")
    store.set("https://x.example", "t")
    assert os.stat(store.path).st_mode & 0o777 == 0o600


def test_read_missing_file_is_empty(tmp_path: Path):
    assert CredentialStore(tmp_path / "nope.toml").read() == {}


def test_read_garbage_raises(tmp_path: Path):
    p = tmp_path / "config.toml"
    p.write_text("url = = =", encoding="utf-8")
    with pytest.raises(IoFailure):
        CredentialStore(p).read()


def test_clear(tmp_path: Path):
    store = CredentialStore(tmp_path / "config.toml")
    assert store.clear() is False
    store.set("https://x.example", "t")
    assert store.clear() is True
    assert not store.path.exists()


def test_masked_lines(tmp_path: Path):
    store = CredentialStore(tmp_path / "config.toml")
    store.set("https://x.example", "secret")
    lines = store.masked_lines()
    assert 'url = "https://x.example"' in lines
    assert 'token = "***"' in lines
    assert not any("secret" in line for line in lines)


def test_masked_lines_unreadable_raises(tmp_path: Path):
    path = tmp_path / "config.toml"
    path.mkdir()
    with pytest.raises(IoFailure):
        CredentialStore(path).masked_lines()
