"""Shared fixtures."""

import pytest


@pytest.fixture
def isolated_cwd(tmp_path, monkeypatch):
    """Run in tmp_path with a .git marker so no outer .env leaks in."""
    (tmp_path / '.git').mkdir()
    monkeypatch.chdir(tmp_path)
    return tmp_path
