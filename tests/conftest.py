from __future__ import annotations

from pathlib import Path

import pytest

from navdash.client import LocalNavigationClient
from navdash.config import CONFIG_ENV_OVERRIDES


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("NAVDASH_CONFIG", str(tmp_path / "config.json"))
    for env_var in CONFIG_ENV_OVERRIDES.values():
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def local_client(tmp_path: Path):
    client = LocalNavigationClient.from_path(tmp_path / "nav.sqlite")
    yield client
    client.close()
