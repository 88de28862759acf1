"""Shared fixtures: registry snapshots and isolation of global configuration."""

import json
import logging

import pytest

from constants import Constants
from registry.snapshot import SnapshotProvider

_CONSTANT_NAMES = [name for name in vars(Constants) if name.isupper()]


@pytest.fixture(autouse=True)
def restore_constants(monkeypatch):
    """CLI runs mutate Constants and the log-level env var; undo both."""
    saved = {name: getattr(Constants, name) for name in _CONSTANT_NAMES}
    monkeypatch.setenv(Constants.ENV_LOG_LEVEL, "WARNING")
    for env in (Constants.CONFIG_ENV, Constants.ENV_REGISTRY_URL, Constants.ENV_TOKEN):
        monkeypatch.delenv(env, raising=False)
    yield
    for name, value in saved.items():
        setattr(Constants, name, value)
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_pkglock_console", False) or isinstance(handler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def diamond_packages():
    """app -> (a, b), a -> c, b -> c, c -> d."""
    return {
        "app": {"1.0.0": {"a": "^1.0.0", "b": "^1.0.0"}},
        "a": {"1.0.0": {"c": "^1.0.0"}, "1.1.0": {"c": "^1.0.0"}},
        "b": {"1.0.0": {"c": "~1.2.0"}},
        "c": {"1.0.0": {"d": "*"}, "1.2.0": {"d": "*"}, "1.2.3": {"d": "*"}, "2.0.0": {}},
        "d": {"0.1.0": {}},
    }


@pytest.fixture
def diamond(diamond_packages):
    return SnapshotProvider(diamond_packages)


@pytest.fixture
def project(tmp_path):
    """Factory writing prpm.json and a registry snapshot into a temp project."""

    def _make(dependencies, packages):
        (tmp_path / "prpm.json").write_text(
            json.dumps({"name": "demo", "version": "0.0.1", "dependencies": dependencies})
        )
        snapshot = tmp_path / "registry.json"
        snapshot.write_text(json.dumps(packages))
        return tmp_path, str(snapshot)

    return _make
