"""
Pytest configuration for multitenant_login. Properties files are written to tmp_path
so each test gets its own ConfigLoader and app.
"""
import pytest
from fastapi.testclient import TestClient

from multitenant_login.config import ConfigLoader
from multitenant_login.main import create_app
from multitenant_login.tests.sample_config import BASELINE


@pytest.fixture
def write_properties(tmp_path):
    """Write key=value lines (or raw text) to a properties file; returns its path."""

    def _write(values: dict | str, name: str = "multitenant.properties"):
        path = tmp_path / name
        if isinstance(values, str):
            path.write_text(values, encoding="utf-8")
        else:
            path.write_text("".join(f"{k}={v}\n" for k, v in values.items()), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_client(write_properties):
    """Start an app on the given properties; yields a started TestClient."""
    clients = []

    def _make(overrides: dict | None = None):
        values = {**BASELINE, **(overrides or {})}
        app = create_app(ConfigLoader(write_properties(values)))
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for c in clients:
        c.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()
