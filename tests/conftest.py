from __future__ import annotations

import pytest

from cellar.config import Settings


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep the developer's environment and .env file out of Settings()."""

    for field in Settings.model_fields.values():
        if field.alias:
            monkeypatch.delenv(field.alias, raising=False)
            monkeypatch.delenv(field.alias.lower(), raising=False)
    monkeypatch.setitem(Settings.model_config, "env_file", None)
