"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from opsdispatch.config.models import SchedulerConfig, StorageConfig
from opsdispatch.config.settings import Settings
from opsdispatch.factory import Stores, create_stores
from opsdispatch.store.models import Integration, IntegrationKind

OWNER = "user-1"


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings rooted in tmp_path, background scheduler off."""
    with patch("opsdispatch.config.constants.CONFIG_FILE", tmp_path / "config.json"):
        return Settings(
            storage=StorageConfig(data_dir=str(tmp_path / "data")),
            scheduler=SchedulerConfig(enabled=False),
        )


@pytest.fixture
def stores(test_settings: Settings) -> Stores:
    return create_stores(test_settings)


@pytest.fixture
def glpi_integration() -> Integration:
    return Integration(
        owner_id=OWNER,
        kind=IntegrationKind.GLPI,
        name="GLPI prod",
        base_url="https://glpi.example.com",
        api_token="app-token",
        user_token="user-token",
    )


@pytest.fixture
def evolution_integration() -> Integration:
    return Integration(
        owner_id=OWNER,
        kind=IntegrationKind.EVOLUTION_API,
        name="WhatsApp",
        base_url="https://evo.example.com",
        api_token="evo-key",
        instance_name="ops",
    )

