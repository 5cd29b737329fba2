# The MIT License (MIT)
# Copyright © 2025 Entrius

"""Shared fixtures for CLI tests."""

import importlib
from unittest.mock import patch

import pytest
from click.testing import CliRunner


@pytest.fixture
def cli_root():
    from pending_plugins.cli.main import cli

    return cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the CLI config at a temp dir and clear the environment it reads."""
    config_dir = tmp_path / '.pending-plugins'
    config_file = config_dir / 'config.json'
    for module_name in ('pending_plugins.cli.helpers', 'pending_plugins.cli.main'):
        module = importlib.import_module(module_name)
        monkeypatch.setattr(module, 'PENDING_PLUGINS_DIR', config_dir)
        monkeypatch.setattr(module, 'CONFIG_FILE', config_file)
    for name in ('GITHUB_TOKEN', 'GITHUB_PAT', 'PENDING_PLUGINS_REPO'):
        monkeypatch.delenv(name, raising=False)
    return config_file


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch('pending_plugins.cli.main.setup_logging') as mock_setup:
        yield mock_setup
