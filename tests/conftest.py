"""Shared pytest fixtures for all tests."""

import json

import pytest
from fastapi.testclient import TestClient

from common.auth import AuthProvider, AuthStorage
from common.config import Config
from common.types import ItemStackData
from recipes.models import VanillaRecipeData, VanillaRecipeType
from recipes.registry import ProviderRegistry
from server.main import create_app
from server.recipe_store import RecipeStore
from server.session_store import UploadSessionStore
from transfer.client import TransferClient
from transfer.retry import RetryPolicy

TEST_TOKEN = 'rf_test_token'


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .recipeflow directory
    """
    config_dir = tmp_path / '.recipeflow'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir, monkeypatch):
    """
    Create temporary config instance with no server settings.

    Returns:
        Config instance with temp config file
    """
    monkeypatch.delenv('RECIPEFLOW_SERVER_URL', raising=False)
    monkeypatch.delenv('RECIPEFLOW_MODPACK_SLUG', raising=False)
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def configured_config(temp_config):
    """
    Config pointing at the in-process test server with a static token.

    Returns:
        Config instance ready for network calls
    """
    temp_config.data.update({
        'server_url': 'http://testserver',
        'auth_token': TEST_TOKEN,
        'modpack_slug': 'test-pack',
        'version_override': '1.0.0',
        'compression_enabled': False,
    })
    temp_config.save()
    return temp_config


@pytest.fixture
def auth_provider(temp_config, temp_config_dir):
    """AuthProvider backed by a temp token store and the temp config."""
    return AuthProvider(AuthStorage(temp_config_dir / 'auth.json'), temp_config)


@pytest.fixture
def registry():
    return ProviderRegistry()


@pytest.fixture
def session_store():
    return UploadSessionStore()


@pytest.fixture
def recipe_store():
    return RecipeStore()


@pytest.fixture
def server_app(session_store, recipe_store):
    """Reference server accepting only the test token."""
    return create_app(session_store=session_store, recipe_store=recipe_store, api_tokens=[TEST_TOKEN])


@pytest.fixture
def transfer_client(configured_config, server_app):
    """
    TransferClient wired to the in-process reference server.

    Retries do not sleep.
    """
    client = TransferClient(
        configured_config,
        lambda: configured_config.get_auth_token(),
        policy=RetryPolicy(max_attempts=3, base_delay=0.0),
        sleep=lambda seconds: None,
    )
    client.session = TestClient(server_app)
    return client


@pytest.fixture
def iron_ingot_recipe():
    """Shaped crafting recipe for iron ingots."""
    return VanillaRecipeData(
        id='minecraft:iron_ingot_from_nuggets',
        recipe_type=VanillaRecipeType.CRAFTING_SHAPED,
        pattern=['###', '###', '###'],
        key={'#': ItemStackData('minecraft:iron_nugget')},
        output=ItemStackData('minecraft:iron_ingot'),
    )


@pytest.fixture
def recipe_file(tmp_path):
    """
    Write a recipe export file with two records.

    Returns:
        Path to the JSON file
    """
    records = [
        {
            'recipeId': 'minecraft:stick',
            'type': 'minecraft:crafting_shaped',
            'sourceMod': 'minecraft',
            'data': {
                'type': 'minecraft:crafting_shaped',
                'pattern': ['#', '#'],
                'output': {'itemId': 'minecraft:stick', 'count': 4},
            },
        },
        {
            'recipeId': 'create:crushing/iron_ore',
            'type': 'create:crushing',
            'sourceMod': 'create',
            'data': {
                'type': 'create:crushing',
                'outputs': {'items': [{'itemId': 'create:crushed_raw_iron', 'count': 1}]},
            },
        },
    ]
    path = tmp_path / 'recipes.json'
    path.write_text(json.dumps(records))
    return path
