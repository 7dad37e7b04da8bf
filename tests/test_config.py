"""
Tests for ConfigManager
"""

import os
from unittest.mock import patch

import pytest
import yaml

from sitechat.core.base import ConfigurationError
from sitechat.core.config import ConfigManager


class TestConfigManager:
    """Test cases for configuration loading and validation"""

    def test_missing_file_writes_defaults(self, tmp_path):
        path = tmp_path / "config" / "config.yaml"
        manager = ConfigManager(str(path))

        with patch.dict(os.environ, {}, clear=True):
            config = manager.load_config()

        assert path.exists()
        assert config['crawl']['pool_capacity'] == 1
        assert config['crawl']['navigation_timeout'] == 60.0
        assert config['context'] == {'max_documents': 5, 'max_chars': 8000}
        assert config['model']['model_id'] == "gemini-2.0-flash"
        assert config['websites'] == []

    def test_yaml_values_and_env_overrides(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            'crawl': {'max_pages': 3},
            'websites': [{'id': 'docs', 'url': 'https://docs.example.com/'}],
        }))
        manager = ConfigManager(str(path))

        with patch.dict(os.environ, {
            'SITECHAT_STORAGE_PATH': str(tmp_path / "store"),
            'SITECHAT_POOL_CAPACITY': '3',
            'SITECHAT_MODEL': 'gemini-2.5-pro',
            'LOG_LEVEL': 'DEBUG',
        }, clear=True):
            config = manager.load_config()

        assert config['crawl']['max_pages'] == 3
        assert config['crawl']['pool_capacity'] == 3
        assert config['storage']['base_path'] == str(tmp_path / "store")
        assert config['model']['model_id'] == 'gemini-2.5-pro'
        assert config['logging']['level'] == 'DEBUG'
        assert config['websites'][0]['id'] == 'docs'

    def test_json_config(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"context": {"max_chars": 100}}')

        with patch.dict(os.environ, {}, clear=True):
            config = ConfigManager(str(path)).load_config()

        assert config['context']['max_chars'] == 100

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({'crawl': {'max_workers': 5}}))

        with pytest.raises(ConfigurationError):
            ConfigManager(str(path)).load_config()

    def test_invalid_pool_capacity_env(self, tmp_path):
        with patch.dict(os.environ, {'SITECHAT_POOL_CAPACITY': 'many'}, clear=True):
            with pytest.raises(ConfigurationError):
                ConfigManager(str(tmp_path / "config.yaml")).load_config()

    @pytest.mark.parametrize("crawl", [
        {'pool_capacity': 0},
        {'navigation_timeout': 0},
        {'navigation_timeout': 60, 'operation_timeout': 30},
        {'max_pages': 0},
    ])
    def test_validation_rejects_bad_ranges(self, tmp_path, crawl):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({'crawl': crawl, 'storage': {'base_path': str(tmp_path / "d")}}))
        manager = ConfigManager(str(path))

        with patch.dict(os.environ, {}, clear=True):
            manager.load_config()
            with pytest.raises(ConfigurationError):
                manager.validate_config()

    def test_validation_requires_model_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({'storage': {'base_path': str(tmp_path / "d")}}))
        manager = ConfigManager(str(path))

        with patch.dict(os.environ, {}, clear=True):
            manager.load_config()
            assert manager.validate_config()
            with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
                manager.validate_config(require_model=True)

        with patch.dict(os.environ, {'GEMINI_API_KEY': 'key'}, clear=True):
            assert manager.validate_config(require_model=True)
