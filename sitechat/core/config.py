"""
Configuration Manager for SiteChat

Reads a YAML or JSON file into per-section dataclasses, applies
environment overrides and validates the crawl, context and model
settings before the service is built.
"""

import os
import json
import yaml
from typing import Dict, Any, Optional, List, Callable, Tuple
from dataclasses import dataclass, asdict, fields
from pathlib import Path

from sitechat.core.base import ConfigurationError


@dataclass
class CrawlConfig:
    """Headless browser and crawl loop settings"""
    headless: bool = True
    navigation_timeout: float = 60.0
    operation_timeout: float = 90.0
    settle_delay: float = 2.0
    pool_capacity: int = 1
    max_pages: int = 10
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64)"
    viewport_width: int = 1366
    viewport_height: int = 768


@dataclass
class StorageConfig:
    """Root directory of the document and dialogue stores"""
    base_path: str = "./data"


@dataclass
class ContextConfig:
    """Bounds of the context window handed to the model"""
    max_documents: int = 5
    max_chars: int = 8000


@dataclass
class ModelConfig:
    """Generative model client settings"""
    provider: str = "gemini"
    model_id: str = "gemini-2.0-flash"
    api_url: str = "https://generativelanguage.googleapis.com/v1beta"
    api_key_env: str = "GEMINI_API_KEY"
    timeout: int = 30


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str = "./logs/sitechat.log"
    max_size: str = "10MB"
    backup_count: int = 5


SECTIONS = {
    'crawl': CrawlConfig,
    'storage': StorageConfig,
    'context': ContextConfig,
    'model': ModelConfig,
    'logging': LoggingConfig,
}

# (variable, section, key, converter)
ENV_OVERRIDES: List[Tuple[str, str, str, Callable[[str], Any]]] = [
    ('SITECHAT_STORAGE_PATH', 'storage', 'base_path', str),
    ('SITECHAT_POOL_CAPACITY', 'crawl', 'pool_capacity', int),
    ('SITECHAT_MODEL', 'model', 'model_id', str),
    ('LOG_LEVEL', 'logging', 'level', str),
]


class ConfigManager:
    """
    Loads the configuration file once and exposes each section as a
    dataclass, plus the `websites` and `users` lists.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or "config/config.yaml"
        self._raw: Dict[str, Any] = {}
        self.crawl_config: Optional[CrawlConfig] = None
        self.storage_config: Optional[StorageConfig] = None
        self.context_config: Optional[ContextConfig] = None
        self.model_config: Optional[ModelConfig] = None
        self.logging_config: Optional[LoggingConfig] = None
        self.websites: List[Dict[str, Any]] = []
        self.users: List[Any] = []

    def load_config(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Load the configuration file, writing a default one if it is missing

        Returns:
            Plain dict with one entry per section plus websites and users
        """
        if config_path:
            self.config_path = config_path

        path = Path(self.config_path)
        if path.exists():
            self._raw = self._read_file(path)
        else:
            self._raw = self.defaults()
            self._write_defaults(path)

        self._apply_env_overrides()
        self._build_sections()
        return self.as_dict()

    def _read_file(self, path: Path) -> Dict[str, Any]:
        try:
            text = path.read_text(encoding='utf-8')
            data = json.loads(text) if path.suffix.lower() == '.json' else yaml.safe_load(text)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load config from {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        return data

    @staticmethod
    def defaults() -> Dict[str, Any]:
        data: Dict[str, Any] = {name: asdict(cls()) for name, cls in SECTIONS.items()}
        data['websites'] = []
        data['users'] = []
        return data

    def _write_defaults(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self._raw, f, default_flow_style=False, sort_keys=False)

    def _apply_env_overrides(self) -> None:
        for variable, section, key, convert in ENV_OVERRIDES:
            value = os.getenv(variable)
            if not value:
                continue
            try:
                converted = convert(value)
            except ValueError:
                raise ConfigurationError(f"{variable} has an invalid value: {value!r}")
            section_data = self._raw.get(section) or {}
            section_data[key] = converted
            self._raw[section] = section_data

    def _build_sections(self) -> None:
        for name, cls in SECTIONS.items():
            values = self._raw.get(name) or {}
            unknown = set(values) - {f.name for f in fields(cls)}
            if unknown:
                raise ConfigurationError(f"Unknown key(s) in section '{name}': {', '.join(sorted(unknown))}")
            setattr(self, f"{name}_config", cls(**values))

        self.websites = list(self._raw.get('websites') or [])
        self.users = list(self._raw.get('users') or [])

    def as_dict(self) -> Dict[str, Any]:
        """Parsed configuration as the plain dict handed to components"""
        if self.crawl_config is None:
            raise ConfigurationError("Configuration not loaded")
        data: Dict[str, Any] = {name: asdict(getattr(self, f"{name}_config")) for name in SECTIONS}
        data['websites'] = list(self.websites)
        data['users'] = list(self.users)
        return data

    def validate_config(self, require_model: bool = False) -> bool:
        """
        Check value ranges and create the storage directory

        Args:
            require_model: Also require the model API key variable to be set
        """
        if self.crawl_config is None:
            raise ConfigurationError("Configuration not loaded")

        crawl = self.crawl_config
        if crawl.pool_capacity < 1:
            raise ConfigurationError("crawl.pool_capacity must be at least 1")
        if crawl.navigation_timeout <= 0 or crawl.operation_timeout <= 0:
            raise ConfigurationError("crawl timeouts must be positive")
        if crawl.operation_timeout < crawl.navigation_timeout:
            raise ConfigurationError("crawl.operation_timeout must not be shorter than navigation_timeout")
        if crawl.max_pages < 1:
            raise ConfigurationError("crawl.max_pages must be at least 1")
        if self.context_config.max_documents < 1 or self.context_config.max_chars < 1:
            raise ConfigurationError("context bounds must be positive")

        if self.model_config.provider != "gemini":
            raise ConfigurationError(f"Unsupported model provider: {self.model_config.provider}")

        if require_model and not os.getenv(self.model_config.api_key_env):
            raise ConfigurationError(
                f"API key not found in environment variable: {self.model_config.api_key_env}"
            )

        Path(self.storage_config.base_path).mkdir(parents=True, exist_ok=True)
        return True
