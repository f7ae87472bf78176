"""
Configuration management for the tool inventory service.

Loads settings from a YAML config file, then applies environment overrides.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import yaml

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()


def _project_root() -> Path:
    """Return project root (parent of toolinv package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_CONFIG_PATH = _project_root() / "config" / "default.yaml"

TAG_STORAGE_VARIANTS = ("names", "documents")


@dataclass
class InventoryConfig:
    """Configuration for the tool inventory service."""

    # Document store
    mongo_uri: str = "mongodb://localhost:27017"
    db_name: str = "tools_inventory"

    # AI collaborator (OpenAI-compatible endpoint)
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    ai_model: str = "gpt-4o-mini"
    ai_temperature: float = 0
    ai_timeout_seconds: float = 30.0

    # Bearer tokens
    jwt_secret: Optional[str] = None   # unset disables login and token-protected writes
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60

    # Record shape
    tag_storage: str = "names"          # "names" or "documents"
    default_status: str = "available"

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "InventoryConfig":
        """Load configuration from YAML file, with environment overrides on top."""
        path = config_path or DEFAULT_CONFIG_PATH
        data = {}
        if path.exists():
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}

        store_config = data.get('store', {})
        ai_config = data.get('ai', {})
        auth_config = data.get('auth', {})
        records_config = data.get('records', {})

        config = cls(
            mongo_uri=store_config.get('mongo_uri', cls.mongo_uri),
            db_name=store_config.get('db_name', cls.db_name),
            openai_base_url=ai_config.get('base_url'),
            ai_model=ai_config.get('model', cls.ai_model),
            ai_temperature=ai_config.get('temperature', cls.ai_temperature),
            ai_timeout_seconds=ai_config.get('timeout_seconds', cls.ai_timeout_seconds),
            jwt_algorithm=auth_config.get('algorithm', cls.jwt_algorithm),
            jwt_expires_minutes=auth_config.get('expires_minutes', cls.jwt_expires_minutes),
            tag_storage=records_config.get('tag_storage', cls.tag_storage),
            default_status=records_config.get('default_status', cls.default_status),
        )
        config.apply_env()
        return config

    def apply_env(self) -> None:
        """Override settings from environment variables (secrets live only here)."""
        self.mongo_uri = os.getenv("MONGO_URI", self.mongo_uri)
        self.db_name = os.getenv("MONGO_DB", self.db_name)
        self.openai_api_key = os.getenv("OPENAI_API_KEY", self.openai_api_key)
        self.openai_base_url = os.getenv("OPENAI_BASE_URL", self.openai_base_url)
        self.ai_model = os.getenv("OPENAI_MODEL", self.ai_model)
        self.jwt_secret = os.getenv("JWT_SECRET", self.jwt_secret)
        if os.getenv("JWT_EXPIRES_MINUTES"):
            self.jwt_expires_minutes = int(os.environ["JWT_EXPIRES_MINUTES"])
        self.tag_storage = os.getenv("TAG_STORAGE", self.tag_storage)

        if self.tag_storage not in TAG_STORAGE_VARIANTS:
            raise ValueError(
                f"tag_storage must be one of {TAG_STORAGE_VARIANTS}, got {self.tag_storage!r}"
            )


# Global config instance
_config: Optional[InventoryConfig] = None


def get_config() -> InventoryConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = InventoryConfig.from_yaml()
    return _config


def set_config(config: InventoryConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
