"""
Configuration for the auth core.

Sources, lowest to highest precedence:
1. Defaults below
2. Optional YAML settings file (FINTRACK_SETTINGS_FILE, default data/settings.yaml);
   values of the form ${VAR} or ${VAR:default} are read from the environment
3. FINTRACK_* environment variables (a .env file is loaded first)
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..auth.service import AuthService
from ..services.session_store import SessionStore, load_or_create_key
from ..services.user_store import UserStore
from .exceptions import ConfigError

DEFAULT_SETTINGS_FILE = Path("data") / "settings.yaml"


class StorageSettings(BaseModel):
    data_dir: Path = Path("data")
    users_file: str = "db.json"
    session_file: str = "session.bin"
    session_key_file: str = "session.key"
    session_key: Optional[str] = None  # Fernet key; generated into session_key_file when unset

    @property
    def users_path(self) -> Path:
        return self.data_dir / self.users_file

    @property
    def session_path(self) -> Path:
        return self.data_dir / self.session_file

    @property
    def session_key_path(self) -> Path:
        return self.data_dir / self.session_key_file


class AuthSettings(BaseModel):
    min_password_length: int = Field(default=8, ge=8)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = Field(default="json", pattern="^(json|console)$")


class WebSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000


class Settings(BaseModel):
    storage: StorageSettings = Field(default_factory=StorageSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    web: WebSettings = Field(default_factory=WebSettings)


# env var -> (section, key)
ENV_OVERRIDES = {
    "FINTRACK_DATA_DIR": ("storage", "data_dir"),
    "FINTRACK_USERS_FILE": ("storage", "users_file"),
    "FINTRACK_SESSION_FILE": ("storage", "session_file"),
    "FINTRACK_SESSION_KEY": ("storage", "session_key"),
    "FINTRACK_MIN_PASSWORD_LENGTH": ("auth", "min_password_length"),
    "FINTRACK_LOG_LEVEL": ("logging", "level"),
    "FINTRACK_LOG_FORMAT": ("logging", "format"),
    "HOST": ("web", "host"),
    "PORT": ("web", "port"),
}


def _substitute_env_vars(value: Any) -> Any:
    """Recursively substitute environment variables"""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            var_expr = value[2:-1]
            if ":" in var_expr:
                var_name, default = var_expr.split(":", 1)
                return os.getenv(var_name.strip(), default.strip())
            return os.getenv(var_expr, value)
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read settings file {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    return _substitute_env_vars(raw)


def load_settings(path: Optional[Path] = None, use_dotenv: bool = True) -> Settings:
    """Build Settings from defaults, the YAML file and the environment"""
    if use_dotenv:
        load_dotenv()

    settings_path = Path(path or os.getenv("FINTRACK_SETTINGS_FILE") or DEFAULT_SETTINGS_FILE)
    data: Dict[str, Any] = _read_yaml(settings_path) if settings_path.exists() else {}

    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            data.setdefault(section, {})[key] = value

    try:
        return Settings(**data)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e


def build_auth_service(settings: Optional[Settings] = None) -> AuthService:
    """Wire the user store, session store and AuthService from settings"""
    settings = settings or load_settings()
    storage = settings.storage
    key = storage.session_key or load_or_create_key(storage.session_key_path)
    return AuthService(
        user_store=UserStore(storage.users_path),
        session_store=SessionStore(storage.session_path, key),
        min_password_length=settings.auth.min_password_length,
    )
