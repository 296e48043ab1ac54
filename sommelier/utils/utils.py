import json
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path

from omegaconf import DictConfig, OmegaConf

CONFIG_FILE_NAME = "app_config.yml"


def find_project_root(marker: str = "pyproject.toml") -> Path:
    """
    Walks up from the package directory, then from the current directory, to find the project root.
    The marker can be a file or folder like '.git' or 'pyproject.toml'.
    """
    for start in (Path(__file__).resolve().parent, Path(os.getcwd()).resolve()):
        current_path = start
        while current_path != current_path.parent:
            if (current_path / marker).exists():
                return current_path
            current_path = current_path.parent
    raise FileNotFoundError(f"Project root with {marker} not found.")


def get_project_root() -> Path:
    """Returns the project root path."""
    return find_project_root()


def get_config() -> DictConfig:
    """
    Returns the app config object.
    The config path can be overridden via the `SOMMELIER_CONFIG` env variable.
    """
    config_path = os.environ.get("SOMMELIER_CONFIG")
    if config_path:
        return OmegaConf.load(config_path)
    return OmegaConf.load(get_project_root() / CONFIG_FILE_NAME)


def get_default_db_path() -> str:
    """Returns the SQLite database path from config, resolved against the project root."""
    db_path = Path(get_config().database.path)
    if not db_path.is_absolute():
        db_path = get_project_root() / db_path
    return str(db_path)


def load_json(path: str | Path) -> dict | list:
    """Load a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def new_id() -> str:
    """Generate a new opaque record identifier."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    """Current timestamp in UTC."""
    return datetime.now(timezone.utc)
