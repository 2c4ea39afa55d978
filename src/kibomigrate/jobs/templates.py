"""JSON templates for the seeding batches."""

import json
from pathlib import Path
from typing import Any

from ..config import Settings
from ..errors import ConfigurationError

PACKAGE_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def data_directory(settings: Settings) -> Path:
    """Directory templates are read from: KIBO_DATA_DIR, else the bundled data."""
    if settings.data_directory:
        return Path(settings.data_directory).expanduser()
    return PACKAGE_DATA_DIR


def load_template(settings: Settings, filename: str, expect: type = list) -> Any:
    """Load one template file.

    Args:
        settings: Settings carrying the optional data directory
        filename: Template file name (``categories.json``...)
        expect: Type the top-level JSON value must have

    Raises:
        ConfigurationError: File missing, unreadable or of the wrong shape
    """
    path = data_directory(settings) / filename
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Template file not found: {path}", cause=e)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Template file {path} could not be read: {e}", cause=e)

    if not isinstance(data, expect):
        shape = "array" if expect is list else "object"
        raise ConfigurationError(f"Template file {path} must contain a JSON {shape}")
    return data
