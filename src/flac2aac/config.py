"""
Settings for flac2aac.

Values are layered: built-in defaults, then an optional JSON settings file,
then command-line overrides applied by the CLI.
"""

import os
import json
import logging
from dataclasses import dataclass, fields, replace
from typing import Optional

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FLAC2AAC_CONFIG"
DEFAULT_CONFIG_FILE = os.path.join(os.path.expanduser("~"), ".flac2aac_config.json")


@dataclass(frozen=True)
class Settings:
    """Encoder and layout settings resolved once per invocation."""
    ffmpeg_path: str = "ffmpeg"
    audio_codec: str = "libfdk_aac"
    vbr_quality: Optional[int] = 5
    audio_bitrate: Optional[str] = None
    source_extension: str = ".flac"
    target_extension: str = ".m4a"
    device_music_dir: str = "Music"

    def with_overrides(self, **overrides):
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


_EXPECTED_TYPES = {
    "ffmpeg_path": (str,),
    "audio_codec": (str,),
    "vbr_quality": (int, type(None)),
    "audio_bitrate": (str, type(None)),
    "source_extension": (str,),
    "target_extension": (str,),
    "device_music_dir": (str,),
}


def get_config_path(explicit_path=None):
    """Pick the settings file: explicit flag, then environment, then home default."""
    if explicit_path:
        return explicit_path
    return os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE


def load_settings(config_path=None):
    """
    Load settings from a JSON file, falling back to defaults.

    Args:
        config_path: Path to the JSON settings file. A missing file is not an
            error; a malformed one is.

    Returns:
        Settings: The merged settings.

    Raises:
        ConfigurationError: If the file cannot be parsed or holds a value of
            the wrong type.
    """
    path = get_config_path(config_path)
    if not os.path.exists(path):
        logger.debug(f"No settings file at {path}, using defaults")
        return Settings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Settings file {path} is not valid JSON: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read settings file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a JSON object")

    known = {f.name for f in fields(Settings)}
    values = {}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown setting '{key}' in {path}")
            continue
        # bool is an int subclass; reject it explicitly for numeric settings
        if isinstance(value, bool) or not isinstance(value, _EXPECTED_TYPES[key]):
            raise ConfigurationError("Wrong type for setting", config_key=key, config_value=value)
        values[key] = value

    for key in ("source_extension", "target_extension"):
        if key in values and not values[key].startswith("."):
            raise ConfigurationError("Extensions must start with a dot",
                                     config_key=key, config_value=values[key])

    logger.info(f"Loaded settings from {path}")
    return Settings(**values)
