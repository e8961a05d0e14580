from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any

from tarpipe.infra.paths import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_CONFIG_FILENAME,
    SETTING_PATH,
)

logger = logging.getLogger(__name__)

LOCAL_FILENAMES = ("settings.toml", "settings.json")


def _find_config_file(
    user_path: str | Path | None,
    local_names: tuple[str, ...],
    fallback: Path,
) -> Path | None:
    """
    Pick the settings file to read.

    Lookup order:
        1. ``user_path``, when given and it exists
        2. any of ``local_names`` in the current working directory
        3. ``fallback`` (the per-user settings file)

    Returns:
        The first existing candidate, or None.
    """
    if user_path:
        path = Path(user_path).expanduser().resolve()
        if path.is_file():
            return path
        logger.warning("Config file not found: %s", path)

    for name in local_names:
        candidate = (Path.cwd() / name).resolve()
        if candidate.is_file():
            logger.debug("Using config from working directory: %s", candidate)
            return candidate

    if fallback.is_file():
        return fallback.resolve()

    return None


def _parse_file(path: Path) -> dict[str, Any]:
    """
    Parse a ``.toml`` or ``.json`` settings file.

    Raises:
        ValueError: On an unknown extension, a syntax error, or a root
            element that is not a table/object.
    """
    ext = path.suffix.lower()

    if ext == ".toml":
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ValueError(f"Invalid TOML in {path}: {e}") from e
    elif ext == ".json":
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    else:
        raise ValueError(f"Unsupported config file extension: {ext}")

    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a dict, got {type(data)} in {path}")

    return data


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """
    Load the settings mapping.

    Resolution order:
        - explicit ``config_path``
        - ``settings.toml`` or ``settings.json`` in the working directory
        - ``SETTING_PATH``

    Raises:
        FileNotFoundError: If none of the candidates exists.
        ValueError: If the file cannot be parsed.
    """
    path = _find_config_file(config_path, LOCAL_FILENAMES, SETTING_PATH)
    if path is None:
        raise FileNotFoundError("No valid config file found.")

    logger.debug("Loading configuration from: %s", path)
    return _parse_file(path)


def copy_default_config(target: str | Path | None = None) -> Path:
    """Write the bundled sample settings to ``target``.

    Defaults to ``settings.toml`` in the working directory.

    Returns:
        The path written.
    """
    path = Path(target) if target is not None else Path.cwd() / DEFAULT_CONFIG_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(DEFAULT_CONFIG_FILE.read_bytes())
    logger.info("Copied sample settings to %s", path)
    return path


def save_config(
    config: dict[str, Any],
    output_path: str | Path = SETTING_PATH,
) -> None:
    """
    Write a settings mapping as JSON.

    Raises:
        OSError: If the file cannot be written.
    """
    output = Path(output_path).expanduser().resolve()
    output.parent.mkdir(parents=True, exist_ok=True)

    try:
        with output.open("w", encoding="utf-8") as f:
            json.dump(config, f, indent=2, ensure_ascii=False)
    except OSError as e:
        logger.error("Failed to write config JSON '%s': %s", output, e)
        raise

    logger.info("Configuration saved to JSON: %s", output)


def save_config_file(
    source_path: str | Path,
    output_path: str | Path = SETTING_PATH,
) -> None:
    """
    Import a TOML/JSON settings file as the per-user JSON settings.

    Raises:
        FileNotFoundError: If ``source_path`` does not exist.
        ValueError: If it cannot be parsed.
    """
    source = Path(source_path).expanduser().resolve()
    if not source.is_file():
        raise FileNotFoundError(f"Source file not found: {source}")

    save_config(_parse_file(source), output_path)
