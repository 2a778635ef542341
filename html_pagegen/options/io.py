"""Build file loading.

This module provides helpers for loading build files from YAML/JSON and
applying the environment settings as defaults for every declared page.
"""

import json
from pathlib import Path
from typing import Any

import yaml

from html_pagegen.config import Settings, get_settings
from html_pagegen.options.schema import BuildSchema


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping, got {type(data).__name__}")
    return data


def load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file and return its contents as a dict.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed JSON content as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the document is not an object.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def apply_settings_defaults(
    data: dict[str, Any], settings: Settings
) -> dict[str, Any]:
    """Fill page options the build file leaves unset from settings.

    Args:
        data: Raw build file data.
        settings: Effective settings.

    Returns:
        New build data with page defaults applied.
    """
    defaults = {
        "filename": settings.default_filename,
        "show_errors": settings.show_errors,
        "cache": settings.cache,
    }
    pages = data.get("pages")
    if pages is None:
        pages = [{}]
    if not isinstance(pages, list):
        raise ValueError(f"Expected 'pages' to be a list, got {type(pages).__name__}")
    return {**data, "pages": [{**defaults, **page} for page in pages]}


def parse_build_data(
    data: dict[str, Any], settings: Settings | None = None
) -> BuildSchema:
    """Parse and validate build file data.

    Args:
        data: Dictionary containing build data.
        settings: Settings supplying page defaults.

    Returns:
        Validated BuildSchema instance.

    Raises:
        pydantic.ValidationError: If data does not match schema.
    """
    if settings is None:
        settings = get_settings()
    return BuildSchema.model_validate(apply_settings_defaults(data, settings))


def load_build_file(path: Path, settings: Settings | None = None) -> BuildSchema:
    """Load and validate a build file (YAML or JSON).

    Relative ``context`` and ``output_path`` values are resolved against
    the directory containing the build file.

    Args:
        path: Path to the build file.
        settings: Settings supplying page defaults.

    Returns:
        Validated BuildSchema instance.

    Raises:
        ValueError: If file extension is not supported.
        FileNotFoundError: If the file does not exist.
        pydantic.ValidationError: If data does not match schema.
    """
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = load_yaml(path)
    elif suffix == ".json":
        data = load_json(path)
    else:
        raise ValueError(
            f"Unsupported file extension: {suffix}. Use .yaml, .yml, or .json"
        )

    build = parse_build_data(data, settings)
    base = path.resolve().parent
    return build.model_copy(
        update={
            "context": str(base / build.context),
            "output_path": str(base / build.output_path),
        }
    )


__all__ = [
    "apply_settings_defaults",
    "load_build_file",
    "load_json",
    "load_yaml",
    "parse_build_data",
]
