"""Build request loading.

Build requests can be kept in YAML or JSON files next to the kernel tree
and passed to the CLI with --request.
"""

import json
from pathlib import Path
from typing import Any

import yaml

from kasanbuild.builds.schema import BuildRequest


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

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


def parse_request_data(
    data: dict[str, Any],
    base_path: Path | None = None,
) -> BuildRequest:
    """Validate request data, resolving relative paths against base_path.

    A ``kernel_config_file`` key is read and replaces ``kernel_config``.

    Raises:
        pydantic.ValidationError: If data does not match the schema.
        FileNotFoundError: If kernel_config_file does not exist.
    """
    data = dict(data)
    if base_path is not None:
        for key in (
            "kernel_dir",
            "output_dir",
            "userspace_dir",
            "cmdline_file",
            "sysctl_file",
            "kernel_config_file",
        ):
            value = data.get(key)
            if value is not None and not Path(value).is_absolute():
                data[key] = base_path / value

    config_file = data.pop("kernel_config_file", None)
    if config_file is not None:
        data["kernel_config"] = Path(config_file).read_bytes()
    elif isinstance(data.get("kernel_config"), str):
        data["kernel_config"] = data["kernel_config"].encode("utf-8")

    return BuildRequest.model_validate(data)


def load_request(path: Path) -> BuildRequest:
    """Load a build request from a .yaml/.yml or .json file.

    Relative paths inside the file are resolved against the file's directory.
    """
    if path.suffix.lower() == ".json":
        data = load_json(path)
    else:
        data = load_yaml(path)
    return parse_request_data(data, base_path=path.parent)


__all__ = ["load_json", "load_request", "load_yaml", "parse_request_data"]
