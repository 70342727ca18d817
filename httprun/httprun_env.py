from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional

import yaml

from httprun.httprun_datatypes import EnvironmentFileError
from httprun.httprun_serialize import load_mapping_file

DEFAULT_ENV_FILE = "http-client.env.json"


def _format_for(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    return "yaml" if ext in (".yaml", ".yml") else "json"


def _read_environments(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = load_mapping_file(f.read(), fmt=_format_for(path))
    except (ValueError, yaml.YAMLError) as e:
        raise EnvironmentFileError(f"Failed to parse {path}: {e}") from e
    except OSError as e:
        raise EnvironmentFileError(f"{path}: {e}") from e
    if not isinstance(data, dict):
        raise EnvironmentFileError(f"Failed to parse {path}: expected a mapping of environments")
    return data


def _value_to_string(value: Any) -> str:
    match value:
        case None:
            return ""
        case str():
            return value
        # bool is a subclass of int, so check it before numbers
        case bool():
            return "true" if value else "false"
        case int() | float():
            return json.dumps(value)
        case _:
            return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _merge_section(env_vars: Dict[str, str], section: Any, path: str):
    if section is None:
        return
    if not isinstance(section, dict):
        raise EnvironmentFileError(f"Failed to parse {path}: environment must be a mapping")
    for key, value in section.items():
        env_vars[str(key)] = _value_to_string(value)


def private_env_path(env_file: str) -> str:
    """http-client.env.json -> http-client.private.env.json"""
    directory, filename = os.path.split(env_file)
    stem, ext = os.path.splitext(filename)
    ext = ext or ".json"
    if stem.endswith(".env"):
        private = f"{stem[:-4]}.private.env{ext}"
    else:
        private = f"{stem or 'http-client.env'}.private{ext}"
    return os.path.join(directory, private)


def resolve_env_file(env_file: str, http_file: Optional[str] = None) -> str:
    """A relative env file is looked up next to the .http file."""
    if os.path.isabs(env_file) or not http_file:
        return env_file
    return os.path.join(os.path.dirname(http_file), env_file)


def load_environment(env_file: str, env_name: str) -> Dict[str, str]:
    """
    Returns the flat variable mapping for `env_name`.

    Values from the sibling private file (when present) override the public ones.
    """
    if not os.path.isfile(env_file):
        raise EnvironmentFileError(f"Environment file not found: {env_file}")

    all_envs = _read_environments(env_file)
    if env_name not in all_envs:
        available = sorted(all_envs)
        raise EnvironmentFileError(f"Environment '{env_name}' not found. Available: {available}")

    env_vars: Dict[str, str] = {}
    _merge_section(env_vars, all_envs[env_name], env_file)

    private_file = private_env_path(env_file)
    if os.path.isfile(private_file):
        private_envs = _read_environments(private_file)
        _merge_section(env_vars, private_envs.get(env_name), private_file)

    return env_vars


def list_environments(env_file: str) -> List[str]:
    if not os.path.isfile(env_file):
        return []
    return sorted(_read_environments(env_file))
