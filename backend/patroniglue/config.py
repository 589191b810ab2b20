"""Configuration — YAML file plus a few environment overrides."""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from patroniglue.models import Settings


class ConfigurationError(RuntimeError):
    """Raised when settings cannot be read or are invalid. Fatal at startup."""


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip().lower() in {"1", "true", "yes", "on"}


APP_NAME = "patroniglue"
DEFAULT_CONFIG_PATH: str = os.getenv("PATRONIGLUE_CONFIG", str(Path.home() / f".{APP_NAME}.yml"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    insecure = _env_bool("PATRONIGLUE_BACKEND_INSECURE")
    if insecure is not None:
        backend = dict(raw.get("backend") or {})
        backend["insecure"] = insecure
        raw["backend"] = backend
    return raw


def parse_settings(text: str) -> Settings:
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid YAML: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigurationError("configuration root must be a mapping")

    try:
        return Settings.model_validate(_apply_env_overrides(raw))
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc


def load_settings(path: Optional[str] = None) -> Settings:
    """Read and validate a YAML configuration file."""
    file_path = Path(path or DEFAULT_CONFIG_PATH).expanduser().resolve()
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"could not read {file_path}: {exc.strerror or exc}") from exc
    return parse_settings(text)
