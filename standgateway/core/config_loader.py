"""Configuration loading and validation for YAML-based gateway settings."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml
from jsonschema import ValidationError, validators

from standgateway.core.errors import ConfigLoadError, ConfigValidationError
from standgateway.core.model import SERIAL_PORT_SERVICE_ID, GatewayConfig

_CONFIG_NAMES = ("config.yaml", "config.yml")
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedConfig:
    config: GatewayConfig
    sources: tuple[str, ...]
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("standgateway.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _config_dir() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "standgateway"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    # An empty user file just means "no overrides".
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def _normalize_uuid(value: str, *, context: str) -> UUID:
    normalized = value.strip().lower()
    # 16-bit and 32-bit short forms expand onto the Bluetooth base UUID.
    if len(normalized) in (4, 8) and all(c in "0123456789abcdef" for c in normalized):
        normalized = f"{normalized:0>8}-0000-1000-8000-00805f9b34fb"
    try:
        return UUID(normalized)
    except ValueError as exc:
        raise ConfigValidationError(
            f"{context} must be a 16-bit, 32-bit, or 128-bit UUID string"
        ) from exc


def _build_config(doc: dict[str, Any], sources: list[str]) -> GatewayConfig:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(
            f"Schema validation failed for {' + '.join(sources)}{where}: {exc.message}"
        ) from exc

    timeout = doc.get("connect_timeout_s")
    return GatewayConfig(
        target_name=doc["target_name"].strip(),
        service_uuid=_normalize_uuid(str(doc["service_uuid"]), context="service_uuid"),
        channel=doc.get("channel"),
        connect_timeout_s=float(timeout) if timeout is not None else None,
        wait_timeout_s=float(doc.get("wait_timeout_s", 30.0)),
    )


def _packaged_defaults_path() -> Traversable:
    return resources.files("standgateway.defaults").joinpath("gateway.yaml")


def _user_config_path() -> Path | None:
    directory = _config_dir()
    for name in _CONFIG_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path | None = None) -> LoadedConfig:
    """Load packaged defaults, then overlay the user file or ``path``.

    An explicit ``path`` must exist and replaces the XDG user file.
    """
    defaults_path = _packaged_defaults_path()
    doc = _read_yaml(defaults_path)
    sources = [str(defaults_path)]
    warnings: list[str] = []

    override_path = path if path is not None else _user_config_path()
    if override_path is not None:
        override = _read_yaml(override_path)
        for key in sorted(override):
            if key in doc and override[key] != doc[key]:
                LOGGER.info("Config %s overrides '%s'", override_path, key)
        doc.update(override)
        sources.append(str(override_path))

    config = _build_config(doc, sources)
    if config.service_uuid != SERIAL_PORT_SERVICE_ID:
        warning = (
            f"service_uuid {config.service_uuid} is not the serial port profile; "
            "the peer firmware may not answer"
        )
        LOGGER.warning(warning)
        warnings.append(warning)

    return LoadedConfig(config=config, sources=tuple(sources), warnings=tuple(warnings))
