"""Configuration loading and validation for YAML-based hygroscan settings."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from hygroscan.core.errors import ConfigLoadError, ConfigValidationError
from hygroscan.core.model import BIND_KEY_LENGTH, ScannerConfig

_HEX_RE = re.compile(r"^[0-9a-f]+$")
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


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
    scanner: ScannerConfig
    adapter: str | None
    source: Path | None


def _load_schema_validator() -> Any:
    schema_text = resources.files("hygroscan.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def default_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "hygroscan/config.yaml"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def parse_bind_key(value: str | bytes | None) -> bytes | None:
    if value is None or isinstance(value, bytes):
        return value
    normalized = value.strip().lower().replace(" ", "")
    if len(normalized) != BIND_KEY_LENGTH * 2:
        raise ConfigValidationError(
            f"bind_key must be {BIND_KEY_LENGTH * 2} hex characters, got {len(normalized)}"
        )
    if not _HEX_RE.match(normalized):
        raise ConfigValidationError("bind_key must contain only [0-9a-f]")
    return bytes.fromhex(normalized)


def _normalize_bool(value: Any, *, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise ConfigValidationError(f"{context} must be boolean true/false")


def _build_config(doc: dict[str, Any], source: Path | str) -> LoadedConfig:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    if "discover_interval_s" not in doc:
        raise ConfigValidationError(f"discover_interval_s is required ({source})")

    scanner = ScannerConfig(
        discover_interval_s=float(doc["discover_interval_s"]),
        address=doc.get("address"),
        force_discovering=_normalize_bool(
            doc.get("force_discovering", True),
            context="force_discovering",
        ),
        restart_delay_s=float(doc.get("restart_delay_s", 600.0)),
        bind_key=parse_bind_key(doc.get("bind_key")),
    )
    return LoadedConfig(
        scanner=scanner,
        adapter=doc.get("adapter"),
        source=source if isinstance(source, Path) else None,
    )


def load_config(path: Path | None = None, **overrides: Any) -> LoadedConfig:
    """Load settings from ``path`` (or the default location) and apply overrides.

    Overrides whose value is None are ignored, so unset command line options
    keep the file's values. A missing file is only an error when ``path`` was
    given explicitly.
    """
    doc: dict[str, Any] = {}
    source: Path | str = "<command line>"
    if path is not None:
        doc = _read_yaml(path)
        source = path
    else:
        candidate = default_config_path()
        if candidate.is_file():
            LOGGER.debug("Using config file %s", candidate)
            doc = _read_yaml(candidate)
            source = candidate

    for key, value in overrides.items():
        if value is not None:
            doc[key] = value
    return _build_config(doc, source)
