"""Settings loading.

Resolution order (highest priority first):

1. Environment variables ``GIT_VENDOR_<KEY>`` (e.g. ``GIT_VENDOR_REF_SCHEME``)
2. ``<repo_root>/.git-vendor.yaml``, under the top-level ``vendor:`` key
3. Bundled defaults (``git_vendor/data/config/defaults.yaml``)

The merged mapping is validated against the bundled JSON Schema before it
becomes a :class:`VendorSettings`.
"""
from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import jsonschema
import yaml

from git_vendor.core.exceptions import InvalidInputError, IOFailureError
from git_vendor.core.registry import RefScheme
from git_vendor.core.tree_filter import FilterErrorPolicy
from git_vendor.data import read_yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".git-vendor.yaml"
CONFIG_SECTION = "vendor"
ENV_PREFIX = "GIT_VENDOR_"
SCHEMA_NAME = "config.schema.yaml"


@dataclass(frozen=True, slots=True)
class VendorSettings:
    """Resolved settings for one repository."""

    manifest_name: str = ".gitattributes"
    ref_prefix: str = "refs/vendor"
    ref_scheme: RefScheme = RefScheme.NAME
    filter_errors: FilterErrorPolicy = FilterErrorPolicy.EXCLUDE
    merge_message: str = "Merge vendored dependency: {name}"
    git_timeout_seconds: float = 120.0
    log_level: str = "WARNING"
    log_file: Optional[Path] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, repo_root: Optional[Path] = None) -> "VendorSettings":
        log_file = data.get("log_file")
        log_path: Optional[Path] = None
        if log_file:
            log_path = Path(log_file)
            if repo_root is not None and not log_path.is_absolute():
                log_path = Path(repo_root) / log_path
        return cls(
            manifest_name=str(data["manifest_name"]),
            ref_prefix=str(data["ref_prefix"]),
            ref_scheme=RefScheme(data["ref_scheme"]),
            filter_errors=FilterErrorPolicy(data["filter_errors"]),
            merge_message=str(data["merge_message"]),
            git_timeout_seconds=float(data["git_timeout_seconds"]),
            log_level=str(data["log_level"]).upper(),
            log_file=log_path,
        )

    def format_merge_message(self, name: str) -> str:
        """Render the merge message template for dependency ``name``."""
        try:
            return self.merge_message.format(name=name)
        except (KeyError, IndexError, ValueError) as e:
            raise InvalidInputError(
                f"Invalid merge_message template '{self.merge_message}': {e}",
                context={"merge_message": self.merge_message},
            ) from e


def _as_bool(value: str) -> Optional[bool]:
    lowered = value.strip().lower()
    if lowered in {"true", "yes", "on"}:
        return True
    if lowered in {"false", "no", "off"}:
        return False
    return None


def _as_number(value: str) -> Optional[float | int]:
    s = value.strip()
    try:
        return int(s)
    except ValueError:
        pass
    try:
        return float(s)
    except ValueError:
        return None


def _coerce(value: str) -> Any:
    for caster in (_as_bool, _as_number):
        result = caster(value)
        if result is not None:
            return result
    return value.strip()


def _env_overrides(environ: Mapping[str, str], properties: Mapping[str, Any]) -> Dict[str, Any]:
    """Collect ``GIT_VENDOR_<KEY>`` overrides for keys the schema declares.

    Other ``GIT_VENDOR_*`` variables are ignored. Values for keys that accept
    a string are taken verbatim; the rest are coerced to bool or number.
    """
    overrides: Dict[str, Any] = {}
    for key in sorted(environ):
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name not in properties:
            logger.debug("Ignoring %s: not a git-vendor setting", key)
            continue
        types = properties[name].get("type", [])
        if isinstance(types, str):
            types = [types]
        if "string" in types:
            overrides[name] = environ[key].strip()
        else:
            overrides[name] = _coerce(environ[key])
    return overrides


def _read_project_config(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        content = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise IOFailureError(f"Failed to read {path}: {e}", context={"path": str(path)}) from e
    except yaml.YAMLError as e:
        raise InvalidInputError(f"Invalid YAML in {path}: {e}", context={"path": str(path)}) from e

    if not isinstance(content, dict):
        raise InvalidInputError(f"{path} must contain a mapping", context={"path": str(path)})
    section = content.get(CONFIG_SECTION) or {}
    if not isinstance(section, dict):
        raise InvalidInputError(
            f"'{CONFIG_SECTION}' in {path} must be a mapping",
            context={"path": str(path)},
        )
    return section


def validate_settings(data: Mapping[str, Any]) -> None:
    """Validate a settings mapping against the bundled schema.

    Raises:
        InvalidInputError: On the first schema violation
    """
    schema = read_yaml("schemas", SCHEMA_NAME)
    validator = jsonschema.Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(dict(data)), key=lambda e: list(e.path))
    if errors:
        first = errors[0]
        where = ".".join(str(p) for p in first.path) or "<root>"
        raise InvalidInputError(
            f"Invalid git-vendor configuration at {where}: {first.message}",
            context={"errors": [e.message for e in errors]},
        )


def load_settings(
    repo_root: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> VendorSettings:
    """Load and validate settings for ``repo_root``.

    Args:
        repo_root: Repository root holding the optional project config file;
            None loads defaults and environment overrides only
        environ: Environment to read overrides from (defaults to ``os.environ``)

    Raises:
        InvalidInputError: If the merged settings fail validation
        IOFailureError: If the project config file cannot be read
    """
    merged: Dict[str, Any] = copy.deepcopy(read_yaml("config", "defaults.yaml").get(CONFIG_SECTION, {}))
    if repo_root is not None:
        merged.update(_read_project_config(Path(repo_root) / CONFIG_FILENAME))
    properties = read_yaml("schemas", SCHEMA_NAME).get("properties", {})
    merged.update(_env_overrides(os.environ if environ is None else environ, properties))
    if isinstance(merged.get("log_level"), str):
        merged["log_level"] = merged["log_level"].upper()

    validate_settings(merged)
    return VendorSettings.from_dict(merged, repo_root=repo_root)


__all__ = [
    "CONFIG_FILENAME",
    "VendorSettings",
    "load_settings",
    "validate_settings",
]
