import logging
import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError
from .models import DEFAULTS, FLAVORS
from .utils import resolve_prefix

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(os.environ.get("QUEUEPEEK_CONFIG", Path.home() / ".queuepeek.yml"))


class FileConfig(BaseModel):
    """Contents of ~/.queuepeek.yml"""

    default: Optional[str] = None
    prefix: Optional[str] = None
    flavor: str = DEFAULTS["flavor"]
    environments: Dict[str, str] = Field(default_factory=dict)

    @field_validator("flavor")
    @classmethod
    def known_flavor(cls, v: str) -> str:
        if v not in FLAVORS:
            raise ValueError(f"flavor must be one of {', '.join(FLAVORS)}")
        return v

    @field_validator("environments", mode="before")
    @classmethod
    def endpoints_as_strings(cls, v):
        # YAML hands back ints for bare numeric values
        if not isinstance(v, dict):
            return v
        return {str(k): str(val) for k, val in v.items()}


class Resolved(BaseModel):
    endpoint: str
    prefix: str
    flavor: str
    environment: Optional[str] = None


def load_config(path: Optional[Path] = None) -> FileConfig:
    path = Path(path) if path else CONFIG_PATH
    if not path.exists():
        logger.debug("no config file at %s", path)
        return FileConfig()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    try:
        return FileConfig(**data)
    except (ValidationError, TypeError) as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e


def resolve(
    cfg: FileConfig,
    env: Optional[str] = None,
    redis: Optional[str] = None,
    prefix: Optional[str] = None,
    flavor: Optional[str] = None,
) -> Resolved:
    """Command-line values win over the file, the file wins over built-in defaults."""
    flavor = resolve_prefix(flavor, FLAVORS, "flavor") if flavor else cfg.flavor

    environment = None
    if redis:
        endpoint = redis
    else:
        selector = env or cfg.default
        if selector:
            if not cfg.environments:
                raise ConfigError(f"Environment {selector!r} requested but no environments are configured")
            environment = resolve_prefix(selector, sorted(cfg.environments), "environment")
            endpoint = cfg.environments[environment]
        else:
            endpoint = f"{DEFAULTS['host']}:{DEFAULTS['port']}"

    if prefix is None:
        prefix = cfg.prefix if cfg.prefix is not None else DEFAULTS["prefix"][flavor]

    return Resolved(endpoint=endpoint, prefix=prefix, flavor=flavor, environment=environment)
