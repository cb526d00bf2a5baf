from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError

DRIVER_NAME = "journald-semistruct"


class LogOptions(BaseModel):
    """Log options accepted by the driver. Any other key is rejected.

    - labels: comma-separated container label keys copied into every record
    - env: comma-separated environment variable names copied into every record
    - tag: Jinja2 template for the CONTAINER_TAG field
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    labels: str | None = Field(default=None, description="Comma-separated container label keys")
    env: str | None = Field(default=None, description="Comma-separated environment variable names")
    tag: str | None = Field(default=None, description="Tag template, e.g. '{{ name }}/{{ id }}'")

    def label_keys(self) -> list[str]:
        return _split_keys(self.labels)

    def env_keys(self) -> list[str]:
        return _split_keys(self.env)


class SessionContext(BaseModel):
    """Immutable description of the process whose output a session forwards."""
    model_config = ConfigDict(frozen=True)

    container_id: str = ""
    container_name: str = ""
    image_id: str = ""
    image_name: str = ""
    daemon_name: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    # Environment as KEY=VALUE strings, the way a container reports it
    env: list[str] = Field(default_factory=list)
    log_opts: dict[str, str] = Field(default_factory=dict)

    def short_id(self) -> str:
        return self.container_id[:12]

    def display_name(self) -> str:
        # CONTAINER_NAME=foo is easier to search for than CONTAINER_NAME=/foo
        return self.container_name.removeprefix("/")

    def image_full_id(self) -> str:
        return self.image_id.removeprefix("sha256:")

    def image_short_id(self) -> str:
        return self.image_full_id()[:12]

    def env_mapping(self) -> dict[str, str]:
        mapping: dict[str, str] = {}
        for kv in self.env:
            key, sep, value = kv.partition("=")
            if sep:
                mapping[key] = value
        return mapping

    def template_vars(self) -> dict[str, str]:
        """Variables available to the tag template."""
        return {
            "id": self.short_id(),
            "full_id": self.container_id,
            "name": self.display_name(),
            "image_id": self.image_short_id(),
            "image_full_id": self.image_full_id(),
            "image_name": self.image_name,
            "daemon_name": self.daemon_name,
        }


def _split_keys(value: str | None) -> list[str]:
    if not value:
        return []
    return [k for k in value.split(",") if k]


def validate_log_opts(cfg: Mapping[str, Any]) -> LogOptions:
    """Check log options against the allow-list and return them typed."""
    try:
        return LogOptions.model_validate(dict(cfg))
    except ValidationError as e:
        for err in e.errors():
            if err["type"] == "extra_forbidden":
                raise ConfigurationError(
                    f"unknown log opt '{err['loc'][0]}' for {DRIVER_NAME} log driver"
                ) from None
        raise ConfigurationError(str(e)) from None


def load_session(path: str | Path) -> SessionContext:
    """Load a YAML session description from 'path'."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"{path}: {e}") from None
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: expected a mapping at the top level")
    try:
        return SessionContext.model_validate(data)
    except ValidationError as e:
        # Re-raise with a cleaner message for CLI users
        raise ConfigurationError(str(e)) from None
