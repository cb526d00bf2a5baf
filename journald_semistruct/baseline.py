from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Mapping

from .config import LogOptions, SessionContext
from .tag import parse_log_tag


def extra_attributes(
    context: SessionContext,
    options: LogOptions,
    key_mod: Callable[[str], str] | None = None,
) -> dict[str, str]:
    """Collect the container labels and environment variables selected by the options.

    Environment values are applied after labels and win on a shared key.
    """
    extra: dict[str, str] = {}
    for key in options.label_keys():
        if key in context.labels:
            extra[key_mod(key) if key_mod else key] = context.labels[key]

    env = context.env_mapping()
    for key in options.env_keys():
        if key in env:
            extra[key_mod(key) if key_mod else key] = env[key]
    return extra


def build_baseline(context: SessionContext, options: LogOptions) -> Mapping[str, str]:
    """Assemble the fields attached to every record of a session."""
    fields = {
        "CONTAINER_ID": context.short_id(),
        "CONTAINER_ID_FULL": context.container_id,
        "CONTAINER_NAME": context.display_name(),
        "CONTAINER_TAG": parse_log_tag(context, options),
    }
    fields.update(extra_attributes(context, options, str.upper))
    return MappingProxyType(fields)
