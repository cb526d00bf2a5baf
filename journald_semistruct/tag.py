from __future__ import annotations

from jinja2 import Environment, StrictUndefined, TemplateError

from .config import LogOptions, SessionContext
from .errors import ConfigurationError

"""Rendering of the CONTAINER_TAG field from the 'tag' log option.

The environment is created once at import time; sessions only compile the
template they are configured with.
"""

DEFAULT_TAG_TEMPLATE = "{{ id }}"

# Singleton environment reused across sessions
JINJA_ENV: Environment = Environment(undefined=StrictUndefined, autoescape=False)


def parse_log_tag(context: SessionContext, options: LogOptions) -> str:
    """Render the tag template for a session.

    Unknown variables and syntax errors are configuration errors.
    """
    source = options.tag or DEFAULT_TAG_TEMPLATE
    try:
        return JINJA_ENV.from_string(source).render(**context.template_vars())
    except TemplateError as e:
        raise ConfigurationError(f"invalid tag template {source!r}: {e}") from None
