from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Mapping

from .config import SessionContext
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

Factory = Callable[[SessionContext], Any]
OptValidator = Callable[[Mapping[str, str]], Any]


class DriverRegistry:
    """Log drivers and option validators known to an application.

    The application creates a registry during startup and registers drivers
    into it explicitly; importing a driver module registers nothing.
    """

    def __init__(self) -> None:
        self._factories: dict[str, Factory] = {}
        self._validators: dict[str, OptValidator] = {}
        self._lock = threading.Lock()

    def register_driver(self, name: str, factory: Factory) -> None:
        with self._lock:
            if name in self._factories:
                raise ValueError(f"log driver named '{name}' is already registered")
            self._factories[name] = factory
        logger.debug("Registered log driver %s", name)

    def register_opt_validator(self, name: str, validator: OptValidator) -> None:
        with self._lock:
            if name in self._validators:
                raise ValueError(f"log validator named '{name}' is already registered")
            self._validators[name] = validator

    def get_factory(self, name: str) -> Factory:
        with self._lock:
            factory = self._factories.get(name)
        if factory is None:
            raise ConfigurationError(f"no log driver named '{name}' is registered")
        return factory

    def validate_opts(self, name: str, cfg: Mapping[str, str]) -> None:
        """Run the driver's option validator. Drivers without one accept no options."""
        with self._lock:
            validator = self._validators.get(name)
            known = name in self._factories
        if validator is None:
            if not known:
                raise ConfigurationError(f"no log driver named '{name}' is registered")
            if cfg:
                raise ConfigurationError(f"log driver '{name}' does not accept log options")
            return
        validator(cfg)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._factories)
