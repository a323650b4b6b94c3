"""
Service factory: resolves a configured OTP notification service by name.

The registry is built once from ``OTP_SERVICES`` when the app starts and is
read-only afterwards. Resolution never raises; an unknown or broken service
resolves to None and the caller treats that as a normal outcome.
"""
import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Optional

from flask import current_app

from services.base import NotificationService

logger = logging.getLogger(__name__)

EXTENSION_KEY = "otp_services"


def load_service_registry(services) -> dict:
    """
    Turn ``{name: {"class": factory}}`` into ``{name: factory}``.
    Malformed entries are skipped with a warning.
    """
    registry = {}
    if not isinstance(services, Mapping):
        logger.warning("OTP_SERVICES is not a mapping; no OTP services registered")
        return registry

    for name, descriptor in services.items():
        if not isinstance(name, str) or not name.strip():
            logger.warning("Skipping OTP service with invalid name: %r", name)
            continue
        if not isinstance(descriptor, Mapping) or "class" not in descriptor:
            logger.warning("Skipping OTP service %r: descriptor needs a 'class' entry", name)
            continue
        factory = descriptor["class"]
        if not callable(factory):
            logger.warning("Skipping OTP service %r: %r is not instantiable", name, factory)
            continue
        registry[name] = factory
    return registry


class ServiceFactory:
    """Lookup-and-instantiate table of OTP notification services."""

    def __init__(self, services=None):
        self._registry = MappingProxyType(load_service_registry(services or {}))

    def __contains__(self, name):
        return name in self._registry

    def names(self):
        return sorted(self._registry)

    def get_service(self, name) -> Optional[NotificationService]:
        """Return a fresh service instance for ``name``, or None."""
        if not isinstance(name, str) or not name:
            return None
        factory = self._registry.get(name)
        if factory is None:
            return None
        try:
            service = factory()
        except Exception as e:
            logger.warning("OTP service %r could not be instantiated: %s", name, e, exc_info=True)
            return None
        if not callable(getattr(service, "send", None)):
            logger.warning("OTP service %r has no send() capability", name)
            return None
        return service

    def init_app(self, app):
        app.extensions[EXTENSION_KEY] = self
        return self

    @classmethod
    def from_app_config(cls, app):
        """Build the registry from ``app.config['OTP_SERVICES']`` and attach it to the app."""
        return cls(app.config.get("OTP_SERVICES")).init_app(app)


def get_service(name) -> Optional[NotificationService]:
    """Resolve ``name`` against the current app's service registry."""
    factory = current_app.extensions.get(EXTENSION_KEY)
    if factory is None:
        return None
    return factory.get_service(name)
