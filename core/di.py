# purvita/core/di.py
"""
Minimal service registry.
Long-lived singletons (EmailService, ServiceManager, ...) are registered at
startup and looked up by class where constructor injection is impractical.
"""
import logging
from typing import Any, Dict, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

_services: Dict[Type, Any] = {}


def register_service(service_type: Type[T], instance: T) -> None:
    """Register (or replace) the instance for a service type."""
    if service_type in _services:
        logger.debug(f"Replacing registered service: {service_type.__name__}")
    _services[service_type] = instance


def get_service(service_type: Type[T]) -> Optional[T]:
    """Return the registered instance or None."""
    return _services.get(service_type)


def clear_services() -> None:
    """Drop every registration. Used by tests."""
    _services.clear()
