"""Registry of VM backends keyed by backend type."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from kasanbuild.vm.base import VMError

if TYPE_CHECKING:
    from kasanbuild.vm.base import PoolFactory, VMPool
    from kasanbuild.vm.models import VMDeploymentConfig

logger = logging.getLogger(__name__)

_BACKENDS: dict[str, PoolFactory] = {}


def register_backend(backend_type: str, factory: PoolFactory) -> None:
    """Register the pool factory for a backend type, replacing any previous one."""
    _BACKENDS[backend_type] = factory
    logger.debug("Registered VM backend %s", backend_type)


def unregister_backend(backend_type: str) -> None:
    _BACKENDS.pop(backend_type, None)


def registered_backends() -> list[str]:
    return sorted(_BACKENDS)


def create_pool(config: VMDeploymentConfig, reuse: bool) -> VMPool:
    """Create a VM pool with the backend registered for ``config.type``.

    Args:
        config: Deployment VM description.
        reuse: Whether instances may be reused after close.

    Returns:
        VM pool.

    Raises:
        VMError: If no backend is registered for the type, or the backend
            fails to create the pool.
    """
    factory = _BACKENDS.get(config.type)
    if factory is None:
        raise VMError(
            f"No VM backend registered for type '{config.type}' "
            f"(registered: {', '.join(registered_backends()) or 'none'})"
        )
    return factory(config, reuse)


__all__ = [
    "create_pool",
    "register_backend",
    "registered_backends",
    "unregister_backend",
]
