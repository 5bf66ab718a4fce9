"""VM deployment module.

This module handles:
- Backend interfaces (pool, instance) and the backend registry
- The deployment VM description
- Injecting a built kernel into a disk image through a VM
"""

from kasanbuild.vm.base import PoolFactory, VMError, VMInstance, VMPool
from kasanbuild.vm.deploy import (
    DeploymentError,
    DeployResult,
    KernelInjectionError,
    SyncCommandError,
    VMInstanceCreationError,
    VMPoolCreationError,
    deploy_kernel,
    make_deployment_config,
)
from kasanbuild.vm.models import GceSettings, QemuSettings, VMDeploymentConfig
from kasanbuild.vm.registry import create_pool, register_backend

__all__ = [
    # Interfaces
    "PoolFactory",
    "VMError",
    "VMInstance",
    "VMPool",
    # Models
    "GceSettings",
    "QemuSettings",
    "VMDeploymentConfig",
    # Registry
    "create_pool",
    "register_backend",
    # Deployment
    "DeployResult",
    "DeploymentError",
    "KernelInjectionError",
    "SyncCommandError",
    "VMInstanceCreationError",
    "VMPoolCreationError",
    "deploy_kernel",
    "make_deployment_config",
]
