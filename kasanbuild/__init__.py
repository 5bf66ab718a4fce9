"""kasanbuild - KASAN-instrumented kernel builds with VM deployment.

This package drives `build.sh` kernel builds with a hardened configuration,
collects the resulting artifacts, and injects the built kernel into a disk
image through a single-instance VM pool.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
