"""Configuration settings for kasanbuild.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

import os
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the KASANBUILD_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="KASANBUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Timeouts (in seconds)
    build_timeout: int = Field(
        default=600,
        ge=1,
        description="Wall-clock timeout for each build.sh phase",
    )
    sync_timeout: int = Field(
        default=60,
        ge=1,
        description="Timeout for the sync command run inside the VM",
    )

    # Build
    jobs: int | None = Field(
        default=None,
        ge=1,
        description="build.sh parallelism (uses host CPU count if not set)",
    )
    write_logs: bool = Field(
        default=True,
        description="Write per-phase build logs under <output_dir>/logs",
    )

    # Deployment
    deploy_vm_types: list[str] = Field(
        default_factory=lambda: ["gce"],
        description="VM types whose disk image receives the built kernel",
    )
    qemu_binary: str = Field(
        default="qemu-system-x86_64",
        description="Emulator used to boot the disk image for deployment",
    )
    vm_memory_mb: int = Field(
        default=1024,
        ge=128,
        description="Memory of the deployment VM in MiB",
    )
    ssh_user: str = Field(
        default="root",
        description="Login user inside the deployment VM",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    def effective_jobs(self) -> int:
        """Return the parallelism hint passed to build.sh."""
        if self.jobs is not None:
            return self.jobs
        return os.cpu_count() or 1


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
