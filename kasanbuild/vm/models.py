"""Pydantic models describing a deployment VM.

Backend-independent fields are typed on VMDeploymentConfig itself; the
settings that only make sense for one backend live in a payload selected
by its ``type`` tag.
"""

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class QemuSettings(BaseModel):
    """Settings of the qemu backend.

    Attributes:
        qemu_args: Extra emulator arguments.
        image_device: Device the disk image is attached as.
        snapshot: Boot the image in snapshot mode. Must stay off when the
            guest is expected to persist changes to the disk image.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["qemu"] = "qemu"
    qemu_args: str = Field(default="", description="Extra emulator arguments")
    image_device: str = Field(default="hda", description="Disk image device")
    snapshot: bool = Field(default=False, description="Discard disk writes")


class GceSettings(BaseModel):
    """Settings of the Google Compute Engine backend."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["gce"] = "gce"
    machine_type: str = Field(default="e2-standard-2")
    gcs_path: str = Field(default="", description="Bucket path for images")
    preemptible: bool = Field(default=True)


BackendSettings = Annotated[
    QemuSettings | GceSettings,
    Field(discriminator="type"),
]


class VMDeploymentConfig(BaseModel):
    """Description of the VM pool used to deploy a kernel.

    Constructed fresh for every deployment and never persisted.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    backend: str = Field(description="Backend binary or identifier")
    cpu: int = Field(default=1, ge=1, description="Virtual CPUs per instance")
    count: int = Field(default=1, ge=1, description="Instances in the pool")
    mem: int = Field(default=1024, ge=1, description="Memory per instance, MiB")
    workdir: Path
    image: Path = Field(description="Disk image to boot")
    ssh_key: Path = Field(description="SSH private key for the login user")
    ssh_user: str = Field(default="root")
    target_os: str
    target_vm_arch: str
    type: str = Field(description="Backend type tag, e.g. qemu")
    vm: BackendSettings

    @model_validator(mode="after")
    def validate_backend_tag(self) -> "VMDeploymentConfig":
        """Backend settings must belong to the configured backend type."""
        if self.vm.type != self.type:
            raise ValueError(
                f"vm settings are for '{self.vm.type}' but type is '{self.type}'"
            )
        return self


__all__ = [
    "BackendSettings",
    "GceSettings",
    "QemuSettings",
    "VMDeploymentConfig",
]
