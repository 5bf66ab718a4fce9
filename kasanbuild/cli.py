"""Thin CLI wrapper for kasanbuild.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console

from kasanbuild import __version__
from kasanbuild.config import get_settings, print_settings_json

app = typer.Typer(
    name="kasanbuild",
    help="KASAN kernel builder - build, collect and deploy hardened kernels",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"kasanbuild version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """KASAN kernel builder - build, collect and deploy hardened kernels."""
    from kasanbuild.logger import setup_logging

    setup_logging(get_settings().log_level)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
    else:
        jobs_display = (
            str(settings.jobs)
            if settings.jobs
            else f"{settings.effective_jobs()} (host CPUs)"
        )
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Build:[/bold]")
        console.print(f"  Parallel jobs:       {jobs_display}")
        console.print(f"  Write phase logs:    {settings.write_logs}")
        console.print(f"  Log level:           {settings.log_level}")
        console.print()
        console.print("[bold]Deployment:[/bold]")
        console.print(f"  Deploy VM types:     {', '.join(settings.deploy_vm_types)}")
        console.print(f"  Emulator:            {settings.qemu_binary}")
        console.print(f"  VM memory (MiB):     {settings.vm_memory_mb}")
        console.print(f"  SSH user:            {settings.ssh_user}")
        console.print()
        console.print("[bold]Timeouts (seconds):[/bold]")
        console.print(f"  Build timeout:       {settings.build_timeout}")
        console.print(f"  Sync timeout:        {settings.sync_timeout}")


@app.command()
def fragment(
    arch: Annotated[str, typer.Argument(help="Target architecture, e.g. amd64")],
) -> None:
    """Print the hardened kernel config fragment for an architecture."""
    from kasanbuild.builds.kconfig import generate_config_fragment
    from kasanbuild.builds.schema import ARCH_PATTERN

    if not ARCH_PATTERN.match(arch):
        console.print(f"[red]Invalid architecture: {arch}[/red]")
        raise typer.Exit(code=1)
    typer.echo(generate_config_fragment(arch), nl=False)


@app.command()
def clean(
    kernel_dir: Annotated[Path, typer.Argument(help="Kernel source directory")],
) -> None:
    """Clean a kernel tree (no-op: every build is a full rebuild)."""
    from kasanbuild.builds.service import clean as clean_tree

    clean_tree(kernel_dir)
    console.print("[green]✓ Nothing to clean[/green]")


def _error_output(e: Exception) -> dict[str, Any]:
    output: dict[str, Any] = {
        "success": False,
        "error_code": getattr(e, "code", "internal_error"),
        "error_message": str(e),
    }
    guilty_file = getattr(e, "guilty_file", None)
    if guilty_file:
        output["guilty_file"] = guilty_file
    return output


@app.command()
def build(
    request_file: Annotated[
        Path | None,
        typer.Option("--request", "-r", help="Build request YAML/JSON file"),
    ] = None,
    arch: Annotated[
        str | None,
        typer.Option("--arch", "-a", help="Target architecture"),
    ] = None,
    vm_type: Annotated[
        str | None,
        typer.Option("--vm-type", help="Deployment VM type (e.g. qemu, gce)"),
    ] = None,
    kernel_dir: Annotated[
        Path | None,
        typer.Option("--kernel-dir", "-k", help="Kernel source directory"),
    ] = None,
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", "-o", help="Artifact output directory"),
    ] = None,
    userspace_dir: Annotated[
        Path | None,
        typer.Option("--userspace-dir", "-u", help="Disk image and key directory"),
    ] = None,
    compiler: Annotated[
        str,
        typer.Option("--compiler", help="Compiler identifier"),
    ] = "gcc",
    cmdline_file: Annotated[
        Path | None,
        typer.Option("--cmdline-file", help="Kernel command line file"),
    ] = None,
    sysctl_file: Annotated[
        Path | None,
        typer.Option("--sysctl-file", help="Sysctl file"),
    ] = None,
    kernel_config: Annotated[
        Path | None,
        typer.Option("--kernel-config", help="Kernel configuration file"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Build a KASAN kernel, collect its artifacts and deploy if required.

    Either pass --request with a YAML/JSON build request, or the
    individual --arch/--vm-type/--kernel-dir/--output-dir/--userspace-dir
    options.
    """
    from kasanbuild.builds.errors import BuildServiceError
    from kasanbuild.builds.io import load_request, parse_request_data
    from kasanbuild.builds.service import build_kernel
    from kasanbuild.vm.deploy import DeploymentError

    try:
        if request_file is not None:
            request = load_request(request_file)
        else:
            data: dict[str, Any] = {
                "target_arch": arch,
                "vm_type": vm_type,
                "kernel_dir": kernel_dir,
                "output_dir": output_dir,
                "userspace_dir": userspace_dir,
                "compiler": compiler,
                "cmdline_file": cmdline_file,
                "sysctl_file": sysctl_file,
            }
            if kernel_config is not None:
                data["kernel_config_file"] = kernel_config
            request = parse_request_data(
                {k: v for k, v in data.items() if v is not None}
            )
    except (ValidationError, ValueError, OSError, yaml.YAMLError) as e:
        console.print("[red]Invalid build request:[/red]")
        console.print(str(e), markup=False)
        raise typer.Exit(code=1) from None

    settings = get_settings()

    try:
        outcome = build_kernel(request, settings=settings)
    except (BuildServiceError, DeploymentError) as e:
        if json_output:
            typer.echo(json.dumps(_error_output(e), indent=2))
        else:
            console.print(f"[red]✗ Build failed ({e.code})[/red]")
            console.print(str(e), markup=False)
            guilty_file = getattr(e, "guilty_file", None)
            if guilty_file:
                console.print(f"  Guilty file: {guilty_file}")
        raise typer.Exit(code=1) from None

    if json_output:
        output: dict[str, Any] = {
            "success": True,
            "output_dir": str(outcome.output_dir),
            "config_path": str(outcome.config_path),
            "artifacts": [str(p) for p in outcome.artifacts],
            "manifest_path": str(outcome.manifest_path)
            if outcome.manifest_path
            else None,
            "deployed": outcome.deployment is not None,
        }
        if outcome.deployment is not None:
            output["remote_kernel_path"] = outcome.deployment.remote_kernel_path
        typer.echo(json.dumps(output, indent=2))
    else:
        console.print("[green]✓ Build succeeded[/green]")
        console.print(f"  Output directory: {outcome.output_dir}")
        for path in outcome.artifacts:
            console.print(f"  Artifact: {path.name}")
        if outcome.deployment is not None:
            console.print(
                f"  Kernel deployed to {outcome.deployment.remote_kernel_path}"
            )


if __name__ == "__main__":
    app()
