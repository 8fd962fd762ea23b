"""Init command implementation."""

from pathlib import Path

import typer

from ..config import get_active_config, write_config_template
from ..core import ensure_pod_dirs
from ..models import SCAN_ORDER
from ..output import get_output_context


def init(
    config: Path | None = typer.Option(
        None,
        "--write-config",
        help="Write a config template here if it doesn't exist",
    ),
) -> None:
    """Create the pod directory set."""
    ctx = get_output_context()
    pods_dir = get_active_config().pods.dir

    try:
        ensure_pod_dirs(pods_dir)
    except OSError as e:
        ctx.error(f"Cannot create pod directories under {pods_dir}: {e.strerror}")
        raise typer.Exit(1) from None

    written = None
    if config is not None:
        if config.exists():
            ctx.print(f"[yellow]Config already exists:[/yellow] {config}")
        else:
            written = write_config_template(config, pods_dir)
            ctx.print(f"[green]Created config template:[/green] {written}")

    for location in SCAN_ORDER:
        ctx.print(f"  {pods_dir / location.value}")
    ctx.success(
        f"Pod directories ready under {pods_dir}",
        {
            "pods_dir": str(pods_dir),
            "locations": [loc.value for loc in SCAN_ORDER],
            "config": str(written) if written else None,
        },
    )
