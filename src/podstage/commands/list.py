"""List command: every pod and its phase."""

import typer
from rich.table import Table

from ..config import get_active_config
from ..core import list_pods
from ..output import get_output_context
from .status import STATUS_STYLES


def list_cmd() -> None:
    """List all pods with their current phase."""
    ctx = get_output_context()
    pods_dir = get_active_config().pods.dir

    try:
        pods = list_pods(pods_dir)
    except OSError as e:
        ctx.error(f"Cannot read {pods_dir}: {e.strerror}")
        raise typer.Exit(1) from None

    if ctx.json_mode:
        ctx.print_json(pods)
        return

    if not pods:
        ctx.print("No pods found")
        return

    table = Table()
    table.add_column("UUID", no_wrap=True)
    for header in ("STATUS", "PHASE", "CHANGED"):
        table.add_column(header)
    for pod in pods:
        style = STATUS_STYLES[pod.status]
        table.add_row(
            pod.uuid,
            f"[{style}]{pod.status.value}[/{style}]",
            pod.phase.value,
            f"{pod.changed_at:%Y-%m-%d %H:%M:%S}",
        )
    ctx.print_table(table)
