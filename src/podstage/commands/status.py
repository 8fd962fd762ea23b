"""Status command: sample one pod's phase."""

import typer

from ..config import get_active_config
from ..core import inspect_pod, parse_pod_uuid
from ..errors import CorruptStateError, InvalidPodUUIDError
from ..models import PodStatus
from ..output import get_output_context

STATUS_STYLES = {
    PodStatus.EMBRYO: "dim",
    PodStatus.PREPARING: "cyan",
    PodStatus.PREPARE_FAILED: "red",
    PodStatus.PREPARED: "blue",
    PodStatus.RUNNING: "green",
    PodStatus.EXITED: "yellow",
    PodStatus.DELETING: "magenta",
}


def status(
    pod: str = typer.Argument(..., help="Pod UUID"),
) -> None:
    """Show a pod's current status.

    The answer is only true at the instant it was sampled.
    """
    ctx = get_output_context()
    pods_dir = get_active_config().pods.dir

    try:
        pod_uuid = parse_pod_uuid(pod)
    except InvalidPodUUIDError as e:
        ctx.error(str(e))
        raise typer.Exit(1) from None

    try:
        info = inspect_pod(pods_dir, pod_uuid)
    except CorruptStateError as e:
        ctx.error(f"Pod {pod_uuid} is in a corrupt state: {e}", {"path": str(e.path)})
        raise typer.Exit(3) from None

    if info is None:
        ctx.error(f"Pod not found: {pod_uuid}", {"status": PodStatus.NOT_FOUND.value})
        raise typer.Exit(1)

    style = STATUS_STYLES[info.status]
    ctx.result(
        info,
        f"[bold]{info.uuid}[/bold] [{style}]{info.status.value}[/{style}] "
        f"({info.phase.value}, changed {info.changed_at:%Y-%m-%d %H:%M:%S})",
    )
