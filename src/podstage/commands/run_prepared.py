"""Run-prepared command: resume a prepared pod and hand it to stage 1."""

import typer

from ..config import get_active_config
from ..core import RaceLost, exec_stage1, parse_pod_uuid, query_phase, resume_from_prepared
from ..errors import CorruptStateError, InvalidPodUUIDError, Stage1Error
from ..output import get_output_context


def run_prepared(
    pod: str = typer.Argument(..., help="UUID of a prepared pod"),
    debug: bool = typer.Option(False, "--debug", help="Run stage 1 with debug output"),
    private_net: bool = typer.Option(False, "--private-net", help="Give the pod its own network"),
    interactive: bool = typer.Option(False, "--interactive", help="Attach the terminal to the pod"),
) -> None:
    """Run a previously prepared pod."""
    ctx = get_output_context()
    pods_dir = get_active_config().pods.dir

    try:
        pod_uuid = parse_pod_uuid(pod)
    except InvalidPodUUIDError as e:
        ctx.error(str(e))
        raise typer.Exit(1) from None

    try:
        run = resume_from_prepared(pods_dir, pod_uuid)
    except CorruptStateError as e:
        ctx.error(f"Pod {pod_uuid} is in a corrupt state: {e}", {"path": str(e.path)})
        raise typer.Exit(3) from None

    if isinstance(run, RaceLost):
        current = query_phase(pods_dir, pod_uuid)
        ctx.error(
            f"Pod {pod_uuid} is not prepared (status: {current.value})",
            {"status": current.value},
        )
        raise typer.Exit(1)

    try:
        exec_stage1(run, debug=debug, private_net=private_net, interactive=interactive)
    except (Stage1Error, OSError) as e:
        run.lock.release()
        ctx.error(f"Pod {pod_uuid} failed to start: {e}")
        raise typer.Exit(1) from None
