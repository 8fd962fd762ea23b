"""GC command: one mark-and-sweep pass over the pod directory set."""

from datetime import timedelta

import typer

from ..config import get_active_config
from ..core import collect_garbage
from ..output import get_output_context


def gc(
    grace_period: int | None = typer.Option(
        None,
        "--grace-period",
        min=0,
        help="Seconds an exited pod stays in garbage before deletion (default from config)",
    ),
    expire_prepared: int | None = typer.Option(
        None,
        "--expire-prepared",
        help="Seconds after which unused prepared pods are collected, 0 to keep them",
    ),
) -> None:
    """Collect exited pods and failed preparations."""
    ctx = get_output_context()
    config = get_active_config()
    pods_dir = config.pods.dir

    grace = config.gc.grace_period if grace_period is None else timedelta(seconds=grace_period)
    if expire_prepared is None:
        expiry = config.gc.expire_prepared
    else:
        expiry = timedelta(seconds=expire_prepared) if expire_prepared > 0 else None

    try:
        report = collect_garbage(pods_dir, grace_period=grace, expire_prepared=expiry)
    except OSError as e:
        ctx.error(f"Garbage collection failed: {e}")
        raise typer.Exit(1) from None

    for pod_id in report.marked_exited:
        ctx.print(f"Moving pod {pod_id} to garbage")
    for pod_id in report.marked_failed:
        ctx.print(f"Moving failed prepare {pod_id} to garbage")
    for pod_id in report.expired_prepared:
        ctx.print(f"Moving expired prepared pod {pod_id} to garbage")
    for pod_id in report.deleted:
        ctx.print(f"Garbage collecting pod {pod_id}")
    for path in report.corrupt:
        ctx.print(f"[red]Corrupt entry left in place:[/red] {path}")

    ctx.result(
        report,
        f"{len(report.deleted)} deleted, {len(report.within_grace)} within grace period, "
        f"{len(report.busy)} in use",
    )
    if report.has_corruption:
        raise typer.Exit(3)
