"""Handoff of a running pod to the stage-1 execution process.

Once a pod directory is in ``run/``, the only contract left is that the
executing process keeps the pod lock descriptor open for its whole
lifetime. The descriptor is inherited across exec and its number is
passed in the ``PODSTAGE_LOCK_FD`` environment variable.
"""

import logging
import os
from collections.abc import Mapping, MutableMapping
from pathlib import Path

from pydantic import ValidationError

from ..constants import (
    ENV_LOCK_FD,
    OVERLAY_PREPARED_FILENAME,
    RUN_ENTRYPOINT,
    STAGE1_DIRNAME,
    STAGE1_ID_FILENAME,
    STAGE1_MANIFEST_FILENAME,
    STAGE1_ROOTFS_DIRNAME,
)
from ..errors import PodError, Stage1Error
from ..models import ImageManifest
from .lifecycle import RunRef
from .lock_manager import DirLock, LockMode

logger = logging.getLogger(__name__)


def get_stage1_image_path(pod_dir: Path) -> Path:
    return pod_dir / STAGE1_DIRNAME


def get_stage1_manifest_path(pod_dir: Path) -> Path:
    return get_stage1_image_path(pod_dir) / STAGE1_MANIFEST_FILENAME


def get_stage1_rootfs_path(pod_dir: Path) -> Path:
    return get_stage1_image_path(pod_dir) / STAGE1_ROOTFS_DIRNAME


def read_stage1_id(pod_dir: Path) -> str:
    """Read the stage-1 image id recorded at preparation time.

    Raises:
        Stage1Error: If the id file is missing
    """
    try:
        return (pod_dir / STAGE1_ID_FILENAME).read_text().strip()
    except FileNotFoundError:
        raise Stage1Error(f"pod {pod_dir.name} has no stage1 id") from None


def supports_overlay(filesystems: Path = Path("/proc/filesystems")) -> bool:
    """Check whether the kernel lists the overlay filesystem."""
    try:
        content = filesystems.read_text()
    except OSError:
        return False
    return any(line.split()[-1:] == ["overlay"] for line in content.splitlines())


def prepared_with_overlay(pod_dir: Path, overlay_supported: bool | None = None) -> bool:
    """Check whether the pod was prepared for an overlay filesystem.

    Raises:
        Stage1Error: If the pod needs overlay but the host cannot provide it
    """
    if not (pod_dir / OVERLAY_PREPARED_FILENAME).exists():
        return False
    if overlay_supported is None:
        overlay_supported = supports_overlay()
    if not overlay_supported:
        raise Stage1Error("the pod was prepared with overlay but overlay is not supported")
    return True


def get_stage1_entrypoint(pod_dir: Path, entrypoint: str) -> str:
    """Look up a named entrypoint in the stage-1 image manifest.

    Args:
        pod_dir: Pod directory containing stage1/manifest
        entrypoint: Annotation name, e.g. RUN_ENTRYPOINT

    Returns:
        Entrypoint path relative to the stage-1 rootfs

    Raises:
        Stage1Error: Manifest unreadable or entrypoint not declared
    """
    manifest_path = get_stage1_manifest_path(pod_dir)
    try:
        manifest = ImageManifest.model_validate_json(manifest_path.read_text())
    except FileNotFoundError:
        raise Stage1Error(f"error reading stage1 manifest: {manifest_path}") from None
    except ValidationError as e:
        raise Stage1Error(f"error parsing stage1 manifest: {e}") from None

    value = manifest.get_annotation(entrypoint)
    if value is None:
        raise Stage1Error(f"entrypoint {entrypoint!r} not found")
    return value


def export_lock_fd(run: RunRef, environ: MutableMapping[str, str]) -> int:
    """Make the run lock survive exec and advertise its descriptor.

    Returns:
        The descriptor number
    """
    run.lock.set_inheritable(True)
    environ[ENV_LOCK_FD] = str(run.lock.fd)
    return run.lock.fd


def adopt_lock_fd(environ: Mapping[str, str] | None = None, pod_dir: Path | None = None) -> DirLock:
    """Take ownership of the pod lock inherited from stage 0.

    Raises:
        PodError: The variable is missing, malformed or names a closed descriptor
    """
    environ = os.environ if environ is None else environ
    raw = environ.get(ENV_LOCK_FD)
    if raw is None:
        raise PodError(f"{ENV_LOCK_FD} is not set")
    try:
        fd = int(raw)
    except ValueError:
        raise PodError(f"{ENV_LOCK_FD} is not a descriptor number: {raw!r}") from None
    try:
        return DirLock.from_fd(fd, pod_dir or Path(os.getcwd()), LockMode.EXCLUSIVE)
    except OSError as e:
        raise PodError(f"{ENV_LOCK_FD}={fd} is not an open descriptor: {e}") from None


def build_stage1_args(
    run: RunRef,
    entrypoint: str,
    *,
    debug: bool = False,
    private_net: bool = False,
    interactive: bool = False,
) -> list[str]:
    """Build the stage-1 command line for a pod.

    The entrypoint path is absolute, since stage 1 is executed from inside
    the pod directory.
    """
    rootfs = get_stage1_rootfs_path(run.path.absolute())
    args = [str(rootfs / entrypoint.lstrip("/"))]
    if debug:
        args.append("--debug")
    if private_net:
        args.append("--private-net")
    if interactive:
        args.append("--interactive")
    args.append(str(run.uuid))
    return args


def exec_stage1(
    run: RunRef,
    *,
    debug: bool = False,
    private_net: bool = False,
    interactive: bool = False,
    environ: dict[str, str] | None = None,
) -> None:
    """Replace the current process with the pod's stage-1 init.

    Does not return on success. The lock descriptor stays open in the new
    process image, so the pod is Running for as long as stage 1 lives.
    """
    env = dict(os.environ if environ is None else environ)
    stage1_id = read_stage1_id(run.path)
    overlay = prepared_with_overlay(run.path)
    logger.debug(f"Pod {run.uuid}: stage1 {stage1_id}, overlay={overlay}")
    entrypoint = get_stage1_entrypoint(run.path, RUN_ENTRYPOINT)
    args = build_stage1_args(
        run, entrypoint, debug=debug, private_net=private_net, interactive=interactive
    )
    export_lock_fd(run, env)

    os.chdir(run.path)
    logger.info(f"Execing {args[0]}")
    os.execve(args[0], args, env)
