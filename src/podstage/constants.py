"""Constants for podstage."""

from pathlib import Path

DEFAULT_PODS_DIR = Path("/var/lib/podstage/pods")
DEFAULT_CONFIG_PATH = Path("/etc/podstage/config.toml")
CONFIG_ENV_VAR = "PODSTAGE_CONFIG"

# Garbage collection windows (seconds)
DEFAULT_GC_GRACE_PERIOD = 30 * 60  # 30 minutes
DEFAULT_EXPIRE_PREPARED = 24 * 60 * 60  # 24 hours

# Descriptor number of the inherited pod lock, read by stage 1
ENV_LOCK_FD = "PODSTAGE_LOCK_FD"

# Entries written into a pod directory by the preparation step
STAGE1_ID_FILENAME = "stage1ID"
OVERLAY_PREPARED_FILENAME = "overlay-prepared"
STAGE1_DIRNAME = "stage1"
STAGE1_MANIFEST_FILENAME = "manifest"
STAGE1_ROOTFS_DIRNAME = "rootfs"

# Stage-1 manifest annotation naming the run entrypoint
RUN_ENTRYPOINT = "coreos.com/rkt/stage1/run"
