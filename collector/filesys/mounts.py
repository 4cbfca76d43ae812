import logging
from collections import namedtuple

MOUNTS_PATH = "/proc/1/mounts"
FALLBACK_MOUNTS_PATH = "/proc/mounts"

logger = logging.getLogger(__name__)


class MountEntry(namedtuple("MountEntry", ["device", "mount_point", "fs_type", "options"])):
    __slots__ = ()

    @property
    def readonly(self):
        # "errors=remount-ro" is not read-only yet
        return "ro" in self.options.split(",")


def decode_mount_point(raw):
    # fstab(5) escapes
    return raw.replace("\\040", " ").replace("\\011", "\t")


def parse_mounts(lines):
    mounts = []
    for line in lines:
        parts = line.split()
        if not parts:
            continue
        if len(parts) < 4:
            logger.warning("Skipping malformed mount point information: %r", line)
            continue

        mounts.append(MountEntry(
            device=parts[0],
            mount_point=decode_mount_point(parts[1]),
            fs_type=parts[2],
            options=parts[3],
        ))
    return mounts


def read_mounts(path=MOUNTS_PATH, fallback=FALLBACK_MOUNTS_PATH):
    try:
        f = open(path, "r")
    except (FileNotFoundError, PermissionError):
        # missing, or pid 1 hidden from us when /proc is mounted with hidepid
        logger.debug("Reading %s failed, falling back to %s", path, fallback)
        f = open(fallback, "r")
    with f:
        return parse_mounts(f)


def storage_mounts(mounts, volumes_path):
    """Only mounts backed by a device under the StorageOS volumes directory."""
    prefix = volumes_path.rstrip("/") + "/"
    return [m for m in mounts if m.device.startswith(prefix)]


def volume_id_from_device(device):
    # /var/lib/storageos/volumes/v.06115715-2901-49d4-9a05-fd4641b82d6d
    name = device.rstrip("/").rsplit("/", 1)[-1]
    if name.startswith("v."):
        return name[2:]
    return name
