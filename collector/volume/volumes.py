import logging
import os
import re
import stat
import subprocess
from dataclasses import dataclass

VOLUMES_PATH = "/var/lib/storageos/volumes"
DEVICE_PREFIX = "v."

# brw-rw---- 1 root disk      8, 32 Feb 25 16:07 v.c3561d79-459f-4e5d-b5bb-f71ae7b38672
LISTING_PATTERN = re.compile(
    r"^b\S*\s+\S+\s+\S+\s+\S+\s+(\d+),\s*(\d+)\s+(?:.*\s)?(\S+)$"
)

logger = logging.getLogger(__name__)


class VolumeDirectoryError(Exception):
    pass


@dataclass
class Volume:
    major: int
    minor: int
    internal_id: str
    claim_name: str = ""
    claim_namespace: str = ""

    @property
    def device_name(self):
        return DEVICE_PREFIX + self.internal_id


def validate_dir(path):
    try:
        info = os.stat(path)
    except OSError as e:
        raise VolumeDirectoryError(f"could not read directory {path!r}: {e}") from e
    if not stat.S_ISDIR(info.st_mode):
        raise VolumeDirectoryError(f"{path!r} is not a directory")


def read_volume_listing(path=VOLUMES_PATH):
    try:
        result = subprocess.run(
            ["ls", "-l", path],
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        raise VolumeDirectoryError(f"listing {path!r} failed: {e}") from e
    return result.stdout.split("\n")


def parse_volume_listing(lines):
    """Build volumes out of `ls -l` output on the StorageOS volumes directory.

    The directory holds one block device per volume attached to the node,
    named "v.<volume id>", next to regular "d.<id>" presentation files. The
    "total" header, regular files and lines that don't parse are skipped.
    """
    volumes = []
    for line in lines:
        # only interested in block devices
        if not line.startswith("b"):
            continue

        match = LISTING_PATTERN.match(line.rstrip())
        if match is None:
            logger.debug("Skipping unexpected volume listing line: %r", line)
            continue

        major, minor, name = match.groups()
        if not name.startswith(DEVICE_PREFIX) or len(name) == len(DEVICE_PREFIX):
            logger.debug("Skipping block device with unexpected name: %r", name)
            continue

        volumes.append(Volume(int(major), int(minor), name[len(DEVICE_PREFIX):]))

    return volumes


def get_local_volumes(path=VOLUMES_PATH):
    validate_dir(path)
    return parse_volume_listing(read_volume_listing(path))
