"""Parsing of the kernel's per-device I/O counters.

Format: https://www.kernel.org/doc/Documentation/ABI/testing/procfs-diskstats

Kernels older than 4.18 expose 14 fields per line, 4.18 adds four discard
fields and 5.5 adds two flush fields.
"""
import os
from dataclasses import dataclass
from typing import Optional

DISKSTATS_PATH = "/proc/diskstats"
SYS_BLOCK_PATH = "/sys/block"

# major, minor, device name and the 11 counters every kernel reports
MIN_NUM_FIELDS = 14
MAX_NUM_FIELDS = 20

DEFAULT_SECTOR_SIZE = 512

COUNTER_FIELDS = [
    "read_ios",
    "read_merges",
    "read_sectors",
    "read_ticks",
    "write_ios",
    "write_merges",
    "write_sectors",
    "write_ticks",
    "ios_in_progress",
    "io_total_ticks",
    "weighted_io_ticks",
    # optional tail
    "discard_ios",
    "discard_merges",
    "discard_sectors",
    "discard_ticks",
    "flush_requests_completed",
    "time_spent_flushing",
]


@dataclass
class DiskStats:
    major: int
    minor: int
    device_name: str
    read_ios: int
    read_merges: int
    read_sectors: int
    read_ticks: int
    write_ios: int
    write_merges: int
    write_sectors: int
    write_ticks: int
    ios_in_progress: int
    io_total_ticks: int
    weighted_io_ticks: int
    discard_ios: Optional[int] = None
    discard_merges: Optional[int] = None
    discard_sectors: Optional[int] = None
    discard_ticks: Optional[int] = None
    flush_requests_completed: Optional[int] = None
    time_spent_flushing: Optional[int] = None
    # includes major, minor and device name
    fields_observed: int = MIN_NUM_FIELDS

    @property
    def counter_count(self):
        return self.fields_observed - 3

    def counters(self):
        """Counter values actually present on the line, in column order."""
        return [getattr(self, f) for f in COUNTER_FIELDS[: self.counter_count]]


def parse_diskstats_line(line):
    """Return a DiskStats for one line or None when the line is unusable."""
    parts = line.split()
    if len(parts) < MIN_NUM_FIELDS:
        return None

    try:
        major = int(parts[0])
        minor = int(parts[1])
    except ValueError:
        return None

    values = []
    for raw in parts[3:MAX_NUM_FIELDS]:
        try:
            values.append(int(raw))
        except ValueError:
            break

    observed = 3 + len(values)
    if observed < MIN_NUM_FIELDS:
        return None

    return DiskStats(
        major,
        minor,
        parts[2],
        fields_observed=observed,
        **dict(zip(COUNTER_FIELDS, values)),
    )


def parse_diskstats(lines):
    stats = []
    for line in lines:
        record = parse_diskstats_line(line)
        if record is not None:
            stats.append(record)
    return stats


def read_diskstats(path=DISKSTATS_PATH):
    with open(path, "r") as f:
        return parse_diskstats(f)


def logical_block_size(device, sys_block_path=SYS_BLOCK_PATH):
    path = os.path.join(sys_block_path, device, "queue", "logical_block_size")
    with open(path, "r") as f:
        return int(f.read().strip())
