from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily

# ondat_<subsystem>_<name>
NAMESPACE = "ondat"
DISK_SUBSYSTEM = "disk"
FILESYSTEM_SUBSYSTEM = "filesystem"
SCRAPE_SUBSYSTEM = "scrape"

SECONDS_PER_TICK = 1.0 / 1000.0

INFO_LABELS = ["device", "pvc", "pvc_namespace", "major", "minor"]
DISK_LABELS = ["device", "pvc", "pvc_namespace"]
FS_LABELS = ["pvc", "pvc_namespace", "device", "fstype", "mountpoint"]
SCRAPE_LABELS = ["collector"]

COUNTER = "counter"
GAUGE = "gauge"

# Order MUST match the counter columns of /proc/diskstats.
DISKSTATS_METRICS = [
    ("reads_completed_total", "The total number of reads completed successfully.", COUNTER),
    ("reads_merged_total", "The total number of reads merged.", COUNTER),
    ("read_bytes_total", "The total number of bytes read successfully.", COUNTER),
    ("read_time_seconds_total", "The total number of seconds spent by all reads.", COUNTER),
    ("writes_completed_total", "The total number of writes completed successfully.", COUNTER),
    ("writes_merged_total", "The number of writes merged.", COUNTER),
    ("written_bytes_total", "The total number of bytes written successfully.", COUNTER),
    ("write_time_seconds_total", "This is the total number of seconds spent by all writes.", COUNTER),
    ("io_now", "The number of I/Os currently in progress.", GAUGE),
    ("io_time_seconds_total", "Total seconds spent doing I/Os.", COUNTER),
    ("io_time_weighted_seconds_total", "The weighted # of seconds spent doing I/Os.", COUNTER),
    ("discards_completed_total", "The total number of discards completed successfully.", COUNTER),
    ("discards_merged_total", "The total number of discards merged.", COUNTER),
    ("discarded_sectors_total", "The total number of sectors discarded successfully.", COUNTER),
    ("discard_time_seconds_total", "This is the total number of seconds spent by all discards.", COUNTER),
    ("flush_requests_total", "The total number of flush requests completed successfully.", COUNTER),
    ("flush_requests_time_seconds_total", "This is the total number of seconds spent by all flush requests.", COUNTER),
]

FILESYSTEM_METRICS = [
    ("size_bytes", "Filesystem size in bytes."),
    ("free_bytes", "Filesystem free space in bytes."),
    ("avail_bytes", "Filesystem space available to non-root users in bytes."),
    ("files", "Filesystem total file nodes."),
    ("files_free", "Filesystem total free file nodes."),
    ("readonly", "Filesystem read-only status."),
    ("device_error", "Whether an error occurred while getting statistics for the given device."),
]


def fq_name(subsystem, name):
    return "_".join([NAMESPACE, subsystem, name])


def new_family(subsystem, name, documentation, labels, metric_type=GAUGE):
    if metric_type == COUNTER:
        return CounterMetricFamily(fq_name(subsystem, name), documentation, labels=labels)
    return GaugeMetricFamily(fq_name(subsystem, name), documentation, labels=labels)


def disk_info_family():
    return new_family(
        DISK_SUBSYSTEM, "info", "Info of Ondat volumes and devices.", INFO_LABELS
    )


def diskstats_families():
    return [
        new_family(DISK_SUBSYSTEM, name, doc, DISK_LABELS, metric_type)
        for name, doc, metric_type in DISKSTATS_METRICS
    ]


def filesystem_families():
    """Return a dict of filesystem metric name -> empty gauge family."""
    return {
        name: new_family(FILESYSTEM_SUBSYSTEM, name, doc, FS_LABELS)
        for name, doc in FILESYSTEM_METRICS
    }


def scrape_families():
    duration = new_family(
        SCRAPE_SUBSYSTEM,
        "collector_duration_seconds",
        "Duration of a collector scrape.",
        SCRAPE_LABELS,
    )
    success = new_family(
        SCRAPE_SUBSYSTEM,
        "collector_success",
        "Whether a collector succeeded.",
        SCRAPE_LABELS,
    )
    return duration, success


def catalog():
    """(name, type, documentation) for every metric this exporter can emit."""
    entries = [(fq_name(DISK_SUBSYSTEM, "info"), GAUGE, "Info of Ondat volumes and devices.")]
    for name, doc, metric_type in DISKSTATS_METRICS:
        entries.append((fq_name(DISK_SUBSYSTEM, name), metric_type, doc))
    for name, doc in FILESYSTEM_METRICS:
        entries.append((fq_name(FILESYSTEM_SUBSYSTEM, name), GAUGE, doc))
    entries.append((fq_name(SCRAPE_SUBSYSTEM, "collector_duration_seconds"), GAUGE, "Duration of a collector scrape."))
    entries.append((fq_name(SCRAPE_SUBSYSTEM, "collector_success"), GAUGE, "Whether a collector succeeded."))
    return entries
