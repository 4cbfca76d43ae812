import pytest

from collector.volume import volumes
from collector.volume.volumes import (
    Volume,
    VolumeDirectoryError,
    get_local_volumes,
    parse_volume_listing,
    validate_dir,
)
from conftest import LS_OUTPUT, OTHER_VOLUME_ID, VOLUME_ID


def test_parse_volume_listing():
    vols = parse_volume_listing(LS_OUTPUT.split("\n"))

    assert vols == [
        Volume(major=8, minor=32, internal_id=VOLUME_ID),
        Volume(major=8, minor=48, internal_id=OTHER_VOLUME_ID),
    ]
    assert vols[0].claim_name == ""
    assert vols[0].device_name == f"v.{VOLUME_ID}"


def test_parse_volume_listing_elided_columns():
    line = f"brw-rw---- 1 root disk 8, 32 ... v.{VOLUME_ID}"

    assert parse_volume_listing([line]) == [Volume(8, 32, VOLUME_ID)]


@pytest.mark.parametrize("output", [
    # presentations only
    """total 5767168
-rw-rw---- 1 root disk  2147483648 Feb 25 15:18 d.d613df45-a162-4166-acf2-717a647e1150
-rw-rw---- 1 root disk  2147483648 Feb 25 16:07 d.5a1efbf6-2d7a-4f2a-a04e-14fbb4e8894f
""",
    "total 0\n",
    "",
    # invalid minor number
    """total 262144
-rw-rw---- 1 root disk 2147483648 Feb 25 15:18 d.d613df45-a162-4166-acf2-717a647e1150
brw-rw---- 1 root disk     8, ops Feb 25 16:07 v.c3561d79-459f-4e5d-b5bb-f71ae7b38672
""",
    # block device not following the v.<uuid> naming
    "brw-rw---- 1 root disk 8, 64 Feb 25 16:07 sde\n",
    # character device
    "crw-rw---- 1 root disk 8, 64 Feb 25 16:07 v.c3561d79-459f-4e5d-b5bb-f71ae7b38672\n",
])
def test_parse_volume_listing_no_volumes(output):
    assert parse_volume_listing(output.split("\n")) == []


def test_bad_line_does_not_abort_listing():
    lines = [
        "brw-rw---- 1 root disk 8, ops Feb 25 16:07 v.broken",
        f"brw-rw---- 1 root disk 8, 48 Feb 25 15:18 v.{OTHER_VOLUME_ID}",
    ]

    assert parse_volume_listing(lines) == [Volume(8, 48, OTHER_VOLUME_ID)]


def test_validate_dir_missing(tmp_path):
    with pytest.raises(VolumeDirectoryError, match="could not read directory"):
        validate_dir(str(tmp_path / "missing"))


def test_validate_dir_not_a_directory(tmp_path):
    path = tmp_path / "file"
    path.write_text("")

    with pytest.raises(VolumeDirectoryError, match="is not a directory"):
        validate_dir(str(path))


def test_get_local_volumes(tmp_path, ls_output):
    vols = get_local_volumes(str(tmp_path))

    assert [v.internal_id for v in vols] == [VOLUME_ID, OTHER_VOLUME_ID]


def test_get_local_volumes_checks_directory_first(tmp_path, monkeypatch):
    def fail(path):
        raise AssertionError("listing must not run")

    monkeypatch.setattr(volumes, "read_volume_listing", fail)

    with pytest.raises(VolumeDirectoryError):
        get_local_volumes(str(tmp_path / "missing"))


def test_read_volume_listing_failure(tmp_path):
    with pytest.raises(VolumeDirectoryError):
        volumes.read_volume_listing(str(tmp_path / "missing"))
