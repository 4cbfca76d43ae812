import json

import pytest

from collector.volume import volumes
from core.config import Settings

VOLUME_ID = "c3561d79-459f-4e5d-b5bb-f71ae7b38672"
OTHER_VOLUME_ID = "78e88095-e690-49be-b0f3-3f735ef084a5"

LS_OUTPUT = f"""total 262144
-rw-rw---- 1 root disk 2147483648 Feb 25 15:18 d.d613df45-a162-4166-acf2-717a647e1150
brw-rw---- 1 root disk      8, 32 Feb 25 16:07 v.{VOLUME_ID}
brw-rw---- 1 root disk      8, 48 Feb 25 15:18 v.{OTHER_VOLUME_ID}
"""


class FakeControlPlane:
    def __init__(self, claims=None, error=None):
        self.claims = claims or {}
        self.error = error
        self.calls = 0

    def volume_claims(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return dict(self.claims)


class FakeClientFactory:
    def __init__(self, client):
        self.client = client
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.client


@pytest.fixture
def storageos_dirs(tmp_path):
    volumes_path = tmp_path / "volumes"
    state_path = tmp_path / "state"
    sys_block = tmp_path / "sys" / "block"
    volumes_path.mkdir()
    state_path.mkdir()
    sys_block.mkdir(parents=True)
    return volumes_path, state_path, sys_block


@pytest.fixture
def settings(tmp_path, storageos_dirs):
    volumes_path, state_path, sys_block = storageos_dirs
    return Settings(
        VOLUMES_PATH=str(volumes_path),
        STATE_PATH=str(state_path),
        DISKSTATS_PATH=str(tmp_path / "diskstats"),
        SYS_BLOCK_PATH=str(sys_block),
        MOUNT_TIMEOUT=0.2,
        DISABLED_COLLECTORS=[],
    )


@pytest.fixture
def ls_output(monkeypatch):
    def set_output(output=LS_OUTPUT):
        monkeypatch.setattr(volumes, "read_volume_listing", lambda path: output.split("\n"))

    set_output()
    return set_output


def write_state(state_path, volume_id, pvc, namespace):
    (state_path / f"v.{volume_id}.json").write_text(json.dumps({
        "master": {"volumeID": volume_id},
        "labels": {
            "csi.storage.k8s.io/pvc/name": pvc,
            "csi.storage.k8s.io/pvc/namespace": namespace,
        },
    }))


def samples(families):
    """{sample name: [samples]} across metric families."""
    result = {}
    for family in families:
        for s in family.samples:
            result.setdefault(s.name, []).append(s)
    return result
