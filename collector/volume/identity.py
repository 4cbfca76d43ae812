import json
import logging
import os

from controlplane.client import (
    PVC_NAME_LABEL,
    PVC_NAMESPACE_LABEL,
    ControlPlaneClient,
    ControlPlaneError,
)
from collector.volume.volumes import VolumeDirectoryError, get_local_volumes

STATE_PATH = "/var/lib/storageos/state"

logger = logging.getLogger(__name__)


def state_file_path(state_path, internal_id):
    return os.path.join(state_path, f"v.{internal_id}.json")


def read_volume_state(state_path, internal_id):
    """Return (pvc name, pvc namespace) from the node-local state file."""
    with open(state_file_path(state_path, internal_id), "r") as f:
        state = json.load(f)
    labels = state.get("labels") or {}
    if not isinstance(labels, dict):
        raise ValueError(f"unexpected labels value {labels!r}")
    return labels.get(PVC_NAME_LABEL, ""), labels.get(PVC_NAMESPACE_LABEL, "")


class IdentityResolver:
    """Attach claim identity to the volumes of one scrape cycle.

    State files only exist on nodes hosting the master or a replica of a
    volume. When a volume is merely attached here, its identity comes from the
    control plane instead, which is queried at most once per resolver since a
    single listing covers the whole cluster. One resolver serves one scrape
    cycle.
    """

    def __init__(self, state_path=STATE_PATH, client_factory=None):
        self.state_path = state_path
        self.client_factory = client_factory
        self._remote_index = None
        self._remote_failed = False

    def _remote_claims(self):
        if self._remote_index is not None or self._remote_failed:
            return self._remote_index
        if self.client_factory is None:
            self._remote_failed = True
            return None

        try:
            client = self.client_factory()
            self._remote_index = client.volume_claims()
        except ControlPlaneError as e:
            logger.error("Error fetching volumes from the control plane: %s", e)
            self._remote_failed = True
        return self._remote_index

    def resolve(self, volume):
        try:
            volume.claim_name, volume.claim_namespace = read_volume_state(
                self.state_path, volume.internal_id
            )
            return volume
        except FileNotFoundError:
            pass
        except (OSError, ValueError, AttributeError) as e:
            logger.error("Error reading volume %s state file: %s", volume.internal_id, e)
            return volume

        claims = self._remote_claims()
        if claims and volume.internal_id in claims:
            volume.claim_name, volume.claim_namespace = claims[volume.internal_id]
        else:
            logger.warning("Could not resolve the claim of volume %s", volume.internal_id)
        return volume

    def resolve_all(self, volumes):
        for volume in volumes:
            self.resolve(volume)
        return volumes


def api_client_factory(settings):
    def factory():
        return ControlPlaneClient.from_secrets(settings.API_SECRETS_PATH, settings.API_ENDPOINT)

    return factory


def discover_volumes(settings, client_factory=None):
    """Local StorageOS volumes of this node with their claim identity."""
    volumes = get_local_volumes(settings.VOLUMES_PATH)
    if client_factory is None:
        client_factory = api_client_factory(settings)
    resolver = IdentityResolver(settings.STATE_PATH, client_factory)
    return resolver.resolve_all(volumes)


class ScrapeVolumes:
    """Volumes discovered once for a scrape cycle and shared by its collectors.

    A missing volumes directory is kept and raised again to every collector
    asking for the volumes, so each of them reports its own failure.
    """

    def __init__(self, volumes=None, error=None):
        self.volumes = volumes if volumes is not None else []
        self.error = error

    @classmethod
    def discover(cls, settings, client_factory=None):
        try:
            return cls(discover_volumes(settings, client_factory))
        except VolumeDirectoryError as e:
            return cls(error=e)

    def get(self):
        if self.error is not None:
            raise VolumeDirectoryError(str(self.error))
        return self.volumes


def scrape_context(settings, client_factory=None):
    """Per-scrape context factory for the Orchestrator."""
    if client_factory is None:
        client_factory = api_client_factory(settings)

    def discover():
        return ScrapeVolumes.discover(settings, client_factory)

    return discover
