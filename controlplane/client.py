"""Minimal client for the StorageOS control-plane REST API.

Only what is needed to map volume ids to their PVC: authenticate with the
username/password mounted from a Kubernetes secret, then list namespaces and
the volumes inside each of them.
"""
import logging
import os

import requests

DEFAULT_PORT = 5705
DEFAULT_SCHEME = "http"

# requests timeouts in seconds
HTTP_TIMEOUT = 10
AUTHENTICATION_TIMEOUT = 20

SECRET_USERNAME_KEY = "username"
SECRET_PASSWORD_KEY = "password"

PVC_NAME_LABEL = "csi.storage.k8s.io/pvc/name"
PVC_NAMESPACE_LABEL = "csi.storage.k8s.io/pvc/namespace"

logger = logging.getLogger(__name__)


class ControlPlaneError(Exception):
    pass


def read_secret(path):
    try:
        with open(path, "r") as f:
            return f.read().strip()
    except OSError as e:
        raise ControlPlaneError(f"unable to read secret {path}: {e}") from e


def read_credentials(secrets_path):
    username = read_secret(os.path.join(secrets_path, SECRET_USERNAME_KEY))
    password = read_secret(os.path.join(secrets_path, SECRET_PASSWORD_KEY))
    return username, password


def normalize_endpoint(endpoint):
    if "://" not in endpoint:
        endpoint = f"{DEFAULT_SCHEME}://{endpoint}"
    scheme, host = endpoint.split("://", 1)
    host = host.rstrip("/")
    if ":" not in host:
        host = f"{host}:{DEFAULT_PORT}"
    return f"{scheme}://{host}"


class ControlPlaneClient:
    def __init__(self, username, password, endpoint="storageos", session=None):
        self.base_url = normalize_endpoint(endpoint)
        self._username = username
        self._password = password
        self.session = session or requests.Session()
        self.token = None

    @classmethod
    def from_secrets(cls, secrets_path, endpoint="storageos", session=None):
        """Read the mounted credentials and return an authenticated client."""
        username, password = read_credentials(secrets_path)
        client = cls(username, password, endpoint, session=session)
        client.authenticate()
        return client

    def authenticate(self):
        try:
            resp = self.session.post(
                f"{self.base_url}/v2/auth/login",
                json={"username": self._username, "password": self._password},
                timeout=AUTHENTICATION_TIMEOUT,
            )
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise ControlPlaneError(f"authentication failed: {e}") from e

        # "Bearer aaaabbbbcccdddeeeff"
        value = resp.headers.get("Authorization", "")
        parts = value.split(" ", 1)
        if len(parts) != 2 or not parts[1]:
            raise ControlPlaneError("no token found in auth response")

        self.token = parts[1]
        self.session.headers["Authorization"] = f"Bearer {self.token}"
        return self.token

    def _get(self, path):
        try:
            resp = self.session.get(f"{self.base_url}{path}", timeout=HTTP_TIMEOUT)
            resp.raise_for_status()
            return resp.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise ControlPlaneError(f"GET {path} failed: {e}") from e

    def list_namespaces(self):
        return self._get("/v2/namespaces")

    def list_volumes(self, namespace_id):
        return self._get(f"/v2/namespaces/{namespace_id}/volumes")

    def volume_claims(self):
        """Return {volume id: (pvc name, pvc namespace)} across the cluster."""
        claims = {}
        try:
            for ns in self.list_namespaces():
                for vol in self.list_volumes(ns["id"]):
                    labels = vol.get("labels") or {}
                    claims[vol["id"]] = (
                        labels.get(PVC_NAME_LABEL, ""),
                        labels.get(PVC_NAMESPACE_LABEL, ""),
                    )
        except (KeyError, TypeError, AttributeError) as e:
            raise ControlPlaneError(f"unexpected control plane response: {e}") from e
        if not claims:
            raise ControlPlaneError("no Ondat volumes found")
        logger.debug("Fetched %d volumes from the control plane", len(claims))
        return claims
