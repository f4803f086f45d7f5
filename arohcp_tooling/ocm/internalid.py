"""Identifiers of Cluster Service resources: clusters and node pools."""

from __future__ import annotations

import posixpath
import re

__all__ = [
    "CLUSTER_KIND",
    "NODE_POOL_KIND",
    "InvalidInternalIDError",
    "InternalID",
    "generate_cluster_href",
    "generate_node_pool_href",
]

CLUSTER_KIND = "Cluster"
NODE_POOL_KIND = "NodePool"

_V1_PATTERN = "/api/clusters_mgmt/v1"
_V1_CLUSTER = re.compile(re.escape(_V1_PATTERN + "/clusters/") + r"[^/]*")
_V1_NODE_POOL = re.compile(
    re.escape(_V1_PATTERN + "/clusters/") + r"[^/]*" + re.escape("/node_pools/") + r"[^/]*"
)


class InvalidInternalIDError(ValueError):
    """Raised when a path is not a supported Cluster Service resource path."""


def generate_cluster_href(cluster_name: str) -> str:
    """Return the API path of the cluster named ``cluster_name``."""
    return f"{_V1_PATTERN}/clusters/{cluster_name}"


def generate_node_pool_href(cluster_path: str, node_pool_name: str) -> str:
    """Return the API path of a node pool below ``cluster_path``."""
    return f"{cluster_path}/node_pools/{node_pool_name}"


def _clean(path: str) -> str:
    if not path:
        return "."
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _dir(path: str) -> str:
    return _clean(path[: path.rfind("/") + 1])


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped[stripped.rfind("/") + 1 :]


class InternalID:
    """A validated, lower-cased Cluster Service API path."""

    __slots__ = ("_path",)

    def __init__(self, path: str):
        self._path = path.lower()
        if not (_V1_CLUSTER.fullmatch(self._path) or _V1_NODE_POOL.fullmatch(self._path)):
            raise InvalidInternalIDError(f"Invalid InternalID: {self._path}")

    def __str__(self) -> str:
        return self._path

    def __repr__(self) -> str:
        return f"InternalID({self._path!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InternalID):
            return NotImplemented
        return self._path == other._path

    def __hash__(self) -> int:
        return hash(self._path)

    def id(self) -> str:
        """The last path element of the resource."""
        return _base(self._path)

    def kind(self) -> str:
        """The kind of resource: "Cluster", "NodePool" or empty."""
        if _V1_NODE_POOL.fullmatch(self._path):
            return NODE_POOL_KIND
        if _V1_CLUSTER.fullmatch(self._path):
            return CLUSTER_KIND
        return ""

    def cluster_path(self) -> str:
        """The API path of the cluster this resource is, or belongs to."""
        this_path, last_path = self._path, None
        while this_path != last_path:
            if _V1_CLUSTER.fullmatch(this_path):
                return this_path
            last_path, this_path = this_path, _dir(this_path)
        raise InvalidInternalIDError(f"OCM path is not a cluster: {self._path}")

    def node_pool_path(self) -> str:
        """The API path of the node pool; raises if this is not a node pool."""
        if _V1_NODE_POOL.fullmatch(self._path):
            return self._path
        raise InvalidInternalIDError(f"OCM path is not a node pool: {self._path}")