"""Listing image tags from Quay and OCI-compatible container registries."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

import requests

__all__ = [
    "QUAY_BASE_URL",
    "QUAY_PAGE_SIZE",
    "QUAY_MAX_PAGES",
    "RegistryError",
    "QuayRegistry",
    "OCIRegistry",
    "get_newest_tags",
]

QUAY_BASE_URL = "https://quay.io"
QUAY_PAGE_SIZE = 100
# Hard limit on pages fetched, so a listing can never run forever.
QUAY_MAX_PAGES = 100
LATEST_TAG = "latest"

_INTEGER = re.compile(r"[+-]?[0-9]+")

log = logging.getLogger(__name__)


class RegistryError(RuntimeError):
    """Raised when a registry cannot be queried or its answer cannot be read."""


def _field(data: Any, name: str) -> Any:
    """Look up a JSON object field, preferring an exact key, else any case."""
    if data is None:
        return None
    if not isinstance(data, Mapping):
        raise RegistryError(f"expected a JSON object, got {type(data).__name__}")
    if name in data:
        return data[name]
    lowered = name.lower()
    for key, value in data.items():
        if isinstance(key, str) and key.lower() == lowered:
            return value
    return None


def _list(value: Any, where: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise RegistryError(f"{where}: expected a JSON array")
    return value


def _text(value: Any, where: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise RegistryError(f"{where}: expected a JSON string")
    return value


def _timeout(request_timeout: float) -> float | None:
    return request_timeout if request_timeout else None


def _fetch_json(session: requests.Session, url: str, timeout: float | None) -> Any:
    log.debug("Sending request path=%s", url)
    try:
        response = session.get(url, timeout=timeout)
    except requests.RequestException as exc:
        raise RegistryError(f"failed to send request: {exc}") from exc
    log.debug("Got response statuscode=%d", response.status_code)
    if response.status_code != 200:
        raise RegistryError(f"unexpected status code {response.status_code}")
    try:
        return response.json()
    except ValueError as exc:
        raise RegistryError(f"failed to unmarshal response: {exc}") from exc


class QuayRegistry:
    """Tag listing for repositories hosted on Quay."""

    def __init__(self, bearer_token: str, number_of_tags: int, request_timeout: float = 0):
        self.base_url = QUAY_BASE_URL
        self.number_of_tags = number_of_tags
        self.timeout = _timeout(request_timeout)
        self.session = requests.Session()
        self.session.headers["Authorization"] = "Bearer " + bearer_token

    def _tag_page(self, image: str, page: int) -> tuple[list[str], bool]:
        url = (
            f"{self.base_url}/api/v1/repository/{image}/tag/"
            f"?limit={QUAY_PAGE_SIZE}&page={page}"
        )
        payload = _fetch_json(self.session, url, self.timeout)
        try:
            names = [
                _text(_field(tag, "Name"), "tags.name")
                for tag in _list(_field(payload, "Tags"), "tags")
            ]
            has_additional = _field(payload, "has_additional")
            if has_additional is not None and not isinstance(has_additional, bool):
                raise RegistryError("has_additional: expected a JSON boolean")
        except RegistryError as exc:
            raise RegistryError(f"failed to unmarshal response: {exc}") from exc
        return names, bool(has_additional)

    def get_tags(self, image: str) -> list[str]:
        """Return up to ``number_of_tags`` tags of ``image``, skipping "latest"."""
        log.debug("Getting tags for image image=%s", image)
        tags: list[str] = []
        for page in range(1, QUAY_MAX_PAGES):
            if len(tags) >= self.number_of_tags:
                break
            try:
                names, has_additional = self._tag_page(image, page)
            except RegistryError as exc:
                raise RegistryError(f"failed to get tags: {exc}") from exc
            for name in names:
                if name == LATEST_TAG:
                    continue
                tags.append(name)
                if len(tags) >= self.number_of_tags:
                    return tags
            if not has_additional:
                break
        return tags


def get_newest_tags(response: Any, number_of_tags: int) -> list[str]:
    """Return the tags of the ``number_of_tags`` most recently uploaded manifests.

    ``response`` is a parsed tags/list answer whose ``manifest`` object maps
    digests to their upload time (milliseconds, as text) and tags.
    """
    uploaded_tag_at: dict[int, list[str]] = {}
    upload_times: list[int] = []
    manifests = _field(response, "Manifest") or {}
    if not isinstance(manifests, Mapping):
        raise RegistryError("manifest: expected a JSON object")
    for digest, manifest in manifests.items():
        tags = [_text(tag, "tag") for tag in _list(_field(manifest, "Tag"), "tag")]
        if not tags:
            continue
        raw_time = _text(_field(manifest, "TimeUploadedMs"), "timeUploadedMs")
        if not _INTEGER.fullmatch(raw_time):
            raise RegistryError(
                f"failed to parse manifest {digest} time: invalid syntax {raw_time!r}"
            )
        uploaded_at = int(raw_time)
        uploaded_tag_at[uploaded_at] = tags
        upload_times.append(uploaded_at)
    upload_times.sort(reverse=True)

    newest: list[str] = []
    for uploaded_at in upload_times[: max(number_of_tags, 0)]:
        newest.extend(uploaded_tag_at[uploaded_at])
    return newest


class OCIRegistry:
    """Tag listing for registries that speak the OCI distribution API."""

    def __init__(self, base_url: str, number_of_tags: int, request_timeout: float = 0):
        self.base_url = f"https://{base_url}"
        self.number_of_tags = number_of_tags
        self.timeout = _timeout(request_timeout)
        self.session = requests.Session()

    def get_tags(self, image: str) -> list[str]:
        """Return the tags of the newest manifests of ``image``."""
        log.debug("Getting tags for image image=%s", image)
        url = f"{self.base_url}/v2/{image}/tags/list"
        payload = _fetch_json(self.session, url, self.timeout)
        if not isinstance(payload, Mapping) and payload is not None:
            raise RegistryError("failed to unmarshal response: expected a JSON object")
        return get_newest_tags(payload, self.number_of_tags)