import pytest
import responses
from responses import matchers

from arohcp_tooling.imagesync.repository import (
    OCIRegistry,
    QuayRegistry,
    RegistryError,
    get_newest_tags,
)

QUAY_TAGS_URL = "https://quay.io/api/v1/repository/org/img/tag/"


@pytest.fixture
def mocked():
    with responses.RequestsMock() as rsps:
        yield rsps


def _page(page, names, has_additional):
    return {
        "tags": [{"name": name} for name in names],
        "page": page,
        "has_additional": has_additional,
    }


def _add_quay_page(rsps, page, names, has_additional):
    rsps.add(
        responses.GET,
        QUAY_TAGS_URL,
        json=_page(page, names, has_additional),
        match=[matchers.query_param_matcher({"limit": "100", "page": str(page)})],
    )


def test_quay_skips_latest_and_reads_all_pages(mocked):
    _add_quay_page(mocked, 1, ["a", "latest", "b"], True)
    _add_quay_page(mocked, 2, ["c"], False)
    registry = QuayRegistry("token", 10)
    assert registry.get_tags("org/img") == ["a", "b", "c"]
    assert len(mocked.calls) == 2


def test_quay_stops_at_number_of_tags(mocked):
    _add_quay_page(mocked, 1, ["a", "b", "c", "d"], True)
    registry = QuayRegistry("token", 2)
    assert registry.get_tags("org/img") == ["a", "b"]
    assert len(mocked.calls) == 1


def test_quay_stops_without_additional_pages(mocked):
    _add_quay_page(mocked, 1, ["a"], False)
    registry = QuayRegistry("token", 5)
    assert registry.get_tags("org/img") == ["a"]
    assert len(mocked.calls) == 1


def test_quay_sends_bearer_token(mocked):
    _add_quay_page(mocked, 1, ["a"], False)
    tags = QuayRegistry("token", 5).get_tags("org/img")
    assert tags == ["a"]
    assert mocked.calls[0].request.headers["Authorization"] == "Bearer token"


def test_quay_error_status_raises(mocked):
    mocked.add(responses.GET, QUAY_TAGS_URL, status=500)
    with pytest.raises(RegistryError, match="unexpected status code 500"):
        QuayRegistry("token", 5).get_tags("org/img")


def test_quay_invalid_body_raises(mocked):
    mocked.add(responses.GET, QUAY_TAGS_URL, body="not json")
    with pytest.raises(RegistryError, match="failed to unmarshal response"):
        QuayRegistry("token", 5).get_tags("org/img")


def _manifest(time, tags):
    return {"timeUploadedMs": time, "tag": tags}


def test_get_newest_tags_orders_by_upload_time():
    response = {
        "manifest": {
            "sha256:1": _manifest("100", ["old"]),
            "sha256:2": _manifest("300", ["newest"]),
            "sha256:3": _manifest("200", ["middle", "mid-alias"]),
        }
    }
    assert get_newest_tags(response, 2) == ["newest", "middle", "mid-alias"]


def test_get_newest_tags_skips_untagged_manifests():
    response = {
        "manifest": {
            "sha256:1": _manifest("500", []),
            "sha256:2": _manifest("100", ["v1"]),
        }
    }
    assert get_newest_tags(response, 1) == ["v1"]


def test_get_newest_tags_empty_response():
    assert get_newest_tags({"manifest": {}, "tags": []}, 3) == []


def test_get_newest_tags_invalid_time_raises():
    response = {"manifest": {"sha256:1": _manifest("yesterday", ["v1"])}}
    with pytest.raises(RegistryError, match="failed to parse manifest"):
        get_newest_tags(response, 1)


def test_oci_get_tags(mocked):
    mocked.add(
        responses.GET,
        "https://registry.example.com/v2/ns/img/tags/list",
        json={
            "manifest": {
                "sha256:1": _manifest("1", ["first"]),
                "sha256:2": _manifest("2", ["second"]),
            },
            "tags": ["first", "second"],
        },
    )
    registry = OCIRegistry("registry.example.com", 1)
    assert registry.get_tags("ns/img") == ["second"]


def test_oci_error_status_raises(mocked):
    mocked.add(
        responses.GET, "https://registry.example.com/v2/ns/img/tags/list", status=404
    )
    with pytest.raises(RegistryError, match="unexpected status code 404"):
        OCIRegistry("registry.example.com", 1).get_tags("ns/img")