import hashlib
import io
import os
import tarfile

import pytest

from arohcp_tooling.mcerepkg.rukpak_util import (
    deep_hash_object,
    fs_to_tar_gz,
    merge_maps,
    open_regular_file,
)


def test_deep_hash_object_is_base36_sha224_of_compact_json():
    result = deep_hash_object({"a": 1})
    assert int(result, 36).to_bytes(28, "big") == hashlib.sha224(b'{"a":1}\n').digest()


def test_deep_hash_object_escapes_html_characters():
    result = deep_hash_object({"k": "<"})
    expected = hashlib.sha224(b'{"k":"\\u003c"}\n').digest()
    assert int(result, 36).to_bytes(28, "big") == expected


def test_deep_hash_object_independent_of_key_order():
    first = deep_hash_object({"b": [1, 2], "a": {"y": "1", "x": "2"}})
    second = deep_hash_object({"a": {"x": "2", "y": "1"}, "b": [1, 2]})
    assert first == second


def test_deep_hash_object_differs_for_different_input():
    assert deep_hash_object({"a": 1}) != deep_hash_object({"a": 2})


def test_deep_hash_object_uses_lowercase_base36_alphabet():
    result = deep_hash_object(["rules", {"verbs": ["get"]}])
    assert set(result) <= set("0123456789abcdefghijklmnopqrstuvwxyz")
    assert len(result) <= 44


def test_deep_hash_object_rejects_unencodable():
    with pytest.raises(ValueError, match="couldn't encode object"):
        deep_hash_object({"a": object()})


def test_merge_maps_later_wins_and_inputs_untouched():
    first = {"a": "1", "b": "1"}
    second = {"b": "2"}
    merged = merge_maps(first, None, second)
    assert merged == {"a": "1", "b": "2"}
    assert first == {"a": "1", "b": "1"}
    assert merged is not first


def test_merge_maps_empty():
    assert merge_maps() == {}


def _make_tree(tmp_path):
    root = tmp_path / "bundle"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"alpha")
    (root / "sub" / "b.txt").write_bytes(b"beta")
    os.symlink(root / "a.txt", root / "link.txt")
    return root


def test_fs_to_tar_gz_round_trip(tmp_path):
    root = _make_tree(tmp_path)
    buffer = io.BytesIO()
    fs_to_tar_gz(buffer, root)
    buffer.seek(0)
    with tarfile.open(fileobj=buffer, mode="r:gz") as archive:
        members = archive.getmembers()
        assert [m.name for m in members] == [".", "a.txt", "sub", "sub/b.txt"]
        assert all(m.uid == 0 and m.gid == 0 for m in members)
        assert all(m.uname == "" and m.gname == "" for m in members)
        assert members[2].isdir()
        assert archive.extractfile("sub/b.txt").read() == b"beta"
        assert archive.extractfile("a.txt").read() == b"alpha"


def test_fs_to_tar_gz_missing_root(tmp_path):
    with pytest.raises(OSError, match="generate tar.gz from FS"):
        fs_to_tar_gz(io.BytesIO(), tmp_path / "missing")


def test_open_regular_file_reads_content(tmp_path):
    root = _make_tree(tmp_path)
    with open_regular_file(root, "sub/b.txt") as handle:
        assert handle.read() == b"beta"


@pytest.mark.parametrize("name", [".", "sub", "link.txt", "nope.txt"])
def test_open_regular_file_hides_non_regular(tmp_path, name):
    root = _make_tree(tmp_path)
    with pytest.raises(FileNotFoundError):
        open_regular_file(root, name)


@pytest.mark.parametrize("name", ["../a.txt", "/etc/hosts", "sub/./b.txt", "", "sub/"])
def test_open_regular_file_rejects_invalid_names(tmp_path, name):
    root = _make_tree(tmp_path)
    with pytest.raises(ValueError, match="invalid argument"):
        open_regular_file(root, name)