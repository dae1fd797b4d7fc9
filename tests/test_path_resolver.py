import os

import pytest

from static_server.path_resolver import BadRequestError, resolve_path


@pytest.fixture
def root(web_root):
    return os.path.realpath(str(web_root))


def test_root_defaults_to_index(root):
    assert resolve_path("/", root) == os.path.join(root, "index.html")


def test_nested_file(root):
    assert resolve_path("/css/main.css", root) == os.path.join(root, "css", "main.css")


def test_directory_is_returned_unchanged(root):
    assert resolve_path("/css", root) == os.path.join(root, "css")


def test_empty_segments_are_dropped(root):
    assert resolve_path("//css///main.css", root) == os.path.join(root, "css", "main.css")


def test_query_string_is_ignored(root):
    assert resolve_path("/index.html?v=2#top", root) == os.path.join(root, "index.html")


def test_percent_encoding_is_decoded(root):
    assert resolve_path("/css/main%2ecss", root) == os.path.join(root, "css", "main.css")


@pytest.mark.parametrize("raw_path", [
    "../css/main.css",
    "/../etc/passwd",
    "/css/../../secret",
    "/./index.html",
    "./",
    "/css/./main.css",
])
def test_traversal_markers_are_rejected(root, raw_path):
    with pytest.raises(BadRequestError):
        resolve_path(raw_path, root)


@pytest.mark.parametrize("raw_path", [
    "/%2e%2e/%2e%2e/etc/passwd",
    "/%2E%2E%2Fsecret",
    "/css/%2e/main.css",
])
def test_encoded_traversal_is_rejected(root, raw_path):
    with pytest.raises(BadRequestError):
        resolve_path(raw_path, root)


def test_trailing_dot_segments_are_filtered(root):
    # No "./" substring, so only the segment filter applies
    assert resolve_path("/..", root) == os.path.join(root, "index.html")
    assert resolve_path("/css/..", root) == os.path.join(root, "css")


def test_backslash_segments_stay_inside_root(root):
    resolved = resolve_path("/css\\..\\..\\secret", root)
    assert resolved == os.path.join(root, "css", "secret")


def test_symlink_out_of_root_is_rejected(root, tmp_path):
    outside = tmp_path / "outside.txt"
    outside.write_text("secret")
    os.symlink(str(outside), os.path.join(root, "leak.txt"))

    with pytest.raises(BadRequestError):
        resolve_path("/leak.txt", root)


def test_symlink_inside_root_is_allowed(root):
    os.symlink(os.path.join(root, "index.html"), os.path.join(root, "home.html"))
    assert resolve_path("/home.html", root) == os.path.join(root, "index.html")
