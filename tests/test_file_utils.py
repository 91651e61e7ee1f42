# tests/test_file_utils.py

import os

import pytest

from config import DEFAULT_VIDEO_EXTENSIONS
from utils.file_utils import format_file_size, has_video_extension, list_video_files


@pytest.fixture
def media_dir(tmp_path):
    for relative in [
        "b.mp4",
        "a.MKV",
        "notes.txt",
        ".hidden.mp4",
        ".cache/inside.mp4",
        "season1/ep2.avi",
        "season1/ep1.avi",
        "season1/cover.jpg",
    ]:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x")
    return tmp_path


def test_lists_videos_recursively_in_sorted_order(media_dir):
    found = list_video_files(str(media_dir), DEFAULT_VIDEO_EXTENSIONS)

    assert [os.path.relpath(p, media_dir) for p in found] == [
        "a.MKV",
        "b.mp4",
        os.path.join("season1", "ep1.avi"),
        os.path.join("season1", "ep2.avi"),
    ]
    assert all(os.path.isabs(p) for p in found)


def test_extension_allow_list(media_dir):
    found = list_video_files(str(media_dir), (".avi",))

    assert [os.path.basename(p) for p in found] == ["ep1.avi", "ep2.avi"]


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_symlinks_are_skipped(media_dir):
    try:
        os.symlink(media_dir / "b.mp4", media_dir / "link.mp4")
        os.symlink(media_dir / "season1", media_dir / "linked_dir")
    except OSError:
        pytest.skip("cannot create symlinks here")

    names = [os.path.basename(p) for p in list_video_files(str(media_dir), DEFAULT_VIDEO_EXTENSIONS)]

    assert "link.mp4" not in names
    assert names.count("ep1.avi") == 1


def test_missing_directory_yields_nothing(tmp_path):
    assert list_video_files(str(tmp_path / "nope"), DEFAULT_VIDEO_EXTENSIONS) == []


def test_has_video_extension():
    assert has_video_extension("Movie.MPEG", DEFAULT_VIDEO_EXTENSIONS)
    assert not has_video_extension("movie.mp4.part", DEFAULT_VIDEO_EXTENSIONS)


def test_format_file_size():
    assert format_file_size(512) == "512.00 B"
    assert format_file_size(1536) == "1.50 KB"
