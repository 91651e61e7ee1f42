# tests/conftest.py

import pytest

from core.fingerprint import hamming_distance
from core.frame_source import SampleResult, SampledFrame, VideoMetadata

# Eight fingerprints with disjoint 8-bit blocks set: pairwise distance is
# exactly 16, which does not match under the default threshold of 16.
BLOCKS = [0xFF << (8 * k) for k in range(8)]


class FakeFrameSource:
    """
    Frame source that hands out preset "frames"

    frames_by_name maps a file name to a list of images; an image of None
    stands for a frame the hasher cannot fingerprint.
    """

    def __init__(self, frames_by_name, duration=60.0, fail_with=None):
        self.frames_by_name = frames_by_name
        self.duration = duration
        self.fail_with = fail_with
        self.extracted = []

    def check_available(self):
        if self.fail_with is not None:
            raise self.fail_with

    def extract(self, video_path, frame_count):
        self.extracted.append(video_path)
        name = video_path.replace('\\', '/').rsplit('/', 1)[-1]
        images = self.frames_by_name.get(name, [])[:frame_count]
        return SampleResult(
            metadata=VideoMetadata(duration=self.duration, bit_rate=1000),
            frames=[SampledFrame(i, image) for i, image in enumerate(images)],
        )


class FakeHasher:
    """Hasher whose frames already are their fingerprints"""

    def fingerprint(self, image):
        return image

    def distance(self, a, b):
        return hamming_distance(a, b)


@pytest.fixture
def blocks():
    return list(BLOCKS)


@pytest.fixture
def fake_hasher():
    return FakeHasher()


@pytest.fixture
def video_tree(tmp_path):
    """
    Directory with a few fake video files of distinct content

    Returns a helper that writes a file and gives back its absolute path.
    """
    def write(relative, content=None):
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content if content is not None else relative.encode())
        return str(path.resolve())

    return write
