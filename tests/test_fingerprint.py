# tests/test_fingerprint.py

import cv2
import numpy as np
import pytest
from PIL import Image

from core.fingerprint import PerceptualHasher, hamming_distance


@pytest.fixture
def frame():
    """Structured test frame: gradient with a bright rectangle"""
    img = np.tile(np.linspace(0, 255, 160, dtype=np.uint8), (120, 1))
    img = cv2.merge([img, img[:, ::-1], img])
    cv2.rectangle(img, (30, 20), (90, 70), (255, 255, 255), -1)
    return img


@pytest.fixture
def hasher():
    return PerceptualHasher()


def test_hamming_distance():
    assert hamming_distance(0, 0) == 0
    assert hamming_distance(0b1010, 0b0101) == 4
    assert hamming_distance((1 << 64) - 1, 0) == 64


def test_fingerprint_is_64_bit(hasher, frame):
    fingerprint = hasher.fingerprint(frame)

    assert isinstance(fingerprint, int)
    assert 0 <= fingerprint < 2 ** 64
    assert hasher.bit_width == 64


def test_same_frame_same_fingerprint(hasher, frame):
    assert hasher.fingerprint(frame) == hasher.fingerprint(frame.copy())


def test_array_bytes_and_pil_inputs_agree(hasher, frame):
    ok, encoded = cv2.imencode('.png', frame)
    assert ok
    pil_image = Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))

    from_array = hasher.fingerprint(frame)

    assert hasher.fingerprint(encoded.tobytes()) == from_array
    assert hasher.fingerprint(pil_image) == from_array


def test_reencoded_and_resized_frame_stays_close(hasher, frame):
    ok, jpeg = cv2.imencode('.jpg', frame, [cv2.IMWRITE_JPEG_QUALITY, 60])
    assert ok
    smaller = cv2.resize(frame, (80, 60), interpolation=cv2.INTER_AREA)

    original = hasher.fingerprint(frame)

    assert hasher.distance(original, hasher.fingerprint(jpeg.tobytes())) < 16
    assert hasher.distance(original, hasher.fingerprint(smaller)) < 16


def test_different_frames_are_far_apart(hasher):
    rng = np.random.default_rng(7)
    coarse_a = rng.integers(0, 255, (8, 8), dtype=np.uint8)
    coarse_b = rng.integers(0, 255, (8, 8), dtype=np.uint8)
    frame_a = cv2.resize(coarse_a, (128, 128), interpolation=cv2.INTER_NEAREST)
    frame_b = cv2.resize(coarse_b, (128, 128), interpolation=cv2.INTER_NEAREST)

    assert hasher.distance(hasher.fingerprint(frame_a), hasher.fingerprint(frame_b)) >= 16


def test_grayscale_frame(hasher, frame):
    gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)

    assert hasher.fingerprint(gray) is not None


@pytest.mark.parametrize("bad", [b"", b"not an image at all", np.zeros((0, 0, 3), dtype=np.uint8)])
def test_unhashable_frames_return_none(hasher, bad):
    assert hasher.fingerprint(bad) is None
