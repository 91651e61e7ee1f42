# core/fingerprint.py

import io
import logging
from typing import Optional, Union

import cv2
import imagehash
import numpy as np
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

ImageInput = Union[Image.Image, np.ndarray, bytes]


def hash_to_int(image_hash: imagehash.ImageHash) -> int:
    """Pack an ImageHash bit matrix into an unsigned integer (first bit is MSB)"""
    value = 0
    for bit in image_hash.hash.flatten():
        value = (value << 1) | int(bool(bit))
    return value


def hamming_distance(a: int, b: int) -> int:
    """Number of differing bits between two fingerprints"""
    return bin(a ^ b).count("1")


class PerceptualHasher:
    """
    Computes a 64-bit DCT perceptual hash for a single still frame
    """

    def __init__(self, hash_size: int = 8):
        self.hash_size = hash_size

    @property
    def bit_width(self) -> int:
        return self.hash_size * self.hash_size

    def fingerprint(self, image: ImageInput) -> Optional[int]:
        """
        Fingerprint one frame.

        Accepts a PIL image, a BGR array as produced by OpenCV, or the
        encoded bytes of an image file. Returns None when the frame cannot
        be decoded or hashed.
        """
        try:
            pil_image = self._to_pil(image)
            if pil_image is None:
                return None
            if pil_image.mode != 'RGB':
                pil_image = pil_image.convert('RGB')
            return hash_to_int(imagehash.phash(pil_image, hash_size=self.hash_size))
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.debug("Could not fingerprint frame: %s", e)
            return None

    def distance(self, a: int, b: int) -> int:
        return hamming_distance(a, b)

    def _to_pil(self, image: ImageInput) -> Optional[Image.Image]:
        if isinstance(image, Image.Image):
            return image

        if isinstance(image, (bytes, bytearray)):
            if not image:
                return None
            pil_image = Image.open(io.BytesIO(image))
            pil_image.load()
            return pil_image

        if isinstance(image, np.ndarray):
            if image.size == 0:
                return None
            if image.ndim == 2:
                return Image.fromarray(image)
            return Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))

        raise ValueError(f"Unsupported frame type: {type(image).__name__}")
