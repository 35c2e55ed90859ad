"""
Filesystem storage for reference photos.

Each identity owns one directory under the storage root holding its
images as 1.jpg, 2.jpg, ... in capture order.
"""
import base64
import binascii
import logging
import os
import re
import shutil
import tempfile
from typing import List

import cv2
import numpy as np

import config
from errors import ValidationError

logger = logging.getLogger("attendance.photos")

DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")


def decode_image(image_b64: str) -> np.ndarray:
    """Decode a base64 (or data URL) image into a BGR array."""
    if not isinstance(image_b64, str) or not image_b64:
        raise ValidationError("Invalid image format")
    try:
        raw = base64.b64decode(DATA_URL_PREFIX.sub("", image_b64), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Invalid image format")

    img = cv2.imdecode(np.frombuffer(raw, np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        raise ValidationError("Invalid image format")
    return img


class PhotoStore:
    def __init__(self, root: str = None):
        self.root = root or config.LABELED_IMAGES_DIR

    def path_for(self, name: str) -> str:
        if not name or name in (".", "..") or "/" in name or "\\" in name or "\x00" in name:
            raise ValidationError("Name cannot be used as a photo directory")
        return os.path.join(self.root, name)

    def save(self, name: str, images: List[str]) -> int:
        """
        Store `images` for `name` as numbered JPEGs, replacing whatever the
        directory held before. Every image is decoded before anything touches
        the disk, and files are written to a staging directory that only
        takes the identity's place once complete. Returns the number of files
        written.
        """
        directory = self.path_for(name)
        decoded = [decode_image(img) for img in images]

        os.makedirs(self.root, exist_ok=True)
        staging = tempfile.mkdtemp(prefix=".incoming-", dir=self.root)
        os.chmod(staging, 0o755)
        try:
            for i, img in enumerate(decoded, start=1):
                ok, buffer = cv2.imencode(".jpg", img)
                if not ok:
                    raise ValidationError("Invalid image format")
                self._write(os.path.join(staging, f"{i}.jpg"), buffer.tobytes())

            if os.path.isdir(directory):
                shutil.rmtree(directory)
            os.replace(staging, directory)
        except (OSError, ValidationError):
            shutil.rmtree(staging, ignore_errors=True)
            raise

        logger.info("Stored %d photo(s) for %s", len(decoded), name)
        return len(decoded)

    def _write(self, path: str, data: bytes):
        with open(path, "wb") as f:
            f.write(data)

    def delete(self, name: str):
        """Remove the identity's photo directory. Missing directories are ignored."""
        directory = self.path_for(name)
        if not os.path.isdir(directory):
            logger.info("No photo directory for %s", name)
            return
        shutil.rmtree(directory)
        logger.info("Removed photo directory for %s", name)

