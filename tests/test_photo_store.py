import os

import cv2
import pytest

from errors import ValidationError
from photo_store import decode_image


def test_decode_accepts_data_url_and_bare_base64(make_image):
    assert decode_image(make_image(prefix=True)).shape == (32, 32, 3)
    assert decode_image(make_image(prefix=False)).shape == (32, 32, 3)


@pytest.mark.parametrize("value", ["", "%%%", "aGVsbG8=", None, 42])
def test_decode_rejects_non_images(value):
    with pytest.raises(ValidationError):
        decode_image(value)


def test_save_numbers_files_in_order(photos, make_image):
    assert photos.save("Alice", [make_image(0), make_image(255)]) == 2

    directory = os.path.join(photos.root, "Alice")
    assert sorted(os.listdir(directory)) == ["1.jpg", "2.jpg"]
    first = cv2.imread(os.path.join(directory, "1.jpg"))
    second = cv2.imread(os.path.join(directory, "2.jpg"))
    assert first.mean() < second.mean()


@pytest.mark.parametrize("name", ["..", ".", "a/b", "a\\b", ""])
def test_unsafe_names_rejected(photos, image_b64, name):
    with pytest.raises(ValidationError):
        photos.save(name, [image_b64])


def test_delete_removes_directory(photos, image_b64):
    photos.save("Alice", [image_b64])
    photos.delete("Alice")
    assert not os.path.exists(os.path.join(photos.root, "Alice"))


def test_delete_missing_directory_is_noop(photos):
    photos.delete("Nobody")
