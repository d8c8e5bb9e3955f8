"""Base64 photo decoding and storage tests."""

import base64
import os

import pytest

from lotkeeper.middleware.exceptions import InvalidPhotoError
from lotkeeper.services.photos import decode_base64_image, save_base64_photo

PNG_HEADER = b"\x89PNG\r\n\x1a\n"
PNG_B64 = base64.b64encode(PNG_HEADER + b"0" * 16).decode()


@pytest.mark.unit
class TestDecode:

    def test_data_uri_sets_extension(self):
        content, ext = decode_base64_image(f"data:image/png;base64,{PNG_B64}")
        assert ext == "png"
        assert content.startswith(PNG_HEADER)

    def test_bare_base64_defaults_to_jpg(self):
        content, ext = decode_base64_image(base64.b64encode(b"hello").decode())
        assert (content, ext) == (b"hello", "jpg")

    def test_unknown_mime_defaults_to_jpg(self):
        _, ext = decode_base64_image(f"data:image/tiff;base64,{PNG_B64}")
        assert ext == "jpg"

    @pytest.mark.parametrize("payload", ["", "   ", "data:image/png;base64,", "not base64 at all!"])
    def test_rejects_bad_payloads(self, payload):
        with pytest.raises(InvalidPhotoError):
            decode_base64_image(payload)


@pytest.mark.unit
class TestSave:

    def test_writes_under_bundle_folder(self, tmp_path):
        path = save_base64_photo(
            f"data:image/png;base64,{PNG_B64}", "SINI-2024-0042", 3, 2, "before", str(tmp_path)
        )

        assert path.startswith("img/repacked/SINI-2024-0042-3-2/before-")
        assert path.endswith(".png")
        with open(os.path.join(tmp_path, path), "rb") as f:
            assert f.read().startswith(PNG_HEADER)

    def test_path_parts_cannot_escape_uploads(self, tmp_path):
        path = save_base64_photo(PNG_B64, "../JOB/1", 1, 1, "after", str(tmp_path))

        assert ".." not in path
        assert path.startswith("img/repacked/")
        assert os.path.exists(os.path.join(tmp_path, path))

    def test_invalid_photo_writes_nothing(self, tmp_path):
        with pytest.raises(InvalidPhotoError):
            save_base64_photo("%%%", "SINI-1", 1, 1, "before", str(tmp_path))
        assert not os.path.exists(os.path.join(tmp_path, "img"))
