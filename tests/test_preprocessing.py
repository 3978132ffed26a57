"""Tests for the black/white preprocessing transform."""

import io

import numpy as np
import pytest
from PIL import Image

from ocr_keeper.exceptions import ImageDecodeError
from ocr_keeper.preprocessing.binarize import binarize_fixed, boost_contrast, to_luminance
from ocr_keeper.preprocessing.pipeline import Preprocessor, decode_image, encode_png
from ocr_keeper.preprocessing.resize import limit_width
from ocr_keeper.utils.config import PreprocessingConfig


def _png(image: np.ndarray) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(image).save(buf, format="PNG")
    return buf.getvalue()


def _decode(data: bytes) -> np.ndarray:
    return np.array(Image.open(io.BytesIO(data)))


class TestLuminance:
    """Tests for weighted luminance."""

    def test_weights(self) -> None:
        image = np.array([[[255, 0, 0], [0, 255, 0], [0, 0, 255]]], dtype=np.uint8)
        lum = to_luminance(image)
        np.testing.assert_allclose(lum[0], [0.299 * 255, 0.587 * 255, 0.114 * 255])

    def test_grayscale_passthrough(self) -> None:
        gray = np.full((2, 2), 77, dtype=np.uint8)
        np.testing.assert_array_equal(to_luminance(gray), np.full((2, 2), 77.0))


class TestBinarize:
    """Tests for contrast boost and fixed-cutoff binarization."""

    def test_midpoint_unchanged(self) -> None:
        assert boost_contrast(np.array([128.0]), factor=1.5)[0] == 128.0

    def test_boost_stretches(self) -> None:
        np.testing.assert_allclose(boost_contrast(np.array([138.0, 118.0]), 1.5), [143.0, 113.0])

    def test_cutoff_is_strict(self) -> None:
        result = binarize_fixed(np.array([[145.0, 145.5]]), threshold=145)
        assert result.shape == (1, 2, 3)
        assert result[0, 0].tolist() == [0, 0, 0]
        assert result[0, 1].tolist() == [255, 255, 255]

    def test_output_is_pure_black_and_white(self) -> None:
        rng = np.random.default_rng(7)
        boosted = rng.uniform(-100, 400, size=(20, 30))
        result = binarize_fixed(boosted)
        assert set(np.unique(result)).issubset({0, 255})
        assert (result[..., 0] == result[..., 1]).all()
        assert (result[..., 1] == result[..., 2]).all()


class TestLimitWidth:
    """Tests for width bounding."""

    def test_narrow_image_untouched(self) -> None:
        image = np.zeros((50, 1600, 3), dtype=np.uint8)
        assert limit_width(image, 1600) is image

    def test_wide_image_downscaled_preserving_aspect(self) -> None:
        image = np.zeros((1000, 3200, 3), dtype=np.uint8)
        result = limit_width(image, 1600)
        assert result.shape == (500, 1600, 3)


class TestPreprocessor:
    """Tests for the full preprocessing transform."""

    def test_bright_pixels_become_white(self) -> None:
        image = np.full((10, 10, 3), 200, dtype=np.uint8)
        image[:, :5] = 20
        out = _decode(Preprocessor().preprocess(_png(image)))
        assert out[0, 0].tolist() == [0, 0, 0]
        assert out[0, 9].tolist() == [255, 255, 255]

    def test_threshold_boundary(self) -> None:
        # (139 - 128) * 1.5 + 128 = 144.5 stays black; 140 gives 147 and turns white
        image = np.zeros((1, 2, 3), dtype=np.uint8)
        image[0, 0] = 139
        image[0, 1] = 140
        out = _decode(Preprocessor().preprocess(_png(image)))
        assert out[0, 0].tolist() == [0, 0, 0]
        assert out[0, 1].tolist() == [255, 255, 255]

    def test_output_is_lossless_png(self) -> None:
        data = Preprocessor().preprocess(_png(np.full((5, 5, 3), 90, dtype=np.uint8)))
        assert data[:8] == b"\x89PNG\r\n\x1a\n"

    def test_wide_input_bounded(self) -> None:
        image = np.full((100, 2000, 3), 255, dtype=np.uint8)
        out = _decode(Preprocessor().preprocess(_png(image)))
        assert out.shape[1] == 1600
        assert out.shape[0] == 80

    def test_deterministic(self, png_bytes: bytes) -> None:
        pre = Preprocessor()
        assert pre.preprocess(png_bytes) == pre.preprocess(png_bytes)

    def test_disabled_passes_bytes_through(self, png_bytes: bytes) -> None:
        pre = Preprocessor(PreprocessingConfig(enabled=False))
        assert pre.preprocess(png_bytes) is png_bytes

    def test_garbage_raises_decode_error(self) -> None:
        with pytest.raises(ImageDecodeError):
            Preprocessor().preprocess(b"definitely not an image")


class TestCodec:
    """Tests for decode/encode helpers."""

    def test_decode_returns_rgb(self) -> None:
        gray = np.full((4, 6), 50, dtype=np.uint8)
        decoded = decode_image(_png(gray))
        assert decoded.shape == (4, 6, 3)

    def test_encode_roundtrips_pixels(self) -> None:
        image = np.zeros((3, 3, 3), dtype=np.uint8)
        image[1, 1] = 255
        np.testing.assert_array_equal(_decode(encode_png(image)), image)
