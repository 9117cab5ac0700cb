"""Test window rendering and persistence.

Tests for src.image_algebra.renderer:
    - Output is row-major interleaved RGBA8 of length width·height·4
    - Clamp then round half-up at the 8-bit boundary
    - Identical output for any worker count
    - Window/worker validation
    - write_to goes through the codec and writes atomically

Run:
    pytest tests/test_renderer.py -v
"""

import io

import numpy as np
import pytest
from PIL import Image

from src.image_algebra.buffer import BufferSource
from src.image_algebra.pixel import Pixel, TRANSPARENT
from src.image_algebra.renderer import render, render_array, write_to
from src.image_algebra.sources import Join, Uniform
from src.utils.codec import CodecError


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def gradient_rgba():
    h, w = 7, 5
    ys, xs = np.mgrid[0:h, 0:w]
    return np.stack([
        xs * 40,
        ys * 30,
        (xs + ys) * 10,
        np.full((h, w), 255),
    ], axis=-1).astype(np.uint8)


@pytest.fixture
def gradient(gradient_rgba):
    return BufferSource.from_array(gradient_rgba)


# ============================================================================
# LAYOUT
# ============================================================================

@pytest.mark.algebra
def test_length_and_layout():
    data = render(Uniform(Pixel(1.0, 0.5, 0.0, 1.0)), 3, 2)
    assert len(data) == 3 * 2 * 4
    assert data == bytes([255, 128, 0, 255]) * 6


def test_row_major_order(gradient, gradient_rgba):
    """Rendering a buffer in its own window gives back its bytes."""
    assert render(gradient, 5, 7) == gradient_rgba.tobytes()


def test_window_larger_than_buffer_is_transparent_outside(gradient):
    out = render_array(gradient, 8, 9)
    assert out.shape == (9, 8, 4)
    assert out.dtype == np.uint8
    assert (out[7:, :, :] == 0).all()
    assert (out[:, 5:, :] == 0).all()
    assert (out[:7, :5, 3] == 255).all()


def test_transparent_renders_zero_bytes():
    assert render(Uniform(TRANSPARENT), 2, 2) == bytes(16)


def test_empty_window():
    src = Uniform(Pixel(1.0, 1.0, 1.0, 1.0))
    assert render(src, 0, 0) == b""
    assert render(src, 0, 5) == b""
    assert render(src, 5, 0) == b""


# ============================================================================
# CHANNEL CONVERSION
# ============================================================================

@pytest.mark.algebra
def test_out_of_range_channels_are_clamped():
    data = render(Uniform(Pixel(1.7, -0.3, 0.5, 2.0)), 1, 1)
    assert data == bytes([255, 0, 128, 255])


def test_rounding_half_up():
    # 0.5 * 255 = 127.5 → 128; 0.2 * 255 = 51.0 → 51
    data = render(Uniform(Pixel(0.5, 0.2, 1.0 / 255.0, 0.0)), 1, 1)
    assert data == bytes([128, 51, 1, 0])


def test_blend_result_matches_pixel_conversion():
    tree = Join(Uniform(Pixel(0.0, 0.0, 1.0, 1.0)), Uniform(Pixel(1.0, 0.0, 0.0, 0.5)))
    expected = tree.get(0, 0).to_rgba8()
    assert render(tree, 1, 1) == bytes(expected)


# ============================================================================
# PARALLEL BANDS
# ============================================================================

@pytest.mark.parametrize("workers", [2, 3, 4, 16])
def test_worker_count_does_not_change_output(gradient, workers):
    tree = gradient.scale(1.5).join(gradient.translate(2, 1))
    assert render(tree, 11, 13, workers=workers) == render(tree, 11, 13, workers=1)


def test_more_workers_than_rows(gradient):
    assert render(gradient, 5, 2, workers=8) == render(gradient, 5, 2)


def test_method_matches_function(gradient):
    assert gradient.render(5, 7, workers=2) == render(gradient, 5, 7)


# ============================================================================
# VALIDATION
# ============================================================================

@pytest.mark.parametrize("width,height", [(-1, 4), (4, -1), (2.0, 2), (2, 2.5), (True, 2), ("3", 3)])
def test_invalid_window_raises(width, height):
    with pytest.raises(ValueError):
        render(Uniform(TRANSPARENT), width, height)


@pytest.mark.parametrize("workers", [0, -2, 1.0, False])
def test_invalid_workers_raises(workers):
    with pytest.raises(ValueError, match="workers"):
        render(Uniform(TRANSPARENT), 2, 2, workers=workers)


def test_numpy_ints_are_accepted():
    data = render(Uniform(TRANSPARENT), np.int64(2), np.int32(3))
    assert len(data) == 24


# ============================================================================
# PERSISTENCE
# ============================================================================

@pytest.mark.io
def test_write_to_png(tmp_path, gradient, gradient_rgba):
    path = write_to(gradient, tmp_path / "out" / "grad.png", 5, 7, workers=2)

    assert path == tmp_path / "out" / "grad.png"
    assert path.is_file()
    assert list(path.parent.iterdir()) == [path]

    with Image.open(path) as img:
        assert img.format == "PNG"
        assert img.mode == "RGBA"
        np.testing.assert_array_equal(np.array(img), gradient_rgba)


@pytest.mark.io
def test_write_to_explicit_format(tmp_path, gradient):
    path = gradient.write_to(tmp_path / "grad.out", 5, 7, fmt="BMP")
    with Image.open(io.BytesIO(path.read_bytes())) as img:
        assert img.format == "BMP"
        assert img.size == (5, 7)


@pytest.mark.io
def test_write_to_unknown_suffix_raises(tmp_path, gradient):
    with pytest.raises(CodecError):
        write_to(gradient, tmp_path / "grad.notaformat", 5, 7)
    assert list(tmp_path.iterdir()) == []


@pytest.mark.io
def test_write_to_empty_window_raises(tmp_path, gradient):
    with pytest.raises(CodecError):
        write_to(gradient, tmp_path / "empty.png", 0, 7)


@pytest.mark.io
def test_write_to_unwritable_destination(tmp_path, gradient):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(RuntimeError, match="atomically"):
        write_to(gradient, blocker / "grad.png", 5, 7)
    assert blocker.read_text() == "not a directory"
