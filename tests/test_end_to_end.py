"""End-to-end scenarios: build a tree, render it, read the file back.

Scenarios:
    - Opaque red buffer over opaque blue uniform renders all red
    - Half-scale transform samples the child at doubled coordinates
    - Collage with one shared half-size node reused in several joins
    - Rendering a saved image back through a buffer reproduces it

Run:
    pytest tests/test_end_to_end.py -v
"""

import numpy as np
import pytest
from PIL import Image

from src.image_algebra import BufferSource, Pixel, Transform, Uniform, composite


@pytest.fixture
def red_2x2():
    rgba = np.zeros((2, 2, 4), dtype=np.uint8)
    rgba[..., 0] = 255
    rgba[..., 3] = 255
    return BufferSource.from_array(rgba)


@pytest.fixture
def checker():
    """32×32 checkerboard of 8 px opaque black/white squares."""
    ys, xs = np.mgrid[0:32, 0:32]
    on = ((xs // 8 + ys // 8) % 2).astype(np.uint8) * 255
    rgba = np.stack([on, on, on, np.full_like(on, 255)], axis=-1)
    return BufferSource.from_array(rgba)


@pytest.mark.io
def test_red_over_blue(tmp_path, red_2x2):
    blue = Uniform(Pixel(0.0, 0.0, 1.0, 1.0))
    path = blue.join(red_2x2).write_to(tmp_path / "red.png", 2, 2)

    with Image.open(path) as img:
        arr = np.array(img)
    assert arr.shape == (2, 2, 4)
    assert (arr == [255, 0, 0, 255]).all()


@pytest.mark.algebra
def test_half_scale_samples_doubled_coordinates(checker):
    scaled = Transform(checker, [[0.5, 0, 0], [0, 0.5, 0], [0, 0, 1]])
    assert scaled.get(10, 10) == checker.get(20, 20)
    assert scaled.get(3, 7) == checker.get(6, 14)

    # The 32 px board now fits in 16 px; beyond that there is no data
    assert scaled.get(16, 0).is_transparent


@pytest.mark.io
def test_collage_with_shared_node(tmp_path, checker):
    squished = checker.scale(0.5)
    canvas = composite([
        Uniform(Pixel.TRANSPARENT),
        squished,
        squished.translate(16, 0),
        squished.reflect("x").translate(0, 32),
    ])
    out = canvas.write_to(tmp_path / "collage.png", 32, 32, workers=4)

    with Image.open(out) as img:
        arr = np.array(img)

    # Top half: two side-by-side copies of the shrunk board
    np.testing.assert_array_equal(arr[:16, :16], arr[:16, 16:])
    # Bottom-left: the shrunk board mirrored about y = 32, so output row
    # 32 - k shows row k; row 16 would show row 16, which is past the board
    np.testing.assert_array_equal(arr[17:, :16], arr[1:16, :16][::-1])
    assert (arr[16, :16] == 0).all()
    # Bottom-right: nothing drawn
    assert (arr[16:, 16:] == 0).all()


@pytest.mark.io
def test_saved_render_reloads_identically(tmp_path, checker):
    tree = Uniform(Pixel(0.2, 0.4, 0.6, 1.0)).join(checker.rotate(0.3, about=(16, 16)))
    first = tree.write_to(tmp_path / "a.png", 32, 32)

    reloaded = BufferSource.open(first)
    second = reloaded.write_to(tmp_path / "b.png", 32, 32)
    assert first.read_bytes() == second.read_bytes()
