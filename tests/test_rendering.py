"""Tests for rendering helpers."""

import numpy as np
import pytest
from PIL import Image

from chipax import create_state
from chipax.rendering import batch_render, chip8_display_to_rgb, create_color_scheme, create_video, save_screenshot


def lit_display():
    display = np.zeros((64, 32), dtype=bool)
    display[3, 1] = True
    return display


def test_display_to_rgb():
    rgb = chip8_display_to_rgb(lit_display(), scale=1, on_color=(1, 2, 3), off_color=(0, 0, 0))

    assert rgb.shape == (32, 64, 3)
    assert rgb.dtype == np.uint8
    assert tuple(rgb[1, 3]) == (1, 2, 3)
    assert tuple(rgb[3, 1]) == (0, 0, 0)


def test_display_to_rgb_scaled():
    rgb = chip8_display_to_rgb(lit_display(), scale=4)

    assert rgb.shape == (128, 256, 3)
    assert (rgb[4:8, 12:16] == (0, 255, 0)).all()
    assert not rgb[0:4, 12:16].any()


def test_display_to_rgb_rejects_wrong_shape():
    with pytest.raises(ValueError):
        chip8_display_to_rgb(np.zeros((32, 64), dtype=bool))


def test_display_from_state():
    rgb = chip8_display_to_rgb(create_state().display, scale=2)
    assert rgb.shape == (64, 128, 3)
    assert not rgb.any()


@pytest.mark.parametrize("scheme", ["classic", "amber", "white", "blue", "retro", "purple"])
def test_color_schemes(scheme):
    on_color, off_color = create_color_scheme(scheme)
    assert len(on_color) == 3
    assert len(off_color) == 3


def test_unknown_color_scheme():
    with pytest.raises(ValueError, match="Unknown color scheme"):
        create_color_scheme("rainbow")


def test_batch_render():
    displays = np.stack([lit_display()] * 3)

    grid = batch_render(displays, scale=2)

    # 2x2 grid of 64x128 images with 5 pixels of padding
    assert grid.shape == (2 * 64 + 5, 2 * 128 + 5, 4)
    assert grid[-1, -1, 3] == 0  # Empty cell is transparent


def test_save_screenshot(tmp_path):
    path = tmp_path / "screen.png"

    save_screenshot(lit_display(), str(path), scale=3)

    with Image.open(path) as image:
        assert image.size == (64 * 3, 32 * 3)


def test_create_video_noop_without_output():
    assert create_video(np.zeros((2, 64, 32), dtype=bool)) is None


def test_create_video_rejects_wrong_shape(tmp_path):
    with pytest.raises(ValueError):
        create_video(np.zeros((2, 32, 64), dtype=bool), filename=str(tmp_path / "out.mp4"))


def test_create_video_writes_mp4(tmp_path):
    path = tmp_path / "out.mp4"
    frames = np.stack([np.zeros((64, 32), dtype=bool), lit_display()])

    create_video(frames, filename=str(path), fps=30, scale=2)

    assert path.exists()
    assert path.stat().st_size > 0
