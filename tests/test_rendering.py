"""Tests for rendering helpers."""

import jax.numpy as jnp
import numpy as np
import pytest
from PIL import Image
from chipvm.rendering import display_to_rgb, create_color_scheme, render_ansi, save_screenshot, ANSI_ON


@pytest.fixture
def display():
    return jnp.zeros((32, 8), dtype=jnp.uint8).at[0, 0].set(0x80)


def test_display_to_rgb(display):
    frame = display_to_rgb(display, scale=1)
    assert frame.shape == (32, 64, 3)
    assert tuple(frame[0, 0]) == (0, 255, 0)
    assert tuple(frame[0, 1]) == (0, 0, 0)


def test_display_to_rgb_scaled(display):
    frame = display_to_rgb(display, scale=3, on_color=(255, 255, 255))
    assert frame.shape == (96, 192, 3)
    assert np.all(frame[:3, :3] == 255)
    assert np.all(frame[3, 0] == 0)


def test_unknown_color_scheme():
    with pytest.raises(ValueError):
        create_color_scheme("neon")


def test_render_ansi(display):
    text = render_ansi(display)
    lines = text.split("\n")
    assert len(lines) == 32
    assert lines[0].count(ANSI_ON) == 1
    assert lines[1].count(ANSI_ON) == 0


def test_save_screenshot(display, tmp_path):
    path = tmp_path / "frame.png"
    save_screenshot(display, str(path), scale=2, color_scheme="white")
    with Image.open(path) as image:
        assert image.size == (128, 64)
        assert image.getpixel((0, 0)) == (255, 255, 255)
