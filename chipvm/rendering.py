"""CHIP-8 rendering utilities for visualization."""

from typing import Tuple

import jax.numpy as jnp
import numpy as np
from PIL import Image

from chipvm.instructions.display import pixel_grid

ANSI_ON = "\x1b[107m"
ANSI_OFF = "\x1b[49m"
ANSI_PIXEL = "  "


def display_to_rgb(
    display: jnp.ndarray,
    scale: int = 8,
    on_color: Tuple[int, int, int] = (0, 255, 0),
    off_color: Tuple[int, int, int] = (0, 0, 0),
) -> np.ndarray:
    """Convert the packed CHIP-8 framebuffer to an RGB array with optional upscaling.

    Args:
        display: Packed uint8 array of shape (32, 8)
        scale: Upscaling factor for better visibility (default: 8x)
        on_color: RGB color for "on" pixels (default: green)
        off_color: RGB color for "off" pixels (default: black)

    Returns:
        RGB array of shape (32*scale, 64*scale, 3) with uint8 values
    """
    pixels = np.asarray(pixel_grid(display), dtype=np.bool_)
    height, width = pixels.shape

    rgb_frame = np.zeros((height, width, 3), dtype=np.uint8)
    rgb_frame[pixels] = on_color
    rgb_frame[~pixels] = off_color

    # Nearest neighbor upscaling
    if scale > 1:
        rgb_frame = np.repeat(np.repeat(rgb_frame, scale, axis=0), scale, axis=1)

    return rgb_frame


def create_color_scheme(
    scheme: str = "classic",
) -> Tuple[Tuple[int, int, int], Tuple[int, int, int]]:
    """Get predefined color schemes for CHIP-8 rendering.

    Returns:
        Tuple of (on_color, off_color) as RGB tuples
    """
    schemes = {
        "classic": ((0, 255, 0), (0, 0, 0)),  # Green on black
        "amber": ((255, 176, 0), (0, 0, 0)),
        "white": ((255, 255, 255), (0, 0, 0)),
        "blue": ((0, 255, 255), (0, 0, 64)),
    }

    if scheme not in schemes:
        raise ValueError(
            f"Unknown color scheme '{scheme}'. Available: {list(schemes.keys())}"
        )

    return schemes[scheme]


def render_ansi(display: jnp.ndarray) -> str:
    """Render the framebuffer as terminal text, two columns per pixel."""
    lines = []
    for row in np.asarray(pixel_grid(display)):
        cells = "".join((ANSI_ON if lit else ANSI_OFF) + ANSI_PIXEL for lit in row)
        lines.append(cells + ANSI_OFF)
    return "\n".join(lines)


def save_screenshot(display: jnp.ndarray, filename: str, scale: int = 8, color_scheme: str = "classic") -> None:
    """Save the framebuffer as an image file (format chosen from the extension)."""
    on_color, off_color = create_color_scheme(color_scheme)
    frame = display_to_rgb(display, scale=scale, on_color=on_color, off_color=off_color)
    Image.fromarray(frame).save(filename)
