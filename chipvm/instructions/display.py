"""CHIP-8 display operations.

The framebuffer is packed as 32 rows of 8 bytes. Sprites are composed by XOR;
a sprite byte starting at a non byte-aligned column is split across two cells.
"""

import jax.numpy as jnp
from chipvm.state import MachineState
from chipvm.decode import DecodedInstruction
from chipvm.constants import (
    SCREEN_WIDTH, SCREEN_HEIGHT, BITS_PER_BYTE, DISPLAY_ROW_BYTES, FLAG_REGISTER, MAX_SPRITE_HEIGHT,
)

# Pre-computed row and cell indices of the packed framebuffer
screen_rows = jnp.arange(SCREEN_HEIGHT)
row_cells = jnp.arange(DISPLAY_ROW_BYTES)
sprite_rows = jnp.arange(MAX_SPRITE_HEIGHT)


def blit_sprite(display: jnp.ndarray, sprite, x, y) -> tuple[jnp.ndarray, jnp.ndarray]:
    """XOR ``sprite`` rows onto ``display`` at pixel ``(x, y)``.

    Only the start position wraps. Rows past the bottom edge are dropped, and
    the right-hand part of a split byte is dropped when it would fall off the
    end of the row. Traceable in ``x`` and ``y``.

    Returns:
        Tuple of (new display, True if any previously lit pixel was erased)
    """
    sprite = jnp.asarray(sprite, dtype=jnp.uint8)
    if sprite.shape[0] == 0:
        return display, jnp.zeros((), dtype=jnp.bool_)

    x = jnp.asarray(x).astype(jnp.int32) % SCREEN_WIDTH
    y = jnp.asarray(y).astype(jnp.int32) % SCREEN_HEIGHT

    offsets = screen_rows - y
    in_sprite = (offsets >= 0) & (offsets < sprite.shape[0])
    row_bytes = jnp.where(in_sprite, sprite.at[offsets].get(mode="fill", fill_value=0), 0).astype(jnp.int32)

    # 16-bit window holding the byte shifted to its bit offset
    window = (row_bytes << BITS_PER_BYTE) >> (x % BITS_PER_BYTE)
    col = x // BITS_PER_BYTE
    left = (window >> BITS_PER_BYTE)[:, None]
    right = (window & 0xFF)[:, None]
    patch = (
        jnp.where(row_cells == col, left, 0) | jnp.where(row_cells == col + 1, right, 0)
    ).astype(jnp.uint8)

    collision = jnp.any(display & patch)
    return display ^ patch, collision


def pixel_grid(display: jnp.ndarray) -> jnp.ndarray:
    """Unpack the framebuffer into a (32, 64) boolean grid indexed [y, x]."""
    return jnp.unpackbits(display, axis=1).astype(jnp.bool_)


def get_pixel(display: jnp.ndarray, x: int, y: int) -> bool:
    """Whether pixel ``(x, y)`` is lit."""
    cell = int(display[y, x // BITS_PER_BYTE])
    return bool((cell >> (BITS_PER_BYTE - 1 - x % BITS_PER_BYTE)) & 1)


def execute_display(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """DXYN - Draw sprite at (VX, VY) with height N."""
    addresses = state.I.astype(jnp.int32) + sprite_rows
    # Sprite bytes past the end of memory read as blank rows
    sprite_bytes = state.memory.at[addresses].get(mode="fill", fill_value=0)
    sprite = jnp.where(sprite_rows < instruction.n, sprite_bytes, 0).astype(jnp.uint8)

    display, collision = blit_sprite(
        state.display, sprite, state.V[instruction.x], state.V[instruction.y]
    )
    return state.replace(
        display=display,
        V=state.V.at[FLAG_REGISTER].set(collision.astype(jnp.uint8))
    )
