"""CHIP-8 machine constants."""

import jax.numpy as jnp

MEMORY_SIZE = 4096
PROGRAM_START = 0x200
FONT_START = 0x050
FONT_GLYPH_SIZE = 5

STACK_SIZE = 16
NUM_REGISTERS = 16
FLAG_REGISTER = 0xF
NUM_KEYS = 16

SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32
BITS_PER_BYTE = 8
DISPLAY_ROW_BYTES = SCREEN_WIDTH // BITS_PER_BYTE

ADDRESS_MASK = 0xFFF
INSTRUCTION_SIZE = 2
MAX_SPRITE_HEIGHT = 15

DEFAULT_INSTRUCTIONS_PER_FRAME = 10
DEFAULT_FRAMES_PER_SECOND = 60

FONT_DATA = jnp.array([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
], dtype=jnp.uint8)
