"""Test configuration and fixtures for CHIP-8 engine tests."""

import pytest
import jax.numpy as jnp
from chipvm import create_state, Quirks


@pytest.fixture
def fresh_state():
    """Provide a fresh machine state with every quirk off."""
    return create_state()


@pytest.fixture
def shift_vy_state():
    """State with 8XY6/8XYE shifting VY."""
    return create_state(quirks=Quirks(shift_uses_vy=True))


@pytest.fixture
def bxnn_state():
    """State with BNNN offset taken from VX."""
    return create_state(quirks=Quirks(bxnn=True))


@pytest.fixture
def increment_index_state():
    """State with FX55/FX65 advancing I."""
    return create_state(quirks=Quirks(increment_index=True))


def setup_sprite_in_memory(state, address, sprite_bytes):
    """Helper to put sprite data in memory."""
    return state.replace(
        memory=state.memory.at[address:address+len(sprite_bytes)].set(
            jnp.array(sprite_bytes, dtype=jnp.uint8)
        )
    )


def setup_program(state, words, address=0x200):
    """Helper to write 16-bit instructions into memory."""
    data = []
    for word in words:
        data += [word >> 8, word & 0xFF]
    return setup_sprite_in_memory(state, address, data)
