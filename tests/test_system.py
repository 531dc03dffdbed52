"""Tests for system instructions (0xxx)."""

import jax.numpy as jnp
from chipvm import execute


def test_execute_clear_screen(fresh_state):
    """Test 00E0 - Clear display."""
    state = fresh_state.replace(display=fresh_state.display.at[0, 0].set(0xFF))
    state = state.replace(display=state.display.at[31, 7].set(0x01))

    state = execute(state, 0x00E0)

    assert jnp.sum(state.display) == 0
    assert state.display.shape == (32, 8)


def test_machine_call_is_noop(fresh_state):
    """0NNN machine-code calls are ignored."""
    state = execute(fresh_state, 0x0123)
    assert state.pc == fresh_state.pc
    assert state.stack.pointer == 0


def test_unknown_instructions_are_noops(fresh_state):
    """Undefined opcodes leave the machine untouched."""
    state = fresh_state.replace(V=fresh_state.V.at[3].set(7))
    for instruction in (0xE3FF, 0xF3FF, 0x8FFF, 0x9121):
        result = execute(state, instruction)
        assert result.pc == state.pc
        assert jnp.array_equal(result.V, state.V)
        assert jnp.array_equal(result.memory, state.memory)
