"""CHIP-8 machine state structures."""

import jax
import jax.numpy as jnp
from flax import struct
from flax.struct import PyTreeNode, field

from chipvm.config import Quirks
from chipvm.constants import (
    MEMORY_SIZE, PROGRAM_START, FONT_START, FONT_DATA, SCREEN_HEIGHT, DISPLAY_ROW_BYTES,
    STACK_SIZE, NUM_REGISTERS,
)


@struct.dataclass
class StackState:
    """Return-address stack for subroutine calls."""
    data: jnp.ndarray = field(default_factory=lambda: jnp.zeros(STACK_SIZE, dtype=jnp.uint16))
    pointer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.int32))


class MachineState(PyTreeNode):
    """Complete state of one CHIP-8 machine.

    The display is packed: 32 rows of 8 bytes, most significant bit leftmost.
    ``keys`` is the 16-bit held-key mask supplied by the input provider.
    ``awaiting_key`` is set while FX0A is blocking, and ``key_wait_mask``
    accumulates the keys seen held since the wait began.

    Every field is a fixed-dtype array so compiled steps keep one signature
    per quirk setting.
    """
    rng: jax.random.PRNGKey
    memory: jnp.ndarray = field(default_factory=lambda: jnp.zeros(MEMORY_SIZE, dtype=jnp.uint8))
    pc: jnp.ndarray = field(default_factory=lambda: jnp.asarray(PROGRAM_START, dtype=jnp.uint16))
    display: jnp.ndarray = field(default_factory=lambda: jnp.zeros((SCREEN_HEIGHT, DISPLAY_ROW_BYTES), dtype=jnp.uint8))
    stack: StackState = field(default_factory=lambda: StackState())
    delay_timer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    sound_timer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    keys: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))
    awaiting_key: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.bool_))
    key_wait_mask: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))
    V: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_REGISTERS, dtype=jnp.uint8))
    I: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))
    quirks: Quirks = field(pytree_node=False, default=Quirks())


def create_state(rng: jax.random.PRNGKey = jax.random.PRNGKey(0), quirks: Quirks = Quirks()) -> MachineState:
    """Create initial machine state with font data loaded."""
    state = MachineState(rng, quirks=quirks)
    return state.replace(memory=state.memory.at[FONT_START:FONT_START + len(FONT_DATA)].set(FONT_DATA))
