"""CHIP-8 miscellaneous instructions (Fxxx).

FX33, FX55 and FX65 assume the engine has already checked that the accessed
range lies inside memory.
"""

import jax
import jax.lax
import jax.numpy as jnp
from chipvm.state import MachineState
from chipvm.decode import DecodedInstruction
from chipvm.constants import (
    FONT_START, FONT_GLYPH_SIZE, FLAG_REGISTER, ADDRESS_MASK, INSTRUCTION_SIZE, NUM_REGISTERS,
)
from chipvm.keypad import lowest_key

register_offsets = jnp.arange(NUM_REGISTERS)


def execute_get_delay_timer(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX07 - Set VX to delay timer value."""
    return state.replace(V=state.V.at[instruction.x].set(state.delay_timer))


def execute_set_delay_timer(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX15 - Set delay timer to VX."""
    return state.replace(delay_timer=state.V[instruction.x])


def execute_set_sound_timer(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX18 - Set sound timer to VX."""
    return state.replace(sound_timer=state.V[instruction.x])


def execute_add_to_index(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX1E - Add VX to I register, VF = 1 when I moves past addressable memory."""
    new_i = state.I + state.V[instruction.x].astype(jnp.uint16)
    return state.replace(
        I=new_i,
        V=state.V.at[FLAG_REGISTER].set((new_i > ADDRESS_MASK).astype(jnp.uint8))
    )


def execute_wait_for_key(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX0A - Wait for a key press-and-release (blocking).

    While no release has been seen the program counter is rewound so this
    instruction runs again on the next cycle. A key held when the wait begins
    only completes the wait once it is released.
    """
    seen = jnp.where(state.awaiting_key, state.key_wait_mask, 0).astype(jnp.uint16)
    released = seen & ~state.keys

    def key_released_action(state):
        return state.replace(
            V=state.V.at[instruction.x].set(lowest_key(released).astype(jnp.uint8)),
            awaiting_key=jnp.zeros((), dtype=jnp.bool_),
            key_wait_mask=jnp.zeros((), dtype=jnp.uint16),
        )

    def wait_action(state):
        return state.replace(
            pc=state.pc - INSTRUCTION_SIZE,
            awaiting_key=jnp.ones((), dtype=jnp.bool_),
            key_wait_mask=seen | state.keys,
        )

    return jax.lax.cond(released != 0, key_released_action, wait_action, state)


def execute_font_character(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX29 - Set I to location of sprite for digit VX."""
    digit = (state.V[instruction.x] & 0xF).astype(jnp.uint16)
    return state.replace(I=FONT_START + digit * FONT_GLYPH_SIZE)


def execute_bcd_conversion(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX33 - Store BCD representation of VX at I, I+1, I+2."""
    value = state.V[instruction.x]
    digits = jnp.array([
        value // 100,
        (value // 10) % 10,
        value % 10
    ], dtype=jnp.uint8)

    indices = state.I.astype(jnp.int32) + jnp.arange(3)
    return state.replace(memory=state.memory.at[indices].set(digits, mode="drop"))


def execute_store_registers(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX55 - Store V0 through VX in memory starting at I."""
    selected = register_offsets <= instruction.x
    indices = state.I.astype(jnp.int32) + register_offsets
    current = state.memory.at[indices].get(mode="fill", fill_value=0)
    new_memory = state.memory.at[indices].set(jnp.where(selected, state.V, current), mode="drop")

    if state.quirks.increment_index:
        return state.replace(memory=new_memory, I=state.I + instruction.x + 1)
    return state.replace(memory=new_memory)


def execute_load_registers(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX65 - Load V0 through VX from memory starting at I."""
    selected = register_offsets <= instruction.x
    indices = state.I.astype(jnp.int32) + register_offsets
    loaded = state.memory.at[indices].get(mode="fill", fill_value=0)
    new_V = jnp.where(selected, loaded, state.V)

    if state.quirks.increment_index:
        return state.replace(V=new_V, I=state.I + instruction.x + 1)
    return state.replace(V=new_V)
