"""CHIP-8 control flow instructions."""

import jax.numpy as jnp
from chipvm.state import MachineState
from chipvm.decode import DecodedInstruction
from chipvm.constants import INSTRUCTION_SIZE
from chipvm.keypad import is_key_held
from chipvm.stack import push


def _set_pc(state: MachineState, address) -> MachineState:
    return state.replace(pc=jnp.asarray(address).astype(jnp.uint16))


def execute_jump(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """1NNN - Jump to address NNN."""
    return _set_pc(state, instruction.nnn)


def execute_call(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """2NNN - Call subroutine at NNN."""
    state = state.replace(stack=push(state.stack, state.pc))
    return execute_jump(state, instruction)


def make_skip_instruction(condition_fn):
    """Factory for skip instructions."""
    def skip_instruction(state: MachineState, instruction: DecodedInstruction) -> MachineState:
        return state.replace(pc=jnp.where(
            condition_fn(state, instruction), state.pc + INSTRUCTION_SIZE, state.pc
        ))
    return skip_instruction


execute_skip_if_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == inst.nn
)

execute_skip_if_not_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != inst.nn
)

execute_skip_if_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == state.V[inst.y]
)

execute_skip_if_not_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != state.V[inst.y]
)

execute_skip_if_key = make_skip_instruction(
    lambda state, inst: is_key_held(state.keys, state.V[inst.x])
)

execute_skip_if_not_key = make_skip_instruction(
    lambda state, inst: ~is_key_held(state.keys, state.V[inst.x])
)


def execute_jump_with_offset(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """BNNN - Jump to NNN + V0, or NNN + VX when the bxnn quirk is enabled."""
    offset_register = instruction.x if state.quirks.bxnn else 0
    return _set_pc(state, instruction.nnn + state.V[offset_register].astype(jnp.uint16))
