"""CHIP-8 ALU operations (8xxx).

Each operation maps the uint8 pair ``(vx, vy)`` to ``(result, flag)``. A flag
of ``None`` leaves VF untouched.
"""

from typing import Optional

import jax.numpy as jnp
from chipvm.constants import FLAG_REGISTER
from chipvm.decode import DecodedInstruction, Op
from chipvm.state import MachineState

AluResult = tuple[jnp.ndarray, Optional[jnp.ndarray]]


def alu_set(vx: jnp.ndarray, vy: jnp.ndarray) -> AluResult:
    """8XY0 - Set: VX = VY."""
    return vy, None


def alu_or(vx: jnp.ndarray, vy: jnp.ndarray) -> AluResult:
    """8XY1 - Binary OR: VX |= VY."""
    return vx | vy, None


def alu_and(vx: jnp.ndarray, vy: jnp.ndarray) -> AluResult:
    """8XY2 - Binary AND: VX &= VY."""
    return vx & vy, None


def alu_xor(vx: jnp.ndarray, vy: jnp.ndarray) -> AluResult:
    """8XY3 - Logical XOR: VX ^= VY."""
    return vx ^ vy, None


def alu_add(vx: jnp.ndarray, vy: jnp.ndarray) -> AluResult:
    """8XY4 - Add: VX += VY, set carry flag."""
    result = vx.astype(jnp.uint16) + vy.astype(jnp.uint16)
    return result & 0xFF, result > 0xFF


def alu_sub_xy(vx: jnp.ndarray, vy: jnp.ndarray) -> AluResult:
    """8XY5 - Subtract: VX -= VY, VF = 1 when no borrow."""
    return vx - vy, vx >= vy


def alu_shift_right(vx: jnp.ndarray, vy: jnp.ndarray) -> AluResult:
    """8XY6 - Shift right: VX >>= 1, VF = bit shifted out."""
    return vx >> 1, vx & 0x1


def alu_sub_yx(vx: jnp.ndarray, vy: jnp.ndarray) -> AluResult:
    """8XY7 - Subtract: VX = VY - VX, VF = 1 when no borrow."""
    return vy - vx, vy >= vx


def alu_shift_left(vx: jnp.ndarray, vy: jnp.ndarray) -> AluResult:
    """8XYE - Shift left: VX <<= 1, VF = bit shifted out."""
    return vx << 1, (vx >> 7) & 0x1


ALU_OPERATIONS = {
    Op.LD_REG: alu_set,
    Op.OR: alu_or,
    Op.AND: alu_and,
    Op.XOR: alu_xor,
    Op.ADD_REG: alu_add,
    Op.SUB: alu_sub_xy,
    Op.SHR: alu_shift_right,
    Op.SUBN: alu_sub_yx,
    Op.SHL: alu_shift_left,
}

SHIFT_OPERATIONS = (Op.SHR, Op.SHL)


def execute_alu_operation(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """8XYN - ALU operations dispatcher."""
    vx = state.V[instruction.x]
    vy = state.V[instruction.y]

    if instruction.op in SHIFT_OPERATIONS and state.quirks.shift_uses_vy:
        vx = vy

    result, vf = ALU_OPERATIONS[instruction.op](vx, vy)

    # Flag written last so VF as destination holds the flag
    new_V = state.V.at[instruction.x].set(result.astype(jnp.uint8))
    if vf is not None:
        new_V = new_V.at[FLAG_REGISTER].set(vf.astype(jnp.uint8))
    return state.replace(V=new_V)
