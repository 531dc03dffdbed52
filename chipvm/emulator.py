"""Main CHIP-8 execution engine.

The engine exposes two units of work: ``step`` executes exactly one
instruction and ``tick_timers`` advances the timers by one frame. Callers
compose them at whatever instruction and frame rates they choose;
``run_cycles`` runs many instructions in one compiled loop.

Instruction handlers are pure and traced once per quirk setting. Bounds
violations are detected inside the compiled step as a fault code, leave the
state untouched, and are raised as ``Chip8Error`` on the host.
"""

from typing import Callable, Optional

import jax
import jax.lax
import jax.numpy as jnp
from chipvm.state import MachineState
from chipvm.decode import DecodedInstruction, Op, OPS, decode, operands, op_index
from chipvm.constants import MEMORY_SIZE, PROGRAM_START, INSTRUCTION_SIZE, STACK_SIZE
from chipvm.errors import (
    Chip8Error, MemoryOverrunError, StackOverflowError, StackUnderflowError, MemoryAccessError,
    ProgramTooLargeError,
)
from chipvm.keypad import KEY_MASK
from chipvm.instructions.system import no_op, execute_clear_screen, execute_return
from chipvm.instructions.control_flow import (
    execute_jump, execute_call, execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate, execute_skip_if_equal_register,
    execute_skip_if_not_equal_register, execute_jump_with_offset,
    execute_skip_if_key, execute_skip_if_not_key
)
from chipvm.instructions.alu import execute_alu_operation
from chipvm.instructions.memory import execute_set, execute_add, execute_set_index, execute_random
from chipvm.instructions.display import execute_display
from chipvm.instructions.misc import (
    execute_get_delay_timer, execute_wait_for_key, execute_set_delay_timer,
    execute_set_sound_timer, execute_add_to_index, execute_font_character,
    execute_bcd_conversion, execute_store_registers, execute_load_registers
)

Handler = Callable[[MachineState, DecodedInstruction], MachineState]

DISPATCH: dict[Op, Handler] = {
    Op.SYS: no_op,
    Op.CLS: execute_clear_screen,
    Op.RET: execute_return,
    Op.JP: execute_jump,
    Op.CALL: execute_call,
    Op.SE_IMM: execute_skip_if_equal_immediate,
    Op.SNE_IMM: execute_skip_if_not_equal_immediate,
    Op.SE_REG: execute_skip_if_equal_register,
    Op.LD_IMM: execute_set,
    Op.ADD_IMM: execute_add,
    Op.LD_REG: execute_alu_operation,
    Op.OR: execute_alu_operation,
    Op.AND: execute_alu_operation,
    Op.XOR: execute_alu_operation,
    Op.ADD_REG: execute_alu_operation,
    Op.SUB: execute_alu_operation,
    Op.SHR: execute_alu_operation,
    Op.SUBN: execute_alu_operation,
    Op.SHL: execute_alu_operation,
    Op.SNE_REG: execute_skip_if_not_equal_register,
    Op.LD_I: execute_set_index,
    Op.JP_OFFSET: execute_jump_with_offset,
    Op.RND: execute_random,
    Op.DRW: execute_display,
    Op.SKP: execute_skip_if_key,
    Op.SKNP: execute_skip_if_not_key,
    Op.GET_DT: execute_get_delay_timer,
    Op.WAIT_KEY: execute_wait_for_key,
    Op.SET_DT: execute_set_delay_timer,
    Op.SET_ST: execute_set_sound_timer,
    Op.ADD_I: execute_add_to_index,
    Op.LD_FONT: execute_font_character,
    Op.BCD: execute_bcd_conversion,
    Op.STORE: execute_store_registers,
    Op.LOAD: execute_load_registers,
    Op.UNKNOWN: no_op,
}

# Fault codes reported by the compiled step
NO_FAULT = 0
FETCH_OVERRUN = 1
STACK_OVERFLOW = 2
STACK_UNDERFLOW = 3
MEMORY_ACCESS = 4


def _make_branch(op: Op):
    handler = DISPATCH[op]

    def branch(state: MachineState, fields: dict) -> MachineState:
        return handler(state, DecodedInstruction(op=op, **fields))
    return branch


# lax.switch branches, indexed by op_index
BRANCHES = [_make_branch(op) for op in OPS]


def _op_code(op: Op) -> int:
    return OPS.index(op)


def _access_length(op: jnp.ndarray, instruction: jnp.ndarray) -> jnp.ndarray:
    """Bytes FX33/FX55/FX65 touch starting at I; 0 for every other operation."""
    x = ((instruction & 0x0F00) >> 8).astype(jnp.int32)
    bulk = (op == _op_code(Op.STORE)) | (op == _op_code(Op.LOAD))
    return jnp.where(op == _op_code(Op.BCD), 3, jnp.where(bulk, x + 1, 0))


def _fault(state: MachineState, op: jnp.ndarray, instruction: jnp.ndarray) -> jnp.ndarray:
    """Fault code of executing ``instruction`` against ``state``."""
    length = _access_length(op, instruction)
    return jnp.select(
        [
            (op == _op_code(Op.CALL)) & (state.stack.pointer >= STACK_SIZE),
            (op == _op_code(Op.RET)) & (state.stack.pointer <= 0),
            (length > 0) & (state.I.astype(jnp.int32) + length > MEMORY_SIZE),
        ],
        [jnp.int32(STACK_OVERFLOW), jnp.int32(STACK_UNDERFLOW), jnp.int32(MEMORY_ACCESS)],
        jnp.int32(NO_FAULT),
    ).astype(jnp.int32)


def _dispatch(state: MachineState, op: jnp.ndarray, instruction: jnp.ndarray,
              fault: jnp.ndarray) -> MachineState:
    return jax.lax.cond(
        fault == NO_FAULT,
        lambda s: jax.lax.switch(op, BRANCHES, s, operands(instruction)),
        lambda s: s,
        state,
    )


@jax.jit
def _execute(state: MachineState, instruction: jnp.ndarray) -> tuple[MachineState, jnp.ndarray]:
    op = op_index(instruction)
    fault = _fault(state, op, instruction)
    return _dispatch(state, op, instruction, fault), fault


def _pack_u16(high: jnp.ndarray, low: jnp.ndarray) -> jnp.ndarray:
    """Pack two bytes into a big-endian 16-bit word."""
    return (high.astype(jnp.uint16) << 8) | low.astype(jnp.uint16)


def _read_word(state: MachineState) -> jnp.ndarray:
    """Word at ``pc``; bytes past the end of memory read as zero."""
    pc = state.pc.astype(jnp.int32)
    return _pack_u16(
        state.memory.at[pc].get(mode="fill", fill_value=0),
        state.memory.at[pc + 1].get(mode="fill", fill_value=0),
    )


def _cycle(state: MachineState) -> tuple[MachineState, jnp.ndarray, jnp.ndarray]:
    """Fetch and execute one instruction. A faulting cycle returns ``state`` unchanged."""
    instruction = _read_word(state)
    op = op_index(instruction)
    overrun = state.pc.astype(jnp.int32) + INSTRUCTION_SIZE > MEMORY_SIZE
    fault = jnp.where(overrun, FETCH_OVERRUN, _fault(state, op, instruction)).astype(jnp.int32)

    def run(state):
        state = state.replace(pc=state.pc + INSTRUCTION_SIZE)
        return jax.lax.switch(op, BRANCHES, state, operands(instruction))

    state = jax.lax.cond(fault == NO_FAULT, run, lambda s: s, state)
    return state, fault, instruction


_step = jax.jit(_cycle)


@jax.jit
def _run_cycles(state: MachineState, count: jnp.ndarray):
    def cond_fn(carry):
        _, executed, fault = carry
        return (executed < count) & (fault == NO_FAULT)

    def body_fn(carry):
        state, executed, _ = carry
        state, fault, _ = _cycle(state)
        return state, executed + (fault == NO_FAULT).astype(jnp.int32), fault

    initial = (state, jnp.zeros((), dtype=jnp.int32), jnp.zeros((), dtype=jnp.int32))
    return jax.lax.while_loop(cond_fn, body_fn, initial)


def _fault_error(fault: int, state: MachineState, instruction: int, pc: int) -> Chip8Error:
    """Exception for a fault raised by ``instruction`` at address ``pc``."""
    if fault == FETCH_OVERRUN:
        return MemoryOverrunError(pc)
    if fault == STACK_OVERFLOW:
        return StackOverflowError(pc)
    if fault == STACK_UNDERFLOW:
        return StackUnderflowError(pc)
    decoded = decode(instruction)
    length = 3 if decoded.op is Op.BCD else decoded.x + 1
    return MemoryAccessError(int(state.I), length)


def execute(state: MachineState, instruction: int) -> MachineState:
    """Execute single CHIP-8 instruction that has already been fetched.

    ``pc`` is taken to point just past the instruction, so errors report
    ``pc - 2`` as its address.

    Raises:
        StackOverflowError, StackUnderflowError, MemoryAccessError
    """
    instruction = int(instruction) & 0xFFFF
    new_state, fault = _execute(state, jnp.asarray(instruction, dtype=jnp.uint16))
    fault = int(fault)
    if fault != NO_FAULT:
        pc = (int(state.pc) - INSTRUCTION_SIZE) & 0xFFFF
        raise _fault_error(fault, state, instruction, pc)
    return new_state


def fetch(state: MachineState) -> tuple[MachineState, int]:
    """Fetch next instruction from memory and advance the program counter.

    Raises:
        MemoryOverrunError: if the instruction would extend past memory
    """
    pc = int(state.pc)
    if pc + INSTRUCTION_SIZE > MEMORY_SIZE:
        raise MemoryOverrunError(pc)
    instruction = int(_read_word(state))
    return state.replace(pc=state.pc + INSTRUCTION_SIZE), instruction


def step(state: MachineState) -> MachineState:
    """Fetch and execute exactly one instruction.

    Raises:
        Chip8Error: on any fatal condition; errors report the address of the
            faulting instruction
    """
    new_state, fault, instruction = _step(state)
    fault = int(fault)
    if fault != NO_FAULT:
        raise _fault_error(fault, state, int(instruction), int(state.pc))
    return new_state


def run_cycles(state: MachineState, count: int) -> tuple[MachineState, int, Optional[Chip8Error]]:
    """Execute up to ``count`` instructions in one compiled loop.

    Returns:
        Tuple of (state, instructions executed, error). On a fatal condition the
        loop stops, ``state`` is the state before the faulting instruction and
        ``error`` describes it; otherwise ``error`` is None.
    """
    state, executed, fault = _run_cycles(state, jnp.asarray(count, dtype=jnp.int32))
    fault = int(fault)
    if fault == NO_FAULT:
        return state, int(executed), None
    return state, int(executed), _fault_error(fault, state, int(_read_word(state)), int(state.pc))


@jax.jit
def _decrement_timers(state: MachineState) -> MachineState:
    return state.replace(
        delay_timer=jnp.where(state.delay_timer > 0, state.delay_timer - 1, 0).astype(jnp.uint8),
        sound_timer=jnp.where(state.sound_timer > 0, state.sound_timer - 1, 0).astype(jnp.uint8),
    )


def tick_timers(state: MachineState, beep: Optional[Callable[[], None]] = None) -> MachineState:
    """Advance both timers by one frame.

    ``beep`` is called once when the sound timer is nonzero at the tick.
    Timers saturate at zero.
    """
    if beep is not None and int(state.sound_timer):
        beep()
    return _decrement_timers(state)


def set_keys(state: MachineState, mask: int) -> MachineState:
    """Replace the held-key mask with the input provider's latest sample."""
    return state.replace(keys=jnp.asarray(int(mask) & KEY_MASK, dtype=jnp.uint16))


def load_program(state: MachineState, program: bytes) -> MachineState:
    """Write program bytes into memory starting at 0x200.

    Raises:
        ProgramTooLargeError: if the program does not fit in memory
    """
    capacity = MEMORY_SIZE - PROGRAM_START
    if len(program) > capacity:
        raise ProgramTooLargeError(len(program), capacity)
    if not program:
        return state
    program_array = jnp.array(list(program), dtype=jnp.uint8)
    new_memory = state.memory.at[PROGRAM_START:PROGRAM_START + len(program)].set(program_array)
    return state.replace(memory=new_memory)


def load_rom(state: MachineState, filename: str) -> MachineState:
    """Load ROM data into CHIP-8 memory starting at 0x200."""
    with open(filename, 'rb') as f:
        rom_data = f.read()
    return load_program(state, rom_data)
