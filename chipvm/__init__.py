"""CHIP-8 interpreter package."""

from chipvm.state import MachineState, StackState, create_state
from chipvm.config import Quirks, MachineConfig
from chipvm.emulator import execute, fetch, step, run_cycles, tick_timers, set_keys, load_program, load_rom
from chipvm.decode import DecodedInstruction, Op, decode, disassemble
from chipvm.errors import (
    Chip8Error, MemoryOverrunError, StackOverflowError, StackUnderflowError,
    MemoryAccessError, ProgramTooLargeError, ConfigError,
)
from chipvm.constants import PROGRAM_START, FONT_START, MEMORY_SIZE, SCREEN_WIDTH, SCREEN_HEIGHT, STACK_SIZE
from chipvm.machine import Chip8Machine, FrameResult

__all__ = [
    "MachineState",
    "StackState",
    "create_state",
    "Quirks",
    "MachineConfig",
    "fetch",
    "execute",
    "step",
    "run_cycles",
    "tick_timers",
    "set_keys",
    "load_program",
    "load_rom",
    "DecodedInstruction",
    "Op",
    "decode",
    "disassemble",
    "Chip8Error",
    "MemoryOverrunError",
    "StackOverflowError",
    "StackUnderflowError",
    "MemoryAccessError",
    "ProgramTooLargeError",
    "ConfigError",
    "Chip8Machine",
    "FrameResult",
    "PROGRAM_START",
    "FONT_START",
    "MEMORY_SIZE",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "STACK_SIZE",
]
