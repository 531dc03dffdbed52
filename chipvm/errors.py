"""Exceptions raised by the CHIP-8 engine."""


class Chip8Error(Exception):
    """Base class for every fatal machine condition."""


class MemoryOverrunError(Chip8Error):
    """Program counter ran off the end of memory."""

    def __init__(self, pc: int):
        self.pc = pc
        super().__init__(f"instruction fetch past end of memory at pc=0x{pc:04X}")


class StackOverflowError(Chip8Error):
    """Subroutine call with a full stack."""

    def __init__(self, pc: int):
        self.pc = pc
        super().__init__(f"stack overflow on call at pc=0x{pc:04X}")


class StackUnderflowError(Chip8Error):
    """Return with an empty stack."""

    def __init__(self, pc: int):
        self.pc = pc
        super().__init__(f"stack underflow on return at pc=0x{pc:04X}")


class MemoryAccessError(Chip8Error):
    """Data access through I reaching past the end of memory."""

    def __init__(self, address: int, length: int):
        self.address = address
        self.length = length
        super().__init__(
            f"memory access of {length} byte(s) at 0x{address:04X} exceeds memory"
        )


class ProgramTooLargeError(Chip8Error):
    """Program does not fit between the program start and the end of memory."""

    def __init__(self, size: int, capacity: int):
        self.size = size
        self.capacity = capacity
        super().__init__(f"program of {size} bytes exceeds the {capacity} bytes available")


class ConfigError(Chip8Error):
    """Invalid machine configuration."""
