"""CHIP-8 instruction decoding.

``classify`` and ``decode`` work on plain integers. ``operands`` and
``op_index`` are their traceable counterparts, used by the compiled engine.
"""

import enum

import jax.numpy as jnp
from chex import dataclass


class Op(enum.Enum):
    """Closed set of CHIP-8 operations."""
    SYS = "SYS"            # 0NNN
    CLS = "CLS"            # 00E0
    RET = "RET"            # 00EE
    JP = "JP"              # 1NNN
    CALL = "CALL"          # 2NNN
    SE_IMM = "SE_IMM"      # 3XNN
    SNE_IMM = "SNE_IMM"    # 4XNN
    SE_REG = "SE_REG"      # 5XY0
    LD_IMM = "LD_IMM"      # 6XNN
    ADD_IMM = "ADD_IMM"    # 7XNN
    LD_REG = "LD_REG"      # 8XY0
    OR = "OR"              # 8XY1
    AND = "AND"            # 8XY2
    XOR = "XOR"            # 8XY3
    ADD_REG = "ADD_REG"    # 8XY4
    SUB = "SUB"            # 8XY5
    SHR = "SHR"            # 8XY6
    SUBN = "SUBN"          # 8XY7
    SHL = "SHL"            # 8XYE
    SNE_REG = "SNE_REG"    # 9XY0
    LD_I = "LD_I"          # ANNN
    JP_OFFSET = "JP_OFFSET"  # BNNN
    RND = "RND"            # CXNN
    DRW = "DRW"            # DXYN
    SKP = "SKP"            # EX9E
    SKNP = "SKNP"          # EXA1
    GET_DT = "GET_DT"      # FX07
    WAIT_KEY = "WAIT_KEY"  # FX0A
    SET_DT = "SET_DT"      # FX15
    SET_ST = "SET_ST"      # FX18
    ADD_I = "ADD_I"        # FX1E
    LD_FONT = "LD_FONT"    # FX29
    BCD = "BCD"            # FX33
    STORE = "STORE"        # FX55
    LOAD = "LOAD"          # FX65
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class DecodedInstruction:
    """Decoded CHIP-8 instruction with extracted operands.

    Inside the compiled engine the operand fields are traced uint16 scalars
    and ``op`` is the fixed operation of the dispatch branch.
    """
    raw: int
    op: Op
    opcode: int  # First nibble
    x: int       # Second nibble (VX register)
    y: int       # Third nibble (VY register)
    n: int       # Fourth nibble (4-bit immediate)
    nn: int      # Last byte (8-bit immediate)
    nnn: int     # Last 12 bits (12-bit address)


# Dispatch order of the compiled engine
OPS = tuple(Op)

# Families fully determined by the high nibble
_FAMILY_OPS = {
    0x1: Op.JP,
    0x2: Op.CALL,
    0x3: Op.SE_IMM,
    0x4: Op.SNE_IMM,
    0x6: Op.LD_IMM,
    0x7: Op.ADD_IMM,
    0xA: Op.LD_I,
    0xB: Op.JP_OFFSET,
    0xC: Op.RND,
    0xD: Op.DRW,
}

_ALU_OPS = {
    0x0: Op.LD_REG,
    0x1: Op.OR,
    0x2: Op.AND,
    0x3: Op.XOR,
    0x4: Op.ADD_REG,
    0x5: Op.SUB,
    0x6: Op.SHR,
    0x7: Op.SUBN,
    0xE: Op.SHL,
}

_KEY_OPS = {
    0x9E: Op.SKP,
    0xA1: Op.SKNP,
}

_MISC_OPS = {
    0x07: Op.GET_DT,
    0x0A: Op.WAIT_KEY,
    0x15: Op.SET_DT,
    0x18: Op.SET_ST,
    0x1E: Op.ADD_I,
    0x29: Op.LD_FONT,
    0x33: Op.BCD,
    0x55: Op.STORE,
    0x65: Op.LOAD,
}


def classify(instruction: int) -> Op:
    """Map a 16-bit instruction to its operation."""
    opcode = (instruction & 0xF000) >> 12
    n = instruction & 0x000F
    nn = instruction & 0x00FF

    if opcode in _FAMILY_OPS:
        return _FAMILY_OPS[opcode]
    if opcode == 0x0:
        if instruction == 0x00E0:
            return Op.CLS
        if instruction == 0x00EE:
            return Op.RET
        return Op.SYS
    if opcode == 0x5:
        return Op.SE_REG if n == 0 else Op.UNKNOWN
    if opcode == 0x9:
        return Op.SNE_REG if n == 0 else Op.UNKNOWN
    if opcode == 0x8:
        return _ALU_OPS.get(n, Op.UNKNOWN)
    if opcode == 0xE:
        return _KEY_OPS.get(nn, Op.UNKNOWN)
    return _MISC_OPS.get(nn, Op.UNKNOWN)


def operands(instruction) -> dict:
    """Split an instruction into its operand fields. Traceable."""
    return dict(
        raw=instruction,
        opcode=(instruction & 0xF000) >> 12,
        x=(instruction & 0x0F00) >> 8,
        y=(instruction & 0x00F0) >> 4,
        n=instruction & 0x000F,
        nn=instruction & 0x00FF,
        nnn=instruction & 0x0FFF
    )


def decode(instruction: int) -> DecodedInstruction:
    """Decode 16-bit instruction into components."""
    instruction = int(instruction) & 0xFFFF
    return DecodedInstruction(op=classify(instruction), **operands(instruction))


def _index_table(table: dict, size: int) -> jnp.ndarray:
    return jnp.array([OPS.index(table.get(key, Op.UNKNOWN)) for key in range(size)], dtype=jnp.int32)


_FAMILY_INDEX = _index_table(_FAMILY_OPS, 16)
_ALU_INDEX = _index_table(_ALU_OPS, 16)
_KEY_INDEX = _index_table(_KEY_OPS, 256)
_MISC_INDEX = _index_table(_MISC_OPS, 256)


def op_index(instruction) -> jnp.ndarray:
    """Position in ``OPS`` of the operation ``classify`` would return. Traceable."""
    instruction = jnp.asarray(instruction).astype(jnp.int32)
    opcode = (instruction & 0xF000) >> 12
    n = instruction & 0x000F
    nn = instruction & 0x00FF

    def pick(op):
        return jnp.int32(OPS.index(op))

    system = jnp.where(instruction == 0x00E0, pick(Op.CLS),
                       jnp.where(instruction == 0x00EE, pick(Op.RET), pick(Op.SYS)))
    return jnp.select(
        [opcode == 0x0, opcode == 0x5, opcode == 0x9, opcode == 0x8, opcode == 0xE, opcode == 0xF],
        [
            system,
            jnp.where(n == 0, pick(Op.SE_REG), pick(Op.UNKNOWN)),
            jnp.where(n == 0, pick(Op.SNE_REG), pick(Op.UNKNOWN)),
            _ALU_INDEX[n],
            _KEY_INDEX[nn],
            _MISC_INDEX[nn],
        ],
        _FAMILY_INDEX[opcode],
    )


_MNEMONICS = {
    Op.SYS: "SYS 0x{nnn:03X}",
    Op.CLS: "CLS",
    Op.RET: "RET",
    Op.JP: "JP 0x{nnn:03X}",
    Op.CALL: "CALL 0x{nnn:03X}",
    Op.SE_IMM: "SE V{x:X}, 0x{nn:02X}",
    Op.SNE_IMM: "SNE V{x:X}, 0x{nn:02X}",
    Op.SE_REG: "SE V{x:X}, V{y:X}",
    Op.LD_IMM: "LD V{x:X}, 0x{nn:02X}",
    Op.ADD_IMM: "ADD V{x:X}, 0x{nn:02X}",
    Op.LD_REG: "LD V{x:X}, V{y:X}",
    Op.OR: "OR V{x:X}, V{y:X}",
    Op.AND: "AND V{x:X}, V{y:X}",
    Op.XOR: "XOR V{x:X}, V{y:X}",
    Op.ADD_REG: "ADD V{x:X}, V{y:X}",
    Op.SUB: "SUB V{x:X}, V{y:X}",
    Op.SHR: "SHR V{x:X}, V{y:X}",
    Op.SUBN: "SUBN V{x:X}, V{y:X}",
    Op.SHL: "SHL V{x:X}, V{y:X}",
    Op.SNE_REG: "SNE V{x:X}, V{y:X}",
    Op.LD_I: "LD I, 0x{nnn:03X}",
    Op.JP_OFFSET: "JP V0, 0x{nnn:03X}",
    Op.RND: "RND V{x:X}, 0x{nn:02X}",
    Op.DRW: "DRW V{x:X}, V{y:X}, {n}",
    Op.SKP: "SKP V{x:X}",
    Op.SKNP: "SKNP V{x:X}",
    Op.GET_DT: "LD V{x:X}, DT",
    Op.WAIT_KEY: "LD V{x:X}, K",
    Op.SET_DT: "LD DT, V{x:X}",
    Op.SET_ST: "LD ST, V{x:X}",
    Op.ADD_I: "ADD I, V{x:X}",
    Op.LD_FONT: "LD F, V{x:X}",
    Op.BCD: "LD B, V{x:X}",
    Op.STORE: "LD [I], V{x:X}",
    Op.LOAD: "LD V{x:X}, [I]",
    Op.UNKNOWN: "DW 0x{raw:04X}",
}


def disassemble(instruction: int) -> str:
    """Render an instruction as an assembler mnemonic, e.g. ``LD V1, 0x2A``."""
    decoded = decode(instruction)
    return _MNEMONICS[decoded.op].format(
        raw=decoded.raw, x=decoded.x, y=decoded.y, n=decoded.n, nn=decoded.nn, nnn=decoded.nnn
    )
