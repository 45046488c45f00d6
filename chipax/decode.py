"""CHIP-8 instruction decoding."""

import enum

import jax.numpy as jnp
from chex import dataclass

from chipax.bits import nibbles_to_byte, nibbles_to_address, word_to_nibbles


class Opcode(enum.IntEnum):
    """Instruction forms, in handler-table order."""
    SYS = 0          # 0NNN
    CLS = 1          # 00E0
    RET = 2          # 00EE
    JP = 3           # 1NNN
    CALL = 4         # 2NNN
    SE_BYTE = 5      # 3XNN
    SNE_BYTE = 6     # 4XNN
    SE_REG = 7       # 5XY0
    LD_BYTE = 8      # 6XNN
    ADD_BYTE = 9     # 7XNN
    LD_REG = 10      # 8XY0
    OR = 11          # 8XY1
    AND = 12         # 8XY2
    XOR = 13         # 8XY3
    ADD_REG = 14     # 8XY4
    SUB = 15         # 8XY5
    SHR = 16         # 8XY6
    SUBN = 17        # 8XY7
    SHL = 18         # 8XYE
    SNE_REG = 19     # 9XY0
    LD_I = 20        # ANNN
    JP_V0 = 21       # BNNN
    RND = 22         # CXNN
    DRW = 23         # DXYN
    SKP = 24         # EX9E
    SKNP = 25        # EXA1
    LD_VX_DT = 26    # FX07
    LD_VX_K = 27     # FX0A
    LD_DT_VX = 28    # FX15
    LD_ST_VX = 29    # FX18
    ADD_I_VX = 30    # FX1E
    LD_F_VX = 31     # FX29
    LD_B_VX = 32     # FX33
    LD_I_VX = 33     # FX55
    LD_VX_I = 34     # FX65
    UNKNOWN = 35


# (high nibble, low byte) -> form for the families keyed on the low byte
_LOW_BYTE_FORMS = {
    0xE: {0x9E: Opcode.SKP, 0xA1: Opcode.SKNP},
    0xF: {
        0x07: Opcode.LD_VX_DT, 0x0A: Opcode.LD_VX_K, 0x15: Opcode.LD_DT_VX,
        0x18: Opcode.LD_ST_VX, 0x1E: Opcode.ADD_I_VX, 0x29: Opcode.LD_F_VX,
        0x33: Opcode.LD_B_VX, 0x55: Opcode.LD_I_VX, 0x65: Opcode.LD_VX_I,
    },
}

# low nibble -> form for 8XYN
_ALU_FORMS = {
    0x0: Opcode.LD_REG, 0x1: Opcode.OR, 0x2: Opcode.AND, 0x3: Opcode.XOR,
    0x4: Opcode.ADD_REG, 0x5: Opcode.SUB, 0x6: Opcode.SHR, 0x7: Opcode.SUBN,
    0xE: Opcode.SHL,
}

# high nibble -> form for the families fully identified by it
_SIMPLE_FORMS = {
    0x1: Opcode.JP, 0x2: Opcode.CALL, 0x3: Opcode.SE_BYTE, 0x4: Opcode.SNE_BYTE,
    0x6: Opcode.LD_BYTE, 0x7: Opcode.ADD_BYTE, 0xA: Opcode.LD_I, 0xB: Opcode.JP_V0,
    0xC: Opcode.RND, 0xD: Opcode.DRW,
}


@dataclass(frozen=True)
class DecodedInstruction:
    """Decoded CHIP-8 instruction with extracted operands."""
    raw: int
    opcode: int  # First nibble
    x: int       # Second nibble (VX register)
    y: int       # Third nibble (VY register)
    n: int       # Fourth nibble (4-bit immediate)
    nn: int      # Last byte (8-bit immediate)
    nnn: int     # Last 12 bits (12-bit address)
    form: int    # Opcode form

    @property
    def nibbles(self) -> tuple:
        return self.opcode, self.x, self.y, self.n


def classify(raw, opcode, x, y, n) -> jnp.ndarray:
    """Map nibbles to an Opcode form, Opcode.UNKNOWN when nothing matches."""
    nn = nibbles_to_byte(y, n)

    cases = [
        (raw == 0x00E0, Opcode.CLS),
        (raw == 0x00EE, Opcode.RET),
        (opcode == 0x0, Opcode.SYS),
        ((opcode == 0x5) & (n == 0x0), Opcode.SE_REG),
        ((opcode == 0x9) & (n == 0x0), Opcode.SNE_REG),
    ]
    cases += [(opcode == high, form) for high, form in _SIMPLE_FORMS.items()]
    cases += [((opcode == 0x8) & (n == low), form) for low, form in _ALU_FORMS.items()]
    cases += [
        ((opcode == high) & (nn == low), form)
        for high, forms in _LOW_BYTE_FORMS.items()
        for low, form in forms.items()
    ]

    return jnp.select(
        [condition for condition, _ in cases],
        [int(form) for _, form in cases],
        default=int(Opcode.UNKNOWN),
    ).astype(jnp.int32)


def decode(instruction) -> DecodedInstruction:
    """Decode 16-bit instruction into components."""
    raw = jnp.asarray(instruction, dtype=jnp.uint16)
    opcode, x, y, n = word_to_nibbles(raw)
    return DecodedInstruction(
        raw=raw,
        opcode=opcode,
        x=x,
        y=y,
        n=n,
        nn=nibbles_to_byte(y, n),
        nnn=nibbles_to_address(x, y, n),
        form=classify(raw, opcode, x, y, n),
    )
