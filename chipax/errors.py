"""Engine error codes and host-side exceptions.

The engine never raises: every engine function returns an ``EngineError``
code next to the new state so it stays usable under ``jax.jit``. Hosts turn
a code into an exception object with ``fault_from_error`` (to inspect or log
it) or ``raise_for_error`` (to abort).
"""

import enum
from typing import Optional

from chipax.constants import ADDRESS_MASK, MAX_ROM_SIZE, NUM_REGISTERS


class EngineError(enum.IntEnum):
    """Error codes returned by the execution engine."""
    NONE = 0
    STACK_EMPTY = 1
    STACK_FULL = 2
    UNKNOWN_OPCODE = 3


class Chip8Error(Exception):
    """Base class for all CHIP-8 errors."""


class RomTooLargeError(Chip8Error):
    """ROM does not fit in the program area."""

    def __init__(self, size: int):
        self.size = size
        super().__init__(
            f"ROM is {size} bytes but interpreter only supports {MAX_ROM_SIZE} bytes maximum"
        )


class EngineFault(Chip8Error):
    """Error raised at a given instruction, with a snapshot of the machine."""

    description = "Engine fault"

    def __init__(
        self,
        program_counter: int,
        instruction: tuple[int, int],
        stack_pointer: int,
        registers: tuple[int, ...],
        index: int,
    ):
        self.program_counter = program_counter
        self.instruction = instruction
        self.stack_pointer = stack_pointer
        self.registers = registers
        self.index = index
        super().__init__(
            f"{self.description} at 0x{program_counter:03X}: {self.instruction_hex}"
        )

    @property
    def nibbles(self) -> tuple[int, int, int, int]:
        high, low = self.instruction
        return high >> 4, high & 0xF, low >> 4, low & 0xF

    @property
    def instruction_hex(self) -> str:
        high, low = self.instruction
        return f"{high:02X}{low:02X}"

    def report(self) -> str:
        """Multi-line diagnostic block describing the faulting instruction."""
        high, low = self.instruction
        nibbles_raw = ", ".join(str(nibble) for nibble in self.nibbles)
        nibbles_hex = ", ".join(f"{nibble:X}" for nibble in self.nibbles)
        registers = " ".join(f"V{i:X}=0x{value:02X}" for i, value in enumerate(self.registers))
        lines = [
            f"{self.description} ({self.instruction_hex})",
            "=" * 60,
            f"| Current Instruction (Bytes)   | Raw({high}, {low}) Hex({high:02X}, {low:02X})",
            f"| Current Instruction (Nibbles) | Raw({nibbles_raw}) Hex({nibbles_hex})",
            f"| Program Counter               | 0x{self.program_counter:03X}",
            f"| Stack Pointer                 | {self.stack_pointer}",
            f"| Index Register                | 0x{self.index:03X}",
            f"| General Registers             | {registers}",
        ]
        return "\n".join(lines)


class StackEmptyError(EngineFault):
    """00EE executed with no active call frame."""

    description = "Return with empty stack"


class StackFullError(EngineFault):
    """2NNN executed with all 16 call frames in use."""

    description = "Call with full stack"


class UnknownOpcodeError(EngineFault):
    """Instruction word matches no CHIP-8 instruction form."""

    description = "Unknown opcode"


_FAULTS = {
    EngineError.STACK_EMPTY: StackEmptyError,
    EngineError.STACK_FULL: StackFullError,
    EngineError.UNKNOWN_OPCODE: UnknownOpcodeError,
}


def fault_from_error(state, error) -> Optional[EngineFault]:
    """Build the exception matching an engine error code, or None for EngineError.NONE.

    ``state`` must be the state returned together with ``error``; it is left
    untouched by a failing instruction, so its program counter points at the
    faulting instruction.
    """
    error = EngineError(int(error))
    if error == EngineError.NONE:
        return None
    pc = int(state.pc) & ADDRESS_MASK
    return _FAULTS[error](
        program_counter=pc,
        instruction=(int(state.memory[pc]), int(state.memory[(pc + 1) & ADDRESS_MASK])),
        stack_pointer=int(state.stack_pointer),
        registers=tuple(int(state.V[i]) for i in range(NUM_REGISTERS)),
        index=int(state.I),
    )


def raise_for_error(state, error) -> None:
    """Raise the exception matching an engine error code, if any."""
    fault = fault_from_error(state, error)
    if fault is not None:
        raise fault
