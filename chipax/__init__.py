"""CHIP-8 emulator package."""

from chipax.config import Quirks, EmulatorConfig, load_config
from chipax.state import (
    EmulatorState, StackState, create_state, reset_state,
    with_input_mask, press_key, release_key,
)
from chipax.emulator import (
    execute, fetch, load_rom, check_instruction, execute_current_instruction,
    execute_timestep, tick_timers, skip_instruction,
)
from chipax.decode import DecodedInstruction, Opcode, decode
from chipax.bits import nibbles_to_byte, nibbles_to_address, byte_to_nibbles, nibbles_to_instruction
from chipax.errors import (
    EngineError, Chip8Error, RomTooLargeError, EngineFault, StackEmptyError,
    StackFullError, UnknownOpcodeError, fault_from_error, raise_for_error,
)
from chipax.constants import *
from chipax.runner import Chip8Runner

__all__ = [
    "Quirks",
    "EmulatorConfig",
    "load_config",
    "EmulatorState",
    "StackState",
    "create_state",
    "reset_state",
    "with_input_mask",
    "press_key",
    "release_key",
    "fetch",
    "execute",
    "check_instruction",
    "execute_current_instruction",
    "execute_timestep",
    "tick_timers",
    "skip_instruction",
    "load_rom",
    "DecodedInstruction",
    "Opcode",
    "decode",
    "nibbles_to_byte",
    "nibbles_to_address",
    "byte_to_nibbles",
    "nibbles_to_instruction",
    "EngineError",
    "Chip8Error",
    "RomTooLargeError",
    "EngineFault",
    "StackEmptyError",
    "StackFullError",
    "UnknownOpcodeError",
    "fault_from_error",
    "raise_for_error",
    "Chip8Runner",
    "MEMORY_SIZE",
    "PROGRAM_START",
    "MAX_ROM_SIZE",
    "FONT_START",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "STACK_SIZE",
]
