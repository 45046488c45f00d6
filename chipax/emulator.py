"""Main CHIP-8 emulator execution engine."""

import os
from typing import Iterable, Union

import jax
import jax.lax
import jax.numpy as jnp
from chipax.state import EmulatorState
from chipax.decode import DecodedInstruction, Opcode, decode
from chipax.errors import EngineError, RomTooLargeError
from chipax.constants import PROGRAM_START, MAX_ROM_SIZE, INSTRUCTION_SIZE, ADDRESS_MASK
from chipax.stack import is_empty, is_full
from chipax.instructions.system import no_op, execute_machine_call, execute_clear_screen, execute_return
from chipax.instructions.control_flow import (
    execute_jump, execute_call, execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate, execute_skip_if_equal_register,
    execute_skip_if_not_equal_register, execute_jump_with_offset,
    execute_skip_if_key_pressed, execute_skip_if_key_not_pressed,
)
from chipax.instructions.alu import (
    execute_alu_set, execute_alu_or, execute_alu_and, execute_alu_xor,
    execute_alu_add, execute_alu_sub_xy, execute_alu_shift_right,
    execute_alu_sub_yx, execute_alu_shift_left,
)
from chipax.instructions.memory import execute_set, execute_add, execute_set_index, execute_random
from chipax.instructions.display import execute_display
from chipax.instructions.misc import (
    execute_get_delay_timer, execute_wait_for_key, execute_set_delay_timer,
    execute_set_sound_timer, execute_add_to_index, execute_font_character,
    execute_bcd_conversion, execute_store_registers, execute_load_registers,
)

# Indexed by Opcode
HANDLERS = {
    Opcode.SYS: execute_machine_call,
    Opcode.CLS: execute_clear_screen,
    Opcode.RET: execute_return,
    Opcode.JP: execute_jump,
    Opcode.CALL: execute_call,
    Opcode.SE_BYTE: execute_skip_if_equal_immediate,
    Opcode.SNE_BYTE: execute_skip_if_not_equal_immediate,
    Opcode.SE_REG: execute_skip_if_equal_register,
    Opcode.LD_BYTE: execute_set,
    Opcode.ADD_BYTE: execute_add,
    Opcode.LD_REG: execute_alu_set,
    Opcode.OR: execute_alu_or,
    Opcode.AND: execute_alu_and,
    Opcode.XOR: execute_alu_xor,
    Opcode.ADD_REG: execute_alu_add,
    Opcode.SUB: execute_alu_sub_xy,
    Opcode.SHR: execute_alu_shift_right,
    Opcode.SUBN: execute_alu_sub_yx,
    Opcode.SHL: execute_alu_shift_left,
    Opcode.SNE_REG: execute_skip_if_not_equal_register,
    Opcode.LD_I: execute_set_index,
    Opcode.JP_V0: execute_jump_with_offset,
    Opcode.RND: execute_random,
    Opcode.DRW: execute_display,
    Opcode.SKP: execute_skip_if_key_pressed,
    Opcode.SKNP: execute_skip_if_key_not_pressed,
    Opcode.LD_VX_DT: execute_get_delay_timer,
    Opcode.LD_VX_K: execute_wait_for_key,
    Opcode.LD_DT_VX: execute_set_delay_timer,
    Opcode.LD_ST_VX: execute_set_sound_timer,
    Opcode.ADD_I_VX: execute_add_to_index,
    Opcode.LD_F_VX: execute_font_character,
    Opcode.LD_B_VX: execute_bcd_conversion,
    Opcode.LD_I_VX: execute_store_registers,
    Opcode.LD_VX_I: execute_load_registers,
    Opcode.UNKNOWN: no_op,
}

_HANDLER_TABLE = [HANDLERS[form] for form in Opcode]


def check_instruction(state: EmulatorState, instruction: DecodedInstruction) -> jnp.ndarray:
    """Error code the instruction would raise on ``state``, EngineError.NONE if it can run."""
    return jnp.select(
        [
            instruction.form == int(Opcode.UNKNOWN),
            (instruction.form == int(Opcode.RET)) & is_empty(state.stack),
            (instruction.form == int(Opcode.CALL)) & is_full(state.stack),
        ],
        [int(EngineError.UNKNOWN_OPCODE), int(EngineError.STACK_EMPTY), int(EngineError.STACK_FULL)],
        default=int(EngineError.NONE),
    ).astype(jnp.int32)


@jax.jit
def execute(state: EmulatorState, instruction: int) -> tuple[EmulatorState, jnp.ndarray]:
    """Execute single CHIP-8 instruction.

    The program counter is expected to already point past ``instruction``.
    On error the state is returned unchanged together with the error code.
    """
    decoded_instruction = decode(instruction)
    error = check_instruction(state, decoded_instruction)

    state = jax.lax.cond(
        error == int(EngineError.NONE),
        lambda s: jax.lax.switch(decoded_instruction.form, _HANDLER_TABLE, s, decoded_instruction),
        lambda s: s,
        state
    )
    return state, error


def _pack_u16(high: jnp.uint8, low: jnp.uint8) -> jnp.uint16:
    """Pack two bytes into uint16."""
    return (high.astype(jnp.uint16) << 8) | low.astype(jnp.uint16)


def fetch(state: EmulatorState) -> tuple[EmulatorState, jnp.uint16]:
    """Fetch next instruction from memory."""
    instruction = _pack_u16(state.memory[state.pc & ADDRESS_MASK], state.memory[(state.pc + 1) & ADDRESS_MASK])
    return state.replace(pc=state.pc + INSTRUCTION_SIZE), instruction


@jax.jit
def execute_current_instruction(state: EmulatorState) -> tuple[EmulatorState, jnp.ndarray]:
    """Fetch, decode and execute the instruction at the program counter.

    Returns the new state and an EngineError code. When the code is not
    EngineError.NONE, the returned state is the input state: the program
    counter still points at the faulting instruction.
    """
    fetched_state, instruction = fetch(state)
    new_state, error = execute(fetched_state, instruction)
    new_state = jax.lax.cond(
        error == int(EngineError.NONE),
        lambda: new_state,
        lambda: state,
    )
    return new_state, error


@jax.jit
def tick_timers(state: EmulatorState) -> EmulatorState:
    """Decrement delay and sound timers by one, stopping at zero."""
    return state.replace(
        delay_timer=jnp.where(state.delay_timer > 0, state.delay_timer - 1, state.delay_timer),
        sound_timer=jnp.where(state.sound_timer > 0, state.sound_timer - 1, state.sound_timer),
    )


@jax.jit
def execute_timestep(state: EmulatorState) -> tuple[EmulatorState, jnp.ndarray]:
    """Tick the timers once, then execute exactly one instruction."""
    return execute_current_instruction(tick_timers(state))


def skip_instruction(state: EmulatorState) -> EmulatorState:
    """Step over the instruction at the program counter without executing it."""
    return state.replace(pc=state.pc + INSTRUCTION_SIZE)


def load_rom(state: EmulatorState, rom: Union[bytes, bytearray, Iterable[int], str, os.PathLike]) -> EmulatorState:
    """Load ROM data into CHIP-8 memory starting at 0x200.

    Args:
        state: Emulator state to load into
        rom: ROM bytes, or path to a ROM file

    Raises:
        RomTooLargeError: ROM is larger than the 3584 bytes of program memory
    """
    if isinstance(rom, (str, os.PathLike)):
        with open(rom, 'rb') as f:
            rom = f.read()
    rom_data = bytes(rom)
    if len(rom_data) > MAX_ROM_SIZE:
        raise RomTooLargeError(len(rom_data))
    if not rom_data:
        return state
    rom_array = jnp.array(list(rom_data), dtype=jnp.uint8)
    new_memory = state.memory.at[PROGRAM_START:PROGRAM_START + len(rom_data)].set(rom_array)
    return state.replace(memory=new_memory)
