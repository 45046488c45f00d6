"""CHIP-8 miscellaneous instructions (Fxxx)."""

import jax
import jax.lax
import jax.numpy as jnp
from chipax.state import EmulatorState
from chipax.decode import DecodedInstruction
from chipax.constants import (
    FONT_START, FONT_GLYPH_SIZE, ADDRESS_MASK, FLAG_REGISTER, INSTRUCTION_SIZE,
    NUM_KEYS, NUM_REGISTERS,
)


def execute_get_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX07 - Set VX to delay timer value."""
    return state.replace(V=state.V.at[instruction.x].set(state.delay_timer))


def execute_set_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX15 - Set delay timer to VX."""
    return state.replace(delay_timer=state.V[instruction.x])


def execute_set_sound_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX18 - Set sound timer to VX."""
    return state.replace(sound_timer=state.V[instruction.x])


def execute_add_to_index(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX1E - Add VX to I register.

    I wraps to 12 bits. With the index_overflow_sets_vf quirk (default), VF is
    set to 1 when the sum leaves the 12-bit range and to 0 otherwise.
    """
    new_i = jnp.astype(state.I, jnp.int32) + jnp.astype(state.V[instruction.x], jnp.int32)
    state = state.replace(I=jnp.astype(new_i & ADDRESS_MASK, jnp.uint16))
    if state.quirks.index_overflow_sets_vf:
        overflow_flag = jnp.astype(new_i > ADDRESS_MASK, jnp.uint8)
        state = state.replace(V=state.V.at[FLAG_REGISTER].set(overflow_flag))
    return state


def execute_wait_for_key(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX0A - Wait for key press.

    Without a key down the program counter is moved back onto this
    instruction, so it runs again on the next timestep.
    """
    keys_down = ((state.input_mask >> jnp.arange(NUM_KEYS, dtype=jnp.uint16)) & 1) == 1

    def key_pressed_action(state):
        pressed_key = jnp.astype(jnp.argmax(keys_down), jnp.uint8)
        return state.replace(V=state.V.at[instruction.x].set(pressed_key))

    def wait_action(state):
        return state.replace(pc=state.pc - INSTRUCTION_SIZE)

    return jax.lax.cond(jnp.any(keys_down), key_pressed_action, wait_action, state)


def execute_font_character(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX29 - Set I to location of sprite for the low nibble of VX."""
    digit = jnp.astype(state.V[instruction.x] & 0xF, jnp.uint16)
    return state.replace(I=jnp.astype(FONT_START + digit * FONT_GLYPH_SIZE, jnp.uint16))


def execute_bcd_conversion(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX33 - Store BCD representation of VX at I, I+1, I+2."""
    value = state.V[instruction.x]

    digits = jnp.array([
        value // 100,
        (value // 10) % 10,
        value % 10
    ], dtype=jnp.uint8)

    indices = (jnp.arange(3) + jnp.astype(state.I, jnp.int32)) & ADDRESS_MASK
    return state.replace(memory=state.memory.at[indices].set(digits))


def _register_window(state: EmulatorState, instruction: DecodedInstruction):
    register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
    addresses = (jnp.astype(state.I, jnp.int32) + jnp.arange(NUM_REGISTERS)) & ADDRESS_MASK
    return register_mask, addresses


def _advance_index(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    if not state.quirks.load_store_increments_i:
        return state
    new_i = (jnp.astype(state.I, jnp.int32) + jnp.astype(instruction.x, jnp.int32) + 1) & 0xFFFF
    return state.replace(I=jnp.astype(new_i, jnp.uint16))


def execute_store_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX55 - Store V0 through VX in memory starting at I."""
    register_mask, addresses = _register_window(state, instruction)
    new_memory_values = jnp.where(register_mask, state.V, state.memory[addresses])
    state = state.replace(memory=state.memory.at[addresses].set(new_memory_values))
    return _advance_index(state, instruction)


def execute_load_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX65 - Load V0 through VX from memory starting at I."""
    register_mask, addresses = _register_window(state, instruction)
    state = state.replace(V=jnp.where(register_mask, state.memory[addresses], state.V))
    return _advance_index(state, instruction)
