"""CHIP-8 control flow instructions.

Handlers run after the fetch has already moved the program counter past the
current instruction, so a skip only adds the extra 2 bytes.
"""

import jax
import jax.lax
import jax.numpy as jnp
from chipax.constants import ADDRESS_MASK, INSTRUCTION_SIZE
from chipax.state import EmulatorState, is_key_down
from chipax.decode import DecodedInstruction
from chipax.stack import push


def execute_jump(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """1NNN - Jump to address NNN."""
    return state.replace(pc=jnp.astype(instruction.nnn, jnp.uint16))


def execute_call(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """2NNN - Call subroutine at NNN."""
    state = state.replace(stack=push(state.stack, state.pc))
    return execute_jump(state, instruction)


def make_skip_instruction(condition_fn):
    """Factory for skip instructions."""
    def skip_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        condition = condition_fn(state, instruction)
        return jax.lax.cond(
            condition,
            lambda s: s.replace(pc=s.pc + INSTRUCTION_SIZE),
            lambda s: s,
            state
        )
    return skip_instruction


execute_skip_if_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == inst.nn
)

execute_skip_if_not_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != inst.nn
)

execute_skip_if_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == state.V[inst.y]
)

execute_skip_if_not_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != state.V[inst.y]
)

execute_skip_if_key_pressed = make_skip_instruction(
    lambda state, inst: is_key_down(state.input_mask, state.V[inst.x])
)

execute_skip_if_key_not_pressed = make_skip_instruction(
    lambda state, inst: ~is_key_down(state.input_mask, state.V[inst.x])
)


def execute_jump_with_offset(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """BNNN - Jump to address NNN + V0 (BXNN, NN + VX, with the jump_uses_vx quirk)."""
    if state.quirks.jump_uses_vx:
        base, offset = instruction.nn, state.V[instruction.x]
    else:
        base, offset = instruction.nnn, state.V[0]
    jump_address = (jnp.astype(base, jnp.uint16) + jnp.astype(offset, jnp.uint16)) & ADDRESS_MASK
    return state.replace(pc=jump_address)
