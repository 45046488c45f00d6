"""CHIP-8 ALU operations (8xxx).

Each operation maps (VX, VY) to (result, flag). The result is written to VX
first and the flag to VF second, so ``8FY4`` leaves the carry in VF.
"""

import jax.numpy as jnp
from chipax.constants import FLAG_REGISTER
from chipax.state import EmulatorState
from chipax.decode import DecodedInstruction


def _no_flag():
    return jnp.zeros((), dtype=jnp.uint8)


def alu_set(vx, vy):
    """8XY0 - Set: VX = VY."""
    return vy, _no_flag()


def alu_or(vx, vy):
    """8XY1 - Binary OR: VX |= VY."""
    return vx | vy, _no_flag()


def alu_and(vx, vy):
    """8XY2 - Binary AND: VX &= VY."""
    return vx & vy, _no_flag()


def alu_xor(vx, vy):
    """8XY3 - Logical XOR: VX ^= VY."""
    return vx ^ vy, _no_flag()


def alu_add(vx, vy):
    """8XY4 - Add: VX += VY, VF = carry."""
    result = jnp.astype(vx, jnp.int32) + jnp.astype(vy, jnp.int32)
    carry = jnp.astype(result > 0xFF, jnp.uint8)
    return jnp.astype(result & 0xFF, jnp.uint8), carry


def alu_sub_xy(vx, vy):
    """8XY5 - Subtract: VX -= VY, VF = NOT borrow."""
    no_borrow = jnp.astype(vx >= vy, jnp.uint8)
    return vx - vy, no_borrow


def alu_shift_right(vx, vy):
    """8XY6 - Shift right: VX >>= 1, VF = bit shifted out."""
    return vx >> 1, vx & 1


def alu_sub_yx(vx, vy):
    """8XY7 - Subtract: VX = VY - VX, VF = NOT borrow."""
    no_borrow = jnp.astype(vy >= vx, jnp.uint8)
    return vy - vx, no_borrow


def alu_shift_left(vx, vy):
    """8XYE - Shift left: VX <<= 1, VF = bit shifted out."""
    return (vx << 1) & 0xFF, (vx >> 7) & 1


def make_alu_instruction(operation, sets_flag: bool = True, logic: bool = False, shift: bool = False):
    """Factory for 8XYN instructions.

    Args:
        operation: Function mapping (VX, VY) to (result, flag)
        sets_flag: Whether the flag is written to VF
        logic: Bitwise operation, writes VF = 0 under the logic_resets_vf quirk
        shift: Shift operation, reads VY instead of VX under the shift_uses_vy quirk
    """
    def alu_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        vx = state.V[instruction.x]
        vy = state.V[instruction.y]
        if shift and state.quirks.shift_uses_vy:
            vx = vy

        result, flag = operation(vx, vy)

        new_V = state.V.at[instruction.x].set(jnp.astype(result, jnp.uint8))
        if sets_flag or (logic and state.quirks.logic_resets_vf):
            new_V = new_V.at[FLAG_REGISTER].set(jnp.astype(flag, jnp.uint8))
        return state.replace(V=new_V)

    return alu_instruction


execute_alu_set = make_alu_instruction(alu_set, sets_flag=False)
execute_alu_or = make_alu_instruction(alu_or, sets_flag=False, logic=True)
execute_alu_and = make_alu_instruction(alu_and, sets_flag=False, logic=True)
execute_alu_xor = make_alu_instruction(alu_xor, sets_flag=False, logic=True)
execute_alu_add = make_alu_instruction(alu_add)
execute_alu_sub_xy = make_alu_instruction(alu_sub_xy)
execute_alu_shift_right = make_alu_instruction(alu_shift_right, shift=True)
execute_alu_sub_yx = make_alu_instruction(alu_sub_yx)
execute_alu_shift_left = make_alu_instruction(alu_shift_left, shift=True)
