"""CHIP-8 stack operations.

Capacity checks happen before dispatch (see ``chipax.emulator.check_instruction``),
so these functions assume there is room to push and something to pop.
"""

import jax.numpy as jnp
from chipax.constants import ADDRESS_MASK, STACK_SIZE
from chipax.state import StackState


def is_full(stack: StackState) -> jnp.ndarray:
    """Whether all 16 frames are in use."""
    return stack.pointer >= STACK_SIZE


def is_empty(stack: StackState) -> jnp.ndarray:
    """Whether no frame is in use."""
    return stack.pointer <= 0


def push(stack: StackState, address: jnp.ndarray) -> StackState:
    """Push address onto stack."""
    masked_address = jnp.asarray(address, dtype=jnp.uint16) & ADDRESS_MASK
    new_data = stack.data.at[stack.pointer].set(masked_address)
    return stack.replace(data=new_data, pointer=stack.pointer + 1)


def pop(stack: StackState) -> tuple[StackState, jnp.ndarray]:
    """Pop address from stack."""
    new_pointer = stack.pointer - 1
    popped_address = stack.data[new_pointer]
    new_data = stack.data.at[new_pointer].set(0)
    return stack.replace(data=new_data, pointer=new_pointer), popped_address
