"""CHIP-8 display operations."""

import jax.numpy as jnp
from chipax.state import EmulatorState
from chipax.decode import DecodedInstruction
from chipax.constants import SCREEN_WIDTH, SCREEN_HEIGHT, ADDRESS_MASK, FLAG_REGISTER

# Pre-computed coordinate grids for display operations
xx, yy = jnp.meshgrid(jnp.arange(SCREEN_WIDTH), jnp.arange(SCREEN_HEIGHT), indexing='ij')


def execute_display(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """DXYN - Draw sprite at (VX, VY) with height N, VF = collision."""
    sprite_x = jnp.astype(state.V[instruction.x], jnp.int32) % SCREEN_WIDTH
    sprite_y = jnp.astype(state.V[instruction.y], jnp.int32) % SCREEN_HEIGHT
    height = jnp.astype(instruction.n, jnp.int32)

    col_offset = xx - sprite_x
    row_offset = yy - sprite_y
    if not state.quirks.clip_sprites:
        col_offset = col_offset % SCREEN_WIDTH
        row_offset = row_offset % SCREEN_HEIGHT

    in_sprite = (col_offset >= 0) & (col_offset < 8) & (row_offset >= 0) & (row_offset < height)

    addresses = (jnp.astype(state.I, jnp.int32) + jnp.clip(row_offset, 0, 15)) & ADDRESS_MASK
    sprite_bytes = jnp.astype(state.memory[addresses], jnp.int32)
    bits = (sprite_bytes >> (7 - jnp.clip(col_offset, 0, 7))) & 1
    sprite = (bits == 1) & in_sprite

    collision = jnp.any(state.display & sprite)
    return state.replace(
        display=state.display ^ sprite,
        V=state.V.at[FLAG_REGISTER].set(jnp.astype(collision, jnp.uint8))
    )
