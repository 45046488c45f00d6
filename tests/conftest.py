"""Test configuration and fixtures for CHIP-8 emulator tests."""

import pytest
import jax.numpy as jnp
from chipax import Quirks, EngineError, create_state, execute, load_rom


@pytest.fixture
def fresh_state():
    """Provide a fresh emulator state for each test."""
    return create_state()


@pytest.fixture
def modern_state():
    """Provide a fresh state with modern interpreter quirks."""
    return create_state(quirks=Quirks.modern())


@pytest.fixture
def cosmac_state():
    """Provide a fresh state with COSMAC VIP interpreter quirks."""
    return create_state(quirks=Quirks.cosmac())


def run(state, *instructions):
    """Execute instructions one after the other, failing on any engine error."""
    for instruction in instructions:
        state, error = execute(state, instruction)
        assert int(error) == EngineError.NONE, f"0x{instruction:04X} failed with {EngineError(int(error)).name}"
    return state


def setup_sprite_in_memory(state, address, sprite_bytes):
    """Helper to put sprite data in memory."""
    return state.replace(
        memory=state.memory.at[address:address+len(sprite_bytes)].set(
            jnp.array(sprite_bytes, dtype=jnp.uint8)
        )
    )


def state_with_rom(rom, quirks=None):
    """Fresh state with ``rom`` loaded at 0x200."""
    state = create_state(quirks=quirks or Quirks())
    return load_rom(state, bytes(rom))
