"""CHIP-8 emulator state structures."""

import jax
import jax.numpy as jnp
from flax.struct import dataclass, PyTreeNode, field

from chipax.config import Quirks
from chipax.constants import (
    MEMORY_SIZE, PROGRAM_START, FONT_START, FONT_DATA,
    SCREEN_WIDTH, SCREEN_HEIGHT, STACK_SIZE, NUM_REGISTERS, NUM_KEYS,
)


@dataclass(frozen=True)
class StackState:
    """Stack state for subroutine calls."""
    data: jnp.ndarray = field(default_factory=lambda: jnp.zeros(STACK_SIZE, dtype=jnp.uint16))
    pointer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.int32))


class EmulatorState(PyTreeNode):
    """Main CHIP-8 emulator state.

    Attributes:
        rng: PRNG key consumed by CXNN
        memory: 4 KiB of RAM, font at FONT_START, program at PROGRAM_START
        pc: Program counter
        display: Monochrome framebuffer indexed as display[x, y]
        stack: Return addresses of active subroutine calls
        delay_timer: Delay timer, read and written by the program
        sound_timer: Sound timer, a tone plays while it is non-zero
        input_mask: Bit k is set while key k is held down
        V: General purpose registers V0-VF (VF doubles as flag register)
        I: Index register
        instruction_count: Instructions completed by the runner since power-on,
            sets the phase of the timer ticks across frames and runs
        quirks: Interpreter quirks, static under jax.jit
    """
    rng: jax.random.PRNGKey
    memory: jnp.ndarray = field(default_factory=lambda: jnp.zeros(MEMORY_SIZE, dtype=jnp.uint8))
    pc: jnp.ndarray = field(default_factory=lambda: jnp.asarray(PROGRAM_START, dtype=jnp.uint16))
    display: jnp.ndarray = field(default_factory=lambda: jnp.zeros((SCREEN_WIDTH, SCREEN_HEIGHT), dtype=jnp.bool_))
    stack: StackState = StackState()
    delay_timer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    sound_timer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    input_mask: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))
    V: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_REGISTERS, dtype=jnp.uint8))
    I: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))
    instruction_count: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint32))
    quirks: Quirks = field(pytree_node=False, default=Quirks())

    @property
    def stack_pointer(self) -> jnp.ndarray:
        """Number of active call frames."""
        return self.stack.pointer


def create_state(rng: jax.random.PRNGKey = jax.random.PRNGKey(0), quirks: Quirks = Quirks()) -> EmulatorState:
    """Create initial emulator state with font data loaded."""
    state = EmulatorState(rng, quirks=quirks)
    font = jnp.array(FONT_DATA, dtype=jnp.uint8)
    return state.replace(memory=state.memory.at[FONT_START:FONT_START + len(FONT_DATA)].set(font))


def reset_state(state: EmulatorState) -> EmulatorState:
    """Return the power-on state, keeping the PRNG key and quirks of ``state``."""
    return create_state(state.rng, state.quirks)


def with_input_mask(state: EmulatorState, input_mask) -> EmulatorState:
    """Replace the whole key-down bitmask."""
    return state.replace(input_mask=jnp.asarray(input_mask, dtype=jnp.uint16))


def press_key(state: EmulatorState, key: int) -> EmulatorState:
    """Mark key 0x0-0xF as held down."""
    if not 0 <= key < NUM_KEYS:
        raise ValueError(f"Key must be in [0, {NUM_KEYS}), got {key}")
    return state.replace(input_mask=state.input_mask | jnp.uint16(1 << key))


def release_key(state: EmulatorState, key: int) -> EmulatorState:
    """Mark key 0x0-0xF as released."""
    if not 0 <= key < NUM_KEYS:
        raise ValueError(f"Key must be in [0, {NUM_KEYS}), got {key}")
    return state.replace(input_mask=state.input_mask & jnp.uint16(~(1 << key) & 0xFFFF))


def is_key_down(input_mask, key) -> jnp.ndarray:
    """Whether bit ``key`` of the input mask is set."""
    return ((jnp.asarray(input_mask, dtype=jnp.uint16) >> (key & 0xF)) & 1) == 1
