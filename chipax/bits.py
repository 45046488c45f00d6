"""Nibble, byte and address conversions.

All helpers work on Python ints and JAX arrays alike and always return
unsigned JAX scalars, so they can be used inside traced code.
"""

import jax.numpy as jnp


def nibbles_to_byte(top, bottom) -> jnp.ndarray:
    """Pack two nibbles into a byte: (top << 4) | bottom."""
    top = jnp.asarray(top, dtype=jnp.uint8) & 0xF
    bottom = jnp.asarray(bottom, dtype=jnp.uint8) & 0xF
    return (top << 4) | bottom


def nibbles_to_address(nibble_1, nibble_2, nibble_3) -> jnp.ndarray:
    """Pack three nibbles into a 12-bit address, most significant first."""
    nibble_1 = jnp.asarray(nibble_1, dtype=jnp.uint16) & 0xF
    nibble_2 = jnp.asarray(nibble_2, dtype=jnp.uint16) & 0xF
    nibble_3 = jnp.asarray(nibble_3, dtype=jnp.uint16) & 0xF
    return (nibble_1 << 8) | (nibble_2 << 4) | nibble_3


def byte_to_nibbles(byte) -> tuple[jnp.ndarray, jnp.ndarray]:
    """Split a byte into its (top, bottom) nibbles."""
    byte = jnp.asarray(byte, dtype=jnp.uint8)
    return (byte >> 4) & 0xF, byte & 0xF


def word_to_nibbles(word) -> tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray, jnp.ndarray]:
    """Split a big-endian 16-bit instruction word into four nibbles."""
    word = jnp.asarray(word, dtype=jnp.uint16)
    high, low = (word >> 8).astype(jnp.uint8), (word & 0xFF).astype(jnp.uint8)
    return (*byte_to_nibbles(high), *byte_to_nibbles(low))


def nibbles_to_instruction(nibble_1: int, nibble_2: int, nibble_3: int, nibble_4: int) -> bytes:
    """Encode four nibbles as the two ROM bytes of one instruction."""
    return bytes([
        int(nibbles_to_byte(nibble_1, nibble_2)),
        int(nibbles_to_byte(nibble_3, nibble_4)),
    ])
