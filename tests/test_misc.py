"""Tests for miscellaneous instructions (Fxxx)."""

import pytest
import jax.numpy as jnp
from chipax import create_state, press_key, with_input_mask, Quirks, FONT_START
from conftest import run


class TestTimers:
    """Test timer-related instructions."""

    def test_misc_timer_instructions(self, fresh_state):
        """Test timer set and get operations."""
        state = run(fresh_state, 0x6030, 0xF015)  # delay timer = V0 = 48
        assert state.delay_timer == 48

        state = run(state, 0x6120, 0xF118)  # sound timer = V1 = 32
        assert state.sound_timer == 32

        state = run(state, 0xF207)  # V2 = delay timer
        assert state.V[2] == 48


class TestBCD:
    """Test BCD conversion."""

    def test_misc_bcd_conversion(self, fresh_state):
        """Test BCD conversion with 156."""
        state = run(fresh_state, 0x609C, 0xA300, 0xF033)

        assert state.memory[0x300] == 1  # Hundreds
        assert state.memory[0x301] == 5  # Tens
        assert state.memory[0x302] == 6  # Ones

    @pytest.mark.parametrize("value,digits", [(0, (0, 0, 0)), (7, (0, 0, 7)), (42, (0, 4, 2)), (255, (2, 5, 5))])
    def test_bcd_edge_cases(self, fresh_state, value, digits):
        state = run(fresh_state, 0x6000 | value, 0xA400, 0xF033)

        assert tuple(int(d) for d in state.memory[0x400:0x403]) == digits
        assert state.I == 0x400

    def test_bcd_wraps_memory(self, fresh_state):
        state = run(fresh_state, 0x60FF, 0xAFFF, 0xF033)

        assert state.memory[0xFFF] == 2
        assert state.memory[0x000] == 5
        assert state.memory[0x001] == 5


class TestFontCharacter:
    """FX29 - I = address of the glyph for the low nibble of VX."""

    def test_misc_font_character(self, fresh_state):
        state = run(fresh_state, 0x600A, 0xF029)
        assert state.I == FONT_START + 0xA * 5

    @pytest.mark.parametrize("digit", range(16))
    def test_font_all_characters(self, fresh_state, digit):
        state = run(fresh_state, 0x6000 | digit, 0xF029)
        assert state.I == FONT_START + digit * 5

    def test_font_uses_low_nibble(self, fresh_state):
        state = run(fresh_state, 0x601A, 0xF029)
        assert state.I == FONT_START + 0xA * 5


class TestStoreLoad:
    """FX55 / FX65 register dumps."""

    def test_store_load_modern(self, modern_state):
        """I is left unchanged by default."""
        state = run(modern_state, 0x6011, 0x6122, 0x6233, 0x6344, 0xA300, 0xF255)

        assert [int(v) for v in state.memory[0x300:0x304]] == [0x11, 0x22, 0x33, 0]
        assert state.I == 0x300

        state = state.replace(V=jnp.zeros_like(state.V))
        state = run(state, 0xF265)
        assert [int(v) for v in state.V[:4]] == [0x11, 0x22, 0x33, 0]
        assert state.I == 0x300

    def test_store_load_cosmac(self, cosmac_state):
        """The load_store_increments_i quirk leaves I past the last register."""
        state = run(cosmac_state, 0x6011, 0x6122, 0x6233, 0xA300, 0xF255)
        assert state.I == 0x303

        state = run(state, 0xA300, 0xF165)
        assert state.I == 0x302

    def test_store_v0_only(self, fresh_state):
        state = run(fresh_state, 0x60AB, 0x61CD, 0xA300, 0xF055)

        assert state.memory[0x300] == 0xAB
        assert state.memory[0x301] == 0

    def test_store_all_registers(self, fresh_state):
        V = jnp.arange(16, dtype=jnp.uint8) + 1
        state = run(fresh_state.replace(V=V), 0xA300, 0xFF55)

        assert jnp.array_equal(state.memory[0x300:0x310], V)

    def test_load_leaves_higher_registers(self, fresh_state):
        state = fresh_state.replace(
            memory=fresh_state.memory.at[0x300:0x303].set(jnp.array([1, 2, 3], dtype=jnp.uint8)),
            V=fresh_state.V.at[2].set(0x99),
        )
        state = run(state, 0xA300, 0xF165)

        assert state.V[0] == 1
        assert state.V[1] == 2
        assert state.V[2] == 0x99


class TestWaitForKey:
    """FX0A - Wait for key press."""

    def test_wait_for_key_blocking(self, fresh_state):
        """Without a key the program counter moves back onto the instruction."""
        state = fresh_state.replace(pc=jnp.uint16(0x202))

        state = run(state, 0xF30A)

        assert state.pc == 0x200
        assert state.V[3] == 0

    def test_wait_for_key_pressed(self, fresh_state):
        state = press_key(fresh_state.replace(pc=jnp.uint16(0x202)), 0x7)

        state = run(state, 0xF30A)

        assert state.pc == 0x202
        assert state.V[3] == 0x7

    def test_wait_for_key_lowest_key_wins(self, fresh_state):
        state = with_input_mask(fresh_state, (1 << 0xC) | (1 << 0x5) | (1 << 0x9))

        state = run(state, 0xF00A)

        assert state.V[0] == 0x5


class TestAddToIndex:
    """FX1E - I += VX."""

    def test_add_to_index(self, fresh_state):
        state = run(fresh_state, 0xA300, 0x6010, 0xF01E)

        assert state.I == 0x310
        assert state.V[15] == 0

    def test_add_to_index_overflow(self, fresh_state):
        """Leaving the 12-bit range wraps I and sets VF by default."""
        state = run(fresh_state, 0xAFFF, 0x6002, 0xF01E)

        assert state.I == 0x001
        assert state.V[15] == 1

    def test_add_to_index_clears_flag(self, fresh_state):
        state = run(fresh_state, 0x6F01, 0xA100, 0x6001, 0xF01E)

        assert state.I == 0x101
        assert state.V[15] == 0

    def test_add_to_index_without_flag(self):
        state = create_state(quirks=Quirks(index_overflow_sets_vf=False))
        state = run(state, 0x6F07, 0xAFFF, 0x6002, 0xF01E)

        assert state.I == 0x001
        assert state.V[15] == 7
