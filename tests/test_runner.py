"""Tests for the host-side runner."""

import io

import pytest
import jax.numpy as jnp
from chipax import Chip8Runner, EmulatorConfig, EngineError, Quirks, RomTooLargeError
from chipax.logging import ConsoleLogger

LOOP = bytes([0x12, 0x00])  # 0x200: jump 0x200


@pytest.fixture
def log_stream():
    return io.StringIO()


def make_runner(rom, log_stream=None, **config):
    logger = ConsoleLogger(log_level="DEBUG", stream=log_stream or io.StringIO())
    return Chip8Runner(rom, EmulatorConfig(**config), logger)


def test_reset_loads_rom():
    runner = make_runner(b"\x60\x2A")
    state = runner.reset()

    assert state.pc == 0x200
    assert state.memory[0x200] == 0x60
    assert state.memory[0x201] == 0x2A


def test_reset_uses_config_quirks():
    runner = make_runner(LOOP, quirks=Quirks.cosmac())
    assert runner.reset().quirks == Quirks.cosmac()


def test_rom_from_path(tmp_path):
    rom_file = tmp_path / "loop.ch8"
    rom_file.write_bytes(LOOP)

    runner = make_runner(rom_file)

    assert runner.rom_path == str(rom_file)
    assert runner.rom_data == LOOP


def test_rom_too_large():
    with pytest.raises(RomTooLargeError):
        make_runner(bytes(3585))


def test_run_counts_instructions():
    runner = make_runner(LOOP)
    state, error, executed = runner.run(runner.reset(), 10)

    assert int(error) == EngineError.NONE
    assert int(executed) == 10
    assert state.pc == 0x200


def test_run_stops_at_first_error():
    runner = make_runner(bytes([0x60, 0x05, 0xFF, 0xFF, 0x61, 0x01]))
    state, error, executed = runner.run(runner.reset(), 5)

    assert int(error) == EngineError.UNKNOWN_OPCODE
    assert int(executed) == 1
    assert state.pc == 0x202
    assert state.V[0] == 5
    assert state.V[1] == 0


def test_timers_tick_per_group():
    """Timers tick at the start of every group of instructions_per_tick instructions."""
    runner = make_runner(LOOP, instruction_frequency=120, timer_frequency=60)
    assert runner.instructions_per_tick == 2

    state = runner.reset().replace(delay_timer=jnp.uint8(10))
    state, _, _ = runner.run(state, 5)

    assert state.delay_timer == 7  # Ticks before instructions 0, 2 and 4


@pytest.mark.parametrize("fps", [30, 40, 120])
def test_timer_rate_independent_of_fps(fps):
    """One emulated second ticks the timers timer_frequency times at any frame rate."""
    runner = make_runner(LOOP, instruction_frequency=600, timer_frequency=60, fps=fps)
    state = runner.reset().replace(delay_timer=jnp.uint8(255))

    for _ in range(fps):
        state, error = runner.run_frame(state, 0)
        assert int(error) == EngineError.NONE

    assert state.instruction_count == 600
    assert 255 - int(state.delay_timer) == 60


def test_tick_groups_continue_across_runs():
    runner = make_runner(LOOP, instruction_frequency=120, timer_frequency=60)
    state = runner.reset().replace(delay_timer=jnp.uint8(10))

    state, _, _ = runner.run(state, 3)  # Ticks before instructions 0 and 2
    state, _, _ = runner.run(state, 2)  # Tick before instruction 4 only

    assert state.instruction_count == 5
    assert state.delay_timer == 7


def test_failed_instruction_does_not_tick():
    runner = make_runner(b"\xFF\xFF")
    state = runner.reset().replace(delay_timer=jnp.uint8(10))

    new_state, error, _ = runner.run(state, 3)

    assert int(error) == EngineError.UNKNOWN_OPCODE
    assert new_state.delay_timer == 10
    assert new_state.instruction_count == 0


def test_run_limit():
    runner = make_runner(LOOP)
    state, error, executed = runner.run(runner.reset(), 10, False, 4)

    assert int(error) == EngineError.NONE
    assert int(executed) == 4
    assert state.instruction_count == 4


def test_run_frame_sets_input():
    runner = make_runner(bytes([0xF0, 0x0A, 0x12, 0x02]), instruction_frequency=600, fps=60)
    assert runner.instructions_per_frame == 10
    state = runner.reset()

    state, error = runner.run_frame(state, 0)
    assert int(error) == EngineError.NONE
    assert state.pc == 0x200

    state, error = runner.run_frame(state, 1 << 5)
    assert state.input_mask == 1 << 5
    assert state.V[0] == 5
    assert state.pc == 0x202


def test_handle_error_halts(log_stream):
    runner = make_runner(b"\xFF\xFF", log_stream)
    state, error, _ = runner.run(runner.reset(), 3)

    state, halted = runner.handle_error(state, error)

    assert halted
    assert state.pc == 0x200
    assert "Unknown opcode (FFFF)" in log_stream.getvalue()
    assert "ERROR" in log_stream.getvalue()


def test_handle_error_skips_unknown(log_stream):
    runner = make_runner(b"\xFF\xFF\x60\x01", log_stream, on_unknown_opcode="skip")
    state, error, _ = runner.run(runner.reset(), 1)

    state, halted = runner.handle_error(state, error)

    assert not halted
    assert state.pc == 0x202
    assert "WARNING" in log_stream.getvalue()


def test_handle_error_stack_errors_always_halt():
    runner = make_runner(b"\x00\xEE", on_unknown_opcode="skip")
    state, error, _ = runner.run(runner.reset(), 1)

    _, halted = runner.handle_error(state, error)

    assert halted


def test_handle_error_no_error():
    runner = make_runner(LOOP)
    state = runner.reset()

    new_state, halted = runner.handle_error(state, jnp.int32(0))

    assert not halted
    assert new_state is state


def test_rollout_collects_displays():
    rom = bytes([
        0xA0, 0x00,  # I = glyph "0"
        0xD0, 0x05,  # draw at (V0, V0)
        0x12, 0x04,  # loop
    ])
    runner = make_runner(rom, instruction_frequency=60, fps=60)
    state, displays = runner.rollout(runner.reset(), 3)

    assert displays.shape == (3, 64, 32)
    assert not displays[0].any()  # Only I was set after the first frame
    assert displays[1][0, 0]
    assert displays[2].sum() == displays[1].sum()


def test_rollout_stops_on_halt():
    runner = make_runner(b"\x00\xEE", instruction_frequency=60, fps=60)
    _, displays = runner.rollout(runner.reset(), 5)

    assert displays.shape == (1, 64, 32)
