"""Tests for engine error codes and host exceptions."""

import pytest
import jax.numpy as jnp
from chipax import (
    EngineError, Chip8Error, EngineFault, RomTooLargeError, StackEmptyError,
    StackFullError, UnknownOpcodeError, execute_current_instruction,
    fault_from_error, raise_for_error,
)
from conftest import state_with_rom


def test_no_fault_for_success(fresh_state):
    assert fault_from_error(fresh_state, EngineError.NONE) is None
    raise_for_error(fresh_state, jnp.int32(0))


def test_unknown_opcode_fault():
    state = state_with_rom([0xFF, 0xFF])
    state = state.replace(V=state.V.at[3].set(0x7A), I=jnp.uint16(0x123))
    state, error = execute_current_instruction(state)

    fault = fault_from_error(state, error)

    assert isinstance(fault, UnknownOpcodeError)
    assert fault.program_counter == 0x200
    assert fault.instruction == (0xFF, 0xFF)
    assert fault.nibbles == (0xF, 0xF, 0xF, 0xF)
    assert fault.instruction_hex == "FFFF"
    assert fault.registers[3] == 0x7A
    assert fault.index == 0x123
    assert fault.stack_pointer == 0


def test_report_block():
    state, error = execute_current_instruction(state_with_rom([0x00, 0xEE]))

    report = fault_from_error(state, error).report()
    lines = report.splitlines()

    assert lines[0] == "Return with empty stack (00EE)"
    assert "Raw(0, 238) Hex(00, EE)" in report
    assert "Raw(0, 0, 14, 14) Hex(0, 0, E, E)" in report
    assert "0x200" in report
    assert "VF=0x00" in report


@pytest.mark.parametrize("rom,exception", [
    ([0x00, 0xEE], StackEmptyError),
    ([0xFF, 0xFF], UnknownOpcodeError),
])
def test_raise_for_error(rom, exception):
    state, error = execute_current_instruction(state_with_rom(rom))

    with pytest.raises(exception):
        raise_for_error(state, error)


def test_stack_full_fault():
    state = state_with_rom([0x23, 0x00])
    state = state.replace(stack=state.stack.replace(pointer=jnp.asarray(16, dtype=jnp.int32)))
    state, error = execute_current_instruction(state)

    fault = fault_from_error(state, error)

    assert isinstance(fault, StackFullError)
    assert fault.stack_pointer == 16
    assert "Call with full stack" in str(fault)


def test_exception_hierarchy():
    assert issubclass(RomTooLargeError, Chip8Error)
    for exception in (StackEmptyError, StackFullError, UnknownOpcodeError):
        assert issubclass(exception, EngineFault)
        assert issubclass(exception, Chip8Error)


def test_rom_too_large_message():
    error = RomTooLargeError(4000)
    assert str(error) == "ROM is 4000 bytes but interpreter only supports 3584 bytes maximum"
