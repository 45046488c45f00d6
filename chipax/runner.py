"""Host-side driver: frames, headless runs and the error policy.

The engine only ever executes one instruction and reports an error code.
``Chip8Runner`` groups instructions into frames and timer ticks under
``jax.lax.scan`` and decides, on the host, whether a fault halts emulation.
"""

import os
from functools import partial
from typing import Optional, Union

import jax
import jax.numpy as jnp
import numpy as np

from chipax.config import EmulatorConfig
from chipax.constants import MAX_ROM_SIZE
from chipax.emulator import execute_current_instruction, tick_timers, load_rom, skip_instruction
from chipax.errors import EngineError, RomTooLargeError, UnknownOpcodeError, fault_from_error
from chipax.logging import ConsoleLogger, get_logger, scan_with_progress
from chipax.state import EmulatorState, create_state, with_input_mask


class Chip8Runner:
    """Drives the timestep loop of a CHIP-8 program for a host.

    Timers tick once every ``config.instructions_per_tick`` instructions and a
    frame runs ``config.instructions_per_frame`` instructions. Runs stop at the
    first engine error; ``handle_error`` then applies the configured policy.
    """

    def __init__(
        self,
        rom: Union[bytes, bytearray, str, os.PathLike],
        config: Optional[EmulatorConfig] = None,
        logger: Optional[ConsoleLogger] = None,
    ):
        """Initialize the runner.

        Args:
            rom: ROM bytes, or path to the ROM file to load
            config: Emulator configuration, defaults to EmulatorConfig()
            logger: Logger for error reports, defaults to the shared "chipax" logger

        Raises:
            RomTooLargeError: ROM does not fit in program memory
        """
        self.config = config or EmulatorConfig()
        self.logger = logger or get_logger(log_level=self.config.log_level)

        if isinstance(rom, (str, os.PathLike)):
            self.rom_path = os.fspath(rom)
            with open(rom, 'rb') as f:
                rom = f.read()
        else:
            self.rom_path = None
        self.rom_data = bytes(rom)
        if len(self.rom_data) > MAX_ROM_SIZE:
            raise RomTooLargeError(len(self.rom_data))

    @property
    def instructions_per_tick(self) -> int:
        return self.config.instructions_per_tick

    @property
    def instructions_per_frame(self) -> int:
        return self.config.instructions_per_frame

    def reset(self, rng: Optional[jax.random.PRNGKey] = None) -> EmulatorState:
        """Power-on state with the ROM loaded."""
        if rng is None:
            rng = jax.random.PRNGKey(self.config.seed)
        state = create_state(rng, self.config.quirks)
        return load_rom(state, self.rom_data)

    def _cycle(self, carry, _):
        """One instruction, preceded by a timer tick at the start of each tick group.

        Tick groups follow ``state.instruction_count``, so they carry on across
        frames and runs. A failing instruction leaves the state untouched, its
        tick included.
        """
        state, error, executed, limit = carry

        def run_instruction(state):
            ticked = jax.lax.cond(
                state.instruction_count % self.instructions_per_tick == 0,
                tick_timers,
                lambda s: s,
                state
            )
            new_state, error = execute_current_instruction(ticked)
            completed = error == int(EngineError.NONE)
            new_state = jax.lax.cond(
                completed,
                lambda: new_state.replace(instruction_count=new_state.instruction_count + 1),
                lambda: state,
            )
            return new_state, error, executed + completed

        state, error, executed = jax.lax.cond(
            (error == int(EngineError.NONE)) & (executed < limit),
            run_instruction,
            lambda s: (s, error, executed),
            state
        )
        return (state, error, executed, limit), None

    def _scan(self, state: EmulatorState, length: int, progress: bool = False, limit=None):
        cycle = self._cycle
        if progress:
            cycle = scan_with_progress(length)(cycle)
        init = (
            state,
            jnp.asarray(int(EngineError.NONE), dtype=jnp.int32),
            jnp.zeros((), dtype=jnp.int32),
            jnp.asarray(length if limit is None else limit, dtype=jnp.int32),
        )
        (state, error, executed, _), _ = jax.lax.scan(cycle, init, jnp.arange(length))
        return state, error, executed

    @partial(jax.jit, static_argnums=0)
    def run_frame(self, state: EmulatorState, input_mask) -> tuple[EmulatorState, jnp.ndarray]:
        """Set the key-down bitmask and run one frame worth of instructions.

        Returns:
            Tuple of the new state and the EngineError code that stopped the
            frame early (EngineError.NONE if the frame completed)
        """
        state = with_input_mask(state, input_mask)
        state, error, _ = self._scan(state, self.instructions_per_frame)
        return state, error

    @partial(jax.jit, static_argnums=(0, 2, 3))
    def run(self, state: EmulatorState, num_instructions: int, progress: bool = False, limit=None):
        """Run ``num_instructions`` instructions headlessly, stopping at the first error.

        ``limit`` lowers the instruction count without changing the compiled
        scan length, so a host resuming after a fault reuses the same trace.

        Returns:
            Tuple of the new state, the EngineError code that stopped the run
            (EngineError.NONE if it completed) and the number of instructions executed
        """
        return self._scan(state, num_instructions, progress, limit)

    def handle_error(self, state: EmulatorState, error) -> tuple[EmulatorState, bool]:
        """Apply the error policy to an engine error code.

        Unknown opcodes are skipped when ``config.on_unknown_opcode`` is
        "skip"; every other error halts.

        Returns:
            Tuple of the state to continue from and whether emulation must halt
        """
        fault = fault_from_error(state, error)
        if fault is None:
            return state, False
        if isinstance(fault, UnknownOpcodeError) and self.config.on_unknown_opcode == "skip":
            self.logger.warning(fault.report())
            return skip_instruction(state), False
        self.logger.error(fault.report())
        return state, True

    def rollout(self, state: EmulatorState, num_frames: int, input_mask: int = 0) -> tuple[EmulatorState, np.ndarray]:
        """Run up to ``num_frames`` frames with a constant input mask.

        Returns:
            Tuple of the final state and the displays after each frame, shape
            (frames_run, 64, 32)
        """
        displays = []
        for _ in range(num_frames):
            state, error = self.run_frame(state, input_mask)
            displays.append(np.asarray(state.display))
            state, halted = self.handle_error(state, error)
            if halted:
                break
        return state, np.stack(displays) if displays else np.zeros((0, 64, 32), dtype=np.bool_)
