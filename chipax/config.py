"""Emulator configuration: interpreter quirks and host settings.

Settings are plain dataclasses so they can be built directly in code, and
``load_config`` layers a YAML file and ``key=value`` overrides on top of the
defaults with OmegaConf::

    config = load_config("chip8.yaml", ["fps=30", "quirks.clip_sprites=true"])
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

from omegaconf import OmegaConf


@dataclass(unsafe_hash=True)
class Quirks:
    """Switches for the historically ambiguous CHIP-8 behaviours.

    The instance is stored as a static field on the emulator state, so it must
    stay hashable: changing quirks triggers a recompilation under ``jax.jit``.

    Attributes:
        shift_uses_vy: 8XY6/8XYE shift VY into VX instead of shifting VX in place
        logic_resets_vf: 8XY1/8XY2/8XY3 clear VF
        jump_uses_vx: BNNN is read as BXNN and jumps to NN + VX instead of NNN + V0
        load_store_increments_i: FX55/FX65 leave I pointing past the last register
        index_overflow_sets_vf: FX1E sets VF when I + VX leaves the 12-bit range
        clip_sprites: DXYN clips pixels at the screen edges instead of wrapping
    """
    shift_uses_vy: bool = False
    logic_resets_vf: bool = False
    jump_uses_vx: bool = False
    load_store_increments_i: bool = False
    index_overflow_sets_vf: bool = True
    clip_sprites: bool = False

    @classmethod
    def modern(cls) -> "Quirks":
        """Behaviour of modern interpreters (the defaults)."""
        return cls()

    @classmethod
    def cosmac(cls) -> "Quirks":
        """Behaviour of the original COSMAC VIP interpreter."""
        return cls(
            shift_uses_vy=True,
            logic_resets_vf=True,
            load_store_increments_i=True,
            index_overflow_sets_vf=False,
            clip_sprites=True,
        )


UNKNOWN_OPCODE_POLICIES = ("halt", "skip")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class EmulatorConfig:
    """Host-side emulator settings.

    Attributes:
        instruction_frequency: Instructions executed per second
        timer_frequency: Delay/sound timer decrements per second
        fps: Frames rendered per second by the host loop
        seed: Seed of the PRNG key used by CXNN
        on_unknown_opcode: "halt" to stop on an unknown opcode, "skip" to step over it
        log_level: Console log level
        scale: Window/screenshot upscaling factor
        color_scheme: Rendering color scheme name
        quirks: Interpreter quirks
    """
    instruction_frequency: int = 700
    timer_frequency: int = 60
    fps: int = 60
    seed: int = 0
    on_unknown_opcode: str = "halt"
    log_level: str = "INFO"
    scale: int = 10
    color_scheme: str = "classic"
    quirks: Quirks = field(default_factory=Quirks)

    @property
    def instructions_per_tick(self) -> int:
        """Instructions executed between two timer decrements.

        Rounded down, so timers run slightly fast when ``timer_frequency``
        does not divide ``instruction_frequency`` (700 Hz / 60 Hz gives 11,
        about 63.6 ticks per emulated second).
        """
        return max(1, self.instruction_frequency // self.timer_frequency)

    @property
    def instructions_per_frame(self) -> int:
        """Instructions executed per rendered frame.

        Rounded down, so the effective instruction rate is
        ``instructions_per_frame * fps`` (660 Hz with the 700 Hz / 60 fps
        defaults). Pick an ``fps`` dividing ``instruction_frequency`` for an
        exact rate.
        """
        return max(1, self.instruction_frequency // self.fps)


def validate_config(config: EmulatorConfig) -> EmulatorConfig:
    """Check value ranges that the type system cannot express."""
    for name in ("instruction_frequency", "timer_frequency", "fps", "scale"):
        if getattr(config, name) <= 0:
            raise ValueError(f"'{name}' must be positive, got {getattr(config, name)}")
    if config.on_unknown_opcode not in UNKNOWN_OPCODE_POLICIES:
        raise ValueError(
            f"Unknown opcode policy '{config.on_unknown_opcode}'. "
            f"Available: {list(UNKNOWN_OPCODE_POLICIES)}"
        )
    config.log_level = config.log_level.upper()
    if config.log_level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level '{config.log_level}'. Available: {list(LOG_LEVELS)}")
    return config


def load_config(path: Optional[str] = None, overrides: Sequence[str] = ()) -> EmulatorConfig:
    """Build an EmulatorConfig from defaults, an optional YAML file and dotlist overrides.

    Args:
        path: Optional YAML file with any subset of EmulatorConfig fields
        overrides: ``key=value`` strings, e.g. ``["quirks.shift_uses_vy=true"]``

    Returns:
        Validated EmulatorConfig instance
    """
    config = OmegaConf.structured(EmulatorConfig)
    if path is not None:
        config = OmegaConf.merge(config, OmegaConf.load(path))
    if overrides:
        config = OmegaConf.merge(config, OmegaConf.from_dotlist(list(overrides)))
    return validate_config(OmegaConf.to_object(config))
