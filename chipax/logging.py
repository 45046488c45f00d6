"""Console logging for the emulator host.

``ConsoleLogger`` prints leveled, optionally colored lines; engine fault
reports span several lines and every line gets the prefix. ``scan_with_progress``
wraps a ``jax.lax.scan`` body so long headless runs show a tqdm bar, fed from
inside the compiled loop through ``io_callback``.
"""

import sys
import time
from typing import Callable, Dict, Optional

import jax
from jax.experimental import io_callback
from tqdm import tqdm

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
_RESET = "\033[0m"


class ConsoleLogger:
    """Leveled console logger with colors and timestamps.

    Colors are only used when the stream is a terminal. Timestamps are seconds
    since the logger was created.
    """

    def __init__(
        self,
        name: str = "chipax",
        log_level: str = "INFO",
        use_colors: bool = True,
        show_timestamps: bool = True,
        stream=None,
    ):
        self.name = name
        self.stream = stream or sys.stdout
        self.use_colors = use_colors and getattr(self.stream, "isatty", lambda: False)()
        self.show_timestamps = show_timestamps
        self.start_time = time.time()
        self.set_level(log_level)

    def set_level(self, log_level: str):
        """Change the minimum level of logged messages."""
        self.log_level = log_level.upper()
        if self.log_level not in LEVELS:
            raise ValueError(f"Unknown log level '{log_level}'. Available: {list(LEVELS)}")

    def is_enabled_for(self, level: str) -> bool:
        return LEVELS.index(level.upper()) >= LEVELS.index(self.log_level)

    def _prefix(self, level: str) -> str:
        level_str = f"[{level:>8s}]"
        if self.use_colors:
            level_str = f"{_COLORS[level]}{level_str}{_RESET}"
        timestamp = f"[{time.time() - self.start_time:8.2f}s]" if self.show_timestamps else ""
        return f"{timestamp}{level_str}[{self.name}]"

    def log(self, level: str, message: str):
        """Log a message at ``level``, one prefixed line per message line."""
        level = level.upper()
        if not self.is_enabled_for(level):
            return
        prefix = self._prefix(level)
        for line in str(message).splitlines() or [""]:
            print(f"{prefix} {line}", file=self.stream, flush=True)

    def debug(self, message: str):
        self.log("DEBUG", message)

    def info(self, message: str):
        self.log("INFO", message)

    def warning(self, message: str):
        self.log("WARNING", message)

    def error(self, message: str):
        self.log("ERROR", message)

    def critical(self, message: str):
        self.log("CRITICAL", message)


_LOGGERS: Dict[str, ConsoleLogger] = {}


def get_logger(name: str = "chipax", log_level: Optional[str] = None) -> ConsoleLogger:
    """Return the shared logger called ``name``, creating it on first use."""
    if name not in _LOGGERS:
        _LOGGERS[name] = ConsoleLogger(name, log_level or "INFO")
    elif log_level is not None:
        _LOGGERS[name].set_level(log_level)
    return _LOGGERS[name]


class ScanProgressBar:
    """tqdm bar driven by the iteration index of a ``jax.lax.scan``.

    The bar opens at iteration 0, advances every ``print_rate`` iterations and
    closes after iteration ``total - 1``. Host callbacks are ordered, so the
    updates arrive in iteration order.
    """

    def __init__(self, total: int, print_rate: Optional[int] = None, desc: Optional[str] = None, **tqdm_kwargs):
        self.total = total
        if print_rate is None:
            print_rate = min(total // 20, 1000)
        self.print_rate = max(1, min(print_rate, total))
        self.desc = desc or f"Emulating ({total:,} instructions)"
        for kwarg in ("total", "mininterval", "maxinterval", "miniters"):
            tqdm_kwargs.pop(kwarg, None)
        self.tqdm_kwargs = tqdm_kwargs
        self._bar = None

    def _open(self):
        self._bar = tqdm(total=self.total, desc=self.desc, unit="instr", **self.tqdm_kwargs)

    def _advance(self, steps):
        if self._bar is not None:
            self._bar.update(int(steps))

    def _finish(self, steps):
        if self._bar is not None:
            self._bar.update(int(steps))
            self._bar.close()
            self._bar = None

    def _on_host(self, condition, callback, *args):
        jax.lax.cond(
            condition,
            lambda _: io_callback(callback, None, *args, ordered=True),
            lambda _: None,
            operand=None,
        )

    def update(self, iter_num):
        """Report that iteration ``iter_num`` is done."""
        last = iter_num == self.total - 1
        self._on_host(iter_num == 0, self._open)
        self._on_host(((iter_num + 1) % self.print_rate == 0) & ~last, self._advance, self.print_rate)
        tail = self.total % self.print_rate or self.print_rate
        self._on_host(last, self._finish, tail)


def scan_with_progress(
    n: int,
    print_rate: Optional[int] = None,
    desc: Optional[str] = None,
    **tqdm_kwargs,
) -> Callable:
    """Decorator adding a progress bar to a scan body called with the iteration index.

    The scan ``xs`` must be ``jnp.arange(n)``, or a tuple whose first item is.
    """
    progress_bar = ScanProgressBar(n, print_rate, desc, **tqdm_kwargs)

    def _scan_progress_decorator(func):
        def wrapper_with_progress(carry, x):
            iter_num = x[0] if isinstance(x, tuple) else x
            result = func(carry, x)
            progress_bar.update(iter_num)
            return result

        return wrapper_with_progress

    return _scan_progress_decorator
