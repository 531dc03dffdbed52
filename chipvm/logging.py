"""Console logging utilities for chipvm.

Provides a small leveled console logger and an emulator-specific subclass
that reports run configuration, instruction traces and machine halts.
"""

import sys
import time
from typing import Any, Dict, Optional

from chipvm.decode import disassemble


class ConsoleLogger:
    """Leveled console logger with optional colors and elapsed-time stamps."""

    LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        name: str = "chipvm",
        log_level: str = "INFO",
        use_colors: bool = True,
        show_timestamps: bool = True,
    ):
        level = log_level.upper()
        if level not in self.LEVELS:
            raise ValueError(f"Unknown log level '{log_level}'. Available: {list(self.LEVELS)}")
        self.name = name
        self.log_level = level
        self.use_colors = (
            use_colors and hasattr(sys.stdout, "isatty") and sys.stdout.isatty()
        )
        self.show_timestamps = show_timestamps
        self.start_time = time.time()

    def is_enabled_for(self, level: str) -> bool:
        """Check if messages at ``level`` pass the current log level."""
        return self.LEVELS.index(level.upper()) >= self.LEVELS.index(self.log_level)

    def _format_message(self, level: str, message: str) -> str:
        timestamp = (
            f"[{time.time() - self.start_time:8.2f}s]" if self.show_timestamps else ""
        )
        level_str = f"[{level:>8s}]"
        if self.use_colors:
            level_str = f"{self.COLORS[level]}{level_str}{self.RESET}"
        return f"{timestamp}{level_str}[{self.name}] {message}"

    def log(self, level: str, message: str):
        """Log a message at the specified level."""
        level = level.upper()
        if self.is_enabled_for(level):
            print(self._format_message(level, message), flush=True)

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


class EmulatorLogger(ConsoleLogger):
    """Logger for machine runs: configuration banner, traces and halts."""

    def __init__(self, name: str = "chipvm", **kwargs):
        super().__init__(name, **kwargs)
        self.instructions_logged = 0

    def log_run_start(self, config: Dict[str, Any]):
        """Log machine configuration before the run loop starts."""
        self.info("=" * 48)
        self.info("Starting machine with configuration:")
        for key, value in config.items():
            self.info(f"  {key}: {value}")
        self.info("=" * 48)

    def log_instruction(self, address: int, instruction: int):
        """Trace one executed instruction at DEBUG level."""
        if not self.is_enabled_for("DEBUG"):
            return
        self.instructions_logged += 1
        self.debug(f"0x{address:03X}: {instruction:04X}  {disassemble(instruction)}")

    def log_halt(self, error: Exception, frame: Optional[int] = None):
        """Report a fatal machine condition."""
        where = f" during frame {frame}" if frame is not None else ""
        self.error(f"Machine halted{where}: {error}")
