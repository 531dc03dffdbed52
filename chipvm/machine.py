"""Driver-facing CHIP-8 machine."""

from typing import Callable, Optional

import jax
import jax.numpy as jnp
import numpy as np
from chex import dataclass
from tqdm import tqdm

from chipvm.config import MachineConfig
from chipvm.emulator import fetch, execute, run_cycles, tick_timers, set_keys, load_program
from chipvm.errors import Chip8Error
from chipvm.logging import EmulatorLogger
from chipvm.rendering import display_to_rgb, create_color_scheme
from chipvm.state import MachineState, create_state


@dataclass(frozen=True)
class FrameResult:
    """Outcome of one emulated frame.

    Attributes:
        display: Packed (32, 8) framebuffer after the frame
        instructions: Number of instructions executed
        beeped: Whether the audio sink was signalled this frame
        halted: Whether a fatal condition stopped the machine
        error: Message of the fatal condition, if any
    """
    display: jnp.ndarray
    instructions: int
    beeped: bool
    halted: bool
    error: Optional[str] = None


class Chip8Machine:
    """One CHIP-8 machine instance with its program and collaborators.

    Each instance owns its own state; instances share nothing.
    """

    def __init__(
        self,
        program: bytes,
        config: MachineConfig = MachineConfig(),
        beep: Optional[Callable[[], None]] = None,
        logger: Optional[EmulatorLogger] = None,
    ):
        """Initialize the machine.

        Args:
            program: Raw program bytes loaded at 0x200
            config: Quirks and rates, fixed for the run
            beep: Audio sink, called once per frame while the sound timer is nonzero
            logger: Logger for load, trace and halt messages
        """
        self.program = bytes(program)
        self.config = config
        self.beep = beep
        self.logger = logger or EmulatorLogger()
        self.state: MachineState = None
        self.error: Optional[Chip8Error] = None
        self.frame = 0
        self.reset()

    @classmethod
    def from_rom(cls, rom_path: str, **kwargs) -> "Chip8Machine":
        """Create a machine from a ROM file."""
        with open(rom_path, 'rb') as f:
            return cls(f.read(), **kwargs)

    @property
    def halted(self) -> bool:
        return self.error is not None

    def reset(self, rng: Optional[jax.random.PRNGKey] = None) -> MachineState:
        """Restore the power-on state with the program loaded."""
        if rng is None:
            rng = jax.random.PRNGKey(self.config.seed)
        state = create_state(rng, quirks=self.config.quirks)
        self.state = load_program(state, self.program)
        self.error = None
        self.frame = 0
        self.logger.info(f"Loaded program: {len(self.program)} bytes")
        return self.state

    def _halt(self, error: Chip8Error) -> None:
        self.error = error
        self.logger.log_halt(error, self.frame)

    def _halted_result(self, executed: int) -> FrameResult:
        return FrameResult(display=self.state.display, instructions=executed, beeped=False,
                           halted=True, error=str(self.error))

    def step(self) -> MachineState:
        """Execute one instruction. Fatal conditions propagate and halt the machine."""
        if self.halted:
            raise self.error
        address = int(self.state.pc)
        try:
            state, instruction = fetch(self.state)
            self.logger.log_instruction(address, instruction)
            self.state = execute(state, instruction)
        except Chip8Error as e:
            self._halt(e)
            raise
        return self.state

    def _trace_cycles(self, count: int) -> int:
        """Run ``count`` instructions one at a time so each is traced."""
        for executed in range(count):
            try:
                self.step()
            except Chip8Error:
                return executed
        return count

    def step_frame(self, keys: int = 0) -> FrameResult:
        """Run one frame: sample keys, execute the configured instruction count, tick timers.

        The instructions run in a single compiled loop unless DEBUG tracing is on.
        """
        if self.halted:
            return self._halted_result(0)

        self.state = set_keys(self.state, keys)
        count = self.config.instructions_per_frame
        if self.logger.is_enabled_for("DEBUG"):
            executed = self._trace_cycles(count)
        else:
            self.state, executed, error = run_cycles(self.state, count)
            if error is not None:
                self._halt(error)
        if self.halted:
            return self._halted_result(executed)

        beeped = []
        self.state = tick_timers(self.state, beep=lambda: beeped.append(True))
        if beeped and self.beep is not None:
            self.beep()
        self.frame += 1
        return FrameResult(display=self.state.display, instructions=executed, beeped=bool(beeped),
                           halted=False)

    def run(
        self,
        frames: int,
        input_fn: Optional[Callable[[int], int]] = None,
        progress: bool = False,
    ) -> Optional[FrameResult]:
        """Run up to ``frames`` frames, stopping early if the machine halts.

        Args:
            frames: Number of frames to run
            input_fn: Maps frame number to held-key mask; no keys when omitted
            progress: Show a tqdm progress bar

        Returns:
            Result of the last frame run, None when no frame was run
        """
        self.logger.log_run_start({
            "quirks": self.config.quirks.names() or "none",
            "instructions_per_frame": self.config.instructions_per_frame,
            "frames_per_second": self.config.frames_per_second,
            "frames": frames,
        })
        result = None
        for frame in tqdm(range(frames), disable=not progress, desc="frames"):
            keys = input_fn(frame) if input_fn is not None else 0
            result = self.step_frame(keys)
            if result.halted:
                break
        return result

    def render(self, color_scheme: str = "classic", scale: int = 1) -> np.ndarray:
        """Render the framebuffer as an RGB array."""
        on_color, off_color = create_color_scheme(color_scheme)
        return display_to_rgb(self.state.display, scale=scale, on_color=on_color, off_color=off_color)
