"""Quirk toggles and run configuration."""

from typing import Any, Iterable, Mapping

from flax import struct

from chipvm.constants import DEFAULT_INSTRUCTIONS_PER_FRAME, DEFAULT_FRAMES_PER_SECOND
from chipvm.errors import ConfigError


@struct.dataclass
class Quirks:
    """Compatibility toggles. All off gives the classic COSMAC VIP behavior.

    Attributes:
        shift_uses_vy: 8XY6/8XYE copy VY into VX before shifting
        bxnn: BNNN adds VX (X being the high nibble of NNN) instead of V0
        increment_index: FX55/FX65 advance I by X + 1
    """
    shift_uses_vy: bool = False
    bxnn: bool = False
    increment_index: bool = False

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return ("shift_uses_vy", "bxnn", "increment_index")

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "Quirks":
        """Build quirks from enabled toggle names such as ``"shift-uses-vy"``."""
        enabled = {}
        for name in names:
            key = name.strip().lower().replace("-", "_")
            if key not in cls.field_names():
                raise ConfigError(
                    f"Unknown quirk '{name}'. Available: {[n.replace('_', '-') for n in cls.field_names()]}"
                )
            enabled[key] = True
        return cls(**enabled)

    def names(self) -> list[str]:
        """Hyphenated names of the enabled toggles."""
        return [n.replace("_", "-") for n in self.field_names() if getattr(self, n)]


@struct.dataclass
class MachineConfig:
    """Startup configuration, immutable for the duration of a run."""
    quirks: Quirks = Quirks()
    instructions_per_frame: int = DEFAULT_INSTRUCTIONS_PER_FRAME
    frames_per_second: int = DEFAULT_FRAMES_PER_SECOND
    seed: int = 0

    @property
    def instruction_frequency(self) -> int:
        """Emulated instructions per second."""
        return self.instructions_per_frame * self.frames_per_second

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "MachineConfig":
        """Validate and build a configuration from a plain mapping.

        ``quirks`` may be a list of toggle names or a mapping of name to bool.
        """
        known = {"quirks", "instructions_per_frame", "frames_per_second", "seed"}
        unknown = set(config) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {sorted(unknown)}")

        quirks = config.get("quirks", ())
        if isinstance(quirks, str):
            raise ConfigError(f"quirks must be a list of names or a mapping, got {quirks!r}")
        if isinstance(quirks, Mapping):
            # Rejects unknown names even when disabled
            Quirks.from_names(quirks)
            quirks = [name for name, enabled in quirks.items() if enabled]
        quirks = Quirks.from_names(quirks)

        rates = {}
        for key in ("instructions_per_frame", "frames_per_second"):
            if key in config:
                value = config[key]
                if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                    raise ConfigError(f"{key} must be a positive integer, got {value!r}")
                rates[key] = value

        seed = config.get("seed", 0)
        if isinstance(seed, bool) or not isinstance(seed, int):
            raise ConfigError(f"seed must be an integer, got {seed!r}")

        return cls(quirks=quirks, seed=seed, **rates)
