"""Tests for quirk toggles and run configuration."""

import pytest
from chipvm import Quirks, MachineConfig, ConfigError, create_state


class TestQuirks:
    def test_defaults_off(self):
        quirks = Quirks()
        assert not quirks.shift_uses_vy
        assert not quirks.bxnn
        assert not quirks.increment_index
        assert quirks.names() == []

    def test_from_names(self):
        quirks = Quirks.from_names(["shift-uses-vy", "increment_index"])
        assert quirks.shift_uses_vy
        assert not quirks.bxnn
        assert quirks.increment_index
        assert quirks.names() == ["shift-uses-vy", "increment-index"]

    def test_unknown_quirk(self):
        with pytest.raises(ConfigError, match="Unknown quirk"):
            Quirks.from_names(["vf-reset"])

    def test_state_default_quirks(self):
        assert create_state().quirks == Quirks()


class TestMachineConfig:
    def test_defaults(self):
        config = MachineConfig()
        assert config.instructions_per_frame == 10
        assert config.frames_per_second == 60
        assert config.instruction_frequency == 600

    def test_from_dict(self):
        config = MachineConfig.from_dict({
            "quirks": ["bxnn"],
            "instructions_per_frame": 15,
            "frames_per_second": 30,
            "seed": 7,
        })
        assert config.quirks == Quirks(bxnn=True)
        assert config.instructions_per_frame == 15
        assert config.frames_per_second == 30
        assert config.seed == 7

    def test_from_dict_quirk_mapping(self):
        config = MachineConfig.from_dict({"quirks": {"bxnn": False, "shift-uses-vy": True}})
        assert config.quirks == Quirks(shift_uses_vy=True)

    def test_from_dict_rejects_quirk_string(self):
        with pytest.raises(ConfigError, match="list of names"):
            MachineConfig.from_dict({"quirks": "bxnn"})

    def test_from_dict_rejects_unknown_disabled_quirk(self):
        with pytest.raises(ConfigError, match="Unknown quirk"):
            MachineConfig.from_dict({"quirks": {"bxnn": True, "vf-reset": False}})

    @pytest.mark.parametrize("bad", [
        {"speed": 3},
        {"instructions_per_frame": 0},
        {"frames_per_second": -1},
        {"instructions_per_frame": "10"},
        {"instructions_per_frame": True},
        {"seed": 1.5},
    ])
    def test_from_dict_rejects(self, bad):
        with pytest.raises(ConfigError):
            MachineConfig.from_dict(bad)
