"""Tests for the engine surface: fetch, step, timers, keys and loading."""

import jax.numpy as jnp
import pytest
from chipvm import (
    fetch, step, run_cycles, tick_timers, set_keys, load_program, load_rom, create_state,
    MemoryOverrunError, StackUnderflowError, MemoryAccessError, ProgramTooLargeError,
    PROGRAM_START, FONT_START, MEMORY_SIZE,
)
from chipvm.constants import FONT_DATA
from conftest import setup_program


class TestFetch:
    """Test instruction fetch."""

    def test_fetch_big_endian(self, fresh_state):
        state = setup_program(fresh_state, [0x12AB])
        state, instruction = fetch(state)
        assert instruction == 0x12AB
        assert state.pc == PROGRAM_START + 2

    def test_fetch_last_word(self, fresh_state):
        state = fresh_state.replace(pc=jnp.asarray(MEMORY_SIZE - 2, dtype=jnp.uint16))
        state, _ = fetch(state)
        assert state.pc == MEMORY_SIZE

    def test_fetch_past_memory_raises(self, fresh_state):
        state = fresh_state.replace(pc=jnp.asarray(MEMORY_SIZE - 1, dtype=jnp.uint16))
        with pytest.raises(MemoryOverrunError) as excinfo:
            fetch(state)
        assert excinfo.value.pc == MEMORY_SIZE - 1

    def test_step_runs_off_the_end(self, fresh_state):
        state = setup_program(fresh_state, [0x1FFE])
        state = step(state)
        state = step(state)  # 0x0000 at 0xFFE is a no-op
        with pytest.raises(MemoryOverrunError):
            step(state)


class TestProgram:
    """Test a short program end to end."""

    def test_counting_loop(self, fresh_state):
        # V0 = 0; loop: V0 += 1; skip if V0 == 5; jump loop; halt: jump halt
        program = [0x6000, 0x7001, 0x3005, 0x1202, 0x1208]
        state = setup_program(fresh_state, program)
        for _ in range(1 + 3 * 5):
            state = step(state)
        assert state.V[0] == 5
        assert state.pc == 0x208

    def test_subroutine_program(self, fresh_state):
        program = [0x2206, 0x1204, 0x1204, 0x6A42, 0x00EE]
        state = setup_program(fresh_state, program)
        for _ in range(4):
            state = step(state)
        assert state.V[0xA] == 0x42
        assert state.pc == 0x204
        assert state.stack.pointer == 0


class TestTimers:
    """Test timer ticks."""

    def test_tick_decrements(self, fresh_state):
        state = fresh_state.replace(delay_timer=jnp.asarray(3, dtype=jnp.uint8),
                                    sound_timer=jnp.asarray(1, dtype=jnp.uint8))
        state = tick_timers(state)
        assert state.delay_timer == 2
        assert state.sound_timer == 0

    def test_tick_saturates_at_zero(self, fresh_state):
        state = tick_timers(tick_timers(fresh_state))
        assert state.delay_timer == 0
        assert state.sound_timer == 0

    def test_beep_once_per_tick_while_sound_nonzero(self, fresh_state):
        beeps = []
        state = fresh_state.replace(sound_timer=jnp.asarray(2, dtype=jnp.uint8))
        for _ in range(4):
            state = tick_timers(state, beep=lambda: beeps.append(1))
        assert len(beeps) == 2

    def test_timers_independent(self, fresh_state):
        state = fresh_state.replace(delay_timer=jnp.asarray(5, dtype=jnp.uint8))
        beeps = []
        state = tick_timers(state, beep=lambda: beeps.append(1))
        assert state.delay_timer == 4
        assert not beeps


class TestKeys:
    def test_set_keys_masks_to_16_bits(self, fresh_state):
        state = set_keys(fresh_state, 0x1_8001)
        assert state.keys == 0x8001


class TestLoading:
    """Test program loading."""

    def test_font_loaded(self, fresh_state):
        assert jnp.array_equal(fresh_state.memory[FONT_START:FONT_START + 80], FONT_DATA)
        assert fresh_state.pc == PROGRAM_START

    def test_load_program(self, fresh_state):
        state = load_program(fresh_state, bytes([0x60, 0x2A, 0x00, 0xE0]))
        assert [int(b) for b in state.memory[0x200:0x204]] == [0x60, 0x2A, 0x00, 0xE0]

    def test_load_program_fills_memory(self, fresh_state):
        state = load_program(fresh_state, bytes(MEMORY_SIZE - PROGRAM_START))
        assert state.memory.shape == (MEMORY_SIZE,)

    def test_load_program_too_large(self, fresh_state):
        with pytest.raises(ProgramTooLargeError):
            load_program(fresh_state, bytes(MEMORY_SIZE - PROGRAM_START + 1))

    def test_load_rom(self, tmp_path):
        rom = tmp_path / "test.ch8"
        rom.write_bytes(bytes([0xA2, 0x2A]))
        state = load_rom(create_state(), str(rom))
        state = step(state)
        assert state.I == 0x22A

    def test_states_are_independent(self):
        a = create_state()
        b = create_state()
        a = load_program(a, b"\xff")
        assert b.memory[PROGRAM_START] == 0


class TestRunCycles:
    """Test the compiled multi-instruction loop."""

    def test_runs_requested_count(self, fresh_state):
        state = setup_program(fresh_state, [0x7001, 0x1200])
        state, executed, error = run_cycles(state, 10)
        assert executed == 10
        assert error is None
        assert state.V[0] == 5

    def test_matches_single_steps(self, fresh_state):
        program = [0x6000, 0x7001, 0x3005, 0x1202, 0x1208]
        stepped = setup_program(fresh_state, program)
        for _ in range(16):
            stepped = step(stepped)

        looped, executed, _ = run_cycles(setup_program(fresh_state, program), 16)
        assert executed == 16
        assert looped.pc == stepped.pc
        assert jnp.array_equal(looped.V, stepped.V)

    def test_stops_before_faulting_instruction(self, fresh_state):
        state = setup_program(fresh_state, [0x6007, 0x00EE, 0x6108])
        state, executed, error = run_cycles(state, 10)

        assert executed == 1
        assert isinstance(error, StackUnderflowError)
        assert error.pc == 0x202
        assert state.pc == 0x202
        assert state.V[0] == 7
        assert state.V[1] == 0

    def test_reports_memory_access_length(self, fresh_state):
        state = setup_program(fresh_state, [0xAFFC, 0xF755])
        state, executed, error = run_cycles(state, 5)

        assert executed == 1
        assert isinstance(error, MemoryAccessError)
        assert error.address == 0xFFC
        assert error.length == 8

    def test_fetch_overrun(self, fresh_state):
        state = setup_program(fresh_state, [0x1FFE])
        state, executed, error = run_cycles(state, 10)

        assert executed == 2
        assert isinstance(error, MemoryOverrunError)
        assert error.pc == MEMORY_SIZE

    def test_zero_count(self, fresh_state):
        state, executed, error = run_cycles(fresh_state, 0)
        assert executed == 0
        assert error is None
        assert state.pc == PROGRAM_START


class TestPublicApi:
    def test_package_exports_only_named_constants(self):
        import chipvm
        assert chipvm.MEMORY_SIZE == MEMORY_SIZE
        assert not hasattr(chipvm, "jnp")
        assert not hasattr(chipvm, "FONT_DATA")
