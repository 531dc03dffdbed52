"""Tests for key mask helpers."""

import jax.numpy as jnp
import pytest
from chipvm.keypad import keys_to_mask, mask_to_keys, is_key_held, lowest_key


def test_keys_to_mask():
    assert keys_to_mask([]) == 0
    assert keys_to_mask([0, 15]) == 0x8001
    assert keys_to_mask([3, 3]) == 0x0008


def test_mask_to_keys():
    assert mask_to_keys(0x8001) == [0, 15]
    assert mask_to_keys(0) == []


def test_is_key_held():
    assert is_key_held(0x0010, 4)
    assert not is_key_held(0x0010, 5)


def test_is_key_held_uses_low_nibble():
    mask = jnp.asarray(0x0008, dtype=jnp.uint16)
    assert is_key_held(mask, jnp.asarray(0x13, dtype=jnp.uint8))


def test_invalid_key():
    with pytest.raises(ValueError):
        keys_to_mask([16])
    with pytest.raises(ValueError):
        keys_to_mask([-1])


def test_lowest_key():
    assert lowest_key(0b1010_0000) == 5
    assert lowest_key(jnp.asarray(0x8000, dtype=jnp.uint16)) == 15
