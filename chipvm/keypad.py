"""Conversions between the 16-bit held-key mask and key numbers.

Key ``k`` (0x0-0xF) is held when bit ``k`` of the mask is set. ``keys_to_mask``
and ``mask_to_keys`` serve input providers; ``is_key_held`` and ``lowest_key``
are traceable and used by the instruction handlers.
"""

from typing import Iterable

import jax.numpy as jnp
from chipvm.constants import NUM_KEYS

KEY_MASK = (1 << NUM_KEYS) - 1


def _check_key(key: int) -> int:
    if not 0 <= key < NUM_KEYS:
        raise ValueError(f"Key must be in range 0-{NUM_KEYS - 1}, got {key}")
    return key


def keys_to_mask(keys: Iterable[int]) -> int:
    """Build a held-key mask from key numbers."""
    mask = 0
    for key in keys:
        mask |= 1 << _check_key(key)
    return mask


def mask_to_keys(mask: int) -> list[int]:
    """Key numbers held in ``mask``, lowest first."""
    return [key for key in range(NUM_KEYS) if (mask >> key) & 1]


def is_key_held(mask: jnp.ndarray, key: jnp.ndarray) -> jnp.ndarray:
    """Whether bit ``key`` of ``mask`` is set. ``key`` is taken modulo 16."""
    shift = jnp.asarray(key).astype(jnp.uint16) & 0xF
    return ((jnp.asarray(mask).astype(jnp.uint16) >> shift) & 1) == 1


def lowest_key(mask: jnp.ndarray) -> jnp.ndarray:
    """Lowest-numbered key in ``mask``; 0 when the mask is empty."""
    bits = (jnp.asarray(mask).astype(jnp.uint16) >> jnp.arange(NUM_KEYS, dtype=jnp.uint16)) & 1
    return jnp.argmax(bits)
