"""CHIP-8 stack operations.

Both operations are traceable. Callers check ``pointer`` against the stack
bounds before pushing or popping.
"""

import jax.numpy as jnp
from chipvm.state import StackState


def push(stack: StackState, address: jnp.ndarray) -> StackState:
    """Push return address onto stack."""
    new_data = stack.data.at[stack.pointer].set(jnp.asarray(address, dtype=jnp.uint16))
    return stack.replace(data=new_data, pointer=stack.pointer + 1)


def pop(stack: StackState) -> tuple[StackState, jnp.ndarray]:
    """Pop return address from stack."""
    new_pointer = stack.pointer - 1
    popped_address = stack.data[new_pointer]
    new_data = stack.data.at[new_pointer].set(0)
    return stack.replace(data=new_data, pointer=new_pointer), popped_address
