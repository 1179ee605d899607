"""Counter-based random number generation for Taichi kernels.

Every sampling task owns a single ``u32`` state that is threaded explicitly
through the functions that consume random numbers. Each draw hashes the
state with a PCG permutation, so the sequence seen by a task depends only on
the seed and on the task's coordinates (pixel, sample), never on which
thread happens to run it. This makes renders reproducible under parallel
execution.

Functions return ``(value, new_state)``; callers must keep the new state.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.core.rng import seed_rng, next_float
    >>> @ti.kernel
    ... def draw() -> ti.f32:
    ...     rng = seed_rng(7, 0, 0)
    ...     x, rng = next_float(rng)
    ...     return x
"""

import taichi as ti

# 2^-24: maps the top 24 bits of a u32 onto [0, 1) exactly in f32
_INV_2_POW_24 = 1.0 / 16777216.0


@ti.func
def pcg_hash(value: ti.u32) -> ti.u32:
    """PCG-style RXS-M-XS permutation of a 32-bit integer.

    Args:
        value: Input word.

    Returns:
        A well mixed 32-bit word.
    """
    state = value * ti.cast(747796405, ti.u32) + ti.cast(1013904223, ti.u32)
    shift = ti.bit_shr(state, ti.cast(28, ti.u32)) + ti.cast(4, ti.u32)
    word = (ti.bit_shr(state, shift) ^ state) * ti.cast(277803737, ti.u32)
    return ti.bit_shr(word, ti.cast(22, ti.u32)) ^ word


@ti.func
def seed_rng(seed: ti.i32, stream: ti.i32, index: ti.i32) -> ti.u32:
    """Derive an independent generator state for one sampling task.

    Args:
        seed: The user seed of the render (non-negative).
        stream: Coarse task coordinate (e.g. flattened pixel index).
        index: Fine task coordinate (e.g. sample index within the pixel).

    Returns:
        The initial state for the task.
    """
    s = pcg_hash(ti.cast(seed, ti.u32) ^ pcg_hash(ti.cast(stream, ti.u32)))
    t = pcg_hash(ti.cast(index, ti.u32) + ti.cast(668265261, ti.u32))
    return pcg_hash(s ^ t)


@ti.func
def next_u32(rng: ti.u32):
    """Advance the generator and return a raw 32-bit word.

    Returns:
        Tuple ``(word, new_state)``.
    """
    new_state = pcg_hash(rng)
    return new_state, new_state


@ti.func
def next_float(rng: ti.u32):
    """Draw a uniform float in ``[0, 1)``.

    Returns:
        Tuple ``(value, new_state)``.
    """
    word, new_state = next_u32(rng)
    value = ti.cast(ti.bit_shr(word, ti.cast(8, ti.u32)), ti.f32) * _INV_2_POW_24
    return value, new_state


@ti.func
def next_float_range(rng: ti.u32, low: ti.f32, high: ti.f32):
    """Draw a uniform float in ``[low, high)``.

    Returns:
        Tuple ``(value, new_state)``.
    """
    x, new_state = next_float(rng)
    return low + (high - low) * x, new_state


@ti.func
def next_index(rng: ti.u32, count: ti.i32):
    """Draw a uniform integer in ``[0, count)``.

    ``count`` must be positive.

    Returns:
        Tuple ``(index, new_state)``.
    """
    x, new_state = next_float(rng)
    idx = ti.cast(x * ti.cast(count, ti.f32), ti.i32)
    if idx >= count:
        idx = count - 1
    return idx, new_state
