"""
Compact target encoding and difficulty helpers.

Targets are unsigned integers; the compact "bits" form packs them into 32 bits
as a size byte followed by a 23-bit mantissa. Bit 23 of the mantissa is a
historic sign bit and is always kept clear. Conversions are lossy: only the
three most significant bytes of a target survive encoding.
"""

from __future__ import annotations

SIGN_BIT = 0x00800000
MANTISSA_MASK = 0x007FFFFF


class DifficultyError(Exception):
    pass


def compact_to_target(bits: int) -> int:
    """Decode compact bits into a target. Never fails on malformed input."""
    size = bits >> 24
    word = bits & MANTISSA_MASK
    if size <= 3:
        return word >> (8 * (3 - size))
    return word << (8 * (size - 3))


def target_to_compact(target: int) -> int:
    if target < 0:
        raise DifficultyError("Target must not be negative")
    size = (target.bit_length() + 7) // 8
    if size <= 3:
        mantissa = target << (8 * (3 - size))
    else:
        mantissa = target >> (8 * (size - 3))
    mantissa &= 0xFFFFFF
    if mantissa & SIGN_BIT:
        mantissa >>= 8
        size += 1
    return ((size << 24) | mantissa) & 0xFFFFFFFF


def target_to_difficulty(target: int, pow_limit: int) -> float:
    if target <= 0:
        return float("inf")
    return pow_limit / target


def block_work(bits: int) -> int:
    target = compact_to_target(bits)
    if target <= 0:
        raise DifficultyError("Target must be positive")
    return (1 << 256) // (target + 1)
