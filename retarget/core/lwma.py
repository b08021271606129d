"""
Linear weighted moving average (LWMA) difficulty retargeting.

The next target is the average of the last N targets scaled by a weighted sum
of their solve times, where the most recent block weighs N times as much as
the oldest. Every node must reproduce the result bit for bit, so the integer
arithmetic below (including the order of truncating divisions) is consensus
critical.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .difficulty import compact_to_target, target_to_compact
from .header import HeaderFormatError, HeaderRecord, RetargetWindow
from .params import NetworkParams

__all__ = [
    "InsufficientWindowError",
    "LwmaEngine",
    "MissingBlockError",
    "RetargetError",
    "calc_next_bits",
    "check_window",
    "lwma_target",
]

log = logging.getLogger("retarget.lwma")


class RetargetError(Exception):
    """Raised when the next target cannot be computed from the given history."""


class InsufficientWindowError(RetargetError):
    pass


class MissingBlockError(InsufficientWindowError):
    def __init__(self, height: int):
        super().__init__(f"Block with height {height} is missing, cannot calculate next target")
        self.height = height


def _as_window(window: RetargetWindow | Iterable[HeaderRecord]) -> RetargetWindow:
    if isinstance(window, RetargetWindow):
        return window
    try:
        return RetargetWindow(window)
    except HeaderFormatError as exc:
        raise RetargetError(f"Unusable header window: {exc}") from exc


def check_window(height: int, window: RetargetWindow, params: NetworkParams) -> None:
    """Verify that ``window`` covers ``[height - N - 1, height - 1]``."""
    n = params.averaging_window
    if height <= n:
        raise InsufficientWindowError(f"LWMA needs the last {n + 1} blocks, only {height} precede height {height}")
    if len(window) <= n:
        raise InsufficientWindowError(f"LWMA needs the last {n + 1} blocks to determine the next target, got {len(window)}")
    for i in range(height - n - 1, height):
        if i not in window:
            raise MissingBlockError(i)


def lwma_target(height: int, timestamp: int, window: RetargetWindow, params: NetworkParams) -> int:
    """Compute the unencoded next target; ``window`` must already be checked."""
    n = params.averaging_window
    weight = params.adjust_weight
    prev = window[height - 1]

    if params.regtest:
        return compact_to_target(prev.bits)

    # Stalled test networks drop straight to minimum difficulty.
    if params.testnet and timestamp > prev.timestamp + 2 * params.pow_target_spacing:
        return params.pow_limit

    total = 0
    t = 0
    j = 0
    ts = 6 * params.pow_target_spacing
    divider = weight * n * n

    # "< height", not "<= height"
    for i in range(height - n, height):
        cur = window[i]
        solvetime = cur.timestamp - window[i - 1].timestamp
        if params.solve_time_limitation and solvetime > ts:
            solvetime = ts

        j += 1
        t += solvetime * j
        total += compact_to_target(cur.bits) // divider

    # Keep t reasonable in case strange solvetimes occurred.
    min_t = n * weight // params.min_denominator
    if t < min_t:
        t = min_t

    next_target = total * t
    if next_target >= params.pow_limit:
        next_target = params.pow_limit
    return next_target


def calc_next_bits(
    height: int,
    timestamp: int,
    window: RetargetWindow | Iterable[HeaderRecord],
    params: NetworkParams,
) -> int:
    """Return the compact bits required for the block at ``height``."""
    view = _as_window(window)
    check_window(height, view, params)
    # Encoding drops precision, so compare bits with bits, never target with target.
    return target_to_compact(lwma_target(height, timestamp, view, params))


class LwmaEngine:
    """Binds a parameter set to the LWMA retarget functions."""

    def __init__(self, params: NetworkParams):
        self.params = params

    def is_active(self, height: int) -> bool:
        return height >= self.params.enable_height

    def next_target(self, height: int, timestamp: int, window: RetargetWindow | Iterable[HeaderRecord]) -> int:
        view = _as_window(window)
        check_window(height, view, self.params)
        return lwma_target(height, timestamp, view, self.params)

    def next_bits(self, height: int, timestamp: int, window: RetargetWindow | Iterable[HeaderRecord]) -> int:
        bits = target_to_compact(self.next_target(height, timestamp, window))
        log.debug("LWMA %s height=%s timestamp=%s bits=%08x", self.params.name, height, timestamp, bits)
        return bits
