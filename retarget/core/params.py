"""
Per-network LWMA consensus parameters.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, fields
from typing import Any

from .difficulty import target_to_compact

__all__ = [
    "MAINNET",
    "TESTNET",
    "REGTEST",
    "NETWORKS",
    "NetworkParams",
    "ParamsError",
    "get_params",
]

MAIN_POW_LIMIT = int("0007ffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff", 16)
REGTEST_POW_LIMIT = int("7fffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff", 16)


class ParamsError(Exception):
    """Raised for inconsistent or unknown network parameter sets."""


@dataclass(frozen=True, slots=True)
class NetworkParams:
    name: str
    enable_height: int
    testnet: bool
    regtest: bool
    pow_target_spacing: int  # seconds
    averaging_window: int  # blocks
    adjust_weight: int
    min_denominator: int
    solve_time_limitation: bool
    pow_limit: int

    def __post_init__(self) -> None:
        for name in ("pow_target_spacing", "averaging_window", "adjust_weight", "min_denominator"):
            if getattr(self, name) <= 0:
                raise ParamsError(f"{self.name}: {name} must be > 0")
        if self.enable_height < 0:
            raise ParamsError(f"{self.name}: enable_height must be >= 0")
        if self.pow_limit <= 0:
            raise ParamsError(f"{self.name}: pow_limit must be positive")
        if self.testnet and self.regtest:
            raise ParamsError(f"{self.name}: testnet and regtest are exclusive")

    @property
    def pow_limit_bits(self) -> int:
        return target_to_compact(self.pow_limit)

    def replace(self, **changes: Any) -> NetworkParams:
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ParamsError(f"Unknown parameter(s): {', '.join(sorted(unknown))}")
        return dataclasses.replace(self, **changes)


MAINNET = NetworkParams(
    name="mainnet",
    enable_height=536_200,
    testnet=False,
    regtest=False,
    pow_target_spacing=600,
    averaging_window=45,
    adjust_weight=13_772,
    min_denominator=10,
    solve_time_limitation=True,
    pow_limit=MAIN_POW_LIMIT,
)

TESTNET = NetworkParams(
    name="testnet",
    enable_height=1,
    testnet=True,
    regtest=False,
    pow_target_spacing=600,
    averaging_window=45,
    adjust_weight=13_772,
    min_denominator=10,
    solve_time_limitation=True,
    pow_limit=MAIN_POW_LIMIT,
)

REGTEST = NetworkParams(
    name="regtest",
    enable_height=0,
    testnet=False,
    regtest=True,
    pow_target_spacing=600,
    averaging_window=45,
    adjust_weight=13_772,
    min_denominator=10,
    solve_time_limitation=True,
    pow_limit=REGTEST_POW_LIMIT,
)

NETWORKS = {params.name: params for params in (MAINNET, TESTNET, REGTEST)}


def get_params(name: str) -> NetworkParams:
    try:
        return NETWORKS[name.strip().lower()]
    except KeyError:
        raise ParamsError(f"Unknown network {name!r}") from None
