"""
LWMA proof-of-work retargeting.
"""

from .core.difficulty import compact_to_target, target_to_compact
from .core.header import HeaderRecord, RetargetWindow
from .core.lwma import InsufficientWindowError, LwmaEngine, MissingBlockError, RetargetError, calc_next_bits
from .core.params import MAINNET, REGTEST, TESTNET, NetworkParams, get_params

__version__ = "0.1.0"

__all__ = [
    "HeaderRecord",
    "InsufficientWindowError",
    "LwmaEngine",
    "MAINNET",
    "MissingBlockError",
    "NetworkParams",
    "REGTEST",
    "RetargetError",
    "RetargetWindow",
    "TESTNET",
    "calc_next_bits",
    "compact_to_target",
    "get_params",
    "target_to_compact",
]
