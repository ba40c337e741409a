"""
Core value types shared by the transaction builder.
"""

from hdsigner.core.asset import Asset, Symbol, to_asset_string
from hdsigner.core.headers import TransactionHeaders

__all__ = [
    "Asset",
    "Symbol",
    "to_asset_string",
    "TransactionHeaders",
]
