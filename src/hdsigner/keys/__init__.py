"""
Key module.

Handles HD key derivation and key text encodings.
"""

from hdsigner.keys.node import KeyNode, KeyOrigin, parse_path

__all__ = [
    "KeyNode",
    "KeyOrigin",
    "parse_path",
]
