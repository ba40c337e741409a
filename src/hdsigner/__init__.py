"""
HD Signer

Hierarchical-deterministic key management and offline transaction signing
for EOSIO-style account chains. Keys are derived from a seed, mnemonic or
extended key; transactions are built and signed without contacting a node.
"""

__version__ = "0.1.0"

from hdsigner.config import SignerConfig
from hdsigner.core.headers import TransactionHeaders
from hdsigner.keys.node import KeyNode, KeyOrigin
from hdsigner.tx.builder import TransactionBuilder
from hdsigner.tx.transaction import SignedTransaction, Transaction

__all__ = [
    "SignerConfig",
    "TransactionHeaders",
    "KeyNode",
    "KeyOrigin",
    "TransactionBuilder",
    "SignedTransaction",
    "Transaction",
]
