"""
Transaction module.

Handles action assembly, transaction construction and signing.
"""

from hdsigner.tx.builder import TransactionBuilder
from hdsigner.tx.signer import TransactionSigner
from hdsigner.tx.transaction import SignedTransaction, Transaction

__all__ = [
    "TransactionBuilder",
    "TransactionSigner",
    "SignedTransaction",
    "Transaction",
]
