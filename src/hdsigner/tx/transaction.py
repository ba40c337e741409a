"""
Transaction models.

A Transaction is an ordered list of actions bound to headers and a chain
id. A SignedTransaction adds the signatures and is never broadcast.
"""

import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from hdsigner.core.headers import TransactionHeaders
from hdsigner.errors import MissingRequiredField
from hdsigner.tx.abi import AbiWriter
from hdsigner.tx.actions import Action

CONTEXT_FREE_DATA_DIGEST = bytes(32)


@dataclass(frozen=True)
class Transaction:
    """
    An unsigned transaction.

    Attributes:
        headers: Expiration and reference block fields
        actions: Actions in execution order
        chain_id: Hex id of the chain the transaction is signed for
    """

    headers: TransactionHeaders
    actions: Tuple[Action, ...]
    chain_id: str

    # Resource limits are left to the chain's defaults
    max_net_usage_words: int = 0
    max_cpu_usage_ms: int = 0
    delay_sec: int = 0

    def __post_init__(self):
        if not self.actions:
            raise MissingRequiredField("actions", "A transaction needs at least one action")

    def pack(self) -> bytes:
        """Serialize the transaction to its ABI binary form."""
        writer = AbiWriter()
        writer.write_uint32(self.headers.expiration_seconds)
        writer.write_uint16(self.headers.ref_block_num)
        writer.write_uint32(self.headers.ref_block_prefix)
        writer.write_varuint32(self.max_net_usage_words)
        writer.write_uint8(self.max_cpu_usage_ms)
        writer.write_varuint32(self.delay_sec)
        writer.write_varuint32(0)  # context-free actions
        writer.write_varuint32(len(self.actions))
        for action in self.actions:
            action.write_to(writer)
        writer.write_varuint32(0)  # transaction extensions
        return writer.getvalue()

    def signing_digest(self) -> bytes:
        """sha256(chain_id || packed transaction || context-free data digest)."""
        return hashlib.sha256(
            bytes.fromhex(self.chain_id) + self.pack() + CONTEXT_FREE_DATA_DIGEST
        ).digest()

    @property
    def id(self) -> str:
        return hashlib.sha256(self.pack()).hexdigest()

    @property
    def action_names(self) -> List[str]:
        return [action.name for action in self.actions]

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.headers.to_dict(),
            "max_net_usage_words": self.max_net_usage_words,
            "max_cpu_usage_ms": self.max_cpu_usage_ms,
            "delay_sec": self.delay_sec,
            "context_free_actions": [],
            "actions": [action.to_dict() for action in self.actions],
            "transaction_extensions": [],
        }


@dataclass(frozen=True)
class SignedTransaction:
    """
    A signed transaction handed back to the caller.

    It is a terminal artifact: ``broadcast`` is always False and the
    caller is responsible for pushing it to a node.
    """

    transaction: Transaction
    signatures: Tuple[str, ...]
    broadcast: bool = field(default=False, init=False)

    @property
    def id(self) -> str:
        return self.transaction.id

    @property
    def actions(self) -> Tuple[Action, ...]:
        return self.transaction.actions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "compression": "none",
            "transaction": self.transaction.to_dict(),
            "signatures": list(self.signatures),
        }

    def to_push_dict(self) -> Dict[str, Any]:
        """Body of a ``push_transaction`` request."""
        return {
            "signatures": list(self.signatures),
            "compression": "none",
            "packed_context_free_data": "",
            "packed_trx": self.transaction.pack().hex(),
        }
