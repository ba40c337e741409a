"""
Transaction Builder - constructs signed, unbroadcast transactions.

Each operation validates its inputs, assembles the catalog actions in a
fixed order and signs the result with the bound KeyNode's private key.
Nothing here contacts a node: headers are supplied by the caller.
"""

from typing import Callable, Iterable, List, Optional, Sequence, Union

import structlog

from hdsigner.config import SignerConfig, get_config
from hdsigner.core.asset import Asset, Number, Symbol, resolve_symbol
from hdsigner.core.headers import ExpirationHint, TransactionHeaders
from hdsigner.errors import (
    HDSignerError,
    KeyUnavailable,
    MissingRequiredField,
    SigningKeyUnavailable,
    TransactionBuildError,
    ValidationError,
)
from hdsigner.keys.node import KeyNode
from hdsigner.tx.abi import name_to_int, validate_name
from hdsigner.tx.actions import (
    Action,
    BidName,
    BuyRamBytes,
    DelegateBandwidth,
    NewAccount,
    SellRam,
    Transfer,
    UndelegateBandwidth,
    VoteProducer,
)
from hdsigner.tx.signer import TransactionSigner
from hdsigner.tx.transaction import SignedTransaction, Transaction

logger = structlog.get_logger(__name__)

SymbolLike = Optional[Union[str, Symbol]]


def _require(value, field: str):
    if value is None or (isinstance(value, (str, list, tuple)) and not value):
        raise MissingRequiredField(field)
    return value


class TransactionBuilder:
    """
    Builds and signs transactions for the system action catalog.

    The builder is stateless apart from its bound node and configuration;
    every call returns a new SignedTransaction or raises.
    """

    def __init__(
        self,
        node: KeyNode,
        config: Optional[SignerConfig] = None,
        signer: Optional[TransactionSigner] = None,
    ):
        """
        Initialize the transaction builder.

        Args:
            node: Key node whose private key signs every transaction
            config: Signer configuration (defaults and chain settings)
            signer: Pre-loaded signer; built from ``node`` when omitted
        """
        self.node = node
        self.config = config or get_config()
        self._signer = signer

    # ------------------------------------------------------------------
    # Shared plumbing
    # ------------------------------------------------------------------

    def _get_signer(self) -> TransactionSigner:
        if self._signer is not None:
            return self._signer
        try:
            private_key = self.node.get_private_key()
        except KeyUnavailable as e:
            raise SigningKeyUnavailable(f"Node cannot sign: {e}") from e
        return TransactionSigner(private_key)

    def _asset(self, value: Optional[Number], symbol: SymbolLike, field: str) -> Asset:
        _require(value, field)
        return Asset.from_value(value, resolve_symbol(symbol, self.config), field)

    def build(
        self,
        actions: Union[Sequence[Action], Callable[[], Sequence[Action]]],
        *,
        expiration: ExpirationHint = None,
        ref_block_num: Optional[int] = None,
        ref_block_prefix: Optional[int] = None,
        operation: str = "build",
    ) -> SignedTransaction:
        """
        Build and sign a transaction from actions.

        Args:
            actions: Actions in execution order, or a callable returning
                them; a callable runs after headers and signing key are
                checked
            expiration: Expiration hint (datetime, ISO text or UNIX seconds)
            ref_block_num: Reference block number (low 16 bits)
            ref_block_prefix: Reference block prefix
            operation: Name used in log events

        Returns:
            Signed transaction with ``broadcast`` False

        Raises:
            MissingRequiredField: If a header or action field is omitted
            SigningKeyUnavailable: If the node holds no private key
            TransactionBuildError: If anything else fails
        """
        headers = TransactionHeaders.create(expiration, ref_block_num, ref_block_prefix, self.config)
        signer = self._get_signer()

        try:
            if callable(actions):
                actions = actions()
            transaction = Transaction(headers, tuple(actions), self.node.chain_id)
            signed = signer.sign_transaction(transaction)
        except HDSignerError:
            raise
        except Exception as e:
            logger.error("transaction_build_failed", operation=operation, error=str(e))
            raise TransactionBuildError(f"Failed to build transaction: {e}") from e

        logger.info(
            "transaction_built",
            operation=operation,
            actions=transaction.action_names,
            tx_id=signed.id[:16] + "...",
        )
        return signed

    # ------------------------------------------------------------------
    # Operation catalog
    # ------------------------------------------------------------------

    def transfer(
        self,
        from_account: str,
        to: str,
        amount: Number,
        memo: str = "",
        symbol: SymbolLike = None,
        *,
        expiration: ExpirationHint = None,
        ref_block_num: Optional[int] = None,
        ref_block_prefix: Optional[int] = None,
    ) -> SignedTransaction:
        """Transfer ``amount`` of ``symbol`` (chain default if omitted)."""
        def assemble() -> List[Action]:
            return [
                Transfer(
                    from_account=_require(from_account, "from"),
                    to=_require(to, "to"),
                    quantity=self._asset(amount, symbol, "amount"),
                    memo=memo or "",
                )
            ]

        return self.build(
            assemble,
            expiration=expiration,
            ref_block_num=ref_block_num,
            ref_block_prefix=ref_block_prefix,
            operation="transfer",
        )

    def register_account(
        self,
        account_name: str,
        creator: str,
        owner_key: Optional[str] = None,
        active_key: Optional[str] = None,
        stake_cpu: Optional[Number] = None,
        stake_net: Optional[Number] = None,
        ram_bytes: Optional[int] = None,
        symbol: SymbolLike = None,
        *,
        expiration: ExpirationHint = None,
        ref_block_num: Optional[int] = None,
        ref_block_prefix: Optional[int] = None,
    ) -> SignedTransaction:
        """
        Create an account, buy its RAM and stake its CPU/NET.

        Owner and active keys default to this node's public key. The
        account must exist before resources are attached to it, so the
        actions are always newaccount, buyrambytes, delegatebw. The
        delegated stake is not transferred to the new account.
        """
        def assemble() -> List[Action]:
            _require(account_name, "account_name")
            _require(creator, "creator")
            public_key = self.node.get_public_key()
            return [
                NewAccount(
                    creator=creator,
                    new_name=account_name,
                    owner_key=owner_key or public_key,
                    active_key=active_key or public_key,
                ),
                BuyRamBytes(
                    payer=creator,
                    receiver=account_name,
                    ram_bytes=self.config.default_ram_bytes if ram_bytes is None else ram_bytes,
                ),
                DelegateBandwidth(
                    from_account=creator,
                    receiver=account_name,
                    stake_net_quantity=self._asset(
                        self.config.default_stake_net if stake_net is None else stake_net,
                        symbol, "stake_net",
                    ),
                    stake_cpu_quantity=self._asset(
                        self.config.default_stake_cpu if stake_cpu is None else stake_cpu,
                        symbol, "stake_cpu",
                    ),
                    transfer=False,
                ),
            ]

        return self.build(
            assemble,
            expiration=expiration,
            ref_block_num=ref_block_num,
            ref_block_prefix=ref_block_prefix,
            operation="register_account",
        )

    def delegate(
        self,
        from_account: str,
        to: str,
        cpu_amount: Number,
        net_amount: Number,
        symbol: SymbolLike = None,
        transfer: bool = False,
        *,
        expiration: ExpirationHint = None,
        ref_block_num: Optional[int] = None,
        ref_block_prefix: Optional[int] = None,
    ) -> SignedTransaction:
        """Stake CPU and NET from ``from_account`` to ``to``."""
        def assemble() -> List[Action]:
            return [
                DelegateBandwidth(
                    from_account=_require(from_account, "from"),
                    receiver=_require(to, "to"),
                    stake_net_quantity=self._asset(net_amount, symbol, "net_amount"),
                    stake_cpu_quantity=self._asset(cpu_amount, symbol, "cpu_amount"),
                    transfer=bool(transfer),
                )
            ]

        return self.build(
            assemble,
            expiration=expiration,
            ref_block_num=ref_block_num,
            ref_block_prefix=ref_block_prefix,
            operation="delegate",
        )

    def undelegate(
        self,
        from_account: str,
        to: str,
        cpu_amount: Number,
        net_amount: Number,
        symbol: SymbolLike = None,
        *,
        expiration: ExpirationHint = None,
        ref_block_num: Optional[int] = None,
        ref_block_prefix: Optional[int] = None,
    ) -> SignedTransaction:
        """Unstake CPU and NET previously delegated to ``to``."""
        def assemble() -> List[Action]:
            return [
                UndelegateBandwidth(
                    from_account=_require(from_account, "from"),
                    receiver=_require(to, "to"),
                    unstake_net_quantity=self._asset(net_amount, symbol, "net_amount"),
                    unstake_cpu_quantity=self._asset(cpu_amount, symbol, "cpu_amount"),
                )
            ]

        return self.build(
            assemble,
            expiration=expiration,
            ref_block_num=ref_block_num,
            ref_block_prefix=ref_block_prefix,
            operation="undelegate",
        )

    def vote(
        self,
        voter: str,
        producers: Iterable[str],
        *,
        expiration: ExpirationHint = None,
        ref_block_num: Optional[int] = None,
        ref_block_prefix: Optional[int] = None,
    ) -> SignedTransaction:
        """
        Vote for producers directly, without a proxy.

        The system contract wants the list sorted and unique, so it is
        normalized here.
        """
        def assemble() -> List[Action]:
            _require(voter, "voter")
            if producers is None or isinstance(producers, str):
                raise MissingRequiredField("producers", "producers must be a list of account names")
            names = list(producers)
            _require(names, "producers")
            if not all(isinstance(name, str) and name for name in names):
                raise ValidationError("producers must be non-empty account names", field="producers")
            for name in names:
                validate_name(name, "producers")
            ordered = sorted(set(names), key=name_to_int)
            return [VoteProducer(voter=voter, producers=tuple(ordered), proxy="")]

        return self.build(
            assemble,
            expiration=expiration,
            ref_block_num=ref_block_num,
            ref_block_prefix=ref_block_prefix,
            operation="vote",
        )

    def bidname(
        self,
        bidder: str,
        name: str,
        amount: Number,
        symbol: SymbolLike = None,
        *,
        expiration: ExpirationHint = None,
        ref_block_num: Optional[int] = None,
        ref_block_prefix: Optional[int] = None,
    ) -> SignedTransaction:
        """Bid ``amount`` on a premium account name."""
        def assemble() -> List[Action]:
            return [
                BidName(
                    bidder=_require(bidder, "bidder"),
                    newname=_require(name, "name"),
                    bid=self._asset(amount, symbol, "amount"),
                )
            ]

        return self.build(
            assemble,
            expiration=expiration,
            ref_block_num=ref_block_num,
            ref_block_prefix=ref_block_prefix,
            operation="bidname",
        )

    def buyram(
        self,
        payer: str,
        receiver: str,
        ram_bytes: int,
        *,
        expiration: ExpirationHint = None,
        ref_block_num: Optional[int] = None,
        ref_block_prefix: Optional[int] = None,
    ) -> SignedTransaction:
        """Buy ``ram_bytes`` bytes of RAM for ``receiver``."""
        def assemble() -> List[Action]:
            return [
                BuyRamBytes(
                    payer=_require(payer, "payer"),
                    receiver=_require(receiver, "receiver"),
                    ram_bytes=_require(ram_bytes, "bytes"),
                )
            ]

        return self.build(
            assemble,
            expiration=expiration,
            ref_block_num=ref_block_num,
            ref_block_prefix=ref_block_prefix,
            operation="buyram",
        )

    def sellram(
        self,
        account: str,
        ram_bytes: int,
        *,
        expiration: ExpirationHint = None,
        ref_block_num: Optional[int] = None,
        ref_block_prefix: Optional[int] = None,
    ) -> SignedTransaction:
        """Sell ``ram_bytes`` bytes of ``account``'s RAM."""
        def assemble() -> List[Action]:
            return [
                SellRam(
                    account=_require(account, "account"),
                    ram_bytes=_require(ram_bytes, "bytes"),
                )
            ]

        return self.build(
            assemble,
            expiration=expiration,
            ref_block_num=ref_block_num,
            ref_block_prefix=ref_block_prefix,
            operation="sellram",
        )
