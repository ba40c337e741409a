"""
Action catalog.

One frozen dataclass per supported system action. Each action knows the
contract it targets, the account that authorizes it, its JSON-style data
and its ABI binary encoding.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Tuple

from hdsigner.core.asset import Asset
from hdsigner.errors import MissingRequiredField, ValidationError
from hdsigner.keys.encoding import public_key_from_text
from hdsigner.tx.abi import AbiWriter, validate_name

SYSTEM_CONTRACT = "eosio"
TOKEN_CONTRACT = "eosio.token"
DEFAULT_PERMISSION = "active"
MAX_MEMO_BYTES = 256
MAX_PRODUCERS = 30
MAX_RAM_BYTES = 0xFFFFFFFF


def _check_public_key(key: str, field: str) -> str:
    if not key:
        raise MissingRequiredField(field)
    try:
        public_key_from_text(key)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"Invalid public key for {field}: {e}", field=field) from e
    return key


def _check_bytes(value: int, field: str, maximum: int = MAX_RAM_BYTES) -> int:
    if value is None:
        raise MissingRequiredField(field)
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= maximum:
        raise ValidationError(f"{field} must be an integer in [0, {maximum}], got {value!r}",
                              field=field)
    return value


def _authority(key: str) -> Dict[str, Any]:
    return {
        "threshold": 1,
        "keys": [{"key": key, "weight": 1}],
        "accounts": [],
        "waits": [],
    }


@dataclass(frozen=True)
class Action:
    """Base class for catalog actions."""

    contract: ClassVar[str] = SYSTEM_CONTRACT
    name: ClassVar[str] = ""

    @property
    def actor(self) -> str:
        """Account whose active permission authorizes the action."""
        raise NotImplementedError

    @property
    def authorization(self) -> List[Tuple[str, str]]:
        return [(self.actor, DEFAULT_PERMISSION)]

    def data(self) -> Dict[str, Any]:
        raise NotImplementedError

    def _write(self, writer: AbiWriter) -> None:
        raise NotImplementedError

    def pack(self) -> bytes:
        """ABI encoding of the action data."""
        writer = AbiWriter()
        self._write(writer)
        return writer.getvalue()

    def write_to(self, writer: AbiWriter) -> None:
        """Write the full action (account, name, authorization, data)."""
        writer.write_name(self.contract)
        writer.write_name(self.name)
        writer.write_permission_levels(self.authorization)
        writer.write_blob(self.pack())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account": self.contract,
            "name": self.name,
            "authorization": [
                {"actor": actor, "permission": permission}
                for actor, permission in self.authorization
            ],
            "data": self.data(),
            "hex_data": self.pack().hex(),
        }


@dataclass(frozen=True)
class Transfer(Action):
    contract: ClassVar[str] = TOKEN_CONTRACT
    name: ClassVar[str] = "transfer"

    from_account: str
    to: str
    quantity: Asset
    memo: str = ""

    def __post_init__(self):
        validate_name(self.from_account, "from")
        validate_name(self.to, "to")
        if len(self.memo.encode("utf-8")) > MAX_MEMO_BYTES:
            raise ValidationError(f"memo must be at most {MAX_MEMO_BYTES} bytes", field="memo")

    @property
    def actor(self) -> str:
        return self.from_account

    def data(self) -> Dict[str, Any]:
        return {
            "from": self.from_account,
            "to": self.to,
            "quantity": str(self.quantity),
            "memo": self.memo,
        }

    def _write(self, writer: AbiWriter) -> None:
        writer.write_name(self.from_account)
        writer.write_name(self.to)
        writer.write_asset(self.quantity)
        writer.write_string(self.memo)


@dataclass(frozen=True)
class NewAccount(Action):
    name: ClassVar[str] = "newaccount"

    creator: str
    new_name: str
    owner_key: str
    active_key: str

    def __post_init__(self):
        validate_name(self.creator, "creator")
        validate_name(self.new_name, "account_name")
        _check_public_key(self.owner_key, "owner_key")
        _check_public_key(self.active_key, "active_key")

    @property
    def actor(self) -> str:
        return self.creator

    def data(self) -> Dict[str, Any]:
        return {
            "creator": self.creator,
            "name": self.new_name,
            "owner": _authority(self.owner_key),
            "active": _authority(self.active_key),
        }

    def _write(self, writer: AbiWriter) -> None:
        writer.write_name(self.creator)
        writer.write_name(self.new_name)
        writer.write_authority(self.owner_key)
        writer.write_authority(self.active_key)


@dataclass(frozen=True)
class BuyRamBytes(Action):
    name: ClassVar[str] = "buyrambytes"

    payer: str
    receiver: str
    ram_bytes: int

    def __post_init__(self):
        validate_name(self.payer, "payer")
        validate_name(self.receiver, "receiver")
        _check_bytes(self.ram_bytes, "bytes")

    @property
    def actor(self) -> str:
        return self.payer

    def data(self) -> Dict[str, Any]:
        return {"payer": self.payer, "receiver": self.receiver, "bytes": self.ram_bytes}

    def _write(self, writer: AbiWriter) -> None:
        writer.write_name(self.payer)
        writer.write_name(self.receiver)
        writer.write_uint32(self.ram_bytes)


@dataclass(frozen=True)
class DelegateBandwidth(Action):
    name: ClassVar[str] = "delegatebw"

    from_account: str
    receiver: str
    stake_net_quantity: Asset
    stake_cpu_quantity: Asset
    transfer: bool = False

    def __post_init__(self):
        validate_name(self.from_account, "from")
        validate_name(self.receiver, "receiver")

    @property
    def actor(self) -> str:
        return self.from_account

    def data(self) -> Dict[str, Any]:
        return {
            "from": self.from_account,
            "receiver": self.receiver,
            "stake_net_quantity": str(self.stake_net_quantity),
            "stake_cpu_quantity": str(self.stake_cpu_quantity),
            "transfer": self.transfer,
        }

    def _write(self, writer: AbiWriter) -> None:
        writer.write_name(self.from_account)
        writer.write_name(self.receiver)
        writer.write_asset(self.stake_net_quantity)
        writer.write_asset(self.stake_cpu_quantity)
        writer.write_bool(self.transfer)


@dataclass(frozen=True)
class UndelegateBandwidth(Action):
    name: ClassVar[str] = "undelegatebw"

    from_account: str
    receiver: str
    unstake_net_quantity: Asset
    unstake_cpu_quantity: Asset

    def __post_init__(self):
        validate_name(self.from_account, "from")
        validate_name(self.receiver, "receiver")

    @property
    def actor(self) -> str:
        return self.from_account

    def data(self) -> Dict[str, Any]:
        return {
            "from": self.from_account,
            "receiver": self.receiver,
            "unstake_net_quantity": str(self.unstake_net_quantity),
            "unstake_cpu_quantity": str(self.unstake_cpu_quantity),
        }

    def _write(self, writer: AbiWriter) -> None:
        writer.write_name(self.from_account)
        writer.write_name(self.receiver)
        writer.write_asset(self.unstake_net_quantity)
        writer.write_asset(self.unstake_cpu_quantity)


@dataclass(frozen=True)
class VoteProducer(Action):
    name: ClassVar[str] = "voteproducer"

    voter: str
    producers: Tuple[str, ...]
    proxy: str = ""

    def __post_init__(self):
        validate_name(self.voter, "voter")
        if self.proxy:
            validate_name(self.proxy, "proxy")
        if len(self.producers) > MAX_PRODUCERS:
            raise ValidationError(f"At most {MAX_PRODUCERS} producers may be voted for",
                                  field="producers")
        for producer in self.producers:
            validate_name(producer, "producers")

    @property
    def actor(self) -> str:
        return self.voter

    def data(self) -> Dict[str, Any]:
        return {"voter": self.voter, "proxy": self.proxy, "producers": list(self.producers)}

    def _write(self, writer: AbiWriter) -> None:
        writer.write_name(self.voter)
        writer.write_name(self.proxy)
        writer.write_names(self.producers)


@dataclass(frozen=True)
class BidName(Action):
    name: ClassVar[str] = "bidname"

    bidder: str
    newname: str
    bid: Asset

    def __post_init__(self):
        validate_name(self.bidder, "bidder")
        validate_name(self.newname, "name")

    @property
    def actor(self) -> str:
        return self.bidder

    def data(self) -> Dict[str, Any]:
        return {"bidder": self.bidder, "newname": self.newname, "bid": str(self.bid)}

    def _write(self, writer: AbiWriter) -> None:
        writer.write_name(self.bidder)
        writer.write_name(self.newname)
        writer.write_asset(self.bid)


@dataclass(frozen=True)
class SellRam(Action):
    name: ClassVar[str] = "sellram"

    account: str
    ram_bytes: int

    def __post_init__(self):
        validate_name(self.account, "account")
        _check_bytes(self.ram_bytes, "bytes", maximum=2 ** 63 - 1)

    @property
    def actor(self) -> str:
        return self.account

    def data(self) -> Dict[str, Any]:
        return {"account": self.account, "bytes": self.ram_bytes}

    def _write(self, writer: AbiWriter) -> None:
        writer.write_name(self.account)
        writer.write_int64(self.ram_bytes)
