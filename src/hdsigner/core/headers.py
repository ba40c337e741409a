"""
Transaction headers.

Expiration and reference-block fields are always supplied by the caller;
nothing here queries a chain.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from hdsigner.config import SignerConfig, get_config
from hdsigner.errors import InvalidExpiration, InvalidHeaderValue, MissingRequiredField

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
MAX_UINT16 = 0xFFFF
MAX_UINT32 = 0xFFFFFFFF

ExpirationHint = Union[datetime, str, int, float, None]


def normalize_expiration(
    expiration: ExpirationHint,
    config: Optional[SignerConfig] = None,
) -> datetime:
    """
    Normalize an expiration hint to a whole-second UTC datetime.

    Accepts a datetime (naive values are taken as UTC), an ISO-8601 string,
    or UNIX seconds. ``None`` means now plus ``expire_in_seconds``.

    Raises:
        InvalidExpiration: If the hint cannot be converted
    """
    if expiration is None:
        config = config or get_config()
        moment = datetime.now(timezone.utc) + timedelta(seconds=config.expire_in_seconds)
    elif isinstance(expiration, datetime):
        moment = expiration
    elif isinstance(expiration, str):
        text = expiration.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidExpiration(f"Invalid expiration {expiration!r}: {e}",
                                    field="expiration") from e
    elif isinstance(expiration, (int, float)) and not isinstance(expiration, bool):
        try:
            moment = datetime.fromtimestamp(expiration, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidExpiration(f"Invalid expiration {expiration!r}: {e}",
                                    field="expiration") from e
    else:
        raise InvalidExpiration(f"Unsupported expiration type: {type(expiration).__name__}",
                                field="expiration")

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    try:
        moment = moment.astimezone(timezone.utc).replace(microsecond=0)
        seconds = int(moment.timestamp())
    except (OverflowError, ValueError) as e:
        raise InvalidExpiration(f"Invalid expiration {expiration!r}: {e}",
                                field="expiration") from e

    if not 0 <= seconds <= MAX_UINT32:
        raise InvalidExpiration(f"Expiration {expiration!r} is outside the uint32 range",
                                field="expiration")
    return moment


def _check_uint(value, name: str, maximum: int) -> int:
    if value is None:
        raise MissingRequiredField(name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidHeaderValue(f"{name} must be an integer, got {value!r}", field=name)
    if not 0 <= value <= maximum:
        raise InvalidHeaderValue(f"{name} must be in [0, {maximum}], got {value}", field=name)
    return value


@dataclass(frozen=True)
class TransactionHeaders:
    """
    Header fields binding a transaction to a recent block.

    Attributes:
        expiration: Normalized UTC expiration time
        ref_block_num: Low 16 bits of a recent block number
        ref_block_prefix: Bytes 8..11 of that block's id, little-endian
    """

    expiration: datetime
    ref_block_num: int
    ref_block_prefix: int

    @classmethod
    def create(
        cls,
        expiration: ExpirationHint,
        ref_block_num: Optional[int],
        ref_block_prefix: Optional[int],
        config: Optional[SignerConfig] = None,
    ) -> "TransactionHeaders":
        """
        Validate and normalize caller-supplied headers.

        Raises:
            MissingRequiredField: If a reference block field is omitted
            InvalidHeaderValue: If a reference block field is out of range
            InvalidExpiration: If the expiration cannot be converted
        """
        ref_block_num = _check_uint(ref_block_num, "ref_block_num", MAX_UINT16)
        ref_block_prefix = _check_uint(ref_block_prefix, "ref_block_prefix", MAX_UINT32)
        return cls(
            expiration=normalize_expiration(expiration, config),
            ref_block_num=ref_block_num,
            ref_block_prefix=ref_block_prefix,
        )

    @classmethod
    def from_block_id(
        cls,
        block_id: str,
        expiration: ExpirationHint = None,
        config: Optional[SignerConfig] = None,
    ) -> "TransactionHeaders":
        """Derive the reference fields from a known 32-byte block id."""
        if not block_id:
            raise MissingRequiredField("block_id")
        try:
            raw = bytes.fromhex(block_id)
        except ValueError as e:
            raise InvalidHeaderValue(f"block_id is not hex: {e}", field="block_id") from e
        if len(raw) != 32:
            raise InvalidHeaderValue("block_id must be 32 bytes", field="block_id")

        block_num = int.from_bytes(raw[0:4], "big")
        return cls.create(
            expiration,
            block_num & MAX_UINT16,
            int.from_bytes(raw[8:12], "little"),
            config,
        )

    @property
    def expiration_seconds(self) -> int:
        return int(self.expiration.timestamp())

    @property
    def expiration_text(self) -> str:
        """Expiration in the chain's ``YYYY-MM-DDTHH:MM:SS`` format."""
        return self.expiration.strftime(TIMESTAMP_FORMAT)

    def to_dict(self) -> dict:
        return {
            "expiration": self.expiration_text,
            "ref_block_num": self.ref_block_num,
            "ref_block_prefix": self.ref_block_prefix,
        }
