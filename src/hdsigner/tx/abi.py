"""
Binary ABI encoding.

Only the types used by the system actions and the transaction envelope are
covered: names, fixed-width integers, varuint32, strings, assets, public
keys and authorities.
"""

import re
import struct
from typing import Iterable, List

from hdsigner.core.asset import Asset
from hdsigner.errors import InvalidAccountName
from hdsigner.keys.encoding import public_key_from_text

NAME_PATTERN = re.compile(r"^[.1-5a-z]{0,12}[.1-5a-j]?$")
NAME_CHARSET = ".12345abcdefghijklmnopqrstuvwxyz"

KEY_TYPE_K1 = 0


def validate_name(name: str, field: str = "name") -> str:
    """
    Check an account or action name.

    Raises:
        InvalidAccountName: If the name is empty, too long, uses characters
            outside ``.1-5a-z`` or ends with a dot
    """
    if not isinstance(name, str) or not name:
        raise InvalidAccountName(f"{field} must be a non-empty name", field=field)
    if not NAME_PATTERN.match(name) or name.endswith("."):
        raise InvalidAccountName(f"Invalid name for {field}: {name!r}", field=field)
    return name


def name_to_int(name: str) -> int:
    """Encode a name into its uint64 value. The empty name is 0."""
    value = 0
    for i in range(13):
        c = NAME_CHARSET.index(name[i]) if i < len(name) else 0
        if i < 12:
            value |= (c & 0x1F) << (64 - 5 * (i + 1))
        else:
            value |= c & 0x0F
    return value


def name_from_int(value: int) -> str:
    chars = []
    for i in range(13):
        if i == 0:
            c = value & 0x0F
            value >>= 4
        else:
            c = value & 0x1F
            value >>= 5
        chars.append(NAME_CHARSET[c])
    return "".join(reversed(chars)).rstrip(".")


class AbiWriter:
    """Accumulates little-endian ABI bytes."""

    def __init__(self):
        self._buffer = bytearray()

    def write_bytes(self, data: bytes) -> "AbiWriter":
        self._buffer.extend(data)
        return self

    def write_uint8(self, value: int) -> "AbiWriter":
        return self.write_bytes(struct.pack("<B", value))

    def write_uint16(self, value: int) -> "AbiWriter":
        return self.write_bytes(struct.pack("<H", value))

    def write_uint32(self, value: int) -> "AbiWriter":
        return self.write_bytes(struct.pack("<I", value))

    def write_int64(self, value: int) -> "AbiWriter":
        return self.write_bytes(struct.pack("<q", value))

    def write_uint64(self, value: int) -> "AbiWriter":
        return self.write_bytes(struct.pack("<Q", value))

    def write_bool(self, value: bool) -> "AbiWriter":
        return self.write_uint8(1 if value else 0)

    def write_varuint32(self, value: int) -> "AbiWriter":
        if not 0 <= value <= 0xFFFFFFFF:
            raise ValueError(f"varuint32 out of range: {value}")
        while True:
            byte = value & 0x7F
            value >>= 7
            if value:
                self.write_uint8(byte | 0x80)
            else:
                self.write_uint8(byte)
                return self

    def write_blob(self, data: bytes) -> "AbiWriter":
        """Length-prefixed bytes."""
        self.write_varuint32(len(data))
        return self.write_bytes(data)

    def write_string(self, value: str) -> "AbiWriter":
        return self.write_blob(value.encode("utf-8"))

    def write_name(self, name: str) -> "AbiWriter":
        return self.write_uint64(name_to_int(name))

    def write_names(self, names: Iterable[str]) -> "AbiWriter":
        names = list(names)
        self.write_varuint32(len(names))
        for name in names:
            self.write_name(name)
        return self

    def write_asset(self, asset: Asset) -> "AbiWriter":
        self.write_int64(asset.amount)
        self.write_uint8(asset.symbol.precision)
        return self.write_bytes(asset.symbol.code.encode("ascii").ljust(7, b"\x00"))

    def write_public_key(self, key_text: str) -> "AbiWriter":
        self.write_uint8(KEY_TYPE_K1)
        return self.write_bytes(public_key_from_text(key_text))

    def write_authority(self, key_text: str, threshold: int = 1, weight: int = 1) -> "AbiWriter":
        """Single-key authority with no account or wait entries."""
        self.write_uint32(threshold)
        self.write_varuint32(1)
        self.write_public_key(key_text)
        self.write_uint16(weight)
        self.write_varuint32(0)  # accounts
        return self.write_varuint32(0)  # waits

    def write_permission_levels(self, levels: List[tuple]) -> "AbiWriter":
        self.write_varuint32(len(levels))
        for actor, permission in levels:
            self.write_name(actor)
            self.write_name(permission)
        return self

    def getvalue(self) -> bytes:
        return bytes(self._buffer)
