"""
Key Node - hierarchical-deterministic key derivation.

A KeyNode is an immutable value that originates from a seed, an extended
key or a raw keypair. Deriving from a node returns a new node and leaves
the receiver untouched.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

import structlog

from bip_utils import (
    Base58ChecksumError,
    Bip32KeyError,
    Bip32Secp256k1,
    Bip39MnemonicGenerator,
    Bip39MnemonicValidator,
    Bip39SeedGenerator,
    Bip39WordsNum,
)

from hdsigner.config import SignerConfig, get_config
from hdsigner.errors import (
    InvalidExtendedKey,
    InvalidPath,
    InvalidSeed,
    KeyNodeError,
    KeyUnavailable,
    NotDerivable,
)
from hdsigner.keys.encoding import (
    LEGACY_PUBLIC_PREFIX,
    public_key_from_private,
    public_key_to_text,
    wif_decode,
    wif_encode,
)

logger = structlog.get_logger(__name__)

HARDENED_OFFSET = 0x80000000
MAX_CHILD_INDEX = 0xFFFFFFFF
MIN_SEED_BYTES = 16
MAX_SEED_BYTES = 64


class KeyOrigin(str, Enum):
    """Where a node's key material came from."""
    SEED = "seed"                    # Master node of a seed or mnemonic
    EXTENDED_KEY = "extended_key"    # xprv / xpub, including derived nodes
    RAW_KEYPAIR = "raw_keypair"      # Bare private key, no chain code


def parse_path(path: str) -> List[int]:
    """
    Parse a BIP-32 path such as ``m/44'/194'/0'/0/0`` into child indices.

    Hardened elements may be marked with ``'``, ``h``, ``H`` or ``p``. The
    leading ``m`` is optional.

    Raises:
        InvalidPath: If an element is not a valid index
    """
    if not isinstance(path, str):
        raise InvalidPath("Derivation path must be a string", field="path")

    parts = [p for p in path.strip().split("/")]
    if parts and parts[0] in ("m", "M"):
        parts = parts[1:]

    indices = []
    for part in parts:
        hardened = part.endswith(("'", "h", "H", "p"))
        digits = part[:-1] if hardened else part
        if not (digits.isascii() and digits.isdigit()):
            raise InvalidPath(f"Invalid path element {part!r} in {path!r}", field="path")
        index = int(digits)
        if index >= HARDENED_OFFSET:
            raise InvalidPath(f"Path element {part!r} out of range", field="path")
        indices.append(index + HARDENED_OFFSET if hardened else index)
    return indices


def _resolve_chain_id(chain_id: Optional[str], config: Optional[SignerConfig]) -> str:
    if chain_id is None:
        return (config or get_config()).chain_id
    try:
        raw = bytes.fromhex(chain_id)
    except (TypeError, ValueError):
        raise KeyNodeError("chain_id must be hex encoded", field="chain_id")
    if len(raw) != 32:
        raise KeyNodeError("chain_id must be 32 bytes", field="chain_id")
    return chain_id.lower()


@dataclass(frozen=True, eq=False, repr=False)
class KeyNode:
    """
    A node in an HD key tree.

    Use the ``from_*`` factories rather than the constructor.

    Attributes:
        origin: Where the key material came from
        chain_id: Hex id of the chain the node signs for; never changes
            and is handed down to every derived node
    """

    origin: KeyOrigin
    chain_id: str
    _context: Optional[Bip32Secp256k1] = field(default=None)
    _private_key: Optional[bytes] = field(default=None)
    _public_key: Optional[bytes] = field(default=None)

    def __post_init__(self):
        if self._context is None and self._private_key is None:
            raise KeyNodeError("KeyNode needs either an extended key or a private key")

        logger.debug(
            "key_node_created",
            origin=self.origin.value,
            depth=self.depth,
            public_only=self.is_public_only,
            chain_id=self.chain_id[:8] + "...",
        )

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @staticmethod
    def generate_mnemonic(words_num: int = 12) -> str:
        """Generate a new English BIP-39 mnemonic."""
        return Bip39MnemonicGenerator().FromWordsNumber(Bip39WordsNum(words_num)).ToStr()

    @classmethod
    def from_seed(
        cls,
        seed: Union[str, bytes],
        chain_id: Optional[str] = None,
        config: Optional[SignerConfig] = None,
    ) -> "KeyNode":
        """
        Create the master node of a hex-encoded seed.

        Raises:
            InvalidSeed: If the seed is not hex or has a bad length
        """
        if isinstance(seed, (bytes, bytearray)):
            seed_bytes = bytes(seed)
        else:
            try:
                seed_bytes = bytes.fromhex(seed)
            except (TypeError, ValueError) as e:
                raise InvalidSeed(f"Seed is not valid hex: {e}", field="seed") from e

        if not MIN_SEED_BYTES <= len(seed_bytes) <= MAX_SEED_BYTES:
            raise InvalidSeed(
                f"Seed must be {MIN_SEED_BYTES}-{MAX_SEED_BYTES} bytes, got {len(seed_bytes)}",
                field="seed",
            )

        try:
            context = Bip32Secp256k1.FromSeed(seed_bytes)
        except (Bip32KeyError, ValueError) as e:
            raise InvalidSeed(f"Seed does not produce a valid master key: {e}", field="seed") from e

        return cls(
            origin=KeyOrigin.SEED,
            chain_id=_resolve_chain_id(chain_id, config),
            _context=context,
        )

    from_master_seed = from_seed

    @classmethod
    def from_mnemonic(
        cls,
        mnemonic: str,
        chain_id: Optional[str] = None,
        passphrase: str = "",
        config: Optional[SignerConfig] = None,
    ) -> "KeyNode":
        """Create the master node of a BIP-39 mnemonic."""
        if not isinstance(mnemonic, str) or not Bip39MnemonicValidator().IsValid(mnemonic):
            raise InvalidSeed("Invalid mnemonic", field="mnemonic")
        seed_bytes = Bip39SeedGenerator(mnemonic).Generate(passphrase)
        return cls.from_seed(seed_bytes, chain_id, config)

    @classmethod
    def from_extended_key(
        cls,
        extended_key: str,
        chain_id: Optional[str] = None,
        config: Optional[SignerConfig] = None,
    ) -> "KeyNode":
        """Wrap an xprv or xpub. The depth is not checked."""
        if not isinstance(extended_key, str):
            raise InvalidExtendedKey("Extended key must be a string", field="extended_key")
        try:
            context = Bip32Secp256k1.FromExtendedKey(extended_key)
        except (Base58ChecksumError, Bip32KeyError, ValueError, TypeError) as e:
            raise InvalidExtendedKey(f"Invalid extended key: {e}", field="extended_key") from e

        return cls(
            origin=KeyOrigin.EXTENDED_KEY,
            chain_id=_resolve_chain_id(chain_id, config),
            _context=context,
        )

    @classmethod
    def from_private_key(
        cls,
        wif: str,
        chain_id: Optional[str] = None,
        config: Optional[SignerConfig] = None,
    ) -> "KeyNode":
        """
        Create a raw-keypair node from a WIF private key.

        Raises:
            InvalidWIF: If the WIF text is malformed
            InvalidPrivateKey: If the key is not a valid secp256k1 scalar
        """
        private_key = wif_decode(wif)
        return cls(
            origin=KeyOrigin.RAW_KEYPAIR,
            chain_id=_resolve_chain_id(chain_id, config),
            _private_key=private_key,
            _public_key=public_key_from_private(private_key),
        )

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    @property
    def is_public_only(self) -> bool:
        return self._context is not None and self._context.IsPublicOnly()

    @property
    def can_derive(self) -> bool:
        """True for seed nodes and private extended key nodes."""
        return self._context is not None and not self._context.IsPublicOnly()

    @property
    def depth(self) -> int:
        if self._context is None:
            return 0
        return self._context.Depth().ToInt()

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def _check_derivable(self) -> None:
        if self.origin == KeyOrigin.RAW_KEYPAIR:
            raise NotDerivable("Cannot derive from a node created from a raw private key")
        if not self.can_derive:
            raise NotDerivable("Cannot derive from a public-only extended key")

    def _child_node(self, context: Bip32Secp256k1) -> "KeyNode":
        return KeyNode(
            origin=KeyOrigin.EXTENDED_KEY,
            chain_id=self.chain_id,
            _context=context,
        )

    def derive_path(self, path: str) -> "KeyNode":
        """
        Derive the node at ``path`` relative to this node.

        Args:
            path: BIP-32 path, e.g. ``m/44'/194'/0'/0/0``

        Returns:
            A new node; this node is unchanged

        Raises:
            NotDerivable: If this node is a raw keypair or public-only
            InvalidPath: If the path is malformed
        """
        self._check_derivable()
        indices = parse_path(path)

        context = self._context
        try:
            for index in indices:
                context = context.ChildKey(index)
        except Bip32KeyError as e:
            raise KeyNodeError(f"Derivation of {path!r} failed: {e}", field="path") from e

        logger.debug("key_node_derived", path=path, depth=context.Depth().ToInt())
        return self._child_node(context)

    def derive_child(self, index: int) -> "KeyNode":
        """
        Derive a single child. Indices ``>= 2**31`` are hardened.

        Returns:
            A new node; this node is unchanged
        """
        self._check_derivable()
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index <= MAX_CHILD_INDEX:
            raise InvalidPath(f"Child index must be in [0, 2**32), got {index!r}", field="index")

        try:
            context = self._context.ChildKey(index)
        except Bip32KeyError as e:
            raise KeyNodeError(f"Derivation of child {index} failed: {e}", field="index") from e

        logger.debug("key_node_derived", index=index, depth=context.Depth().ToInt())
        return self._child_node(context)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def get_private_extended_key(self) -> str:
        if self._context is None:
            raise KeyUnavailable("No xprv for a node created from a raw private key")
        if self._context.IsPublicOnly():
            raise KeyUnavailable("No xprv for a public-only extended key")
        return self._context.PrivateKey().ToExtended()

    def get_public_extended_key(self) -> str:
        if self._context is None:
            raise KeyUnavailable("No xpub for a node created from a raw private key")
        return self._context.PublicKey().ToExtended()

    def _raw_private_key(self) -> bytes:
        if self._private_key is not None:
            return self._private_key
        if self._context.IsPublicOnly():
            raise KeyUnavailable("Public-only node holds no private key")
        return self._context.PrivateKey().Raw().ToBytes()

    def _raw_public_key(self) -> bytes:
        if self._public_key is not None:
            return self._public_key
        return self._context.PublicKey().RawCompressed().ToBytes()

    def get_public_key(self, prefix: str = LEGACY_PUBLIC_PREFIX) -> str:
        """Public key as ``EOS...`` text (or ``PUB_K1_...``)."""
        return public_key_to_text(self._raw_public_key(), prefix)

    def get_private_key(self) -> str:
        """Private key as legacy WIF."""
        return wif_encode(self._raw_private_key())

    def __repr__(self) -> str:
        return (
            f"KeyNode(origin={self.origin.value}, depth={self.depth}, "
            f"public_only={self.is_public_only}, public_key={self.get_public_key()})"
        )
