"""
Test suite for transaction construction functionality.

Tests the ability to build and sign offline transactions for every
operation in the catalog.
"""

import struct
from datetime import datetime, timezone

import pytest

from hdsigner.core.asset import Asset
from hdsigner.core.headers import TransactionHeaders
from hdsigner.errors import (
    InvalidAccountName,
    InvalidAmount,
    InvalidExpiration,
    MissingRequiredField,
    SigningKeyUnavailable,
    ValidationError,
)
from hdsigner.keys.encoding import public_key_from_text, signature_from_text
from hdsigner.keys.node import KeyNode
from hdsigner.tx.actions import (
    BidName,
    BuyRamBytes,
    DelegateBandwidth,
    NewAccount,
    SellRam,
    Transfer,
    UndelegateBandwidth,
    VoteProducer,
)
from hdsigner.tx.builder import TransactionBuilder
from hdsigner.tx.signer import (
    TransactionSigner,
    is_canonical,
    recover_public_key,
    verify_public_key,
)
from hdsigner.tx.transaction import SignedTransaction, Transaction
from tests.conftest import TEST_CHAIN_ID, TEST_PUBLIC_KEY, TEST_SEED, TEST_WIF


# ============================================================================
# Test Transaction Signer
# ============================================================================

class TestTransactionSigner:
    """Tests for transaction signing functionality."""

    def test_load_key(self):
        signer = TransactionSigner(TEST_WIF)

        assert signer.is_loaded is True
        assert signer.public_key == TEST_PUBLIC_KEY

    def test_signer_not_loaded(self):
        """Test that signer raises error when key not loaded."""
        signer = TransactionSigner()

        assert signer.is_loaded is False
        assert signer.public_key is None

        with pytest.raises(SigningKeyUnavailable, match="No signing key loaded"):
            signer.sign_digest(bytes(32))

    def test_sign_digest(self):
        """Test that signatures verify and recover to the signing key."""
        signer = TransactionSigner(TEST_WIF)
        digest = bytes(range(32))

        signature = signer.sign_digest(digest)

        assert signature.startswith("SIG_K1_")
        assert signer.verify_digest(digest, signature) is True
        assert verify_public_key(digest, signature, TEST_PUBLIC_KEY) is True
        assert recover_public_key(digest, signature) == TEST_PUBLIC_KEY

    def test_signature_is_canonical(self):
        signer = TransactionSigner(TEST_WIF)
        for i in range(8):
            _, rs = signature_from_text(signer.sign_digest(bytes([i]) * 32))
            assert is_canonical(rs)

    def test_signature_is_deterministic(self):
        signer = TransactionSigner(TEST_WIF)
        digest = b"\x42" * 32
        assert signer.sign_digest(digest) == signer.sign_digest(digest)

    def test_wrong_digest_does_not_verify(self):
        signer = TransactionSigner(TEST_WIF)
        signature = signer.sign_digest(b"\x01" * 32)
        assert signer.verify_digest(b"\x02" * 32, signature) is False


# ============================================================================
# Test Transaction Model
# ============================================================================

class TestTransaction:
    """Tests for transaction serialization."""

    def _transaction(self, test_config) -> Transaction:
        headers = TransactionHeaders.create("2018-06-20T10:00:00", 1234, 567890, test_config)
        action = Transfer("alice", "bob", Asset.parse("5.0000 EOS"), "hi")
        return Transaction(headers, (action,), test_config.chain_id)

    def test_pack_header_layout(self, test_config):
        """Test the fixed header fields at the start of the packed transaction."""
        transaction = self._transaction(test_config)
        packed = transaction.pack()

        expiration = int(datetime(2018, 6, 20, 10, tzinfo=timezone.utc).timestamp())
        assert packed[:10] == struct.pack("<IHI", expiration, 1234, 567890)
        # net words, cpu ms, delay, context-free actions, one action
        assert packed[10:15] == b"\x00\x00\x00\x00\x01"
        # transaction extensions
        assert packed[-1:] == b"\x00"

    def test_pack_action(self, test_config):
        transaction = self._transaction(test_config)
        packed = transaction.pack()
        action = transaction.actions[0]

        assert action.pack() in packed
        assert action.to_dict()["hex_data"] == action.pack().hex()
        assert action.to_dict()["authorization"] == [{"actor": "alice", "permission": "active"}]

    def test_signing_digest_binds_chain_id(self, test_config):
        transaction = self._transaction(test_config)
        other = Transaction(transaction.headers, transaction.actions, TEST_CHAIN_ID)

        assert transaction.pack() == other.pack()
        assert transaction.signing_digest() != other.signing_digest()

    def test_empty_transaction_rejected(self, test_config):
        headers = TransactionHeaders.create("2018-06-20T10:00:00", 1, 1, test_config)
        with pytest.raises(MissingRequiredField, match="at least one action"):
            Transaction(headers, (), test_config.chain_id)

    def test_to_dict(self, test_config):
        data = self._transaction(test_config).to_dict()

        assert data["expiration"] == "2018-06-20T10:00:00"
        assert data["ref_block_num"] == 1234
        assert data["ref_block_prefix"] == 567890
        assert data["actions"][0]["account"] == "eosio.token"
        assert data["actions"][0]["data"]["quantity"] == "5.0000 EOS"


# ============================================================================
# Test Wire Format
# ============================================================================

# Compressed point of TEST_PUBLIC_KEY
DEV_PUBLIC_KEY_HEX = "02c0ded2bc1f1305fb0faac5e6c03ee3a1924234985427b6167ca569d13df435cf"

# expiration 2018-06-20T10:00:00, ref_block_num 1234, ref_block_prefix 567890,
# then net words, cpu ms, delay, context-free actions and one action
PACKED_HEADER_HEX = "a0252a5b" "d204" "52aa0800" "00" "00" "00" "00" "01"

PACKED_TRANSFER_HEX = (
    PACKED_HEADER_HEX
    + "00a6823403ea3055"                    # eosio.token
    + "000000572d3ccdcd"                    # transfer
    + "01" "0000000000855c34" "00000000a8ed3232"  # alice@active
    + "23"
    + "0000000000855c34"                    # from alice
    + "0000000000000e3d"                    # to bob
    + "50c3000000000000" "04" "454f5300000000"  # 5.0000 EOS
    + "026869"                              # memo "hi"
    + "00"                                  # transaction extensions
)

AUTHORITY_HEX = "01000000" "01" "00" + DEV_PUBLIC_KEY_HEX + "0100" "00" "00"

PACKED_NEWACCOUNT_HEX = (
    PACKED_HEADER_HEX
    + "0000000000ea3055"                    # eosio
    + "00409e9a2264b89a"                    # newaccount
    + "01" "0000000000ea3055" "00000000a8ed3232"  # eosio@active
    + "66"
    + "0000000000ea3055"                    # creator eosio
    + "0000000000855c34"                    # name alice
    + AUTHORITY_HEX                         # owner
    + AUTHORITY_HEX                         # active
    + "00"
)


class TestWireFormat:
    """Tests packed transactions against fixed EOSIO wire-format bytes."""

    def _pack(self, action, test_config) -> str:
        headers = TransactionHeaders.create("2018-06-20T10:00:00", 1234, 567890, test_config)
        return Transaction(headers, (action,), test_config.chain_id).pack().hex()

    def test_public_key_bytes(self):
        assert public_key_from_text(TEST_PUBLIC_KEY).hex() == DEV_PUBLIC_KEY_HEX

    def test_packed_transfer(self, test_config):
        action = Transfer("alice", "bob", Asset.parse("5.0000 EOS"), "hi")
        assert self._pack(action, test_config) == PACKED_TRANSFER_HEX

    def test_packed_newaccount(self, test_config):
        """Test the single-key authority layout inside newaccount."""
        action = NewAccount("eosio", "alice", TEST_PUBLIC_KEY, TEST_PUBLIC_KEY)
        assert self._pack(action, test_config) == PACKED_NEWACCOUNT_HEX

    def test_push_body_carries_packed_bytes(self, builder, headers):
        signed = builder.transfer("alice", "bob", 5, memo="hi", **headers)
        assert signed.to_push_dict()["packed_trx"] == PACKED_TRANSFER_HEX


# ============================================================================
# Test Transaction Builder
# ============================================================================

class TestTransactionBuilder:
    """Tests for the operation catalog."""

    def test_transfer(self, builder, headers):
        """Test a transfer of 5 EOS from alice to bob."""
        signed = builder.transfer("alice", "bob", 5, symbol="EOS", **headers)

        assert isinstance(signed, SignedTransaction)
        assert signed.broadcast is False
        assert len(signed.actions) == 1

        action = signed.actions[0]
        assert isinstance(action, Transfer)
        assert action.from_account == "alice"
        assert action.to == "bob"
        assert str(action.quantity) == "5.0000 EOS"
        assert action.data() == {
            "from": "alice",
            "to": "bob",
            "quantity": "5.0000 EOS",
            "memo": "",
        }

    def test_transfer_signature_verifies(self, builder, account_node, headers):
        """Test that the signature belongs to the bound node's key."""
        signed = builder.transfer("alice", "bob", 1, memo="thanks", **headers)
        digest = signed.transaction.signing_digest()

        assert len(signed.signatures) == 1
        assert verify_public_key(digest, signed.signatures[0], account_node.get_public_key())
        assert recover_public_key(digest, signed.signatures[0]) == account_node.get_public_key()

    def test_transaction_uses_node_chain_id(self, test_config, headers):
        node = KeyNode.from_seed(TEST_SEED, chain_id=TEST_CHAIN_ID, config=test_config)
        signed = TransactionBuilder(node, config=test_config).transfer("alice", "bob", 1, **headers)

        assert signed.transaction.chain_id == TEST_CHAIN_ID

    def test_build_is_deterministic(self, builder, headers):
        first = builder.transfer("alice", "bob", 1, **headers)
        second = builder.transfer("alice", "bob", 1, **headers)

        assert first.to_push_dict() == second.to_push_dict()
        assert first.id == second.id

    def test_push_dict(self, builder, headers):
        signed = builder.transfer("alice", "bob", 1, **headers)
        body = signed.to_push_dict()

        assert body["compression"] == "none"
        assert body["packed_context_free_data"] == ""
        assert body["packed_trx"] == signed.transaction.pack().hex()
        assert body["signatures"] == list(signed.signatures)

    def test_to_dict(self, builder, headers):
        data = builder.transfer("alice", "bob", 1, **headers).to_dict()

        assert data["compression"] == "none"
        assert data["transaction"]["actions"][0]["name"] == "transfer"
        assert len(data["signatures"]) == 1

    def test_register_account_defaults(self, builder, account_node, headers):
        """Test default keys, RAM and stake for a new account."""
        signed = builder.register_account("newaccount11", "creator", **headers)

        assert [type(a) for a in signed.actions] == [NewAccount, BuyRamBytes, DelegateBandwidth]

        new_account, buy_ram, delegate = signed.actions
        public_key = account_node.get_public_key()

        assert new_account.creator == "creator"
        assert new_account.new_name == "newaccount11"
        assert new_account.owner_key == public_key
        assert new_account.active_key == public_key
        assert new_account.data()["owner"]["keys"] == [{"key": public_key, "weight": 1}]

        assert buy_ram.payer == "creator"
        assert buy_ram.receiver == "newaccount11"
        assert buy_ram.ram_bytes == 4000

        assert delegate.from_account == "creator"
        assert delegate.receiver == "newaccount11"
        assert str(delegate.stake_cpu_quantity) == "1000.0000 EOS"
        assert str(delegate.stake_net_quantity) == "1000.0000 EOS"
        assert delegate.transfer is False

    def test_register_account_overrides(self, builder, headers):
        signed = builder.register_account(
            "newaccount11",
            "creator",
            owner_key=TEST_PUBLIC_KEY,
            active_key=TEST_PUBLIC_KEY,
            stake_cpu=2,
            stake_net="0.5",
            ram_bytes=8192,
            **headers,
        )
        new_account, buy_ram, delegate = signed.actions

        assert new_account.owner_key == TEST_PUBLIC_KEY
        assert new_account.active_key == TEST_PUBLIC_KEY
        assert buy_ram.ram_bytes == 8192
        assert str(delegate.stake_cpu_quantity) == "2.0000 EOS"
        assert str(delegate.stake_net_quantity) == "0.5000 EOS"

    def test_register_account_rejects_bad_key(self, builder, headers):
        with pytest.raises(ValidationError) as exc_info:
            builder.register_account("newaccount11", "creator", owner_key="EOSnotakey", **headers)
        assert exc_info.value.field == "owner_key"

    def test_delegate(self, builder, headers):
        signed = builder.delegate("alice", "bob", cpu_amount=1.5, net_amount=2, **headers)
        action = signed.actions[0]

        assert isinstance(action, DelegateBandwidth)
        assert action.data() == {
            "from": "alice",
            "receiver": "bob",
            "stake_net_quantity": "2.0000 EOS",
            "stake_cpu_quantity": "1.5000 EOS",
            "transfer": False,
        }

    def test_undelegate(self, builder, headers):
        signed = builder.undelegate("alice", "bob", cpu_amount=1, net_amount=3, **headers)
        action = signed.actions[0]

        assert isinstance(action, UndelegateBandwidth)
        assert str(action.unstake_cpu_quantity) == "1.0000 EOS"
        assert str(action.unstake_net_quantity) == "3.0000 EOS"

    def test_vote(self, builder, headers):
        """Test that producers are sorted, de-duplicated and voted without proxy."""
        signed = builder.vote("alice", ["producer2", "producer1", "producer2"], **headers)
        action = signed.actions[0]

        assert isinstance(action, VoteProducer)
        assert action.proxy == ""
        assert action.producers == ("producer1", "producer2")
        assert action.authorization == [("alice", "active")]

    def test_vote_requires_producers(self, builder, headers):
        with pytest.raises(MissingRequiredField, match="producers"):
            builder.vote("alice", [], **headers)

        with pytest.raises(MissingRequiredField, match="producers"):
            builder.vote("alice", None, **headers)

    def test_vote_limit(self, builder, headers):
        producers = [f"producer{c}" for c in "abcdefghijklmnopqrstuvwxyz12345"]
        with pytest.raises(ValidationError, match="At most 30"):
            builder.vote("alice", producers, **headers)

    def test_vote_rejects_invalid_producer(self, builder, headers):
        """Test that a bad producer name is reported before sorting."""
        with pytest.raises(InvalidAccountName) as exc_info:
            builder.vote("alice", ["producer1", "BadName"], **headers)
        assert exc_info.value.field == "producers"

    def test_bidname(self, builder, headers):
        signed = builder.bidname("alice", "bob", 10, **headers)
        action = signed.actions[0]

        assert isinstance(action, BidName)
        assert action.data() == {"bidder": "alice", "newname": "bob", "bid": "10.0000 EOS"}

    def test_bidname_with_symbol(self, builder, headers):
        signed = builder.bidname("alice", "bob", 10, symbol="4,SYS", **headers)
        assert str(signed.actions[0].bid) == "10.0000 SYS"

    def test_buyram(self, builder, headers):
        signed = builder.buyram("alice", "bob", 1024, **headers)
        action = signed.actions[0]

        assert isinstance(action, BuyRamBytes)
        assert action.data() == {"payer": "alice", "receiver": "bob", "bytes": 1024}
        assert action.contract == "eosio"

    def test_sellram(self, builder, headers):
        signed = builder.sellram("alice", 2048, **headers)
        action = signed.actions[0]

        assert isinstance(action, SellRam)
        assert action.data() == {"account": "alice", "bytes": 2048}
        assert action.pack()[8:] == struct.pack("<q", 2048)


# ============================================================================
# Test Builder Failures
# ============================================================================

class TestBuilderFailures:
    """Tests for typed failures shared by every operation."""

    @pytest.mark.parametrize("missing", ["ref_block_num", "ref_block_prefix"])
    def test_missing_ref_block_fields(self, builder, headers, missing):
        """Test that omitted reference fields fail rather than default."""
        del headers[missing]

        with pytest.raises(MissingRequiredField, match=missing):
            builder.transfer("alice", "bob", 1, **headers)

        with pytest.raises(MissingRequiredField, match=missing):
            builder.register_account("newaccount11", "creator", **headers)

        with pytest.raises(MissingRequiredField, match=missing):
            builder.sellram("alice", 1, **headers)

    def test_invalid_expiration(self, builder, headers):
        headers["expiration"] = "next tuesday"
        with pytest.raises(InvalidExpiration):
            builder.transfer("alice", "bob", 1, **headers)

    def test_expiration_past_datetime_range(self, builder, headers):
        headers["expiration"] = "9999-12-31T23:59:59-01:00"
        with pytest.raises(InvalidExpiration):
            builder.transfer("alice", "bob", 1, **headers)

    def test_amount_overflow(self, builder, headers):
        with pytest.raises(InvalidAmount):
            builder.transfer("alice", "bob", "1e999999", **headers)

    def test_non_string_symbol(self, builder, headers):
        with pytest.raises(InvalidAmount) as exc_info:
            builder.transfer("alice", "bob", 1, symbol=4, **headers)
        assert exc_info.value.field == "symbol"

    def test_negative_amount(self, builder, headers):
        with pytest.raises(InvalidAmount):
            builder.transfer("alice", "bob", -1, **headers)

        with pytest.raises(InvalidAmount):
            builder.delegate("alice", "bob", cpu_amount=1, net_amount=-1, **headers)

    def test_precision_exceeded(self, builder, headers):
        with pytest.raises(InvalidAmount):
            builder.transfer("alice", "bob", "0.00001", **headers)

    def test_missing_fields(self, builder, headers):
        with pytest.raises(MissingRequiredField, match="to"):
            builder.transfer("alice", "", 1, **headers)

        with pytest.raises(MissingRequiredField, match="amount"):
            builder.transfer("alice", "bob", None, **headers)

        with pytest.raises(MissingRequiredField, match="account_name"):
            builder.register_account(None, "creator", **headers)

        with pytest.raises(MissingRequiredField, match="bytes"):
            builder.buyram("alice", "bob", None, **headers)

    def test_invalid_account_name(self, builder, headers):
        with pytest.raises(InvalidAccountName) as exc_info:
            builder.transfer("Alice", "bob", 1, **headers)
        assert exc_info.value.field == "from"

    def test_memo_too_long(self, builder, headers):
        with pytest.raises(ValidationError, match="memo"):
            builder.transfer("alice", "bob", 1, memo="x" * 257, **headers)

    def test_public_only_node_cannot_sign(self, public_only_node, test_config, headers):
        """Test that a node without private material fails with SigningKeyUnavailable."""
        builder = TransactionBuilder(public_only_node, config=test_config)

        with pytest.raises(SigningKeyUnavailable):
            builder.transfer("alice", "bob", 1, **headers)

    def test_raw_keypair_node_can_sign(self, raw_node, test_config, headers):
        signed = TransactionBuilder(raw_node, config=test_config).transfer("alice", "bob", 1, **headers)
        digest = signed.transaction.signing_digest()

        assert recover_public_key(digest, signed.signatures[0]) == TEST_PUBLIC_KEY

    def test_explicit_signer(self, public_only_node, test_config, headers):
        builder = TransactionBuilder(public_only_node, config=test_config,
                                     signer=TransactionSigner(TEST_WIF))
        signed = builder.sellram("alice", 1, **headers)

        assert verify_public_key(signed.transaction.signing_digest(), signed.signatures[0],
                                 TEST_PUBLIC_KEY)

    def test_generic_build(self, builder, headers):
        actions = [
            BuyRamBytes("alice", "alice", 100),
            SellRam("alice", 50),
        ]
        signed = builder.build(actions, **headers)

        assert [a.name for a in signed.actions] == ["buyrambytes", "sellram"]
