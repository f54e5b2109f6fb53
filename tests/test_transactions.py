# Copyright (C) 2018-2025 The python-bitcoin-utils developers
#
# This file is part of python-bitcoin-utils
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of python-bitcoin-utils, including this file, may be copied,
# modified, propagated, or distributed except according to the terms contained
# in the LICENSE file.


import unittest

from detachedsigner.setup import setup
from detachedsigner.keys import PublicKey
from detachedsigner.script import Script
from detachedsigner.transactions import (
    Transaction,
    TxInput,
    TxOutput,
    TxWitnessInput,
)


UNSIGNED_TX = (
    "0200000001f5d496b50827815316e3b15f54c7d970d031ef6024e7e609972ebf44c08c1c13"
    "0000000000fdffffff0240420f0000000000160014b8d5dda99143f7493608c54cf50f27e4"
    "57f08439c0943f2901000000160014adf9a9852767c94457cf50052cb110b9338cd0f9000"
    "00000"
)

P2PKH_SIGNED_TX = (
    "0200000001f5d496b50827815316e3b15f54c7d970d031ef6024e7e609972ebf44c08c1c13"
    "000000006b483045022100ae37bcd4b00d2b8af735f78cad0755452da8b534d8e50f133a7c"
    "1c352ae42eaa022018afd994cc4b2bf1f876dcde56965fd1fcb5cc16151d1a6e2378e73231"
    "93c7bd012102b575cb96fae641a1804ec1023984e3849f579f9092ab5e09a0f839b91608b5"
    "70fdffffff0240420f0000000000160014b8d5dda99143f7493608c54cf50f27e457f08439"
    "c0943f2901000000160014adf9a9852767c94457cf50052cb110b9338cd0f900000000"
)

P2WPKH_SIGNED_TX = (
    "02000000000101f5d496b50827815316e3b15f54c7d970d031ef6024e7e609972ebf44c08c"
    "1c130000000000fdffffff0240420f0000000000160014b8d5dda99143f7493608c54cf50f"
    "27e457f08439c0943f2901000000160014adf9a9852767c94457cf50052cb110b9338cd0f9"
    "02483045022100e21ceb285a977a210fd9757b799d366a11f2c3aa08cb79b15c08a7b7805d"
    "cd3a0220502627596792764ead72e66a97abedbc57e306261ac3c92959e7e7f060c8d55301"
    "2102b575cb96fae641a1804ec1023984e3849f579f9092ab5e09a0f839b91608b57000000000"
)

PUBKEY = "02b575cb96fae641a1804ec1023984e3849f579f9092ab5e09a0f839b91608b570"

# native P2WPKH example of BIP-143; input 1 is the P2WPKH spend
BIP143_UNSIGNED_TX = (
    "0100000002fff7f7881a8099afa6940d42d1e7f6362bec38171ea3edf433541db4e4ad969f"
    "0000000000eeffffffef51e1b804cc89d182d279655c3aa89e815b1b309fe287d9b2b55d57"
    "b90ec68a0100000000ffffffff02202cb206000000001976a9148280b37df378db99f66f85"
    "c95a783a76ac7a6d5988ac9093510d000000001976a9143bde42dbee7e4dbe6a21b2d50ce2"
    "f0167faa815988ac11000000"
)
BIP143_SCRIPT_CODE = "76a9141d0f172a0ecb48aee1be1f2687d2963ae33f71a188ac"
BIP143_AMOUNT = 600000000
BIP143_SIGHASH = "c37af31116d1b27caf68aae9e3ac82f1477929014d5b917657d0eb49478cb670"


class TestTransactionCodec(unittest.TestCase):
    def setUp(self):
        setup("testnet")

    def test_unsigned_round_trip(self):
        tx = Transaction.from_raw(UNSIGNED_TX)
        self.assertFalse(tx.has_segwit)
        self.assertEqual(len(tx.inputs), 1)
        self.assertEqual(len(tx.outputs), 2)
        self.assertEqual(
            tx.inputs[0].txid,
            "131c8cc044bf2e9709e6e72460ef31d070d9c7545fb1e31653812708b596d4f5",
        )
        self.assertEqual(tx.inputs[0].txout_index, 0)
        self.assertEqual(tx.inputs[0].sequence, bytes.fromhex("fdffffff"))
        self.assertEqual(tx.outputs[0].amount, 1000000)
        self.assertEqual(tx.to_hex(), UNSIGNED_TX)

    def test_legacy_signed_round_trip(self):
        tx = Transaction.from_raw(P2PKH_SIGNED_TX)
        script_sig = tx.inputs[0].script_sig.get_script()
        self.assertEqual(len(script_sig), 2)
        self.assertEqual(script_sig[1], PUBKEY)
        self.assertEqual(tx.to_hex(), P2PKH_SIGNED_TX)

    def test_segwit_round_trip(self):
        tx = Transaction.from_raw(P2WPKH_SIGNED_TX)
        self.assertTrue(tx.has_segwit)
        self.assertEqual(tx.inputs[0].script_sig, Script([]))
        witness = tx.get_witness(0)
        self.assertIsNotNone(witness)
        self.assertEqual(len(witness.stack), 2)
        self.assertEqual(witness.stack[1], PUBKEY)
        self.assertEqual(tx.to_hex(), P2WPKH_SIGNED_TX)

    def test_txid_ignores_witness(self):
        unsigned = Transaction.from_raw(UNSIGNED_TX)
        segwit = Transaction.from_raw(P2WPKH_SIGNED_TX)
        self.assertEqual(segwit.get_txid(), unsigned.get_txid())
        self.assertNotEqual(segwit.get_wtxid(), segwit.get_txid())
        self.assertEqual(unsigned.get_wtxid(), unsigned.get_txid())

    def test_truncated_transaction(self):
        with self.assertRaises(ValueError):
            Transaction.from_raw(UNSIGNED_TX[:-4])

    def test_output_amount_must_be_int(self):
        with self.assertRaises(TypeError):
            TxOutput(0.1, Script(["OP_0", "00" * 20]))


class TestTransactionWitness(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        self.tx = Transaction.from_raw(UNSIGNED_TX)

    def test_set_witness_switches_serialization(self):
        self.tx.set_witness(0, TxWitnessInput(["aa", "bb"]))
        self.assertTrue(self.tx.has_segwit)
        self.assertEqual(self.tx.to_hex()[8:12], "0001")
        self.assertEqual(self.tx.get_witness(0), TxWitnessInput(["aa", "bb"]))

        self.tx.set_witness(0, None)
        self.assertFalse(self.tx.has_segwit)
        self.assertIsNone(self.tx.get_witness(0))
        self.assertEqual(self.tx.to_hex(), UNSIGNED_TX)

    def test_empty_witness_is_no_witness(self):
        self.tx.set_witness(0, TxWitnessInput([]))
        self.assertFalse(self.tx.has_segwit)
        self.assertEqual(self.tx.to_hex(), UNSIGNED_TX)

    def test_witness_serialization(self):
        self.assertEqual(TxWitnessInput([]).to_bytes(), b"\x00")
        self.assertEqual(TxWitnessInput(["aabb"]).to_bytes(), b"\x01\x02\xaa\xbb")

    def test_copy_is_independent(self):
        self.tx.set_witness(0, TxWitnessInput(["aa"]))
        clone = Transaction.copy(self.tx)
        clone.inputs[0].script_sig = Script(["OP_0"])
        clone.witnesses[0].stack.append("bb")
        self.assertEqual(self.tx.inputs[0].script_sig, Script([]))
        self.assertEqual(self.tx.witnesses[0].stack, ["aa"])


class TestTransactionDigest(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        self.pubkey = PublicKey(PUBKEY)

    def test_legacy_digest_matches_signature(self):
        tx = Transaction.from_raw(P2PKH_SIGNED_TX)
        signature = tx.inputs[0].script_sig.get_script()[0]

        digest = tx.get_transaction_digest(0, self.pubkey.to_p2pkh_script())
        self.assertTrue(self.pubkey.verify_digest(signature, digest))

    def test_digest_does_not_touch_transaction(self):
        tx = Transaction.from_raw(P2PKH_SIGNED_TX)
        tx.get_transaction_digest(0, self.pubkey.to_p2pkh_script())
        self.assertEqual(tx.to_hex(), P2PKH_SIGNED_TX)

    def test_segwit_digest_commits_to_amount(self):
        tx = Transaction.from_raw(UNSIGNED_TX)
        script_code = self.pubkey.to_p2pkh_script()
        self.assertNotEqual(
            tx.get_transaction_segwit_digest(0, script_code, 1000),
            tx.get_transaction_segwit_digest(0, script_code, 1001),
        )

    def test_bip143_p2wpkh_sighash(self):
        tx = Transaction.from_raw(BIP143_UNSIGNED_TX)
        self.assertEqual(tx.to_hex(), BIP143_UNSIGNED_TX)

        digest = tx.get_transaction_segwit_digest(
            1, Script.from_raw(BIP143_SCRIPT_CODE), BIP143_AMOUNT
        )
        self.assertEqual(digest.hex(), BIP143_SIGHASH)

    def test_only_sighash_all(self):
        tx = Transaction.from_raw(UNSIGNED_TX)
        with self.assertRaises(ValueError):
            tx.get_transaction_digest(0, self.pubkey.to_p2pkh_script(), 0x02)
        with self.assertRaises(ValueError):
            tx.get_transaction_segwit_digest(0, self.pubkey.to_p2pkh_script(), 1000, 0x83)

    def test_input_outpoint(self):
        txin = TxInput("00" * 31 + "01", 2)
        self.assertEqual(txin.outpoint_bytes(), b"\x01" + b"\x00" * 31 + b"\x02\x00\x00\x00")


if __name__ == "__main__":
    unittest.main()
