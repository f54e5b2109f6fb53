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

from ecdsa import SECP256k1
from ecdsa.util import sigdecode_der

from detachedsigner.setup import setup
from detachedsigner.exceptions import KeyIsEncryptedError, MissingPrivateKeyError
from detachedsigner.keys import Keypair, PrivateKey, PublicKey
from detachedsigner.transactions import Transaction
from detachedsigner.utils import h_to_b


WIF = "cSXrBnbkSNqMQCDz1X4FYVHBgf285gLYagWsh1KDLHVT9XWtbiuW"
PUBKEY = "02b575cb96fae641a1804ec1023984e3849f579f9092ab5e09a0f839b91608b570"
G_COMPRESSED = "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
G_UNCOMPRESSED = (
    "0479be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
    "483ada7726a3c4655da4fbfc0e1108a8fd17b448a68554199c47d08ffb10d4b8"
)
UNSIGNED_TX = (
    "0200000001f5d496b50827815316e3b15f54c7d970d031ef6024e7e609972ebf44c08c1c13"
    "0000000000fdffffff0240420f0000000000160014b8d5dda99143f7493608c54cf50f27e4"
    "57f08439c0943f2901000000160014adf9a9852767c94457cf50052cb110b9338cd0f9000"
    "00000"
)


class TestPrivateKeys(unittest.TestCase):
    def setUp(self):
        setup("testnet")

    def test_wif_to_public_key(self):
        priv = PrivateKey.from_wif(WIF)
        self.assertTrue(priv.compressed)
        self.assertEqual(priv.get_public_key().to_hex(), PUBKEY)

    def test_wif_round_trip(self):
        self.assertEqual(PrivateKey.from_wif(WIF).to_wif(), WIF)

    def test_uncompressed_wif(self):
        wif = PrivateKey(secret_exponent=1).to_wif(compressed=False)
        priv = PrivateKey.from_wif(wif)
        self.assertFalse(priv.compressed)
        self.assertEqual(priv.get_public_key().to_hex(compressed=False), G_UNCOMPRESSED)

    def test_wrong_network(self):
        setup("mainnet")
        with self.assertRaises(ValueError):
            PrivateKey.from_wif(WIF)

    def test_unknown_network(self):
        with self.assertRaises(ValueError):
            setup("litecoin")

    def test_bad_checksum(self):
        with self.assertRaises(ValueError):
            PrivateKey.from_wif(WIF[:-1] + ("X" if WIF[-1] != "X" else "Y"))

    def test_from_bytes_length(self):
        with self.assertRaises(ValueError):
            PrivateKey.from_bytes(b"\x01" * 31)

    def test_signing_is_deterministic_and_low_s(self):
        priv = PrivateKey.from_wif(WIF)
        digest = b"\x42" * 32
        signature = priv.sign_digest(digest)
        self.assertEqual(signature, priv.sign_digest(digest))
        self.assertEqual(signature[-2:], "01")

        _, s = sigdecode_der(h_to_b(signature)[:-1], SECP256k1.order)
        self.assertLessEqual(s, SECP256k1.order // 2)
        self.assertTrue(priv.get_public_key().verify_digest(signature, digest))
        self.assertFalse(priv.get_public_key().verify_digest(signature, b"\x43" * 32))


class TestPublicKeys(unittest.TestCase):
    def test_compressed_and_uncompressed_forms(self):
        pub = PublicKey(G_COMPRESSED)
        self.assertEqual(pub.to_hex(compressed=False), G_UNCOMPRESSED)
        self.assertEqual(PublicKey(G_UNCOMPRESSED), pub)

    def test_hash160(self):
        pub = PublicKey(G_COMPRESSED)
        self.assertEqual(pub.to_hash160(), "751e76e8199196d454941c45d1b3a323f1433bd6")
        self.assertEqual(
            pub.to_p2wpkh_script().get_script(),
            ["OP_0", "751e76e8199196d454941c45d1b3a323f1433bd6"],
        )

    def test_invalid_prefix(self):
        with self.assertRaises(TypeError):
            PublicKey("05" + G_COMPRESSED[2:])
        with self.assertRaises(TypeError):
            PublicKey("0279be")


class TestKeypairs(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        self.tx = Transaction.from_raw(UNSIGNED_TX)

    def test_private_keypair(self):
        keypair = Keypair.from_wif(WIF)
        self.assertTrue(keypair.has_private_key())
        self.assertFalse(keypair.is_encrypted())
        self.assertFalse(keypair.is_pubkey_only())
        self.assertFalse(keypair.is_deterministic())
        self.assertEqual(keypair.get_public_key_hex(), PUBKEY)

    def test_public_only_keypair(self):
        keypair = Keypair.from_public_key(PUBKEY, path="m/0/1")
        self.assertTrue(keypair.is_pubkey_only())
        self.assertTrue(keypair.is_deterministic())
        self.assertEqual(keypair.path, "m/0/1")
        with self.assertRaises(MissingPrivateKeyError):
            keypair.sign_input(self.tx, 0, keypair.public_key.to_p2pkh_script())

    def test_locked_keypair(self):
        keypair = Keypair.locked(PUBKEY, b"\x00" * 48)
        self.assertTrue(keypair.is_encrypted())
        self.assertFalse(keypair.is_pubkey_only())
        self.assertFalse(keypair.has_private_key())
        with self.assertRaises(KeyIsEncryptedError):
            keypair.sign_segwit_input(
                self.tx, 0, keypair.public_key.to_p2pkh_script(), 1000
            )

    def test_uncompressed_public_keypair(self):
        keypair = Keypair.from_public_key(G_UNCOMPRESSED)
        self.assertFalse(keypair.compressed)
        self.assertEqual(keypair.get_public_key_hex(), G_UNCOMPRESSED)
        self.assertTrue(keypair.matches(G_COMPRESSED))
        self.assertTrue(keypair.matches(G_UNCOMPRESSED.upper()))
        self.assertFalse(keypair.matches(PUBKEY))

    def test_needs_a_key(self):
        with self.assertRaises(ValueError):
            Keypair()


if __name__ == "__main__":
    unittest.main()
