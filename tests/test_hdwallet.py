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
from detachedsigner.hdwallet import HDWallet
from detachedsigner.script import Script
from detachedsigner.signer import DetachedTransactionSigner
from detachedsigner.transactions import Transaction, TxInput, TxOutput


XPRIV = (
    "tprv8ZgxMBicQKsPez3VhGkU7wmGPqihEoCVeSmytmPTnZcpP4kmZXr7oFy9aVUGkXQynGuJMWW"
    "DXs5MwhHHpbj8pEBThBdt1bGGmZQKrDS8Xxg"
)
PATH = "m/44'/1'/0'/0/1"


class TestHDWallet(unittest.TestCase):
    def setUp(self):
        setup("testnet")
        self.hdw = HDWallet.from_xprivate_key(XPRIV, PATH)

    def test_keypair_carries_path(self):
        keypair = self.hdw.get_keypair()
        self.assertEqual(keypair.path, PATH)
        self.assertTrue(keypair.has_private_key())
        self.assertTrue(keypair.is_deterministic())

    def test_change_path(self):
        first = self.hdw.get_keypair()
        self.hdw.from_path("m/44'/1'/0'/0/2")
        second = self.hdw.get_keypair()

        self.assertEqual(second.path, "m/44'/1'/0'/0/2")
        self.assertNotEqual(first.get_public_key_hex(), second.get_public_key_hex())

        self.hdw.from_path(PATH)
        self.assertEqual(
            self.hdw.get_keypair().get_public_key_hex(), first.get_public_key_hex()
        )

    def test_signer_reports_derivation_path(self):
        keypair = self.hdw.get_keypair()
        script = keypair.public_key.to_p2pkh_script()
        tx = Transaction(
            [TxInput("aa" * 32, 0)],
            [TxOutput(1000, Script(["OP_0", "bb" * 20]))],
        )

        result = DetachedTransactionSigner().sign(tx, [keypair], [script])

        self.assertTrue(result.is_complete())
        self.assertEqual(result.key_paths, {script.to_hex(): PATH})


if __name__ == "__main__":
    unittest.main()
