# Copyright (C) 2018-2025 The python-bitcoin-utils developers
#
# This file is part of python-bitcoin-utils
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of python-bitcoin-utils, including this file, may be copied, modified,
# propagated, or distributed except according to the terms contained in the
# LICENSE file.

from typing import Optional

from hdwallet import HDWallet as ext_HDWallet  # type: ignore
from hdwallet.symbols import BTC, BTCTEST  # type: ignore

from detachedsigner.setup import is_mainnet
from detachedsigner.keys import Keypair, PrivateKey


class HDWallet:
    """BIP-32 key derivation for the signer, backed by the hdwallet library.

    Keypairs returned by get_keypair carry their derivation path, which the
    signer reports back so that co-signers of a multisig script can derive
    their matching keys.

    Attributes
    ----------
    hdw : hdwallet.HDWallet
        the wrapped wallet, for the configured network
    """

    def __init__(
        self,
        xprivate_key: Optional[str] = None,
        path: Optional[str] = None,
    ):
        self.hdw = ext_HDWallet(BTC if is_mainnet() else BTCTEST)

        if xprivate_key:
            self.hdw.from_xprivate_key(xprivate_key=xprivate_key)
        if path:
            self.hdw.from_path(path=path)

    @classmethod
    def from_xprivate_key(cls, xprivate_key: str, path: Optional[str] = None) -> "HDWallet":
        return cls(xprivate_key=xprivate_key, path=path)

    def from_path(self, path: str) -> None:
        """Derives path from the root key, replacing the current derivation"""
        self.hdw.clean_derivation()
        self.hdw.from_path(path=path)

    def get_path(self) -> Optional[str]:
        return self.hdw.path()

    def get_private_key(self) -> PrivateKey:
        return PrivateKey(self.hdw.wif())

    def get_keypair(self) -> Keypair:
        """Returns the keypair at the current path, tagged with that path"""
        return Keypair.from_private_key(self.get_private_key(), path=self.get_path())
