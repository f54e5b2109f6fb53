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

from detachedsigner.exceptions import (
    InvalidRedeemScriptError,
    UnsupportedScriptPatternError,
)
from detachedsigner.keys import Keypair
from detachedsigner.script import Script, ScriptPattern
from detachedsigner.utils import b_to_h, hash160


class RedeemData:
    """The keys entitled to sign an input together with the redeem script
    whose bytes are committed to by their signatures.

    For P2PK, P2PKH and P2WPKH outputs there is a single key and the redeem
    script is the scriptPubKey itself. For P2SH outputs the redeem script is
    the multisig script and the keys are all the keys it names, in script
    order; at most one of them (the caller's) carries private key material.

    Attributes
    ----------
    keys : list (Keypair)
        the keys that may sign
    redeem_script : Script
        the script committed to by the signature hash
    pattern : ScriptPattern
        the spending pattern of the output being redeemed
    """

    def __init__(self, keys: list[Keypair], redeem_script: Script, pattern: ScriptPattern) -> None:
        self.keys = keys
        self.redeem_script = redeem_script
        self.pattern = pattern

    @classmethod
    def of(
        cls,
        keypair: Keypair,
        script_pubkey: Script,
        redeem_script: Optional[Script] = None,
    ) -> "RedeemData":
        """Builds the redeem data of an input spending script_pubkey

        Raises
        ------
        UnsupportedScriptPatternError
            if script_pubkey (or a P2SH redeem script) is not supported
        InvalidRedeemScriptError
            if a P2SH redeem script is missing or does not match the hash
        """
        pattern = ScriptPattern.classify(script_pubkey)

        if pattern is ScriptPattern.P2SH:
            return cls._of_p2sh(keypair, script_pubkey, redeem_script)

        return cls([keypair], script_pubkey, pattern)

    @classmethod
    def _of_p2sh(
        cls, keypair: Keypair, script_pubkey: Script, redeem_script: Optional[Script]
    ) -> "RedeemData":
        if redeem_script is None:
            raise InvalidRedeemScriptError(
                f"No redeem script available for P2SH output {script_pubkey}"
            )

        if b_to_h(hash160(redeem_script.to_bytes())) != script_pubkey.get_script_hash():
            raise InvalidRedeemScriptError(
                f"Redeem script {redeem_script} does not hash to {script_pubkey}"
            )

        info = redeem_script.get_multisig_info()
        if info is None:
            raise UnsupportedScriptPatternError(
                f"P2SH redeem script is not multisig: {redeem_script}"
            )
        _, pubkeys = info

        # keys of a multisig (married) script are derived with the same path,
        # so the co-signer keys inherit the path of the caller's key
        is_member = any(keypair.matches(pk) for pk in pubkeys)
        shared_path = keypair.path if is_member else None

        keys = []
        for pk in pubkeys:
            if keypair.matches(pk):
                keys.append(keypair)
            else:
                keys.append(Keypair.from_public_key(pk, path=shared_path))

        return cls(keys, redeem_script, ScriptPattern.P2SH)

    def get_full_key(self) -> Optional[Keypair]:
        """Returns the first key that has private key material, plain or
        encrypted, and None when all keys are public only"""
        for key in self.keys:
            if not key.is_pubkey_only():
                return key
        return None

    def __str__(self) -> str:
        return str(
            {
                "pattern": self.pattern.value,
                "keys": self.keys,
                "redeem_script": self.redeem_script,
            }
        )

    def __repr__(self) -> str:
        return self.__str__()
