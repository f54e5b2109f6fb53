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

"""Signs transaction inputs without a wallet.

The signer is given an unsigned transaction, one keypair per input and the
scriptPubKey that each input spends (all index aligned). It always uses
SIGHASH_ALL.

Signing runs in two passes over the inputs. The first pass replaces every
scriptSig and witness with an unsigned template shaped for the spending
pattern of the input. The second pass signs each input and writes the
signature into its template.

An input without a usable private key is skipped and the rest of the
transaction is still signed. Unsupported scripts, invalid redeem scripts and
locked keys abort the call with a SignerError; inputs signed before the
abort keep their signatures.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Union

from detachedsigner.constants import SIGHASH_ALL
from detachedsigner.exceptions import (
    PreconditionError,
    SignerError,
    UnsupportedScriptPatternError,
)
from detachedsigner.keys import Keypair
from detachedsigner.redeem import RedeemData
from detachedsigner.script import Script, ScriptPattern
from detachedsigner.transactions import Transaction, TxInput, TxWitnessInput


log = logging.getLogger(__name__)


class SkipReason(str, Enum):
    MISSING_SIGNING_KEY = "missing_signing_key"


@dataclass(frozen=True)
class Signed:
    """An input that received a signature

    slot is the signature position in the scriptSig; None for witness spends
    """

    index: int
    pattern: ScriptPattern
    slot: Optional[int] = None


@dataclass(frozen=True)
class Skipped:
    """An input left with its unsigned template"""

    index: int
    reason: SkipReason


InputOutcome = Union[Signed, Skipped]


@dataclass
class SigningResult:
    """What a signing call did to each input.

    Attributes
    ----------
    transaction : Transaction
        the signed transaction (the same object that was passed in)
    outcomes : list
        one Signed or Skipped per input, in input order
    key_paths : dict
        scriptPubKey hex -> BIP-32 path of the key that signs it; lets the
        co-signers of a multisig script derive the matching keys
    """

    transaction: Transaction
    outcomes: list[InputOutcome] = field(default_factory=list)
    key_paths: dict[str, str] = field(default_factory=dict)

    def signed_indices(self) -> list[int]:
        return [o.index for o in self.outcomes if isinstance(o, Signed)]

    def skipped_indices(self) -> list[int]:
        return [o.index for o in self.outcomes if isinstance(o, Skipped)]

    def is_complete(self) -> bool:
        """True when every input of the transaction received a signature"""
        return len(self.signed_indices()) == len(self.transaction.inputs)


class DetachedTransactionSigner:
    """Signs the inputs of a transaction with externally supplied keys.

    No wallet or key store is needed: the caller provides the keypairs and
    the scripts that the inputs redeem. Stateless between calls; a signer
    can be reused but must not sign the same transaction concurrently.

    Attributes
    ----------
    logger : logging.Logger
        where skipped inputs are reported
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger if logger is not None else log

    def sign(
        self,
        tx: Transaction,
        keys: Sequence[Keypair],
        scripts: Sequence[Script],
        redeem_scripts: Optional[Sequence[Optional[Script]]] = None,
    ) -> SigningResult:
        """Signs every input of tx for which a private key is available

        Parameters
        ----------
        tx : Transaction
            the transaction to sign, modified in place; segwit inputs must
            have their amount set
        keys : list (Keypair)
            one keypair per input
        scripts : list (Script)
            the scriptPubKey spent by each input
        redeem_scripts : list (Script | None), optional
            the multisig redeem script of each P2SH input; when missing it is
            read from the last push of the input's current scriptSig

        Raises
        ------
        PreconditionError
            if tx has no inputs or no outputs or the lists are too short;
            also if a P2WPKH input has no amount. Raised before any input
            is modified
        UnsupportedScriptPatternError
            if a script is not P2PK, P2PKH, P2SH (multisig) or P2WPKH
        InvalidRedeemScriptError
            if a P2SH redeem script is missing or does not match
        KeyIsEncryptedError
            if the key that should sign an input is locked
        """
        self._check_preconditions(tx, keys, scripts, redeem_scripts)

        result = SigningResult(transaction=tx)
        try:
            redeem_data = self._initialize_templates(tx, keys, scripts, redeem_scripts)
            self._sign_inputs(tx, scripts, redeem_data, result)
        except SignerError as e:
            e.outcomes = list(result.outcomes)
            raise

        return result

    @staticmethod
    def _check_preconditions(
        tx: Transaction,
        keys: Sequence[Keypair],
        scripts: Sequence[Script],
        redeem_scripts: Optional[Sequence[Optional[Script]]],
    ) -> None:
        if len(tx.inputs) == 0:
            raise PreconditionError("Transaction has no inputs")
        if len(tx.outputs) == 0:
            raise PreconditionError("Transaction has no outputs")
        if len(keys) < len(tx.inputs):
            raise PreconditionError(
                f"Expected a keypair per input: {len(keys)} for {len(tx.inputs)} inputs"
            )
        if len(scripts) < len(tx.inputs):
            raise PreconditionError(
                f"Expected a script per input: {len(scripts)} for {len(tx.inputs)} inputs"
            )
        if redeem_scripts is not None and len(redeem_scripts) < len(tx.inputs):
            raise PreconditionError(
                f"Expected a redeem script entry per input: {len(redeem_scripts)} "
                f"for {len(tx.inputs)} inputs"
            )

        # segwit signatures commit to the spent value
        for i, txin in enumerate(tx.inputs):
            if scripts[i].is_p2wpkh() and txin.amount is None:
                raise PreconditionError(f"Amount of segwit input {i} is unknown")

    def _initialize_templates(
        self,
        tx: Transaction,
        keys: Sequence[Keypair],
        scripts: Sequence[Script],
        redeem_scripts: Optional[Sequence[Optional[Script]]],
    ) -> list[RedeemData]:
        """Replaces every scriptSig and witness with its unsigned template"""
        redeem_data = []
        for i, txin in enumerate(tx.inputs):
            script_pubkey = scripts[i]
            redeem_script = redeem_scripts[i] if redeem_scripts is not None else None
            if redeem_script is None and script_pubkey.is_p2sh():
                redeem_script = _redeem_script_from_script_sig(txin)

            redeem = RedeemData.of(keys[i], script_pubkey, redeem_script)
            pubkey = redeem.keys[0].get_public_key_hex()

            txin.script_sig = script_pubkey.create_empty_input_script(
                pubkey, redeem.redeem_script
            )
            witness = script_pubkey.create_empty_witness(pubkey)
            tx.set_witness(i, TxWitnessInput(witness) if witness is not None else None)

            redeem_data.append(redeem)

        return redeem_data

    def _sign_inputs(
        self,
        tx: Transaction,
        scripts: Sequence[Script],
        redeem_data: list[RedeemData],
        result: SigningResult,
    ) -> None:
        for i, txin in enumerate(tx.inputs):
            script_pubkey = scripts[i]
            redeem = redeem_data[i]

            # co-signers of a P2SH script need the derivation path to use the
            # matching keys; all keys of a multisig script share one path
            first_key = redeem.keys[0]
            if first_key.is_deterministic():
                result.key_paths[script_pubkey.to_hex()] = first_key.path  # type: ignore

            # P2PK, P2PKH and P2WPKH redeem data hold the caller's key only.
            # P2SH redeem data hold all the multisig keys and at most one
            # of them has private key material
            key = redeem.get_full_key()
            if key is None:
                self.logger.warning("No local key found for input %d", i)
                result.outcomes.append(Skipped(i, SkipReason.MISSING_SIGNING_KEY))
                continue

            pattern = redeem.pattern
            if pattern in (ScriptPattern.P2PK, ScriptPattern.P2PKH, ScriptPattern.P2SH):
                signature = key.sign_input(tx, i, redeem.redeem_script, SIGHASH_ALL)

                # the scriptSig holds OP_0 placeholders for the signatures.
                # With several signers (P2SH) the position of this signature
                # relative to the others is unknown at this point, so it
                # always goes first and the signatures are reordered when
                # the partial transactions are merged
                sig_index = 0
                txin.script_sig = script_pubkey.get_script_sig_with_signature(
                    txin.script_sig, signature, sig_index
                )
                tx.set_witness(i, None)
                result.outcomes.append(Signed(i, pattern, sig_index))
            elif pattern is ScriptPattern.P2WPKH:
                # BIP-143 script code of P2WPKH is the P2PKH script of the key
                script_code = key.public_key.to_p2pkh_script(key.compressed)
                signature = key.sign_segwit_input(
                    tx, i, script_code, txin.amount, SIGHASH_ALL
                )

                txin.script_sig = Script([])
                tx.set_witness(i, TxWitnessInput([signature, key.get_public_key_hex()]))
                result.outcomes.append(Signed(i, pattern))
            else:
                raise UnsupportedScriptPatternError(f"Cannot sign script {script_pubkey}")

            self.logger.debug("Signed input %d (%s)", i, pattern.value)


def _redeem_script_from_script_sig(txin: TxInput) -> Optional[Script]:
    """Returns the redeem script pushed last in a P2SH scriptSig, if any"""
    chunks = txin.script_sig.script
    if not chunks or not isinstance(chunks[-1], str) or chunks[-1].startswith("OP_"):
        return None
    try:
        return Script.from_raw(chunks[-1])
    except ValueError:
        return None


def sign_transaction(
    tx: Transaction,
    keys: Sequence[Keypair],
    scripts: Sequence[Script],
    redeem_scripts: Optional[Sequence[Optional[Script]]] = None,
    logger: Optional[logging.Logger] = None,
) -> Transaction:
    """Signs tx in place and returns it; see DetachedTransactionSigner.sign

    Inputs without a private key are left unsigned; use the signer class to
    get the per input outcomes.
    """
    DetachedTransactionSigner(logger).sign(tx, keys, scripts, redeem_scripts)
    return tx
