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

__version__ = "0.1.0"

from detachedsigner.setup import setup, get_network

from detachedsigner.exceptions import (
    SignerError,
    PreconditionError,
    UnsupportedScriptPatternError,
    InvalidRedeemScriptError,
    KeyIsEncryptedError,
    MissingPrivateKeyError,
)

from detachedsigner.keys import PrivateKey, PublicKey, Keypair

from detachedsigner.script import Script, ScriptPattern

from detachedsigner.transactions import (
    Transaction,
    TxInput,
    TxOutput,
    TxWitnessInput,
)

from detachedsigner.redeem import RedeemData

from detachedsigner.signer import (
    DetachedTransactionSigner,
    SigningResult,
    Signed,
    Skipped,
    SkipReason,
    sign_transaction,
)

__all__ = [
    'setup',
    'get_network',
    'SignerError',
    'PreconditionError',
    'UnsupportedScriptPatternError',
    'InvalidRedeemScriptError',
    'KeyIsEncryptedError',
    'MissingPrivateKeyError',
    'PrivateKey',
    'PublicKey',
    'Keypair',
    'Script',
    'ScriptPattern',
    'Transaction',
    'TxInput',
    'TxOutput',
    'TxWitnessInput',
    'RedeemData',
    'DetachedTransactionSigner',
    'SigningResult',
    'Signed',
    'Skipped',
    'SkipReason',
    'sign_transaction',
]
