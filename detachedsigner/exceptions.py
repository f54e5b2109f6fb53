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

"""Errors raised by the detached signer.

Every subclass of SignerError aborts the whole signing call. An input that
simply has no private key is not an error; it is reported as a skipped
outcome (see detachedsigner.signer).
"""

from typing import Any, Optional


class SignerError(Exception):
    """Base exception for errors that abort a signing call.

    Attributes
    ----------
    outcomes : list
        the per input outcomes recorded before the abort; inputs that were
        already signed keep their signatures in the transaction
    """

    def __init__(self, message: str, outcomes: Optional[list[Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.outcomes = outcomes if outcomes is not None else []


class PreconditionError(SignerError, ValueError):
    """Raised when the transaction or the argument lists cannot be signed,
    e.g. a transaction without inputs or outputs."""


class UnsupportedScriptPatternError(SignerError):
    """Raised when a script matches none of the supported spending patterns."""


class InvalidRedeemScriptError(SignerError):
    """Raised when a P2SH input has no redeem script or one that does not hash
    to the output script."""


class KeyIsEncryptedError(SignerError):
    """Raised when signing is attempted with an encrypted (locked) key."""


class MissingPrivateKeyError(Exception):
    """Raised when a public-only keypair is asked to sign."""
