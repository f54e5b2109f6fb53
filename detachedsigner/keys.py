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

from __future__ import annotations

import hashlib
from typing import Optional, Union

from base58check import b58encode, b58decode  # type: ignore
from ecdsa import SigningKey, VerifyingKey, SECP256k1, BadSignatureError  # type: ignore
from ecdsa.util import sigencode_der_canonize, sigdecode_der  # type: ignore
from sympy.ntheory import sqrt_mod  # type: ignore

from detachedsigner.constants import NETWORK_WIF_PREFIXES, SIGHASH_ALL
from detachedsigner.exceptions import KeyIsEncryptedError, MissingPrivateKeyError
from detachedsigner.setup import get_network
from detachedsigner.script import Script
from detachedsigner.transactions import Transaction
from detachedsigner.utils import (
    Secp256k1Params,
    b_to_h,
    h_to_b,
    h_to_i,
    double_sha256,
    hash160,
)


class PrivateKey:
    """A secp256k1 private key that signs transaction digests.

    Attributes
    ----------
    key : SigningKey
        the ecdsa signing key
    compressed : bool
        whether the matching public key is serialized compressed; taken from
        the WIF when the key is imported from one

    Methods
    -------
    from_wif(wif), from_bytes(b)
        alternative constructors (classmethods)
    to_wif(compressed=True), to_bytes()
        export the secret
    sign_input(tx, txin_index, script, sighash=SIGHASH_ALL)
        signs the legacy digest of an input
    sign_segwit_input(tx, txin_index, script, amount, sighash=SIGHASH_ALL)
        signs the BIP-143 digest of an input
    sign_digest(digest, sighash=SIGHASH_ALL)
        signs an already computed digest
    get_public_key()
        the matching PublicKey
    """

    def __init__(
        self,
        wif: Optional[str] = None,
        secret_exponent: Optional[int] = None,
        b: Optional[bytes] = None,
    ) -> None:
        """Imports a WIF, raw 32 bytes or a secret exponent; with no
        arguments a new random key is generated"""

        self.compressed = True

        if wif:
            self._load_wif(wif)
        elif b:
            self._load_bytes(b)
        elif secret_exponent:
            self.key = SigningKey.from_secret_exponent(secret_exponent, curve=SECP256k1)
        else:
            self.key = SigningKey.generate(curve=SECP256k1)

    @classmethod
    def from_wif(cls, wif: str) -> "PrivateKey":
        return cls(wif=wif)

    @classmethod
    def from_bytes(cls, b: bytes) -> "PrivateKey":
        return cls(b=b)

    def _load_bytes(self, b: bytes) -> None:
        if len(b) != 32:
            raise ValueError("A private key is exactly 32 bytes")
        self.key = SigningKey.from_string(b, curve=SECP256k1)

    def _load_wif(self, wif: str) -> None:
        """Decodes a WIF: prefix || secret [|| 0x01] || checksum

        Raises
        ------
        ValueError
            on a bad checksum or payload, or a prefix of another network
        """
        decoded = b58decode(wif.encode("utf-8"))
        payload, checksum = decoded[:-4], decoded[-4:]

        if double_sha256(payload)[:4] != checksum:
            raise ValueError("WIF checksum mismatch")

        if payload[:1] != NETWORK_WIF_PREFIXES[get_network()]:
            raise ValueError(f"WIF is not a {get_network()} key")

        secret = payload[1:]
        # a trailing 0x01 marks a key whose public key is compressed
        if len(secret) == 33 and secret[-1] == 0x01:
            secret = secret[:-1]
        elif len(secret) == 32:
            self.compressed = False
        else:
            raise ValueError("Invalid WIF payload length")

        self.key = SigningKey.from_string(secret, curve=SECP256k1)

    def to_bytes(self) -> bytes:
        return self.key.to_string()

    def to_wif(self, compressed: bool = True) -> str:
        """Returns Base58Check(prefix || secret [|| 0x01] || checksum)"""

        payload = NETWORK_WIF_PREFIXES[get_network()] + self.to_bytes()
        if compressed:
            payload += b"\x01"

        encoded = b58encode(payload + double_sha256(payload)[:4])
        return encoded.decode("utf-8")

    def sign_input(
        self, tx: Transaction, txin_index: int, script: Script, sighash: int = SIGHASH_ALL
    ) -> str:
        digest = tx.get_transaction_digest(txin_index, script, sighash)
        return self.sign_digest(digest, sighash)

    def sign_segwit_input(
        self,
        tx: Transaction,
        txin_index: int,
        script: Script,
        amount: int,
        sighash: int = SIGHASH_ALL,
    ) -> str:
        digest = tx.get_transaction_segwit_digest(txin_index, script, amount, sighash)
        return self.sign_digest(digest, sighash)

    def sign_digest(self, tx_digest: bytes, sighash: int = SIGHASH_ALL) -> str:
        """Signs a transaction digest with the private key

        The nonce is derived deterministically (RFC6979) so signing the same
        digest with the same key always yields the same signature.

        The S value is normalised to the lower half of the curve order (Low S
        standardness rule of BIP62). Otherwise (order - S) is an equally valid
        signature and the txid could be malleated.

        Returns the hex DER signature followed by the one byte sighash, the
        form pushed in a scriptSig or witness
        """

        der = self.key.sign_digest_deterministic(
            tx_digest, sigencode=sigencode_der_canonize, hashfunc=hashlib.sha256
        )
        return b_to_h(der + bytes([sighash]))

    def get_public_key(self) -> "PublicKey":
        point = self.key.get_verifying_key().to_string()
        return PublicKey("04" + b_to_h(point))


class PublicKey:
    """A secp256k1 public key.

    Attributes
    ----------
    key : VerifyingKey
        the ecdsa key; its raw form is the 64 byte x || y point

    Methods
    -------
    to_hex(compressed=True)
        SEC encoding as hex
    to_hash160(compressed=True)
        hash160 of the SEC encoding as hex
    to_p2pk_script(), to_p2pkh_script(), to_p2wpkh_script()
        the scriptPubKey that locks funds to this key
    verify_digest(signature, digest)
        checks a DER (+ sighash) transaction signature against a digest
    """

    def __init__(self, hex_str: str) -> None:
        """
        Parameters
        ----------
        hex_str : str
            SEC encoded key: 04 || x || y, or 02/03 || x

        Raises
        ------
        TypeError
            if the length or the leading byte is not a SEC encoding
        ValueError
            if x is not the coordinate of a curve point
        """
        hex_str = hex_str.strip().lower()
        if hex_str.startswith("0x"):
            hex_str = hex_str[2:]

        prefix = hex_str[:2]
        sec = h_to_b(hex_str)

        if len(sec) == 65:
            if prefix != "04":
                raise TypeError("Invalid SEC uncompressed format")
            self.key = VerifyingKey.from_string(sec[1:], curve=SECP256k1)
        elif len(sec) == 33:
            if prefix not in ("02", "03"):
                raise TypeError("Invalid SEC compressed format")
            x = h_to_i(hex_str[2:])
            y = self._lift_x(x, odd=prefix == "03")
            self.key = VerifyingKey.from_string(
                h_to_b(f"{x:064x}{y:064x}"), curve=SECP256k1
            )
        else:
            raise TypeError("Public key must be 33 or 65 bytes in SEC format")

    @staticmethod
    def _lift_x(x: int, odd: bool) -> int:
        """Returns the y with the requested parity such that (x, y) is on
        the curve"""
        p = Secp256k1Params._p
        roots = sqrt_mod((x**3 + Secp256k1Params._b) % p, p, True)
        if not roots:
            raise ValueError("Public key x coordinate is not on the curve")

        for y in (int(r) for r in roots):
            if y % 2 == int(odd):
                return y
        # a single root (y == 0) has no odd twin
        raise ValueError("Public key x coordinate is not on the curve")

    def to_bytes(self) -> bytes:
        """Returns the raw 64 byte point"""
        return self.key.to_string()

    def to_hex(self, compressed: bool = True) -> str:
        point = self.to_bytes()
        if not compressed:
            return "04" + b_to_h(point)

        # the prefix encodes the parity of y
        prefix = "03" if point[-1] & 1 else "02"
        return prefix + b_to_h(point[:32])

    def to_hash160(self, compressed: bool = True) -> str:
        return b_to_h(hash160(h_to_b(self.to_hex(compressed))))

    def to_p2pk_script(self, compressed: bool = True) -> Script:
        return Script([self.to_hex(compressed), "OP_CHECKSIG"])

    def to_p2pkh_script(self, compressed: bool = True) -> Script:
        return Script(
            [
                "OP_DUP",
                "OP_HASH160",
                self.to_hash160(compressed),
                "OP_EQUALVERIFY",
                "OP_CHECKSIG",
            ]
        )

    def to_p2wpkh_script(self) -> Script:
        # segwit only allows compressed keys
        return Script(["OP_0", self.to_hash160(True)])

    def verify_digest(self, signature: str, tx_digest: bytes) -> bool:
        """Verifies a hex transaction signature (DER plus sighash byte)"""

        der = h_to_b(signature)[:-1]
        try:
            return self.key.verify_digest(der, tx_digest, sigdecode=sigdecode_der)
        except BadSignatureError:
            return False

    def __eq__(self, _other: object) -> bool:
        if not isinstance(_other, PublicKey):
            return False
        return self.to_bytes() == _other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())


class Keypair:
    """A secp256k1 key pair as handed to the detached signer.

    A keypair always knows its public key. It may also hold the private key,
    only an encrypted (locked) private key, or nothing beyond the public
    half; the latter only identifies which public key a signature slot
    belongs to.

    Attributes
    ----------
    private_key : PrivateKey, optional
        the usable private key
    public_key : PublicKey
        the public key
    compressed : bool
        whether the public key is serialized in compressed form
    path : str, optional
        the BIP-32 derivation path for keys of a hierarchical deterministic
        wallet, e.g. "m/44'/1'/0'/0/1"
    encrypted_private_key : bytes, optional
        an opaque encrypted private key; such a keypair is locked and cannot
        sign
    """

    def __init__(
        self,
        private_key: Optional[PrivateKey] = None,
        public_key: Optional[PublicKey] = None,
        compressed: Optional[bool] = None,
        path: Optional[str] = None,
        encrypted_private_key: Optional[bytes] = None,
    ) -> None:
        if private_key is None and public_key is None:
            raise ValueError("A keypair needs a private or a public key")

        self.private_key = private_key
        self.public_key = public_key if public_key is not None else private_key.get_public_key()  # type: ignore
        if compressed is None:
            compressed = private_key.compressed if private_key is not None else True
        self.compressed = compressed
        self.path = path
        self.encrypted_private_key = encrypted_private_key

    @classmethod
    def from_wif(cls, wif: str, path: Optional[str] = None) -> "Keypair":
        """Creates a keypair from a WIF or WIFC private key"""
        return cls(private_key=PrivateKey.from_wif(wif), path=path)

    @classmethod
    def from_private_key(cls, private_key: PrivateKey, path: Optional[str] = None) -> "Keypair":
        return cls(private_key=private_key, path=path)

    @classmethod
    def from_public_key(
        cls, public_key: Union[str, PublicKey], path: Optional[str] = None
    ) -> "Keypair":
        """Creates a public-only keypair; the hex form keeps its compression"""
        if isinstance(public_key, str):
            compressed = len(h_to_b(public_key)) == 33
            return cls(public_key=PublicKey(public_key), compressed=compressed, path=path)
        return cls(public_key=public_key, path=path)

    @classmethod
    def locked(
        cls,
        public_key: Union[str, PublicKey],
        encrypted_private_key: bytes,
        path: Optional[str] = None,
    ) -> "Keypair":
        """Creates a keypair whose private key is only available encrypted"""
        keypair = cls.from_public_key(public_key, path)
        keypair.encrypted_private_key = encrypted_private_key
        return keypair

    def has_private_key(self) -> bool:
        return self.private_key is not None

    def is_encrypted(self) -> bool:
        return self.private_key is None and self.encrypted_private_key is not None

    def is_pubkey_only(self) -> bool:
        return self.private_key is None and self.encrypted_private_key is None

    def is_deterministic(self) -> bool:
        """True for keys derived from an HD wallet (they know their path)"""
        return self.path is not None

    def get_public_key_hex(self) -> str:
        return self.public_key.to_hex(self.compressed)

    def matches(self, pubkey_hex: str) -> bool:
        """True if pubkey_hex (either SEC form) is this keypair's public key"""
        pubkey_hex = pubkey_hex.lower()
        return pubkey_hex in (self.public_key.to_hex(True), self.public_key.to_hex(False))

    def _signing_key(self) -> PrivateKey:
        if self.is_encrypted():
            raise KeyIsEncryptedError(
                f"Private key of {self.get_public_key_hex()} is encrypted"
            )
        if self.private_key is None:
            raise MissingPrivateKeyError(
                f"No private key for {self.get_public_key_hex()}"
            )
        return self.private_key

    def sign_input(
        self, tx: Transaction, txin_index: int, script: Script, sighash: int = SIGHASH_ALL
    ) -> str:
        """Signs a legacy input over script (the script code)

        Raises
        ------
        KeyIsEncryptedError
            if the keypair is locked
        MissingPrivateKeyError
            if the keypair has no private key at all
        """
        return self._signing_key().sign_input(tx, txin_index, script, sighash)

    def sign_segwit_input(
        self,
        tx: Transaction,
        txin_index: int,
        script: Script,
        amount: int,
        sighash: int = SIGHASH_ALL,
    ) -> str:
        """Signs a segwit v0 input; raises like sign_input"""
        return self._signing_key().sign_segwit_input(tx, txin_index, script, amount, sighash)

    def __str__(self) -> str:
        return str(
            {
                "public_key": self.get_public_key_hex(),
                "has_private_key": self.has_private_key(),
                "encrypted": self.is_encrypted(),
                "path": self.path,
            }
        )

    def __repr__(self) -> str:
        return self.__str__()
