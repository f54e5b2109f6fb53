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

import struct
from typing import Optional

from detachedsigner.constants import (
    DEFAULT_TX_SEQUENCE,
    DEFAULT_TX_LOCKTIME,
    DEFAULT_TX_VERSION,
    SEGWIT_MARKER_FLAG,
    SIGHASH_ALL,
)
from detachedsigner.script import Script
from detachedsigner.utils import (
    double_sha256,
    encode_varint,
    prepend_compact_size,
    parse_compact_size,
    h_to_b,
)


class TxInput:
    """An input of a transaction to be signed.

    Attributes
    ----------
    txid : str
        id of the transaction that created the spent output, in the byte
        order block explorers display
    txout_index : int
        position of the spent output in that transaction
    script_sig : Script
        the unlocking script; replaced by the signer with a template and
        then with the signed script
    sequence : bytes
        the 4 byte nSequence field
    amount : int, optional
        value of the spent output in satoshis; not serialized but required
        to sign segwit inputs

    Methods
    -------
    outpoint_bytes()
        the serialized (txid, index) pair
    to_bytes()
        wire serialization of the input
    from_raw(raw, cursor)
        parses an input out of raw transaction bytes (staticmethod)
    copy(txin)
        deep copy (classmethod)
    """

    def __init__(
        self,
        txid: str,
        txout_index: int,
        script_sig: Optional[Script] = None,
        sequence: str | bytes = DEFAULT_TX_SEQUENCE,
        amount: Optional[int] = None,
    ) -> None:
        self.txid = txid
        self.txout_index = txout_index
        self.script_sig = script_sig if script_sig is not None else Script([])
        self.sequence = h_to_b(sequence) if isinstance(sequence, str) else sequence
        self.amount = amount

    def outpoint_bytes(self) -> bytes:
        """Returns the 36 byte outpoint: reversed txid and LE output index"""
        return h_to_b(self.txid)[::-1] + struct.pack("<I", self.txout_index)

    def to_bytes(self) -> bytes:
        return (
            self.outpoint_bytes()
            + prepend_compact_size(self.script_sig.to_bytes())
            + self.sequence
        )

    @staticmethod
    def from_raw(raw: bytes, cursor: int = 0) -> tuple["TxInput", int]:
        """Parses the input starting at cursor

        Returns the input and the position right after it
        """
        prev_hash, txout_index = struct.unpack_from("<32sI", raw, cursor)
        cursor += 36

        script_len, size = parse_compact_size(raw[cursor:])
        cursor += size
        script_sig = Script.from_raw(raw[cursor : cursor + script_len])
        cursor += script_len

        (sequence,) = struct.unpack_from("<4s", raw, cursor)
        cursor += 4

        txin = TxInput(
            txid=prev_hash[::-1].hex(),
            txout_index=txout_index,
            script_sig=script_sig,
            sequence=sequence,
        )
        return txin, cursor

    @classmethod
    def copy(cls, txin: "TxInput") -> "TxInput":
        return cls(
            txin.txid,
            txin.txout_index,
            Script.copy(txin.script_sig),
            txin.sequence,
            txin.amount,
        )

    def __str__(self) -> str:
        return str(
            {
                "txid": self.txid,
                "txout_index": self.txout_index,
                "script_sig": self.script_sig,
                "sequence": self.sequence.hex(),
                "amount": self.amount,
            }
        )

    def __repr__(self) -> str:
        return self.__str__()


class TxWitnessInput:
    """The witness stack of one input; an empty stack means no witness

    Attributes
    ----------
    stack : list (str)
        hex encoded witness items, bottom of the stack first
    """

    def __init__(self, stack: Optional[list[str]] = None) -> None:
        self.stack = stack if stack is not None else []

    def to_bytes(self) -> bytes:
        """Serializes the item count followed by the length prefixed items"""
        data = encode_varint(len(self.stack))
        for item in self.stack:
            data += prepend_compact_size(h_to_b(item))
        return data

    def is_empty(self) -> bool:
        return len(self.stack) == 0

    @classmethod
    def copy(cls, witness: "TxWitnessInput") -> "TxWitnessInput":
        return cls(list(witness.stack))

    def __eq__(self, _other: object) -> bool:
        if not isinstance(_other, TxWitnessInput):
            return False
        return self.stack == _other.stack

    def __str__(self) -> str:
        return str({"stack": self.stack})

    def __repr__(self) -> str:
        return self.__str__()


class TxOutput:
    """An output of a transaction

    Attributes
    ----------
    amount : int
        value in satoshis
    script_pubkey : Script
        the locking script
    """

    def __init__(self, amount: int, script_pubkey: Script) -> None:
        if not isinstance(amount, int):
            raise TypeError("Output amount must be an integer number of satoshis")

        self.amount = amount
        self.script_pubkey = script_pubkey

    def to_bytes(self) -> bytes:
        return struct.pack("<q", self.amount) + prepend_compact_size(
            self.script_pubkey.to_bytes()
        )

    @staticmethod
    def from_raw(raw: bytes, cursor: int = 0) -> tuple["TxOutput", int]:
        """Parses the output starting at cursor

        Returns the output and the position right after it
        """
        (amount,) = struct.unpack_from("<q", raw, cursor)
        cursor += 8

        script_len, size = parse_compact_size(raw[cursor:])
        cursor += size
        script_pubkey = Script.from_raw(raw[cursor : cursor + script_len])
        cursor += script_len

        return TxOutput(amount, script_pubkey), cursor

    @classmethod
    def copy(cls, txout: "TxOutput") -> "TxOutput":
        return cls(txout.amount, Script.copy(txout.script_pubkey))

    def __str__(self) -> str:
        return str({"amount": self.amount, "script_pubkey": self.script_pubkey})

    def __repr__(self) -> str:
        return self.__str__()


class Transaction:
    """A Bitcoin transaction in the shape the detached signer works on.

    The witnesses list is index aligned with the inputs. has_segwit selects
    the BIP-144 serialization and is kept in sync by set_witness.

    Attributes
    ----------
    inputs : list (TxInput)
    outputs : list (TxOutput)
    locktime : bytes
        4 byte nLockTime
    version : bytes
        4 byte version
    has_segwit : bool
        whether any input carries witness items
    witnesses : list (TxWitnessInput)
        one witness per input; inputs without witness have an empty one

    Methods
    -------
    get_witness(i) / set_witness(i, witness)
        reads or replaces the witness of input i
    to_bytes(include_witness=True), to_hex(), serialize()
        wire serialization
    from_raw(hex)
        parses a legacy or segwit serialized transaction (staticmethod)
    get_txid(), get_wtxid()
        transaction ids
    get_transaction_digest(i, script, sighash)
        legacy signature hash of input i
    get_transaction_segwit_digest(i, script, amount, sighash)
        BIP-143 signature hash of input i
    copy(tx)
        deep copy (classmethod)
    """

    def __init__(
        self,
        inputs: Optional[list[TxInput]] = None,
        outputs: Optional[list[TxOutput]] = None,
        locktime: str | bytes = DEFAULT_TX_LOCKTIME,
        version: bytes = DEFAULT_TX_VERSION,
        has_segwit: bool = False,
        witnesses: Optional[list[TxWitnessInput]] = None,
    ) -> None:
        self.inputs = inputs if inputs is not None else []
        self.outputs = outputs if outputs is not None else []
        self.has_segwit = has_segwit
        self.witnesses = witnesses if witnesses is not None else []
        self.locktime = h_to_b(locktime) if isinstance(locktime, str) else locktime
        self.version = version

    def get_witness(self, txin_index: int) -> Optional[TxWitnessInput]:
        """Returns the witness of the input or None when it carries no witness"""
        if txin_index < len(self.witnesses) and not self.witnesses[txin_index].is_empty():
            return self.witnesses[txin_index]
        return None

    def set_witness(self, txin_index: int, witness: Optional[TxWitnessInput]) -> None:
        """Sets the witness of an input; None removes it

        The witness list is kept aligned with the inputs and has_segwit is
        updated so that the segwit serialization is used only while at least
        one input has witness items.
        """
        while len(self.witnesses) < len(self.inputs):
            self.witnesses.append(TxWitnessInput([]))

        self.witnesses[txin_index] = witness if witness is not None else TxWitnessInput([])
        self.has_segwit = any(not w.is_empty() for w in self.witnesses)

    def to_bytes(self, include_witness: bool = True) -> bytes:
        """Serializes the transaction

        Parameters
        ----------
        include_witness : bool
            use the BIP-144 format (marker, flag and witnesses) when the
            transaction has segwit inputs
        """
        body = encode_varint(len(self.inputs))
        body += b"".join(txin.to_bytes() for txin in self.inputs)
        body += encode_varint(len(self.outputs))
        body += b"".join(txout.to_bytes() for txout in self.outputs)

        if not include_witness or not self.has_segwit:
            return self.version + body + self.locktime

        witnesses = b""
        for i in range(len(self.inputs)):
            if i < len(self.witnesses):
                witnesses += self.witnesses[i].to_bytes()
            else:
                # zero items
                witnesses += b"\x00"

        return self.version + SEGWIT_MARKER_FLAG + body + witnesses + self.locktime

    def to_hex(self) -> str:
        return self.to_bytes(include_witness=self.has_segwit).hex()

    def serialize(self) -> str:
        return self.to_hex()

    def get_txid(self) -> str:
        """Returns the txid; witness data is never part of it"""
        return double_sha256(self.to_bytes(include_witness=False))[::-1].hex()

    def get_wtxid(self) -> str:
        """Returns the wtxid, equal to the txid for transactions without witness"""
        if not self.has_segwit:
            return self.get_txid()
        return double_sha256(self.to_bytes(include_witness=True))[::-1].hex()

    @staticmethod
    def from_raw(rawtxhex: str) -> "Transaction":
        """Parses a serialized transaction (hex), with or without witness

        Raises
        ------
        ValueError
            if the data is malformed or truncated
        """
        raw = h_to_b(rawtxhex)

        version = raw[0:4]
        cursor = 4

        has_segwit = raw[cursor : cursor + 2] == SEGWIT_MARKER_FLAG
        if has_segwit:
            cursor += 2

        n_inputs, size = parse_compact_size(raw[cursor:])
        cursor += size
        inputs = []
        for _ in range(n_inputs):
            txin, cursor = TxInput.from_raw(raw, cursor)
            inputs.append(txin)

        n_outputs, size = parse_compact_size(raw[cursor:])
        cursor += size
        outputs = []
        for _ in range(n_outputs):
            txout, cursor = TxOutput.from_raw(raw, cursor)
            outputs.append(txout)

        witnesses = []
        if has_segwit:
            for _ in range(n_inputs):
                n_items, size = parse_compact_size(raw[cursor:])
                cursor += size
                stack = []
                for _ in range(n_items):
                    item_len, size = parse_compact_size(raw[cursor:])
                    cursor += size
                    stack.append(raw[cursor : cursor + item_len].hex())
                    cursor += item_len
                witnesses.append(TxWitnessInput(stack))

        locktime = raw[cursor : cursor + 4]
        if len(locktime) != 4:
            raise ValueError("Transaction is truncated, missing locktime")

        return Transaction(
            inputs=inputs,
            outputs=outputs,
            locktime=locktime,
            version=version,
            has_segwit=has_segwit,
            witnesses=witnesses,
        )

    @classmethod
    def copy(cls, tx: "Transaction") -> "Transaction":
        return cls(
            [TxInput.copy(txin) for txin in tx.inputs],
            [TxOutput.copy(txout) for txout in tx.outputs],
            tx.locktime,
            tx.version,
            tx.has_segwit,
            [TxWitnessInput.copy(w) for w in tx.witnesses],
        )

    def get_transaction_digest(
        self, txin_index: int, script: Script, sighash: int = SIGHASH_ALL
    ) -> bytes:
        """Returns the legacy (pre-segwit) signature hash of an input.
        https://en.bitcoin.it/wiki/OP_CHECKSIG

        Parameters
        ----------
        txin_index : int
            the input being signed
        script : Script
            the script code: the spent scriptPubKey, or the redeem script of
            a P2SH output
        sighash : int
            must be SIGHASH_ALL
        """
        if sighash != SIGHASH_ALL:
            raise ValueError("Only SIGHASH_ALL signatures are supported")

        # every scriptSig is emptied except the signed one, which holds the
        # script code
        unsigned = Transaction.copy(self)
        for i, txin in enumerate(unsigned.inputs):
            txin.script_sig = script if i == txin_index else Script([])

        preimage = unsigned.to_bytes(include_witness=False)
        preimage += struct.pack("<i", sighash)
        return double_sha256(preimage)

    def get_transaction_segwit_digest(
        self, txin_index: int, script: Script, amount: int, sighash: int = SIGHASH_ALL
    ) -> bytes:
        """Returns the segwit v0 signature hash of an input.
        https://github.com/bitcoin/bips/blob/master/bip-0143.mediawiki

        Parameters
        ----------
        txin_index : int
            the input being signed
        script : Script
            the script code; for P2WPKH the P2PKH script of the key
        amount : int
            value of the spent output in satoshis
        sighash : int
            must be SIGHASH_ALL
        """
        if sighash != SIGHASH_ALL:
            raise ValueError("Only SIGHASH_ALL signatures are supported")

        hash_prevouts = double_sha256(b"".join(i.outpoint_bytes() for i in self.inputs))
        hash_sequence = double_sha256(b"".join(i.sequence for i in self.inputs))
        hash_outputs = double_sha256(b"".join(o.to_bytes() for o in self.outputs))

        txin = self.inputs[txin_index]
        preimage = (
            self.version
            + hash_prevouts
            + hash_sequence
            + txin.outpoint_bytes()
            + prepend_compact_size(script.to_bytes())
            + struct.pack("<q", amount)
            + txin.sequence
            + hash_outputs
            + self.locktime
            + struct.pack("<i", sighash)
        )
        return double_sha256(preimage)

    def __str__(self) -> str:
        return str(
            {
                "inputs": self.inputs,
                "outputs": self.outputs,
                "has_segwit": self.has_segwit,
                "witnesses": self.witnesses,
                "locktime": self.locktime.hex(),
                "version": self.version.hex(),
            }
        )

    def __repr__(self) -> str:
        return self.__str__()
