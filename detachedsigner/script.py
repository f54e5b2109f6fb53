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


import copy
import struct
from enum import Enum
from typing import Any, Optional, Union

from detachedsigner.constants import (
    HASH160_SIZE,
    COMPRESSED_PUBKEY_SIZE,
    UNCOMPRESSED_PUBKEY_SIZE,
    MAX_MULTISIG_KEYS,
)
from detachedsigner.exceptions import UnsupportedScriptPatternError
from detachedsigner.utils import b_to_h, h_to_b, hash160


# Bitcoin's op codes. Complete list at: https://en.bitcoin.it/wiki/Script
OP_CODES = {
    # constants
    "OP_0": b"\x00",
    "OP_FALSE": b"\x00",
    "OP_PUSHDATA1": b"\x4c",
    "OP_PUSHDATA2": b"\x4d",
    "OP_PUSHDATA4": b"\x4e",
    "OP_1NEGATE": b"\x4f",
    "OP_1": b"\x51",
    "OP_TRUE": b"\x51",
    "OP_2": b"\x52",
    "OP_3": b"\x53",
    "OP_4": b"\x54",
    "OP_5": b"\x55",
    "OP_6": b"\x56",
    "OP_7": b"\x57",
    "OP_8": b"\x58",
    "OP_9": b"\x59",
    "OP_10": b"\x5a",
    "OP_11": b"\x5b",
    "OP_12": b"\x5c",
    "OP_13": b"\x5d",
    "OP_14": b"\x5e",
    "OP_15": b"\x5f",
    "OP_16": b"\x60",
    # flow control
    "OP_NOP": b"\x61",
    "OP_IF": b"\x63",
    "OP_NOTIF": b"\x64",
    "OP_ELSE": b"\x67",
    "OP_ENDIF": b"\x68",
    "OP_VERIFY": b"\x69",
    "OP_RETURN": b"\x6a",
    # stack
    "OP_TOALTSTACK": b"\x6b",
    "OP_FROMALTSTACK": b"\x6c",
    "OP_2DROP": b"\x6d",
    "OP_2DUP": b"\x6e",
    "OP_3DUP": b"\x6f",
    "OP_2OVER": b"\x70",
    "OP_2ROT": b"\x71",
    "OP_2SWAP": b"\x72",
    "OP_IFDUP": b"\x73",
    "OP_DEPTH": b"\x74",
    "OP_DROP": b"\x75",
    "OP_DUP": b"\x76",
    "OP_NIP": b"\x77",
    "OP_OVER": b"\x78",
    "OP_PICK": b"\x79",
    "OP_ROLL": b"\x7a",
    "OP_ROT": b"\x7b",
    "OP_SWAP": b"\x7c",
    "OP_TUCK": b"\x7d",
    # splice
    "OP_SIZE": b"\x82",
    # bitwise logic
    "OP_EQUAL": b"\x87",
    "OP_EQUALVERIFY": b"\x88",
    # arithmetic
    "OP_1ADD": b"\x8b",
    "OP_1SUB": b"\x8c",
    "OP_NEGATE": b"\x8f",
    "OP_ABS": b"\x90",
    "OP_NOT": b"\x91",
    "OP_0NOTEQUAL": b"\x92",
    "OP_ADD": b"\x93",
    "OP_SUB": b"\x94",
    "OP_BOOLAND": b"\x9a",
    "OP_BOOLOR": b"\x9b",
    "OP_NUMEQUAL": b"\x9c",
    "OP_NUMEQUALVERIFY": b"\x9d",
    "OP_NUMNOTEQUAL": b"\x9e",
    "OP_LESSTHAN": b"\x9f",
    "OP_GREATERTHAN": b"\xa0",
    "OP_LESSTHANOREQUAL": b"\xa1",
    "OP_GREATERTHANOREQUAL": b"\xa2",
    "OP_MIN": b"\xa3",
    "OP_MAX": b"\xa4",
    "OP_WITHIN": b"\xa5",
    # crypto
    "OP_RIPEMD160": b"\xa6",
    "OP_SHA1": b"\xa7",
    "OP_SHA256": b"\xa8",
    "OP_HASH160": b"\xa9",
    "OP_HASH256": b"\xaa",
    "OP_CODESEPARATOR": b"\xab",
    "OP_CHECKSIG": b"\xac",
    "OP_CHECKSIGVERIFY": b"\xad",
    "OP_CHECKMULTISIG": b"\xae",
    "OP_CHECKMULTISIGVERIFY": b"\xaf",
    # locktime
    "OP_NOP1": b"\xb0",
    "OP_CHECKLOCKTIMEVERIFY": b"\xb1",
    "OP_CHECKSEQUENCEVERIFY": b"\xb2",
    "OP_NOP4": b"\xb3",
    "OP_NOP5": b"\xb4",
    "OP_NOP6": b"\xb5",
    "OP_NOP7": b"\xb6",
    "OP_NOP8": b"\xb7",
    "OP_NOP9": b"\xb8",
    "OP_NOP10": b"\xb9",
}

# aliases are skipped so that parsing always yields the canonical name
_ALIASES = {"OP_FALSE", "OP_TRUE"}
CODE_OPS = {code: op for op, code in OP_CODES.items() if op not in _ALIASES}

_PUSHDATA_SIZES = {0x4C: 1, 0x4D: 2, 0x4E: 4}

_PLACEHOLDERS = ("OP_0", "OP_FALSE", 0, "")


def _small_int(token: Any) -> Optional[int]:
    """Returns the value of an OP_0..OP_16 token (or int) and None otherwise"""
    if isinstance(token, int) and not isinstance(token, bool) and 0 <= token <= 16:
        return token
    if isinstance(token, str) and token.startswith("OP_") and token[3:].isdigit():
        value = int(token[3:])
        if 0 <= value <= 16:
            return value
    return None


def _data_size(token: Any) -> Optional[int]:
    """Returns the length in bytes of a hex data token and None for opcodes"""
    if not isinstance(token, str) or token in OP_CODES:
        return None
    try:
        return len(h_to_b(token))
    except ValueError:
        return None


def _is_pubkey(token: Any) -> bool:
    return _data_size(token) in (COMPRESSED_PUBKEY_SIZE, UNCOMPRESSED_PUBKEY_SIZE)


def _is_placeholder(token: Any) -> bool:
    return not isinstance(token, bool) and token in _PLACEHOLDERS


class Script:
    """Represents any script in Bitcoin

    A Script contains just a list of OP_CODES and also knows how to serialize
    into bytes

    Attributes
    ----------
    script : list
        the list with all the script OP_CODES and data

    Methods
    -------
    to_bytes()
        returns a serialized byte version of the script
    to_hex()
        returns a serialized version of the script in hex
    get_script()
        returns the list of strings that makes up this script
    copy()
        creates a copy of the object (classmethod)
    from_raw()
        parses a serialized script (staticmethod)
    to_p2sh_script_pub_key()
        converts script to p2sh scriptPubKey (locking script)
    is_p2pk(), is_p2pkh(), is_p2sh(), is_p2wpkh(), is_multisig()
        checks for the standard script shapes
    get_multisig_info()
        returns the required signatures and public keys of a multisig script
    create_empty_input_script(pubkey, redeem_script)
        returns the placeholder scriptSig that spends this scriptPubKey
    create_empty_witness(pubkey)
        returns the placeholder witness that spends this scriptPubKey
    get_script_sig_with_signature(script_sig, signature, index)
        returns script_sig with signature written to the given slot

    Raises
    ------
    ValueError
        If string data is too large or integer is negative
    """

    def __init__(self, script: list[Any]):
        """See Script description"""
        self.script: list[Any] = script

    @classmethod
    def copy(cls, script: "Script") -> "Script":
        """Deep copy of Script"""
        scripts = copy.deepcopy(script.script)
        return cls(scripts)

    def _op_push_data(self, data: str) -> bytes:
        """Converts data to appropriate OP_PUSHDATA OP code including length"""
        data_bytes = h_to_b(data)

        if len(data_bytes) < 0x4C:
            return bytes([len(data_bytes)]) + data_bytes
        elif len(data_bytes) <= 0xFF:
            return b"\x4c" + bytes([len(data_bytes)]) + data_bytes
        elif len(data_bytes) <= 0xFFFF:
            return b"\x4d" + struct.pack("<H", len(data_bytes)) + data_bytes
        elif len(data_bytes) <= 0xFFFFFFFF:
            return b"\x4e" + struct.pack("<I", len(data_bytes)) + data_bytes
        else:
            raise ValueError("Data too large. Cannot push into script")

    def _push_integer(self, integer: int) -> bytes:
        """Converts integer to bytes; as signed little-endian integer"""
        if integer < 0:
            raise ValueError("Integer is currently required to be positive.")

        number_of_bytes = (integer.bit_length() + 7) // 8
        integer_bytes = integer.to_bytes(number_of_bytes, byteorder="little")

        if integer & (1 << number_of_bytes * 8 - 1):
            integer_bytes += b"\x00"

        return self._op_push_data(b_to_h(integer_bytes))

    def to_bytes(self) -> bytes:
        """Converts the script to bytes"""
        script_bytes = b""
        for token in self.script:
            if isinstance(token, str) and token in OP_CODES:
                script_bytes += OP_CODES[token]
            elif isinstance(token, int) and 0 <= token <= 16:
                script_bytes += OP_CODES["OP_" + str(token)]
            elif isinstance(token, int):
                script_bytes += self._push_integer(token)
            else:
                script_bytes += self._op_push_data(token)
        return script_bytes

    def to_hex(self) -> str:
        """Converts the script to hexadecimal"""
        return b_to_h(self.to_bytes())

    @staticmethod
    def from_raw(scriptrawhex: Union[str, bytes]) -> "Script":
        """
        Imports a Script commands list from raw hexadecimal data

        Data pushes become hex strings and op codes their OP_* names.

        Raises
        ------
        ValueError
            if a push runs past the end of the script or an op code is unknown
        """
        if isinstance(scriptrawhex, str):
            scriptraw = h_to_b(scriptrawhex)
        elif isinstance(scriptrawhex, bytes):
            scriptraw = scriptrawhex
        else:
            raise TypeError("Input must be a hexadecimal string or bytes")

        commands: list[Any] = []
        index = 0

        while index < len(scriptraw):
            byte = scriptraw[index]
            index += 1

            if 0x01 <= byte <= 0x4B:
                bytes_to_read = byte
            elif byte in _PUSHDATA_SIZES:
                size = _PUSHDATA_SIZES[byte]
                if index + size > len(scriptraw):
                    raise ValueError("Truncated push data length in script")
                bytes_to_read = int.from_bytes(scriptraw[index : index + size], "little")
                index += size
            elif bytes([byte]) in CODE_OPS:
                commands.append(CODE_OPS[bytes([byte])])
                continue
            else:
                raise ValueError(f"Unknown op code 0x{byte:02x} in script")

            if index + bytes_to_read > len(scriptraw):
                raise ValueError("Push data runs past the end of the script")
            commands.append(scriptraw[index : index + bytes_to_read].hex())
            index += bytes_to_read

        return Script(script=commands)

    def get_script(self) -> list[Any]:
        """Returns script as array of strings"""
        return self.script

    def to_p2sh_script_pub_key(self) -> "Script":
        """Converts script to p2sh scriptPubKey (locking script)"""
        hex_hash160 = b_to_h(hash160(self.to_bytes()))
        return Script(["OP_HASH160", hex_hash160, "OP_EQUAL"])

    def is_p2pk(self) -> bool:
        """
        Check if script is P2PK (Pay-to-Public-Key).

        P2PK format: <pubkey> OP_CHECKSIG
        """
        ops = self.script
        return len(ops) == 2 and _is_pubkey(ops[0]) and ops[1] == "OP_CHECKSIG"

    def is_p2pkh(self) -> bool:
        """
        Check if script is P2PKH (Pay-to-Public-Key-Hash).

        P2PKH format: OP_DUP OP_HASH160 <20-byte-key-hash> OP_EQUALVERIFY OP_CHECKSIG
        """
        ops = self.script
        return (len(ops) == 5 and
                ops[0] == "OP_DUP" and
                ops[1] == "OP_HASH160" and
                _data_size(ops[2]) == HASH160_SIZE and
                ops[3] == "OP_EQUALVERIFY" and
                ops[4] == "OP_CHECKSIG")

    def is_p2sh(self) -> bool:
        """
        Check if script is P2SH (Pay-to-Script-Hash).

        P2SH format: OP_HASH160 <20-byte-script-hash> OP_EQUAL
        """
        ops = self.script
        return (len(ops) == 3 and
                ops[0] == "OP_HASH160" and
                _data_size(ops[1]) == HASH160_SIZE and
                ops[2] == "OP_EQUAL")

    def is_p2wpkh(self) -> bool:
        """
        Check if script is P2WPKH (Pay-to-Witness-Public-Key-Hash).

        P2WPKH format: OP_0 <20-byte-key-hash>
        """
        ops = self.script
        return (len(ops) == 2 and
                _small_int(ops[0]) == 0 and
                _data_size(ops[1]) == HASH160_SIZE)

    def is_multisig(self) -> bool:
        """
        Check if script is a bare multisig script.

        Multisig format: OP_M <pubkey1> ... <pubkeyN> OP_N OP_CHECKMULTISIG
        """
        return self.get_multisig_info() is not None

    def get_multisig_info(self) -> Optional[tuple[int, list[str]]]:
        """Returns (M, [pubkey hex, ...]) for a multisig script, None otherwise"""
        ops = self.script
        if len(ops) < 4 or ops[-1] != "OP_CHECKMULTISIG":
            return None

        m = _small_int(ops[0])
        n = _small_int(ops[-2])
        if m is None or n is None:
            return None
        if not (1 <= m <= n <= MAX_MULTISIG_KEYS) or len(ops) != n + 3:
            return None

        pubkeys = ops[1:-2]
        if not all(_is_pubkey(pk) for pk in pubkeys):
            return None

        return m, list(pubkeys)

    def get_script_hash(self) -> str:
        """Returns the 20 byte hash of a P2SH or the key hash of P2PKH/P2WPKH"""
        if self.is_p2sh():
            return self.script[1]
        if self.is_p2pkh():
            return self.script[2]
        if self.is_p2wpkh():
            return self.script[1]
        raise ValueError("Script does not commit to a hash")

    def create_empty_input_script(
        self, pubkey: Optional[str] = None, redeem_script: Optional["Script"] = None
    ) -> "Script":
        """Returns the unsigned scriptSig that spends this scriptPubKey

        Signatures are represented by OP_0 placeholders: one for P2PK and
        P2PKH, M of them for a P2SH multisig. Segwit spends carry an empty
        scriptSig.

        Parameters
        ----------
        pubkey : str
            hex public key, required for P2PKH
        redeem_script : Script
            the multisig script, required for P2SH
        """
        pattern = ScriptPattern.classify(self)

        if pattern is ScriptPattern.P2PKH:
            if pubkey is None:
                raise ValueError("Key required to create P2PKH input script")
            return Script(["OP_0", pubkey])
        elif pattern is ScriptPattern.P2WPKH:
            return Script([])
        elif pattern is ScriptPattern.P2PK:
            return Script(["OP_0"])
        elif pattern is ScriptPattern.P2SH:
            if redeem_script is None:
                raise ValueError("Redeem script required to create P2SH input script")
            info = redeem_script.get_multisig_info()
            if info is None:
                raise UnsupportedScriptPatternError(
                    f"P2SH redeem script is not multisig: {redeem_script}"
                )
            required_sigs = info[0]
            return Script(["OP_0"] + ["OP_0"] * required_sigs + [redeem_script.to_hex()])
        else:
            raise UnsupportedScriptPatternError(f"Do not understand script type: {self}")

    def create_empty_witness(self, pubkey: Optional[str] = None) -> Optional[list[str]]:
        """Returns the unsigned witness stack that spends this scriptPubKey

        None means that the spend carries no witness at all (legacy spends).
        """
        pattern = ScriptPattern.classify(self)

        if pattern is ScriptPattern.P2WPKH:
            if pubkey is None:
                raise ValueError("Key required to create P2WPKH witness")
            return []
        return None

    def get_script_sig_with_signature(
        self, script_sig: "Script", signature: str, index: int
    ) -> "Script":
        """Returns a copy of script_sig with signature placed at slot index

        script_sig is an input script that spends this scriptPubKey. The
        chunks that surround the signatures are kept as they are: the leading
        OP_0 of CHECKMULTISIG, the trailing redeem script of P2SH and the
        trailing public key of P2PKH.
        """
        prefix_count = 0
        suffix_count = 0
        if self.is_p2sh():
            # OP_0 <sig>* <redeemScript>
            prefix_count = 1
            suffix_count = 1
        elif self.is_multisig():
            # OP_0 <sig>*
            prefix_count = 1
        elif self.is_p2pkh():
            # <sig> <pubkey>
            suffix_count = 1

        return update_script_with_signature(
            script_sig, signature, index, prefix_count, suffix_count
        )

    def __str__(self) -> str:
        return str(self.script)

    def __repr__(self) -> str:
        return self.__str__()

    def __eq__(self, _other: object) -> bool:
        if not isinstance(_other, Script):
            return False
        return self.script == _other.script

    def __hash__(self) -> int:
        return hash(self.to_hex())


def update_script_with_signature(
    script_sig: Script,
    signature: str,
    target_index: int,
    sigs_prefix_count: int,
    sigs_suffix_count: int,
) -> Script:
    """Writes signature to slot target_index of the signature chunks

    Signature chunks are those between the first sigs_prefix_count and the
    last sigs_suffix_count chunks. OP_0 placeholders among them are dropped,
    existing signatures keep their relative order and the remaining slots
    are refilled with OP_0 so the number of slots does not change.
    """
    chunks = script_sig.script
    total_chunks = len(chunks)
    slot_count = total_chunks - sigs_prefix_count - sigs_suffix_count

    if slot_count < 1:
        raise ValueError("Script has no signature slot")
    if not 0 <= target_index < slot_count:
        raise ValueError(
            f"Signature slot {target_index} out of range, script has {slot_count}"
        )

    result: list[Any] = list(chunks[:sigs_prefix_count])

    pos = 0
    inserted = False
    for chunk in chunks[sigs_prefix_count : total_chunks - sigs_suffix_count]:
        if pos == target_index:
            result.append(signature)
            inserted = True
            pos += 1
        if not _is_placeholder(chunk):
            result.append(chunk)
            pos += 1

    # add OP_0's if needed, since we skipped them in the previous loop
    while pos < slot_count:
        if pos == target_index:
            result.append(signature)
            inserted = True
        else:
            result.append("OP_0")
        pos += 1

    if not inserted:
        raise ValueError("Could not insert signature, all slots are signed")

    result.extend(chunks[total_chunks - sigs_suffix_count :])
    return Script(result)


class ScriptPattern(Enum):
    """The spending patterns the detached signer knows how to satisfy"""

    P2PK = "p2pk"
    P2PKH = "p2pkh"
    P2SH = "p2sh"
    P2WPKH = "p2wpkh"

    @classmethod
    def classify(cls, script: Script) -> "ScriptPattern":
        """Returns the pattern of a scriptPubKey

        Raises
        ------
        UnsupportedScriptPatternError
            if the script matches none of the supported patterns
        """
        if script.is_p2pkh():
            return cls.P2PKH
        if script.is_p2sh():
            return cls.P2SH
        if script.is_p2wpkh():
            return cls.P2WPKH
        if script.is_p2pk():
            return cls.P2PK
        raise UnsupportedScriptPatternError(f"Unsupported script pattern: {script}")
