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

NETWORK_WIF_PREFIXES = {
    "mainnet": b"\x80",
    "signet": b"\xef",
    "testnet": b"\xef",
    "regtest": b"\xef",
}


# The only signature hash type produced by the detached signer: commits to
# all inputs and all outputs
SIGHASH_ALL = 0x01


DEFAULT_TX_LOCKTIME = b"\x00\x00\x00\x00"
DEFAULT_TX_SEQUENCE = b"\xff\xff\xff\xff"

# TX version 2 was introduced in BIP-68 with relative locktime
DEFAULT_TX_VERSION = b"\x02\x00\x00\x00"


# segwit serialization marker and flag (BIP-144)
SEGWIT_MARKER_FLAG = b"\x00\x01"


# Sizes of the data pushes that identify the standard script patterns
HASH160_SIZE = 20
COMPRESSED_PUBKEY_SIZE = 33
UNCOMPRESSED_PUBKEY_SIZE = 65

# standard multisig scripts can have at most 16 keys (OP_16)
MAX_MULTISIG_KEYS = 16
