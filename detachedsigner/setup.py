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

NETWORK = "testnet"
networks = {"mainnet", "testnet", "regtest", "signet"}


def setup(network: str = "testnet") -> str:
    """Setup the signer library with the specified network.

    The network decides which WIF prefix is accepted when private keys are
    imported and which one is used when they are exported.

    Args:
        network: The network to use (mainnet, testnet, regtest, signet)
    """
    global NETWORK
    if network not in networks:
        raise ValueError(f"Unknown network: {network}")
    NETWORK = network
    return NETWORK


def get_network() -> str:
    global NETWORK
    return NETWORK


def is_mainnet() -> bool:
    global NETWORK
    if NETWORK == "mainnet":
        return True
    else:
        return False

