from enum import Enum


class Network(str, Enum):
    """Chains the upstream log source is queried on."""

    TESTNET = "testnet"
    MAINNET = "mainnet"
