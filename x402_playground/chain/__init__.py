"""
Chain client implementations for execute-mode runs.
"""
from .client import (
    ChainClient,
    ChainReceipt,
    get_chain_client,
    get_stub_chain_client,
    get_web3_chain_client,
)
from .stub_client import StubChainClient
from .web3_client import Web3ChainClient

__all__ = [
    "ChainClient",
    "ChainReceipt",
    "StubChainClient",
    "Web3ChainClient",
    "get_chain_client",
    "get_stub_chain_client",
    "get_web3_chain_client",
]
