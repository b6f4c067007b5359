"""
Chain client interface.

Execute-mode actions reach the chain only through this interface. Two
implementations ship with the package: :class:`Web3ChainClient` (signs and
submits real transactions) and :class:`StubChainClient` (deterministic,
in-memory, for development and tests).
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class ChainReceipt:
    """
    Outcome of a submitted transaction.

    Shared across client implementations so executors never see a raw
    web3 receipt.
    """
    tx_hash: str = ""
    gas_used: int = 0
    success: bool = False
    block_number: Optional[int] = None


class ChainClient(ABC):
    """
    Abstract base class for chain clients.

    Every method may raise
    :class:`~x402_playground.exceptions.ChainClientError`; the executors turn
    that into an ``error`` step result.
    """

    @property
    @abstractmethod
    def executor_address(self) -> str:
        """Address that signs and pays for transactions."""
        pass

    @abstractmethod
    def get_balance(self, address: str) -> str:
        """
        Get the native balance of an address.

        Args:
            address: Account address

        Returns:
            Balance in ether units as a decimal string
        """
        pass

    @abstractmethod
    def send_payment(
        self,
        to: str,
        amount: str,
        reference: Optional[str] = None,
    ) -> ChainReceipt:
        """
        Transfer native tokens.

        Args:
            to: Recipient address
            amount: Amount in ether units
            reference: Payment reference (becomes the x402 execution id)

        Returns:
            Receipt of the mined transaction
        """
        pass

    @abstractmethod
    def call_contract(
        self,
        address: str,
        method: str,
        args: Optional[List[Any]] = None,
        value: Optional[str] = None,
    ) -> ChainReceipt:
        """
        Call a state-changing contract method.

        Args:
            address: Contract address
            method: Method name
            args: Positional method arguments
            value: Native value to attach, in ether units

        Returns:
            Receipt of the mined transaction
        """
        pass

    @abstractmethod
    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        """
        Estimate gas for a transaction dictionary.

        Returns:
            Gas units, buffered by the implementation
        """
        pass


def get_web3_chain_client(settings: Any) -> ChainClient:
    """
    Build a web3-backed client from playground settings.

    Args:
        settings: :class:`~x402_playground.config.PlaygroundSettings` with a
            private key

    Returns:
        Configured :class:`Web3ChainClient`
    """
    from ..config import NetworkConfig
    from .web3_client import Web3ChainClient

    contracts = NetworkConfig.get_contracts(settings.network)
    return Web3ChainClient(
        rpc_url=settings.resolved_rpc_url(),
        priv_key=settings.private_key,
        chain_id=NetworkConfig.get_chain_id(settings.network),
        router_address=contracts.get("ExecutionRouter"),
    )


def get_stub_chain_client(address: Optional[str] = None) -> ChainClient:
    """
    Get an in-memory chain client.

    Always available since the stub has no external dependencies.
    """
    from .stub_client import StubChainClient
    if address is None:
        return StubChainClient()
    return StubChainClient(address=address)


def get_chain_client(settings: Any) -> Optional[ChainClient]:
    """
    Get the chain client for the given settings.

    A configured executor private key selects the web3 client. Without one,
    execute mode has no chain client unless ``settings.stub_chain`` opts into
    the in-memory client.

    Args:
        settings: :class:`~x402_playground.config.PlaygroundSettings`

    Returns:
        Chain client implementation, or None when execution is unavailable
    """
    if settings.private_key:
        logger.info(f"Using web3 chain client for {settings.network}")
        return get_web3_chain_client(settings)

    if settings.stub_chain:
        logger.warning("Using stub chain client: execute mode will not move real funds")
        return get_stub_chain_client(settings.executor_address)

    logger.info("EXECUTOR_PRIVATE_KEY not configured, execute mode is disabled")
    return None
