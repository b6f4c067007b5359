"""
Web3-backed chain client for execute-mode runs.
"""
import logging
import urllib.parse
from typing import Any, Dict, List, Optional, Protocol

from eth_account import Account
from eth_account.signers.base import BaseAccount
from web3 import Web3

from ..exceptions import ChainClientError
from ..utils import format_amount, now_ms, to_decimal
from .client import ChainClient, ChainReceipt


class Signer(Protocol):
    """Protocol for custom signers"""
    address: str

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        """Sign transaction and return signed tx object"""
        ...


def _to_hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value)
    return text if text.startswith("0x") else "0x" + text


class Web3ChainClient(ChainClient):
    """
    Chain client that signs locally and submits through a JSON-RPC endpoint.

    Payments go through the ExecutionRouter's ``executePayment`` when a
    router address is configured, so that they are recorded as x402
    executions; without a router they are plain value transfers.
    """

    # ABI for the ExecutionRouter contract
    EXECUTION_ROUTER_ABI = [
        {
            "inputs": [
                {"internalType": "bytes32", "name": "executionId", "type": "bytes32"},
                {"internalType": "string", "name": "intentType", "type": "string"},
                {"internalType": "address", "name": "targetContract", "type": "address"},
                {"internalType": "bytes", "name": "callData", "type": "bytes"}
            ],
            "name": "execute",
            "outputs": [
                {"internalType": "bool", "name": "", "type": "bool"},
                {"internalType": "bytes", "name": "", "type": "bytes"}
            ],
            "stateMutability": "payable",
            "type": "function"
        },
        {
            "inputs": [
                {"internalType": "bytes32", "name": "executionId", "type": "bytes32"},
                {"internalType": "address", "name": "recipient", "type": "address"},
                {"internalType": "uint256", "name": "amount", "type": "uint256"},
                {"internalType": "string", "name": "reason", "type": "string"}
            ],
            "name": "executePayment",
            "outputs": [],
            "stateMutability": "payable",
            "type": "function"
        }
    ]

    DEFAULT_GAS = 300000
    PAYMENT_REASON = "Payment via x402 Playground"

    def __init__(
        self,
        rpc_url: str,
        priv_key: Optional[str] = None,
        signer: Optional[Signer] = None,
        chain_id: Optional[int] = None,
        router_address: Optional[str] = None,
        contract_abis: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        receipt_timeout: int = 120,
        poll_interval: float = 0.5,
        w3: Optional[Web3] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the client.

        Args:
            rpc_url: JSON-RPC endpoint (e.g., "https://evm-t3.cronos.org")
            priv_key: Executor private key (optional if signer provided)
            signer: Custom signer object (optional if priv_key provided)
            chain_id: Chain id to sign for (queried from the node if omitted)
            router_address: ExecutionRouter address used for payments
            contract_abis: ABIs keyed by contract address for ``call_contract``
            receipt_timeout: Seconds to wait for a transaction receipt
            poll_interval: Receipt polling interval in seconds
            w3: Preconfigured Web3 instance (mainly for tests)
            logger: Optional logger instance

        Raises:
            ValueError: If neither priv_key nor signer is provided, or the RPC
                URL is not https (unless it is localhost/127.0.0.1)
        """
        if not priv_key and not signer:
            raise ValueError("Either priv_key or signer must be provided")

        parsed = urllib.parse.urlparse(rpc_url)
        host = parsed.netloc.split(':')[0]
        if parsed.scheme != 'https' and host not in ('localhost', '127.0.0.1'):
            raise ValueError(f"rpc_url must use https:// for security (got: {parsed.scheme}://)")

        self.rpc_url = rpc_url
        self.logger = logger or logging.getLogger(__name__)
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url))
        self.receipt_timeout = receipt_timeout
        self.poll_interval = poll_interval
        self._chain_id = chain_id

        self.account: Optional[BaseAccount] = None
        self.signer = signer
        if priv_key:
            self.account = Account.from_key(priv_key)

        self.router = None
        if router_address:
            self.router = self.w3.eth.contract(
                address=Web3.to_checksum_address(router_address),
                abi=self.EXECUTION_ROUTER_ABI
            )

        self.contract_abis: Dict[str, List[Dict[str, Any]]] = {}
        if router_address:
            self.contract_abis[router_address.lower()] = self.EXECUTION_ROUTER_ABI
        for address, abi in (contract_abis or {}).items():
            self.contract_abis[address.lower()] = abi

    @property
    def executor_address(self) -> str:
        if self.account:
            return self.account.address
        return self.signer.address

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = self.w3.eth.chain_id
        return self._chain_id

    def register_abi(self, address: str, abi: List[Dict[str, Any]]) -> None:
        self.contract_abis[address.lower()] = abi

    def get_balance(self, address: str) -> str:
        checksum = self._checksum(address, "account")
        try:
            wei = self.w3.eth.get_balance(checksum)
        except Exception as e:
            self.logger.error(f"Balance lookup failed for {checksum}: {e}")
            raise ChainClientError(f"Failed to read balance: {str(e)}")
        return format_amount(to_decimal(Web3.from_wei(wei, "ether")))

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        try:
            gas = int(self.w3.eth.estimate_gas(tx) * 1.1)
            self.logger.debug(f"Estimated gas: {gas}")
            return gas
        except Exception as e:
            self.logger.warning(f"Gas estimation failed, using default: {self.DEFAULT_GAS}. Error: {e}")
            return self.DEFAULT_GAS

    def send_payment(
        self,
        to: str,
        amount: str,
        reference: Optional[str] = None,
    ) -> ChainReceipt:
        """
        Transfer native tokens, through the ExecutionRouter when configured.

        Raises:
            ChainClientError: If the address or amount is invalid, or the
                transaction fails or reverts
        """
        recipient = self._checksum(to, "recipient")
        wei = self._to_wei(amount)

        try:
            if self.router is not None:
                execution_id = Web3.keccak(text=reference or f"payment-{now_ms()}")
                fn = self.router.functions.executePayment(
                    execution_id, recipient, wei, self.PAYMENT_REASON
                )
                tx = self._build_call(fn, wei)
            else:
                tx = self._base_tx(wei)
                tx["to"] = recipient
                tx["gas"] = self.estimate_gas({"from": tx["from"], "to": recipient, "value": wei})

            receipt = self._sign_and_send(tx)
            self.logger.info(f"Payment of {amount} to {recipient} confirmed: {receipt.tx_hash}")
            return receipt
        except ChainClientError:
            raise
        except Exception as e:
            self.logger.error(f"Unexpected error during send_payment: {e}")
            raise ChainClientError(f"Payment failed: {str(e)}")

    def call_contract(
        self,
        address: str,
        method: str,
        args: Optional[List[Any]] = None,
        value: Optional[str] = None,
    ) -> ChainReceipt:
        """
        Call a method of a contract whose ABI is registered.

        Raises:
            ChainClientError: If no ABI is registered, the method is unknown,
                or the transaction fails or reverts
        """
        checksum = self._checksum(address, "contract")
        abi = self.contract_abis.get(address.lower())
        if abi is None:
            raise ChainClientError(f"No ABI registered for contract {checksum}")

        names = {entry.get("name") for entry in abi if entry.get("type") == "function"}
        if method not in names:
            raise ChainClientError(f"Method {method} not found in ABI of {checksum}")

        wei = self._to_wei(value, allow_zero=True) if value is not None else 0

        try:
            contract = self.w3.eth.contract(address=checksum, abi=abi)
            fn = getattr(contract.functions, method)(*(args or []))
            receipt = self._sign_and_send(self._build_call(fn, wei))
            self.logger.info(f"Contract call {method} on {checksum} confirmed: {receipt.tx_hash}")
            return receipt
        except ChainClientError:
            raise
        except Exception as e:
            self.logger.error(f"Unexpected error during call_contract: {e}")
            raise ChainClientError(f"Contract call failed: {str(e)}")

    def _checksum(self, address: str, label: str) -> str:
        # Reject anything that is not a hex address; ENS names never resolve here
        if not address or not Web3.is_address(address):
            raise ChainClientError(
                f"Invalid {label} address format: {address}. Must be a valid address (0x...)"
            )
        return Web3.to_checksum_address(address)

    def _to_wei(self, amount: Any, allow_zero: bool = False) -> int:
        try:
            value = to_decimal(amount)
        except ValueError as e:
            raise ChainClientError(str(e))
        if value < 0 or (value == 0 and not allow_zero):
            raise ChainClientError(f"Invalid amount: {amount}")
        return int(Web3.to_wei(value, "ether"))

    def _base_tx(self, value_wei: int) -> Dict[str, Any]:
        sender = self.executor_address
        return {
            "from": sender,
            "nonce": self.w3.eth.get_transaction_count(sender),
            "value": value_wei,
            "gasPrice": self.w3.eth.gas_price,
            "chainId": self.chain_id,
        }

    def _build_call(self, fn: Any, value_wei: int) -> Dict[str, Any]:
        tx_params = self._base_tx(value_wei)
        try:
            gas = fn.estimate_gas({"from": tx_params["from"], "value": value_wei})
            tx_params["gas"] = int(gas * 1.1)
        except Exception as e:
            tx_params["gas"] = self.DEFAULT_GAS
            self.logger.warning(f"Gas estimation failed, using default: {self.DEFAULT_GAS}. Error: {e}")
        return fn.build_transaction(tx_params)

    def _sign_and_send(self, tx: Dict[str, Any]) -> ChainReceipt:
        try:
            if self.account:
                signed_tx = self.account.sign_transaction(tx)
            else:
                signed_tx = self.signer.sign_transaction(tx)
        except Exception as e:
            self.logger.error(f"Transaction signing failed: {e}")
            raise ChainClientError(f"Failed to sign transaction: {str(e)}")

        try:
            tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        except Exception as e:
            self.logger.error(f"Failed to send transaction: {e}")
            raise ChainClientError(f"Failed to send transaction: {str(e)}")

        hex_hash = _to_hex(tx_hash)
        self.logger.info(f"Transaction sent: {hex_hash}")

        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.receipt_timeout,
                poll_latency=self.poll_interval
            )
        except Exception as e:
            self.logger.error(f"Receipt wait failed for {hex_hash}: {e}")
            raise ChainClientError(f"Transaction not confirmed: {str(e)}", tx_hash=hex_hash)

        if receipt.get("status") != 1:
            raise ChainClientError(f"Transaction reverted: {hex_hash}", tx_hash=hex_hash)

        return ChainReceipt(
            tx_hash=hex_hash,
            gas_used=int(receipt.get("gasUsed", 0)),
            success=True,
            block_number=receipt.get("blockNumber"),
        )
