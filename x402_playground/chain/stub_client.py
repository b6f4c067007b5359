"""
In-memory chain client.

Used throughout the test suite and, when explicitly enabled, for local
execute-mode runs without an executor key. It keeps native balances in a
dict, derives transaction hashes deterministically, and can be told to fail
specific operations.
"""
import hashlib
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from ..exceptions import ChainClientError
from ..utils import format_amount, to_decimal
from .client import ChainClient, ChainReceipt

logger = logging.getLogger(__name__)

DEFAULT_STUB_ADDRESS = "0x36aE091C6264Cb30b2353806EEf2F969Dc2893f8"


class StubChainClient(ChainClient):
    """
    A deterministic stand-in for a live chain.

    Args:
        address: Executor address
        balances: Initial native balances by address (executor defaults to 100)
        fail_on: Operation names (``get_balance``, ``send_payment``,
            ``call_contract``) that raise ChainClientError
        max_history: Number of recent transactions kept in ``sent``
    """

    PAYMENT_GAS = 21000
    CALL_GAS = 100000

    def __init__(
        self,
        address: str = DEFAULT_STUB_ADDRESS,
        balances: Optional[Dict[str, Any]] = None,
        fail_on: Optional[Iterable[str]] = None,
        max_history: int = 1000,
    ):
        self._address = address
        self.balances: Dict[str, Decimal] = {address.lower(): Decimal(100)}
        for account, amount in (balances or {}).items():
            self.balances[account.lower()] = to_decimal(amount)
        self.fail_on = set(fail_on or ())
        self.sent: List[Dict[str, Any]] = []
        self.max_history = max_history
        self._counter = 0
        logger.debug(f"Initialized stub chain client for {address}")

    @property
    def executor_address(self) -> str:
        return self._address

    def get_balance(self, address: str) -> str:
        self._maybe_fail("get_balance")
        return format_amount(self.balances.get(address.lower(), Decimal(0)))

    def send_payment(
        self,
        to: str,
        amount: str,
        reference: Optional[str] = None,
    ) -> ChainReceipt:
        self._maybe_fail("send_payment")
        if not to or not to.startswith("0x"):
            raise ChainClientError(f"Invalid recipient address format: {to}")

        value = to_decimal(amount)
        sender = self._address.lower()
        if self.balances.get(sender, Decimal(0)) < value:
            raise ChainClientError("insufficient funds for transfer")

        self.balances[sender] -= value
        self.balances[to.lower()] = self.balances.get(to.lower(), Decimal(0)) + value
        return self._record("payment", to=to, amount=format_amount(value), reference=reference,
                            gas=self.PAYMENT_GAS)

    def call_contract(
        self,
        address: str,
        method: str,
        args: Optional[List[Any]] = None,
        value: Optional[str] = None,
    ) -> ChainReceipt:
        self._maybe_fail("call_contract")
        return self._record("call", to=address, method=method, args=list(args or []),
                            value=value, gas=self.CALL_GAS)

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return self.CALL_GAS if tx.get("data") else self.PAYMENT_GAS

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise ChainClientError(f"Stub chain client configured to fail on {operation}")

    def _record(self, kind: str, gas: int, **details: Any) -> ChainReceipt:
        self._counter += 1
        seed = f"{kind}:{self._counter}:{sorted(details.items(), key=lambda kv: kv[0])}"
        tx_hash = "0x" + hashlib.sha256(seed.encode("utf-8")).hexdigest()
        self.sent.append({"kind": kind, "hash": tx_hash, **details})
        del self.sent[:-self.max_history]
        return ChainReceipt(tx_hash=tx_hash, gas_used=gas, success=True, block_number=self._counter)
