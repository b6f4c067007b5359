"""
Virtual state store: the per-run ledger that actions read and mutate.

Each run owns one :class:`~x402_playground.models.VirtualState` holding the
wallet balances, the registry of known contracts and the x402 status. In
simulate mode this ledger is the only thing actions touch; in execute mode it
mirrors the chain (native balance loaded once at run start, payments deducted
as they confirm).
"""
import logging
import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .config import DEFAULT_NATIVE_TOKEN, STABLE_TOKEN
from .exceptions import ChainClientError
from .models import (
    ContractState,
    ExecutionMode,
    StateMetadata,
    VirtualState,
    VirtualWallet,
    X402Execution,
    X402Status,
)
from .utils import AmountLike, format_amount, now_ms, to_decimal

logger = logging.getLogger(__name__)

SEED_TOKENS = (DEFAULT_NATIVE_TOKEN, STABLE_TOKEN)

# Core x402 contracts on Cronos testnet
CORE_CONTRACTS = {
    "ExecutionRouter": "0x0B10060fF00CF2913a81f5BdBEA1378eD10092c6",
    "TreasuryVault": "0x169439e816B63D3836e1E4e9C407c7936505C202",
    "AttestationRegistry": "0xb183502116bcc1b41Bb42C704F4868e5Dc812Ce2",
}

# DeFi contracts the playground knows by name; never called on chain
WELL_KNOWN_CONTRACTS = {
    "SwapRouter": "0x145677FC4d9b8F19B5D56d1820c48e0443049a30",
    "LiquidityPool": "0x7c3c0c8f6f7e7d8c9b8b7b7c6c5c4c3c2c1c0c9c",
    "PriceOracle": "0x6c3c0c8f6f7e7d8c9b8b7b7c6c5c4c3c2c1c0c8c",
}

DEFAULT_CONTRACTS = {**CORE_CONTRACTS, **WELL_KNOWN_CONTRACTS}


class VirtualStateStore:
    """
    Registry of run states keyed by run id.

    The map itself is guarded by a lock so that concurrent runs can create
    and evict entries safely; a single run's state is only ever touched by
    that run's sequential loop.

    Mutations on an unknown run are no-ops. :meth:`deduct` is the one
    operation with an observable failure (it returns False).
    """

    def __init__(
        self,
        contracts: Optional[Mapping[str, str]] = None,
        seed_tokens: Iterable[str] = SEED_TOKENS,
        native_token: str = DEFAULT_NATIVE_TOKEN,
    ):
        self.contracts = dict(DEFAULT_CONTRACTS if contracts is None else contracts)
        self.seed_tokens = tuple(seed_tokens)
        self.native_token = native_token
        self._states: Dict[str, VirtualState] = {}
        self._lock = threading.RLock()

    # ── lifecycle ────────────────────────────────────────────────────────

    def create(
        self,
        run_id: str,
        mode: ExecutionMode,
        wallet_address: str,
    ) -> VirtualState:
        """
        Create the state of a new run.

        Seed tokens start at zero; every registered contract is marked
        deployed.

        Args:
            run_id: Identifier of the run
            mode: Execution mode of the run
            wallet_address: Address acting as the run's wallet

        Returns:
            The new state (live object owned by the store)
        """
        mode = ExecutionMode(mode)
        created = now_ms()
        state = VirtualState(
            run_id=run_id,
            mode=mode,
            wallet=VirtualWallet(
                address=wallet_address,
                balances={token: "0" for token in self.seed_tokens},
                nonce=0,
            ),
            contracts={
                name: ContractState(name=name, address=address, is_deployed=True)
                for name, address in self.contracts.items()
            },
            x402=X402Status(mode="real" if mode == ExecutionMode.EXECUTE else "simulated"),
            metadata=StateMetadata(created_at=created, updated_at=created),
        )
        with self._lock:
            self._states[run_id] = state
        logger.debug(f"Created virtual state for {run_id} ({mode.value})")
        return state

    def get(self, run_id: str) -> Optional[VirtualState]:
        with self._lock:
            return self._states.get(run_id)

    def snapshot(self, run_id: str) -> Optional[VirtualState]:
        """Deep copy of a run's state, safe to hand to consumers."""
        state = self.get(run_id)
        return state.model_copy(deep=True) if state is not None else None

    def delete(self, run_id: str) -> bool:
        with self._lock:
            return self._states.pop(run_id, None) is not None

    def run_ids(self) -> List[str]:
        with self._lock:
            return list(self._states)

    def evict_older_than(self, max_age_seconds: float, now: Optional[int] = None) -> int:
        """
        Remove runs created more than ``max_age_seconds`` ago.

        Args:
            max_age_seconds: Age bound in seconds
            now: Reference time in epoch ms (defaults to the current time)

        Returns:
            Number of runs removed
        """
        cutoff = (now_ms() if now is None else now) - int(max_age_seconds * 1000)
        with self._lock:
            expired = [
                run_id for run_id, state in self._states.items()
                if state.metadata.created_at < cutoff
            ]
            for run_id in expired:
                del self._states[run_id]
        if expired:
            logger.info(f"Evicted {len(expired)} expired run state(s)")
        return len(expired)

    # ── balances ─────────────────────────────────────────────────────────

    def get_balance(self, run_id: str, token: str) -> Optional[Decimal]:
        """Balance of ``token`` (zero when never set); None for an unknown run."""
        state = self.get(run_id)
        if state is None:
            return None
        return to_decimal(state.wallet.balances.get(token, "0"))

    def set_balance(self, run_id: str, token: str, amount: AmountLike) -> None:
        """
        Overwrite a token balance.

        Raises:
            ValueError: If the amount is not a non-negative number
        """
        value = to_decimal(amount)
        if value < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        state = self.get(run_id)
        if state is None:
            return
        state.wallet.balances[token] = format_amount(value)
        self._touch(state)

    def deduct(self, run_id: str, token: str, amount: AmountLike) -> bool:
        """
        Subtract ``amount`` from a token balance.

        Returns:
            True on success. False (and no mutation) when the run is unknown,
            the amount is invalid or negative, or the balance is insufficient.
        """
        state = self.get(run_id)
        if state is None:
            return False
        try:
            value = to_decimal(amount)
        except ValueError:
            return False
        if value < 0:
            return False

        current = to_decimal(state.wallet.balances.get(token, "0"))
        if current < value:
            return False

        state.wallet.balances[token] = format_amount(current - value)
        self._touch(state)
        return True

    def credit(self, run_id: str, token: str, amount: AmountLike) -> None:
        """
        Add ``amount`` to a token balance.

        Raises:
            ValueError: If the amount is not a non-negative number
        """
        value = to_decimal(amount)
        if value < 0:
            raise ValueError(f"Credit amount cannot be negative: {amount}")
        state = self.get(run_id)
        if state is None:
            return
        current = to_decimal(state.wallet.balances.get(token, "0"))
        state.wallet.balances[token] = format_amount(current + value)
        self._touch(state)

    # ── contracts and x402 ───────────────────────────────────────────────

    def get_contract(self, run_id: str, name: str) -> Optional[ContractState]:
        state = self.get(run_id)
        if state is None:
            return None
        return state.contracts.get(name)

    def set_contract(
        self,
        run_id: str,
        name: str,
        address: str,
        is_deployed: bool = True,
    ) -> None:
        state = self.get(run_id)
        if state is None:
            return
        state.contracts[name] = ContractState(name=name, address=address, is_deployed=is_deployed)
        self._touch(state)

    def record_x402_execution(self, run_id: str, tx_hash: Optional[str]) -> None:
        state = self.get(run_id)
        if state is None:
            return
        state.x402.last_execution = X402Execution(timestamp=now_ms(), tx_hash=tx_hash)
        self._touch(state)

    def load_from_chain(self, run_id: str, chain_client: Any) -> bool:
        """
        Overwrite the native balance with the live balance of the wallet.

        Only applies to execute-mode runs. Chain failures are logged and
        leave the state unchanged.

        Args:
            run_id: Identifier of the run
            chain_client: Object exposing ``get_balance(address) -> str``

        Returns:
            True if the balance was loaded
        """
        state = self.get(run_id)
        if state is None or state.mode != ExecutionMode.EXECUTE.value:
            return False

        try:
            balance = chain_client.get_balance(state.wallet.address)
            self.set_balance(run_id, self.native_token, balance)
        except (ChainClientError, ValueError) as e:
            logger.error(f"Failed to load chain state for {run_id}: {e}")
            return False

        logger.info(f"Loaded {self.native_token} balance for {run_id}: {balance}")
        return True

    # ── views ────────────────────────────────────────────────────────────

    def summary(self, run_id: str) -> Optional[Dict[str, Any]]:
        """
        Compact, agent-friendly view of a run's state.

        Returns:
            Dictionary with wallet, contracts, mode and x402 status, or None
            for an unknown run
        """
        state = self.get(run_id)
        if state is None:
            return None

        last = state.x402.last_execution
        updated = datetime.fromtimestamp(state.metadata.updated_at / 1000, tz=timezone.utc)
        return {
            "runId": state.run_id,
            "mode": state.mode,
            "wallet": {
                "address": state.wallet.address,
                "balances": dict(state.wallet.balances),
            },
            "contracts": [
                {"name": c.name, "address": c.address, "deployed": c.is_deployed}
                for c in state.contracts.values()
            ],
            "x402": {
                "mode": state.x402.mode,
                "lastExecution": last.model_dump(by_alias=True) if last else None,
            },
            "lastUpdated": updated.isoformat().replace("+00:00", "Z"),
        }

    @staticmethod
    def _touch(state: VirtualState) -> None:
        state.metadata.updated_at = now_ms()
