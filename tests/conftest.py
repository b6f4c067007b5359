"""
Pytest fixtures for the x402 playground tests.
"""
import time

import pytest

from x402_playground import _rate_limited_log
from x402_playground.chain import StubChainClient
from x402_playground.config import NetworkConfig, PlaygroundSettings
from x402_playground.decision import StubDecisionClient
from x402_playground.executors import ExecutionContext, default_registry
from x402_playground.models import ExecutionMode
from x402_playground.playground import Playground
from x402_playground.runner import Runner
from x402_playground.state import VirtualStateStore
from x402_playground.trace import TraceRecorder

# Constants for testing
TEST_WALLET = "0x36aE091C6264Cb30b2353806EEf2F969Dc2893f8"
TEST_RECIPIENT = "0x000000000000000000000000000000000000dEaD"
TEST_RPC_URL = "https://rpc.example.com"
TEST_PRIV_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
TEST_EXPLORER = "https://explorer.cronos.org/testnet"


# ─────────────────────────────────────────────────────────────────────────
#  GLOBAL STATE RESET
# ─────────────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def _reset_globals():
    """Network cache and suppressed log lines must not leak between tests."""
    NetworkConfig._networks_cache = None
    _rate_limited_log.reset()
    yield
    NetworkConfig._networks_cache = None
    _rate_limited_log.reset()


@pytest.fixture(autouse=True)
def _fast_sleep(monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


# ─────────────────────────────────────────────────────────────────────────
#  ENGINE PIECES
# ─────────────────────────────────────────────────────────────────────────

@pytest.fixture
def store():
    return VirtualStateStore()


@pytest.fixture
def recorder(store):
    return TraceRecorder(store=store)


@pytest.fixture
def stub_chain():
    return StubChainClient(address=TEST_WALLET, balances={TEST_WALLET: "25"})


@pytest.fixture
def stub_decision():
    return StubDecisionClient(response="Proceed with the payment", execution_time=42)


@pytest.fixture
def runner(store, recorder, stub_chain, stub_decision):
    return Runner(
        store=store,
        recorder=recorder,
        chain_client=stub_chain,
        decision_client=stub_decision,
        wallet_address=TEST_WALLET,
        explorer_url=TEST_EXPLORER,
    )


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def make_ctx(store, recorder, stub_chain, stub_decision):
    """
    Build an execution context for a fresh run.

    Simulated runs are seeded with TCRO=10 and USDC=1000; live runs start
    from the stub chain balance.
    """
    counter = {"n": 0}

    def _make(mode=ExecutionMode.SIMULATE, chain=stub_chain, decision=stub_decision, balances=None):
        counter["n"] += 1
        run_id = f"run_test_{counter['n']}"
        store.create(run_id, mode, TEST_WALLET)
        seeds = {"TCRO": "10", "USDC": "1000"} if balances is None else balances
        for token, amount in seeds.items():
            store.set_balance(run_id, token, amount)
        recorder.create_trace(run_id, mode, planned_steps=10)
        recorder.start(run_id)
        return ExecutionContext(
            run_id=run_id,
            mode=ExecutionMode(mode),
            store=store,
            recorder=recorder,
            chain=chain,
            decision=decision,
        )

    return _make


# ─────────────────────────────────────────────────────────────────────────
#  SERVICE CONTAINER
# ─────────────────────────────────────────────────────────────────────────

@pytest.fixture
def settings():
    return PlaygroundSettings(executor_address=TEST_WALLET)


@pytest.fixture
def playground(settings, stub_chain, stub_decision):
    return Playground(settings=settings, chain_client=stub_chain, decision_client=stub_decision)
