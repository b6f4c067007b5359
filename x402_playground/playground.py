"""
Process-level service container.

A :class:`Playground` owns the store, the recorder, the collaborators and the
runner. The HTTP server and the CLI both talk to one instance.
"""
import logging
import threading
from typing import Any, Dict, List, Optional

from .chain import get_chain_client
from .config import STABLE_TOKEN, NetworkConfig, PlaygroundSettings
from .decision import HttpDecisionClient
from .exceptions import RunNotFoundError
from .models import ExecutionMode, PlanGraph, RunResult, ValidationReport
from .runner import Runner
from .state import WELL_KNOWN_CONTRACTS, VirtualStateStore
from .trace import TraceRecorder
from .validation import validate_plan

logger = logging.getLogger(__name__)


class Playground:
    """
    Entry point for running, validating and inspecting plans.

    Args:
        settings: Runtime settings (read from the environment if omitted)
        chain_client: Chain collaborator (chosen from settings if omitted;
            without an executor key execute mode stays disabled)
        decision_client: Decision collaborator (HTTP client if omitted)
    """

    def __init__(
        self,
        settings: Optional[PlaygroundSettings] = None,
        chain_client: Optional[Any] = None,
        decision_client: Optional[Any] = None,
    ):
        self.settings = settings or PlaygroundSettings.from_env()

        contracts = {**NetworkConfig.get_contracts(self.settings.network), **WELL_KNOWN_CONTRACTS}
        native = self.settings.native_token
        self.store = VirtualStateStore(
            contracts=contracts,
            seed_tokens=(native, STABLE_TOKEN),
            native_token=native,
        )
        self.recorder = TraceRecorder(store=self.store)

        self.chain_client = chain_client or get_chain_client(self.settings)
        self.decision_client = decision_client or HttpDecisionClient(
            self.settings.agent_api_url,
            timeout=self.settings.http_timeout,
            retry_count=self.settings.retry_count,
        )

        self.runner = Runner(
            store=self.store,
            recorder=self.recorder,
            chain_client=self.chain_client,
            decision_client=self.decision_client,
            wallet_address=self.settings.executor_address,
            seed_balances=self.settings.seed_balances,
            explorer_url=self.settings.explorer_url,
        )

    def simulate(self, payload: Dict[str, Any]) -> RunResult:
        return self.run(payload, mode=ExecutionMode.SIMULATE)

    def execute(self, payload: Dict[str, Any]) -> RunResult:
        return self.run(payload, mode=ExecutionMode.EXECUTE)

    def run(
        self,
        payload: Dict[str, Any],
        mode: Optional[ExecutionMode] = None,
        fail_fast: Optional[bool] = None,
    ) -> RunResult:
        """
        Run a plan or a plan graph.

        Expired runs are evicted first so memory stays bounded.

        Args:
            payload: Plan (``actions``) or graph (``nodes``/``edges``)
            mode: Forces the mode when given
            fail_fast: Error policy override

        Raises:
            PlanValidationError: If the payload is not a valid plan or graph
        """
        self.evict_expired()
        if PlanGraph.is_graph_payload(payload):
            return self.runner.run_graph(payload, mode=mode, fail_fast=fail_fast)

        if mode is not None and isinstance(payload, dict):
            payload = {**payload, "mode": ExecutionMode(mode).value}
        return self.runner.run(payload, fail_fast=fail_fast)

    def validate(self, payload: Any) -> ValidationReport:
        return validate_plan(payload)

    def get_run(self, run_id: str) -> Dict[str, Any]:
        """
        Everything known about a past run.

        Raises:
            RunNotFoundError: If the run is unknown or has expired
        """
        trace = self.recorder.get(run_id)
        if trace is None:
            raise RunNotFoundError(f"Run not found: {run_id}")
        state = self.store.snapshot(run_id)
        return {
            "trace": trace,
            "state": state,
            "summary": self.recorder.summary(run_id),
            "stateSummary": self.store.summary(run_id),
        }

    def list_runs(self) -> List[Dict[str, Any]]:
        return self.recorder.list_summaries()

    def evict_expired(self) -> int:
        retention = self.settings.retention_seconds
        evicted = self.store.evict_older_than(retention)
        self.recorder.evict_older_than(retention)
        return evicted

    def health(self) -> Dict[str, Any]:
        return {
            "status": "operational",
            "network": self.settings.network,
            "nativeToken": self.store.native_token,
            "features": {
                "simulation": True,
                "execution": self.chain_client is not None,
                "tracing": True,
                "stateManagement": True,
            },
            "actionTypes": self.runner.registry.kinds(),
        }


_playground: Optional[Playground] = None
_playground_lock = threading.RLock()


def get_playground() -> Playground:
    """Process-wide playground, built from the environment on first use."""
    global _playground
    with _playground_lock:
        if _playground is None:
            _playground = Playground()
        return _playground


def reset_playground() -> None:
    global _playground
    with _playground_lock:
        _playground = None
