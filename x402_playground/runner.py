"""
Runner: drives one plan through the executors and records its trace.
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .config import DEFAULT_EXECUTOR_ADDRESS, DEFAULT_SEED_BALANCES
from .executors import ExecutionContext, ExecutorRegistry, default_registry
from .models import ExecutionMode, ExecutionPlan, PlanGraph, RunResult, TransactionLink
from .plan_builder import PlanBuilder
from .state import VirtualStateStore
from .trace import TraceRecorder, summarize_steps
from .utils import generate_run_id

logger = logging.getLogger(__name__)


class Runner:
    """
    Runs plans one action at a time.

    The error policy is an explicit argument of :meth:`run`: with
    ``fail_fast`` the run stops after the first ``error`` step, otherwise
    every action is dispatched and success is decided after the loop. When
    not given it defaults to fail-fast for execute mode and
    continue-on-error for simulate mode.

    Args:
        store: State store holding every run's virtual ledger
        recorder: Trace recorder
        registry: Executor table (defaults to every supported kind)
        chain_client: Chain collaborator for execute mode
        decision_client: Decision collaborator for ``llm_agent`` actions
        wallet_address: Wallet of simulated runs
        seed_balances: Starting balances of simulated runs
        explorer_url: Block explorer base URL for transaction links
    """

    def __init__(
        self,
        store: VirtualStateStore,
        recorder: TraceRecorder,
        registry: Optional[ExecutorRegistry] = None,
        chain_client: Optional[Any] = None,
        decision_client: Optional[Any] = None,
        wallet_address: str = DEFAULT_EXECUTOR_ADDRESS,
        seed_balances: Optional[Mapping[str, str]] = None,
        explorer_url: Optional[str] = None,
        plan_builder: Optional[PlanBuilder] = None,
    ):
        self.store = store
        self.recorder = recorder
        self.registry = registry or default_registry()
        self.chain_client = chain_client
        self.decision_client = decision_client
        self.wallet_address = wallet_address
        self.seed_balances = dict(DEFAULT_SEED_BALANCES if seed_balances is None else seed_balances)
        self.explorer_url = explorer_url.rstrip("/") if explorer_url else None
        self.plan_builder = plan_builder or PlanBuilder()

    def run(
        self,
        plan: Union[ExecutionPlan, Dict[str, Any]],
        fail_fast: Optional[bool] = None,
    ) -> RunResult:
        """
        Run a linear plan.

        Args:
            plan: Plan model or payload
            fail_fast: Stop at the first error (defaults to ``mode == execute``)

        Returns:
            RunResult with the finalized trace, the step summary and, for
            steps that produced one, transaction links

        Raises:
            PlanValidationError: If the payload is not a valid plan
        """
        plan = ExecutionPlan.from_payload(plan)
        return self._run(plan, fail_fast, [])

    def run_graph(
        self,
        graph: Union[PlanGraph, Dict[str, Any]],
        mode: Optional[Union[ExecutionMode, str]] = None,
        fail_fast: Optional[bool] = None,
    ) -> RunResult:
        """
        Order a plan graph, then run it.

        Nodes the ordering could not resolve are still run (appended in
        declaration order) and reported as a trace warning.
        """
        plan, report = self.plan_builder.build(graph, mode)
        warnings = []
        if report.unresolved:
            warnings.append(
                "Plan graph contains a cycle; running unresolved nodes in "
                f"declaration order: {', '.join(report.unresolved)}"
            )
        return self._run(plan, fail_fast, warnings)

    def _run(
        self,
        plan: ExecutionPlan,
        fail_fast: Optional[bool],
        warnings: Iterable[str],
    ) -> RunResult:
        mode = ExecutionMode(plan.mode)
        live = mode == ExecutionMode.EXECUTE
        if fail_fast is None:
            fail_fast = live

        run_id = generate_run_id()
        logger.info(
            f"Starting run {run_id} ({mode.value}, {len(plan.actions)} action(s), "
            f"{'fail-fast' if fail_fast else 'continue-on-error'})"
        )

        # 1. Run state
        self._create_state(run_id, mode)

        # 2. Trace
        self.recorder.create_trace(run_id, mode, plan.plan_id, planned_steps=len(plan.actions))
        self.recorder.start(run_id)
        for warning in warnings:
            self.recorder.add_warning(run_id, warning)
        if not plan.actions:
            self.recorder.add_warning(run_id, "Plan has no actions")

        ctx = ExecutionContext(
            run_id=run_id,
            mode=mode,
            store=self.store,
            recorder=self.recorder,
            chain=self.chain_client,
            decision=self.decision_client,
        )

        # 3. Dispatch
        aborted = False
        try:
            for index, action in enumerate(plan.actions):
                result = self.registry.dispatch(ctx, action)
                self.recorder.add_step(run_id, result)
                if result.ok:
                    continue
                self.recorder.add_error(run_id, result.error)
                logger.info(f"Run {run_id} step {index} ({action.type}) failed: {result.error}")
                if fail_fast:
                    logger.info(f"Run {run_id} stopping after step {index}")
                    break
        except Exception as e:
            logger.error(f"Run {run_id} aborted: {e}")
            self.recorder.fail(run_id, f"Run aborted: {str(e)}")
            aborted = True

        # 4. Finalize
        if not aborted:
            self.recorder.complete(run_id)

        trace = self.recorder.get(run_id)
        summary = summarize_steps(trace.steps, total_steps=len(plan.actions))
        success = not aborted and summary.failed_steps == 0

        return RunResult(
            run_id=run_id,
            success=success,
            trace=trace,
            summary=summary,
            transactions=self._transactions(trace.steps),
        )

    def _create_state(self, run_id: str, mode: ExecutionMode) -> None:
        if mode == ExecutionMode.EXECUTE and self.chain_client is not None:
            self.store.create(run_id, mode, self.chain_client.executor_address)
            self.store.load_from_chain(run_id, self.chain_client)
            return

        self.store.create(run_id, mode, self.wallet_address)
        if mode == ExecutionMode.SIMULATE:
            for token, amount in self.seed_balances.items():
                self.store.set_balance(run_id, token, amount)

    def _transactions(self, steps: List[Any]) -> List[TransactionLink]:
        links = []
        for step in steps:
            if not step.tx_hash:
                continue
            url = f"{self.explorer_url}/tx/{step.tx_hash}" if self.explorer_url else None
            links.append(TransactionLink(hash=step.tx_hash, explorer_url=url))
        return links
