"""
Data models for the x402 playground.

Attributes are snake_case; the JSON wire form keeps the camelCase names of the
playground API (``planId``, ``txHash``, ``gasEstimate`` ...). Models accept
either spelling on input and are dumped with ``by_alias=True``.
"""
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Optional, Tuple, Type, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    SerializeAsAny,
    ValidationError,
    field_validator,
    model_validator,
)

from .exceptions import PlanValidationError
from .utils import now_ms


class ExecutionMode(str, Enum):
    """Where a plan runs: the virtual ledger or a live chain."""
    SIMULATE = "simulate"
    EXECUTE = "execute"


class ActionType(str, Enum):
    READ_BALANCE = "read_balance"
    X402_PAYMENT = "x402_payment"
    CONTRACT_CALL = "contract_call"
    READ_STATE = "read_state"
    APPROVE_TOKEN = "approve_token"
    CONDITION = "condition"
    LLM_AGENT = "llm_agent"
    SWAP = "swap"


class ActionStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    SIMULATED = "simulated"
    PENDING = "pending"


class TraceStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def _amount_to_str(value: Any) -> Any:
    # JSON clients send amounts as numbers as often as strings
    if isinstance(value, bool) or value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return value


AmountStr = Annotated[Optional[str], BeforeValidator(_amount_to_str)]


# ─────────────────────────────────────────────────────────────────────────
#  Actions
# ─────────────────────────────────────────────────────────────────────────

class ExecutionAction(BaseModel):
    """
    Base of the action variants. ``type`` is the tag.

    Required fields are typed ``Optional`` so that a plan with a missing
    field still parses; :meth:`missing_fields` reports the gap and the
    executor rejects the action at dispatch.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ()

    type: str
    description: Optional[str] = None
    step_id: Optional[str] = Field(None, alias="stepId")

    def missing_fields(self) -> List[str]:
        """Wire names of required fields that are absent or blank."""
        missing = []
        for name in self.REQUIRED_FIELDS:
            value = getattr(self, name, None)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(self.wire_name(name))
        return missing

    @classmethod
    def wire_name(cls, name: str) -> str:
        field = cls.model_fields.get(name)
        if field is not None and field.alias:
            return field.alias
        return name


class ReadBalanceAction(ExecutionAction):
    type: str = ActionType.READ_BALANCE.value
    token: Optional[str] = None
    address: Optional[str] = None


class PaymentAction(ExecutionAction):
    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("to", "amount")

    type: str = ActionType.X402_PAYMENT.value
    to: Optional[str] = None
    amount: AmountStr = None
    token: Optional[str] = None


class ContractCallAction(ExecutionAction):
    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("contract", "method")

    type: str = ActionType.CONTRACT_CALL.value
    contract: Optional[str] = None
    method: Optional[str] = None
    args: List[Any] = Field(default_factory=list)
    value: AmountStr = None


class ReadStateAction(ExecutionAction):
    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("contract",)

    type: str = ActionType.READ_STATE.value
    contract: Optional[str] = None


class ApproveTokenAction(ExecutionAction):
    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("token", "amount", "contract")

    type: str = ActionType.APPROVE_TOKEN.value
    token: Optional[str] = None
    amount: AmountStr = None
    contract: Optional[str] = None


class ConditionAction(ExecutionAction):
    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("condition",)

    type: str = ActionType.CONDITION.value
    condition: Optional[str] = None
    variable: Optional[str] = None


class LLMAgentAction(ExecutionAction):
    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("prompt",)

    type: str = ActionType.LLM_AGENT.value
    prompt: Optional[str] = None
    context: Optional[Union[str, Dict[str, Any]]] = None
    model: str = "gpt-4-turbo"
    agent_id: Optional[str] = Field(None, alias="agentId")
    temperature: Optional[float] = None
    max_tokens: Optional[int] = Field(None, alias="maxTokens")


class SwapAction(ExecutionAction):
    """Reserved. Parsed so plans round-trip, never executed."""
    type: str = ActionType.SWAP.value
    token_in: Optional[str] = Field(None, alias="tokenIn")
    token_out: Optional[str] = Field(None, alias="tokenOut")
    amount: AmountStr = None


class UnknownAction(ExecutionAction):
    """Any action whose tag is not part of the vocabulary."""
    type: str = ""


ACTION_MODELS: Dict[str, Type[ExecutionAction]] = {
    ActionType.READ_BALANCE.value: ReadBalanceAction,
    ActionType.X402_PAYMENT.value: PaymentAction,
    ActionType.CONTRACT_CALL.value: ContractCallAction,
    ActionType.READ_STATE.value: ReadStateAction,
    ActionType.APPROVE_TOKEN.value: ApproveTokenAction,
    ActionType.CONDITION.value: ConditionAction,
    ActionType.LLM_AGENT.value: LLMAgentAction,
    ActionType.SWAP.value: SwapAction,
}


def _format_error(error: Dict[str, Any]) -> str:
    loc = ".".join(str(part) for part in error.get("loc", ()))
    return f"{loc}: {error['msg']}" if loc else error["msg"]


def parse_action(data: Union[ExecutionAction, Dict[str, Any]]) -> ExecutionAction:
    """
    Build the action variant matching the ``type`` tag of a payload.

    Args:
        data: Action dictionary (or an already-parsed action)

    Returns:
        Variant instance; unrecognized tags yield :class:`UnknownAction`

    Raises:
        PlanValidationError: If the payload is not an object or a field has
            the wrong shape
    """
    if isinstance(data, ExecutionAction):
        return data
    if not isinstance(data, dict):
        raise PlanValidationError(f"Action must be an object, got {type(data).__name__}")

    kind = data.get("type")
    if isinstance(kind, str):
        model = ACTION_MODELS.get(kind, UnknownAction)
        payload = data
    else:
        model = UnknownAction
        payload = {**data, "type": "" if kind is None else str(kind)}

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        errors = [_format_error(e) for e in exc.errors()]
        raise PlanValidationError(f"Invalid {kind or 'untyped'} action: {errors[0]}", errors) from exc


# ─────────────────────────────────────────────────────────────────────────
#  Plans
# ─────────────────────────────────────────────────────────────────────────

class ExecutionPlan(BaseModel):
    """A linear sequence of actions to run under one mode."""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    mode: ExecutionMode = ExecutionMode.SIMULATE
    plan_id: Optional[str] = Field(None, alias="planId")
    description: Optional[str] = None
    actions: List[SerializeAsAny[ExecutionAction]]
    context: Optional[Dict[str, Any]] = None

    @field_validator("actions", mode="before")
    @classmethod
    def _parse_actions(cls, value: Any) -> List[ExecutionAction]:
        if not isinstance(value, list):
            raise ValueError("actions array required")
        try:
            return [parse_action(item) for item in value]
        except PlanValidationError as exc:
            raise ValueError(str(exc))

    @classmethod
    def from_payload(
        cls,
        payload: Union["ExecutionPlan", Dict[str, Any]],
        mode: Optional[Union[ExecutionMode, str]] = None,
    ) -> "ExecutionPlan":
        """
        Parse a plan, optionally forcing its mode.

        Raises:
            PlanValidationError: If the payload is not a valid plan
        """
        forced = ExecutionMode(mode).value if mode is not None else None

        if isinstance(payload, ExecutionPlan):
            if forced is None:
                return payload
            return payload.model_copy(update={"mode": forced})

        if not isinstance(payload, dict):
            raise PlanValidationError("Execution plan must be a JSON object")

        data = dict(payload)
        if forced is not None:
            data["mode"] = forced
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            errors = [_format_error(e) for e in exc.errors()]
            raise PlanValidationError(f"Invalid execution plan: {errors[0]}", errors) from exc


class PlanNode(BaseModel):
    """A node of a plan graph as produced by the plan editor."""
    model_config = ConfigDict(extra="allow")

    id: str
    type: Optional[str] = None
    params: Dict[str, Any] = Field(default_factory=dict)
    data: Dict[str, Any] = Field(default_factory=dict)

    def action_payload(self) -> Dict[str, Any]:
        """Flatten the node into an action dictionary."""
        kind = self.type or self.data.get("actionType") or self.data.get("type")
        params = dict(self.data.get("params") or {})
        params.update(self.params)
        return {**params, "type": kind}


class PlanEdge(BaseModel):
    model_config = ConfigDict(extra="allow")

    source: Optional[str] = None
    target: Optional[str] = None


class PlanGraph(BaseModel):
    """An unordered plan: nodes plus dependency edges (source runs first)."""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    mode: ExecutionMode = ExecutionMode.SIMULATE
    plan_id: Optional[str] = Field(None, alias="planId")
    description: Optional[str] = None
    nodes: List[PlanNode]
    edges: List[PlanEdge] = Field(default_factory=list)
    context: Optional[Dict[str, Any]] = None

    @staticmethod
    def is_graph_payload(payload: Any) -> bool:
        return isinstance(payload, dict) and "nodes" in payload and "actions" not in payload


# ─────────────────────────────────────────────────────────────────────────
#  Results
# ─────────────────────────────────────────────────────────────────────────

class ActionResult(BaseModel):
    """Outcome of dispatching one action."""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    action: SerializeAsAny[ExecutionAction]
    status: ActionStatus
    result: Optional[Any] = None
    tx_hash: Optional[str] = Field(None, alias="txHash")
    gas_used: Optional[str] = Field(None, alias="gasUsed")
    gas_estimate: Optional[str] = Field(None, alias="gasEstimate")
    error: Optional[str] = None
    timestamp: int = Field(default_factory=now_ms)

    @model_validator(mode="after")
    def _check_error_message(self) -> "ActionResult":
        if self.status == ActionStatus.ERROR and not self.error:
            raise ValueError("error results must carry a message")
        if self.status in (ActionStatus.SUCCESS, ActionStatus.SIMULATED) and self.error:
            raise ValueError(f"{self.status} results cannot carry an error message")
        return self

    @property
    def ok(self) -> bool:
        return self.status in (ActionStatus.SUCCESS, ActionStatus.SIMULATED)

    @property
    def gas(self) -> Optional[str]:
        """Gas used when known, otherwise the estimate."""
        return self.gas_used if self.gas_used is not None else self.gas_estimate


# ─────────────────────────────────────────────────────────────────────────
#  Virtual state
# ─────────────────────────────────────────────────────────────────────────

class VirtualWallet(BaseModel):
    address: str
    balances: Dict[str, str] = Field(default_factory=dict)
    nonce: Optional[int] = 0


class ContractState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    address: str
    is_deployed: bool = Field(True, alias="isDeployed")
    abi: Optional[List[Dict[str, Any]]] = None


class X402Execution(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: int
    tx_hash: Optional[str] = Field(None, alias="txHash")


class X402Status(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mode: str
    last_execution: Optional[X402Execution] = Field(None, alias="lastExecution")


class StateMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    created_at: int = Field(..., alias="createdAt")
    updated_at: int = Field(..., alias="updatedAt")


class VirtualState(BaseModel):
    """Per-run ledger: wallet balances, contract registry and x402 status."""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    run_id: str = Field(..., alias="runId")
    mode: ExecutionMode
    wallet: VirtualWallet
    contracts: Dict[str, ContractState] = Field(default_factory=dict)
    x402: X402Status
    metadata: StateMetadata


# ─────────────────────────────────────────────────────────────────────────
#  Traces and run results
# ─────────────────────────────────────────────────────────────────────────

class TraceMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_time: int = Field(..., alias="startTime")
    end_time: Optional[int] = Field(None, alias="endTime")
    duration: Optional[int] = None


class ExecutionTrace(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    run_id: str = Field(..., alias="runId")
    plan_id: Optional[str] = Field(None, alias="planId")
    mode: ExecutionMode
    status: TraceStatus = TraceStatus.PENDING
    steps: List[ActionResult] = Field(default_factory=list)
    virtual_state: Optional[VirtualState] = Field(None, alias="virtualState")
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    planned_steps: Optional[int] = Field(None, alias="plannedSteps")
    metadata: TraceMetadata

    @property
    def is_final(self) -> bool:
        return self.status in (TraceStatus.COMPLETED, TraceStatus.FAILED)


class RunSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_steps: int = Field(..., alias="totalSteps")
    successful_steps: int = Field(..., alias="successfulSteps")
    failed_steps: int = Field(..., alias="failedSteps")
    total_gas: str = Field("0", alias="totalGas")


class TransactionLink(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    hash: str
    explorer_url: Optional[str] = Field(None, alias="explorerUrl")


class RunResult(BaseModel):
    """What a caller gets back from :meth:`Runner.run`."""
    model_config = ConfigDict(populate_by_name=True)

    run_id: str = Field(..., alias="runId")
    success: bool
    trace: ExecutionTrace
    summary: RunSummary
    transactions: List[TransactionLink] = Field(default_factory=list)


class ValidationReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    actions_count: int = Field(0, alias="actionsCount")
