"""
Contract interactions: ``contract_call`` and ``approve_token``.
"""
from ..models import ActionResult, ActionType, ApproveTokenAction, ContractCallAction
from ..state import WELL_KNOWN_CONTRACTS
from .base import ActionExecutor, ExecutionContext, failed, simulated, succeeded

APPROVE_GAS_ESTIMATE = "50000"
SIMULATED_CALL_GAS = "150000"


def estimate_call_gas(method: str) -> str:
    """Gas band for a contract method, by name."""
    if method in ("execute", "executePayment"):
        return "250000"
    if method.startswith("approve"):
        return "50000"
    return "100000"


class ContractCallExecutor(ActionExecutor):
    """
    Calls a method of a contract from the run's registry.

    In execute mode the DeFi contracts the playground only knows by name are
    still simulated (flagged with a ``[SIMULATED]`` warning); every other
    contract goes to the chain client.
    """

    action_type = ActionType.CONTRACT_CALL.value
    requires_chain = True

    def _lookup(self, ctx: ExecutionContext, action: ContractCallAction):
        contract = ctx.store.get_contract(ctx.run_id, action.contract)
        if contract is None or not contract.is_deployed:
            ctx.warn(f"Contract {action.contract} not deployed")
            return None
        return contract

    def simulate(self, ctx: ExecutionContext, action: ContractCallAction) -> ActionResult:
        contract = self._lookup(ctx, action)
        if contract is None:
            return failed(action, f"Contract {action.contract} not found or not deployed")

        return simulated(action, {
            "contract": contract.address,
            "method": action.method,
            "args": action.args,
            "success": True,
        }, gas_estimate=estimate_call_gas(action.method))

    def execute(self, ctx: ExecutionContext, action: ContractCallAction) -> ActionResult:
        contract = self._lookup(ctx, action)
        if contract is None:
            return failed(action, f"Contract {action.contract} not found or not deployed")

        if action.contract in WELL_KNOWN_CONTRACTS:
            ctx.warn(f"[SIMULATED] Contract call: {action.contract}.{action.method}")
            return succeeded(action, {
                "contract": action.contract,
                "method": action.method,
                "simulated": True,
                "note": "DeFi contract call simulated - requires actual contract integration",
            }, gas_used=SIMULATED_CALL_GAS)

        receipt = ctx.chain.call_contract(contract.address, action.method, action.args, action.value)
        return succeeded(action, {
            "contract": action.contract,
            "address": contract.address,
            "method": action.method,
            "args": action.args,
        }, gas_used=str(receipt.gas_used), tx_hash=receipt.tx_hash)


class ApproveTokenExecutor(ActionExecutor):
    """
    Token approval. No allowance is tracked in either mode; the action
    always succeeds with a fixed gas figure.
    """

    action_type = ActionType.APPROVE_TOKEN.value

    def _payload(self, action: ApproveTokenAction) -> dict:
        return {
            "token": action.token,
            "spender": action.contract,
            "amount": action.amount,
            "approved": True,
        }

    def simulate(self, ctx: ExecutionContext, action: ApproveTokenAction) -> ActionResult:
        return simulated(action, self._payload(action), gas_estimate=APPROVE_GAS_ESTIMATE)

    def execute(self, ctx: ExecutionContext, action: ApproveTokenAction) -> ActionResult:
        ctx.warn(f"[SIMULATED] Token approval: {action.token} for {action.contract}")
        result = self._payload(action)
        result["simulated"] = True
        result["note"] = "Allowances are not tracked; no transaction was sent"
        return succeeded(action, result, gas_used=APPROVE_GAS_ESTIMATE)
