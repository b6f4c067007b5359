"""
Read-only actions: ``read_balance`` and ``read_state``.
"""
from ..models import ActionResult, ActionType, ReadBalanceAction, ReadStateAction
from ..utils import format_amount, to_decimal
from .base import ActionExecutor, ExecutionContext, failed, simulated, succeeded


class ReadBalanceExecutor(ActionExecutor):
    """Reads a token balance. Reads are free (gas 0)."""

    action_type = ActionType.READ_BALANCE.value
    requires_chain = True

    def simulate(self, ctx: ExecutionContext, action: ReadBalanceAction) -> ActionResult:
        token = action.token or ctx.store.native_token
        balance = ctx.store.get_balance(ctx.run_id, token)
        return simulated(action, {
            "token": token,
            "balance": format_amount(balance),
            "address": ctx.state.wallet.address,
        })

    def execute(self, ctx: ExecutionContext, action: ReadBalanceAction) -> ActionResult:
        token = action.token or ctx.store.native_token
        wallet = ctx.state.wallet.address
        address = action.address or ctx.chain.executor_address

        if token != ctx.store.native_token:
            # Only the native balance is read from chain; token balances stay virtual
            balance = format_amount(ctx.store.get_balance(ctx.run_id, token))
            return succeeded(action, {"token": token, "balance": balance, "address": wallet})

        balance = format_amount(to_decimal(ctx.chain.get_balance(address)))
        if address.lower() == wallet.lower():
            ctx.store.set_balance(ctx.run_id, token, balance)
        return succeeded(action, {"token": token, "balance": balance, "address": address})


class ReadStateExecutor(ActionExecutor):
    """Returns the registry entry of a named contract."""

    action_type = ActionType.READ_STATE.value

    def _read(self, ctx: ExecutionContext, action: ReadStateAction):
        contract = ctx.store.get_contract(ctx.run_id, action.contract)
        if contract is None:
            return None
        return {
            "contract": action.contract,
            "address": contract.address,
            "deployed": contract.is_deployed,
        }

    def simulate(self, ctx: ExecutionContext, action: ReadStateAction) -> ActionResult:
        entry = self._read(ctx, action)
        if entry is None:
            return failed(action, f"Contract {action.contract} not found")
        return simulated(action, entry)

    def execute(self, ctx: ExecutionContext, action: ReadStateAction) -> ActionResult:
        entry = self._read(ctx, action)
        if entry is None:
            return failed(action, f"Contract {action.contract} not found")
        return succeeded(action, entry)
