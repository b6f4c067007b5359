"""
``x402_payment``: value transfer recorded as an x402 execution.
"""
import logging
from decimal import Decimal
from typing import Optional

from ..models import ActionResult, ActionType, PaymentAction
from ..utils import format_amount, to_decimal
from .base import ActionExecutor, ExecutionContext, failed, simulated, succeeded

logger = logging.getLogger(__name__)

PAYMENT_GAS_ESTIMATE = "210000"


class PaymentExecutor(ActionExecutor):
    """
    Simulate: checks the virtual balance and deducts on success; a shortfall
    is an error with no mutation. Execute: sends through the chain client,
    records the x402 execution, then mirrors the deduction.
    """

    action_type = ActionType.X402_PAYMENT.value
    requires_chain = True

    def validate(self, action: PaymentAction) -> Optional[str]:
        problem = super().validate(action)
        if problem:
            return problem
        try:
            amount = to_decimal(action.amount)
        except ValueError:
            return f"Invalid amount: {action.amount}"
        if amount <= 0:
            return "Payment amount must be greater than zero"
        return None

    def simulate(self, ctx: ExecutionContext, action: PaymentAction) -> ActionResult:
        token = action.token or ctx.store.native_token
        amount = to_decimal(action.amount)
        current = ctx.store.get_balance(ctx.run_id, token)

        if current < amount:
            ctx.warn(
                f"Insufficient {token} balance. "
                f"Have: {format_amount(current)}, Need: {format_amount(amount)}"
            )
            logger.warning(f"[{ctx.run_id}] payment of {amount} {token} exceeds balance {current}")
            return failed(action, f"Insufficient {token} balance")

        if not ctx.store.deduct(ctx.run_id, token, amount):
            return failed(action, "Failed to deduct balance")

        return simulated(action, {
            "from": ctx.state.wallet.address,
            "to": action.to,
            "amount": action.amount,
            "token": token,
            "newBalance": ctx.state.wallet.balances[token],
        }, gas_estimate=PAYMENT_GAS_ESTIMATE)

    def execute(self, ctx: ExecutionContext, action: PaymentAction) -> ActionResult:
        native = ctx.store.native_token
        token = action.token or native
        if token != native:
            return failed(action, f"Only {native} payments can be executed on chain (got {token})")

        amount = to_decimal(action.amount)
        receipt = ctx.chain.send_payment(
            action.to,
            format_amount(amount),
            reference=f"playground-{ctx.run_id}",
        )
        ctx.store.record_x402_execution(ctx.run_id, receipt.tx_hash)

        if not ctx.store.deduct(ctx.run_id, token, amount):
            ctx.warn(f"Virtual {token} balance did not cover confirmed payment {receipt.tx_hash}")
            ctx.store.set_balance(ctx.run_id, token, Decimal(0))

        return succeeded(action, {
            "from": ctx.chain.executor_address,
            "to": action.to,
            "amount": action.amount,
            "token": token,
            "newBalance": ctx.state.wallet.balances[token],
        }, gas_used=str(receipt.gas_used), tx_hash=receipt.tx_hash)
