"""
Tests for x402 payment actions.
"""
import pytest

from x402_playground.chain import StubChainClient
from x402_playground.models import ActionStatus, ExecutionMode, PaymentAction

from conftest import TEST_RECIPIENT, TEST_WALLET


def test_simulated_payment_deducts(registry, make_ctx, recorder):
    ctx = make_ctx()
    result = registry.dispatch(ctx, PaymentAction(to=TEST_RECIPIENT, amount="0.5"))

    assert result.status == "simulated"
    assert result.gas_estimate == "210000"
    assert result.result["newBalance"] == "9.5"
    assert result.result["from"] == TEST_WALLET
    assert ctx.state.wallet.balances["TCRO"] == "9.5"
    assert recorder.get(ctx.run_id).warnings == []


def test_simulated_payment_in_other_token(registry, make_ctx):
    ctx = make_ctx()
    result = registry.dispatch(ctx, PaymentAction(to=TEST_RECIPIENT, amount="250", token="USDC"))
    assert result.ok
    assert ctx.state.wallet.balances["USDC"] == "750"
    assert ctx.state.wallet.balances["TCRO"] == "10"


def test_simulated_payment_insufficient(registry, make_ctx, recorder):
    ctx = make_ctx()
    result = registry.dispatch(ctx, PaymentAction(to=TEST_RECIPIENT, amount="15"))

    assert result.status == "error"
    assert result.error == "Insufficient TCRO balance"
    assert ctx.state.wallet.balances["TCRO"] == "10"
    assert recorder.get(ctx.run_id).warnings == ["Insufficient TCRO balance. Have: 10, Need: 15"]


def test_simulated_payment_exact_balance(registry, make_ctx):
    ctx = make_ctx()
    result = registry.dispatch(ctx, PaymentAction(to=TEST_RECIPIENT, amount="10"))
    assert result.ok
    assert ctx.state.wallet.balances["TCRO"] == "0"


@pytest.mark.parametrize("amount,message", [
    ("0", "Payment amount must be greater than zero"),
    ("-2", "Payment amount must be greater than zero"),
    ("ten", "Invalid amount: ten"),
])
def test_invalid_amount(registry, make_ctx, amount, message):
    ctx = make_ctx()
    result = registry.dispatch(ctx, PaymentAction(to=TEST_RECIPIENT, amount=amount))
    assert result.error == message
    assert ctx.state.wallet.balances["TCRO"] == "10"


def test_missing_fields(registry, make_ctx):
    ctx = make_ctx()
    result = registry.dispatch(ctx, PaymentAction(amount="1"))
    assert result.error == "Missing required field(s): to"


class TestExecuteMode:

    def test_sends_through_chain(self, registry, make_ctx, stub_chain, store):
        ctx = make_ctx(ExecutionMode.EXECUTE, balances={"TCRO": "25"})
        result = registry.dispatch(ctx, PaymentAction(to=TEST_RECIPIENT, amount="1.5"))

        assert result.status == "success"
        assert result.tx_hash.startswith("0x")
        assert result.gas_used == str(StubChainClient.PAYMENT_GAS)
        assert result.result["newBalance"] == "23.5"

        sent = stub_chain.sent[-1]
        assert sent["to"] == TEST_RECIPIENT
        assert sent["amount"] == "1.5"
        assert sent["reference"] == f"playground-{ctx.run_id}"

        last = store.get(ctx.run_id).x402.last_execution
        assert last.tx_hash == result.tx_hash

    def test_chain_failure_becomes_error(self, registry, make_ctx):
        chain = StubChainClient(TEST_WALLET, fail_on=["send_payment"])
        ctx = make_ctx(ExecutionMode.EXECUTE, chain=chain)
        result = registry.dispatch(ctx, PaymentAction(to=TEST_RECIPIENT, amount="1"))

        assert result.status == "error"
        assert "send_payment" in result.error
        assert ctx.state.wallet.balances["TCRO"] == "10"
        assert ctx.state.x402.last_execution is None

    def test_non_native_token_rejected(self, registry, make_ctx, stub_chain):
        ctx = make_ctx(ExecutionMode.EXECUTE)
        result = registry.dispatch(ctx, PaymentAction(to=TEST_RECIPIENT, amount="1", token="USDC"))
        assert result.error == "Only TCRO payments can be executed on chain (got USDC)"
        assert stub_chain.sent == []

    def test_virtual_shortfall_is_warned(self, registry, make_ctx, recorder):
        ctx = make_ctx(ExecutionMode.EXECUTE, balances={"TCRO": "1"})
        result = registry.dispatch(ctx, PaymentAction(to=TEST_RECIPIENT, amount="2"))

        assert result.ok
        assert ctx.state.wallet.balances["TCRO"] == "0"
        warnings = recorder.get(ctx.run_id).warnings
        assert warnings == [f"Virtual TCRO balance did not cover confirmed payment {result.tx_hash}"]

    def test_no_chain_client(self, registry, make_ctx):
        ctx = make_ctx(ExecutionMode.EXECUTE, chain=None)
        result = registry.dispatch(ctx, PaymentAction(to=TEST_RECIPIENT, amount="1"))
        assert result.error == "No chain client configured for execute mode"

    def test_result_status_string(self, registry, make_ctx):
        ctx = make_ctx(ExecutionMode.EXECUTE)
        result = registry.dispatch(ctx, PaymentAction(to=TEST_RECIPIENT, amount="1"))
        assert result.status == ActionStatus.SUCCESS
