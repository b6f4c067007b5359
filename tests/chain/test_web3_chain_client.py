"""
Tests for the web3-backed chain client.
"""
from unittest.mock import MagicMock

import pytest
from web3 import Web3

from x402_playground.chain import Web3ChainClient
from x402_playground.exceptions import ChainClientError

from conftest import TEST_RECIPIENT, TEST_RPC_URL

SENDER = "0x1111111111111111111111111111111111111111"
ROUTER = "0x2222222222222222222222222222222222222222"
TX_HASH = b"\x12" * 32
ONE_ETHER = 10 ** 18


@pytest.fixture
def mock_w3():
    w3 = MagicMock()
    w3.eth.get_transaction_count.return_value = 3
    w3.eth.gas_price = 2_000_000_000
    w3.eth.estimate_gas.return_value = 21000
    w3.eth.send_raw_transaction.return_value = TX_HASH
    w3.eth.wait_for_transaction_receipt.return_value = {
        "status": 1,
        "gasUsed": 21000,
        "blockNumber": 7,
    }
    return w3


@pytest.fixture
def mock_signer():
    signer = MagicMock()
    signer.address = SENDER
    signer.sign_transaction.return_value = MagicMock(raw_transaction=b"signed")
    return signer


@pytest.fixture
def client(mock_w3, mock_signer):
    return Web3ChainClient(TEST_RPC_URL, signer=mock_signer, chain_id=338, w3=mock_w3)


@pytest.fixture
def routed_client(mock_w3, mock_signer):
    return Web3ChainClient(
        TEST_RPC_URL, signer=mock_signer, chain_id=338, router_address=ROUTER, w3=mock_w3
    )


class TestInit:

    def test_requires_credentials(self, mock_w3):
        with pytest.raises(ValueError, match="Either priv_key or signer must be provided"):
            Web3ChainClient(TEST_RPC_URL, w3=mock_w3)

    def test_rejects_plain_http(self, mock_signer, mock_w3):
        with pytest.raises(ValueError, match="must use https://"):
            Web3ChainClient("http://rpc.example.com", signer=mock_signer, w3=mock_w3)

    def test_allows_localhost(self, mock_signer, mock_w3):
        client = Web3ChainClient("http://localhost:8545", signer=mock_signer, w3=mock_w3)
        assert client.executor_address == SENDER

    def test_private_key_account(self, mock_w3):
        from eth_account import Account
        from conftest import TEST_PRIV_KEY

        client = Web3ChainClient(TEST_RPC_URL, priv_key=TEST_PRIV_KEY, w3=mock_w3)
        assert client.executor_address == Account.from_key(TEST_PRIV_KEY).address

    def test_chain_id_queried_lazily(self, mock_w3, mock_signer):
        mock_w3.eth.chain_id = 25
        client = Web3ChainClient(TEST_RPC_URL, signer=mock_signer, w3=mock_w3)
        assert client.chain_id == 25


class TestReads:

    def test_get_balance(self, client, mock_w3):
        mock_w3.eth.get_balance.return_value = 5 * ONE_ETHER + ONE_ETHER // 2
        assert client.get_balance(SENDER) == "5.5"
        mock_w3.eth.get_balance.assert_called_once_with(Web3.to_checksum_address(SENDER))

    def test_get_balance_invalid_address(self, client):
        with pytest.raises(ChainClientError, match="Invalid account address format"):
            client.get_balance("not-an-address")

    def test_get_balance_rpc_failure(self, client, mock_w3):
        mock_w3.eth.get_balance.side_effect = ConnectionError("rpc down")
        with pytest.raises(ChainClientError, match="Failed to read balance"):
            client.get_balance(SENDER)

    def test_estimate_gas_buffer(self, client, mock_w3):
        mock_w3.eth.estimate_gas.return_value = 100000
        assert client.estimate_gas({"to": TEST_RECIPIENT}) == 110000

    def test_estimate_gas_default(self, client, mock_w3):
        mock_w3.eth.estimate_gas.side_effect = Exception("execution reverted")
        assert client.estimate_gas({"to": TEST_RECIPIENT}) == Web3ChainClient.DEFAULT_GAS


class TestSendPayment:

    def test_plain_transfer(self, client, mock_signer):
        receipt = client.send_payment(TEST_RECIPIENT, "1.5")

        assert receipt.tx_hash == "0x" + TX_HASH.hex()
        assert receipt.gas_used == 21000
        assert receipt.block_number == 7
        assert receipt.success

        tx = mock_signer.sign_transaction.call_args[0][0]
        assert tx["to"] == TEST_RECIPIENT
        assert tx["value"] == 3 * ONE_ETHER // 2
        assert tx["nonce"] == 3
        assert tx["chainId"] == 338
        assert tx["gas"] == 23100

    def test_through_router(self, routed_client, mock_w3):
        router = mock_w3.eth.contract.return_value
        fn = router.functions.executePayment.return_value
        fn.estimate_gas.return_value = 100000
        fn.build_transaction.return_value = {"to": ROUTER, "data": "0x1234", "value": ONE_ETHER}

        routed_client.send_payment(TEST_RECIPIENT, "1", reference="playground-run_1")

        router.functions.executePayment.assert_called_once_with(
            Web3.keccak(text="playground-run_1"),
            TEST_RECIPIENT,
            ONE_ETHER,
            Web3ChainClient.PAYMENT_REASON,
        )
        tx_params = fn.build_transaction.call_args[0][0]
        assert tx_params["gas"] == 110000
        assert tx_params["value"] == ONE_ETHER

    def test_router_gas_estimate_fallback(self, routed_client, mock_w3):
        fn = mock_w3.eth.contract.return_value.functions.executePayment.return_value
        fn.estimate_gas.side_effect = Exception("estimate failed")
        fn.build_transaction.return_value = {"to": ROUTER}

        routed_client.send_payment(TEST_RECIPIENT, "1")
        assert fn.build_transaction.call_args[0][0]["gas"] == Web3ChainClient.DEFAULT_GAS

    def test_reverted(self, client, mock_w3):
        mock_w3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "gasUsed": 21000}
        with pytest.raises(ChainClientError) as exc_info:
            client.send_payment(TEST_RECIPIENT, "1")
        assert exc_info.value.tx_hash == "0x" + TX_HASH.hex()
        assert "reverted" in str(exc_info.value)

    def test_receipt_timeout_keeps_hash(self, client, mock_w3):
        mock_w3.eth.wait_for_transaction_receipt.side_effect = TimeoutError("timed out")
        with pytest.raises(ChainClientError, match="Transaction not confirmed") as exc_info:
            client.send_payment(TEST_RECIPIENT, "1")
        assert exc_info.value.tx_hash == "0x" + TX_HASH.hex()

    def test_send_failure(self, client, mock_w3):
        mock_w3.eth.send_raw_transaction.side_effect = ValueError("nonce too low")
        with pytest.raises(ChainClientError, match="Failed to send transaction"):
            client.send_payment(TEST_RECIPIENT, "1")

    def test_signing_failure(self, client, mock_signer):
        mock_signer.sign_transaction.side_effect = RuntimeError("hsm offline")
        with pytest.raises(ChainClientError, match="Failed to sign transaction"):
            client.send_payment(TEST_RECIPIENT, "1")

    @pytest.mark.parametrize("amount", ["0", "-1", "abc"])
    def test_invalid_amount(self, client, amount):
        with pytest.raises(ChainClientError):
            client.send_payment(TEST_RECIPIENT, amount)

    def test_invalid_recipient(self, client, mock_w3):
        with pytest.raises(ChainClientError, match="Invalid recipient address format"):
            client.send_payment("alice.cro", "1")
        mock_w3.eth.send_raw_transaction.assert_not_called()


class TestCallContract:

    def test_requires_registered_abi(self, client):
        with pytest.raises(ChainClientError, match="No ABI registered"):
            client.call_contract(ROUTER, "execute")

    def test_unknown_method(self, routed_client):
        with pytest.raises(ChainClientError, match="Method withdraw not found"):
            routed_client.call_contract(ROUTER, "withdraw")

    def test_router_method(self, routed_client, mock_w3):
        contract = mock_w3.eth.contract.return_value
        fn = contract.functions.execute.return_value
        fn.estimate_gas.return_value = 200000
        fn.build_transaction.return_value = {"to": ROUTER, "data": "0xabcd"}

        receipt = routed_client.call_contract(ROUTER, "execute", ["0x01", "payment", ROUTER, b""])

        contract.functions.execute.assert_called_once_with("0x01", "payment", ROUTER, b"")
        assert receipt.tx_hash == "0x" + TX_HASH.hex()

    def test_registered_abi_with_value(self, client, mock_w3):
        vault = "0x3333333333333333333333333333333333333333"
        client.register_abi(vault, [{"type": "function", "name": "deposit", "inputs": []}])
        fn = mock_w3.eth.contract.return_value.functions.deposit.return_value
        fn.estimate_gas.return_value = 40000
        fn.build_transaction.return_value = {"to": vault}

        client.call_contract(vault, "deposit", value="0.25")
        assert fn.build_transaction.call_args[0][0]["value"] == ONE_ETHER // 4
