"""
Tests for services.executor - The confirm -> send -> settle state machine.

Covers:
  - review: validation, fee quote, insufficient funds, estimation failure
  - cancel / close
  - send: happy native and token paths, submission failure, confirmation
    failure, revert, the single signing slot
"""

import asyncio
from dataclasses import replace
from decimal import Decimal

import pytest
import rlp
from eth_account import Account
from web3 import Web3

from errors import (
    EstimationFailed,
    FlowStateError,
    InsufficientFunds,
    InvalidAmount,
    InvalidRecipient,
    SessionBusy,
    SubmissionFailed,
)
from models import TransactionRequest
from networks import TRANSFER_SELECTOR
from services import AmountEntry, SendStep, TransactionExecutor
from conftest import RECIPIENT, TEST_ADDRESS


def _request(asset, amount="0.5", recipient=RECIPIENT):
    return TransactionRequest(recipient, asset, Decimal(amount), Decimal(0))


def _decode_legacy(raw: bytes) -> dict:
    nonce, gas_price, gas, to, value, data, v, r, s = rlp.decode(raw)
    as_int = lambda b: int.from_bytes(b, "big")
    return {
        "nonce": as_int(nonce),
        "gasPrice": as_int(gas_price),
        "gas": as_int(gas),
        "to": Web3.to_checksum_address(to),
        "value": as_int(value),
        "data": bytes(data),
        "v": as_int(v),
    }


@pytest.fixture
def flow(session, network):
    return TransactionExecutor(session, network)


@pytest.mark.asyncio
class TestReview:

    async def test_enters_confirm_with_quote(self, flow, eth):
        quote = await flow.review(_request(eth), Decimal("1.0"))
        assert flow.step == SendStep.CONFIRM
        assert flow.quote is quote
        assert flow.balance == Decimal("1.0")
        assert flow.request.recipient == Web3.to_checksum_address(RECIPIENT)

    async def test_amount_over_balance(self, flow, eth, network):
        entry = AmountEntry(eth, price=Decimal("2000"))
        for key in "2.0":
            entry.press(key)
        with pytest.raises(InsufficientFunds):
            await flow.review(entry.to_request(RECIPIENT), Decimal("1.0"))
        assert flow.step == SendStep.INPUT
        assert isinstance(flow.error, InsufficientFunds)
        assert network.estimated == []

    @pytest.mark.parametrize("recipient", ["", "0x1234", "not an address", "0x" + "zz" * 20])
    async def test_invalid_recipient(self, flow, eth, recipient):
        with pytest.raises(InvalidRecipient):
            await flow.review(_request(eth, recipient=recipient), Decimal("1.0"))
        assert flow.step == SendStep.INPUT

    async def test_bad_checksum_recipient(self, flow, eth):
        mangled = "0x" + Web3.to_checksum_address(TEST_ADDRESS)[2:].swapcase()
        with pytest.raises(InvalidRecipient):
            await flow.review(_request(eth, recipient=mangled), Decimal("1.0"))

    @pytest.mark.parametrize("amount", ["0", "-1", "0.0000000000000000001"])
    async def test_invalid_amount(self, flow, eth, amount):
        with pytest.raises(InvalidAmount):
            await flow.review(_request(eth, amount), Decimal("1.0"))
        assert flow.step == SendStep.INPUT

    async def test_estimation_failure_stays_in_input(self, flow, eth, network):
        network.estimate_error = ConnectionError("node down")
        with pytest.raises(EstimationFailed):
            await flow.review(_request(eth), Decimal("1.0"))
        assert flow.step == SendStep.INPUT
        assert flow.quote is None
        assert isinstance(flow.error, EstimationFailed)

    async def test_locked_session(self, flow, eth, session):
        session.lock()
        with pytest.raises(FlowStateError):
            await flow.review(_request(eth), Decimal("1.0"))

    async def test_review_twice_not_allowed(self, flow, eth):
        await flow.review(_request(eth), Decimal("1.0"))
        with pytest.raises(FlowStateError):
            await flow.review(_request(eth), Decimal("1.0"))


@pytest.mark.asyncio
class TestCancelClose:

    async def test_cancel_discards_quote(self, flow, eth):
        await flow.review(_request(eth), Decimal("1.0"))
        flow.cancel()
        assert flow.step == SendStep.INPUT
        assert flow.quote is None
        with pytest.raises(FlowStateError):
            await flow.send()

    async def test_cancel_only_from_confirm(self, flow):
        with pytest.raises(FlowStateError):
            flow.cancel()

    async def test_close_ends_flow(self, flow, eth):
        flow.close()
        assert flow.closed
        with pytest.raises(FlowStateError):
            await flow.review(_request(eth), Decimal("1.0"))


@pytest.mark.asyncio
class TestSend:

    async def test_native_happy_path(self, flow, eth, network, session):
        steps = []
        flow.on_change = lambda f: steps.append(f.step)
        quote = await flow.review(_request(eth), Decimal("1.0"))

        outcome = await flow.send()
        assert outcome.is_confirmed
        assert outcome.block_number == network.block_number
        assert outcome.to_dict()["status"] == "confirmed"
        assert flow.step == SendStep.SUCCESS
        assert steps == [SendStep.CONFIRM, SendStep.SENDING, SendStep.SENDING, SendStep.SUCCESS]

        raw = network.sent[0]
        assert outcome.tx_hash == Web3.to_hex(Web3.keccak(raw))
        tx = _decode_legacy(raw)
        assert tx["gas"] == quote.gas_limit
        assert tx["gasPrice"] == quote.gas_price
        assert tx["to"] == Web3.to_checksum_address(RECIPIENT)
        assert tx["value"] == 5 * 10 ** 17
        assert tx["v"] in (network.chain_id * 2 + 35, network.chain_id * 2 + 36)
        assert Account.recover_transaction(raw) == session.address

    async def test_token_happy_path(self, flow, token, network):
        network.gas_estimate = 52000
        await flow.review(_request(token, "1.5"), Decimal("10"))
        outcome = await flow.send()
        assert outcome.is_confirmed

        tx = _decode_legacy(network.sent[0])
        assert tx["to"] == token.address
        assert tx["value"] == 0
        assert tx["gas"] == 52000
        assert tx["data"][:4] == TRANSFER_SELECTOR

    async def test_uses_pending_nonce(self, flow, eth, network):
        network.nonce = 7
        await flow.review(_request(eth), Decimal("1.0"))
        await flow.send()
        assert _decode_legacy(network.sent[0])["nonce"] == 7

    async def test_hash_visible_while_sending(self, flow, eth):
        seen = []

        def on_change(f):
            if f.step == SendStep.SENDING and f.tx_hash:
                seen.append(f.outcome.status)

        flow.on_change = on_change
        await flow.review(_request(eth), Decimal("1.0"))
        await flow.send()
        assert seen == ["pending"]

    async def test_submission_failure_has_no_hash(self, session, network, eth):
        network.send_error = ConnectionError("rejected")
        flow = TransactionExecutor(session, network)
        await flow.review(_request(eth), Decimal("1.0"))

        outcome = await flow.send()
        assert flow.step == SendStep.ERROR
        assert outcome.is_failed
        assert outcome.tx_hash is None
        assert isinstance(flow.error, SubmissionFailed)
        assert not session.busy

        # No automatic resubmission
        with pytest.raises(FlowStateError):
            await flow.send()
        assert network.sent == []

        # Retrying is a fresh cycle
        network.send_error = None
        retry = TransactionExecutor(session, network)
        await retry.review(_request(eth), Decimal("1.0"))
        assert (await retry.send()).is_confirmed
        assert len(network.sent) == 1

    async def test_confirmation_failure_keeps_hash(self, flow, eth, network):
        network.receipt_error = asyncio.TimeoutError()
        await flow.review(_request(eth), Decimal("1.0"))
        outcome = await flow.send()
        assert flow.step == SendStep.ERROR
        assert outcome.tx_hash is not None
        assert "could not be confirmed" in outcome.reason

    async def test_reverted(self, flow, eth, network):
        network.receipt_status = 0
        await flow.review(_request(eth), Decimal("1.0"))
        outcome = await flow.send()
        assert flow.step == SendStep.ERROR
        assert outcome.reason == "Transaction reverted."
        assert outcome.tx_hash is not None

    async def test_quote_must_match_request(self, flow, eth, network):
        await flow.review(_request(eth), Decimal("1.0"))
        flow.request = replace(flow.request, amount=Decimal("0.6"))
        with pytest.raises(FlowStateError):
            await flow.send()
        assert flow.step == SendStep.CONFIRM
        assert network.sent == []

    async def test_locked_before_send(self, flow, eth, session, network):
        await flow.review(_request(eth), Decimal("1.0"))
        session.lock()
        with pytest.raises(FlowStateError):
            await flow.send()
        assert network.sent == []

    async def test_single_signing_slot(self, session, network, eth):
        network.receipt_gate = asyncio.Event()
        submitted = asyncio.Event()

        def on_change(f):
            if f.outcome is not None and f.outcome.is_pending:
                submitted.set()

        first = TransactionExecutor(session, network, on_change=on_change)
        second = TransactionExecutor(session, network)
        await first.review(_request(eth, "0.1"), Decimal("1.0"))
        await second.review(_request(eth, "0.2"), Decimal("1.0"))

        task = asyncio.create_task(first.send())
        await asyncio.wait_for(submitted.wait(), timeout=5)
        assert first.step == SendStep.SENDING

        with pytest.raises(SessionBusy):
            await second.send()
        assert second.step == SendStep.CONFIRM

        with pytest.raises(SessionBusy):
            session.lock()
        with pytest.raises(FlowStateError):
            first.close()

        network.receipt_gate.set()
        assert (await task).is_confirmed
        assert (await second.send()).is_confirmed
        assert len(network.sent) == 2
