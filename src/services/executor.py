"""
Transaction Executor - The confirm -> send -> settle state machine.

Steps:
- input: user is entering recipient and amount
- confirm: request validated, fee quote shown, waiting for the user
- sending: signed and broadcast, waiting for the network
- success: mined successfully
- error: submission or confirmation failed

Only confirm -> input is cancellable. Once sending starts it runs to a
terminal step. Nothing is ever retried automatically.
"""

import logging
from dataclasses import replace
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional

from errors import (
    EstimationFailed,
    FlowStateError,
    InsufficientFunds,
    InvalidAmount,
    InvalidRecipient,
    SubmissionFailed,
    WalletError,
)
from models import FeeQuote, TransactionOutcome, TransactionRequest
from networks import NetworkLayer, is_valid_address, to_checksum
from wallet import WalletSession
from .fees import FeeEstimator, build_transfer_tx

logger = logging.getLogger(__name__)


class SendStep(str, Enum):
    INPUT = "input"
    CONFIRM = "confirm"
    SENDING = "sending"
    SUCCESS = "success"
    ERROR = "error"


TERMINAL_STEPS = (SendStep.SUCCESS, SendStep.ERROR)


class TransactionExecutor:
    """
    Drives one send flow.

    Usage:
        executor = TransactionExecutor(session, network)
        quote = await executor.review(request, available_balance=balance)
        # show quote.fee_native to the user
        outcome = await executor.send()   # or executor.cancel()
        executor.close()
    """

    def __init__(self, session: WalletSession, network: NetworkLayer,
                 estimator: Optional[FeeEstimator] = None,
                 on_change: Optional[Callable[["TransactionExecutor"], None]] = None):
        self.session = session
        self.network = network
        self.estimator = estimator or FeeEstimator(network)
        self.on_change = on_change

        self.step = SendStep.INPUT
        self.request: Optional[TransactionRequest] = None
        self.quote: Optional[FeeQuote] = None
        self.balance: Optional[Decimal] = None   # Captured on entering confirm
        self.outcome: Optional[TransactionOutcome] = None
        self.error: Optional[WalletError] = None
        self.closed = False

    @property
    def tx_hash(self) -> Optional[str]:
        return self.outcome.tx_hash if self.outcome else None

    def _require(self, *steps: SendStep) -> None:
        if self.closed:
            raise FlowStateError("This send flow has been closed.")
        if self.step not in steps:
            raise FlowStateError(f"Not allowed while {self.step.value}.")

    def _set_step(self, step: SendStep) -> None:
        logger.info(f"Send flow: {self.step.value} -> {step.value}")
        self.step = step
        if self.on_change:
            self.on_change(self)

    def _reject(self, error: WalletError) -> None:
        """Stay in input and surface the error."""
        self.error = error
        logger.info(f"Send flow rejected: {error}")
        raise error

    # ============================================
    # Input -> Confirm
    # ============================================

    async def review(self, request: TransactionRequest, available_balance) -> FeeQuote:
        """
        Validate the request and fetch a fee quote.

        Raises:
            InvalidRecipient, InvalidAmount, InsufficientFunds, EstimationFailed:
                The flow stays in input.
        """
        self._require(SendStep.INPUT)
        self.error = None
        if self.session.is_locked:
            raise FlowStateError("Wallet is locked")

        if not is_valid_address(request.recipient):
            self._reject(InvalidRecipient())

        amount = request.amount
        if not amount.is_finite() or amount <= 0 or request.base_units <= 0:
            self._reject(InvalidAmount())

        balance = Decimal(str(available_balance))
        if amount > balance:
            self._reject(InsufficientFunds())

        request = replace(request, recipient=to_checksum(request.recipient))
        try:
            quote = await self.estimator.estimate(request, self.session.address)
        except EstimationFailed as e:
            self._reject(e)

        self.request = request
        self.quote = quote
        self.balance = balance
        self._set_step(SendStep.CONFIRM)
        return quote

    def cancel(self) -> None:
        """Back to input. The quote is discarded and never reused."""
        self._require(SendStep.CONFIRM)
        self.quote = None
        self.request = None
        self.balance = None
        self._set_step(SendStep.INPUT)

    # ============================================
    # Confirm -> Sending -> Success | Error
    # ============================================

    def _build_signable(self, nonce: int, chain_id: int) -> dict:
        tx = build_transfer_tx(self.request, self.session.address)
        tx.pop("from")
        tx.update({
            # Exactly the fee shown on the confirm screen
            "gas": self.quote.gas_limit,
            "gasPrice": self.quote.gas_price,
            "nonce": nonce,
            "chainId": chain_id,
        })
        return tx

    def _finish_error(self, error: WalletError, tx_hash: Optional[str],
                      cause: Optional[Exception] = None) -> TransactionOutcome:
        if cause is not None:
            logger.error(f"Send failed ({tx_hash or 'no hash'}): {cause}")
        self.error = error
        self.outcome = TransactionOutcome.failed(str(error), tx_hash=tx_hash)
        self._set_step(SendStep.ERROR)
        return self.outcome

    async def send(self) -> TransactionOutcome:
        """
        Sign, broadcast and wait for the network.

        Submission and confirmation failures end in the error step and are
        returned as a failed outcome rather than raised.

        Raises:
            SessionBusy: Another send holds the signing slot; still in confirm.
        """
        self._require(SendStep.CONFIRM)
        if self.session.is_locked:
            raise FlowStateError("Wallet is locked")
        if self.quote is None or not self.quote.matches(self.request):
            raise FlowStateError("Fee quote does not belong to this request.")
        if self.request.amount > self.balance:
            raise InsufficientFunds()

        with self.session.signing_slot():
            self._set_step(SendStep.SENDING)

            try:
                nonce = await self.network.get_transaction_count(self.session.address)
                chain_id = await self.network.get_chain_id()
                signed = self.session.sign_transaction(self._build_signable(nonce, chain_id))
                tx_hash = await self.network.send_raw_transaction(signed.raw_transaction)
            except Exception as e:
                return self._finish_error(SubmissionFailed(), None, e)

            # Visible before the network confirms
            self.outcome = TransactionOutcome.pending(tx_hash)
            logger.info(f"Transaction submitted: {tx_hash}")
            if self.on_change:
                self.on_change(self)

            try:
                receipt = await self.network.wait_for_receipt(tx_hash)
            except Exception as e:
                return self._finish_error(
                    SubmissionFailed("Transaction was sent but could not be confirmed."), tx_hash, e
                )

            if receipt.get("status") != 1:
                return self._finish_error(SubmissionFailed("Transaction reverted."), tx_hash)

            self.outcome = TransactionOutcome.confirmed(tx_hash, receipt.get("blockNumber"))
            self._set_step(SendStep.SUCCESS)
            return self.outcome

    def close(self) -> None:
        """End the flow and hand control back. Not allowed mid-send."""
        if self.step == SendStep.SENDING:
            raise FlowStateError("A transaction in progress cannot be cancelled.")
        self.quote = None
        self.closed = True
