"""
Fee Estimator - Gas quote for a pending transfer.

Native transfers are estimated as a plain value transfer; token transfers
as the encoded transfer() call against the token contract, sent from the
signer's address.
"""

import logging

from errors import EstimationFailed
from models import FeeQuote, TransactionRequest
from networks import NetworkLayer, encode_transfer_call, to_checksum

logger = logging.getLogger(__name__)


def build_transfer_tx(request: TransactionRequest, sender: str) -> dict:
    """The unsigned call a request turns into (no gas, nonce or chain yet)."""
    recipient = to_checksum(request.recipient)
    if request.asset.is_native:
        return {
            "from": to_checksum(sender),
            "to": recipient,
            "value": request.base_units,
        }
    return {
        "from": to_checksum(sender),
        "to": to_checksum(request.asset.address),
        "value": 0,
        "data": encode_transfer_call(recipient, request.base_units),
    }


class FeeEstimator:
    """Reduces gas price and gas limit to one FeeQuote."""

    def __init__(self, network: NetworkLayer, native_decimals: int = 18):
        self.network = network
        self.native_decimals = native_decimals

    async def estimate(self, request: TransactionRequest, signer_address: str) -> FeeQuote:
        """
        Quote the fee for exactly this request.

        Raises:
            EstimationFailed: If either network call fails or gas price is missing.
        """
        try:
            tx = build_transfer_tx(request, signer_address)
            gas_limit = await self.network.estimate_gas(tx)
            gas_price = await self.network.get_gas_price()
        except Exception as e:
            logger.warning(f"Fee estimation failed for {request.asset.symbol} transfer: {e}")
            raise EstimationFailed() from e

        if not gas_price:
            logger.warning("Fee estimation failed: node returned no gas price")
            raise EstimationFailed("Could not get gas price.")
        if not gas_limit or gas_limit <= 0:
            logger.warning(f"Fee estimation failed: bad gas limit {gas_limit}")
            raise EstimationFailed()

        quote = FeeQuote(
            gas_limit=int(gas_limit),
            gas_price=int(gas_price),
            request_key=request.key,
            native_decimals=self.native_decimals,
        )
        logger.info(f"Fee quote: {quote.gas_limit} gas @ {quote.gas_price} wei = {quote.fee_native}")
        return quote
