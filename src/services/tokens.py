"""
Token Validator - Decide whether an address is a usable ERC-20 token.

Only the minimal interface is probed (name, symbol, decimals). Anything
that fails to answer is not a token.
"""

import asyncio
import logging
from typing import Iterable, Optional

from errors import AlreadyAdded, NotAToken
from models import AssetDescriptor
from networks import NetworkLayer, NetworkConfig, POPULAR_TOKENS, is_valid_address, to_checksum

logger = logging.getLogger(__name__)


class TokenValidator:
    """Probes contract addresses before they join the user's asset set."""

    def __init__(self, network: NetworkLayer):
        self.network = network

    async def probe(self, address: str,
                    existing: Iterable[AssetDescriptor] = ()) -> AssetDescriptor:
        """
        Validate a contract address and read its metadata.

        Raises:
            NotAToken: Malformed address, or the contract does not answer.
            AlreadyAdded: The token is already in the user's set.
        """
        if not is_valid_address(address):
            raise NotAToken("Invalid contract address.")
        checksum_address = to_checksum(address)

        for asset in existing:
            if asset.address and asset.address.strip().lower() == checksum_address.lower():
                raise AlreadyAdded()

        results = await asyncio.gather(
            self.network.call_token(checksum_address, "name"),
            self.network.call_token(checksum_address, "symbol"),
            self.network.call_token(checksum_address, "decimals"),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.info(f"Token probe failed for {checksum_address}: {failures[0]}")
            raise NotAToken() from failures[0]
        name, symbol, decimals = results

        if not isinstance(symbol, str) or not symbol.strip():
            raise NotAToken()
        if isinstance(decimals, bool) or not isinstance(decimals, int) or not 0 <= decimals <= 255:
            raise NotAToken()

        descriptor = AssetDescriptor.token(
            address=checksum_address,
            symbol=symbol.strip(),
            name=(name or symbol).strip() if isinstance(name, str) else symbol.strip(),
            decimals=decimals,
        )
        logger.info(f"Token validated: {descriptor.symbol} at {checksum_address}")
        return descriptor


def popular_token_address(symbol: str, network: NetworkConfig) -> Optional[str]:
    """Contract address of a popular token on a network, if it has one."""
    token = POPULAR_TOKENS.get(symbol.upper())
    if token is None:
        return None
    return token.addresses.get(network.chain_id)


def search_popular_tokens(term: str, network: NetworkConfig) -> list[tuple[str, str, str]]:
    """(symbol, name, address) for popular tokens matching a search term."""
    term = term.strip().lower()
    results = []
    for token in POPULAR_TOKENS.values():
        address = token.addresses.get(network.chain_id)
        if address is None:
            continue
        if not term or term in token.name.lower() or term in token.symbol.lower():
            results.append((token.symbol, token.name, address))
    return results
