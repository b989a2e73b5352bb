"""
Application state - The one object threaded through the wallet.

Everything that used to be ambient (session, network, stored tokens,
preferences) hangs off an AppState that callers pass explicitly.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from models import AppSettings, AssetDescriptor, Preferences, WalletStore
from networks import NetworkConfig, NetworkLayer, Web3NetworkLayer
from wallet import EncryptedSecret, KdfParams, PhraseGenerator, RecoveryPhrase, SecretStore, WalletSession
from .executor import TransactionExecutor
from .fees import FeeEstimator
from .portfolio import AlchemyPriceOracle, Portfolio, PortfolioSnapshot, PriceOracle
from .tokens import TokenValidator

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """Wiring for one running wallet instance."""
    settings: AppSettings
    store: WalletStore
    network: NetworkLayer
    session: WalletSession
    oracle: Optional[PriceOracle] = None
    phrases: PhraseGenerator = field(default_factory=PhraseGenerator)

    def __post_init__(self):
        self.portfolio = Portfolio(self.network, self.native_asset, self.oracle)

    @classmethod
    def build(cls, settings: AppSettings, store_path: Path,
              network: Optional[NetworkLayer] = None,
              oracle: Optional[PriceOracle] = None) -> "AppState":
        """Assemble state from settings. The session always starts locked."""
        store = WalletStore(store_path)
        if network is None:
            network = Web3NetworkLayer(
                settings.network,
                rpc_url=settings.rpc_url or None,
                receipt_timeout=settings.receipt_timeout,
            )
        if oracle is None and settings.prices_api_key:
            oracle = AlchemyPriceOracle(settings.prices_api_url, settings.prices_api_key)

        secret_store = SecretStore(KdfParams(
            time_cost=settings.kdf_time_cost,
            memory_cost=settings.kdf_memory_cost,
            parallelism=settings.kdf_parallelism,
        ))
        phrases = PhraseGenerator()
        session = WalletSession(store.get_encrypted_secret(), secret_store, phrases)
        return cls(settings=settings, store=store, network=network,
                   session=session, oracle=oracle, phrases=phrases)

    @property
    def network_config(self) -> NetworkConfig:
        return self.settings.network

    @property
    def native_asset(self) -> AssetDescriptor:
        return AssetDescriptor.native(self.settings.network)

    @property
    def user_tokens(self) -> list[AssetDescriptor]:
        return self.store.get_user_tokens()

    @property
    def assets(self) -> list[AssetDescriptor]:
        return [self.native_asset] + self.user_tokens

    def setup_wallet(self, phrase: RecoveryPhrase | str, password: str) -> EncryptedSecret:
        """Create or import: seal, persist, and leave the session unlocked."""
        secret = self.session.setup(phrase, password)
        self.store.set_encrypted_secret(secret.to_string())
        return secret

    def save_preferences(self, preferences: Preferences) -> None:
        self.store.set_preferences(preferences)

    async def add_token(self, address: str) -> AssetDescriptor:
        """Probe a contract and add it to the user's tokens."""
        descriptor = await TokenValidator(self.network).probe(address, self.user_tokens)
        self.store.add_user_token(descriptor)
        return descriptor

    async def refresh(self) -> PortfolioSnapshot:
        """Idempotent balance and price refresh for the unlocked address."""
        if self.session.is_locked:
            return self.portfolio.snapshot
        return await self.portfolio.refresh(self.session.address, self.user_tokens)

    def new_send_flow(self, on_change=None) -> TransactionExecutor:
        estimator = FeeEstimator(self.network, self.network_config.native_decimals)
        return TransactionExecutor(self.session, self.network, estimator, on_change=on_change)
