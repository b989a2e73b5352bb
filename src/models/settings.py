"""
Application settings.

Loaded from settings.json in the app data directory, with a few
environment overrides for values that should not live in a file.
"""

import json
import logging
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional

from networks import DEFAULT_NETWORK, NETWORKS, NetworkConfig

logger = logging.getLogger(__name__)

ALCHEMY_PRICES_API_URL = "https://api.g.alchemy.com/prices/v1/tokens/by-symbol"

# Environment overrides
ENV_RPC_URL = "POCKI_RPC_URL"
ENV_PRICES_API_KEY = "POCKI_PRICES_API_KEY"
ENV_CHAIN_ID = "POCKI_CHAIN_ID"


@dataclass
class AppSettings:
    """User-tunable configuration."""
    chain_id: int = DEFAULT_NETWORK
    rpc_url: str = ""                 # Empty = network default
    prices_api_key: str = ""
    prices_api_url: str = ALCHEMY_PRICES_API_URL
    receipt_timeout: float = 180      # Seconds to wait for a tx to be mined
    log_retention_days: int = 7
    kdf_time_cost: int = 3
    kdf_memory_cost: int = 65536
    kdf_parallelism: int = 4

    @property
    def network(self) -> NetworkConfig:
        return NETWORKS[self.chain_id]

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AppSettings":
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        settings = cls(**{k: v for k, v in data.items() if k in known})
        if settings.chain_id not in NETWORKS:
            raise ValueError(f"Unsupported chain id: {settings.chain_id}")
        return settings

    @classmethod
    def load(cls, path: Path, environ: Optional[dict] = None) -> "AppSettings":
        """Load settings from disk, falling back to defaults on any problem."""
        environ = os.environ if environ is None else environ
        settings = cls()
        if path.exists():
            try:
                with open(path, 'r') as f:
                    settings = cls.from_dict(json.load(f))
            except (json.JSONDecodeError, TypeError, ValueError) as e:
                logger.warning(f"Failed to load settings: {e}")
                settings = cls()

        if environ.get(ENV_RPC_URL):
            settings.rpc_url = environ[ENV_RPC_URL]
        if environ.get(ENV_PRICES_API_KEY):
            settings.prices_api_key = environ[ENV_PRICES_API_KEY]
        if environ.get(ENV_CHAIN_ID):
            try:
                chain_id = int(environ[ENV_CHAIN_ID])
            except ValueError:
                chain_id = None
            if chain_id in NETWORKS:
                settings.chain_id = chain_id
            else:
                logger.warning(f"Ignoring unsupported {ENV_CHAIN_ID}={environ[ENV_CHAIN_ID]}")
        return settings

    def save(self, path: Path) -> None:
        """Save settings to disk."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
