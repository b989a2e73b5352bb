"""
Wallet Session - Lock/unlock state for the one signing key.

States:
- Locked: no key in memory
- Unlocked: key and address held until lock() or restart

A session always starts Locked. Sends hold the signing slot; while it is
held the key cannot be discarded.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from eth_account.datastructures import SignedTransaction

from errors import FlowStateError, InvalidPassword, SessionBusy, WeakPassword
from .crypto import EncryptedSecret, SecretStore, SigningKey
from .phrase import PhraseGenerator, RecoveryPhrase

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def check_password(password: str, confirmation: Optional[str] = None) -> None:
    """
    Enforce the setup password policy.

    Raises:
        WeakPassword: If too short or the confirmation does not match.
    """
    if confirmation is not None and password != confirmation:
        raise WeakPassword("Passwords do not match")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise WeakPassword()


class WalletSession:
    """
    Holds the decrypted signing key while unlocked.

    Usage:
        session = WalletSession(EncryptedSecret.from_string(blob))
        if session.unlock("my-password"):
            print(session.address)
        session.lock()
    """

    def __init__(self, encrypted_secret: Optional[EncryptedSecret | str] = None,
                 secret_store: Optional[SecretStore] = None,
                 phrases: Optional[PhraseGenerator] = None):
        if isinstance(encrypted_secret, str) and encrypted_secret:
            try:
                encrypted_secret = EncryptedSecret.from_string(encrypted_secret)
            except InvalidPassword:
                # Kept as text; unlock fails on it like a wrong password
                logger.warning("Stored wallet secret could not be parsed")
        self._encrypted = encrypted_secret or None
        self._secret_store = secret_store or SecretStore()
        self._phrases = phrases or PhraseGenerator()
        self._key: Optional[SigningKey] = None
        self._in_flight = False
        self._failed_unlocks = 0

    @property
    def is_locked(self) -> bool:
        return self._key is None

    @property
    def address(self) -> str:
        """Unlocked address, or empty string while locked."""
        return self._key.address if self._key else ""

    @property
    def encrypted_secret(self) -> Optional[EncryptedSecret | str]:
        return self._encrypted

    @property
    def has_secret(self) -> bool:
        return self._encrypted is not None

    @property
    def busy(self) -> bool:
        """True while a send holds the signing slot."""
        return self._in_flight

    # ============================================
    # Transitions
    # ============================================

    def unlock(self, password: str) -> bool:
        """Try to open the stored secret. Returns False on a bad password."""
        if self._encrypted is None:
            return False

        try:
            key = self._secret_store.open(self._encrypted, password)
        except InvalidPassword:
            self._failed_unlocks += 1
            logger.warning(f"Unlock failed (attempt {self._failed_unlocks})")
            return False

        if self._in_flight and self._key is not None:
            # Same secret; keep the key the in-flight send was signed with
            key.wipe()
        else:
            self._replace_key(key)
        self._failed_unlocks = 0
        logger.info(f"Wallet unlocked: {self.address}")
        return True

    def lock(self) -> None:
        """
        Discard the key.

        Raises:
            SessionBusy: If a send is in flight.
        """
        if self._in_flight:
            raise SessionBusy("Cannot lock while a transaction is being sent.")
        if self._key is not None:
            self._replace_key(None)
            logger.info("Wallet locked")

    def setup(self, phrase: RecoveryPhrase | str, password: str) -> EncryptedSecret:
        """
        Derive the key from a phrase, seal it and unlock with it.

        Returns the sealed secret for the caller to persist.
        """
        check_password(password)
        if self._in_flight:
            raise SessionBusy()

        key = self._phrases.derive(phrase)
        secret = self._secret_store.seal(key, password)

        self._encrypted = secret
        self._replace_key(key)
        self._failed_unlocks = 0
        logger.info(f"Wallet set up: {key.address}")
        return secret

    def _replace_key(self, key: Optional[SigningKey]) -> None:
        if self._key is not None and self._key is not key:
            self._key.wipe()
        self._key = key

    # ============================================
    # Signing
    # ============================================

    @contextmanager
    def signing_slot(self) -> Iterator[None]:
        """
        Single-slot guard around one sign-and-submit.

        Raises:
            SessionBusy: If another send already holds the slot.
        """
        if self._in_flight:
            raise SessionBusy()
        self._in_flight = True
        try:
            yield
        finally:
            self._in_flight = False

    def sign_transaction(self, tx: dict) -> SignedTransaction:
        """Sign a transaction dict with the session key."""
        if self._key is None:
            raise FlowStateError("Wallet is locked")
        return self._key.account().sign_transaction(tx)
