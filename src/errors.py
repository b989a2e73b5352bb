"""
Wallet errors - The exception taxonomy shared by every layer.

Each error carries a short message that is safe to show to the user.
Library exceptions are chained as __cause__ but never surface directly.
"""


class WalletError(Exception):
    """Base class for all wallet errors."""

    default_message = "Something went wrong."

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return self.args[0]


class InvalidPhrase(WalletError):
    default_message = "Invalid recovery phrase. Please check the words and try again."


class InvalidPassword(WalletError):
    # Same message for a wrong password and a corrupted blob
    default_message = "Invalid password"


class WeakPassword(WalletError):
    default_message = "Password must be at least 8 characters long"


class InvalidRecipient(WalletError):
    default_message = "Invalid recipient address."


class InvalidAmount(WalletError):
    default_message = "Please enter a valid amount."


class InsufficientFunds(WalletError):
    default_message = "Insufficient funds."


class EstimationFailed(WalletError):
    default_message = "Could not estimate transaction fee."


class SubmissionFailed(WalletError):
    default_message = "Transaction failed. Please try again."


class NotAToken(WalletError):
    default_message = "Could not find token. Make sure it is on the active network."


class AlreadyAdded(WalletError):
    default_message = "Token has already been added."


class SessionBusy(WalletError):
    default_message = "A transaction is still being sent."


class FlowStateError(WalletError):
    default_message = "That action is not available right now."
