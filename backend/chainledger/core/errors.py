"""Domain failures raised by the ledger services.

Each failure has a ``kind`` (its class name, e.g. ``InsufficientBalance``) and
belongs to one ``category``; the HTTP layer maps the category to a status
code. Services raise these and never build HTTP responses themselves.
"""
from typing import Optional


class LedgerError(Exception):
    category = "Internal"
    status_code = 500
    default_message = "Internal ledger error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"kind": self.kind, "category": self.category, "message": self.message}


class Internal(LedgerError):
    pass


# --- NotFound ---

class NotFound(LedgerError):
    category = "NotFound"
    status_code = 404
    default_message = "Resource not found"

class TokenNotFound(NotFound):
    default_message = "Token not found"

class WalletNotFound(NotFound):
    default_message = "Wallet not found"

class NFTNotFound(NotFound):
    default_message = "NFT not found"

class ListingNotFound(NotFound):
    default_message = "Listing not found or no longer active"

class NetworkNotFound(NotFound):
    default_message = "Network not found"

class ContractNotFound(NotFound):
    default_message = "Smart contract not found"

class TransactionNotFound(NotFound):
    default_message = "Transaction not found"

class EventNotFound(NotFound):
    default_message = "Event not found"


# --- PreconditionFailed ---

class PreconditionFailed(LedgerError):
    category = "PreconditionFailed"
    status_code = 400
    default_message = "Precondition failed"

class NotMintable(PreconditionFailed):
    default_message = "Token is not mintable"

class NotBurnable(PreconditionFailed):
    default_message = "Token is not burnable"

class NotOwner(PreconditionFailed):
    status_code = 403
    default_message = "You don't own this NFT"

class ListingNotActive(PreconditionFailed):
    default_message = "Listing is no longer active"

class ListingExpired(PreconditionFailed):
    status_code = 410
    default_message = "Listing has expired"


# --- InvalidInput ---

class InvalidInput(LedgerError):
    category = "InvalidInput"
    status_code = 400
    default_message = "Invalid input"

class InvalidAmount(InvalidInput):
    default_message = "Amount must be a positive integer"

class InvalidPrice(InvalidInput):
    default_message = "Price must be a positive integer"


# --- InsufficientBalance ---

class InsufficientBalance(LedgerError):
    category = "InsufficientBalance"
    status_code = 400
    default_message = "Insufficient balance"


# --- Conflict ---

class Conflict(LedgerError):
    category = "Conflict"
    status_code = 409
    default_message = "Resource conflict"

class DuplicateActiveListing(Conflict):
    default_message = "An active listing already exists for this NFT"
