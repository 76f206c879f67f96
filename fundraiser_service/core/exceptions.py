"""
Typed failures for ledger operations.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer renders it with, so callers can branch on the type instead of a flag.
"""


class LedgerError(Exception):
    """Base class for all ledger failures"""
    code = "ledger_error"
    status_code = 400

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class NotFound(LedgerError):
    """Requested row does not exist"""
    code = "not_found"
    status_code = 404


class ProgressNotFound(NotFound):
    """No fundraising progress for this user"""


class LinkNotFound(NotFound):
    """Affiliate link not found"""


class DonationNotFound(NotFound):
    """Donation not found"""


class InvalidAmount(LedgerError):
    """Amount must be a positive number"""
    code = "invalid_amount"
    status_code = 400


class LinkInactive(LedgerError):
    """This fundraising link is no longer available"""
    code = "link_inactive"
    status_code = 404


class Unauthorized(LedgerError):
    """Caller does not own this resource"""
    code = "unauthorized"
    status_code = 403


class InvalidLinkUpdate(LedgerError):
    """Only title, description, target_amount and is_active can be updated"""
    code = "invalid_update"
    status_code = 400


class InvalidStatusTransition(LedgerError):
    """Donation status can only move from pending to completed or failed"""
    code = "invalid_status_transition"
    status_code = 409


class AlreadyExists(LedgerError):
    """Row already exists"""
    code = "already_exists"
    status_code = 409


class TransientIOError(LedgerError):
    """Service temporarily unavailable, please retry"""
    code = "transient_io_error"
    status_code = 503
