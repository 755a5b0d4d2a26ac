"""Error taxonomy shared by the ledger services.

Routes translate these into HTTP errors. Expected no-op outcomes (daily cap
reached, day already settled, nothing to distribute) are returned as result
dicts instead of raised.
"""


class LedgerError(Exception):
    """Base class for caller-visible ledger errors. No state was changed."""
    pass


class ValidationError(LedgerError):
    """Malformed input: unknown category, bad payment details, below minimum."""
    pass


class PolicyViolation(LedgerError):
    """Well-formed request refused by a business rule."""
    pass


class NotFound(LedgerError):
    pass
