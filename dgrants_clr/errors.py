"""Exception taxonomy for donation preparation and matching prediction"""


class DGrantsError(Exception):
    """Base exception for all dgrants errors"""
    pass


class InvariantViolation(DGrantsError):
    """Donation ratios for a token sum to more than the fixed-point whole"""
    pass


class MissingQuote(DGrantsError):
    """No usable exchange rate is known for a token"""

    def __init__(self, token_address: str):
        self.token_address = token_address
        super().__init__(f"No exchange rate available for token {token_address}")


class QuoteError(DGrantsError):
    """Quote provider request failed; callers may retry"""
    pass


class MalformedPersistedState(DGrantsError):
    """Cached or persisted data failed shape validation"""
    pass


class DonationPreparationError(DGrantsError):
    """Donation inputs could not be built; shown to the user as is"""

    USER_MESSAGE = "could not prepare donation"

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"{self.USER_MESSAGE}: {cause}")
