"""Error taxonomy for referral and commission operations.

Every error is a request-local validation failure surfaced to the caller as-is.
Each class carries the HTTP status and title the API layer reports for it.
"""


class ReferEarnError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400
    title: str = "Bad Request"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.title)
        self.detail = detail or self.title


class DuplicateUsername(ReferEarnError):
    status_code = 409
    title = "Duplicate Username"

    def __init__(self, username: str):
        super().__init__(f"Username '{username}' already exists")
        self.username = username


class InvalidReferralCode(ReferEarnError):
    status_code = 400
    title = "Invalid Referral Code"

    def __init__(self, referral_code: str):
        super().__init__(f"No user owns referral code '{referral_code}'")
        self.referral_code = referral_code


class ReferralLimitReached(ReferEarnError):
    status_code = 409
    title = "Referral Limit Reached"

    def __init__(self, referral_code: str, limit: int):
        super().__init__(
            f"The owner of referral code '{referral_code}' already has {limit} referrals"
        )
        self.referral_code = referral_code
        self.limit = limit


class InvalidCredentials(ReferEarnError):
    status_code = 401
    title = "Invalid Credentials"

    def __init__(self):
        super().__init__("Invalid username or password")


class UserNotFound(ReferEarnError):
    status_code = 404
    title = "User Not Found"

    def __init__(self, user_id):
        super().__init__(f"User {user_id} does not exist")
        self.user_id = user_id


class InvalidAmount(ReferEarnError):
    status_code = 400
    title = "Invalid Amount"

    def __init__(self, amount):
        super().__init__(
            f"Transaction amount must be a positive number of whole cents, got {amount!r}"
        )
        self.amount = amount


class ReferralCodeTaken(ReferEarnError):
    """Raised by persistence when a generated code collides at insert time.

    Retried by the graph manager; only surfaces once retries are exhausted.
    """

    status_code = 500
    title = "Referral Code Collision"

    def __init__(self, referral_code: str):
        super().__init__(f"Referral code '{referral_code}' is already assigned")
        self.referral_code = referral_code
