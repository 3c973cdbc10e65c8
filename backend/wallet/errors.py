"""Error taxonomy for share issuance and disclosure policy validation.

Verification outcomes are not errors; see ``wallet.verification.engine``.
"""


class ShareError(Exception):
    """Base class for failures surfaced to the caller that issues a share."""

    code = "share_error"
    status_code = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__


class EmptyDisclosureError(ShareError):
    """The disclosure policy would not share any field."""

    code = "empty_disclosure"
    status_code = 422


class InvalidPolicyError(ShareError):
    """Unknown preset or field visibility value."""

    code = "invalid_policy"
    status_code = 422


class InvalidFieldNameError(ShareError):
    """A field name contains unsafe characters or markup."""

    code = "invalid_field_name"
    status_code = 422


class InvalidExpiryError(ShareError):
    """The share expiry is in the past or beyond the allowed horizon."""

    code = "invalid_expiry"
    status_code = 422


class InvalidViewLimitError(ShareError):
    """The share view limit is outside the allowed range."""

    code = "invalid_view_limit"
    status_code = 422


class WeakAccessCodeError(ShareError):
    """The access code is too short."""

    code = "weak_access_code"
    status_code = 422


class NotFoundError(ShareError):
    """Resource not found."""

    code = "not_found"
    status_code = 404


class RateLimitedError(ShareError):
    """Too many share requests. Please try again later."""

    code = "rate_limited"
    status_code = 429
