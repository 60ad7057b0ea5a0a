"""
src/core/errors.py — Quote delivery error taxonomy

Every failure the send-quote pipeline can report maps to exactly one of these.
The route layer turns them into {"error": message} with the status code below.
Messages are safe to show to the caller; underlying exception text is logged,
not returned.

    InvalidRequest     400   malformed input (missing quoteId)
    Unauthenticated    401   missing or unresolvable credential
    Forbidden          403   authenticated but not an admin
    NotFound           404   quote identifier does not resolve
    DependencyFailure  500   store / renderer / mail provider malfunction
"""


class QuoteDeliveryError(Exception):
    status_code = 500
    default_message = "Failed to send quote."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class InvalidRequest(QuoteDeliveryError):
    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(QuoteDeliveryError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(QuoteDeliveryError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(QuoteDeliveryError):
    status_code = 404
    default_message = "Quote not found"


class DependencyFailure(QuoteDeliveryError):
    status_code = 500
