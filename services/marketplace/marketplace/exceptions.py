"""Shared domain exception classes for the marketplace service.

These are raised by service-layer code and caught by controllers
to map to appropriate HTTP responses.
"""


class CourseNotFoundError(Exception):
    """Raised when a course cannot be found by ID."""

    def __init__(self, identifier: str = ""):
        self.identifier = identifier
        super().__init__(f"Course not found: {identifier}")


class LectureNotFoundError(Exception):
    def __init__(self, lecture_id: str = ""):
        self.lecture_id = lecture_id
        super().__init__(f"Lecture not found: {lecture_id}")


class UserNotFoundError(Exception):
    def __init__(self, user_id: str = ""):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class CourseNotPublishedError(Exception):
    """Raised when checkout is attempted on a non-PUBLISHED course."""


class AlreadyEnrolledError(Exception):
    """Raised when user tries to buy a course they are already enrolled in."""


class NotEnrolledError(Exception):
    """Raised when an operation requires an enrollment that does not exist."""


class PaymentGatewayError(Exception):
    """Raised when a Stripe API call fails (network, auth, invalid request)."""


class InvalidWebhookSignatureError(Exception):
    """Raised when a webhook body does not verify against the signing secret."""


class InvalidResetTokenError(Exception):
    """Raised when a password reset token is unknown, expired or already used."""
