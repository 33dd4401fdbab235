# ssb_publish/core/errors.py
"""
Errors raised while publishing a feed message.

Every failure is a caller-input problem, so nothing here is retried.
"""


class PublishError(ValueError):
    """Base class for all publish failures."""


class InvalidPreviousMessage(PublishError):
    """Previous message bytes could not be decoded."""

    def __init__(self, reason: str, message_bytes: bytes):
        super().__init__(f"Previous message was invalid. Decoding failed with: {reason}")
        self.reason = reason
        self.message_bytes = message_bytes


class InvalidPublicKey(PublishError):
    def __init__(self, reason: str = "Invalid public key"):
        super().__init__(reason)


class InvalidSecretKey(PublishError):
    def __init__(self, reason: str = "Invalid secret key"):
        super().__init__(reason)


class PreviousMessageAuthorIsIncorrect(PublishError):
    def __init__(self, expected: str, found: str):
        super().__init__(
            f"Previous message author is not the same as the author public_key "
            f"(expected {expected}, previous message has {found})"
        )
        self.expected = expected
        self.found = found


class LegacyJsonEncodeFailed(PublishError):
    def __init__(self, reason: str = "Legacy Json encoding failed"):
        super().__init__(reason)
