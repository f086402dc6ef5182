"""MyKeys exception hierarchy.

Transport-level failures (``SignatureError``, ``EnvelopeDecryptError``) are the
only errors allowed to turn into a rejecting HTTP status; everything raised
after a message has been authenticated is acknowledged to the platform.
"""
from typing import Optional


class MyKeysError(Exception):
    """Base class for every MyKeys error."""


class CryptoError(MyKeysError):
    """Stored ciphertext could not be authenticated or decrypted."""


class TransportError(MyKeysError):
    """Inbound callback failed transport authentication."""


class SignatureError(TransportError):
    """msg_signature does not match the recomputed signature."""


class EnvelopeDecryptError(TransportError):
    """Envelope is malformed, was encrypted with another key,
    or carries an unexpected receive id."""


class ValidationError(MyKeysError):
    """User input rejected inside a conversation flow.

    ``prompt`` is the plain-text re-prompt shown to the user.
    """

    def __init__(self, message: str, prompt: Optional[str] = None):
        super().__init__(message)
        self.prompt = prompt or message


class NotFoundError(MyKeysError):
    """No secret exists with the requested id."""

    def __init__(self, secret_id: int):
        super().__init__(f"Secret {secret_id} does not exist")
        self.secret_id = secret_id


class WeComAPIError(MyKeysError):
    """WeCom REST API answered with a non-zero errcode."""

    def __init__(self, errcode: int, errmsg: str):
        super().__init__(f"WeCom API error {errcode}: {errmsg}")
        self.errcode = errcode
        self.errmsg = errmsg
