"""
Application-integrity signatures.

Legitimate client builds sign each request to a protected route with a secret
that is shipped with the client. The signature is the hex-encoded SHA-256
digest of the request path, the current unix timestamp, and the secret, joined
with commas::

    sha256("/api/v1/gateway,1700000000,<secret>")

The timestamp and signature are passed in the ``X-Timestamp`` and
``X-Signature`` headers. A signature only proves that the request came from a
client that knows the secret; it says nothing about the session, which is
checked separately (and afterwards).
"""

import hashlib
import hmac
import time
from typing import Optional

from .exceptions import InvalidSignature, MissingIntegrityHeaders, \
    StaleTimestamp

TIMESTAMP_HEADER = 'X-Timestamp'
SIGNATURE_HEADER = 'X-Signature'


def sign(path: str, timestamp: str, secret: str) -> str:
    """Generate the integrity signature for a request."""
    payload = f'{path},{timestamp},{secret}'
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()


def verify(path: str, timestamp: Optional[str], signature: Optional[str],
           secret: str, skew: int = 5, now: Optional[float] = None) -> None:
    """
    Verify the integrity signature on a request.

    Parameters
    ----------
    path : str
        Path of the request URL, e.g. ``/api/v1/gateway``.
    timestamp : str
        Value of the ``X-Timestamp`` header (unix seconds).
    signature : str
        Value of the ``X-Signature`` header.
    secret : str
        The shared application-integrity secret.
    skew : int
        Maximum number of seconds between ``timestamp`` and server time, in
        either direction.
    now : float
        Server time. Defaults to the current time.

    Raises
    ------
    :class:`MissingIntegrityHeaders`
        Raised if either the timestamp or the signature is missing.
    :class:`StaleTimestamp`
        Raised if the timestamp is not an integer, or falls outside of the
        allowed window.
    :class:`InvalidSignature`
        Raised if the signature does not match.

    """
    if not timestamp or not signature:
        raise MissingIntegrityHeaders('Missing required integrity headers')

    try:
        issued = int(timestamp)
    except ValueError as e:
        raise StaleTimestamp('Invalid timestamp format') from e

    if now is None:
        now = time.time()
    if abs(int(now) - issued) > skew:
        raise StaleTimestamp('Timestamp is out of date')

    expected = sign(path, timestamp, secret)
    if not hmac.compare_digest(expected.encode('ascii'),
                               signature.lower().encode('utf-8')):
        raise InvalidSignature('Invalid signature')
