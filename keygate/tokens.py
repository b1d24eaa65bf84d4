"""Functions for working with bearer session tokens."""

from datetime import datetime, timedelta
from typing import Optional

import jwt
from pytz import UTC

from . import domain
from .exceptions import ExpiredToken, InvalidToken


def mint(subject: str, duration: int,
         now: Optional[datetime] = None) -> domain.SessionClaims:
    """Create claims for a new session that lasts ``duration`` seconds."""
    issued_at = (now or datetime.now(tz=UTC)).replace(microsecond=0)
    return domain.SessionClaims(
        subject=subject,
        issued_at=issued_at,
        expires_at=issued_at + timedelta(seconds=duration)
    )


def encode(claims: domain.SessionClaims, secret: str) -> str:
    """Encode session claims as a signed JWT."""
    return jwt.encode({
        'sub': claims.subject,
        'iat': int(claims.issued_at.timestamp()),
        'exp': int(claims.expires_at.timestamp())
    }, secret, algorithm='HS256')


def decode(token: str, secret: str) -> domain.SessionClaims:
    """Decode a bearer token to access session information."""
    try:
        data: dict = jwt.decode(token, secret, algorithms=['HS256'],
                                options={'require': ['sub', 'iat', 'exp']})
    except jwt.exceptions.ExpiredSignatureError as e:
        raise ExpiredToken('Session has expired') from e
    except jwt.exceptions.InvalidTokenError as e:
        raise InvalidToken('Not a valid token') from e

    subject = data['sub']
    if not isinstance(subject, str) or not subject:
        raise InvalidToken('Token has no subject')
    return domain.SessionClaims(
        subject=subject,
        issued_at=datetime.fromtimestamp(data['iat'], tz=UTC),
        expires_at=datetime.fromtimestamp(data['exp'], tz=UTC)
    )
