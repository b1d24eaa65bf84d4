"""
Route guards for protected endpoints.

A protected route requires both a valid integrity signature and a valid bearer
session. The integrity check runs first, so that requests from unsigned
clients are rejected before any token is decoded. The decoded
:class:`.SessionClaims` are attached to the request as ``request.auth``.
"""

import logging
from functools import wraps
from typing import Any, Callable

from flask import current_app, request
from werkzeug.exceptions import Forbidden, Unauthorized

from . import integrity, tokens
from .exceptions import InvalidSignature, InvalidToken, \
    MissingIntegrityHeaders

logger = logging.getLogger(__name__)


def integrity_required(func: Callable[..., Any]) -> Callable[..., Any]:
    """Require a valid integrity signature on the request."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            integrity.verify(
                request.path,
                request.headers.get(integrity.TIMESTAMP_HEADER),
                request.headers.get(integrity.SIGNATURE_HEADER),
                current_app.config['APP_INTEGRITY_SECRET'],
                skew=int(current_app.config.get('INTEGRITY_SKEW', '5'))
            )
        except MissingIntegrityHeaders as e:
            logger.debug('Request to %s is not signed', request.path)
            raise Unauthorized('Missing required integrity headers') from e
        except InvalidSignature as e:
            logger.warning('Rejected signature on %s: %s', request.path, e)
            raise Forbidden('Invalid signature') from e
        return func(*args, **kwargs)
    return wrapper


def session_required(func: Callable[..., Any]) -> Callable[..., Any]:
    """Require a valid bearer session, and attach it to the request."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        auth_header = request.headers.get('Authorization', '')
        try:
            scheme, token = auth_header.split(None, 1)
        except ValueError as e:
            raise Unauthorized('Missing or malformed authorization') from e
        if scheme.lower() != 'bearer':
            raise Unauthorized('Missing or malformed authorization')
        try:
            request.auth = tokens.decode(token.strip(),
                                         current_app.config['JWT_SECRET'])
        except InvalidToken as e:
            logger.debug('Rejected bearer token: %s', e)
            raise Unauthorized('Invalid or expired token') from e
        return func(*args, **kwargs)
    return wrapper


def protected(func: Callable[..., Any]) -> Callable[..., Any]:
    """Require an integrity signature, and then a bearer session."""
    return integrity_required(session_required(func))
