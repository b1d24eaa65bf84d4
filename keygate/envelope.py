"""
Encrypted envelopes for protected responses.

An envelope is a base64-encoded string with the layout::

    salt (8 bytes, derived mode only) | nonce (12 bytes) | ciphertext | tag

The AES-256-GCM key is derived from the caller's long-lived key with
PBKDF2-HMAC-SHA256 and a fresh random salt (``derived`` mode). Older clients
used the long-lived key directly, zero-padded or truncated to 32 bytes
(``direct`` mode). Nothing in the envelope says which mode produced it, so the
mode must be configured explicitly; ``direct`` is kept for compatibility only.
"""

import binascii
import json
import os
from base64 import b64decode, b64encode
from enum import Enum
from typing import Any, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import DecryptionFailed, EncryptionFailed

SALT_SIZE = 8
NONCE_SIZE = 12
TAG_SIZE = 16
KEY_SIZE = 32
PBKDF2_ITERATIONS = 4096


class EnvelopeMode(Enum):
    """How the AES key is obtained from the key material."""

    DERIVED = 'derived'
    DIRECT = 'direct'


KeyMaterial = Union[str, bytes]


def _as_bytes(key_material: KeyMaterial) -> bytes:
    if isinstance(key_material, str):
        return key_material.encode('utf-8')
    return key_material


def derive_key(key_material: KeyMaterial, salt: bytes) -> bytes:
    """Derive a 256-bit AES key from ``key_material`` and ``salt``."""
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_SIZE, salt=salt,
                     iterations=PBKDF2_ITERATIONS)
    return kdf.derive(_as_bytes(key_material))


def direct_key(key_material: KeyMaterial) -> bytes:
    """Zero-pad or truncate ``key_material`` to 256 bits."""
    return _as_bytes(key_material)[:KEY_SIZE].ljust(KEY_SIZE, b'\x00')


def encrypt(plaintext: bytes, key_material: KeyMaterial,
            mode: EnvelopeMode = EnvelopeMode.DERIVED) -> str:
    """
    Seal ``plaintext`` in an envelope.

    Parameters
    ----------
    plaintext : bytes
    key_material : str or bytes
        The long-lived key of the recipient.
    mode : :class:`EnvelopeMode`

    Returns
    -------
    str
        The base64-encoded envelope.

    Raises
    ------
    :class:`EncryptionFailed`

    """
    try:
        if mode is EnvelopeMode.DERIVED:
            salt = os.urandom(SALT_SIZE)
            key = derive_key(key_material, salt)
        else:
            salt = b''
            key = direct_key(key_material)
        nonce = os.urandom(NONCE_SIZE)
        sealed = AESGCM(key).encrypt(nonce, plaintext, None)
    except (TypeError, ValueError) as e:
        raise EncryptionFailed('Could not seal payload') from e
    return b64encode(salt + nonce + sealed).decode('ascii')


def decrypt(envelope: str, key_material: KeyMaterial,
            mode: EnvelopeMode = EnvelopeMode.DERIVED) -> bytes:
    """
    Open an envelope produced by :func:`encrypt`.

    Raises
    ------
    :class:`DecryptionFailed`
        Raised if the envelope is not valid base64, is truncated, or fails
        authentication (wrong key, or tampered with).

    """
    try:
        raw = b64decode(envelope, validate=True)
    except (binascii.Error, TypeError, ValueError) as e:
        raise DecryptionFailed('Envelope is not valid base64') from e

    salt_size = SALT_SIZE if mode is EnvelopeMode.DERIVED else 0
    if len(raw) < salt_size + NONCE_SIZE + TAG_SIZE:
        raise DecryptionFailed('Envelope is truncated')

    salt = raw[:salt_size]
    nonce = raw[salt_size:salt_size + NONCE_SIZE]
    sealed = raw[salt_size + NONCE_SIZE:]
    if mode is EnvelopeMode.DERIVED:
        key = derive_key(key_material, salt)
    else:
        key = direct_key(key_material)
    try:
        return AESGCM(key).decrypt(nonce, sealed, None)
    except InvalidTag as e:
        raise DecryptionFailed('Envelope failed authentication') from e


def seal(payload: Any, key_material: KeyMaterial,
         mode: EnvelopeMode = EnvelopeMode.DERIVED) -> str:
    """Serialize ``payload`` as JSON and seal it in an envelope."""
    try:
        plaintext = json.dumps(payload, ensure_ascii=False,
                               separators=(',', ':')).encode('utf-8')
    except (TypeError, ValueError) as e:
        raise EncryptionFailed('Could not serialize payload') from e
    return encrypt(plaintext, key_material, mode)


def unseal(envelope: str, key_material: KeyMaterial,
           mode: EnvelopeMode = EnvelopeMode.DERIVED) -> Any:
    """Open an envelope produced by :func:`seal`."""
    plaintext = decrypt(envelope, key_material, mode)
    try:
        return json.loads(plaintext.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as e:
        raise DecryptionFailed('Envelope does not contain JSON') from e
