"""
Handles session issuance for long-lived keys.

Before a session is issued, the key is checked against the location of the
caller. The first use of a key binds it to the caller's province and city.
Later uses must come from the same province, and from at most two distinct
cities within it. Anything else bans the key, for good.

.. code-block:: text

   unbound ──first use──▶ bound (1 city) ──new city──▶ bound (2 cities)
      │                      │                            │
      │                      └──other province──┐         ├──other province──┐
      │                                         ▼         └──third city──────┤
      └───────────────── (banned keys stay banned) ◀─────────────────────────┘

All mutations go through the atomic operations of
:class:`keygate.services.credentials.CredentialStore`, so that concurrent
requests for the same key cannot bind more than two cities between them.
"""

import logging

from .. import status, tokens
from ..context import get_application_config
from ..domain import CityAppend, GeoLookupResult
from ..exceptions import CityLimitExceeded, GeolocationFailed, KeyBanned, \
    ProvinceMismatch, StoreUnavailable, UnknownKey
from ..services import credentials, geolocation
from ..services.credentials import CredentialStore
from .util import Response, redact

logger = logging.getLogger(__name__)

MISSING_KEY = {'reason': 'X-Token header is required'}
INVALID_KEY = {'reason': 'Invalid X-Token'}
BANNED = {'reason': 'This key has been banned due to security policy'
                    ' violations.'}
OTHER_PROVINCE = {'reason': 'Security risk: access from a different province'
                            ' is not allowed. This key has been banned.'}
TOO_MANY_CITIES = {'reason': 'Security risk: access from more than 2 cities'
                             ' is not allowed. This key has been banned.'}
NO_LOCATION = {'reason': 'IP geolocation failed'}
STORE_FAILED = {'reason': 'Could not verify key'}


def enforce_location_policy(store: CredentialStore, key_id: str,
                            location: GeoLookupResult) -> None:
    """
    Apply the province/city binding policy for a use of ``key_id``.

    Parameters
    ----------
    store : :class:`.CredentialStore`
    key_id : str
        The long-lived key presented by the caller.
    location : :class:`.GeoLookupResult`
        Where the caller is.

    Raises
    ------
    :class:`UnknownKey`
        Raised if the key does not exist.
    :class:`KeyBanned`
        Raised if the key was already banned.
    :class:`ProvinceMismatch`
        Raised if the key is bound to another province; the key is banned.
    :class:`CityLimitExceeded`
        Raised if the key is bound to two other cities; the key is banned.
    :class:`StoreUnavailable`

    """
    # A lost race to bind the key means the key is bound now; one more pass
    # evaluates the use against the winning binding.
    for _ in range(2):
        record = store.get(key_id)
        if record is None:
            raise UnknownKey('No such key')
        if record.banned:
            raise KeyBanned('Key is banned')

        if not record.bound:
            if store.set_location(key_id, location.province,
                                  [location.city]):
                logger.info('Key %s bound to province %s, city %s',
                            redact(key_id), location.province, location.city)
                return
            logger.debug('Key %s was bound concurrently', redact(key_id))
            continue

        if record.province != location.province:
            logger.warning('Key %s used from province %s, bound to %s;'
                           ' banning', redact(key_id), location.province,
                           record.province)
            store.ban(key_id)
            raise ProvinceMismatch('Key used from another province')

        outcome = store.append_city(key_id, location.city)
        if outcome is CityAppend.ADDED:
            logger.info('Key %s used from new city %s; bound cities were %s',
                        redact(key_id), location.city,
                        ','.join(record.cities))
        elif outcome is CityAppend.FULL:
            logger.warning('Key %s used from a third city %s, bound to %s;'
                           ' banning', redact(key_id), location.city,
                           ','.join(record.cities))
            raise CityLimitExceeded('Key used from too many cities')
        elif outcome is CityAppend.BANNED:
            raise KeyBanned('Key is banned')
        return
    raise StoreUnavailable(f'Key {redact(key_id)} changed during issuance')


def issue_session(key_id: str, client_ip: str) -> Response:
    """
    Issue a bearer session for a long-lived key.

    Parameters
    ----------
    key_id : str
        Value of the ``X-Token`` header.
    client_ip : str
        Address of the caller.

    Returns
    -------
    dict
        Contains the bearer ``token``, or the ``reason`` for failure.
    int
        An HTTP status code.
    dict
        Some extra headers to add to the response.

    """
    if not key_id:
        return MISSING_KEY, status.HTTP_401_UNAUTHORIZED, {}
    config = get_application_config()
    store = credentials.current_store()

    try:
        record = store.get(key_id)
        if record is None:
            return INVALID_KEY, status.HTTP_401_UNAUTHORIZED, {}
        if record.banned:
            logger.info('Key %s is banned; refusing', redact(key_id))
            return BANNED, status.HTTP_403_FORBIDDEN, {}

        location = geolocation.current_resolver().resolve(client_ip)
        if not location.province or not location.city:
            raise GeolocationFailed(f'No province or city for {client_ip}')
        enforce_location_policy(store, key_id, location)
    except UnknownKey:
        return INVALID_KEY, status.HTTP_401_UNAUTHORIZED, {}
    except ProvinceMismatch:
        return OTHER_PROVINCE, status.HTTP_403_FORBIDDEN, {}
    except CityLimitExceeded:
        return TOO_MANY_CITIES, status.HTTP_403_FORBIDDEN, {}
    except KeyBanned:
        return BANNED, status.HTTP_403_FORBIDDEN, {}
    except GeolocationFailed as e:
        logger.error('Could not locate %s: %s', client_ip, e)
        return NO_LOCATION, status.HTTP_500_INTERNAL_SERVER_ERROR, {}
    except StoreUnavailable as e:
        logger.error('Credential store failed: %s', e)
        return STORE_FAILED, status.HTTP_500_INTERNAL_SERVER_ERROR, {}

    claims = tokens.mint(key_id, int(config['SESSION_DURATION']))
    token = tokens.encode(claims, config['JWT_SECRET'])
    logger.debug('Issued session for key %s, expires %s', redact(key_id),
                 claims.expires_at.isoformat())
    return {'token': token}, status.HTTP_200_OK, {}
