"""Defines the core data structures for keygate."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Tuple

from pytz import UTC

from .exceptions import MalformedRequest, PartialRecord, UnknownTarget


class KeyStatus(Enum):
    """Status of a long-lived key. ``BANNED`` is terminal."""

    ACTIVE = 'active'
    BANNED = 'banned'


class KeyRecord(NamedTuple):
    """Risk-control state of a long-lived key."""

    key_id: str
    """The key itself; also the key of the record in the credential store."""

    status: KeyStatus = KeyStatus.ACTIVE

    province: Optional[str] = None
    """Province that the key is bound to. Set once, on first use."""

    cities: Tuple[str, ...] = ()
    """Cities within :attr:`province` from which the key has been used."""

    @property
    def banned(self) -> bool:
        """Indicates whether the key has been banned."""
        return self.status is KeyStatus.BANNED

    @property
    def bound(self) -> bool:
        """Indicates whether the key has been bound to a province."""
        return bool(self.province)


class CityAppend(Enum):
    """Outcome of adding a city to a bound :class:`KeyRecord`."""

    PRESENT = 'present'
    """The city was already bound; nothing changed."""

    ADDED = 'added'
    """The city was added to the bound cities."""

    FULL = 'full'
    """No room for another city; the key has been banned."""

    BANNED = 'banned'
    """The key was already banned; nothing changed."""


class GeoLookupResult(NamedTuple):
    """Location of an IP address, as reported by the geolocation service."""

    ip: str
    province: str
    city: str
    status: str = 'success'
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        """Indicates whether the lookup was successful."""
        return self.status == 'success'

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GeoLookupResult':
        """Build a result from the geolocation service response body."""
        return cls(
            ip=data.get('query', ''),
            province=data.get('regionName', ''),
            city=data.get('city', ''),
            status=data.get('status', 'fail'),
            error_message=data.get('message')
        )


class SessionClaims(NamedTuple):
    """Claims carried by an issued bearer session."""

    subject: str
    """The long-lived key for which the session was issued."""

    issued_at: datetime
    expires_at: datetime

    @property
    def expired(self) -> bool:
        """Indicates whether the session has expired."""
        return self.expires_at <= datetime.now(tz=UTC)


class Target(Enum):
    """Target codes accepted by the gateway."""

    MAIN_MENU = 'a1'
    MODULE_MENU = 'b2'
    FEED_URLS = 'c3'
    ROUND_DATA = 'd4'
    CLIENT_SECRET = 'e5'
    SECRET_STRING = 'f6'
    SORTED_PARAMS = 'g7'


class GatewayRequest(NamedTuple):
    """A request to the gateway endpoint."""

    target: Target
    param: Optional[str] = None
    """The ``p`` field of the request body."""

    params: Optional[Dict[str, str]] = None

    @classmethod
    def from_dict(cls, data: Any) -> 'GatewayRequest':
        """
        Parse the JSON body of a gateway request.

        Parameters
        ----------
        data : dict
            Should contain ``target``, and optionally ``p`` and ``params``.

        Returns
        -------
        :class:`GatewayRequest`

        Raises
        ------
        :class:`MalformedRequest`
            Raised if the body is not an object, or its fields have the wrong
            types.
        :class:`UnknownTarget`
            Raised if ``target`` is not a known target code.

        """
        if not isinstance(data, dict):
            raise MalformedRequest('Request body must be an object')
        code = data.get('target')
        if not isinstance(code, str):
            raise MalformedRequest('Missing target')
        try:
            target = Target(code)
        except ValueError as e:
            raise UnknownTarget(f'No such target: {code}') from e

        param = data.get('p') or None
        if param is not None and not isinstance(param, str):
            raise MalformedRequest('Parameter must be a string')

        params = data.get('params')
        if params is not None:
            if not isinstance(params, dict) \
                    or not all(isinstance(v, str) for v in params.values()):
                raise MalformedRequest('Params must map strings to strings')
        return cls(target=target, param=param, params=params)


class CatalogEntry(NamedTuple):
    """A product in the remote product catalog."""

    product_id: str
    jump_url: str
    product_name: str
    create_at: str

    @classmethod
    def from_dict(cls, product_id: str, data: Any) -> 'CatalogEntry':
        """
        Parse a catalog entry.

        Raises
        ------
        :class:`PartialRecord`
            Raised if a required field is missing or is not a string.

        """
        if not isinstance(data, dict):
            raise PartialRecord(f'Product {product_id} is not an object')
        values = {}
        for field in ('jump_url', 'product_name', 'create_at'):
            value = data.get(field)
            if not isinstance(value, str):
                raise PartialRecord(f'Product {product_id} has no valid'
                                    f' {field}')
            values[field] = value
        return cls(product_id=product_id, **values)


class ValidRound(NamedTuple):
    """An activity round that matches the requested round type."""

    name: str
    url: str
    created: str
    is_finished: bool = False
