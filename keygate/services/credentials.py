"""
Durable store for long-lived keys and their risk-control state.

Each key is a Redis hash keyed by the key itself, with the fields ``status``,
``province`` and ``cities`` (a JSON list). Records written by older tooling
carry ``cities`` comma-delimited instead. Keys are provisioned
out-of-band (see :mod:`keygate.provision`) and are only ever mutated by
session issuance.

Concurrent requests for the same key are serialized with Redis optimistic
transactions: each mutation WATCHes the key, re-reads the record, and commits
only if nobody else changed the record in the meantime. Otherwise the
mutation is re-evaluated against the fresh record.
"""

import json
import logging
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import redis

from ..context import get_application_config, get_application_global
from ..domain import CityAppend, KeyRecord, KeyStatus
from ..exceptions import StoreUnavailable, UnknownKey

logger = logging.getLogger(__name__)

MAX_CITIES = 2


def _load_cities(raw: str) -> Tuple[str, ...]:
    if raw.startswith('['):
        try:
            cities = json.loads(raw)
        except ValueError:
            cities = None
        if isinstance(cities, list) \
                and all(isinstance(city, str) for city in cities):
            return tuple(city for city in cities if city)
    return tuple(city for city in raw.split(',') if city)


def _dump_cities(cities: Sequence[str]) -> str:
    return json.dumps(list(cities), ensure_ascii=False)


def _to_record(key_id: str, data: Dict[str, str]) -> KeyRecord:
    if data.get('status') == KeyStatus.BANNED.value:
        status = KeyStatus.BANNED
    else:   # Records provisioned by older tooling carry no status.
        status = KeyStatus.ACTIVE
    province = data.get('province') or None
    cities = _load_cities(data.get('cities', ''))
    if province is None:
        cities = ()
    return KeyRecord(key_id=key_id, status=status, province=province,
                     cities=cities)


class CredentialStore(object):
    """
    Manages a connection to Redis.

    The StrictRedis instance is thread safe, and connections are attached at
    the time a command is executed. This class provides a container for
    configuration, and the atomic operations used by session issuance.
    """

    def __init__(self, host: str, port: int, db: int,
                 password: Optional[str] = None, timeout: int = 10) -> None:
        """Open the connection to Redis."""
        logger.debug('New Redis connection at %s, port %s', host, port)
        self.r = redis.StrictRedis(host=host, port=port, db=db,
                                   password=password,
                                   socket_timeout=timeout,
                                   socket_connect_timeout=timeout,
                                   decode_responses=True)

    def _transaction(self, func: Callable, key_id: str) -> object:
        try:
            return self.r.transaction(func, key_id, value_from_callable=True)
        except redis.exceptions.RedisError as e:
            raise StoreUnavailable(f'Transaction failed: {e}') from e

    def close(self) -> None:
        """Release the connections in the pool."""
        self.r.connection_pool.disconnect()

    def get(self, key_id: str) -> Optional[KeyRecord]:
        """
        Get the record for a long-lived key.

        Parameters
        ----------
        key_id : str

        Returns
        -------
        :class:`.KeyRecord` or None
            None if the key does not exist.

        Raises
        ------
        :class:`StoreUnavailable`

        """
        try:
            data = self.r.hgetall(key_id)
        except redis.exceptions.RedisError as e:
            raise StoreUnavailable(f'Connection failed: {e}') from e
        if not data:
            return None
        return _to_record(key_id, data)

    def exists(self, key_id: str) -> bool:
        """Check whether a long-lived key exists."""
        try:
            return bool(self.r.exists(key_id))
        except redis.exceptions.RedisError as e:
            raise StoreUnavailable(f'Connection failed: {e}') from e

    def provision(self, key_id: str) -> bool:
        """
        Create an active, unbound record for a new long-lived key.

        Returns
        -------
        bool
            False if the key already exists; it is left untouched.

        """
        def _provision(pipe: redis.client.Pipeline) -> bool:
            if pipe.exists(key_id):
                return False
            pipe.multi()
            pipe.hset(key_id, mapping={
                'status': KeyStatus.ACTIVE.value,
                'province': '',
                'cities': _dump_cities([])
            })
            return True
        return bool(self._transaction(_provision, key_id))

    def set_location(self, key_id: str, province: str,
                     cities: Sequence[str]) -> bool:
        """
        Bind an unbound key to a province and its first cities.

        Parameters
        ----------
        key_id : str
        province : str
        cities : list
            At least one, and at most :const:`MAX_CITIES` city names.

        Returns
        -------
        bool
            False if the key was already bound, banned, or no longer exists;
            nothing is changed in that case.

        """
        if not province or not 0 < len(cities) <= MAX_CITIES:
            raise ValueError('A province and one or two cities are required')

        def _bind(pipe: redis.client.Pipeline) -> bool:
            data = pipe.hgetall(key_id)
            if not data:
                return False
            record = _to_record(key_id, data)
            if record.banned or record.bound:
                return False
            pipe.multi()
            pipe.hset(key_id, mapping={'province': province,
                                       'cities': _dump_cities(cities)})
            return True
        return bool(self._transaction(_bind, key_id))

    def append_city(self, key_id: str, city: str) -> CityAppend:
        """
        Add a city to a bound key.

        If the key is already bound to :const:`MAX_CITIES` other cities, the
        key is banned instead, in the same transaction.

        Returns
        -------
        :class:`.CityAppend`

        Raises
        ------
        :class:`UnknownKey`
            Raised if the key does not exist.
        ValueError
            Raised if the key is not bound to a province.

        """
        def _append(pipe: redis.client.Pipeline) -> CityAppend:
            data = pipe.hgetall(key_id)
            if not data:
                raise UnknownKey(f'No such key: {key_id}')
            record = _to_record(key_id, data)
            if record.banned:
                return CityAppend.BANNED
            if not record.bound:
                raise ValueError(f'Key {key_id} is not bound to a province')
            if city in record.cities:
                return CityAppend.PRESENT
            pipe.multi()
            if len(record.cities) < MAX_CITIES:
                pipe.hset(key_id, 'cities',
                          _dump_cities(record.cities + (city,)))
                return CityAppend.ADDED
            pipe.hset(key_id, 'status', KeyStatus.BANNED.value)
            return CityAppend.FULL
        outcome: CityAppend = self._transaction(_append, key_id)
        return outcome

    def ban(self, key_id: str) -> None:
        """Ban a key. Banning is permanent, and banning twice is harmless."""
        try:
            self.r.hset(key_id, 'status', KeyStatus.BANNED.value)
        except redis.exceptions.RedisError as e:
            raise StoreUnavailable(f'Connection failed: {e}') from e


def init_app(app: object = None) -> None:
    """Set default configuration parameters for an application instance."""
    config = get_application_config(app)
    config.setdefault('REDIS_HOST', 'localhost')
    config.setdefault('REDIS_PORT', '6379')
    config.setdefault('REDIS_DATABASE', '0')
    config.setdefault('REDIS_PASSWORD', None)
    config.setdefault('OUTBOUND_TIMEOUT', '10')
    if app is not None:
        app.teardown_appcontext(close_store)


def get_credential_store(app: object = None) -> CredentialStore:
    """Get a new connection to the credential store."""
    config = get_application_config(app)
    host = config.get('REDIS_HOST', 'localhost')
    port = int(config.get('REDIS_PORT', '6379'))
    db = int(config.get('REDIS_DATABASE', '0'))
    password = config.get('REDIS_PASSWORD')
    timeout = int(config.get('OUTBOUND_TIMEOUT', '10'))
    return CredentialStore(host, port, db, password=password, timeout=timeout)


def close_store(*args: Any, **kwargs: Any) -> None:
    """Close the :class:`.CredentialStore` of this context, if any."""
    g = get_application_global()
    if g is not None and 'credentials' in g:
        g.pop('credentials').close()


def current_store() -> CredentialStore:
    """Get/create :class:`.CredentialStore` for this context."""
    g = get_application_global()
    if g is None:
        return get_credential_store()
    if 'credentials' not in g:
        g.credentials = get_credential_store()
    return g.credentials    # type: ignore
