"""
Resolves client IP addresses to a province and city.

Lookups go to an ip-api.com compatible service, and successful results are
cached in Redis under ``ip_cache:<ip>``. The cache is an optimization only: if
Redis is unavailable, lookups go straight to the service.
"""

import json
import logging
from typing import Any, Dict, Optional

import redis
import requests

from ..context import get_application_config, get_application_global
from ..domain import GeoLookupResult
from ..exceptions import GeolocationFailed

logger = logging.getLogger(__name__)

LOOPBACK = ('127.0.0.1', '::1')
LOCAL_PROVINCE = 'local'
LOCAL_CITY = 'development'
CACHE_PREFIX = 'ip_cache:'


class GeoResolver(object):
    """Preserves an HTTP session to the geolocation service."""

    def __init__(self, endpoint: str, cache: redis.StrictRedis,
                 ttl: int = 120 * 60 * 60, timeout: int = 10) -> None:
        """Create a new HTTP session."""
        self.endpoint = endpoint.rstrip('/')
        self.cache = cache
        self.ttl = ttl
        self.timeout = timeout
        self._session = requests.Session()
        logger.debug('New GeoResolver with endpoint = %s', endpoint)

    def close(self) -> None:
        """Close the HTTP session and the cache connections."""
        self._session.close()
        self.cache.connection_pool.disconnect()

    def _from_cache(self, ip: str) -> Optional[GeoLookupResult]:
        try:
            cached = self.cache.get(f'{CACHE_PREFIX}{ip}')
        except redis.exceptions.RedisError as e:
            logger.error('Could not read geolocation cache: %s', e)
            return None
        if cached is None:
            return None
        try:
            data: Dict[str, Any] = json.loads(cached)
            result = GeoLookupResult.from_dict(data)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning('Ignoring malformed cache entry for %s: %s', ip, e)
            return None
        if not result.succeeded or not result.province or not result.city:
            return None
        logger.debug('IP address %s found in cache', ip)
        return result

    def _to_cache(self, ip: str, body: str) -> None:
        try:
            self.cache.set(f'{CACHE_PREFIX}{ip}', body, ex=self.ttl)
        except redis.exceptions.RedisError as e:
            logger.error('Could not write geolocation cache: %s', e)

    def resolve(self, ip: str) -> GeoLookupResult:
        """
        Resolve an IP address to a location.

        Parameters
        ----------
        ip : str

        Returns
        -------
        :class:`.GeoLookupResult`

        Raises
        ------
        :class:`GeolocationFailed`
            If the service could not be reached, or could not locate ``ip``.

        """
        if ip in LOOPBACK:
            logger.debug('Loopback address %s, using local location', ip)
            return GeoLookupResult(ip=ip, province=LOCAL_PROVINCE,
                                   city=LOCAL_CITY)

        cached = self._from_cache(ip)
        if cached is not None:
            return cached

        logger.debug('IP address %s not in cache, asking %s', ip,
                     self.endpoint)
        try:
            response = self._session.get(f'{self.endpoint}/{ip}',
                                         timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise GeolocationFailed(f'Geolocation request failed: {e}') from e
        if not response.ok:
            raise GeolocationFailed('Geolocation service responded with'
                                    f' {response.status_code}')
        try:
            data: Dict[str, Any] = response.json()
            result = GeoLookupResult.from_dict(data)
        except (ValueError, TypeError, AttributeError) as e:
            raise GeolocationFailed('Could not decode geolocation') from e

        if not result.succeeded:
            raise GeolocationFailed('Geolocation service error:'
                                    f' {result.error_message}')
        if not result.province or not result.city:
            raise GeolocationFailed(f'No province or city for {ip}')
        self._to_cache(ip, response.text)
        return result


def init_app(app: object = None) -> None:
    """Set default configuration parameters for an application instance."""
    config = get_application_config(app)
    config.setdefault('GEOLOCATION_URL', 'http://ip-api.com/json')
    config.setdefault('GEO_CACHE_TTL', str(120 * 60 * 60))
    config.setdefault('OUTBOUND_TIMEOUT', '10')
    if app is not None:
        app.teardown_appcontext(close_resolver)


def get_resolver(app: object = None) -> GeoResolver:
    """Get a new :class:`.GeoResolver` that caches in the credential store."""
    config = get_application_config(app)
    timeout = int(config.get('OUTBOUND_TIMEOUT', '10'))
    cache = redis.StrictRedis(
        host=config.get('REDIS_HOST', 'localhost'),
        port=int(config.get('REDIS_PORT', '6379')),
        db=int(config.get('REDIS_DATABASE', '0')),
        password=config.get('REDIS_PASSWORD'),
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
        decode_responses=True
    )
    ttl = int(config.get('GEO_CACHE_TTL', str(120 * 60 * 60)))
    return GeoResolver(config.get('GEOLOCATION_URL', 'http://ip-api.com/json'),
                       cache, ttl=ttl, timeout=timeout)


def close_resolver(*args: Any, **kwargs: Any) -> None:
    """Close the :class:`.GeoResolver` of this context, if there is one."""
    g = get_application_global()
    if g is not None and 'geolocation' in g:
        g.pop('geolocation').close()


def current_resolver() -> GeoResolver:
    """Get/create :class:`.GeoResolver` for this context."""
    g = get_application_global()
    if g is None:
        return get_resolver()
    if 'geolocation' not in g:
        g.geolocation = get_resolver()
    return g.geolocation    # type: ignore
