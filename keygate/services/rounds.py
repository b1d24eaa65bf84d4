"""
Correlates the remote product catalog with the current activity round.

Both feeds are JavaScript files that assign a JSON literal to a variable, e.g.
``var products={...};``. The catalog maps product IDs to products; the round
feed lists the product IDs in the current round. A round is kept when the
round type (e.g. ``universal``) occurs in the product's jump URL.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from ..context import get_application_config, get_application_global
from ..domain import CatalogEntry, ValidRound
from ..exceptions import PartialRecord, RoundDataUnavailable

logger = logging.getLogger(__name__)

USER_AGENT = ('Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7)'
              ' AppleWebKit/537.36 (KHTML, like Gecko)'
              ' Chrome/131.0.0.0 Safari/537.36 Edg/131.0.0.0')
PRODUCTS_PREFIX = 'var products='
ROUND_PREFIX = 'var classify_24='


def _strip_assignment(body: str, prefix: str) -> str:
    body = body.strip()
    if body.startswith(prefix):
        body = body[len(prefix):]
    if body.endswith(';'):
        body = body[:-1]
    return body


def correlate(products: Dict[str, Any], rounds: List[Dict[str, Any]],
              round_type: str) -> List[ValidRound]:
    """
    Join the round with the catalog, and filter by ``round_type``.

    Catalog entries that are malformed are skipped with a warning.
    """
    valid_rounds: List[ValidRound] = []
    for entry in rounds:
        product_id = str(entry.get('product_id', '')) \
            if isinstance(entry, dict) else ''
        if product_id not in products:
            continue
        try:
            product = CatalogEntry.from_dict(product_id, products[product_id])
        except PartialRecord as e:
            logger.warning('Skipping product: %s', e)
            continue
        if round_type not in product.jump_url:
            continue
        valid_rounds.append(ValidRound(
            name=product.product_name,
            url=product.jump_url.replace('amp;', ''),
            created=product.create_at,
            is_finished=False
        ))
    return valid_rounds


class RoundDataService(object):
    """Preserves an HTTP session to the catalog and round feeds."""

    def __init__(self, products_url: str, round_url: str,
                 timeout: int = 10) -> None:
        """Create a new HTTP session."""
        self.products_url = products_url
        self.round_url = round_url
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({'User-Agent': USER_AGENT})

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()

    def _fetch(self, url: str, prefix: str, cache_buster: str) -> Any:
        try:
            response = self._session.get(f'{url}?{cache_buster}',
                                         timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise RoundDataUnavailable(f'Request to {url} failed: {e}') from e
        if not response.ok:
            raise RoundDataUnavailable(f'{url} responded with'
                                       f' {response.status_code}')
        try:
            return json.loads(_strip_assignment(response.text, prefix))
        except ValueError as e:
            raise RoundDataUnavailable(f'Could not decode {url}') from e

    def get_products(self, cache_buster: str) -> Dict[str, Any]:
        """Retrieve the product catalog, keyed by product ID."""
        products = self._fetch(self.products_url, PRODUCTS_PREFIX,
                               cache_buster)
        if not isinstance(products, dict):
            raise RoundDataUnavailable('Product catalog is not an object')
        return products

    def get_round(self, cache_buster: str) -> List[Dict[str, Any]]:
        """Retrieve the list of products in the current round."""
        rounds = self._fetch(self.round_url, ROUND_PREFIX, cache_buster)
        if not isinstance(rounds, list):
            raise RoundDataUnavailable('Round feed is not a list')
        return rounds

    def get_rounds(self, round_type: str,
                   now: Optional[float] = None) -> List[ValidRound]:
        """
        Get the products in the current round that match ``round_type``.

        Parameters
        ----------
        round_type : str
            E.g. ``universal`` or ``wanneng``.

        Returns
        -------
        list
            Items are :class:`.ValidRound`.

        Raises
        ------
        :class:`RoundDataUnavailable`
            If either feed could not be retrieved or decoded.

        """
        cache_buster = str(int(now if now is not None else time.time()))
        products = self.get_products(cache_buster)
        rounds = self.get_round(cache_buster)
        return correlate(products, rounds, round_type)


def init_app(app: object = None) -> None:
    """Set default configuration parameters for an application instance."""
    config = get_application_config(app)
    config.setdefault('PRODUCTS_URL',
                      'https://shop.3839.com/html/js/products.js')
    config.setdefault('ROUND_URL',
                      'https://shop.3839.com/html/js/classify_24.js')
    config.setdefault('OUTBOUND_TIMEOUT', '10')
    if app is not None:
        app.teardown_appcontext(close_service)


def get_round_service(app: object = None) -> RoundDataService:
    """Get a new :class:`.RoundDataService`."""
    config = get_application_config(app)
    return RoundDataService(config['PRODUCTS_URL'], config['ROUND_URL'],
                            timeout=int(config.get('OUTBOUND_TIMEOUT', '10')))


def close_service(*args: Any, **kwargs: Any) -> None:
    """Close the :class:`.RoundDataService` of this context, if any."""
    g = get_application_global()
    if g is not None and 'rounds' in g:
        g.pop('rounds').close()


def current_service() -> RoundDataService:
    """Get/create :class:`.RoundDataService` for this context."""
    g = get_application_global()
    if g is None:
        return get_round_service()
    if 'rounds' not in g:
        g.rounds = get_round_service()
    return g.rounds     # type: ignore
