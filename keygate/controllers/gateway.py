"""
Dispatches gateway requests to target handlers.

Clients address content by opaque target codes (see :class:`.Target`). Each
target has exactly one handler, registered with :func:`handles`. Whatever a
handler returns is sealed in an envelope under the caller's long-lived key,
so that only the holder of the key can read it.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, NamedTuple

from pytz import UTC

from .. import envelope, status
from ..context import get_application_config
from ..domain import GatewayRequest, Target
from ..envelope import EnvelopeMode
from ..exceptions import EncodingError, InfrastructureError, \
    MalformedRequest, MissingParameter, UnknownParameter, UnknownTarget
from ..services import rounds
from ..services.rounds import RoundDataService
from .util import Response, redact

logger = logging.getLogger(__name__)

MAIN_MENU = ['转盘', '转盘v2', '玉米农场', '退出']
MODULE_MENUS = {
    'd8a7f1': ['获取并添加所有转盘信息', '添加单个转盘', '删除单个转盘',
               '领取所有转盘次数', '现在抽', '零点抽', '返回上一级']
}
ROUND_TYPES = {'u1': 'universal', 'w1': 'wanneng'}
SORT_SENTINEL = 'secret'

NOT_FOUND = {'reason': 'Not found'}
BAD_REQUEST = {'reason': 'Bad request'}
SERVER_ERROR = {'reason': 'Internal server error'}


class GatewaySettings(NamedTuple):
    """Configuration exposed through the gateway."""

    products_url: str
    round_url: str
    universal_url: str
    wanneng_url: str
    client_secret_key: str
    client_secret_value: str
    another_secret: str
    envelope_mode: EnvelopeMode = EnvelopeMode.DERIVED

    @classmethod
    def from_config(cls, config: Mapping) -> 'GatewaySettings':
        """Load settings from an application config."""
        return cls(
            products_url=config['PRODUCTS_URL'],
            round_url=config['ROUND_URL'],
            universal_url=config['UNIVERSAL_URL'],
            wanneng_url=config['WANNENG_URL'],
            client_secret_key=config['CLIENT_SECRET_KEY'],
            client_secret_value=config['CLIENT_SECRET_VALUE'],
            another_secret=config['ANOTHER_SECRET_STRING'],
            envelope_mode=EnvelopeMode(config.get('ENVELOPE_MODE', 'derived'))
        )


Handler = Callable[['Dispatcher', GatewayRequest], Any]
_HANDLERS: Dict[Target, Handler] = {}


def handles(target: Target) -> Callable[[Handler], Handler]:
    """Register a function as the handler for ``target``."""
    def deco(func: Handler) -> Handler:
        if target in _HANDLERS:
            raise RuntimeError(f'{target} already has a handler')
        _HANDLERS[target] = func
        return func
    return deco


@handles(Target.MAIN_MENU)
def _main_menu(dispatcher: 'Dispatcher', req: GatewayRequest) -> Any:
    return MAIN_MENU


@handles(Target.MODULE_MENU)
def _module_menu(dispatcher: 'Dispatcher', req: GatewayRequest) -> Any:
    if req.param is None:
        raise MissingParameter('Module menu requires a module')
    if req.param not in MODULE_MENUS:
        raise UnknownParameter(f'No such module: {req.param}')
    return MODULE_MENUS[req.param]


@handles(Target.FEED_URLS)
def _feed_urls(dispatcher: 'Dispatcher', req: GatewayRequest) -> Any:
    return {
        'products': dispatcher.settings.products_url,
        'round': dispatcher.settings.round_url,
        'universal': dispatcher.settings.universal_url,
        'wanneng': dispatcher.settings.wanneng_url
    }


@handles(Target.ROUND_DATA)
def _round_data(dispatcher: 'Dispatcher', req: GatewayRequest) -> Any:
    if req.param is None:
        raise MissingParameter('Round data requires a round type')
    if req.param not in ROUND_TYPES:
        raise UnknownParameter(f'No such round type: {req.param}')
    valid_rounds = dispatcher.rounds.get_rounds(ROUND_TYPES[req.param])
    return [valid_round._asdict() for valid_round in valid_rounds]


@handles(Target.CLIENT_SECRET)
def _client_secret(dispatcher: 'Dispatcher', req: GatewayRequest) -> Any:
    return {
        'key': dispatcher.settings.client_secret_key,
        'value': dispatcher.settings.client_secret_value
    }


@handles(Target.SECRET_STRING)
def _secret_string(dispatcher: 'Dispatcher', req: GatewayRequest) -> Any:
    return dispatcher.settings.another_secret


@handles(Target.SORTED_PARAMS)
def _sorted_params(dispatcher: 'Dispatcher', req: GatewayRequest) -> Any:
    if req.params is None:
        raise MissingParameter('Sorting requires params')
    return sorted(list(req.params) + [SORT_SENTINEL])


class Dispatcher(object):
    """Routes gateway requests to their handlers, and seals the results."""

    def __init__(self, settings: GatewaySettings,
                 rounds: RoundDataService) -> None:
        self.settings = settings
        self.rounds = rounds

    def payload(self, req: GatewayRequest) -> Any:
        """
        Get the unsealed payload for a gateway request.

        Raises
        ------
        :class:`UnknownTarget`
        :class:`MissingParameter`
        :class:`UnknownParameter`
        :class:`RoundDataUnavailable`

        """
        handler = _HANDLERS.get(req.target)
        if handler is None:
            raise UnknownTarget(f'No handler for {req.target}')
        return handler(self, req)

    def dispatch(self, subject: str, req: GatewayRequest) -> str:
        """Get the payload for ``req``, sealed under ``subject``."""
        return envelope.seal(self.payload(req), subject,
                             self.settings.envelope_mode)


def get_dispatcher() -> Dispatcher:
    """Get a :class:`.Dispatcher` for the current application."""
    settings = GatewaySettings.from_config(get_application_config())
    return Dispatcher(settings, rounds.current_service())


def handle_gateway(subject: str, body: Any) -> Response:
    """
    Handle a request to the gateway.

    Parameters
    ----------
    subject : str
        The long-lived key of the authenticated session.
    body : dict
        The decoded JSON request body, or None if it could not be decoded.

    Returns
    -------
    dict
        Contains the sealed ``payload``, or the ``reason`` for failure.
    int
        An HTTP status code.
    dict
        Some extra headers to add to the response.

    """
    try:
        req = GatewayRequest.from_dict(body)
        sealed = get_dispatcher().dispatch(subject, req)
    except (UnknownTarget, UnknownParameter) as e:
        logger.debug('Not found: %s', e)
        return NOT_FOUND, status.HTTP_404_NOT_FOUND, {}
    except (MalformedRequest, MissingParameter) as e:
        logger.debug('Bad request: %s', e)
        return BAD_REQUEST, status.HTTP_400_BAD_REQUEST, {}
    except (InfrastructureError, EncodingError) as e:
        logger.error('Gateway request for %s failed: %s', redact(subject), e)
        return SERVER_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR, {}
    except Exception:
        logger.exception('Unexpected failure handling gateway request for %s',
                         redact(subject))
        return SERVER_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR, {}
    logger.debug('Served %s to %s', req.target.value, redact(subject))
    return {'payload': sealed}, status.HTTP_200_OK, {}


def handle_profile(subject: str) -> Response:
    """Get the sealed profile of the authenticated session."""
    config = get_application_config()
    profile = {
        'user': subject,
        'createdAt': datetime.now(tz=UTC).isoformat()
    }
    try:
        sealed = envelope.seal(profile, subject,
                               EnvelopeMode(config.get('ENVELOPE_MODE',
                                                       'derived')))
    except EncodingError as e:
        logger.error('Could not seal profile for %s: %s', redact(subject), e)
        return SERVER_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR, {}
    return {'payload': sealed}, status.HTTP_200_OK, {}
