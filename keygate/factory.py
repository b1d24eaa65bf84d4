"""Provides an app factory for the keygate service."""

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import BadRequest, Forbidden, HTTPException, \
    InternalServerError, MethodNotAllowed, NotFound, Unauthorized
from werkzeug.middleware.proxy_fix import ProxyFix

from . import routes
from .app_logging import setup_logger
from .controllers.util import redact
from .envelope import EnvelopeMode
from .exceptions import StoreUnavailable
from .services import credentials, geolocation, rounds

logger = logging.getLogger(__name__)


def jsonify_exception(error: HTTPException):
    exc_resp = error.get_response()
    response = jsonify(reason=error.description)
    response.status_code = exc_resp.status_code
    return response


def bootstrap_keys(app: Flask) -> None:
    """Provision the keys listed in ``BOOTSTRAP_KEYS``, if any."""
    keys = [key.strip() for key in app.config['BOOTSTRAP_KEYS'].split(',')
            if key.strip()]
    if not keys:
        return
    store = credentials.get_credential_store(app)
    try:
        for key_id in keys:
            if store.provision(key_id):
                logger.info('Provisioned bootstrap key %s', redact(key_id))
    except StoreUnavailable as e:
        logger.error('Could not provision bootstrap keys: %s', e)


def create_app() -> Flask:
    """Initialize an instance of the keygate service."""
    app = Flask('keygate')
    app.config.from_pyfile('config.py')
    setup_logger(app.config['LOGLEVEL'], app.config.get('LOGFILE'))

    # An unknown envelope mode is a configuration error.
    EnvelopeMode(app.config['ENVELOPE_MODE'])

    credentials.init_app(app)
    geolocation.init_app(app)
    rounds.init_app(app)

    x_for = int(app.config.get('PROXY_FIX_X_FOR', '0'))
    if x_for > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=x_for)   # type: ignore

    app.register_blueprint(routes.blueprint)
    app.errorhandler(NotFound)(jsonify_exception)
    app.errorhandler(BadRequest)(jsonify_exception)
    app.errorhandler(Unauthorized)(jsonify_exception)
    app.errorhandler(Forbidden)(jsonify_exception)
    app.errorhandler(MethodNotAllowed)(jsonify_exception)
    app.errorhandler(InternalServerError)(jsonify_exception)

    bootstrap_keys(app)
    return app
