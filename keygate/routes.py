"""Provides the HTTP API for keygate."""

from flask import Blueprint, jsonify, request
from flask.wrappers import Response

from . import status
from .authorization import protected
from .controllers import gateway, issuance

blueprint = Blueprint('keygate', __name__, url_prefix='')


@blueprint.route('/status', methods=['GET'])
def ok() -> Response:
    """Health check endpoint."""
    return jsonify({'status': 'ok'}), status.HTTP_200_OK, {}


@blueprint.route('/validate', methods=['POST'])
def validate() -> Response:
    """Exchange a long-lived key for a bearer session."""
    data, code, headers = issuance.issue_session(
        request.headers.get('X-Token', ''),
        request.remote_addr
    )
    return jsonify(data), code, headers


@blueprint.route('/api/v1/gateway', methods=['POST'])
@protected
def gateway_request() -> Response:
    """Get sealed content for a gateway target."""
    data, code, headers = gateway.handle_gateway(
        request.auth.subject,
        request.get_json(force=True, silent=True)
    )
    return jsonify(data), code, headers


@blueprint.route('/api/v1/profile', methods=['POST'])
@protected
def profile() -> Response:
    """Get the sealed profile of the current session."""
    data, code, headers = gateway.handle_profile(request.auth.subject)
    return jsonify(data), code, headers
