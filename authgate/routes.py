"""Routes provided by the authentication service itself."""

from flask import Blueprint, jsonify, make_response, request, Response

from . import status

blueprint = Blueprint('authgate', __name__, url_prefix='')


@blueprint.route('/auth_status', methods=['GET'])
def auth_status() -> Response:
    """Get if the app is running."""
    return make_response("OK")


@blueprint.route('/whoami', methods=['GET'])
def whoami() -> Response:
    """Describe the authenticated principal."""
    token = request.auth_token
    response = jsonify({
        'username': request.auth,
        'persistent': token.persistent if token is not None else False,
        'expires_at': token.expires_at.isoformat()
        if token is not None and token.expires_at else None
    })
    response.status_code = status.HTTP_200_OK
    return response
