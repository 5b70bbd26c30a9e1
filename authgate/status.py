"""HTTP status codes used by the authentication layer."""

from http import HTTPStatus

HTTP_200_OK = HTTPStatus.OK
HTTP_302_FOUND = HTTPStatus.FOUND
HTTP_400_BAD_REQUEST = HTTPStatus.BAD_REQUEST
HTTP_401_UNAUTHORIZED = HTTPStatus.UNAUTHORIZED
HTTP_404_NOT_FOUND = HTTPStatus.NOT_FOUND
HTTP_500_INTERNAL_SERVER_ERROR = HTTPStatus.INTERNAL_SERVER_ERROR
