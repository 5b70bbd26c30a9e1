"""Request controllers for the authentication layer."""

from . import authentication
