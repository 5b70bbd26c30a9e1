"""Tests for :mod:`authgate.status`."""

from http import HTTPStatus
from unittest import TestCase

from authgate import status


class TestStatus(TestCase):
    """Status names are the standard library's status codes."""

    def test_codes(self):
        """Each name is the matching :class:`HTTPStatus` member."""
        for name in dir(status):
            if not name.startswith('HTTP_'):
                continue
            value = getattr(status, name)
            self.assertIsInstance(value, HTTPStatus)
            self.assertEqual(name, f'HTTP_{value.value}_{value.name}')

    def test_compare_as_int(self):
        """Codes compare equal to plain integers."""
        self.assertEqual(status.HTTP_302_FOUND, 302)
        self.assertEqual(status.HTTP_401_UNAUTHORIZED, 401)
