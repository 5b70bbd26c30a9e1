"""Tests for :mod:`authgate.auth.paths`."""

import string
from unittest import TestCase

from hypothesis import given
from hypothesis import strategies as st

from authgate.auth.paths import OpenPathSet, from_config

segment = st.text(alphabet=string.ascii_letters + string.digits + '-_.',
                  min_size=1, max_size=12).filter(lambda s: s not in ('.', '..'))
path = st.lists(segment, min_size=1, max_size=5).map(lambda s: '/' + '/'.join(s))


class TestOpenPathSet(TestCase):
    """An :class:`.OpenPathSet` decides which paths skip authentication."""

    def setUp(self):
        self.paths = OpenPathSet(['/open', '/static/css'])

    def test_exact_prefix(self):
        """A path equal to a prefix is open."""
        self.assertTrue(self.paths.is_open('/open'))
        self.assertTrue(self.paths.is_open('/static/css'))

    def test_below_prefix(self):
        """Paths below a prefix are open."""
        self.assertTrue(self.paths.is_open('/open/x'))
        self.assertTrue(self.paths.is_open('/open/x/y.txt'))
        self.assertTrue(self.paths.is_open('/static/css/site.css'))

    def test_partial_segment(self):
        """A prefix only matches whole path segments."""
        self.assertFalse(self.paths.is_open('/openish'))
        self.assertFalse(self.paths.is_open('/static/cssx'))
        self.assertFalse(self.paths.is_open('/static'))

    def test_case_sensitive(self):
        """Matching is case-sensitive."""
        self.assertFalse(self.paths.is_open('/Open'))
        self.assertFalse(self.paths.is_open('/OPEN/x'))

    def test_query_and_trailing_slash(self):
        """Query strings and trailing slashes do not affect matching."""
        self.assertTrue(self.paths.is_open('/open/?a=b'))
        self.assertTrue(self.paths.is_open('/open?next=/hello'))
        self.assertFalse(self.paths.is_open('/hello?path=/open'))

    def test_protected(self):
        """Anything else is protected."""
        self.assertFalse(self.paths.is_open('/'))
        self.assertFalse(self.paths.is_open('/download'))
        self.assertNotIn('/download', self.paths)
        self.assertIn('/open', self.paths)

    def test_prefixes_normalized(self):
        """Configured prefixes are normalized and de-duplicated in order."""
        paths = OpenPathSet(['open/', '/open', '/b'])
        self.assertEqual(paths.prefixes, ('/open', '/b'))
        self.assertTrue(paths.is_open('/open/x'))

    def test_root_prefix(self):
        """The root prefix opens everything."""
        paths = OpenPathSet(['/'])
        self.assertTrue(paths.is_open('/'))
        self.assertTrue(paths.is_open('/anything/at/all'))

    def test_empty(self):
        """With no configuration, nothing is open."""
        self.assertFalse(OpenPathSet().is_open('/open'))
        self.assertFalse(OpenPathSet(None, None).is_open('/'))

    def test_patterns(self):
        """A path matching a pattern in full is open."""
        paths = OpenPathSet([], [r'/public/[0-9]+', r'.*\.png'])
        self.assertTrue(paths.is_open('/public/123'))
        self.assertTrue(paths.is_open('/img/logo.png'))
        self.assertFalse(paths.is_open('/public/123/edit'))
        self.assertFalse(paths.is_open('/public/abc'))

    @given(prefix=path, rest=st.lists(segment, max_size=3))
    def test_prefix_property(self, prefix, rest):
        """Every path at or below a prefix is open."""
        paths = OpenPathSet([prefix])
        target = '/'.join([prefix] + rest)
        self.assertTrue(paths.is_open(target))

    @given(prefix=path, suffix=segment)
    def test_sibling_property(self, prefix, suffix):
        """A path extending the last segment of a prefix is not open."""
        paths = OpenPathSet([prefix])
        self.assertFalse(paths.is_open(prefix + suffix))


class TestFromConfig(TestCase):
    """Tests for :func:`.from_config`."""

    def test_comma_separated(self):
        """Values are split on commas and stripped."""
        self.assertEqual(from_config(' /open, /static ,,'),
                         ('/open', '/static'))

    def test_empty(self):
        """Empty values give no items."""
        self.assertEqual(from_config(''), ())
        self.assertEqual(from_config(None), ())

    def test_sequence(self):
        """Sequences are accepted as they are."""
        self.assertEqual(from_config(['/a', '/b']), ('/a', '/b'))
