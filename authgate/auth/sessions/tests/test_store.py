"""Tests for :mod:`authgate.auth.sessions.store`."""

import threading
from datetime import timedelta
from unittest import TestCase

from authgate import domain
from authgate.auth.sessions import store
from authgate.auth.sessions.store import InMemoryTokenManager, new_token


def _expired(token):
    past = domain.now() - timedelta(seconds=10)
    return token._replace(issued_at=past - timedelta(seconds=10),
                          expires_at=past)


class TestNewToken(TestCase):
    """Tests for :func:`.new_token`."""

    def test_non_persistent(self):
        """Without a duration the token never expires."""
        token = new_token('doej')
        self.assertIsNone(token.expires_at)
        self.assertFalse(token.persistent)
        self.assertFalse(token.expired)
        self.assertEqual(token.username, 'doej')

    def test_persistent(self):
        """With a duration, the token expires that long after issue."""
        token = new_token('doej', duration=60, remote_ip='10.1.2.3')
        self.assertEqual(token.expires_at - token.issued_at,
                         timedelta(seconds=60))
        self.assertTrue(token.persistent)
        self.assertEqual(token.remote_ip, '10.1.2.3')

    def test_unique_ids(self):
        """Each token gets a fresh id."""
        ids = {new_token('doej').token_id for _ in range(100)}
        self.assertEqual(len(ids), 100)
        self.assertGreaterEqual(len(store.generate_token_id()), 32)


class TestInMemoryTokenManager(TestCase):
    """Tokens are kept in a dict keyed by id."""

    def setUp(self):
        self.manager = InMemoryTokenManager()

    def test_add_and_lookup(self):
        """A token that was added can be looked up by id."""
        token = new_token('doej')
        self.manager.add(token)
        self.assertEqual(self.manager.lookup(token.token_id), token)

    def test_lookup_unknown(self):
        """An unknown id is absent."""
        self.assertIsNone(self.manager.lookup('nope'))

    def test_same_user_many_tokens(self):
        """A second login does not displace the first."""
        first, second = new_token('doej'), new_token('doej')
        self.manager.add(first)
        self.manager.add(second)
        self.assertEqual(self.manager.lookup(first.token_id), first)
        self.assertEqual(self.manager.lookup(second.token_id), second)
        self.assertEqual(len(self.manager), 2)

    def test_last_write_wins(self):
        """Adding a token with an existing id replaces it."""
        token = new_token('doej')
        replacement = token._replace(remote_ip='10.0.0.1')
        self.manager.add(token)
        self.manager.add(replacement)
        self.assertEqual(self.manager.lookup(token.token_id).remote_ip,
                         '10.0.0.1')

    def test_remove(self):
        """Removed tokens are absent, and removal is idempotent."""
        token = new_token('doej')
        self.manager.add(token)
        self.manager.remove(token.token_id)
        self.assertIsNone(self.manager.lookup(token.token_id))
        self.manager.remove(token.token_id)
        self.manager.remove('never-existed')

    def test_lazy_expiry(self):
        """An expired token is absent, and is dropped when found."""
        token = _expired(new_token('doej', duration=1))
        self.manager.add(token)
        self.assertIsNone(self.manager.lookup(token.token_id))
        self.assertEqual(self.manager.tokens(), [])

    def test_tokens_snapshot(self):
        """The snapshot is unaffected by later changes."""
        tokens = [new_token('doej'), new_token('smithj')]
        for token in tokens:
            self.manager.add(token)
        snapshot = self.manager.tokens()
        self.manager.remove(tokens[0].token_id)
        self.assertEqual(sorted(t.token_id for t in snapshot),
                         sorted(t.token_id for t in tokens))
        self.assertEqual(len(self.manager.tokens()), 1)

    def test_sweep(self):
        """Sweeping removes only expired tokens."""
        live = new_token('doej', duration=3600)
        session = new_token('doej')
        dead = _expired(new_token('smithj', duration=1))
        for token in [live, session, dead]:
            self.manager.add(token)
        self.assertEqual(self.manager.sweep(), 1)
        self.assertEqual({t.token_id for t in self.manager.tokens()},
                         {live.token_id, session.token_id})

    def test_remove_user(self):
        """All tokens for one user can be removed together."""
        mine = [new_token('doej'), new_token('doej')]
        theirs = new_token('smithj')
        for token in mine + [theirs]:
            self.manager.add(token)
        self.assertEqual(self.manager.remove_user('doej'), 2)
        self.assertEqual(self.manager.tokens(), [theirs])

    def test_concurrent_access(self):
        """Many threads may add, look up and remove at the same time."""
        errors = []

        def work(username):
            try:
                for _ in range(200):
                    token = new_token(username)
                    self.manager.add(token)
                    if self.manager.lookup(token.token_id) != token:
                        errors.append(f'{username} lost a token')
                    self.manager.tokens()
                    self.manager.remove(token.token_id)
            except Exception as e:
                errors.append(repr(e))

        threads = [threading.Thread(target=work, args=(f'user{i}',))
                   for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(errors, [])
        self.assertEqual(len(self.manager), 0)


class TestSessionMaxAge(TestCase):
    """Tokens with no expiry are bounded by ``session_max_age``."""

    def setUp(self):
        self.manager = InMemoryTokenManager(session_max_age=3600)
        issued = domain.now() - timedelta(hours=2)
        self.abandoned = new_token('doej')._replace(issued_at=issued)
        self.fresh = new_token('doej')
        self.remembered = new_token('doej', duration=86400)._replace(
            issued_at=issued)
        for token in [self.abandoned, self.fresh, self.remembered]:
            self.manager.add(token)

    def test_deadline(self):
        """The cap applies only to tokens with no expiry of their own."""
        self.assertEqual(self.manager.deadline(self.abandoned),
                         self.abandoned.issued_at + timedelta(hours=1))
        self.assertEqual(self.manager.deadline(self.remembered),
                         self.remembered.expires_at)
        self.assertIsNone(InMemoryTokenManager().deadline(self.abandoned))

    def test_lookup(self):
        """A token past the cap is absent, and is discarded."""
        self.assertIsNone(self.manager.lookup(self.abandoned.token_id))
        self.assertEqual(len(self.manager), 2)
        self.assertEqual(self.manager.lookup(self.fresh.token_id), self.fresh)
        self.assertEqual(self.manager.lookup(self.remembered.token_id),
                         self.remembered)

    def test_sweep(self):
        """Sweeping reclaims abandoned session tokens."""
        self.assertEqual(self.manager.sweep(), 1)
        self.assertNotIn(self.abandoned, self.manager.tokens())

    def test_no_cap(self):
        """Without a cap, tokens with no expiry are kept until removed."""
        manager = InMemoryTokenManager()
        manager.add(self.abandoned)
        self.assertEqual(manager.sweep(), 0)
        self.assertEqual(manager.lookup(self.abandoned.token_id),
                         self.abandoned)
