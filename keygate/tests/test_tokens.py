"""Tests for :mod:`keygate.tokens`."""

from datetime import datetime, timedelta
from unittest import TestCase

import jwt
from pytz import UTC

from keygate import tokens
from keygate.exceptions import ExpiredToken, InvalidToken


class TestSessionTokens(TestCase):
    """Sessions are encoded as signed JWTs."""

    def setUp(self):
        """Mint a session."""
        self.secret = 'foosecret'
        self.claims = tokens.mint('fookey', 3600)

    def test_mint(self):
        """The session lasts for the requested duration."""
        now = datetime(2024, 1, 2, 3, 4, 5, 678, tzinfo=UTC)
        claims = tokens.mint('fookey', 60, now=now)
        self.assertEqual(claims.subject, 'fookey')
        self.assertEqual(claims.issued_at, now.replace(microsecond=0))
        self.assertEqual(claims.expires_at - claims.issued_at,
                         timedelta(seconds=60))
        self.assertFalse(self.claims.expired)

    def test_round_trip(self):
        """An encoded session can be decoded with the same secret."""
        token = tokens.encode(self.claims, self.secret)
        self.assertEqual(tokens.decode(token, self.secret), self.claims)

    def test_wrong_secret(self):
        """A token signed with another secret is invalid."""
        token = tokens.encode(self.claims, 'othersecret')
        with self.assertRaises(InvalidToken):
            tokens.decode(token, self.secret)

    def test_expired(self):
        """An expired token is rejected."""
        claims = tokens.mint('fookey', 60,
                             now=datetime.now(tz=UTC) - timedelta(hours=1))
        self.assertTrue(claims.expired)
        token = tokens.encode(claims, self.secret)
        with self.assertRaises(ExpiredToken):
            tokens.decode(token, self.secret)

    def test_garbage(self):
        """A string that is not a JWT is invalid."""
        with self.assertRaises(InvalidToken):
            tokens.decode('not.a.token', self.secret)

    def test_missing_subject(self):
        """A token without a subject is invalid."""
        now = int(datetime.now(tz=UTC).timestamp())
        token = jwt.encode({'iat': now, 'exp': now + 60}, self.secret,
                           algorithm='HS256')
        with self.assertRaises(InvalidToken):
            tokens.decode(token, self.secret)

    def test_empty_subject(self):
        """A token with an empty subject is invalid."""
        now = int(datetime.now(tz=UTC).timestamp())
        token = jwt.encode({'sub': '', 'iat': now, 'exp': now + 60},
                           self.secret, algorithm='HS256')
        with self.assertRaises(InvalidToken):
            tokens.decode(token, self.secret)
