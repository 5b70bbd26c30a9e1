"""Authentication and session exceptions."""


class AuthError(RuntimeError):
    """
    Credentials were rejected by the authenticator.

    The :attr:`reason` is sent to the client verbatim as the reason phrase of
    the 401 response.
    """

    default_reason = 'Authentication failed'

    def __init__(self, reason: str = '') -> None:
        """Attach a human-readable reason."""
        self.reason = reason or self.default_reason
        super(AuthError, self).__init__(self.reason)


class UnknownUser(AuthError):
    """No such user."""

    default_reason = 'Unknown user specified'


class InvalidCredential(AuthError):
    """The user exists but the secret does not match."""

    default_reason = 'Invalid password'


class InvalidToken(RuntimeError):
    """Session cookie is missing, malformed, or forged."""


class TokenStoreUnavailable(RuntimeError):
    """The token store could not be reached."""


class ConfigurationError(RuntimeError):
    """The authentication layer is not configured correctly."""
