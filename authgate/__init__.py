"""
Request authentication and session management for WSGI applications.

authgate sits in front of an application as a middleware stage. Requests to
open paths pass straight through; requests to protected paths must carry a
session cookie that resolves to a live token, otherwise the client is
redirected to the login endpoint with the original URL preserved in the
``next`` query parameter.

Login and logout are handled by the stage itself:

- ``POST /account/login`` with a JSON body ``{username, password,
  rememberMe}`` verifies the credentials with the configured
  :class:`.auth.authenticator.Authenticator`, registers a new token with
  the :class:`.auth.sessions.TokenManager` and sets the session cookie.
- ``GET /account/logout`` revokes the token and redirects back to login.

For Flask applications, see :class:`.auth.Auth`.
"""
