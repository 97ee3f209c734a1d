"""Token endpoint client.

One-shot ``httpx`` calls against the authorization server's token and
revocation endpoints:

- :func:`exchange_code` -- authorization code (plus PKCE verifier) for tokens.
- :func:`refresh_token` -- refresh token for new tokens.
- :func:`revoke_token` -- revoke an access or refresh token.
"""

from oauthflow.client.token_client import exchange_code, refresh_token, revoke_token

__all__ = ["exchange_code", "refresh_token", "revoke_token"]
