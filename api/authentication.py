"""
API Authentication - Session authentication answering 401.

DRF's stock SessionAuthentication provides no WWW-Authenticate challenge,
which makes unauthenticated requests come back as 403. Clients must be able
to tell "log in again" apart from "not allowed", so this class supplies a
challenge and DRF answers 401.
"""

from rest_framework import authentication


class SessionAuthentication(authentication.SessionAuthentication):
    """Session authentication whose failures are reported as 401."""

    www_authenticate_realm = 'api'

    def authenticate_header(self, request):
        return f'Session realm="{self.www_authenticate_realm}"'
