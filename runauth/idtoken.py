#!/usr/bin/env python3

# Identity tokens are fetched from the metadata server on Cloud Run, or from
# the service account key file in GOOGLE_APPLICATION_CREDENTIALS locally.
# The calling service account needs roles/run.invoker on the receiving service.

import logging

import requests
import google.auth.exceptions
from google.auth.transport.requests import AuthorizedSession, Request
from google.oauth2 import id_token

from runauth.errors import AuthClientError

log = logging.getLogger(__name__)


class TimeoutRequest(Request):
    """google-auth transport whose calls never outlive ``timeout`` seconds."""

    def __init__(self, timeout, session=None):
        super().__init__(session)
        self.timeout = timeout

    def __call__(self, url, method="GET", body=None, headers=None, timeout=None, **kwargs):
        return super().__call__(url, method=method, body=body, headers=headers,
                                timeout=self.timeout, **kwargs)


def fetch_credentials(audience, timeout):
    session = requests.Session()
    try:
        request = TimeoutRequest(timeout, session)
        credentials = id_token.fetch_id_token_credentials(audience, request=request)
        credentials.refresh(request)
    finally:
        session.close()
    return credentials


def new_client(audience, timeout, use_id_token=True):
    """Return a requests session for calling ``audience``.

    With ``use_id_token`` the session attaches an identity token bound to
    ``audience`` as a bearer token. The token is obtained here, so a session
    is only returned once a token exists.
    """
    if not use_id_token:
        log.debug("Identity tokens disabled, using an unauthenticated session")
        return requests.Session()

    try:
        credentials = fetch_credentials(audience, timeout)
    except (google.auth.exceptions.GoogleAuthError, ValueError) as e:
        raise AuthClientError(e) from e

    log.debug(f"Obtained identity token for audience {audience}")
    # No refresh-and-retry on 401/403, the receiving status is forwarded as is
    return AuthorizedSession(credentials, refresh_status_codes=())
