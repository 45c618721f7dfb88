#!/usr/bin/env python3


class ConfigError(Exception):
    pass


class RelayError(Exception):
    """Failure of one stage of the call to the receiving service.

    ``message`` is what the caller sees, ``cause`` is only logged.
    """
    message = "Relay failed"

    def __init__(self, cause=None):
        super().__init__(f"{self.message}: {cause}" if cause is not None else self.message)
        self.cause = cause


class AuthClientError(RelayError):
    message = "Failed to create authenticated client"


class DownstreamRequestError(RelayError):
    message = "Failed to make request"


class ResponseBodyReadError(RelayError):
    message = "Failed to read response body"
