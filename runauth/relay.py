#!/usr/bin/env python3

import time
import socket
import logging
import threading
from dataclasses import dataclass

import requests
import urllib3.exceptions
import google.auth.exceptions

from runauth.errors import DownstreamRequestError, ResponseBodyReadError
from runauth.idtoken import new_client

log = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

REQUEST_ERRORS = (requests.RequestException, google.auth.exceptions.GoogleAuthError)
READ_ERRORS = (requests.RequestException, urllib3.exceptions.HTTPError, OSError)


class DeadlineExceeded(Exception):
    pass


class Deadline:
    """Monotonic deadline shared by every stage of one downstream call."""

    def __init__(self, timeout, clock=time.monotonic):
        self.timeout = timeout
        self.clock = clock
        self.expires_at = clock() + timeout

    def left(self):
        return max(self.expires_at - self.clock(), 0)

    def remaining(self):
        left = self.left()
        if left <= 0:
            raise self.exceeded()
        return left

    def exceeded(self):
        return DeadlineExceeded(f"deadline of {self.timeout}s exceeded")


@dataclass
class RelayResponse:
    status_code: int
    body: bytes


def response_socket(response):
    """Socket the streamed body of ``response`` is read from, if still open."""
    raw = getattr(response, "raw", None)
    sock = getattr(getattr(raw, "connection", None), "sock", None)
    if sock is None:
        # http.client detaches the socket from the connection on
        # "Connection: close", the body reader still holds it
        body_fp = getattr(getattr(raw, "_fp", None), "fp", None)
        sock = getattr(getattr(body_fp, "raw", None), "_sock", None)
    return sock


class Watchdog:
    """Shuts the body socket down when the deadline passes.

    Socket timeouts only bound a single recv, a receiving service that
    trickles bytes would otherwise hold the read open indefinitely.
    """

    def __init__(self, deadline, response):
        self.response = response
        self.fired = False
        self.timer = threading.Timer(deadline.left(), self.fire)
        self.timer.daemon = True

    def start(self):
        self.timer.start()

    def cancel(self):
        self.timer.cancel()

    def fire(self):
        self.fired = True
        sock = response_socket(self.response)
        if sock is None:
            return
        try:
            # Base class shutdown, SSLSocket.shutdown drops the SSL object
            # under the reading thread
            socket.socket.shutdown(sock, socket.SHUT_RDWR)
        except OSError as e:
            log.debug(f"Failed to shut down body socket: {e}")


def read_body(response, deadline):
    watchdog = Watchdog(deadline, response)
    watchdog.start()
    try:
        chunks = []
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                deadline.remaining()
                chunks.append(chunk)
        except READ_ERRORS:
            if watchdog.fired:
                raise deadline.exceeded()
            raise
        # A shut down socket can also end the body early without an error
        if watchdog.fired:
            raise deadline.exceeded()
        return b"".join(chunks)
    finally:
        watchdog.cancel()


def fetch(config, client_factory=new_client, clock=time.monotonic):
    """GET the receiving service and return its status and full body.

    Every failure is raised as the RelayError of the stage it happened in.
    A non-2xx answer from the receiving service is not a failure.
    """
    deadline = Deadline(config.timeout, clock)

    client = client_factory(config.audience, deadline.remaining(), config.use_id_token)

    try:
        try:
            response = client.get(config.receiving_service_url,
                                  timeout=deadline.remaining(), stream=True)
        except REQUEST_ERRORS + (DeadlineExceeded,) as e:
            raise DownstreamRequestError(e) from e

        try:
            body = read_body(response, deadline)
        except READ_ERRORS + (DeadlineExceeded,) as e:
            raise ResponseBodyReadError(e) from e
        finally:
            response.close()
    finally:
        client.close()

    if not response.ok:
        log.warning(f"Receiving service answered {response.status_code}, forwarding body")

    return RelayResponse(status_code=response.status_code, body=body)
