#!/usr/bin/env python3

import logging

from flask import Flask, make_response

from runauth.errors import RelayError
from runauth.idtoken import new_client
from runauth.receiving import METHODS
from runauth import relay

log = logging.getLogger(__name__)

RESPONSE_PREFIX = b"Response from receiving service: "


def text_response(body, status):
    response = make_response(body, status)
    response.mimetype = "text/plain"
    return response


def create_app(config, client_factory=new_client):
    """Flask app forwarding every request to the receiving service.

    ``config`` is a SendingConfig built once at startup.
    """
    app = Flask(__name__)
    app.config["SENDING"] = config

    @app.route("/", defaults={"path": ""}, methods=METHODS)
    @app.route("/<path:path>", methods=METHODS)
    def index(path):
        # WSGI does not report caller disconnects, the call ends at the deadline
        try:
            result = relay.fetch(config, client_factory=client_factory)
        except RelayError as e:
            log.error(f"{e.message}: {e.cause}", exc_info=e.cause)
            return text_response(e.message, 500)

        return text_response(RESPONSE_PREFIX + result.body, 200)

    return app
