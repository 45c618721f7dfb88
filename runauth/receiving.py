#!/usr/bin/env python3

from flask import Flask, make_response

GREETING = "Hello from the receiving service!"

METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app():
    app = Flask(__name__)

    @app.route("/", defaults={"path": ""}, methods=METHODS)
    @app.route("/<path:path>", methods=METHODS)
    def index(path):
        response = make_response(GREETING, 200)
        response.mimetype = "text/plain"
        return response

    return app
