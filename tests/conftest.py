import pytest
import requests

from runauth.config import SendingConfig
from tests.fakes import RECEIVING_URL
from tests.servers import SlowHTTPServer


@pytest.fixture
def config():
    return SendingConfig(receiving_service_url=RECEIVING_URL, audience=RECEIVING_URL)


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")


@pytest.fixture
def slow_server(monkeypatch):
    monkeypatch.setenv("NO_PROXY", "127.0.0.1,localhost")
    monkeypatch.setenv("no_proxy", "127.0.0.1,localhost")
    servers = []

    def start(**kwargs):
        server = SlowHTTPServer(**kwargs).start()
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.stop()
