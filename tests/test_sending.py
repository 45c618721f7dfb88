import threading
import time

import pytest
import requests

from runauth.config import SendingConfig
from runauth.errors import AuthClientError
from runauth.sending import create_app
from tests.fakes import RECEIVING_URL, FakeClient, FakeClientFactory, FakeResponse


def sending_client(config, factory):
    return create_app(config, client_factory=factory).test_client()


def test_forwards_body_with_prefix(config):
    factory = FakeClientFactory(FakeClient(FakeResponse(b"Hello from the receiving service!")))
    response = sending_client(config, factory).get("/")

    assert response.status_code == 200
    assert response.get_data() == b"Response from receiving service: Hello from the receiving service!"
    assert response.headers["Content-Type"] == "text/plain; charset=utf-8"


def test_calls_configured_url_with_token_for_audience(config):
    client = FakeClient(FakeResponse(b"ok"))
    factory = FakeClientFactory(client)
    sending_client(config, factory).post("/any/path")

    audience, timeout, use_id_token = factory.calls[0]
    assert audience == RECEIVING_URL
    assert 0 < timeout <= 10
    assert use_id_token is True
    assert client.calls[0][0] == RECEIVING_URL


def test_forbidden_downstream_is_forwarded_in_200(config):
    forbidden = b"<html><title>403 Forbidden</title></html>"
    factory = FakeClientFactory(FakeClient(FakeResponse(forbidden, status_code=403)))
    response = sending_client(config, factory).get("/")

    assert response.status_code == 200
    assert response.get_data() == b"Response from receiving service: " + forbidden


def test_auth_client_failure(config, caplog):
    factory = FakeClientFactory(error=AuthClientError(ValueError("no credentials")))
    response = sending_client(config, factory).get("/")

    assert response.status_code == 500
    assert response.get_data(as_text=True) == "Failed to create authenticated client"
    assert "no credentials" in caplog.text


def test_request_failure(config, caplog, connection_error):
    factory = FakeClientFactory(FakeClient(error=connection_error))
    response = sending_client(config, factory).get("/")

    assert response.status_code == 500
    assert response.get_data(as_text=True) == "Failed to make request"
    assert "connection refused" in caplog.text


def test_downstream_timeout_is_request_failure(config):
    factory = FakeClientFactory(FakeClient(error=requests.Timeout("read timed out")))
    response = sending_client(config, factory).get("/")

    assert response.status_code == 500
    assert response.get_data(as_text=True) == "Failed to make request"


def test_body_read_failure(config, caplog):
    error = requests.exceptions.ChunkedEncodingError("connection broken")
    factory = FakeClientFactory(FakeClient(FakeResponse(chunks=[b"par"], error=error)))
    response = sending_client(config, factory).get("/")

    assert response.status_code == 500
    assert response.get_data(as_text=True) == "Failed to read response body"
    assert "connection broken" in caplog.text


def test_no_retry_after_failure(config, connection_error):
    client = FakeClient(error=connection_error)
    factory = FakeClientFactory(client)
    sending_client(config, factory).get("/")

    assert len(factory.calls) == 1
    assert len(client.calls) == 1


def test_client_built_per_request(config):
    factory = FakeClientFactory(FakeClient(FakeResponse(b"ok")))
    app = sending_client(config, factory)
    app.get("/")
    app.get("/")

    assert len(factory.calls) == 2


class EchoClientFactory:
    """Each client answers with a body unique to the request that built it."""

    def __init__(self):
        self.lock = threading.Lock()
        self.counter = 0

    def __call__(self, audience, timeout, use_id_token=True):
        with self.lock:
            self.counter += 1
            n = self.counter
        chunks = [f"request-{n}-".encode(), f"part-{n}".encode()]
        return FakeClient(FakeResponse(chunks=chunks))


def test_concurrent_requests_do_not_share_bodies(config):
    app = create_app(config, client_factory=EchoClientFactory())
    results = []
    results_lock = threading.Lock()

    def call():
        body = app.test_client().get("/").get_data(as_text=True)
        with results_lock:
            results.append(body)

    threads = [threading.Thread(target=call) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 20
    assert len(set(results)) == 20
    for body in results:
        n = body.split("request-")[1].split("-")[0]
        assert body == f"Response from receiving service: request-{n}-part-{n}"


def test_slow_receiving_service_gives_request_failure(slow_server):
    server = slow_server(header_delay=5)
    config = SendingConfig(receiving_service_url=server.url, audience=server.url,
                           timeout=0.5, use_id_token=False)
    started = time.monotonic()
    response = create_app(config).test_client().get("/")

    assert time.monotonic() - started < 1.5
    assert response.status_code == 500
    assert response.get_data(as_text=True) == "Failed to make request"


def test_trickling_receiving_service_gives_read_failure(slow_server):
    server = slow_server(body=b"x" * 24, byte_interval=0.1)
    config = SendingConfig(receiving_service_url=server.url, audience=server.url,
                           timeout=0.5, use_id_token=False)
    started = time.monotonic()
    response = create_app(config).test_client().get("/")

    assert time.monotonic() - started < 1.5
    assert response.status_code == 500
    assert response.get_data(as_text=True) == "Failed to read response body"


def test_real_exchange_forwards_body(slow_server):
    server = slow_server(body=b"Hello from the receiving service!")
    config = SendingConfig(receiving_service_url=server.url, audience=server.url,
                           use_id_token=False)
    response = create_app(config).test_client().get("/")

    assert response.status_code == 200
    assert response.get_data() == b"Response from receiving service: Hello from the receiving service!"
