import socket

import pytest
from fastapi.testclient import TestClient

from test_api.app import create_app
from test_api.store import UserStore


@pytest.fixture
def store():
    return UserStore.seeded()


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


@pytest.fixture
def busy_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen()
    yield sock.getsockname()[1]
    sock.close()
