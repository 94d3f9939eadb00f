# chatroom_client/tests/conftest.py
import json
from unittest.mock import Mock

import pytest
import requests
from keyring.errors import PasswordDeleteError

from chatroom_client import api_client as api_client_module


class MemoryKeyring:
    def __init__(self):
        self.store = {}

    def get_password(self, service, key):
        return self.store.get((service, key))

    def set_password(self, service, key, value):
        self.store[(service, key)] = value

    def delete_password(self, service, key):
        if (service, key) not in self.store:
            raise PasswordDeleteError("not stored")
        del self.store[(service, key)]


@pytest.fixture
def memory_keyring(monkeypatch):
    backend = MemoryKeyring()
    monkeypatch.setattr(api_client_module.keyring, "get_password", backend.get_password)
    monkeypatch.setattr(api_client_module.keyring, "set_password", backend.set_password)
    monkeypatch.setattr(
        api_client_module.keyring, "delete_password", backend.delete_password
    )
    return backend


def make_response(status_code, body=None):
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.content = b"" if body is None else json.dumps(body).encode()
    response.text = "" if body is None else json.dumps(body)
    response.json.return_value = body
    return response


@pytest.fixture
def fake_response():
    return make_response


@pytest.fixture
def mock_session():
    return Mock(spec=requests.Session)


@pytest.fixture
def api_client(memory_keyring, mock_session):
    return api_client_module.ApiClient("http://chat.test/api/", session=mock_session)
