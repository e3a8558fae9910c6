import json
import os
import platform

import pytest
from fastapi import Request, Response

from config.client_config import AppKitConfig, StorageBackend
from oauth import TokenSet
from utils.credentials import TOKENS_KEY, CredentialStore
from utils.storage import (
    CookieStorage,
    FileStorage,
    MemoryStorage,
    SessionStorage,
    create_storage,
)


def test_memory_storage_instances_are_isolated():
    a, b = MemoryStorage(), MemoryStorage()
    a.set("k", "v")

    assert a.get("k") == "v"
    assert b.get("k") is None

    a.remove("k")
    a.remove("k")
    assert a.get("k") is None


def test_file_storage_persists_across_instances(tmp_path):
    path = tmp_path / "store" / "origin.json"
    FileStorage(path).set("k", "v")

    assert FileStorage(path).get("k") == "v"
    assert json.loads(path.read_text()) == {"k": "v"}


@pytest.mark.skipif(platform.system() == "Windows", reason="POSIX permissions")
def test_file_storage_permissions(tmp_path):
    path = tmp_path / "store" / "origin.json"
    FileStorage(path).set("k", "v")

    assert os.stat(path).st_mode & 0o777 == 0o600
    assert os.stat(path.parent).st_mode & 0o777 == 0o700


def test_file_storage_removes_file_when_empty(tmp_path):
    store = FileStorage(tmp_path / "origin.json")
    store.set("k", "v")
    store.remove("k")

    assert not (tmp_path / "origin.json").exists()


def test_file_storage_corrupt_file_reads_empty(tmp_path):
    path = tmp_path / "origin.json"
    path.write_text("{not json")
    store = FileStorage(path)

    assert store.get("k") is None
    store.set("k", "v")
    assert store.get("k") == "v"


def test_file_storage_scoped_by_origin(tmp_path):
    a = FileStorage.for_origin(tmp_path, "id.example.com:c1")
    b = FileStorage.for_origin(tmp_path, "id.example.com:c2")
    a.set("k", "v")

    assert b.get("k") is None
    assert a.path.name == "id.example.com_c1.json"


def test_session_storage_keyed_by_session(tmp_path):
    first = SessionStorage("o", session_id=1, temp_dir=tmp_path)
    first.set("k", "v")

    assert SessionStorage("o", session_id=1, temp_dir=tmp_path).get("k") == "v"
    assert SessionStorage("o", session_id=2, temp_dir=tmp_path).get("k") is None


def _request(cookie_header=None):
    headers = []
    if cookie_header:
        headers.append((b"cookie", cookie_header.encode("latin-1")))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


def _set_cookie_headers(response):
    return [value.decode("latin-1") for name, value in response.raw_headers if name == b"set-cookie"]


def test_cookie_storage_reads_request_cookies():
    store = CookieStorage(request=_request("appkit.state=abc%20def"))

    assert store.get("appkit.state") == "abc def"
    assert store.get("missing") is None


def test_cookie_storage_writes_secure_cookie():
    response = Response()
    store = CookieStorage(request=_request(), response=response)
    store.set("appkit.state", '{"a": 1}')

    [header] = _set_cookie_headers(response)
    lowered = header.lower()
    assert header.startswith("appkit.state=%7B%22a%22%3A%201%7D")
    assert "secure" in lowered
    assert "httponly" in lowered
    assert "samesite=lax" in lowered
    assert "max-age=604800" in lowered
    assert "path=/" in lowered

    # Visible to later reads in the same request
    assert store.get("appkit.state") == '{"a": 1}'


def test_cookie_storage_remove_expires_cookie():
    response = Response()
    store = CookieStorage(request=_request("appkit.state=x"), response=response)
    store.remove("appkit.state")

    [header] = _set_cookie_headers(response)
    assert "max-age=0" in header.lower()
    assert store.get("appkit.state") is None


def test_cookie_storage_without_host_is_noop():
    store = CookieStorage()
    store.set("k", "v")
    store.remove("k")

    assert store.get("k") is None


def test_create_storage_by_backend(tmp_path):
    def build(backend):
        return AppKitConfig(
            domain="https://id.example.com",
            client_id="c1",
            redirect_uri="https://app/cb",
            storage=backend,
            storage_dir=tmp_path,
        )

    assert isinstance(create_storage(build(StorageBackend.MEMORY)), MemoryStorage)
    assert isinstance(create_storage(build(StorageBackend.COOKIE)), CookieStorage)
    assert isinstance(create_storage(build(StorageBackend.SESSION)), SessionStorage)

    persistent = create_storage(build(StorageBackend.PERSISTENT))
    assert type(persistent) is FileStorage
    assert persistent.path.parent == tmp_path


def test_credential_store_round_trip():
    store = CredentialStore(MemoryStorage())
    tokens = TokenSet(access_token="A1", expires_at=123.0, refresh_token="R1", scope="openid")
    store.set_tokens(tokens)
    store.set_state("S")
    store.set_pkce_verifier("V")

    assert store.get_tokens() == tokens
    assert store.get_state() == "S"
    assert store.get_pkce_verifier() == "V"

    store.clear()
    assert store.get_tokens() is None
    assert store.get_state() is None
    assert store.get_pkce_verifier() is None


@pytest.mark.parametrize("raw", ["{not json", "[]", '{"expires_at": 1}', '{"access_token": "", "expires_at": 1}'])
def test_credential_store_malformed_tokens_are_absent(raw):
    storage = MemoryStorage()
    storage.set(TOKENS_KEY, raw)

    assert CredentialStore(storage).get_tokens() is None


def test_cookie_host_types_are_annotation_only():
    import config.client_config
    import utils.storage

    # fastapi is an optional extra; the library only names its types
    assert not hasattr(utils.storage, "Request")
    assert not hasattr(config.client_config, "Request")
