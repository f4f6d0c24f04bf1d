"""
Shared fixtures: fake HTTP session, fake CLI archives and valid settings.
"""
import hashlib
import io
import zipfile

import pytest
import requests

from bw_importer.settings import ImportSettings


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, content: bytes, status_code: int = 200):
        self.content = content
        self.status_code = status_code

    @property
    def text(self) -> str:
        return self.content.decode('utf-8')

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]


class FakeSession:
    """Serves fixed content per URL and records every request."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.requested = []

    def get(self, url, stream=False, **kwargs):
        self.requested.append(url)
        if url not in self.responses:
            return FakeResponse(b"not found", 404)
        return FakeResponse(self.responses[url])


def make_cli_zip(filename: str = "bw", payload: bytes = b"#!/bin/sh\necho bw\n") -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as archive:
        archive.writestr(filename, payload)
    return buffer.getvalue()


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@pytest.fixture
def cli_zip():
    return make_cli_zip()


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def valid_settings():
    """Settings that pass validation, using the Bitwarden cloud."""
    return ImportSettings(
        api_client_id="user.1234",
        api_client_secret="api-secret",
        master_password="bitwarden-master",
        lastpass_email="me@example.com",
        lastpass_password="lastpass-master",
    )
