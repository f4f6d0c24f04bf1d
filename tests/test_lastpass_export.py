"""
Tests for exporting a LastPass vault to the interchange CSV.
"""
import csv
import os
import uuid

import pytest
from lastpass import parser as lastpass_parser
from lastpass.account import Account
from lastpass.chunk import Chunk
from lastpass.exceptions import (
    LastPassIncorrectGoogleAuthenticatorCodeError,
    LastPassInvalidPasswordError,
)

from bw_importer import config
from bw_importer.errors import ExportError
from bw_importer.lastpass_export import (
    AccountRecord, LastPassExporter, LastPassVault, LastPassOutOfBandRequiredError,
    account_from_lastpass, filter_accounts, request_login,
    OTP_GOOGLE_AUTHENTICATOR, OTP_OUT_OF_BAND,
)


class FakeAccount:
    """Shaped like lastpass-python accounts, which hold bytes."""

    def __init__(self, name, url=b"https://example.com", username=b"me", password=b"pw",
                 notes=b"", group=b""):
        self.id = b"1"
        self.name = name
        self.url = url
        self.username = username
        self.password = password
        self.notes = notes
        self.group = group


class FakeVault:
    def __init__(self, accounts):
        self.accounts = accounts


class FakeOpener:
    """Records calls; optionally demands a second factor first."""

    def __init__(self, accounts, require_otp=None, require_out_of_band=False):
        self.accounts = accounts
        self.require_otp = require_otp
        self.require_out_of_band = require_out_of_band
        self.calls = []

    def __call__(self, email, password, multifactor_password, client_id, out_of_band=False):
        self.calls.append((email, password, multifactor_password, client_id, out_of_band))
        if self.require_otp and multifactor_password != self.require_otp:
            raise LastPassIncorrectGoogleAuthenticatorCodeError("Google Authenticator code is missing or incorrect")
        if self.require_out_of_band and not (out_of_band or multifactor_password):
            raise LastPassOutOfBandRequiredError("outofbandrequired")
        return FakeVault(self.accounts)


def read_rows(path):
    with open(path, newline='', encoding='utf-8') as f:
        return list(csv.DictReader(f))


@pytest.fixture
def accounts():
    return [
        FakeAccount(b"Personal mail", url=b"https://mail.example.com", username=b"me@example.com",
                    password=b"p\xc3\xa4ss", notes=b"line one\nline two", group=b"Email"),
        FakeAccount(b"Team wiki"),
    ]


@pytest.fixture
def output_path(tmp_path):
    return str(tmp_path / config.LASTPASS_EXPORT_FILE)


@pytest.fixture
def chunk_keys(monkeypatch):
    """Stubs decryption so vaults can be built from plain chunks; records the key per ACCT."""
    keys = []

    def parse_acct(chunk, key):
        keys.append(key)
        return Account(b"1", chunk.payload, b"me", b"pw", b"https://example.com", b"")

    def parse_shar(chunk, key, rsa_key):
        return {'id': b"42", 'name': chunk.payload, 'encryption_key': b"shared-key"}

    monkeypatch.setattr(lastpass_parser, "extract_chunks", lambda blob: blob)
    monkeypatch.setattr(lastpass_parser, "parse_ACCT", parse_acct)
    monkeypatch.setattr(lastpass_parser, "parse_SHAR", parse_shar)
    return keys


def vault_from_chunks(*chunks):
    return LastPassVault(list(chunks) + [Chunk(b'ENDM', b'OK')], b"vault-key")


class TestLastPassVault:
    """Shared folder detection on a real lastpass-python vault."""

    def test_accounts_after_shar_are_shared(self, chunk_keys):
        vault = vault_from_chunks(
            Chunk(b'ACCT', b"personal"),
            Chunk(b'SHAR', b"Shared-Team"),
            Chunk(b'ACCT', b"shared"),
        )

        records = [account_from_lastpass(a) for a in vault.accounts]

        assert [(r.name, r.shared) for r in records] == [("personal", False), ("shared", True)]
        assert chunk_keys == [b"vault-key", b"shared-key"]

    def test_unnamed_shared_folder_is_still_shared(self, chunk_keys):
        vault = vault_from_chunks(Chunk(b'SHAR', b""), Chunk(b'ACCT', b"shared"))
        assert account_from_lastpass(vault.accounts[0]).shared is True

    def test_skip_shared_exports_personal_only(self, chunk_keys, output_path):
        vault = vault_from_chunks(
            Chunk(b'ACCT', b"personal"),
            Chunk(b'SHAR', b"Shared-Team"),
            Chunk(b'ACCT', b"shared"),
        )
        exporter = LastPassExporter(vault_opener=lambda *args, **kwargs: vault)

        exporter.export("me@example.com", "lp", True, output_path)
        assert [r['name'] for r in read_rows(output_path)] == ["personal"]

        exporter.export("me@example.com", "lp", False, output_path)
        assert [r['name'] for r in read_rows(output_path)] == ["personal", "shared"]


OUT_OF_BAND_REQUIRED = (b'<response><error cause="outofbandrequired" '
                        b'message="Multifactor authentication required" retryid="retry-1"/></response>')
LOGIN_OK = b'<ok sessionid="session-1"/>'


class FakeLoginResponse:
    status_code = 200

    def __init__(self, content):
        self.content = content


class FakeWebClient:
    """Answers login posts in order and records each request body."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.bodies = []

    def post(self, url, data=None, headers=None):
        self.bodies.append(dict(data))
        return FakeLoginResponse(self.answers.pop(0))


class TestRequestLogin:
    """Tests for the LastPass login request with out-of-band approval."""

    def test_plain_login(self):
        client = FakeWebClient(LOGIN_OK)
        session = request_login("me@example.com", "lp", 1, client_id="client-1", web_client=client)

        assert session.id == "session-1"
        assert client.bodies[0]['imei'] == "client-1"
        assert 'outofbandrequest' not in client.bodies[0]

    def test_out_of_band_required_is_reported(self):
        client = FakeWebClient(OUT_OF_BAND_REQUIRED)
        with pytest.raises(LastPassOutOfBandRequiredError):
            request_login("me@example.com", "lp", 1, web_client=client)
        assert len(client.bodies) == 1

    def test_out_of_band_waits_for_approval(self):
        client = FakeWebClient(OUT_OF_BAND_REQUIRED, LOGIN_OK)
        session = request_login("me@example.com", "lp", 1, out_of_band=True, web_client=client)

        assert session.id == "session-1"
        assert client.bodies[0]['outofbandrequest'] == 1
        assert 'outofbandretry' not in client.bodies[0]
        assert client.bodies[1]['outofbandretry'] == 1
        assert client.bodies[1]['outofbandretryid'] == "retry-1"

    def test_out_of_band_gives_up(self, monkeypatch):
        monkeypatch.setattr(config, "LASTPASS_OUT_OF_BAND_MAX_ATTEMPTS", 2)
        client = FakeWebClient(OUT_OF_BAND_REQUIRED, OUT_OF_BAND_REQUIRED)

        with pytest.raises(LastPassOutOfBandRequiredError):
            request_login("me@example.com", "lp", 1, out_of_band=True, web_client=client)
        assert len(client.bodies) == 2

    def test_other_errors_use_library_exceptions(self):
        client = FakeWebClient(b'<response><error cause="unknownpassword" message="Invalid password"/></response>')
        with pytest.raises(LastPassInvalidPasswordError):
            request_login("me@example.com", "lp", 1, web_client=client)


class TestAccountMapping:

    def test_decodes_bytes(self, accounts):
        record = account_from_lastpass(accounts[0])
        assert record == AccountRecord(
            name="Personal mail", url="https://mail.example.com", username="me@example.com",
            password="päss", notes="line one\nline two", folder="Email", shared=False,
        )

    def test_missing_values_become_empty(self):
        account = FakeAccount(b"Bare", url=None, notes=None, group=None)
        record = account_from_lastpass(account)
        assert record.url == ""
        assert record.notes == ""
        assert record.folder == ""

    def test_filter_accounts(self):
        records = [AccountRecord("a", "", "", ""), AccountRecord("b", "", "", "", shared=True)]
        assert [r.name for r in filter_accounts(records, skip_shared=True)] == ["a"]
        assert [r.name for r in filter_accounts(records, skip_shared=False)] == ["a", "b"]


class TestExport:

    def test_writes_lastpass_csv(self, accounts, output_path):
        exporter = LastPassExporter(vault_opener=FakeOpener(accounts))

        assert exporter.export("me@example.com", "lp", False, output_path) == output_path

        rows = read_rows(output_path)
        assert list(rows[0].keys()) == config.LASTPASS_CSV_FIELDS
        assert rows[0] == {
            'url': "https://mail.example.com",
            'username': "me@example.com",
            'password': "päss",
            'totp': "",
            'extra': "line one\nline two",
            'name': "Personal mail",
            'grouping': "Email",
            'fav': "0",
        }
        assert [r['name'] for r in rows] == ["Personal mail", "Team wiki"]

    def test_empty_vault_writes_header_only(self, output_path):
        LastPassExporter(vault_opener=FakeOpener([])).export("me@example.com", "lp", False, output_path)
        with open(output_path, encoding='utf-8') as f:
            assert f.read().strip() == ",".join(config.LASTPASS_CSV_FIELDS)

    @pytest.mark.skipif(os.name == 'nt', reason="POSIX permissions")
    def test_csv_readable_by_owner_only(self, accounts, output_path):
        LastPassExporter(vault_opener=FakeOpener(accounts)).export("me@example.com", "lp", False, output_path)
        assert os.stat(output_path).st_mode & 0o077 == 0

    def test_fresh_client_id_per_export(self, accounts, output_path):
        opener = FakeOpener(accounts)
        exporter = LastPassExporter(vault_opener=opener)
        exporter.export("me@example.com", "lp", False, output_path)
        exporter.export("me@example.com", "lp", False, output_path)

        first, second = opener.calls[0][3], opener.calls[1][3]
        assert first != second
        assert first == first.lower()
        assert uuid.UUID(first)

    def test_any_failure_becomes_export_error(self, output_path):
        def broken_opener(*args):
            raise ConnectionError("network down")

        exporter = LastPassExporter(vault_opener=broken_opener)
        with pytest.raises(ExportError) as exc_info:
            exporter.export("me@example.com", "lp", False, output_path)
        assert exc_info.value.message == config.MSG_EXPORT_FAILED
        assert not os.path.exists(output_path)


class TestSecondFactor:

    def test_asks_callback_and_retries(self, accounts, output_path):
        opener = FakeOpener(accounts, require_otp="123456")
        prompts = []

        def otp_callback(kind):
            prompts.append(kind)
            return "123456"

        LastPassExporter(vault_opener=opener, otp_callback=otp_callback).export(
            "me@example.com", "lp", False, output_path)

        assert prompts == [OTP_GOOGLE_AUTHENTICATOR]
        assert [c[2] for c in opener.calls] == [None, "123456"]
        assert opener.calls[0][3] == opener.calls[1][3]

    def test_without_callback_fails(self, accounts, output_path):
        exporter = LastPassExporter(vault_opener=FakeOpener(accounts, require_otp="123456"))
        with pytest.raises(ExportError):
            exporter.export("me@example.com", "lp", False, output_path)

    def test_cancelled_prompt_fails(self, accounts, output_path):
        opener = FakeOpener(accounts, require_otp="123456")
        exporter = LastPassExporter(vault_opener=opener, otp_callback=lambda kind: None)
        with pytest.raises(ExportError):
            exporter.export("me@example.com", "lp", False, output_path)
        assert len(opener.calls) == 1

    def test_wrong_code_fails(self, accounts, output_path):
        opener = FakeOpener(accounts, require_otp="123456")
        exporter = LastPassExporter(vault_opener=opener, otp_callback=lambda kind: "000000")
        with pytest.raises(ExportError):
            exporter.export("me@example.com", "lp", False, output_path)

    def test_empty_code_fails(self, accounts, output_path):
        opener = FakeOpener(accounts, require_otp="123456")
        exporter = LastPassExporter(vault_opener=opener, otp_callback=lambda kind: "")
        with pytest.raises(ExportError):
            exporter.export("me@example.com", "lp", False, output_path)
        assert len(opener.calls) == 1


class TestOutOfBand:
    """Push and device approval second factors."""

    def test_empty_answer_approves_on_device(self, accounts, output_path):
        opener = FakeOpener(accounts, require_out_of_band=True)
        prompts = []

        def otp_callback(kind):
            prompts.append(kind)
            return ""

        LastPassExporter(vault_opener=opener, otp_callback=otp_callback).export(
            "me@example.com", "lp", False, output_path)

        assert prompts == [OTP_OUT_OF_BAND]
        client_id = opener.calls[0][3]
        assert opener.calls[1] == ("me@example.com", "lp", None, client_id, True)
        assert len(read_rows(output_path)) == 2

    def test_passcode_is_sent_as_code(self, accounts, output_path):
        opener = FakeOpener(accounts, require_out_of_band=True)
        LastPassExporter(vault_opener=opener, otp_callback=lambda kind: "654321").export(
            "me@example.com", "lp", False, output_path)

        assert opener.calls[1][2] == "654321"
        assert opener.calls[1][4] is False

    def test_cancelled_approval_fails(self, accounts, output_path):
        opener = FakeOpener(accounts, require_out_of_band=True)
        exporter = LastPassExporter(vault_opener=opener, otp_callback=lambda kind: None)
        with pytest.raises(ExportError):
            exporter.export("me@example.com", "lp", False, output_path)
        assert len(opener.calls) == 1
