"""
LastPass vault export.

LEGAL NOTICE:
This module logs into a LastPass account and writes its decrypted items to a
local CSV file. It must only be used with the account owner's credentials and
consent. The CSV is deleted again at the end of every import run.
"""

import csv
import uuid
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Dict, Optional, Any
from xml.etree import ElementTree

import requests
import lastpass
from lastpass import fetcher, parser
from lastpass.exceptions import (
    NetworkError,
    InvalidResponseError,
    LastPassIncorrectGoogleAuthenticatorCodeError,
    LastPassIncorrectYubikeyPasswordError,
    LastPassUnknownError,
)

from . import config
from .errors import ExportError
from .utils import restrict_file_permissions

logger = logging.getLogger(__name__)

OTP_GOOGLE_AUTHENTICATOR = "Google Authenticator code"
OTP_YUBIKEY = "YubiKey password"
OTP_OUT_OF_BAND = "out-of-band approval"

# (email, password, multifactor_password, client_id, out_of_band=False) -> object with `.accounts`
VaultOpener = Callable[..., Any]
# Asked for the second factor; returns the code, "" to approve out-of-band, or None to give up.
OtpCallback = Callable[[str], Optional[str]]


@dataclass
class AccountRecord:
    """A single account read from the LastPass vault."""
    name: str
    url: str
    username: str
    password: str
    notes: str = ""
    folder: str = ""
    shared: bool = False

    def to_csv_row(self) -> Dict[str, str]:
        """Map to the columns of the `lastpasscsv` importer."""
        return {
            'url': self.url,
            'username': self.username,
            'password': self.password,
            'totp': '',
            'extra': self.notes,
            'name': self.name,
            'grouping': self.folder,
            'fav': '0',
        }


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return str(value)


def account_from_lastpass(account: Any) -> AccountRecord:
    """Convert an account object from the lastpass library."""
    shared_folder = getattr(account, 'shared_folder', None)
    return AccountRecord(
        name=_text(getattr(account, 'name', None)),
        url=_text(getattr(account, 'url', None)),
        username=_text(getattr(account, 'username', None)),
        password=_text(getattr(account, 'password', None)),
        notes=_text(getattr(account, 'notes', None)),
        folder=_text(getattr(account, 'group', None)),
        shared=bool(shared_folder),
    )


class LastPassOutOfBandRequiredError(LastPassUnknownError):
    """LastPass error: the login must be approved on another device"""


def request_login(username: str, password: str, key_iteration_count: int,
                  multifactor_password: Optional[str] = None, client_id: Optional[str] = None,
                  out_of_band: bool = False, web_client: Any = requests) -> Any:
    """
    Log into LastPass, optionally waiting for out-of-band approval.

    Same request as lastpass-python's `fetcher.request_login`, plus the
    `outofbandrequest` / `outofbandretry` exchange used by push based second
    factors.

    Raises:
        LastPassOutOfBandRequiredError: If approval is required and out_of_band is False
    """
    body = {
        'method': 'mobile',
        'web': 1,
        'xml': 1,
        'username': username,
        'hash': fetcher.make_hash(username, password, key_iteration_count),
        'iterations': key_iteration_count,
    }
    if multifactor_password:
        body['otp'] = multifactor_password
    if client_id:
        body['imei'] = client_id
    if out_of_band:
        body['outofbandrequest'] = 1

    for _ in range(config.LASTPASS_OUT_OF_BAND_MAX_ATTEMPTS):
        response = web_client.post(config.LASTPASS_LOGIN_URL, data=body, headers=fetcher.headers)
        if response.status_code != requests.codes.ok:
            raise NetworkError()

        try:
            parsed = ElementTree.fromstring(response.content)
        except ElementTree.ParseError:
            raise InvalidResponseError()

        session = fetcher.create_session(parsed, key_iteration_count)
        if session:
            return session

        error = parsed.find('error') if parsed.tag == 'response' else None
        if error is None or error.attrib.get('cause') != 'outofbandrequired':
            raise fetcher.login_error(parsed)
        if not out_of_band:
            raise LastPassOutOfBandRequiredError(error.attrib.get('message') or 'outofbandrequired')

        retry_id = error.attrib.get('retryid')
        if not retry_id:
            raise LastPassOutOfBandRequiredError('out-of-band approval was not granted')
        body['outofbandretry'] = 1
        body['outofbandretryid'] = retry_id

    raise LastPassOutOfBandRequiredError('timed out waiting for out-of-band approval')


class LastPassVault(lastpass.Vault):
    """lastpass-python vault that knows which accounts live in shared folders."""

    @classmethod
    def open_remote(cls, username, password, multifactor_password=None, client_id=None, out_of_band=False):
        blob = cls.fetch_blob(username, password, multifactor_password, client_id, out_of_band)
        return cls.open(blob, username, password)

    @classmethod
    def fetch_blob(cls, username, password, multifactor_password=None, client_id=None, out_of_band=False):
        key_iteration_count = fetcher.request_iteration_count(username)
        session = request_login(username, password, key_iteration_count,
                                multifactor_password, client_id, out_of_band)
        blob = fetcher.fetch(session)
        fetcher.logout(session)
        return blob

    def parse_accounts(self, chunks, encryption_key):
        """
        Parse ACCT chunks, tagging each account with its shared folder.

        Every ACCT after a SHAR chunk belongs to that shared folder and is
        encrypted with the folder's key.
        """
        accounts = []
        key = encryption_key
        rsa_private_key = None
        shared_folder = None

        for chunk in chunks:
            if chunk.id == b'ACCT':
                account = parser.parse_ACCT(chunk, key)
                if account:
                    account.shared_folder = shared_folder
                    accounts.append(account)
            elif chunk.id == b'PRIK':
                rsa_private_key = parser.parse_PRIK(chunk, encryption_key)
            elif chunk.id == b'SHAR':
                folder = parser.parse_SHAR(chunk, encryption_key, rsa_private_key)
                key = folder['encryption_key']
                shared_folder = folder['name'] or folder['id']

        return accounts


def open_lastpass_vault(email: str, password: str, multifactor_password: Optional[str], client_id: str,
                        out_of_band: bool = False) -> Any:
    """Default VaultOpener backed by lastpass-python."""
    return LastPassVault.open_remote(email, password, multifactor_password, client_id, out_of_band)


def filter_accounts(accounts: Iterable[AccountRecord], skip_shared: bool) -> List[AccountRecord]:
    """Drop shared accounts when requested."""
    return [a for a in accounts if not a.shared or not skip_shared]


def write_lastpass_csv(accounts: Iterable[AccountRecord], output_path: str) -> int:
    """
    Write accounts in the `lastpasscsv` layout.

    Returns:
        Number of rows written
    """
    count = 0
    with open(output_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=config.LASTPASS_CSV_FIELDS)
        writer.writeheader()
        for account in accounts:
            writer.writerow(account.to_csv_row())
            count += 1
    restrict_file_permissions(output_path)
    return count


class LastPassExporter:
    """Exports a LastPass vault to the interchange CSV."""

    def __init__(self, vault_opener: Optional[VaultOpener] = None, otp_callback: Optional[OtpCallback] = None):
        """
        Initialize the exporter.

        Args:
            vault_opener: Opens a vault; defaults to lastpass-python
            otp_callback: Asked synchronously for a second factor when LastPass requires one
        """
        self.vault_opener = vault_opener or open_lastpass_vault
        self.otp_callback = otp_callback

    def export(self, email: str, password: str, skip_shared: bool, output_path: str) -> str:
        """
        Log into LastPass and write the vault to a CSV file.

        Args:
            email: LastPass account email
            password: LastPass master password
            skip_shared: Leave out items from shared folders
            output_path: Where to write the CSV

        Returns:
            The path of the written CSV

        Raises:
            ExportError: If login, download or writing fails for any reason
        """
        try:
            vault = self._open_vault(email, password)
            accounts = [account_from_lastpass(a) for a in vault.accounts]
            exported = filter_accounts(accounts, skip_shared)
            count = write_lastpass_csv(exported, output_path)
        except Exception as e:
            # Exception messages may contain account data.
            logger.error(f"LastPass export failed: {type(e).__name__}")
            raise ExportError(config.MSG_EXPORT_FAILED) from e

        logger.info(f"Exported {count} of {len(accounts)} LastPass accounts")
        return output_path

    def _open_vault(self, email: str, password: str) -> Any:
        client_id = str(uuid.uuid4()).lower()
        try:
            return self.vault_opener(email, password, None, client_id)
        except LastPassIncorrectGoogleAuthenticatorCodeError:
            kind = OTP_GOOGLE_AUTHENTICATOR
        except LastPassIncorrectYubikeyPasswordError:
            kind = OTP_YUBIKEY
        except LastPassOutOfBandRequiredError:
            kind = OTP_OUT_OF_BAND

        logger.info(f"LastPass requires {kind}")
        code = self.otp_callback(kind) if self.otp_callback else None
        if code is None:
            raise ExportError(config.MSG_EXPORT_FAILED)

        if kind == OTP_OUT_OF_BAND:
            if code:
                return self.vault_opener(email, password, code, client_id)
            logger.info("Waiting for out-of-band approval")
            return self.vault_opener(email, password, None, client_id, out_of_band=True)

        if not code:
            raise ExportError(config.MSG_EXPORT_FAILED)
        return self.vault_opener(email, password, code, client_id)
