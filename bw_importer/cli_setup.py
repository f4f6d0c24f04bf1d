"""
Download and verification of the Bitwarden CLI.

The CLI is fetched from the official release page, checked against the
published SHA-256 checksum and extracted into the cache directory. An archive
whose digest does not match is never extracted.
"""

import os
import hashlib
import logging
import platform
import zipfile
from typing import Optional

import requests

from . import config
from .errors import CliSetupError, ChecksumMismatchError
from .utils import make_executable, remove_quietly

logger = logging.getLogger(__name__)


def cli_platform_name(system: Optional[str] = None) -> str:
    """Release asset platform name for the running OS."""
    system = system or platform.system()
    return config.CLI_PLATFORM_NAMES.get(system, "linux")


def cli_executable_path(cache_dir: str, system: Optional[str] = None) -> str:
    """Location of the extracted CLI executable."""
    system = system or platform.system()
    filename = config.CLI_FILENAME_WINDOWS if system == "Windows" else config.CLI_FILENAME
    return os.path.join(cache_dir, filename)


def sha256_file(filepath: str) -> str:
    """Hex SHA-256 digest of a file."""
    digest = hashlib.sha256()
    with open(filepath, 'rb') as f:
        for block in iter(lambda: f.read(config.CLI_DOWNLOAD_CHUNK_SIZE), b''):
            digest.update(block)
    return digest.hexdigest()


def _read_text(filepath: str) -> str:
    with open(filepath, 'r', encoding='utf-8') as f:
        return f.read().strip()


class CliProvisioner:
    """Keeps a verified copy of the Bitwarden CLI in the cache directory."""

    def __init__(self, cache_dir: str, version: str = config.CLI_VERSION,
                 session: Optional[requests.Session] = None, system: Optional[str] = None):
        """
        Args:
            cache_dir: Directory holding the CLI and its checksum file
            version: CLI release to install
            session: HTTP session used for downloads
            system: Override for platform.system()
        """
        self.cache_dir = cache_dir
        self.version = version
        self.session = session or requests.Session()
        self.system = system or platform.system()

        platform_name = cli_platform_name(self.system)
        self.hash_url = config.CLI_HASH_URL_TEMPLATE.format(version=version, platform=platform_name)
        self.zip_url = config.CLI_ZIP_URL_TEMPLATE.format(version=version, platform=platform_name)
        self.hash_path = os.path.join(cache_dir, config.CLI_HASH_FILE)
        self.pending_hash_path = os.path.join(cache_dir, config.CLI_HASH_DOWNLOAD_FILE)
        self.zip_path = os.path.join(cache_dir, config.CLI_ZIP_FILE)
        self.cli_path = cli_executable_path(cache_dir, self.system)

    def ensure_cli(self) -> str:
        """
        Make sure the current CLI release is installed.

        Returns:
            Path to the CLI executable

        Raises:
            ChecksumMismatchError: If the downloaded archive fails verification
            CliSetupError: If downloading or extracting fails
        """
        try:
            if self.has_latest_cli():
                logger.info(f"Bitwarden CLI {self.version} already installed")
                return self.cli_path

            logger.info(f"Downloading Bitwarden CLI {self.version}")
            self._download(self.hash_url, self.pending_hash_path)
            self._download(self.zip_url, self.zip_path)
            self.verify_archive()
            self._extract()
            # Only an installed executable may be paired with the new checksum.
            os.replace(self.pending_hash_path, self.hash_path)
        except CliSetupError:
            raise
        except (requests.RequestException, zipfile.BadZipFile, OSError) as e:
            logger.error(f"Bitwarden CLI setup failed: {e}")
            raise CliSetupError(config.MSG_CLI_SETUP_FAILED) from e
        finally:
            remove_quietly(self.pending_hash_path)

        logger.info(f"Bitwarden CLI installed at {self.cli_path}")
        return self.cli_path

    def has_latest_cli(self) -> bool:
        """
        Compare the cached checksum file with the one currently published.

        This only detects whether a new download is needed. It does not
        re-verify the installed executable.
        """
        if not os.path.exists(self.hash_path) or not os.path.exists(self.cli_path):
            return False

        cached_hash = _read_text(self.hash_path)
        response = self.session.get(self.hash_url)
        response.raise_for_status()
        upstream_hash = response.text.strip()
        return cached_hash.lower() == upstream_hash.lower()

    def verify_archive(self) -> None:
        """
        Check the downloaded archive against the downloaded checksum file.

        Raises:
            ChecksumMismatchError: If the digests differ
        """
        published = _read_text(self.pending_hash_path).split()
        expected = published[0] if published else ""
        actual = sha256_file(self.zip_path)

        if actual.lower() != expected.lower():
            logger.error(f"Bitwarden CLI checksum mismatch: expected {expected}, got {actual}")
            raise ChecksumMismatchError(config.MSG_CLI_SETUP_FAILED)

    def _download(self, url: str, filepath: str) -> None:
        response = self.session.get(url, stream=True)
        response.raise_for_status()
        with open(filepath, 'wb') as f:
            for chunk in response.iter_content(chunk_size=config.CLI_DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    f.write(chunk)

    def _extract(self) -> None:
        with zipfile.ZipFile(self.zip_path) as archive:
            archive.extractall(self.cache_dir)

        if self.system != "Windows":
            make_executable(self.cli_path)
