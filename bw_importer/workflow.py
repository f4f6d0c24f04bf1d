"""
The LastPass to Bitwarden import workflow.

A run validates the settings, exports the LastPass vault to CSV, makes sure a
verified Bitwarden CLI is installed, then logs in, unlocks and imports through
the CLI. The first failing step ends the run. Transient files are removed
before and after every run.
"""

import os
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from . import config
from .bw_cli import BitwardenCli
from .cli_setup import CliProvisioner
from .errors import ValidationError, ExportError, CliSetupError, CliCommandError
from .lastpass_export import LastPassExporter
from .settings import ImportSettings, ensure_valid
from .utils import remove_quietly

logger = logging.getLogger(__name__)


class ImportPhase(Enum):
    """Where a run ended."""
    VALIDATION = "validation"
    PREPARE = "prepare"
    EXPORT = "export"
    CLI_SETUP = "cli_setup"
    CONFIG_SERVER = "config_server"
    LOGIN = "login"
    UNLOCK = "unlock"
    IMPORT = "import"
    COMPLETE = "complete"
    UNEXPECTED = "unexpected"


_STEP_PHASES = {
    "config server": ImportPhase.CONFIG_SERVER,
    "login": ImportPhase.LOGIN,
    "unlock": ImportPhase.UNLOCK,
    "import": ImportPhase.IMPORT,
}


@dataclass(frozen=True)
class ImportResult:
    """Outcome of a run, handed back to whoever presents it."""
    success: bool
    message: str
    phase: ImportPhase

    @classmethod
    def failed(cls, message: str, phase: ImportPhase) -> 'ImportResult':
        return cls(False, message, phase)

    @classmethod
    def completed(cls) -> 'ImportResult':
        return cls(True, config.MSG_IMPORT_SUCCESS, ImportPhase.COMPLETE)

    @classmethod
    def unexpected(cls) -> 'ImportResult':
        """Result for an error the workflow did not anticipate."""
        return cls(False, config.MSG_UNEXPECTED_ERROR, ImportPhase.UNEXPECTED)


class ImportWorkflow:
    """Runs the import pipeline against one cache directory."""

    def __init__(self, cache_dir: str,
                 exporter: Optional[LastPassExporter] = None,
                 provisioner: Optional[CliProvisioner] = None,
                 cli_factory: Optional[Callable[[str, str], BitwardenCli]] = None):
        """
        Args:
            cache_dir: Directory for the CLI, its state and the exported CSV
            exporter: LastPass exporter
            provisioner: Installs the Bitwarden CLI
            cli_factory: Builds the CLI driver from (cli_path, data_dir)
        """
        self.cache_dir = cache_dir
        self.exporter = exporter or LastPassExporter()
        self.provisioner = provisioner or CliProvisioner(cache_dir)
        self.cli_factory = cli_factory or BitwardenCli
        self.export_path = os.path.join(cache_dir, config.LASTPASS_EXPORT_FILE)

    def run(self, settings: ImportSettings) -> ImportResult:
        """
        Run the whole import.

        Args:
            settings: Snapshot of the user's input

        Returns:
            The result of the run; failures are reported, never raised
        """
        try:
            ensure_valid(settings)
        except ValidationError as e:
            logger.info(f"Import not started: {e.message}")
            return ImportResult.failed(e.message, ImportPhase.VALIDATION)

        logger.info(f"Starting import with {settings!r}")
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create cache directory {self.cache_dir}: {e}")
            return ImportResult.failed(config.MSG_CACHE_DIR_FAILED, ImportPhase.PREPARE)

        self.cleanup()
        try:
            return self._run(settings)
        finally:
            self.cleanup()

    def _run(self, settings: ImportSettings) -> ImportResult:
        try:
            self.exporter.export(
                settings.lastpass_email,
                settings.lastpass_password,
                settings.skip_shared,
                self.export_path,
            )
        except ExportError as e:
            return ImportResult.failed(e.message, ImportPhase.EXPORT)

        try:
            cli_path = self.provisioner.ensure_cli()
        except CliSetupError as e:
            return ImportResult.failed(e.message, ImportPhase.CLI_SETUP)

        cli = self.cli_factory(cli_path, self.cache_dir)
        try:
            if settings.uses_custom_server():
                cli.config_server(settings.server_url)

            session_key = cli.login(settings.api_client_id, settings.api_client_secret)
            if not session_key:
                session_key = cli.unlock(settings.master_password)

            import_format = config.SERVICE_IMPORT_FORMATS[settings.service]
            cli.import_file(import_format, self.export_path, session_key)
        except CliCommandError as e:
            return ImportResult.failed(e.message, _STEP_PHASES.get(e.step, ImportPhase.IMPORT))

        logger.info("Import completed")
        return ImportResult.completed()

    def cleanup(self) -> None:
        """Remove the exported CSV, the CLI state and the downloaded archive."""
        for filename in config.TRANSIENT_FILES:
            remove_quietly(os.path.join(self.cache_dir, filename))


def run_import(settings: ImportSettings, cache_dir: str,
               otp_callback: Optional[Callable[[str], Optional[str]]] = None) -> ImportResult:
    """Run an import with the default collaborators."""
    workflow = ImportWorkflow(cache_dir, exporter=LastPassExporter(otp_callback=otp_callback))
    return workflow.run(settings)
