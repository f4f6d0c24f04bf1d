"""
User interface for the Bitwarden Importer.

LEGAL NOTICE:
This tool moves passwords between password managers on behalf of their owner.
It must only be used with accounts you own, on a device you control.
"""

import logging
from typing import Optional

from PyQt5.QtWidgets import (
    QWidget, QVBoxLayout, QFormLayout, QGroupBox, QLabel, QLineEdit,
    QPushButton, QCheckBox, QComboBox, QMessageBox, QInputDialog
)
from PyQt5.QtCore import Qt, QThread, pyqtSignal, pyqtSlot

from .settings import ImportSettings, validate_settings
from .workflow import ImportResult, run_import
from .lastpass_export import OTP_OUT_OF_BAND
from .reporter import ResultReporter
from . import config

logger = logging.getLogger(__name__)


class ImportWorker(QThread):
    """Worker thread running one import."""

    finished_import = pyqtSignal(object)
    otp_requested = pyqtSignal(str)

    def __init__(self, settings: ImportSettings, cache_dir: str):
        super().__init__()
        self.settings = settings
        self.cache_dir = cache_dir
        self.otp_answer: Optional[str] = None

    def request_otp(self, kind: str) -> Optional[str]:
        """Ask the UI thread for a second factor and wait for the answer."""
        self.otp_answer = None
        self.otp_requested.emit(kind)
        return self.otp_answer

    def run(self):
        """Run the import process."""
        try:
            result = run_import(self.settings, self.cache_dir, otp_callback=self.request_otp)
        except Exception as e:
            logger.error(f"Unexpected error during import: {e}", exc_info=True)
            result = ImportResult.unexpected()
        self.finished_import.emit(result)


class ImporterWindow(QWidget):
    """Form collecting the Bitwarden and LastPass credentials."""

    def __init__(self, cache_dir: str, defaults: Optional[ImportSettings] = None):
        super().__init__()
        self.cache_dir = cache_dir
        self.worker: Optional[ImportWorker] = None
        self.reporter = ResultReporter(self.show_alert, self.clear_inputs)

        self.setWindowTitle(config.APP_TITLE_PREFIX)
        self.setMinimumWidth(480)
        self.setup_ui()
        self.load_settings(defaults or ImportSettings())

    def setup_ui(self):
        """Set up the user interface."""
        layout = QVBoxLayout(self)

        bitwarden_group = QGroupBox("Bitwarden")
        bitwarden_form = QFormLayout(bitwarden_group)
        self.server_url_input = QLineEdit()
        bitwarden_form.addRow("Server URL:", self.server_url_input)
        self.client_id_input = QLineEdit()
        bitwarden_form.addRow("API Key client_id:", self.client_id_input)
        self.client_secret_input = QLineEdit()
        self.client_secret_input.setEchoMode(QLineEdit.Password)
        bitwarden_form.addRow("API Key client_secret:", self.client_secret_input)
        api_key_link = QLabel(f'<a href="{config.BITWARDEN_API_KEY_URL}">Where do I find my API key?</a>')
        api_key_link.setOpenExternalLinks(True)
        bitwarden_form.addRow(api_key_link)
        self.key_connector_checkbox = QCheckBox("My account uses Key Connector")
        self.key_connector_checkbox.toggled.connect(self.on_key_connector_toggled)
        bitwarden_form.addRow(self.key_connector_checkbox)
        self.master_password_label = QLabel("Master password:")
        self.master_password_input = QLineEdit()
        self.master_password_input.setEchoMode(QLineEdit.Password)
        bitwarden_form.addRow(self.master_password_label, self.master_password_input)
        layout.addWidget(bitwarden_group)

        source_group = QGroupBox("Import from")
        source_form = QFormLayout(source_group)
        self.service_combo = QComboBox()
        self.service_combo.addItems(config.SUPPORTED_SERVICES)
        source_form.addRow("Service:", self.service_combo)
        self.lastpass_email_input = QLineEdit()
        source_form.addRow("LastPass email:", self.lastpass_email_input)
        self.lastpass_password_input = QLineEdit()
        self.lastpass_password_input.setEchoMode(QLineEdit.Password)
        source_form.addRow("LastPass master password:", self.lastpass_password_input)
        self.skip_shared_checkbox = QCheckBox("Skip shared items")
        source_form.addRow(self.skip_shared_checkbox)
        layout.addWidget(source_group)

        learn_more = QLabel(f'<a href="{config.BITWARDEN_HELP_URL}">Learn more</a>')
        learn_more.setOpenExternalLinks(True)
        layout.addWidget(learn_more)

        self.please_wait_label = QLabel("Importing, please wait...")
        self.please_wait_label.setVisible(False)
        layout.addWidget(self.please_wait_label)

        self.submit_button = QPushButton("Import")
        self.submit_button.clicked.connect(self.start_import)
        layout.addWidget(self.submit_button)

        cache_label = QLabel(f"Cache: {self.cache_dir}")
        cache_label.setTextInteractionFlags(Qt.TextSelectableByMouse)
        layout.addWidget(cache_label)

    def load_settings(self, settings: ImportSettings):
        """Fill the form from settings."""
        self.server_url_input.setText(settings.server_url)
        self.client_id_input.setText(settings.api_client_id)
        self.client_secret_input.setText(settings.api_client_secret)
        self.key_connector_checkbox.setChecked(settings.key_connector)
        self.master_password_input.setText(settings.master_password)
        index = self.service_combo.findText(settings.service)
        if index >= 0:
            self.service_combo.setCurrentIndex(index)
        self.lastpass_email_input.setText(settings.lastpass_email)
        self.lastpass_password_input.setText(settings.lastpass_password)
        self.skip_shared_checkbox.setChecked(settings.skip_shared)
        self.on_key_connector_toggled(settings.key_connector)

    def collect_settings(self) -> ImportSettings:
        """Snapshot the form."""
        return ImportSettings(
            server_url=self.server_url_input.text().strip(),
            api_client_id=self.client_id_input.text().strip(),
            api_client_secret=self.client_secret_input.text().strip(),
            master_password=self.master_password_input.text(),
            key_connector=self.key_connector_checkbox.isChecked(),
            service=self.service_combo.currentText(),
            lastpass_email=self.lastpass_email_input.text().strip(),
            lastpass_password=self.lastpass_password_input.text(),
            skip_shared=self.skip_shared_checkbox.isChecked(),
        )

    def on_key_connector_toggled(self, checked: bool):
        """The master password is not needed with Key Connector."""
        self.master_password_label.setVisible(not checked)
        self.master_password_input.setVisible(not checked)

    def start_import(self):
        """Validate the form and run the import in the background."""
        settings = self.collect_settings()
        reason = validate_settings(settings)
        if reason:
            QMessageBox.warning(self, "Error", reason)
            return

        self.set_busy(True)
        self.worker = ImportWorker(settings, self.cache_dir)
        self.worker.otp_requested.connect(self.prompt_otp, Qt.BlockingQueuedConnection)
        self.worker.finished_import.connect(self._handle_import_finished)
        self.worker.start()

    @pyqtSlot(str)
    def prompt_otp(self, kind: str):
        """Ask for the LastPass second factor on behalf of the worker."""
        if kind == OTP_OUT_OF_BAND:
            prompt = config.MSG_OUT_OF_BAND_PROMPT
        else:
            prompt = config.MSG_OTP_PROMPT.format(kind=kind)
        code, ok = QInputDialog.getText(self, "LastPass", prompt, QLineEdit.Password)
        if self.worker is not None:
            self.worker.otp_answer = code.strip() if ok else None

    def _handle_import_finished(self, result: ImportResult):
        """Handle the end of a run."""
        self.set_busy(False)
        self.reporter.report(result)
        self.worker = None

    def set_busy(self, busy: bool):
        self.submit_button.setEnabled(not busy)
        self.please_wait_label.setVisible(busy)

    def show_alert(self, title: str, message: str, is_error: bool):
        if is_error:
            QMessageBox.critical(self, title, message)
        else:
            QMessageBox.information(self, title, message)

    def clear_inputs(self):
        """Clear the sensitive inputs after a successful import."""
        self.load_settings(self.collect_settings().cleared())
