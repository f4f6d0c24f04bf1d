"""
Presents the outcome of an import run.
"""

import logging
from typing import Callable

from .workflow import ImportResult

logger = logging.getLogger(__name__)

# (title, message, is_error)
AlertFunc = Callable[[str, str, bool], None]


class ResultReporter:
    """Shows exactly one alert per run and clears the inputs after a success."""

    def __init__(self, alert: AlertFunc, clear_fields: Callable[[], None]):
        self.alert = alert
        self.clear_fields = clear_fields

    def report(self, result: ImportResult) -> None:
        if result.success:
            logger.info("Reporting successful import")
            self.alert("Success", result.message, False)
            self.clear_fields()
        else:
            logger.info(f"Reporting failure in phase '{result.phase.value}'")
            self.alert("Error", result.message, True)
