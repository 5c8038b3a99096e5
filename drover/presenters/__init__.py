"""Output presenters for the drover CLI."""

from .console import ConsolePresenter
from .run_report import RunReportPresenter

__all__ = ["ConsolePresenter", "RunReportPresenter"]
