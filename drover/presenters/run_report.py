"""
Run report presenter for displaying make results and node metadata.

Follows SRP: only handles report presentation.
"""

from ..core.models.metadata import NodeMetadata
from ..core.models.run import RunReport
from .console import ConsolePresenter
from .formatting import format_duration, format_timestamp, truncate_string


class RunReportPresenter:
    """
    Formats and displays run reports, outdated lists and node metadata.
    """

    def __init__(self, presenter: ConsolePresenter) -> None:
        """
        Initialize report presenter.

        Args:
            presenter: Base presenter for output
        """
        self._out = presenter

    def show_report(self, report: RunReport, quiet: bool = False) -> None:
        """
        Display a run report.

        Args:
            report: Report returned by make()
            quiet: If True, only failures are shown
        """
        if quiet:
            for node_id in report.failed:
                self._out.print_error(f"{node_id}: {report.reasons.get(node_id, 'failed')}")
            return

        rows = [
            [node_id, self._out.status(status), report.reasons.get(node_id, "")]
            for node_id, status in report.statuses.items()
        ]
        self._out.print_table(["Target", "Status", "Reason"], rows)

        self._out.print("")
        summary = (
            f"{len(report.built)} built, {len(report.skipped)} up to date, "
            f"{len(report.failed)} failed in {format_duration(report.duration)}"
        )
        if report.success:
            self._out.print_success(summary)
        else:
            self._out.print_error(summary)

        if report.in_progress:
            self._out.print_warning(
                "Run aborted while building: " + ", ".join(report.in_progress)
            )

    def show_outdated(self, node_ids: list[str]) -> None:
        """Display the targets a run would rebuild."""
        if not node_ids:
            self._out.print_success("All targets are up to date.")
            return
        self._out.print(f"{len(node_ids)} outdated target(s):")
        for node_id in node_ids:
            self._out.print(f"  {node_id}")

    def show_progress(self, progress: dict[str, str]) -> None:
        """Display the latest status of every target."""
        if not progress:
            self._out.print("No targets have been built.")
            return
        rows = [[node_id, self._out.status(status)] for node_id, status in sorted(progress.items())]
        self._out.print_table(["Target", "Status"], rows)

    def show_metadata(self, metadata: NodeMetadata) -> None:
        """Display the full metadata of one node."""
        self._out.print_section(metadata.id)
        self._out.print_key_value("Kind", metadata.kind)
        self._out.print_key_value("Status", self._out.status(metadata.status))
        if metadata.trigger:
            self._out.print_key_value("Trigger", metadata.trigger)
        if metadata.command:
            self._out.print_key_value("Command", truncate_string(metadata.command))
        if metadata.kind == "target":
            self._out.print_key_value("Cached value", "missing" if metadata.missing else "present")
        self._out.print_key_value("Built at", format_timestamp(metadata.built_at))

        self._out.print_section("Fingerprints")
        self._out.print_key_value("Own", metadata.fingerprint or "-")
        self._out.print_key_value("Dependencies", metadata.dependency_fingerprint or "-")
        if metadata.file_fingerprint:
            self._out.print_key_value("File", metadata.file_fingerprint)

        timings = metadata.timings
        self._out.print_section("Last attempt")
        self._out.print_key_value("Attempts", timings.attempts)
        self._out.print_key_value("Elapsed", format_duration(timings.elapsed))
        self._out.print_key_value("CPU", format_duration(timings.cpu))

        if metadata.error:
            self._out.print_section("Error")
            self._out.print(f"{metadata.error.type}: {metadata.error.message}")
            if metadata.error.traceback:
                self._out.print(metadata.error.traceback.rstrip())

        if metadata.warnings:
            self._out.print_section("Warnings")
            for warning in metadata.warnings:
                self._out.print(f"  {warning}")

        if metadata.messages:
            self._out.print_section("Messages")
            for message in metadata.messages:
                self._out.print(f"  {message}")
