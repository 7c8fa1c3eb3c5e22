"""
Invocation outcome tracking for llmbridge.

Counts router decisions (success, failure, switch, retry, crop) and can echo
one symbol per event for live progress feedback.
"""

import threading
from dataclasses import replace
from enum import Enum

from rich.console import Console
from rich.table import Table

from llmbridge.providers.models import StatsCategoryStatus


class StatsCategory(str, Enum):
    """Tracked invocation event categories."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    SWITCH = "SWITCH"
    RETRY = "RETRY"
    CROP = "CROP"


TOTAL_KEY = "TOTAL"

_CATEGORY_DISPLAY: dict[StatsCategory, tuple[str, str]] = {
    StatsCategory.SUCCESS: ("LLM invocation succeeded", ">"),
    StatsCategory.FAILURE: ("LLM invocation failed so no data produced", "!"),
    StatsCategory.SWITCH: ("Switched to a larger or secondary LLM to try to process the request", "+"),
    StatsCategory.RETRY: ("Retried calling LLM due to overload or network issue", "?"),
    StatsCategory.CROP: ("Cropping prompt due to excessive size, before resending", "-"),
}


class LLMStats:
    """
    Accumulates counts of LLM invocation events.

    Safe to share between concurrent invocations: every increment happens
    under a lock so no event is lost.
    """

    def __init__(self, print_ticks: bool = True, console: Console | None = None):
        """
        Initialize the tracker.

        Args:
            print_ticks: Echo one symbol per recorded event.
            console: Console to echo to. Defaults to a new stdout console.
        """
        self.print_ticks = print_ticks
        self.console = console or Console()
        self._lock = threading.Lock()
        self._categories: dict[StatsCategory, StatsCategoryStatus] = {
            category: StatsCategoryStatus(description=description, symbol=symbol)
            for category, (description, symbol) in _CATEGORY_DISPLAY.items()
        }

    def record_success(self) -> None:
        self._record(StatsCategory.SUCCESS)

    def record_failure(self) -> None:
        self._record(StatsCategory.FAILURE)

    def record_switch(self) -> None:
        """Record a switch to a larger or secondary model."""
        self._record(StatsCategory.SWITCH)

    def record_retry(self) -> None:
        self._record(StatsCategory.RETRY)

    def record_crop(self) -> None:
        """Record that a prompt was cropped before being resent."""
        self._record(StatsCategory.CROP)

    def _record(self, category: StatsCategory) -> None:
        with self._lock:
            status = self._categories[category]
            status.count += 1

        if self.print_ticks:
            self.console.print(status.symbol, end="", markup=False, highlight=False)

    def count(self, category: StatsCategory) -> int:
        with self._lock:
            return self._categories[category].count

    def snapshot(self, include_total: bool = False) -> dict[str, StatsCategoryStatus]:
        """
        Get an independent copy of the current counts.

        Args:
            include_total: Add a TOTAL entry of successes plus failures.

        Returns:
            Mapping of category name to a copy of its status.
        """
        with self._lock:
            result = {category.value: replace(status) for category, status in self._categories.items()}

        if include_total:
            total = result[StatsCategory.SUCCESS.value].count + result[StatsCategory.FAILURE.value].count
            result[TOTAL_KEY] = StatsCategoryStatus(
                description="Total successes + failures", symbol="=", count=total
            )
        return result

    def render_summary_table(self, include_counts: bool = True) -> Table:
        """
        Build a table of the tracked categories.

        Args:
            include_counts: Add a count column and the TOTAL row.

        Returns:
            Rich table ready to print.
        """
        table = Table(title="LLM Invocation Events")
        table.add_column("Symbol", style="cyan", justify="center")
        table.add_column("Event", style="green")
        if include_counts:
            table.add_column("Count", justify="right")

        for status in self.snapshot(include_total=include_counts).values():
            row = [status.symbol, status.description]
            if include_counts:
                row.append(str(status.count))
            table.add_row(*row)

        return table

    def display_summary(self) -> None:
        """Print the symbol legend."""
        self.console.print(self.render_summary_table(include_counts=False))

    def display_details(self) -> None:
        """Print the counts for every category."""
        self.console.print(self.render_summary_table(include_counts=True))
