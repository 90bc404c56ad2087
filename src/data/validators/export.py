"""Print validator uptime stats and optionally export them as CSV.

Usage:
    python -m src.data.validators.export [validators.csv]
"""

import csv
import sys
from asyncio import run
from pathlib import Path

from typing import TextIO

from rich.console import Console
from rich.table import Table

from src.data.validators.models import NetworkStats, Validator
from src.data.validators.store import SQLLedgerStore
from src.helpers.db import dispose_engine
from src.helpers.logging import get_logger

CSV_COLUMNS = [
    "address",
    "total_blocks",
    "missed_blocks",
    "uptime_percentage",
    "created_at",
]

logger = get_logger(__name__)


def write_csv(validators: list[Validator], stream: TextIO) -> int:
    """Write validators as CSV rows.

    Args:
        validators: Validators to write, in output order
        stream: Text stream to write to

    Returns:
        int: Number of data rows written
    """
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for validator in validators:
        writer.writerow([
            validator.address,
            validator.total_blocks,
            validator.missed_blocks,
            f"{validator.uptime_percentage:.2f}",
            validator.created_at.isoformat(),
        ])
    return len(validators)


class ValidatorReport:
    """Console report of validator uptime."""

    def __init__(
        self, store: SQLLedgerStore | None = None, console: Console | None = None
    ) -> None:
        self.store = store or SQLLedgerStore()
        self.console = console or Console()

    def _display_stats_table(self, stats: NetworkStats) -> None:
        table = Table(title="Network Statistics")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right", style="yellow")

        table.add_row("Validators", f"{stats.total_validators:,}")
        table.add_row("Average Uptime", f"{stats.avg_uptime:.2f}%")
        table.add_row("Blocks Produced", f"{stats.total_blocks:,}")
        table.add_row("Blocks Missed", f"{stats.total_missed:,}")

        self.console.print(table)

    def _display_validators_table(self, validators: list[Validator]) -> None:
        if not validators:
            self.console.print("\n[yellow]No validators indexed yet[/yellow]")
            return

        table = Table(title="Validators")
        table.add_column("Address", style="cyan")
        table.add_column("Blocks", justify="right", style="yellow")
        table.add_column("Missed", justify="right", style="red")
        table.add_column("Uptime", justify="right", style="green")
        table.add_column("First Seen", style="magenta")

        for validator in validators:
            table.add_row(
                validator.address,
                f"{validator.total_blocks:,}",
                f"{validator.missed_blocks:,}",
                f"{validator.uptime_percentage:.2f}%",
                validator.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            )

        self.console.print(table)

    async def run(self, csv_path: Path | None = None) -> list[Validator]:
        """Display the report and write the CSV if a path is given.

        Args:
            csv_path: Optional output file for the CSV export

        Returns:
            list[Validator]: Validators included in the report
        """
        validators = await self.store.all_validators()
        stats = await self.store.network_stats()

        self._display_stats_table(stats)
        self._display_validators_table(validators)

        if csv_path is not None:
            with csv_path.open("w", newline="", encoding="utf-8") as f:
                rows = write_csv(validators, f)
            self.console.print(f"\n[green]✓ Wrote {rows} validators to {csv_path}[/green]")
            logger.info("Exported %s validators to %s", rows, csv_path)

        return validators


async def main() -> None:
    """Main entry point."""
    csv_path = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    try:
        await ValidatorReport().run(csv_path)
    finally:
        await dispose_engine()


if __name__ == "__main__":
    run(main())
