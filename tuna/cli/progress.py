"""Rich progress display for `tuna exec`.

Fed by a ProgressChannel, so on_event() always runs on the single consumer
thread and needs no locking.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from tuna.exec.models import ProgressEvent, ProgressEventType


class ExecProgressDisplay:
    """
    Live progress bar (interactive) or one line per finished task (plain).

    Usage:
        with ExecProgressDisplay(total=4, interactive=True) as display:
            with ProgressChannel(display.on_event) as channel:
                ...
    """

    def __init__(self, total: int, interactive: bool = True, console: Optional[Console] = None):
        self.total = total
        self.interactive = interactive
        self.console = console or Console()

        self.completed = 0
        self.failed = 0
        self.skipped = 0
        self.prompt_tokens = 0
        self.output_tokens = 0

        self._progress: Optional[Progress] = None
        self._task_id = None

    def __enter__(self):
        if self.interactive:
            self._progress = Progress(
                TextColumn("[bold cyan]⏳ exec[/bold cyan] {task.description}"),
                BarColumn(bar_width=40),
                TaskProgressColumn(),
                TextColumn("[dim]•[/dim]"),
                TimeElapsedColumn(),
                TextColumn("[dim]•[/dim]"),
                TextColumn("{task.fields[suffix]}", justify="right"),
                console=self.console,
                transient=True,
            )
            self._progress.start()
            self._task_id = self._progress.add_task("", total=self.total, suffix="starting...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
        return False

    @property
    def finished(self) -> int:
        return self.completed + self.failed + self.skipped

    def on_event(self, event: ProgressEvent):
        label = escape(f"{event.model} • {event.query_id}")

        if event.type == ProgressEventType.START:
            self._update(description=label)
            return

        if event.type == ProgressEventType.DONE:
            self.completed += 1
            self.prompt_tokens += event.prompt_tokens
            self.output_tokens += event.output_tokens
            line = (f"[green]✓[/green] {label} "
                    f"[dim]({event.prompt_tokens}+{event.output_tokens} tokens, {event.duration:.2f}s)[/dim]")
        elif event.type == ProgressEventType.SKIPPED:
            self.skipped += 1
            line = f"[dim]○ {label} (exists, skipped)[/dim]"
        else:
            self.failed += 1
            line = f"[red]✗[/red] {label}: {escape(str(event.error))}"

        if self.interactive:
            # Printed above the live bar
            self.console.print(line)
            self._update(advance=True)
        else:
            self.console.print(f"[{self.finished}/{self.total}] {line}", highlight=False)

    def _update(self, description: Optional[str] = None, advance: bool = False):
        if self._progress is None:
            return

        fields = {"suffix": self._suffix()}
        if description is not None:
            fields["description"] = description
        if advance:
            fields["completed"] = self.finished
        self._progress.update(self._task_id, **fields)

    def _suffix(self) -> str:
        parts = [f"{self.finished}/{self.total}"]
        if self.failed:
            parts.append(f"[red]{self.failed} failed[/red]")
        if self.skipped:
            parts.append(f"{self.skipped} skipped")
        tokens = self.prompt_tokens + self.output_tokens
        if tokens:
            parts.append(f"{tokens:,} tokens")
        return " • ".join(parts)
