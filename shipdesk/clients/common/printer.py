from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from shipdesk.cache.tags import CacheTag
from shipdesk.session.store import SessionTransition, SessionView


@dataclass
class Printer:
    """
    Small terminal renderer for the REPL.
    """

    console: Console = field(default_factory=Console)

    def info(self, message: str):
        self.console.print(message)

    def error(self, message: str):
        self.console.print(Text(f"ERROR: {message}", style="bold red"))

    def transition(self, transition: SessionTransition):
        self.console.print(
            f"[dim]session: {transition.previous_state.value} -> {transition.state.value} ({transition.event.value})[/dim]"
        )

    def session(self, view: SessionView):
        status = Text()
        if view.is_authenticated and view.session is not None:
            status.append("●", style="bold green")
            status.append(f" {view.session.display_name or view.session.email} ", style="green")
            status.append(f"({view.session.user_id}, session {view.session.session_id})", style="dim")
        elif view.is_loading:
            status.append("●", style="bold yellow")
            status.append(" working...", style="yellow")
        else:
            status.append("●", style="bold red")
            status.append(" not logged in", style="red")
        self.console.print(status)

    def cache(self, rows: Iterable[tuple[CacheTag, bool, int]]):
        table = Table(title="Cache")
        table.add_column("Tag")
        table.add_column("Fresh")
        table.add_column("Entries", justify="right")
        for tag, fresh, count in rows:
            table.add_row(tag.value, "yes" if fresh else "[dim]stale[/dim]", str(count))
        self.console.print(table)

    def data(self, payload: Any, *, title: Optional[str] = None):
        if title:
            self.console.print(Text(title, style="bold cyan"))
        self.console.print_json(json.dumps(payload, default=str))
