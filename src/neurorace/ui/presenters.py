from __future__ import annotations

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..core.scoring import summarize_session
from ..features.session.engine import Schedule
from ..features.session.state_machine import SessionStateMachine

_PLAYER_STYLE = {1: "bold cyan", 2: "bold magenta"}


class RichPresenter:
    def __init__(self, *, no_color: bool = False, console: Console | None = None):
        if console is not None:
            self.console = console
        elif no_color:
            self.console = Console(force_terminal=False, color_system=None)
        else:
            self.console = Console(force_terminal=True, color_system="auto")

    def schedule(self, schedule: Schedule, *, seed: int | None = None) -> None:
        title = "Session Schedule" if seed is None else f"Session Schedule (seed {seed})"
        table = Table(title=title, show_header=True, header_style="bold blue", box=box.SIMPLE_HEAVY)
        table.add_column("Round", justify="right", style="cyan", no_wrap=True)
        table.add_column("Player", justify="center")
        table.add_column("Challenge")
        for idx, (player, challenge) in enumerate(zip(schedule.turn_order, schedule.challenges, strict=True), 1):
            style = _PLAYER_STYLE.get(int(player), "")
            table.add_row(str(idx), f"[{style}]{int(player)}[/]", f"{challenge.label} [dim]({challenge.value})[/]")
        self.console.print(table)

    def round_result(self, machine: SessionStateMachine) -> None:
        entry = machine.ledger.entries[-1]
        label = entry.challenge.label if entry.challenge is not None else "?"
        penalty = f" [red]+{entry.penalty:.2f}s[/]" if entry.penalty else ""
        self.console.print(
            f"Round {entry.round_number:>2} • {machine.display_name(entry.player)} • {label}: "
            f"{entry.base_time:.3f}s{penalty}"
        )

    def summary(self, machine: SessionStateMachine) -> None:
        stats = summarize_session(machine.ledger.entries)
        if not stats.rounds:
            self.console.print("No rounds played.")
            return
        p1 = machine.display_name(1)
        p2 = machine.display_name(2)
        if stats.is_tie:
            headline = "It's a Tie!"
        else:
            headline = f"{machine.display_name(stats.winner)} Wins!"

        totals = Table(title="Results", show_header=True, header_style="bold blue")
        totals.add_column("")
        totals.add_column(p1, justify="right")
        totals.add_column(p2, justify="right")
        totals.add_row("Total time", f"{stats.player1_total_time:.2f}s", f"{stats.player2_total_time:.2f}s")
        totals.add_row("Penalties", f"{stats.player1_penalty:.2f}s", f"{stats.player2_penalty:.2f}s")
        self.console.print(Panel(headline, border_style="green", expand=False))
        self.console.print(totals)

        for item in stats.breakdown:
            label = item.challenge.label
            if not item.has_data:
                self.console.print(f"[dim]{label}: No data[/]")
            elif item.faster is None:
                self.console.print(f"Tie at {label}")
            else:
                self.console.print(f"{machine.display_name(item.faster)} was {item.faster_by_pct:.0f}% faster at {label}")
