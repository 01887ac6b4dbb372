"""Rich theme and table/panel helpers for the CLI."""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.theme import Theme

FORGE_THEME = Theme({
    "app.title": "bold",
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "info": "blue",
    "muted": "dim",
    "accent": "cyan",
    "stat.label": "dim",
    "stat.value": "bold",
})

_STATUS_STYLE = {
    "processing": "warning",
    "completed": "success",
    "failed": "error",
}


def get_console() -> Console:
    return Console(theme=FORGE_THEME)


def app_header(title: str = "ebookforge") -> Rule:
    return Rule(title=f"[bold]{title}[/]", style="dim")


def status_text(status) -> str:
    value = getattr(status, "value", status)
    return f"[{_STATUS_STYLE.get(value, 'muted')}]{value}[/]"


def command_panel(title: str, fields: dict[str, str]) -> Panel:
    """Panel listing command parameters as label/value lines."""
    body = "\n".join(
        f"  [stat.label]{label}:[/] [stat.value]{value}[/]" for label, value in fields.items()
    )
    return Panel(body, title=f"[bold]{title}[/]", box=box.ROUNDED, border_style="dim", padding=(0, 2))


def success_panel(title: str, body: str) -> Panel:
    return Panel(body, title=f"[success]{title}[/]", box=box.ROUNDED, border_style="green", padding=(0, 2))


def error_panel(title: str, body: str) -> Panel:
    return Panel(body, title=f"[error]{title}[/]", box=box.ROUNDED, border_style="red", padding=(0, 2))


def ebook_table(ebooks: list) -> Table:
    table = Table(box=box.SIMPLE_HEAD, show_edge=False)
    table.add_column("ID", style="accent", justify="right")
    table.add_column("Title")
    table.add_column("Theme", style="muted")
    table.add_column("Languages")
    table.add_column("Status")
    for ebook in ebooks:
        table.add_row(
            str(ebook.id), ebook.title, ebook.theme, ebook.languages, status_text(ebook.status),
        )
    return table


def file_table(files: list) -> Table:
    table = Table(box=box.SIMPLE_HEAD, show_edge=False)
    table.add_column("Lang", style="accent")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("PDF", style="muted", overflow="fold")
    for f in files:
        table.add_row(
            f.language_code, f.title or "-", status_text(f.status), f.pdf_url or f.error_message or "-",
        )
    return table


def schedule_table(schedules: list) -> Table:
    table = Table(box=box.SIMPLE_HEAD, show_edge=False)
    table.add_column("ID", style="accent", justify="right")
    table.add_column("Name")
    table.add_column("Cadence")
    table.add_column("Mode", style="muted")
    table.add_column("Progress", justify="right")
    table.add_column("Next run")
    table.add_column("Active")
    for s in schedules:
        cadence = s.frequency.value + (f" @ {s.scheduled_time}" if s.scheduled_time else "")
        table.add_row(
            str(s.id), s.name, cadence, s.theme_mode.value,
            f"{s.generated_count}/{s.total_ebooks}",
            s.next_run_at.isoformat(sep=" ") if s.next_run_at else "-",
            "[success]yes[/]" if s.active else "[muted]no[/]",
        )
    return table
