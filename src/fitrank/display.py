"""Rich terminal display for fitrank."""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from fitrank.achievements import (
    AchievementDef,
    AchievementSummary,
    Category,
    UserAchievementProgress,
    group_by_category,
    progress_fraction,
)

console = Console()

_CATEGORY_STYLE: dict[Category, tuple[str, str]] = {
    Category.WORKOUT: ("\U0001f3cb️", "dark_orange3"),
    Category.NUTRITION: ("\U0001f957", "green"),
    Category.PROGRESS: ("\U0001f4c8", "deep_sky_blue1"),
    Category.SOCIAL: ("\U0001f91d", "magenta"),
    Category.SPECIAL: ("⭐", "gold1"),
}


def format_number(n: float) -> str:
    """Format counters: 5 -> '5', 2.5 -> '2.5', 36000 -> '36,000', 1234567 -> '1.2M'."""
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if float(n).is_integer():
        return f"{int(n):,}"
    return f"{n:,.1f}"


def _progress_bar(current: float, total: float, width: int = 20) -> str:
    """Render a progress bar as text: [████████░░░░░░░░░░░░]."""
    filled = int(progress_fraction(current, total) * width)
    return "[" + "█" * filled + "░" * (width - filled) + "]"


def print_unlock_notice(definition: AchievementDef) -> None:
    """Show an "Achievement Unlocked" notice. Used as the engine's notifier."""
    icon, color = _CATEGORY_STYLE.get(definition.category, ("\U0001f3c6", "gold1"))
    content = (
        f"{icon} [bold]{definition.name}[/]\n"
        f"{definition.description}\n\n"
        f"[bold {color}]+{definition.points} points[/]"
    )
    console.print(Panel(
        content,
        title="[bold]Achievement Unlocked![/]",
        box=box.ROUNDED,
        border_style=color,
        width=50,
    ))


def print_achievements(
    catalog: list[AchievementDef], progress: list[UserAchievementProgress]
) -> None:
    """Print every achievement grouped by category with its progress."""
    by_id = {p.achievement_id: p for p in progress}

    table = Table(
        title="Achievements",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold",
    )
    table.add_column("", width=2)
    table.add_column("Achievement", min_width=20)
    table.add_column("Points", justify="right", width=6)
    table.add_column("Progress", min_width=24)
    table.add_column("Earned", width=12)

    for category, definitions in group_by_category(catalog).items():
        icon, color = _CATEGORY_STYLE.get(category, ("\U0001f3c6", "white"))
        table.add_section()
        table.add_row("", f"[bold {color}]{icon} {category.value.title()}[/]", "", "", "")
        for definition in definitions:
            row = by_id.get(definition.id)
            current = row.current if row else 0
            completed = bool(row and row.completed)
            mark = "✅" if completed else "⏳"
            bar = _progress_bar(current, definition.target, width=10)
            progress_text = f"{bar} {format_number(current)}/{format_number(definition.target)}"
            earned = (row.earned_at or "")[:10] if row else ""
            table.add_row(
                mark,
                f"[bold]{definition.name}[/]\n{definition.description}",
                str(definition.points),
                progress_text,
                earned,
            )

    console.print(table)


def print_summary(summary: AchievementSummary, closest: list[tuple[AchievementDef, float]] | None = None) -> None:
    """Print overview totals and the achievements closest to unlocking."""
    lines: list[str] = [""]
    lines.append(f"  \U0001f3c6 Unlocked: [bold]{summary.completed}[/]/{summary.total}")
    lines.append(f"  ⭐ Points:   [bold]{format_number(summary.points)}[/]")
    lines.append(f"  \U0001f3af Next:     {summary.next_milestone}")

    if closest:
        lines.append("")
        lines.append("  [bold]Almost There:[/]")
        for definition, fraction in closest:
            lines.append(f"  ⏳ {definition.name}: {int(fraction * 100)}%")
    lines.append("")

    console.print(Panel(
        "\n".join(lines),
        title="[bold]FITRANK[/]",
        box=box.ROUNDED,
        border_style="gold1",
        width=50,
    ))


def print_evaluation_result(updated: int, unlocked: list[AchievementDef], failed: list[str]) -> None:
    """Print a one-screen report of what an evaluation changed."""
    if updated == 0 and not failed:
        console.print("  No achievements advanced.")
        return
    console.print(f"  [green]✓[/] {updated} achievement(s) advanced, {len(unlocked)} unlocked")
    for name in failed:
        console.print(f"  [red]✗[/] Could not update {name}")


def print_not_signed_in() -> None:
    console.print("[yellow]Not signed in.[/] Run: [bold]fitrank login --user <id>[/]")


def print_error(message: str) -> None:
    console.print(f"[bold red]{message}[/]")
