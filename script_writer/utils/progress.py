from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, MofNCompleteColumn, TimeElapsedColumn
from typing import AsyncIterable

from ..models.session import SessionProgressEvent, SessionStatus, TERMINAL_STATUSES

def create_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
    )

def describe(event: SessionProgressEvent) -> str:
    phase = f"phase {event.phase_index}" if event.phase_index is not None else "session"
    return f"{phase}: {event.status.value}"

async def render_events(
    events: AsyncIterable[SessionProgressEvent],
    total: int,
    description: str = "Generating episodes",
) -> SessionProgressEvent | None:
    """Drive a rich progress bar from a session event stream.

    Returns the last event seen.
    """
    last = None

    with create_progress() as progress:
        task_id = progress.add_task(description, total=total)

        async for event in events:
            last = event
            progress.update(
                task_id,
                completed=event.units_so_far,
                description=f"{description} ({describe(event)})",
            )
            if event.message:
                progress.console.print(f"[dim]{event.message}[/dim]")
            if event.status in TERMINAL_STATUSES:
                colour = "green" if event.status == SessionStatus.COMPLETE else "red"
                progress.console.print(f"[{colour}]Session {event.status.value}[/{colour}]")

    return last
