"""CLI entry-point: start pose tasks and follow them to completion."""

import json
import time

import typer
from rich.console import Console
from rich.table import Table

from posegen.errors import InvalidStateError, NotFoundError
from posegen.jobs import Task
from posegen.service import PoseService, get_pose_service, shutdown_pose_service

app = typer.Typer(help="Pose extraction and pose image generation tasks")

WAIT_POLL_SECONDS = 1.0

# Work runs on this process's thread pool, so exiting waits for it to finish
WAIT_HELP = (
    "Follow the task until it finishes. With --no-wait the task id is printed "
    "at once, but the process still stays alive until the task ends, since the "
    "work runs in this process. Use the HTTP API to start tasks without blocking."
)


def _status_style(task: Task) -> str:
    return {"completed": "green", "failed": "red"}.get(task.status.value, "yellow")


def _print_task(console: Console, task: Task) -> None:
    style = _status_style(task)
    console.print(f"Task {task.task_id} ({task.kind.value}, subject {task.subject_ref})")
    console.print(f"  status:   [{style}]{task.status.value}[/{style}]  progress: {task.progress}%")
    if task.message:
        console.print(f"  message:  {task.message}")
    if task.error:
        console.print(f"  [red]error:    {task.error}[/red]")
    if task.result is not None:
        console.print_json(json.dumps(task.result, default=str))


def _wait(console: Console, service: PoseService, task_id: str) -> Task:
    """Poll the ledger until the task is terminal."""
    last = None
    with console.status("Waiting for task...") as status:
        while True:
            task = service.get_task(task_id)
            line = f"{task.status.value} {task.progress}% {task.message}".strip()
            if line != last:
                status.update(line)
                last = line
            if task.is_terminal:
                return task
            time.sleep(WAIT_POLL_SECONDS)


def _start_and_follow(start, target_id: int, wait: bool) -> None:
    console = Console()
    service = get_pose_service()
    try:
        task_id = start(service, target_id)
    except (NotFoundError, InvalidStateError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"Started task {task_id}")
    if not wait:
        console.print("Task runs in this process; exit waits for it to finish.")
        return
    try:
        task = _wait(console, service, task_id)
        _print_task(console, task)
    finally:
        shutdown_pose_service(wait=False)
    if task.status.value == "failed":
        raise typer.Exit(1)


@app.command()
def extract(
    episode_id: int = typer.Argument(..., help="Episode whose script is analysed"),
    wait: bool = typer.Option(True, "--wait/--no-wait", help=WAIT_HELP),
):
    """Extract poses from an episode script."""
    _start_and_follow(lambda s, i: s.extract_from_script(i), episode_id, wait)


@app.command("generate-image")
def generate_image(
    pose_id: int = typer.Argument(..., help="Pose to render"),
    wait: bool = typer.Option(True, "--wait/--no-wait", help=WAIT_HELP),
):
    """Generate a reference image for a pose from its description."""
    _start_and_follow(lambda s, i: s.generate_image(i), pose_id, wait)


@app.command()
def task(task_id: str = typer.Argument(..., help="Task id returned by extract / generate-image")):
    """Show a task record."""
    console = Console()
    try:
        record = get_pose_service().get_task(task_id)
    except NotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    _print_task(console, record)


@app.command()
def poses(drama_id: int = typer.Argument(..., help="Drama whose poses are listed")):
    """List the poses of a drama."""
    console = Console()
    table = Table("id", "name", "type", "description", "image")
    for pose in get_pose_service().list_poses(drama_id):
        table.add_row(
            str(pose.id),
            pose.name,
            pose.type or "",
            (pose.description or "").replace("\n", " / "),
            "yes" if pose.image_url else "",
        )
    console.print(table)


if __name__ == "__main__":
    app()
