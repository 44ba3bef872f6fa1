import typer
from rich.console import Console
from rich.table import Table

from pihole_scheduler.actuation import PiholeDockerAdapter
from pihole_scheduler.cron import CronSynchronizer, CrontabRunner
from pihole_scheduler.errors import NotFound, ScheduleError
from pihole_scheduler.service import ScheduleService
from pihole_scheduler.settings import Settings, load_settings
from pihole_scheduler.store import ScheduleStore
from pihole_scheduler.utils.days import parse_days
from pihole_scheduler.utils.logging import setup_logging

app = typer.Typer(help="Pi-hole Scheduler - recurring blocking windows")
schedule_app = typer.Typer(help="Create and manage blocking schedules")
app.add_typer(schedule_app, name="schedule")
console = Console()

VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable debug logging")


def build_service(settings: Settings) -> ScheduleService:
    """Wires the store, Pi-hole adapter and crontab for one invocation."""
    adapter = PiholeDockerAdapter(
        container_name=settings.container_name,
        gravity_db=settings.gravity_db,
        docker_bin=settings.docker_bin,
        timeout=settings.command_timeout,
    )
    synchronizer = CronSynchronizer(
        CrontabRunner(settings.crontab_bin, timeout=settings.command_timeout),
        adapter.command_for,
        marker=settings.cron_marker,
    )
    store = ScheduleStore(settings.schedules_file, settings.lock_file)
    return ScheduleService(store, adapter, synchronizer)


def _service(verbose: bool) -> ScheduleService:
    settings = load_settings()
    setup_logging(settings, verbose=verbose)
    return build_service(settings)


def _fail(error: ScheduleError):
    console.print(f"[red]Error:[/red] {error}")
    raise typer.Exit(1)


def split_list(values: list[str] | None) -> list[str]:
    """Processes a list of strings potentially containing commas into a clean list."""
    if not values:
        return []
    processed = []
    for v in values:
        processed.extend(x.strip() for x in v.split(",") if x.strip())
    return processed


@schedule_app.command()
def create(
    name: str = typer.Option(..., "--name", "-n", help="Schedule name (letters, digits, _ and -)"),
    start: str = typer.Option(..., "--start", "-s", help="Start time, HH:MM (24h)"),
    end: str = typer.Option(..., "--end", "-e", help="End time, HH:MM (24h)"),
    days: str | None = typer.Option(
        None,
        "--days",
        "-d",
        help="all, weekdays, weekends, or day names/numbers (1=Mon), comma separated",
    ),
    devices: list[str] | None = typer.Option(
        None, "--devices", help="Device IPs to block (comma separated). Default: all devices"
    ),
    disabled: bool = typer.Option(False, "--disabled", help="Create the schedule disabled"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Create a new blocking schedule."""
    service = _service(verbose)
    try:
        schedule = service.create_schedule(
            name,
            start,
            end,
            devices=split_list(devices),
            days=parse_days(days),
            enabled=not disabled,
        )
    except ScheduleError as e:
        _fail(e)

    console.print(
        f"[green]Schedule '{schedule.name}' created successfully:[/green] "
        f"{schedule.start_time} - {schedule.end_time}"
    )


@schedule_app.command(name="list")
def list_schedules(verbose: bool = VERBOSE_OPTION) -> None:
    """List all configured schedules."""
    service = _service(verbose)
    try:
        listings = service.list_schedules()
    except ScheduleError as e:
        _fail(e)

    if not listings:
        console.print("[yellow]No schedules configured.[/yellow]")
        return

    table = Table(title="Configured Schedules")
    table.add_column("#", justify="right", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Status")
    table.add_column("Start", style="magenta")
    table.add_column("End", style="magenta")
    table.add_column("Duration", style="blue")
    table.add_column("Days", style="yellow")
    table.add_column("Scope", style="magenta")
    table.add_column("Created", style="white")

    for i, listing in enumerate(listings, 1):
        s = listing.schedule
        table.add_row(
            str(i),
            s.name,
            "[green]ENABLED[/green]" if s.enabled else "[red]DISABLED[/red]",
            s.start_time,
            s.end_time,
            listing.duration,
            listing.days_summary,
            listing.devices_summary,
            s.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@schedule_app.command()
def status(verbose: bool = VERBOSE_OPTION) -> None:
    """Show which enabled schedules are blocking right now."""
    service = _service(verbose)
    try:
        report = service.show_schedule_status()
    except ScheduleError as e:
        _fail(e)

    if not report.statuses:
        console.print("[yellow]No enabled schedules configured.[/yellow]")
        return

    table = Table(title="Schedule Status")
    table.add_column("Name", style="bold")
    table.add_column("State")
    table.add_column("Next change", style="cyan")
    for st in report.statuses:
        table.add_row(
            st.name,
            "[red]BLOCKING[/red]" if st.active else "[green]INACTIVE[/green]",
            st.next_change,
        )
    console.print(table)

    if report.blocking:
        console.print(f"[bold red]Currently blocking:[/bold red] {', '.join(report.blocking)}")
    else:
        console.print("[green]No schedules currently blocking.[/green]")


@schedule_app.command()
def enable(
    name: str = typer.Argument(..., help="Schedule name"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Enable a schedule."""
    service = _service(verbose)
    try:
        changed = service.enable_schedule(name)
    except ScheduleError as e:
        _fail(e)

    if changed:
        console.print(f"[green]Schedule '{name}' enabled.[/green]")
    else:
        console.print(f"[yellow]Schedule '{name}' is already enabled.[/yellow]")


@schedule_app.command()
def disable(
    name: str = typer.Argument(..., help="Schedule name"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Disable a schedule and stop its blocking immediately."""
    service = _service(verbose)
    try:
        changed = service.disable_schedule(name)
    except ScheduleError as e:
        _fail(e)

    if changed:
        console.print(f"[green]Schedule '{name}' disabled.[/green]")
    else:
        console.print(f"[yellow]Schedule '{name}' is already disabled.[/yellow]")


@schedule_app.command()
def delete(
    name: str = typer.Argument(..., help="Schedule name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Delete a schedule and clean up its Pi-hole group."""
    service = _service(verbose)
    try:
        if service.store.find_by_name(name) is None:
            raise NotFound(name)
    except ScheduleError as e:
        _fail(e)

    if not yes and not typer.confirm(f"Are you sure you want to delete schedule '{name}'?"):
        console.print("Deletion cancelled.")
        raise typer.Exit(0)

    try:
        service.delete_schedule(name)
    except ScheduleError as e:
        _fail(e)

    console.print(f"[green]Schedule '{name}' deleted.[/green]")


@schedule_app.command(name="test")
def test_schedule(
    name: str = typer.Argument(..., help="Schedule name"),
    action: str = typer.Argument(..., help="enable or disable"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Switch a schedule's blocking on or off right now, for verification."""
    service = _service(verbose)
    try:
        service.test_schedule(name, action)
    except ScheduleError as e:
        _fail(e)

    if action == "enable":
        console.print(f"[green]Blocking enabled for '{name}'.[/green]")
        console.print(
            "Visit a website to test blocking, then run "
            f"[bold]phsched schedule test {name} disable[/bold] to restore normal operation."
        )
    else:
        console.print(f"[green]Blocking disabled for '{name}'.[/green]")
        console.print("Normal internet access restored.")


@app.command()
def config(
    container: str | None = typer.Option(None, "--container", "-c", help="Pi-hole container name"),
    gravity_db: str | None = typer.Option(
        None, "--gravity-db", help="Path of gravity.db inside the container"
    ),
    marker: str | None = typer.Option(None, "--marker", help="Crontab ownership marker"),
    docker_bin: str | None = typer.Option(None, "--docker", help="Docker executable"),
    crontab_bin: str | None = typer.Option(None, "--crontab", help="crontab executable"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Configure the Pi-hole container and crontab settings."""
    current_settings = load_settings()
    setup_logging(current_settings, verbose=verbose)

    if container is not None:
        current_settings.container_name = container
    if gravity_db is not None:
        current_settings.gravity_db = gravity_db
    if marker is not None:
        if not marker.strip():
            console.print("[red]Error:[/red] Marker cannot be empty.")
            raise typer.Exit(1)
        console.print(
            "\n[bold red]WARNING:[/bold red] Existing cron entries tagged with the old "
            "marker will no longer be recognized. Re-run a schedule command to rewrite them."
        )
        current_settings.cron_marker = marker
    if docker_bin is not None:
        current_settings.docker_bin = docker_bin
    if crontab_bin is not None:
        current_settings.crontab_bin = crontab_bin

    current_settings.save()

    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Container", current_settings.container_name)
    table.add_row("Gravity DB", current_settings.gravity_db)
    table.add_row("Cron Marker", current_settings.cron_marker)
    table.add_row("Docker", current_settings.docker_bin)
    table.add_row("Crontab", current_settings.crontab_bin)
    table.add_row("Data Directory", str(current_settings.data_dir))
    console.print(table)
    console.print("[green]Configuration saved![/green]")
