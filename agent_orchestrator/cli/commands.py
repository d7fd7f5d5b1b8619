"""CLI commands for agent-orchestrator."""

from __future__ import annotations

import shlex
import shutil
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from agent_orchestrator import __version__

app = typer.Typer(
    name="agent-orchestrator",
    help="agent-orchestrator - run several CLI agent sessions side by side",
    no_args_is_help=True,
)
console = Console()

SHELL_HELP = """\
Commands:
  spawn [fresh|resume|continue]   start a new session
  pick                            choose a session (or spawn) and focus it
  kill <n>                        kill session n in the current directory
  write <text>                    append a line to the current prompt tab
  send                            send the current prompt to a session
  open | close | toggle           prompt editor
  tab new|next|prev|delete        prompt tabs
  clear                           empty the current prompt tab
  status                          toggle the status bar
  show <n>                        print the terminal screen of session n
  debug                           dump orchestrator state
  cd <dir>                        change the working directory scope
  quit                            stop all sessions and exit"""


def version_callback(value: bool) -> None:
    if value:
        console.print(f"agent-orchestrator v{__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """stderr sink at WARNING (DEBUG with ``verbose``) plus an optional rotating file."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(str(log_file), level="DEBUG", rotation="5 MB", retention=5)


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr."),
    log: bool = typer.Option(False, "--log", help="Also log to ~/.agent-orchestrator/logs."),
) -> None:
    """agent-orchestrator entrypoint."""
    del version
    from agent_orchestrator.config.loader import get_data_dir

    configure_logging(verbose, get_data_dir() / "logs" / "orchestrator.log" if log else None)


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite existing config without prompt.",
    ),
) -> None:
    """Write a default configuration file."""
    from agent_orchestrator.config.loader import get_config_path, save_config
    from agent_orchestrator.config.schema import Config

    config_path = get_config_path()
    if config_path.exists() and not force:
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config()
    save_config(config, config_path)
    console.print(f"[green]OK[/green] Created config at {config_path}")

    binary = config.agent.executable
    if shutil.which(binary) is None:
        console.print(f"[yellow]'{binary}' is not on PATH; set agent.executable in the config.[/yellow]")


@app.command()
def status() -> None:
    """Show configuration and agent detection."""
    from agent_orchestrator.config.loader import get_config_path, load_config
    from agent_orchestrator.core.variants import SPAWN_ORDER, SPAWN_VARIANTS, executable_name

    config_path = get_config_path()
    config = load_config()

    console.print("agent-orchestrator Status\n")
    console.print(f"Config: {config_path} {'[green]OK[/green]' if config_path.exists() else '[red]NO[/red]'}")
    console.print(f"Agent: [cyan]{config.agent.name}[/cyan]")

    table = Table(title="Spawn variants")
    table.add_column("Variant")
    table.add_column("Command")
    table.add_column("Found")
    for key in SPAWN_ORDER:
        command = SPAWN_VARIANTS[key].command(config.agent)
        found = shutil.which(executable_name(command)) is not None
        table.add_row(key, command, "[green]yes[/green]" if found else "[red]no[/red]")
    console.print(table)

    bar = config.status_bar
    console.print(f"Status bar: {'visible' if bar.visible else 'hidden'}, {'emphasis' if bar.emphasis else 'plain'}")
    console.print(f"Terminal: {config.terminal.cols}x{config.terminal.rows}")


@app.command()
def shell(
    cwd: str = typer.Option("", "--cwd", help="Working directory scope for spawned sessions."),
) -> None:
    """Interactive console driving the orchestrator."""
    from agent_orchestrator.config.loader import load_config
    from agent_orchestrator.core.orchestrator import Orchestrator
    from agent_orchestrator.host.channels import ChannelPool
    from agent_orchestrator.host.console import ConsoleHost

    config = load_config()
    channels = ChannelPool(
        cols=config.terminal.cols,
        rows=config.terminal.rows,
        history=config.terminal.history,
    )
    host = ConsoleHost(
        console=console,
        colors=config.palette,
        cwd=str(Path(cwd).expanduser().resolve()) if cwd else None,
        channels=channels,
    )
    orchestrator = Orchestrator(host, config)
    orchestrator.setup()

    console.print(f"agent-orchestrator v{__version__} - type [cyan]help[/cyan] for commands")
    try:
        while True:
            host.process_events()
            _print_status(host, orchestrator)
            try:
                line = console.input("[bold cyan]orchestrator>[/bold cyan] ")
            except EOFError:
                break
            host.process_events()
            if not _dispatch(line, host, orchestrator):
                break
    except KeyboardInterrupt:
        console.print()
    finally:
        orchestrator.teardown()
        channels.close_all()


def _print_status(host, orchestrator) -> None:
    line = host.status_line(orchestrator.state.status_bar.buffer)
    if line is not None and orchestrator.status_bar.is_shown():
        console.print(line)


def _dispatch(line: str, host, orchestrator) -> bool:
    """Run one shell command; returns False to leave the shell."""
    try:
        words = shlex.split(line)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        return True
    if not words:
        return True

    command, args = words[0].lower(), words[1:]
    if command in ("quit", "exit", "q"):
        return False
    if command == "help":
        console.print(SHELL_HELP)
    elif command == "spawn":
        orchestrator.spawn(args[0] if args else "fresh")
    elif command == "pick":
        orchestrator.pick()
    elif command == "kill":
        _kill(orchestrator, args)
    elif command == "write":
        _write(host, orchestrator, line.split(None, 1)[1] if len(words) > 1 else "")
    elif command == "send":
        orchestrator.send_to_terminal()
    elif command in ("open", "close", "toggle"):
        getattr(orchestrator, command)()
        _show_draft(host, orchestrator)
    elif command == "tab":
        _tab(host, orchestrator, args)
    elif command == "clear":
        orchestrator.editor.clear()
    elif command == "status":
        orchestrator.toggle_status_bar()
    elif command == "show":
        _show(host, orchestrator, args)
    elif command == "debug":
        console.print(orchestrator.debug_dump())
    elif command == "cd":
        target = Path(args[0] if args else "~").expanduser().resolve()
        if not target.is_dir():
            console.print(f"[red]Not a directory: {target}[/red]")
        else:
            host.chdir(str(target))
            console.print(f"cwd: [cyan]{target}[/cyan]")
    else:
        console.print(f"[yellow]Unknown command: {command}[/yellow] (try [cyan]help[/cyan])")
    return True


def _kill(orchestrator, args: list[str]) -> None:
    if not args:
        orchestrator.kill(None)
        return
    try:
        number = int(args[0])
    except ValueError:
        console.print("[red]Instance number must be a number[/red]")
        return
    orchestrator.kill(number)


def _write(host, orchestrator, text: str) -> None:
    editor = orchestrator.editor
    tab = editor.current_tab() or editor.new_tab()
    lines = host.get_lines(tab.buffer)
    if lines == [""]:
        lines = []
    host.set_lines(tab.buffer, lines + [text])


def _tab(host, orchestrator, args: list[str]) -> None:
    action = args[0] if args else ""
    actions = {
        "new": orchestrator.new_tab,
        "next": orchestrator.next_tab,
        "prev": orchestrator.prev_tab,
        "delete": orchestrator.delete_tab,
    }
    if action not in actions:
        console.print("[yellow]Usage: tab new|next|prev|delete[/yellow]")
        return
    actions[action]()
    _show_draft(host, orchestrator)


def _show_draft(host, orchestrator) -> None:
    editor = orchestrator.editor
    tab = editor.current_tab()
    if tab is None:
        return
    names = " ".join(f"[{name}]" if name == tab.name else name for name in editor.tab_names())
    host.show_draft(tab.buffer, title=names)


def _show(host, orchestrator, args: list[str]) -> None:
    views = orchestrator.registry.query_scoped(host.getcwd())
    try:
        number = int(args[0]) if args else 1
    except ValueError:
        console.print("[red]Instance number must be a number[/red]")
        return
    if not 1 <= number <= len(views):
        console.print(f"[yellow]No session {number} in this directory[/yellow]")
        return
    buffer = views[number - 1].buffer
    if buffer is None or not host.buffer_is_valid(buffer):
        console.print("[yellow]Terminal buffer no longer valid[/yellow]")
        return
    host.show_terminal(buffer)


if __name__ == "__main__":
    app()
