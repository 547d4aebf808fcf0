"""Decorators for the blobfs CLI."""

import functools
import logging
from typing import Callable, Any
import typer
from rich.console import Console

from blobfs.errors import ErrorKind, FSError

logger = logging.getLogger(__name__)
console = Console()

# Exit codes follow the matching errno values where one exists
EXIT_CODES = {
    ErrorKind.INVALID_NAME: 22,
    ErrorKind.NOT_FOUND: 2,
    ErrorKind.NOT_A_DIRECTORY: 20,
    ErrorKind.IS_A_DIRECTORY: 21,
    ErrorKind.DIRECTORY_NOT_EMPTY: 39,
    ErrorKind.OUT_OF_RANGE: 34,
    ErrorKind.ALREADY_CLOSED: 9,
    ErrorKind.PERMISSION_DENIED: 13,
    ErrorKind.UNIMPLEMENTED: 38,
}

_TIPS = {
    ErrorKind.INVALID_NAME: "Paths look like 'container/dir/file', or set a default container with --container",
    ErrorKind.DIRECTORY_NOT_EMPTY: "Use 'rm -r' to remove a directory and its contents",
    ErrorKind.OUT_OF_RANGE: "Writes may start at most at the current end of the file",
}


def handle_fs_errors(func: Callable) -> Callable:
    """
    Decorator to turn file system errors into CLI exits.

    - FSError: red message, exit code chosen by the error kind
    - ValueError: Invalid arguments or configuration
    - KeyboardInterrupt: exit 130
    - General exceptions: logged with traceback, exit 1
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except FSError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            tip = _TIPS.get(e.kind)
            if tip:
                console.print(f"[yellow]Tip: {tip}[/yellow]")
            raise typer.Exit(code=EXIT_CODES.get(e.kind, 1))
        except ValueError as e:
            console.print(f"[bold red]Error:[/bold red] Invalid input: {e}")
            raise typer.Exit(code=1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            raise typer.Exit(code=130)
        except Exception as e:
            logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
            console.print(f"[bold red]Unexpected error:[/bold red] {e}")
            raise typer.Exit(code=1)

    return wrapper
