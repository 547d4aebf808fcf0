import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.traceback import install

from . import __version__
from .config import (
    BlobFSConfig,
    ensure_config_exists,
    get_config_path,
    load_config,
    update_config,
)
from .decorators import console as error_console, handle_fs_errors
from .store import BACKENDS
from .vfs import ObjectFS, OpenMode

# Initialize Rich Traceback for better error messages
install(show_locals=False)

# Initialize Rich Console
console = Console()

# Configure logging to use Rich's RichHandler
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)

# Main app
app = typer.Typer(help="POSIX-like file commands over an object store")

# Command groups
config_app = typer.Typer(help="View or edit blobfs configuration")
app.add_typer(config_app, name="config")


@dataclass
class State:
    """Options shared by every command."""
    root: Optional[str] = None
    container: Optional[str] = None
    backend: Optional[str] = None

    def build_config(self) -> BlobFSConfig:
        config = load_config()
        if self.root:
            config.store.root = self.root
        if self.container:
            config.store.container = self.container
        if self.backend:
            config.store.backend = self.backend
        return config

    def open_fs(self) -> ObjectFS:
        return ObjectFS.from_config(self.build_config())


def _state(ctx: typer.Context) -> State:
    if ctx.obj is None:
        ctx.obj = State()
    return ctx.obj


@app.callback()
def main(
    ctx: typer.Context,
    root: Optional[str] = typer.Option(None, "--root", "-R", help="Store root directory (local backend)"),
    container: Optional[str] = typer.Option(None, "--container", "-c", help="Default container; paths are then relative to it"),
    backend: Optional[str] = typer.Option(None, "--backend", help=f"Store backend ({', '.join(BACKENDS)})"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose mode"),
):
    """
    blobfs - POSIX-like file access to immutable object stores.

    Paths look like 'container/dir/file'. With --container (or a configured
    default container) they are relative to that container.
    """
    ctx.obj = State(root=root, container=container, backend=backend)
    cli_config = load_config().cli
    console.no_color = not cli_config.color
    error_console.no_color = not cli_config.color
    if verbose or cli_config.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        console.print("[bold green]Verbose mode enabled.[/bold green]")


@app.command()
def about():
    """Display information about blobfs."""
    console.print(f"[bold cyan]blobfs {__version__} - files on top of object stores[/bold cyan]")
    console.print("")
    console.print("Random-access files and directories over a flat, immutable blob store:")
    console.print("  • Partial writes rebuilt as whole-object replacements")
    console.print("  • Truncate and pad, seek, append")
    console.print("  • Directory markers and virtual folders")
    console.print("  • Local-directory and in-memory stores")
    console.print("")
    console.print("[bold]Commands:[/bold]")
    console.print("  blobfs ls <dir>                  List a directory")
    console.print("  blobfs stat <path>               Show file information")
    console.print("  blobfs cat <file>                Print a file")
    console.print("  blobfs put <local> <file>        Upload a local file (- for stdin)")
    console.print("  blobfs get <file> <local>        Download a file")
    console.print("  blobfs write <file> <text>       Write text at an offset")
    console.print("  blobfs truncate <file> <size>    Cut or pad a file")
    console.print("  blobfs mkdir [-p] <dir>          Create a directory")
    console.print("  blobfs rm [-r] <path>            Remove a file or directory")
    console.print("  blobfs mv <src> <dst>            Move a file or directory")
    console.print("  blobfs config <subcommand>       Manage configuration")


# ============================================================================
# File Commands
# ============================================================================

@app.command(name="ls")
@handle_fs_errors
def ls(
    ctx: typer.Context,
    path: str = typer.Argument("", help="Directory to list (e.g. bucket/docs)"),
    long: bool = typer.Option(False, "--long", "-l", help="Show size, type and modification time"),
    limit: int = typer.Option(0, "--limit", "-n", help="Maximum number of entries (0 = all)"),
):
    """List the contents of a directory.

    Examples:
        blobfs ls bucket
        blobfs ls bucket/docs -l
        blobfs --container bucket ls docs
    """
    fs = _state(ctx).open_fs()
    infos = fs.readdir(path, limit)

    if not long:
        for info in infos:
            suffix = fs.separator if info.is_dir else ""
            console.print(f"{info.name}{suffix}", highlight=False)
        return

    table = Table(title=path or ".")
    table.add_column("Mode", style="magenta")
    table.add_column("Size", style="cyan", justify="right")
    table.add_column("Modified", style="blue")
    table.add_column("Name", style="green")

    for info in infos:
        table.add_row(
            info.to_dict()["mode"],
            str(info.size),
            info.mtime.strftime("%Y-%m-%d %H:%M:%S"),
            info.name + (fs.separator if info.is_dir else ""),
        )

    console.print(table)


@app.command()
@handle_fs_errors
def stat(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File or directory"),
):
    """Show information about a file or directory."""
    fs = _state(ctx).open_fs()
    info = fs.stat(path).to_dict()

    table = Table(title=path or ".")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for field_name, value in info.items():
        table.add_row(field_name, str(value))

    console.print(table)


@app.command()
@handle_fs_errors
def cat(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File to print"),
    offset: int = typer.Option(0, "--offset", "-o", help="Start reading at this byte"),
    size: int = typer.Option(-1, "--size", "-s", help="Number of bytes to read (-1 = to end)"),
):
    """Print the contents of a file."""
    fs = _state(ctx).open_fs()
    with fs.open(path, "r") as f:
        data = f.read_at(size, offset)
    typer.echo(data, nl=False)


@app.command()
@handle_fs_errors
def put(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Local file, or - for stdin"),
    dest: str = typer.Argument(..., help="Destination file"),
):
    """Upload a local file, replacing the destination.

    Examples:
        blobfs put report.pdf bucket/reports/report.pdf
        echo hello | blobfs put - bucket/hello.txt
    """
    if source == "-":
        data = typer.get_binary_stream("stdin").read()
    else:
        data = Path(source).read_bytes()

    fs = _state(ctx).open_fs()
    written = fs.write_bytes(dest, data)
    console.print(f"[green]✓ Wrote {written} bytes to {dest}[/green]")


@app.command()
@handle_fs_errors
def get(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="File to download"),
    dest: Path = typer.Argument(..., help="Local destination file"),
):
    """Download a file to the local disk."""
    fs = _state(ctx).open_fs()
    data = fs.read_bytes(source)
    dest.write_bytes(data)
    console.print(f"[green]✓ Saved {len(data)} bytes to {dest}[/green]")


@app.command()
@handle_fs_errors
def write(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File to write to (created if missing)"),
    text: str = typer.Argument(..., help="Text to write"),
    offset: int = typer.Option(0, "--offset", "-o", help="Byte offset to write at"),
    append: bool = typer.Option(False, "--append", "-a", help="Write at the end of the file"),
):
    """Write text into a file at an offset, keeping the bytes around it.

    Examples:
        blobfs write bucket/notes.txt "hello world"
        blobfs write bucket/notes.txt "WORLD" --offset 6
        blobfs write bucket/notes.txt "!" --append
    """
    fs = _state(ctx).open_fs()
    mode = OpenMode.APPEND if append else OpenMode.CREATE
    with fs.open(path, mode) as f:
        if append:
            written = f.write_string(text)
        else:
            written = f.write_at(text.encode("utf-8"), offset)
    console.print(f"[green]✓ Wrote {written} bytes to {path}[/green]")


@app.command()
@handle_fs_errors
def truncate(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File to truncate"),
    size: int = typer.Argument(..., help="New size in bytes; growing pads with spaces"),
):
    """Cut a file to a size, or pad it with spaces up to it."""
    fs = _state(ctx).open_fs()
    with fs.open(path, "r+") as f:
        f.truncate(size)
    console.print(f"[green]✓ Truncated {path} to {size} bytes[/green]")


@app.command()
@handle_fs_errors
def mkdir(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Directory to create"),
    parents: bool = typer.Option(False, "--parents", "-p", help="Create missing parent directories"),
):
    """Create a directory."""
    fs = _state(ctx).open_fs()
    if parents:
        fs.makedirs(path)
    else:
        fs.mkdir(path)
    console.print(f"[green]✓ Created directory {path}[/green]")


@app.command()
@handle_fs_errors
def rm(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File or directory to remove"),
    recursive: bool = typer.Option(False, "-r", "--recursive", help="Remove a directory and its contents"),
):
    """Remove a file or directory.

    Examples:
        blobfs rm bucket/old.txt
        blobfs rm bucket/empty-dir
        blobfs rm -r bucket/archive
    """
    fs = _state(ctx).open_fs()
    if recursive:
        fs.remove_all(path)
    else:
        fs.remove(path)
    console.print(f"[green]✓ Removed {path}[/green]")


@app.command()
@handle_fs_errors
def mv(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="File or directory to move"),
    dest: str = typer.Argument(..., help="New path"),
):
    """Move a file or directory (copy, then delete)."""
    fs = _state(ctx).open_fs()
    fs.rename(source, dest)
    console.print(f"[green]✓ Moved {source} to {dest}[/green]")


# ============================================================================
# Configuration Commands
# ============================================================================

@config_app.command(name="show")
def config_show():
    """Show the current configuration."""
    config = load_config()
    config_path = get_config_path()

    console.print("\n[bold]blobfs Configuration[/bold]")
    console.print(f"[dim]Location: {config_path}[/dim]\n")

    console.print("[bold cyan]Store Settings:[/bold cyan]")
    console.print(f"  Backend:     {config.store.backend}")
    console.print(f"  Root:        {config.store.root}")
    if config.store.container:
        console.print(f"  Container:   {config.store.container}")
    else:
        console.print("  Container:   [dim]not set[/dim]")

    console.print("\n[bold cyan]File System Settings:[/bold cyan]")
    console.print(f"  Separator:   {config.fs.separator}")
    console.print(f"  Pad chunk:   {config.fs.padding_chunk_size}")

    console.print("\n[bold cyan]CLI Settings:[/bold cyan]")
    console.print(f"  Verbose:     {config.cli.verbose}")
    console.print(f"  Color:       {config.cli.color}")

    console.print(f"\n[dim]Edit with: blobfs config set --store-root <path> --container <name> etc.[/dim]")
    console.print(f"[dim]Or edit directly: {config_path}[/dim]\n")


@config_app.command(name="init")
def config_init():
    """Create the config file with defaults if it does not exist."""
    config_path = ensure_config_exists()
    console.print(f"[green]Configuration initialized at {config_path}[/green]")


@config_app.command(name="set")
@handle_fs_errors
def config_set(
    backend: Optional[str] = typer.Option(None, "--backend", help=f"Store backend ({', '.join(BACKENDS)})"),
    store_root: Optional[str] = typer.Option(None, "--store-root", help="Store root directory"),
    container: Optional[str] = typer.Option(None, "--container", help="Default container ('' clears it)"),
    separator: Optional[str] = typer.Option(None, "--separator", help="Folder separator in object keys"),
    padding_chunk_size: Optional[int] = typer.Option(None, "--padding-chunk-size", help="Largest single write when padding"),
    verbose: Optional[bool] = typer.Option(None, "--cli-verbose/--no-cli-verbose", help="Enable verbose output by default"),
    color: Optional[bool] = typer.Option(None, "--cli-color/--no-cli-color", help="Enable colored output by default"),
):
    """Update configuration values.

    Examples:
        blobfs config set --store-root ~/blobs
        blobfs config set --container photos
        blobfs config set --backend memory --cli-verbose
    """
    if backend is not None and backend not in BACKENDS:
        raise ValueError(f"unknown backend '{backend}', choose one of: {', '.join(BACKENDS)}")
    if separator is not None and not separator:
        raise ValueError("separator must not be empty")
    if padding_chunk_size is not None and padding_chunk_size <= 0:
        raise ValueError("padding chunk size must be positive")

    changes = []
    if backend is not None:
        changes.append(f"Store backend: {backend}")
    if store_root is not None:
        changes.append(f"Store root: {store_root}")
    if container is not None:
        changes.append(f"Container: {container or 'cleared'}")
    if separator is not None:
        changes.append(f"Separator: {separator}")
    if padding_chunk_size is not None:
        changes.append(f"Padding chunk size: {padding_chunk_size}")
    if verbose is not None:
        changes.append(f"CLI verbose: {verbose}")
    if color is not None:
        changes.append(f"CLI color: {color}")

    if not changes:
        console.print("[yellow]Nothing to update[/yellow]")
        return

    console.print("[blue]Updating configuration:[/blue]")
    for change in changes:
        console.print(f"  • {change}")

    update_config(
        store_backend=backend,
        store_root=store_root,
        store_container=container,
        fs_separator=separator,
        fs_padding_chunk_size=padding_chunk_size,
        cli_verbose=verbose,
        cli_color=color,
    )
    console.print("[green]✓ Configuration updated![/green]")


if __name__ == "__main__":
    app()
