"""srcres - command-line front end for package source resolution."""

import logging
import sys

import click
from rich.table import Table

from .chain import RepositoryChain
from .console import console
from .console import error_console
from .errors import InvalidPatternError
from .errors import ResolutionError
from .factory import create_repository
from .factory import create_repository_chain
from .logging_setup import init_json_logging
from .pattern import WILDCARD
from .pattern import Pattern
from .pattern import PathSegment
from .pattern import RestWildcard
from .settings import AppSettings
from .utils.error_format import escape_markup
from .utils.error_format import format_error_message

logger = logging.getLogger(__name__)


def parse_pattern_text(text: str, suffix: str | None = None) -> Pattern:
    """Translate CLI pattern text into a Pattern.

    Syntax: segments separated by "/", "*" for one segment of any name,
    "**" for everything below (must be last). "**.ext" is shorthand for a
    rest wildcard restricted to files ending in ".ext"; --suffix does the same
    for a bare "**".

    Raises:
        InvalidPatternError: Empty text or misplaced "**"
    """
    segments: list[PathSegment | str] = []
    for part in text.split("/"):
        if not part:
            continue
        if part == "*":
            segments.append(WILDCARD)
        elif part.startswith("**"):
            segments.append(RestWildcard(suffix=part[2:] or suffix))
        else:
            segments.append(part)
    if not segments:
        raise InvalidPatternError(f"Empty pattern: {text!r}")
    return Pattern.of(*segments)


def _fail(e: BaseException) -> None:
    error_console.print(f"[red]Error:[/red] {escape_markup(format_error_message(e))}")
    sys.exit(1)


def _load_chain(repos: tuple[str, ...]) -> tuple[RepositoryChain, bool, int | None]:
    settings = AppSettings().get_resolver_settings()
    sources = list(repos) or settings.repositories
    if not sources:
        raise click.UsageError("No repositories given. Use -r SOURCE or 'srcres repo add SOURCE'.")
    return create_repository_chain(sources, settings), settings.parallel, settings.max_workers


@click.group()
@click.version_option(package_name="source-resolution")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Write JSONL diagnostics to this file")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level for --log-file",
)
def cli(log_file: str | None, log_level: str | None):
    """srcres - resolve module sources across directories and archives."""
    if log_file or log_level:
        init_json_logging(log_file, log_level)


@cli.command("resolve")
@click.argument("pattern")
@click.option("-r", "--repo", "repos", multiple=True, help="Repository source, highest precedence first (repeatable)")
@click.option("--suffix", default=None, help="Only match files with this suffix under '**'")
@click.option("--first", "first_only", is_flag=True, help="Stop at the first match")
@click.option("--parallel/--sequential", default=None, help="Resolve repositories on worker threads")
@click.option("--content", "show_content", is_flag=True, help="Print matched file contents instead of a table")
def resolve_cmd(
    pattern: str,
    repos: tuple[str, ...],
    suffix: str | None,
    first_only: bool,
    parallel: bool | None,
    show_content: bool,
):
    """Resolve PATTERN (e.g. 'org/pkg/**.bal') against repositories.

    Examples:

        \b
        srcres resolve 'very/**' -r ./project -r ./libs/dep.jar
        srcres resolve 'pkg/*' -r ./project --first --content
    """
    try:
        compiled = parse_pattern_text(pattern, suffix)
        chain, parallel_default, max_workers = _load_chain(repos)
    except (ResolutionError, ValueError) as e:
        _fail(e)
        return

    use_parallel = parallel_default if parallel is None else parallel
    with chain:
        try:
            if first_only:
                found = chain.first(compiled)
                entries = [found] if found else []
            elif use_parallel:
                entries = chain.resolve_parallel(compiled, max_workers=max_workers)
            else:
                entries = list(chain.resolve(compiled))

            if show_content:
                out = click.get_binary_stream("stdout")
                for entry in entries:
                    out.write(entry.read_bytes())
                out.flush()
                return
        except ResolutionError as e:
            _fail(e)
            return

        if not entries:
            console.print(f"[yellow]No matches for {escape_markup(compiled)}[/yellow]")
            return

        table = Table(title=f"Matches for {escape_markup(compiled)}", show_header=True, header_style="bold cyan")
        table.add_column("Logical path", style="green")
        table.add_column("Repository")
        table.add_column("Location", style="dim")
        for entry in entries:
            table.add_row(
                escape_markup(entry.name),
                escape_markup(entry.origin),
                escape_markup(entry.repository.describe(entry.location)),
            )
        console.print(table)
        console.print(f"[dim]{len(entries)} match(es)[/dim]")


@cli.command("ls")
@click.argument("source")
@click.argument("location", required=False, default="")
def ls_cmd(source: str, location: str):
    """List children of LOCATION (default: root) in repository SOURCE."""
    try:
        settings = AppSettings().get_resolver_settings()
        with create_repository(source, settings) as repository:
            converter = repository.converter()
            current = converter.start()
            for name in (part for part in location.split("/") if part):
                current, _navigable = converter.combine(current, name)
            children = list(repository.children(current))
    except (ResolutionError, ValueError) as e:
        _fail(e)
        return

    for child in children:
        if child.is_navigable:
            console.print(f"[bold blue]{escape_markup(child.name)}/[/bold blue]")
        else:
            console.print(escape_markup(child.name))


@cli.group("repo")
def repo_group():
    """Manage configured repositories."""


@repo_group.command("list")
def repo_list():
    """Show configured repositories in precedence order."""
    settings = AppSettings()
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right")
    table.add_column("Source", style="green")
    table.add_column("Scope")
    rows = 0
    for scope in ("local", "project", "global"):
        for source in settings.get_repositories(scope):
            rows += 1
            table.add_row(str(rows), escape_markup(source), scope)
    if not rows:
        console.print("[yellow]No repositories configured[/yellow]")
        return
    console.print(table)


def _scope_options(func):
    """Attach the mutually exclusive --project/--local/--global scope flags."""
    options = [
        click.option(
            "--project",
            "scope_flag",
            flag_value="project",
            default=True,
            help="Project settings (.srcres/settings.yaml, default)",
        ),
        click.option("--local", "scope_flag", flag_value="local", help="Local settings (.srcres/settings.local.yaml)"),
        click.option("--global", "scope_flag", flag_value="global", help="User settings (~/.srcres/settings.yaml)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@repo_group.command("add")
@click.argument("source")
@_scope_options
@click.option("--first", "first", is_flag=True, help="Give the repository highest precedence")
def repo_add(source: str, scope_flag: str, first: bool):
    """Add repository SOURCE (directory, archive path, or jar: URI)."""
    if AppSettings().add_repository(source, scope_flag, first=first):
        console.print(f"[green]✓ Added {escape_markup(source)} ({scope_flag})[/green]")
    else:
        console.print(f"[yellow]{escape_markup(source)} already configured ({scope_flag})[/yellow]")


@repo_group.command("remove")
@click.argument("source")
@_scope_options
def repo_remove(source: str, scope_flag: str):
    """Remove repository SOURCE."""
    if AppSettings().remove_repository(source, scope_flag):
        console.print(f"[green]✓ Removed {escape_markup(source)} ({scope_flag})[/green]")
    else:
        console.print(f"[yellow]{escape_markup(source)} not configured ({scope_flag})[/yellow]")
        sys.exit(1)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
