"""
Artifact Vault CLI - Command-line interface.

Inspect and maintain artifacts and threads in a data directory.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from artifact_vault.artifacts.models import ArtifactSummary, ContentEncoding, ReadRange
from artifact_vault.config import Settings, configure_logging
from artifact_vault.core.exceptions import ArtifactVaultError, format_exception
from artifact_vault.export import export_artifacts_csv, export_threads_csv
from artifact_vault.threads.models import ThreadSummary
from artifact_vault.vault import Vault, open_vault

app = typer.Typer(
    name="artifact-vault",
    help="Artifact Vault - Versioned artifacts and thread inventories",
    no_args_is_help=True,
)
artifacts_app = typer.Typer(help="Inspect and maintain artifacts", no_args_is_help=True)
threads_app = typer.Typer(help="Inspect and maintain threads", no_args_is_help=True)
app.add_typer(artifacts_app, name="artifacts")
app.add_typer(threads_app, name="threads")

console = Console()


def _open() -> Vault:
    try:
        settings = Settings.from_env()
    except ArtifactVaultError as e:
        console.print(f"[red]{format_exception(e)}[/red]")
        raise typer.Exit(1)
    configure_logging(settings.log_level)
    return open_vault(settings)


def _fail(error: Exception) -> NoReturn:
    console.print(f"[red]{format_exception(error)}[/red]")
    raise typer.Exit(1)


def _format_size(size: int) -> str:
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} GB"


def _artifact_table(title: str, summaries: list[ArtifactSummary]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Filename")
    table.add_column("Thread", style="dim")
    table.add_column("Version", justify="right")
    table.add_column("Updated", style="green")

    for summary in summaries:
        table.add_row(
            summary.artifact_id,
            summary.display_filename,
            summary.thread_id or "-",
            f"v{summary.current_version}",
            summary.updated_at[:19],
        )
    return table


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _delete_thread(vault: Vault, thread_id: str, with_artifacts: bool) -> tuple[bool, int]:
    """
    Delete a thread and optionally its artifacts.

    The thread goes first so the artifact deletions skip its refresh.

    Returns:
        Whether the thread existed and how many artifacts were deleted
    """
    bound = vault.store.list_artifacts(thread_id) if with_artifacts else []
    removed = vault.threads.delete_thread(thread_id)
    for summary in bound:
        vault.store.delete(summary.artifact_id)
    vault.composer.forget_thread(thread_id)
    return removed, len(bound)


# ----------------------------------------------------------------------
# Artifacts
# ----------------------------------------------------------------------


@artifacts_app.command("list")
def list_artifacts(
    thread: Optional[str] = typer.Option(None, "--thread", "-t", help="Only artifacts of this thread"),
):
    """List artifacts, most recently updated first."""
    vault = _open()
    try:
        if thread:
            summaries = vault.store.list_artifacts(thread)
        else:
            summaries = vault.store.list_all_artifacts()
    finally:
        vault.close()

    if not summaries:
        console.print("[yellow]No artifacts found[/yellow]")
        return

    console.print(_artifact_table(f"Artifacts ({len(summaries)})", summaries))


@artifacts_app.command("show")
def show_artifact(
    artifact_id: str = typer.Argument(..., help="Artifact ID"),
):
    """Show an artifact's version history."""
    vault = _open()
    try:
        record = vault.store.get_record(artifact_id)
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()

    console.print(
        Panel.fit(
            f"[bold blue]{record.display_filename}[/bold blue]\n"
            f"ID: {record.artifact_id}\n"
            f"Thread: {record.thread_id or '-'}\n"
            f"Current version: v{record.current_version}\n"
            f"Created: {record.created_at}",
        )
    )

    table = Table(title="Versions")
    table.add_column("Version", justify="right", style="cyan")
    table.add_column("Storage name")
    table.add_column("Created", style="green")
    table.add_column("Description")
    for version in record.versions:
        table.add_row(
            f"v{version.version}",
            version.storage_name,
            version.created_at[:19],
            version.description,
        )
    console.print(table)


@artifacts_app.command("read")
def read_artifact(
    artifact_id: str = typer.Argument(..., help="Artifact ID"),
    version: Optional[int] = typer.Option(None, "--version", "-v", help="Version (default: latest)"),
    top: Optional[int] = typer.Option(None, "--top", help="Only the first N lines"),
    bottom: Optional[int] = typer.Option(None, "--bottom", help="Only the last N lines"),
    base64: bool = typer.Option(False, "--base64", help="Print content base64-encoded"),
):
    """Print the content of an artifact version."""
    if top is not None and bottom is not None:
        console.print("[red]Use either --top or --bottom, not both[/red]")
        raise typer.Exit(1)

    read_range = ReadRange.ALL
    line_count = None
    if top is not None:
        read_range, line_count = ReadRange.TOP, top
    elif bottom is not None:
        read_range, line_count = ReadRange.BOTTOM, bottom

    vault = _open()
    try:
        result = vault.store.read(
            artifact_id,
            version=version,
            encoding=ContentEncoding.BASE64 if base64 else ContentEncoding.UTF8,
            range=read_range,
            line_count=line_count,
        )
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()

    console.print(result.content, markup=False, highlight=False, soft_wrap=True)
    if result.is_truncated:
        console.print(
            f"[dim]{result.range.value} {result.returned_lines} of {result.total_lines} lines[/dim]"
        )


@artifacts_app.command("search")
def search_artifact(
    artifact_id: str = typer.Argument(..., help="Artifact ID"),
    pattern: str = typer.Argument(..., help="Whitespace-insensitive search pattern"),
    version: Optional[int] = typer.Option(None, "--version", "-v", help="Version (default: latest)"),
    context: int = typer.Option(2, "--context", "-C", help="Context lines around each match"),
    max_matches: int = typer.Option(10, "--max", "-n", help="Maximum matches to show"),
):
    """Search an artifact version for a pattern."""
    vault = _open()
    try:
        result = vault.store.search(
            artifact_id,
            pattern,
            version=version,
            context_before=context,
            context_after=context,
            max_matches=max_matches,
        )
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()

    if not result.matches:
        console.print(f"[yellow]No matches in {result.filename} (v{result.version})[/yellow]")
        return

    for match in result.matches:
        console.print(f"[bold cyan]Match {match.match_index}[/bold cyan] [dim]{match.context_info}[/dim]")
        console.print(match.context_text, markup=False, highlight=False)
        console.print()

    if result.has_more_matches:
        console.print(
            f"[yellow]Showing {result.returned_matches} of {result.total_matches} matches[/yellow]"
        )


@artifacts_app.command("delete")
def delete_artifact(
    artifact_id: str = typer.Argument(..., help="Artifact ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Permanently delete an artifact and all its versions."""
    if not yes and not typer.confirm(f"Delete artifact {artifact_id}?"):
        raise typer.Exit(0)

    vault = _open()
    try:
        summary = vault.store.delete(artifact_id)
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()

    console.print(f"[green]Deleted:[/green] {summary.display_filename} ({summary.artifact_id})")


@artifacts_app.command("delete-by-thread")
def delete_artifacts_by_thread(
    thread_id: str = typer.Argument(..., help="Thread ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete every artifact bound to a thread."""
    vault = _open()
    try:
        bound = vault.store.list_artifacts(thread_id)
        if not bound:
            console.print(f"[yellow]No artifacts found for thread {thread_id}[/yellow]")
            return

        console.print(_artifact_table(f"Artifacts of {thread_id} ({len(bound)})", bound))
        if not yes and not typer.confirm(f"Delete {len(bound)} artifact(s)?"):
            raise typer.Exit(0)

        for summary in bound:
            vault.store.delete(summary.artifact_id)
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()

    console.print(f"[green]Deleted {len(bound)} artifact(s)[/green]")


@artifacts_app.command("orphans")
def orphans(
    delete: bool = typer.Option(False, "--delete", help="Delete the orphaned artifacts"),
):
    """Find artifacts whose owning thread no longer exists."""
    vault = _open()
    try:
        found = [
            summary
            for summary in vault.store.list_all_artifacts()
            if summary.thread_id and not vault.threads.thread_exists(summary.thread_id)
        ]

        if not found:
            console.print("[green]No orphaned artifacts[/green]")
            return

        console.print(_artifact_table(f"Orphaned Artifacts ({len(found)})", found))

        if delete:
            for summary in found:
                vault.store.delete(summary.artifact_id)
            console.print(f"[green]Deleted {len(found)} orphaned artifact(s)[/green]")
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()


@artifacts_app.command("reindex")
def reindex():
    """Rebuild the artifact index from the artifact containers."""
    vault = _open()
    try:
        count = vault.store.reindex()
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()

    console.print(f"[green]Indexed {count} artifact(s)[/green]")


@artifacts_app.command("export")
def export_artifacts(
    output: Path = typer.Argument(..., help="Destination CSV file"),
):
    """Export the artifact listing to CSV."""
    vault = _open()
    try:
        count = export_artifacts_csv(vault.store.list_all_artifacts(), output)
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()

    console.print(f"[green]Exported {count} artifact(s) to {output}[/green]")


# ----------------------------------------------------------------------
# Threads
# ----------------------------------------------------------------------


@threads_app.command("list")
def list_threads():
    """List threads from the summary file."""
    vault = _open()
    try:
        summaries = vault.threads.list_summaries()
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()

    if not summaries:
        console.print("[yellow]No threads found[/yellow]")
        return

    table = Table(title=f"Threads ({len(summaries)})")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Artifacts", justify="right")
    table.add_column("Updated", style="green")
    for summary in summaries:
        table.add_row(
            summary.id,
            summary.title,
            str(len(summary.artifact_ids)),
            summary.updated_at[:19],
        )
    console.print(table)


@threads_app.command("show")
def show_thread(
    thread_id: str = typer.Argument(..., help="Thread ID"),
):
    """Show a thread and its composed system prompt."""
    vault = _open()
    try:
        thread = vault.threads.get_thread(thread_id)
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()

    console.print(
        Panel.fit(
            f"[bold blue]{thread.title}[/bold blue]\n"
            f"ID: {thread.id}\n"
            f"Artifacts: {', '.join(thread.artifact_ids) or 'none'}\n"
            f"Updated: {thread.updated_at}",
        )
    )
    console.print(thread.system_prompt, markup=False, highlight=False)


@threads_app.command("refresh")
def refresh_thread(
    thread_id: Optional[str] = typer.Argument(None, help="Thread ID (default: all threads)"),
):
    """Recompute artifact inventories and system prompts."""
    vault = _open()
    try:
        if thread_id:
            thread_ids = [thread_id]
        else:
            thread_ids = [s.id for s in vault.threads.list_summaries()]

        changed = 0
        for tid in thread_ids:
            result = vault.composer.refresh_thread(tid)
            if result.changed:
                changed += 1
                console.print(f"[green]Updated:[/green] {tid}")
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()

    console.print(f"Refreshed {len(thread_ids)} thread(s), {changed} changed")


@threads_app.command("delete")
def delete_thread(
    thread_id: str = typer.Argument(..., help="Thread ID"),
    with_artifacts: bool = typer.Option(
        False, "--with-artifacts", help="Also delete artifacts bound to the thread"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a thread, optionally with its artifacts."""
    if not yes and not typer.confirm(f"Delete thread {thread_id}?"):
        raise typer.Exit(0)

    vault = _open()
    try:
        removed, artifact_count = _delete_thread(vault, thread_id, with_artifacts)
        if not removed and not artifact_count:
            console.print(f"[red]Thread not found: {thread_id}[/red]")
            raise typer.Exit(1)
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()

    console.print(f"[green]Deleted thread:[/green] {thread_id}")
    if artifact_count:
        console.print(f"[green]Deleted {artifact_count} artifact(s)[/green]")


@threads_app.command("prune")
def prune_threads(
    older_than: int = typer.Option(..., "--older-than", help="Delete threads older than N days"),
    by: str = typer.Option("created", "--by", help="Age by 'created' or 'updated' time"),
    with_artifacts: bool = typer.Option(
        False, "--with-artifacts", help="Also delete artifacts bound to the threads"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Bulk-delete threads by age."""
    if older_than < 1:
        console.print("[red]--older-than must be a positive number of days[/red]")
        raise typer.Exit(1)
    if by not in ("created", "updated"):
        console.print(f"[red]Unknown age field: {by} (use created or updated)[/red]")
        raise typer.Exit(1)

    cutoff = datetime.now(timezone.utc) - timedelta(days=older_than)

    def is_stale(summary: ThreadSummary) -> bool:
        stamp = _parse_timestamp(summary.created_at if by == "created" else summary.updated_at)
        return stamp is not None and stamp < cutoff

    vault = _open()
    try:
        stale = [s for s in vault.threads.list_summaries() if is_stale(s)]
        if not stale:
            console.print(f"[yellow]No threads older than {older_than} day(s)[/yellow]")
            return

        for summary in stale[:5]:
            console.print(f"  {summary.id}  {summary.title}")
        if len(stale) > 5:
            console.print(f"  ... and {len(stale) - 5} more")
        if not yes and not typer.confirm(f"Delete {len(stale)} thread(s)?"):
            raise typer.Exit(0)

        artifact_total = 0
        for summary in stale:
            _, artifact_count = _delete_thread(vault, summary.id, with_artifacts)
            artifact_total += artifact_count
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()

    console.print(f"[green]Deleted {len(stale)} thread(s)[/green]")
    if artifact_total:
        console.print(f"[green]Deleted {artifact_total} artifact(s)[/green]")


@threads_app.command("export")
def export_threads(
    output: Path = typer.Argument(..., help="Destination CSV file"),
):
    """Export the thread listing to CSV."""
    vault = _open()
    try:
        count = export_threads_csv(vault.threads.list_summaries(), output)
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()

    console.print(f"[green]Exported {count} thread(s) to {output}[/green]")


# ----------------------------------------------------------------------
# Top level
# ----------------------------------------------------------------------


@app.command()
def usage():
    """Report storage usage."""
    vault = _open()
    try:
        stats = vault.store.get_storage_stats()
        thread_count = len(vault.threads.list_summaries())
    except ArtifactVaultError as e:
        _fail(e)
    finally:
        vault.close()

    console.print(Panel.fit("[bold blue]Storage Usage[/bold blue]"))
    console.print(f"Artifacts: {stats['artifact_count']}")
    console.print(f"Versions: {stats['version_count']}")
    console.print(f"Threads: {thread_count}")
    console.print(f"Total size: {_format_size(stats['total_size_bytes'])}")
    console.print(f"Location: {stats['storage_path']}")


@app.command()
def version():
    """Show Artifact Vault version."""
    from artifact_vault import __version__

    console.print(f"Artifact Vault v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
