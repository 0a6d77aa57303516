"""Upload commands for vidctl."""

from __future__ import annotations

import threading
from contextlib import nullcontext
from dataclasses import replace
from typing import Any, ContextManager

import click
from rich.progress import Progress, TaskID

from vidctl.cli.common import Context, global_options, handle_errors, require_auth
from vidctl.core.output import (
    OutputFormat,
    create_upload_progress,
    print_error,
    print_output,
    print_success,
    print_table,
    print_warning,
)
from vidctl.core.validation import (
    MAX_BATCH_FILES,
    validate_batch,
    validate_channel_id,
    validate_upload_file,
    validate_upload_id,
    validate_workers,
)
from vidctl.models.progress import UploadProgress

RESULT_COLUMNS = ["file", "upload_id", "chunked", "parts", "status", "duration", "error"]
PART_COLUMNS = ["part_number", "etag", "size", "is_complete"]


class _ProgressBars:
    """Maps tracker updates onto one rich progress bar per upload.

    Tracker callbacks arrive on worker threads, so task creation is locked.
    """

    def __init__(self, progress: Progress) -> None:
        self.progress = progress
        self._tasks: dict[str, TaskID] = {}
        self._lock = threading.Lock()

    def __call__(self, upload_id: str, state: UploadProgress) -> None:
        with self._lock:
            task = self._tasks.get(upload_id)
            if task is None:
                task = self.progress.add_task(upload_id, total=100, parts="")
                self._tasks[upload_id] = task

        description = upload_id
        if state.has_error:
            description = f"[red]{upload_id}: {state.error_message}[/red]"
        elif state.is_complete:
            description = f"[green]{upload_id}[/green]"
        self.progress.update(
            task,
            completed=state.percent_complete,
            description=description,
            parts=f"{state.completed_part_count}/{state.total_parts}",
        )


def _live_progress(ctx: Context) -> tuple[ContextManager[Any], _ProgressBars | None]:
    """Build progress bars unless output is quiet or machine-readable."""
    if ctx.quiet or ctx.output_format == OutputFormat.JSON:
        return nullcontext(), None
    progress = create_upload_progress()
    return progress, _ProgressBars(progress)


@click.group()
def upload() -> None:
    """Upload videos and inspect upload sessions."""
    pass


@upload.command("files")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--channel", "-c", help="Channel ID (defaults to profile default_channel)")
@click.option(
    "--max-files",
    type=click.IntRange(1, MAX_BATCH_FILES),
    default=MAX_BATCH_FILES,
    show_default=True,
    help="Maximum files accepted in one batch",
)
@click.option(
    "--file-workers",
    type=int,
    default=None,
    help="Files uploaded at the same time (default: all)",
)
@click.option("--dry-run", is_flag=True, help="Preview without uploading")
@global_options
@require_auth
@handle_errors
def upload_files(
    ctx: Context,
    files: tuple[str, ...],
    channel: str | None,
    max_files: int,
    file_workers: int | None,
    dry_run: bool,
) -> None:
    """Upload video files to a channel as one batch.

    Files above 150 MiB are uploaded in 5 MiB parts. Press Ctrl-C to cancel
    every upload that has not finished.

    Example:
        vidctl upload files intro.mp4 talk.mov --channel 42
    """
    from vidctl.services.uploads import UploadService

    if not channel:
        profile = ctx.config.get_profile(ctx.profile_name) if ctx.config else None
        channel = profile.default_channel if profile else None
        if not channel:
            profile_name = ctx.profile_name or (
                ctx.config.default_profile if ctx.config else "default"
            )
            raise click.ClickException(
                f"Channel required. Pass --channel/-c or set default_channel in profile '{profile_name}'."
            )

    channel = validate_channel_id(channel)
    paths = validate_batch(files, max_files=max_files)

    settings = ctx.config.upload if ctx.config else None
    if file_workers is not None and settings is not None:
        settings = replace(settings, max_concurrent_files=validate_workers(file_workers))

    if dry_run:
        click.echo("[DRY-RUN] Would upload with the following settings:")
        click.echo(f"  Channel: {channel}")
        for path in paths:
            click.echo(f"  File: {path} ({path.stat().st_size} bytes)")
        if settings is not None:
            click.echo(f"  Parts in flight per file: {settings.max_concurrent_parts}")
            click.echo(f"  Files in flight: {settings.max_concurrent_files or len(paths)}")
        return

    live, bars = _live_progress(ctx)
    service = UploadService(ctx.get_client(), settings, progress_callback=bars)
    with live:
        summary = service.upload_files(channel, paths)

    rows = [r.to_dict() for r in summary.results]

    if ctx.output_format == OutputFormat.JSON:
        print_output(
            {
                "success": summary.success,
                "channel": channel,
                "cancelled": summary.cancelled,
                "total": summary.total,
                "succeeded": summary.succeeded,
                "failed": summary.failed,
                "duration": round(summary.duration, 2),
                "files": rows,
            },
            format=OutputFormat.JSON,
        )
    elif ctx.quiet:
        print_output(rows, quiet=True)
    else:
        print_table(rows, RESULT_COLUMNS, title=f"Channel {channel}")
        if summary.success:
            print_success(
                f"Uploaded {summary.succeeded} file(s), {summary.total_size_mb:.1f} MB "
                f"in {summary.duration:.1f}s ({summary.throughput_mbps:.1f} MB/s)"
            )
        elif summary.cancelled:
            print_warning("Upload cancelled")
        else:
            print_error(f"Uploaded {summary.succeeded}/{summary.total} files ({summary.failed} failed)")
            for err in summary.errors[:5]:
                click.echo(f"  - {err}", err=True)

    if not summary.success:
        raise SystemExit(1)


@upload.command("status")
@click.argument("upload_id")
@global_options
@require_auth
@handle_errors
def upload_status(ctx: Context, upload_id: str) -> None:
    """Show the backend's progress record of an upload.

    Example:
        vidctl upload status 6f1c2a
    """
    from vidctl.services.uploads import UploadService

    upload_id = validate_upload_id(upload_id)
    progress = UploadService(ctx.get_client()).get_progress(upload_id)

    data = {"upload_id": upload_id, **progress.to_dict()}
    print_output(data, format=ctx.output_format, quiet=ctx.quiet)


@upload.command("verify")
@click.argument("upload_id")
@global_options
@require_auth
@handle_errors
def upload_verify(ctx: Context, upload_id: str) -> None:
    """List the backend's per-part records of a chunked upload.

    Example:
        vidctl upload verify 6f1c2a
    """
    from vidctl.services.uploads import UploadService

    upload_id = validate_upload_id(upload_id)
    records = UploadService(ctx.get_client()).verify_parts(upload_id)

    rows = [r.to_dict() for r in records]
    if ctx.output_format == OutputFormat.JSON:
        print_output(rows, format=OutputFormat.JSON)
        return

    print_table(rows, PART_COLUMNS, title=f"Parts of {upload_id}")
    if not ctx.quiet:
        complete = sum(1 for r in records if r.is_complete)
        click.echo(f"{complete}/{len(records)} part(s) complete")


@upload.command("retry")
@click.argument("upload_id")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@global_options
@require_auth
@handle_errors
def upload_retry(ctx: Context, upload_id: str, file: str) -> None:
    """Re-upload the outstanding parts of a failed chunked upload.

    FILE must be the same file that was originally uploaded. The backend
    decides which parts are outstanding; the upload is verified and
    finalized afterwards.

    Example:
        vidctl upload retry 6f1c2a talk.mov
    """
    from vidctl.services.uploads import UploadService

    upload_id = validate_upload_id(upload_id)
    path = validate_upload_file(file)

    live, bars = _live_progress(ctx)
    service = UploadService(
        ctx.get_client(),
        ctx.config.upload if ctx.config else None,
        progress_callback=bars,
    )
    with live:
        result = service.retry_upload(upload_id, path)

    if ctx.output_format == OutputFormat.JSON:
        print_output({"success": result.success, **result.to_dict()}, format=OutputFormat.JSON)
    elif ctx.quiet:
        print_output(result.to_dict(), quiet=True)
    elif result.success:
        print_success(f"Upload {upload_id} completed")
    else:
        print_error(result.error)

    if not result.success:
        raise SystemExit(1)
