"""CLI entry point for statetrim."""

from __future__ import annotations

from pathlib import Path

import click


# Default config template
CONFIG_TEMPLATE = """\
compaction:
  recent_post_count: 60  # posts kept per recently visited channel
  keep_current: true     # keep the active channel's full history

snapshot:
  input: state.json
  output: state.compacted.json

logging:
  level: INFO  # DEBUG logs every dropped post
"""


_project_root_option = click.option(
    "--project-root",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    default=".",
    help="Project root directory (default: cwd).",
)

_input_option = click.option(
    "--input", "input_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Snapshot JSON to read (default: snapshot.input from config).",
)

_output_option = click.option(
    "--output", "output_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Where to write the result (default: snapshot.output from config).",
)


def _load(project_root: str) -> tuple[Path, dict]:
    """Load config and configure logging for a command."""
    import logging

    from statetrim.config import ConfigError, load_config, log_level

    root = Path(project_root)
    try:
        config = load_config(root)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    logging.basicConfig(
        level=log_level(config),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    return root, config


def _snapshot_paths(root: Path, config: dict, input_path: str | None, output_path: str | None) -> tuple[Path, Path]:
    from statetrim.config import resolve_snapshot_paths

    paths = resolve_snapshot_paths(config, root)
    src = Path(input_path) if input_path else paths["input"]
    dst = Path(output_path) if output_path else paths["output"]
    return src, dst


def _read_snapshot(path: Path) -> dict:
    from statetrim.snapshot import SnapshotError, load_snapshot

    try:
        return load_snapshot(path)
    except SnapshotError as exc:
        raise click.ClickException(str(exc)) from exc


def _echo_stats(before: dict[str, int], after: dict[str, int] | None = None) -> None:
    from statetrim.stats import STAT_KEYS, diff_stats

    if after is None:
        for key in STAT_KEYS:
            click.echo(f"  {key}: {before[key]:,}")
        return

    delta = diff_stats(before, after)
    for key in STAT_KEYS:
        click.echo(f"  {key}: {before[key]:,} -> {after[key]:,} ({delta[key]:+,})")


@click.group()
def cli() -> None:
    """statetrim: bounded compaction of client-side chat stores."""


@cli.command()
@_project_root_option
def init(project_root: str) -> None:
    """Create .statetrim/config.yaml with default settings."""
    from statetrim.config import config_path, load_config

    root = Path(project_root)
    path = config_path(root)

    if path.exists():
        click.echo(f"{path} already exists")
        raise SystemExit(1)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(CONFIG_TEMPLATE)

    # Load through the standard path to validate the template
    load_config(root)
    click.echo(f"Created {path}")


@cli.command()
@_project_root_option
@_input_option
@_output_option
@click.option(
    "--window",
    type=int,
    default=None,
    help="Posts kept per recently visited channel (default: from config).",
)
@click.option(
    "--keep-current/--no-keep-current",
    default=None,
    help="Keep the active channel's full history (default: from config).",
)
def compact(
    project_root: str,
    input_path: str | None,
    output_path: str | None,
    window: int | None,
    keep_current: bool | None,
) -> None:
    """Compact a snapshot to its recent working set."""
    from statetrim.compact import clean_up_state
    from statetrim.snapshot import save_snapshot
    from statetrim.stats import snapshot_stats

    root, config = _load(project_root)
    src, dst = _snapshot_paths(root, config, input_path, output_path)

    if window is None:
        window = config["compaction"]["recent_post_count"]
    if keep_current is None:
        keep_current = config["compaction"]["keep_current"]

    snapshot = _read_snapshot(src)
    result = clean_up_state(snapshot, keep_current=keep_current, recent_post_count=window)
    save_snapshot(result, dst)

    click.echo(f"Compacted {src} -> {dst}")
    _echo_stats(snapshot_stats(snapshot), snapshot_stats(result))


@cli.command()
@_project_root_option
@_input_option
@_output_option
def reset(project_root: str, input_path: str | None, output_path: str | None) -> None:
    """Reduce a snapshot to what survives a client version upgrade."""
    from statetrim.compact import reset_state_for_new_version
    from statetrim.snapshot import save_snapshot

    root, config = _load(project_root)
    src, dst = _snapshot_paths(root, config, input_path, output_path)

    snapshot = _read_snapshot(src)
    save_snapshot(reset_state_for_new_version(snapshot), dst)
    click.echo(f"Reset {src} -> {dst}")


@cli.command()
@_project_root_option
@_input_option
@click.option(
    "--cutoff",
    type=int,
    default=None,
    help="Retention cutoff to enforce (default: the snapshot's own policy).",
)
@click.option(
    "--current-channel",
    "current_channel_id",
    default=None,
    help="Channel allowed to keep several blocks (default: the snapshot's current channel).",
)
def check(
    project_root: str,
    input_path: str | None,
    cutoff: int | None,
    current_channel_id: str | None,
) -> None:
    """Verify the integrity invariants of a (compacted) snapshot."""
    from statetrim.check import check_snapshot

    root, config = _load(project_root)
    src, _ = _snapshot_paths(root, config, input_path, None)
    result = check_snapshot(_read_snapshot(src), cutoff=cutoff, current_channel_id=current_channel_id)

    if result.passed:
        click.echo("Check: PASS (0 violations)")
    else:
        click.echo(f"Check: FAIL ({len(result.violations)} violations)")
        for v in result.violations:
            loc = v.collection
            if v.entry_id:
                loc += f"/{v.entry_id}"
            click.echo(f"  [{loc}] {v.message}")
        raise SystemExit(1)


@cli.command()
@_project_root_option
@_input_option
def stats(project_root: str, input_path: str | None) -> None:
    """Show entity counts for a snapshot."""
    from statetrim.stats import snapshot_stats

    root, config = _load(project_root)
    src, _ = _snapshot_paths(root, config, input_path, None)
    click.echo(f"Snapshot {src}:")
    _echo_stats(snapshot_stats(_read_snapshot(src)))
