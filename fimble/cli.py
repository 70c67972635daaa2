"""CLI entry point for fimble."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax

from fimble_core.config import FimbleConfig, load_config
from fimble_core.config.loader import DEFAULT_CONFIG_TEMPLATE
from fimble_core.errors import FimbleError
from fimble_core.manifest import (
    Manifest,
    ManifestBuilder,
    Verifier,
    encode_manifest,
    load_manifest,
)
from fimble_core.scan import Scanner

app = typer.Typer(
    name="fimble",
    help="File integrity monitoring: hash a tree, baseline it, check it later.",
    no_args_is_help=True,
)

config_app = typer.Typer(help="Manage fimble configuration.")
app.add_typer(config_app, name="config")

# Global state
_config: FimbleConfig | None = None

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def _get_config() -> FimbleConfig:
    if _config is None:
        return load_config()
    return _config


def _err_console() -> Console:
    # Resolved per call so the current sys.stderr is used.
    return Console(file=sys.stderr, highlight=False, soft_wrap=True)


def _fail(message: str) -> typer.Exit:
    _err_console().print(f"[red]Error:[/red] {escape(message)}")
    return typer.Exit(1)


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps({
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        })


def _setup_logging(cfg: FimbleConfig) -> None:
    if cfg.log_format == "json":
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(_JsonFormatter())
    else:
        handler = RichHandler(console=_err_console(), show_path=False)
    logging.basicConfig(level=_LOG_LEVELS[cfg.log_level], handlers=[handler], force=True)


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to fimble.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        raise _fail(str(e))
    _setup_logging(_config)


def _load(manifest_path: str) -> Manifest:
    try:
        return load_manifest(Path(manifest_path))
    except OSError as e:
        raise _fail(f"cannot read manifest {manifest_path}: {e}")
    except FimbleError as e:
        raise _fail(f"{manifest_path}: {e}")


# ---------------------------------------------------------------------------
# hash / build-manifest / view-manifest / check-manifest
# ---------------------------------------------------------------------------


@app.command("hash")
def hash_cmd(
    paths: Annotated[list[str], typer.Argument(help="Directories or files to hash")],
) -> None:
    """Print the hex tree digest of PATHS (several paths are combined in order)."""
    scanner = Scanner(_get_config())
    try:
        if len(paths) == 1:
            digest = scanner.scan(paths[0])
        else:
            digest = scanner.scan_multiple(paths)
    except FimbleError as e:
        raise _fail(str(e))
    typer.echo(digest.hex())


@app.command("build-manifest")
def build_manifest_cmd(
    path: Annotated[str, typer.Argument(help="Root of the tree to baseline")],
    mode: Annotated[
        str | None,
        typer.Option("--mode", "-m", help="exact or probabilistic (default from config)"),
    ] = None,
    fp_rate: Annotated[
        float | None,
        typer.Option("--fp-rate", help="Bloom false-positive target for probabilistic mode"),
    ] = None,
    output: Annotated[
        str | None, typer.Option("--output", "-o", help="Write manifest to file instead of stdout")
    ] = None,
) -> None:
    """Build a manifest of PATH and write it to stdout."""
    cfg = _get_config()
    if mode is not None and mode not in ("exact", "probabilistic"):
        raise _fail(f"unknown mode {mode!r}: expected 'exact' or 'probabilistic'")
    if fp_rate is not None:
        if not 0 < fp_rate < 1:
            raise _fail("--fp-rate must be between 0 and 1")
        cfg = cfg.model_copy(
            update={"bloom": cfg.bloom.model_copy(update={"false_positive_rate": fp_rate})}
        )

    try:
        manifest = ManifestBuilder(cfg).build(path, mode)
    except FimbleError as e:
        raise _fail(str(e))

    encoded = encode_manifest(manifest)
    if output:
        try:
            Path(output).write_text(encoded + "\n")
        except OSError as e:
            raise _fail(f"cannot write manifest {output}: {e}")
        _err_console().print(f"[green]Manifest written to[/green] {output}")
    else:
        typer.echo(encoded)


@app.command("view-manifest")
def view_manifest_cmd(
    manifest_path: Annotated[str, typer.Argument(help="Path to a manifest file")],
) -> None:
    """Show a manifest's root, digest and (exact mode) per-entry digests."""
    manifest = _load(manifest_path)
    console = Console(soft_wrap=True)
    console.print(f"[dim]Root:[/dim]      {escape(manifest.root)}")
    console.print(f"[dim]Digest:[/dim]    {manifest.digest.hex()}")
    console.print(f"[dim]Algorithm:[/dim] {manifest.algorithm}")
    console.print(f"[dim]Mode:[/dim]      {manifest.mode}")

    if manifest.table is not None:
        console.print(f"[dim]Entries:[/dim]   {len(manifest.table)}")
        # One "<digest>  <path>" line per entry, sorted by path.
        for rel, digest in sorted(manifest.table.items()):
            typer.echo(f"{digest.hex()}  {rel}")
    else:
        bloom = manifest.bloom
        console.print(
            f"[dim]Bloom:[/dim]     {len(bloom)} checkpoints, "
            f"{len(bloom.generations)} generation(s), "
            f"target false-positive rate {bloom.false_positive_rate}"
        )


@app.command("check-manifest")
def check_manifest_cmd(
    manifest_path: Annotated[str, typer.Argument(help="Path to a manifest file")],
) -> None:
    """Verify the manifest's tree; print changed paths and exit 1 on any change."""
    manifest = _load(manifest_path)
    try:
        report = Verifier(manifest, _get_config()).verify()
    except FimbleError as e:
        raise _fail(str(e))

    if report.ok:
        return

    for rel in report.changed_paths:
        typer.echo(rel)
    if report.mode == "probabilistic":
        if report.diverged_at is not None:
            typer.echo(f"diverged at or before: {report.diverged_at}")
        else:
            typer.echo("tree digest differs from manifest")
    _err_console().print("[red]Integrity check failed - something has changed[/red]")
    raise typer.Exit(1)


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    Console().print(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default fimble.yaml in current directory."""
    target = Path("fimble.yaml")
    if target.exists() and not force:
        _err_console().print("[yellow]fimble.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    Console().print(f"[green]Created[/green] {target}")
