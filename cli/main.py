from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, Optional

import click

from tradeledger.config import get_settings as get_pipeline_settings
from tradeledger.errors import ConfigurationError, ReportError
from tradeledger.export import trades_to_csv
from tradeledger.models import ParsedReport
from tradeledger.report import analyze_many, analyze_path

from .config import LOG_LEVELS, MissingConfigurationError, configure_logging, get_settings
from .http_client import LedgerClient
from .options import build_form_payload, output_option, pipeline_options


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _echo_summary(report: ParsedReport) -> None:
    click.echo(f"== {report.filename} ({report.source}, {len(report.trades)} trades) ==")
    width = max((len(k) for k in report.summary), default=0)
    for key, value in report.summary.items():
        click.echo(f"  {key.ljust(width)}  {value}")


def _client(ctx: click.Context) -> LedgerClient:
    if "client" not in ctx.obj:
        try:
            settings = get_settings(base_url=ctx.obj.get("base_url"), token=ctx.obj.get("token"))
        except MissingConfigurationError as exc:
            raise click.ClickException(str(exc)) from exc
        ctx.obj["client"] = LedgerClient(settings=settings)
    return ctx.obj["client"]


@click.group()
@click.option("--base-url", envvar="API_BASE_URL", help="API base URL for remote commands (env: API_BASE_URL)")
@click.option("--token", envvar="API_TOKEN", help="API token for Authorization header")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), help="Logging verbosity.")
@click.pass_context
def cli(ctx: click.Context, base_url: Optional[str], token: Optional[str], log_level: Optional[str]) -> None:
    """Analyze MetaTrader and TradingView trade exports."""

    configure_logging(log_level)
    ctx.obj = {"base_url": base_url, "token": token}


@cli.command()
@click.argument("paths", type=click.Path(exists=True, dir_okay=False, path_type=Path), nargs=-1, required=True)
@pipeline_options
@output_option
@click.option("--workers", type=int, help="Files analyzed in parallel (env: TRADELEDGER_MAX_WORKERS).")
@click.pass_context
def analyze(
    ctx: click.Context,
    paths: tuple[Path, ...],
    initial_balance: Optional[float],
    max_rows: Optional[int],
    fmt: str,
    workers: Optional[int],
) -> None:
    """Parse export files locally and print their summaries."""

    try:
        outcomes = analyze_many(paths, max_workers=workers, initial_balance=initial_balance, max_rows=max_rows)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    if fmt.lower() == "json":
        _echo_json(
            [
                {"filename": o.filename, "error": o.error, "report": o.report.to_dict() if o.report else None}
                for o in outcomes
            ]
        )
    else:
        for outcome in outcomes:
            if outcome.report is not None:
                _echo_summary(outcome.report)
            else:
                click.echo(f"== {outcome.filename} ==\n  error: {outcome.error}", err=True)

    if any(not o.ok for o in outcomes):
        ctx.exit(1)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), help="CSV path (default: <name>_trades.csv).")
@pipeline_options
def export(path: Path, output: Optional[Path], initial_balance: Optional[float], max_rows: Optional[int]) -> None:
    """Write the canonical trade ledger of one export as CSV."""

    try:
        settings = get_pipeline_settings(initial_balance=initial_balance, max_rows=max_rows)
        report = analyze_path(path, initial_balance, max_rows, settings=settings)
    except (ReportError, ConfigurationError) as exc:
        raise click.ClickException(str(exc)) from exc

    target_path = output or path.with_name(f"{path.stem}_trades.csv")
    trades_to_csv(report.trades, str(target_path))
    click.echo(f"Saved {len(report.trades)} trades to {target_path}")


@cli.command()
@click.argument("paths", type=click.Path(exists=True, dir_okay=False, path_type=Path), nargs=-1, required=True)
@pipeline_options
@click.pass_context
def upload(ctx: click.Context, paths: tuple[Path, ...], initial_balance: Optional[float], max_rows: Optional[int]) -> None:
    """Upload export files to the API for analysis."""

    form = build_form_payload(initial_balance=initial_balance, max_rows=max_rows)
    _echo_json(_client(ctx).upload_reports(list(paths), form))


@cli.command("list-reports")
@click.pass_context
def list_reports(ctx: click.Context) -> None:
    """List reports held by the API."""

    _echo_json(_client(ctx).list_reports())


@cli.command("show-report")
@click.argument("report_id")
@click.pass_context
def show_report(ctx: click.Context, report_id: str) -> None:
    """Fetch one full report from the API."""

    _echo_json(_client(ctx).fetch_report(report_id))


@cli.command("download-trades")
@click.argument("report_id")
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), help="Write the CSV here instead of stdout.")
@click.pass_context
def download_trades(ctx: click.Context, report_id: str, output: Optional[Path]) -> None:
    """Fetch the trade ledger CSV of a stored report."""

    content = _client(ctx).fetch_trades_csv(report_id)
    if output is None:
        click.echo(content, nl=False)
        return
    output.write_text(content)
    click.echo(f"Saved trades of {report_id} to {output}")


@cli.command("delete-report")
@click.argument("report_id")
@click.pass_context
def delete_report(ctx: click.Context, report_id: str) -> None:
    """Clear a report from the API workspace."""

    _client(ctx).delete_report(report_id)
    click.echo(f"Deleted {report_id}")


def main(argv: Optional[list[str]] = None) -> None:
    argv = argv if argv is not None else sys.argv[1:]
    cli.main(args=argv, prog_name=os.path.basename(sys.argv[0]))


if __name__ == "__main__":
    main()
