from __future__ import annotations

from typing import Any, Callable, Dict

import click


def _positive(_: click.Context, param: click.Parameter, value: Any) -> Any:
    if value is not None and value <= 0:
        raise click.BadParameter(f"{param.name} must be positive.")
    return value


def pipeline_options(func: Callable[..., Any]) -> Callable[..., Any]:
    options = [
        click.option(
            "--initial-balance",
            type=float,
            callback=_positive,
            help="Starting balance when the export carries none (env: TRADELEDGER_INITIAL_BALANCE).",
        ),
        click.option(
            "--max-rows",
            type=int,
            callback=_positive,
            help="Read at most this many rows per sheet (quick preview).",
        ),
    ]

    for option in reversed(options):
        func = option(func)
    return func


def output_option(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "--format",
        "fmt",
        default="table",
        show_default=True,
        type=click.Choice(["table", "json"], case_sensitive=False),
        help="Summary table or full JSON report.",
    )(func)


def build_form_payload(**kwargs: Any) -> Dict[str, Any]:
    return {key: value for key, value in kwargs.items() if value is not None}
