"""Classify command for the paylink CLI.

Shows how a failure with the given status, transport code and server
message would be categorized and presented to the user.
"""

from __future__ import annotations

import json
from typing import Any

import typer

from paylink.core.errors import classify_error

from ..helpers import configure_global_logging
from ..output import console, create_classification_table


def _build_error(
    status: int | None,
    code: str | None,
    message: str | None,
    errors: list[str] | None,
) -> dict[str, Any]:
    error: dict[str, Any] = {}
    if status is not None:
        body: dict[str, Any] = {}
        if message:
            body["message"] = message
        if errors:
            body["errors"] = list(errors)
        error["response"] = {"status": status, "body": body or None}
    if code:
        error["code"] = code
    return error


def classify(
    status: int | None = typer.Option(
        None,
        "--status",
        "-s",
        help="HTTP status of the response (omit for failures without a response)",
    ),
    code: str | None = typer.Option(
        None,
        "--code",
        "-c",
        help="Transport code, e.g. ERR_NETWORK or ECONNABORTED",
    ),
    message: str | None = typer.Option(
        None,
        "--message",
        "-m",
        help="Message supplied by the server in the response body",
    ),
    errors: list[str] | None = typer.Option(
        None,
        "--error",
        "-e",
        help="Validation error supplied by the server (repeatable)",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output the classification as JSON",
    ),
) -> None:
    """Classify a request failure.

    Examples:
      paylink classify --status 503
      paylink classify --code ERR_NETWORK
      paylink classify --status 422 -e "Email is required" -e "Salary must be positive"
    """
    configure_global_logging(console)

    classified = classify_error(_build_error(status, code, message, errors))
    if json_output:
        typer.echo(json.dumps(classified.to_dict(), indent=2))
        return
    console.print(create_classification_table(classified))
