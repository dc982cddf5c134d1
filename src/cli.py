"""Click CLI for sending attachments outside the workflow host."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import click

from src.attachment.errors import RelayError
from src.attachment.relay import AttachmentRelay
from src.attachment.transport import HttpxTransport
from src.audit.logger import AuditLogger
from src.credentials import CredentialStore


@click.group()
@click.option("--credentials", default=None, help="Path to a credentials JSON file.")
@click.option("--audit-log", default=None, help="Audit log file path.")
@click.option("--timeout", default=30.0, show_default=True, help="HTTP timeout in seconds.")
@click.pass_context
def cli(ctx: click.Context, credentials: str | None, audit_log: str | None, timeout: float) -> None:
    """ChatWoot attachment relay CLI."""
    ctx.ensure_object(dict)
    try:
        store = (
            CredentialStore.from_file(credentials) if credentials
            else CredentialStore.from_env()
        )
    except RelayError as exc:
        raise click.ClickException(str(exc)) from exc
    ctx.obj["relay"] = AttachmentRelay(
        transport=HttpxTransport(timeout=timeout),
        resolve_credentials=store.resolve,
        audit_logger=AuditLogger(audit_log) if audit_log else None,
    )


def _run(ctx: click.Context, items: list[dict[str, Any]], fail_fast: bool) -> None:
    relay: AttachmentRelay = ctx.obj["relay"]
    try:
        results = asyncio.run(relay.process(items, fail_fast=fail_fast))
    except RelayError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(json.dumps([result.to_item() for result in results], indent=2))
    if not all(result.ok for result in results):
        ctx.exit(1)


@cli.command()
@click.option("--account-id", type=int, required=True)
@click.option("--conversation-id", type=int, required=True)
@click.option("--url", "attachment_url", required=True, help="Public URL of the file.")
@click.option("--file-name", default="", help="Override the derived file name.")
@click.option("--content", default=None, help="Message text sent with the attachment.")
@click.option("--message-type", type=click.Choice(["incoming", "outgoing"]), default=None)
@click.option("--private/--public", "private", default=None, help="Send as a private note.")
@click.option("--mime-type", default=None, help="Override the detected MIME type.")
@click.pass_context
def send(
    ctx: click.Context,
    account_id: int,
    conversation_id: int,
    attachment_url: str,
    file_name: str,
    content: str | None,
    message_type: str | None,
    private: bool | None,
    mime_type: str | None,
) -> None:
    """Send one attachment into a conversation."""
    additional: dict[str, Any] = {
        key: value
        for key, value in (
            ("content", content),
            ("messageType", message_type),
            ("private", private),
            ("attachmentMimeType", mime_type),
        )
        if value is not None
    }
    item = {
        "accountId": account_id,
        "conversationId": conversation_id,
        "attachmentUrl": attachment_url,
        "fileName": file_name,
        "additionalFields": additional,
    }
    _run(ctx, [item], fail_fast=True)


@cli.command()
@click.argument("items_file", type=click.File("r"))
@click.option("--fail-fast", is_flag=True, help="Abort on the first failing item.")
@click.pass_context
def batch(ctx: click.Context, items_file: Any, fail_fast: bool) -> None:
    """Send every item of a JSON array of node parameters."""
    try:
        items = json.load(items_file)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Items file is not valid JSON: {exc}") from exc
    if not isinstance(items, list):
        raise click.ClickException("Items file must contain a JSON array.")
    _run(ctx, items, fail_fast=fail_fast)
