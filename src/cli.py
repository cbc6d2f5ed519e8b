"""Click CLI for the WATI client and the local webhook receiver."""

from __future__ import annotations

import asyncio
import json
import logging

import click

from src.audit.logger import AuditLogger
from src.client import WatiClient
from src.config import DEFAULT_RETRY_COUNT, DEFAULT_TIMEOUT_SECONDS
from src.errors import WatiError
from src.webhook.events import WebhookEvent


def _client(ctx: click.Context, require_credentials: bool = True) -> WatiClient:
    opts = ctx.obj
    if require_credentials and (not opts["endpoint"] or not opts["token"]):
        raise click.UsageError(
            "--endpoint and --token (or WATI_API_ENDPOINT/WATI_TOKEN) are required",
        )
    audit_logger = AuditLogger(opts["audit_log"]) if opts["audit_log"] else None
    return WatiClient(
        opts["endpoint"],
        opts["token"],
        timeout=opts["timeout"],
        retry_count=opts["retries"],
        webhook_secret=opts["secret"],
        audit_logger=audit_logger,
    )


def _run(coro: object) -> None:
    try:
        asyncio.run(coro)  # type: ignore[arg-type]
    except WatiError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option("--endpoint", envvar="WATI_API_ENDPOINT", default="", help="WATI API endpoint.")
@click.option("--token", envvar="WATI_TOKEN", default="", help="WATI API bearer token.")
@click.option("--timeout", default=DEFAULT_TIMEOUT_SECONDS, type=float, help="Per-attempt timeout.")
@click.option("--retries", default=DEFAULT_RETRY_COUNT, type=int, help="Retries for 5xx/429.")
@click.option("--secret", envvar="WATI_WEBHOOK_SECRET", default="", help="Webhook HMAC secret.")
@click.option("--audit-log", default=None, help="Audit log file path.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    endpoint: str,
    token: str,
    timeout: float,
    retries: int,
    secret: str,
    audit_log: str | None,
    verbose: bool,
) -> None:
    """WATI WhatsApp API command line client."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj.update(
        endpoint=endpoint,
        token=token,
        timeout=timeout,
        retries=retries,
        secret=secret,
        audit_log=audit_log,
    )


@cli.command("validate-token")
@click.pass_context
def validate_token(ctx: click.Context) -> None:
    """Check that the configured token is accepted."""

    async def _main() -> None:
        async with _client(ctx) as client:
            await client.validate_token()
        click.echo("Token is valid")

    _run(_main())


@cli.command()
@click.option("--active", is_flag=True, help="Only approved or active templates.")
@click.option("--category", default=None, help="Only templates in this category.")
@click.pass_context
def templates(ctx: click.Context, active: bool, category: str | None) -> None:
    """List message templates as JSON."""

    async def _main() -> None:
        async with _client(ctx) as client:
            if category:
                items = await client.messages.get_templates_by_category(category)
            elif active:
                items = await client.messages.get_active_templates()
            else:
                items = (await client.messages.get_message_templates()).templates
        output = [
            {"name": t.name, "status": t.status, "category": t.category, "language": t.language}
            for t in items
        ]
        click.echo(json.dumps(output, indent=2))

    _run(_main())


@cli.command("send-template")
@click.argument("phone")
@click.argument("template_name")
@click.argument("broadcast_name")
@click.option("--param", "params", multiple=True, help="Template parameter as name=value.")
@click.pass_context
def send_template(
    ctx: click.Context,
    phone: str,
    template_name: str,
    broadcast_name: str,
    params: tuple[str, ...],
) -> None:
    """Send a template message to PHONE."""
    values: dict[str, str] = {}
    for param in params:
        name, sep, value = param.partition("=")
        if not sep:
            raise click.BadParameter(f"expected name=value, got {param!r}", param_hint="--param")
        values[name] = value

    async def _main() -> None:
        async with _client(ctx) as client:
            response = await client.messages.send_template_message_with_params(
                phone, template_name, broadcast_name, values,
            )
        click.echo(response.model_dump_json(by_alias=True, indent=2))

    _run(_main())


@cli.group("webhook")
def webhook_group() -> None:
    """Run or exercise the local webhook receiver."""


@webhook_group.command("serve")
@click.option("--port", default=8080, type=int, help="Port to listen on.")
@click.option("--host", default="0.0.0.0", help="Interface to bind.")
@click.option("--secret", default=None, help="Overrides the global --secret.")
@click.option("--audit-log", default=None, help="Overrides the global --audit-log.")
@click.pass_context
def webhook_serve(
    ctx: click.Context, port: int, host: str, secret: str | None, audit_log: str | None,
) -> None:
    """Receive webhook events and log each one until interrupted."""
    if secret is not None:
        ctx.obj["secret"] = secret
    if audit_log is not None:
        ctx.obj["audit_log"] = audit_log
    log = logging.getLogger("wati.webhook")

    def _log_event(event: WebhookEvent) -> None:
        log.info("Received %s event %s: %s", event.type_name, event.id, event.to_dict()["data"])

    async def _main() -> None:
        async with _client(ctx, require_credentials=False) as client:
            client.webhooks.register_all_event_handlers(_log_event)
            bound = await client.webhooks.start_server(port, host=host)
            click.echo(f"Webhook server listening on {host}:{bound}", err=True)
            try:
                await asyncio.Event().wait()
            finally:
                await client.webhooks.stop_server()

    try:
        _run(_main())
    except KeyboardInterrupt:
        click.echo("Webhook server stopped", err=True)


@webhook_group.command("test")
@click.argument("url")
@click.pass_context
def webhook_test(ctx: click.Context, url: str) -> None:
    """POST a sample signed event to URL."""

    async def _main() -> None:
        async with _client(ctx, require_credentials=False) as client:
            event = await client.webhooks.send_test_event(url)
        click.echo(f"Test event {event.id} delivered")

    _run(_main())
