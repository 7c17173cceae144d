"""DNS record management commands."""

from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from polydns.config import (
    ENV_OPTIONS,
    build_provider_config,
    get_provider_entry,
    load_config,
    load_env_settings,
)
from polydns.errors import DnsProviderException, InvalidConfiguration
from polydns.models import DnsRecord, RecordContent
from polydns.providers import DNSProvider, create_provider

app = typer.Typer()
console = Console()


def get_dns_provider(provider_key: str | None = None) -> DNSProvider:
    """Get the configured DNS provider."""
    try:
        config = load_config()
        entry = get_provider_entry(config, provider_key)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(1)

    settings = load_env_settings()
    try:
        return create_provider(
            entry.provider,
            build_provider_config(entry, settings),
            timeout=config.timeout,
        )
    except InvalidConfiguration as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        field = ENV_OPTIONS.get(e.provider, {}).get(e.key)
        if field:
            console.print(f"  Set POLYDNS_{field.upper()}")
        raise typer.Exit(1)
    except DnsProviderException as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(1)


def parse_data(items: list[str] | None) -> dict[str, str]:
    """Parse repeated --data key=value options into a mapping."""
    data: dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got '{item}'", param_hint="--data")
        data[key.strip()] = value.strip()
    return data


def format_content(content: RecordContent) -> str:
    """Render record content for a table cell."""
    if isinstance(content, str):
        return content
    return " ".join(f"{key}={value}" for key, value in content.model_dump().items())


def _content_from_options(content: str | None, data: list[str] | None) -> Any:
    structured = parse_data(data)
    if structured and content:
        raise typer.BadParameter("use either CONTENT or --data, not both")
    return structured or content


def _fail(action: str, error: DnsProviderException) -> None:
    console.print(f"[red]✗[/red] Failed to {action} ({error.kind.value}): {escape(str(error))}")
    if error.retryable:
        console.print("  [yellow]This error is transient; retrying may help[/yellow]")
    raise typer.Exit(1)


def _records_table(records: list[DnsRecord]) -> Table:
    table = Table()
    table.add_column("ID")
    table.add_column("Type")
    table.add_column("Name")
    table.add_column("Content")
    table.add_column("TTL")

    for record in records:
        table.add_row(
            record.id,
            record.type,
            record.name or "@",
            format_content(record.content),
            str(record.ttl),
        )
    return table


def check_connection(
    provider_key: str | None = typer.Option(
        None, "--provider", "-p", help="Provider entry from polydns.yaml"
    ),
) -> None:
    """Test the connection to a DNS provider."""
    with get_dns_provider(provider_key) as provider:
        try:
            provider.test_connection()
        except DnsProviderException as e:
            _fail("connect", e)

    console.print(f"[green]✓[/green] Connected to {provider.name}")


@app.command("list")
def list_records(
    domain: str = typer.Argument(..., help="Zone name, e.g. example.com"),
    name: str | None = typer.Option(None, "--name", "-n", help="Only this record name"),
    record_type: str | None = typer.Option(None, "--type", "-t", help="Only this record type"),
    provider_key: str | None = typer.Option(None, "--provider", "-p"),
) -> None:
    """List DNS records for a domain."""
    with get_dns_provider(provider_key) as provider:
        try:
            records = provider.list_records(domain, name=name, record_type=record_type)
        except DnsProviderException as e:
            _fail("list records", e)

    console.print(f"[bold]DNS records for {domain}[/bold]")
    console.print(_records_table(records))


@app.command()
def get(
    domain: str = typer.Argument(..., help="Zone name"),
    record_id: str = typer.Argument(..., help="Record id"),
    provider_key: str | None = typer.Option(None, "--provider", "-p"),
) -> None:
    """Show a single DNS record."""
    with get_dns_provider(provider_key) as provider:
        try:
            record = provider.get_record(domain, record_id)
        except DnsProviderException as e:
            _fail("get record", e)

    console.print(_records_table([record]))


@app.command()
def create(
    domain: str = typer.Argument(..., help="Zone name"),
    name: str = typer.Argument(..., help="Record name, '@' for the apex"),
    record_type: str = typer.Argument(..., help="Record type, e.g. A"),
    content: str | None = typer.Argument(None, help="Record content"),
    ttl: int | None = typer.Option(None, "--ttl", help="TTL in seconds"),
    data: list[str] | None = typer.Option(
        None, "--data", "-d", help="Structured content field, key=value (MX, SRV, CAA)"
    ),
    provider_key: str | None = typer.Option(None, "--provider", "-p"),
) -> None:
    """Create a DNS record."""
    value = _content_from_options(content, data)
    if not value:
        raise typer.BadParameter("CONTENT or --data is required")

    with get_dns_provider(provider_key) as provider:
        try:
            record_id = provider.create_record(domain, name, record_type, value, ttl=ttl)
        except DnsProviderException as e:
            _fail("create record", e)

    console.print(f"[green]✓[/green] Record created: {record_id}")


@app.command("set")
def upsert(
    domain: str = typer.Argument(..., help="Zone name"),
    name: str = typer.Argument(..., help="Record name, '@' for the apex"),
    record_type: str = typer.Argument(..., help="Record type, e.g. A"),
    content: str | None = typer.Argument(None, help="Record content"),
    ttl: int | None = typer.Option(None, "--ttl", help="TTL in seconds"),
    data: list[str] | None = typer.Option(None, "--data", "-d", help="key=value"),
    provider_key: str | None = typer.Option(None, "--provider", "-p"),
) -> None:
    """Create a DNS record, or update the one with the same name and type."""
    value = _content_from_options(content, data)
    if not value:
        raise typer.BadParameter("CONTENT or --data is required")

    with get_dns_provider(provider_key) as provider:
        try:
            record_id = provider.upsert_record(domain, name, record_type, value, ttl=ttl)
        except DnsProviderException as e:
            _fail("set record", e)

    console.print(f"[green]✓[/green] Record created/updated: {record_id}")


@app.command()
def update(
    domain: str = typer.Argument(..., help="Zone name"),
    record_id: str = typer.Argument(..., help="Record id"),
    content: str | None = typer.Option(None, "--content", "-c", help="New content"),
    ttl: int | None = typer.Option(None, "--ttl", help="New TTL in seconds"),
    data: list[str] | None = typer.Option(None, "--data", "-d", help="key=value"),
    provider_key: str | None = typer.Option(None, "--provider", "-p"),
) -> None:
    """Update the content and/or TTL of a DNS record."""
    value = _content_from_options(content, data) or None

    with get_dns_provider(provider_key) as provider:
        try:
            provider.update_record(domain, record_id, content=value, ttl=ttl)
        except DnsProviderException as e:
            _fail("update record", e)

    console.print(f"[green]✓[/green] Record updated: {record_id}")


@app.command()
def delete(
    domain: str = typer.Argument(..., help="Zone name"),
    record_id: str = typer.Argument(..., help="Record id"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
    provider_key: str | None = typer.Option(None, "--provider", "-p"),
) -> None:
    """Delete a DNS record."""
    if not force:
        confirm = typer.confirm(f"Delete record {record_id} from {domain}?")
        if not confirm:
            raise typer.Abort()

    with get_dns_provider(provider_key) as provider:
        try:
            provider.delete_record(domain, record_id)
        except DnsProviderException as e:
            _fail("delete record", e)

    console.print(f"[green]✓[/green] Record deleted: {record_id}")
