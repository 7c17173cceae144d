"""Commands describing the available DNS providers."""

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from polydns.errors import UnknownProvider
from polydns.providers import DNSProvider, registry

app = typer.Typer()
console = Console()


def _blank_provider(name: str) -> DNSProvider:
    """Instantiate an unconfigured adapter; used only for its pure operations."""
    try:
        return registry.get(name)({})
    except UnknownProvider as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command("list")
def list_providers() -> None:
    """List the registered DNS providers."""
    table = Table()
    table.add_column("Provider")
    table.add_column("Record types")
    table.add_column("Required options")

    for name in registry.names():
        provider = _blank_provider(name)
        schema = provider.get_configuration_schema()
        table.add_row(
            name,
            ", ".join(sorted(provider.get_supported_record_types())),
            ", ".join(key for key, option in schema.items() if option.required),
        )

    console.print(table)


@app.command()
def schema(name: str = typer.Argument(..., help="Provider name, e.g. dnsimple")) -> None:
    """Show the configuration options of a provider."""
    provider = _blank_provider(name)

    table = Table(title=f"{provider.name} options")
    table.add_column("Option")
    table.add_column("Type")
    table.add_column("Required")
    table.add_column("Sensitive")
    table.add_column("Description")

    for key, option in provider.get_configuration_schema().items():
        table.add_row(
            key,
            option.type,
            "yes" if option.required else "no",
            "yes" if option.sensitive else "no",
            option.description,
        )

    console.print(table)
