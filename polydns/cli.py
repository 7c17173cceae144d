"""CLI entry point for polydns."""

from pathlib import Path

import typer
from rich.console import Console

from polydns import __version__
from polydns.commands import providers, records
from polydns.config import ENV_OPTIONS, dump_yaml
from polydns.log import setup_logging

app = typer.Typer(
    name="polydns",
    help="Manage DNS records across DNS providers through one interface.",
    no_args_is_help=True,
)
console = Console()

# Register sub-commands
app.add_typer(records.app, name="records", help="Manage DNS records")
app.add_typer(providers.app, name="providers", help="Inspect available DNS providers")


@app.command()
def init(
    provider: str = typer.Option(
        "dnsimple", "--provider", "-p", help="Provider to configure (dnsimple, cloudflare, route53)"
    ),
) -> None:
    """Create polydns.yaml and .env.example in the current directory."""
    provider = provider.lower()
    if provider not in ENV_OPTIONS:
        console.print(f"[red]✗[/red] Unknown DNS provider: {provider}")
        raise typer.Exit(1)

    config_path = Path.cwd() / "polydns.yaml"

    if config_path.exists():
        overwrite = typer.confirm("polydns.yaml already exists. Overwrite?")
        if not overwrite:
            raise typer.Abort()

    config = {
        "default_provider": provider,
        "timeout": 30,
        "providers": {
            provider: {"provider": provider, "options": {}},
        },
    }

    with open(config_path, "w") as f:
        dump_yaml(config, f)

    # Credentials live in the environment, never in polydns.yaml
    env_lines = [
        "# polydns environment variables",
        "# Copy this to .env and fill in your credentials",
        "",
    ]
    for name, options in ENV_OPTIONS.items():
        env_lines.append(f"# {name}")
        env_lines.extend(f"POLYDNS_{field.upper()}=" for field in options.values())
        env_lines.append("")

    env_example_path = Path.cwd() / ".env.example"
    with open(env_example_path, "w") as f:
        f.write("\n".join(env_lines))

    console.print("[green]✓[/green] Created polydns.yaml")
    console.print("[green]✓[/green] Created .env.example")
    console.print()
    console.print("Next steps:")
    console.print("  1. Copy .env.example to .env and fill in your provider credentials")
    console.print("  2. Run [bold]polydns test[/bold] to check the connection")
    console.print("  3. Run [bold]polydns records list <domain>[/bold]")


@app.command()
def version() -> None:
    """Show the polydns version."""
    console.print(f"polydns v{__version__}")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """polydns - one interface for many DNS providers."""
    setup_logging(verbose)


# Also expose the connection test at root level
app.command(name="test")(records.check_connection)

if __name__ == "__main__":
    app()
