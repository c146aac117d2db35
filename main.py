#!/usr/bin/env python3
"""Output Governance CLI - inspect contracts and govern saved model responses.

Usage:
    # List the contract catalog
    python main.py contracts

    # Show the prompt a model would receive
    python main.py enrich "corrija esse json, apenas json"

    # Govern a saved completion (no regenerations: an invalid answer degrades)
    python main.py govern --prompt "analise os logs" --response ./answer.md

    # Govern with regenerations through LiteLLM
    python main.py govern --prompt "corrija o json" --response ./answer.md --model gpt-4o-mini
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
    from rich.panel import Panel
    from rich.table import Table
except ImportError:
    print("Missing dependencies. Run: pip install click rich")
    sys.exit(1)

from config import settings
from contracts import ContractType, GovernanceOptions, Mode
from governance import GovernanceOrchestrator, LoggingNotifier, NullAuditSink, build_audit_sink
from governance.contract_catalog import ContractCatalog
from providers import get_provider, make_regenerator


console = Console()


def read_input_content(input_path: str) -> str:
    """Read text from a file, or treat the argument as literal text."""
    path = Path(input_path)
    if path.is_file():
        return path.read_text(encoding="utf-8", errors="replace")
    return input_path


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


async def _regeneration_disabled(correction_prompt: str) -> str:
    raise RuntimeError("regeneration disabled (pass --model or --provider to enable)")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def cli(verbose: bool):
    """Output Governance: contracts, validation and auto-correction for LLM responses."""
    setup_logging(verbose)


@cli.command()
@click.option("--show", "show_type", type=click.Choice([t.value for t in ContractType]), default=None,
              help="Print the full contract prompt for one type")
def contracts(show_type: Optional[str]):
    """List the output contract catalog."""
    catalog = ContractCatalog()

    if show_type:
        console.print(catalog.build_contract_prompt(show_type), markup=False)
        return

    table = Table(title="Output contracts")
    table.add_column("Type", style="cyan")
    table.add_column("Rules", justify="right")
    table.add_column("Checked", justify="right")
    for contract_type in ContractType:
        contract = catalog.get_contract(contract_type)
        table.add_row(contract_type.value, str(len(contract.output_rules)), str(len(contract.checks)))
    console.print(table)


@cli.command()
@click.argument("prompt")
@click.option("--file-type", "-f", "file_types", multiple=True, help="MIME type of an attached file (repeatable)")
def enrich(prompt: str, file_types: Tuple[str, ...]):
    """Print PROMPT prefixed with its contract instructions."""
    orchestrator = GovernanceOrchestrator(audit_sink=NullAuditSink())
    files = [{"type": t} for t in file_types]
    console.print(f"[dim]Contract:[/dim] {orchestrator.select_contract(prompt, files).value}\n")
    console.print(orchestrator.enrich_prompt(prompt, files), markup=False)


@cli.command()
@click.option("--prompt", "-p", "prompt_input", required=True, help="User prompt (file path or literal text)")
@click.option("--response", "-r", "response_input", required=True, help="Model response (file path or literal text)")
@click.option("--file-type", "-f", "file_types", multiple=True, help="MIME type of an attached file (repeatable)")
@click.option("--mode", "-m", type=click.Choice([m.value for m in Mode]), default=Mode.CHAT.value,
              help="Client channel (default: chat)")
@click.option("--provider", type=click.Choice(["anthropic", "openai", "gemini"]), default=None,
              help="LLM provider for regenerations")
@click.option("--model", default=None, help="Model for regenerations (e.g. gpt-4o-mini)")
@click.option("--json-output", is_flag=True, help="Print the full result as JSON")
def govern(
    prompt_input: str,
    response_input: str,
    file_types: Tuple[str, ...],
    mode: str,
    provider: Optional[str],
    model: Optional[str],
    json_output: bool,
):
    """Run the governance pipeline over a saved model response."""
    prompt = read_input_content(prompt_input)
    raw_response = read_input_content(response_input)
    if not raw_response.strip():
        console.print("[red]Error: response is empty[/red]")
        sys.exit(1)

    orchestrator = GovernanceOrchestrator(audit_sink=build_audit_sink(), notifier=LoggingNotifier())
    files = [{"type": t} for t in file_types]

    if provider or model:
        contract_type = orchestrator.select_contract(prompt, files)
        llm = get_provider(provider, model, metadata={"contract_type": contract_type.value, "mode": mode})
        regenerate = make_regenerator(llm, orchestrator.enrich_prompt(prompt, files))
        console.print(f"[dim]Regenerations via:[/dim] {llm.default_model}")
    else:
        regenerate = _regeneration_disabled

    options = GovernanceOptions.model_validate({"files": files, "mode": mode})
    result = asyncio.run(orchestrator.apply(raw_response, prompt, regenerate, options))

    if json_output:
        console.print_json(result.model_dump_json())
        return

    style = "green" if result.valid else "yellow"
    console.print(Panel.fit(
        f"[bold {style}]{result.status.upper()}[/bold {style}]\n"
        f"[dim]Contract:[/dim] {result.contract_type.value}  "
        f"[dim]JSON only:[/dim] {result.json_only}  "
        f"[dim]Retries:[/dim] {result.retry_attempts}  "
        f"[dim]Secrets:[/dim] {', '.join(result.secrets_masked) or 'none'}",
        border_style=style,
    ))

    if not result.valid:
        console.print(f"[yellow]{result.notice}[/yellow]")
        for error in result.errors:
            console.print(f"  - {error}", markup=False)

    console.print("\n[bold]Voice script:[/bold]")
    console.print(result.voice_script, markup=False)
    console.print("\n[bold]Chat:[/bold]")
    console.print(result.markdown, markup=False)
    console.print(f"\n[dim]Duration:[/dim] {result.audit.duration_ms:.1f}ms")


if __name__ == "__main__":
    cli()
