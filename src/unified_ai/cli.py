"""
cli.py

PURPOSE: Command-line interface for inspecting models, schemas and prompts.
DEPENDENCIES: typer, rich

ARCHITECTURE NOTES:
The CLI provides commands for:
- models: List the model catalog with prices and limits
- schema: Print the JSON Schema generated for a response type
- render: Render a prompt class's template without calling any model
- ask: Send a prompt to a model and show the reply with usage and cost
- config: Show the effective configuration

Types and prompt classes are referenced as "package.module:Name".
"""

import asyncio
import importlib
import json
import logging
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from unified_ai import __version__
from unified_ai.client import AIClient
from unified_ai.config import get_settings
from unified_ai.errors import AIError
from unified_ai.models import PromptBase, Provider, all_models, find_model
from unified_ai.models.result import Result
from unified_ai.observability import init_telemetry, shutdown_telemetry
from unified_ai.structured import generate_schema
from unified_ai.structured.parser import dump_value
from unified_ai.template import build_prompt

app = typer.Typer(
    name="unified-ai",
    help="Typed prompts for OpenAI, Anthropic, Gemini and Grok models.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


class AskPrompt(PromptBase[str]):
    """Freeform prompt used by `ask` when no prompt class is given."""

    prompt = "{{ text }}"

    text: str


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"unified-ai version {__version__}")
        raise typer.Exit()


def print_error(text: str) -> None:
    err_console.print(f"[red]{text}[/red]")


def import_object(reference: str) -> Any:
    """
    Resolve "package.module:Name" to the named object.

    Raises:
        typer.BadParameter: If the reference is malformed or cannot be imported
    """
    module_name, _, attribute = reference.partition(":")
    if not module_name or not attribute:
        raise typer.BadParameter(f"Expected 'module:Name', got '{reference}'")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise typer.BadParameter(f"Cannot import module '{module_name}': {e}") from None
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError:
            raise typer.BadParameter(f"'{module_name}' has no attribute '{attribute}'") from None
    return target


def parse_variables(pairs: list[str] | None) -> dict[str, str]:
    """Turn ["key=value", ...] into a dict."""
    variables = {}
    for pair in pairs or ():
        key, separator, value = pair.partition("=")
        if not separator or not key:
            raise typer.BadParameter(f"Expected key=value, got '{pair}'")
        variables[key.strip()] = value
    return variables


def build_prompt_instance(reference: str, pairs: list[str] | None) -> PromptBase[Any]:
    prompt_class = import_object(reference)
    if not (isinstance(prompt_class, type) and issubclass(prompt_class, PromptBase)):
        raise typer.BadParameter(f"'{reference}' is not a PromptBase subclass")
    # pydantic coerces the string values to the declared field types
    return prompt_class.model_validate(parse_variables(pairs))


@app.callback()
def main(
    _version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Unified AI - one typed interface over several LLM vendors."""
    settings = get_settings()
    level = logging.DEBUG if settings.debug else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


@app.command()
def models(
    provider: Annotated[
        Provider | None,
        typer.Option(
            "--provider",
            "-p",
            help="Only list models from this provider",
        ),
    ] = None,
) -> None:
    """List known models with prices (USD per 1M tokens) and token limits."""
    table = Table(title="Models")
    table.add_column("Provider")
    table.add_column("Name", style="bold")
    table.add_column("Input $", justify="right")
    table.add_column("Output $", justify="right")
    table.add_column("Max input", justify="right")
    table.add_column("Max output", justify="right")

    for model_class in all_models():
        if provider is not None and model_class.provider is not provider:
            continue
        table.add_row(
            model_class.provider.value,
            model_class.name,
            str(model_class.price_input),
            str(model_class.price_output),
            f"{model_class.max_input_tokens:,}",
            f"{model_class.max_output_tokens:,}",
        )

    console.print(table)


@app.command()
def schema(
    type_reference: Annotated[
        str,
        typer.Argument(help="Response type as module:Name"),
    ],
    non_strict: Annotated[
        bool,
        typer.Option(
            "--non-strict",
            help="Only list non-nullable required members as required",
        ),
    ] = False,
    null_union: Annotated[
        bool,
        typer.Option(
            "--null-union",
            help='Type nullable members as ["<type>", "null"]',
        ),
    ] = False,
) -> None:
    """Print the JSON Schema envelope generated for a response type."""
    target = import_object(type_reference)
    try:
        text = generate_schema(target, strict=not non_strict, allow_null_union=null_union)
    except AIError as e:
        print_error(f"Schema generation failed: {e}")
        raise typer.Exit(1) from None
    console.print_json(text)


@app.command()
def render(
    prompt_reference: Annotated[
        str,
        typer.Argument(help="Prompt class as module:Name"),
    ],
    var: Annotated[
        list[str] | None,
        typer.Option(
            "--var",
            help="Prompt field as key=value (repeatable)",
        ),
    ] = None,
) -> None:
    """Render a prompt class's template; no model is called."""
    prompt = build_prompt_instance(prompt_reference, var)
    try:
        text = build_prompt(prompt)
    except AIError as e:
        print_error(f"Render failed: {e}")
        raise typer.Exit(1) from None
    console.print(text, markup=False, highlight=False)


@app.command()
def ask(
    model_name: Annotated[
        str,
        typer.Argument(help="Model wire name, e.g. gpt-4.1-mini-2025-04-14"),
    ],
    text: Annotated[
        str | None,
        typer.Argument(help="Freeform prompt text"),
    ] = None,
    prompt_reference: Annotated[
        str | None,
        typer.Option(
            "--prompt",
            help="Prompt class as module:Name instead of freeform text",
        ),
    ] = None,
    var: Annotated[
        list[str] | None,
        typer.Option(
            "--var",
            help="Prompt field as key=value (repeatable, with --prompt)",
        ),
    ] = None,
    max_tokens: Annotated[
        int,
        typer.Option(
            "--max-tokens",
            "-m",
            help="Maximum output tokens",
            min=1,
        ),
    ] = 1024,
) -> None:
    """Send a prompt to a model and print the reply with usage and cost."""
    settings = get_settings()
    init_telemetry(settings.otel)

    if prompt_reference is not None:
        prompt = build_prompt_instance(prompt_reference, var)
    elif text is not None:
        prompt = AskPrompt(text=text)
    else:
        raise typer.BadParameter("Give either TEXT or --prompt")

    async def do_ask() -> Result[Any]:
        async with AIClient(settings) as client:
            return await client.generate(prompt, find_model(model_name, max_tokens=max_tokens))

    try:
        with console.status(f"Waiting for {model_name}..."):
            result = asyncio.run(do_ask())
    except (AIError, ValueError) as e:
        print_error(f"Request failed: {e}")
        raise typer.Exit(1) from None
    finally:
        shutdown_telemetry()

    if isinstance(result.value, str):
        console.print(result.value, markup=False, highlight=False)
    else:
        console.print_json(json.dumps(dump_value(result.value)))

    usage = result.metadata.usage
    console.print()
    console.print(
        f"[dim]{usage.input} in / {usage.output} out tokens, "
        f"{result.metadata.duration.total_seconds():.2f}s, "
        f"${result.metadata.price_total:.6f}[/dim]"
    )


@app.command("config")
def config_cmd() -> None:
    """Show the effective configuration (API keys are never printed)."""
    settings = get_settings()
    console.print("[bold]Current Configuration:[/bold]")
    console.print(f"  Log level: {settings.log_level}")
    console.print(f"  Debug: {settings.debug}")
    console.print()
    console.print("[bold]Providers:[/bold]")
    for provider in Provider:
        key = getattr(settings.providers, f"{provider.value}_api_key")
        base_url = getattr(settings.providers, f"{provider.value}_base_url")
        status = "set" if key else "not set"
        console.print(f"  {provider.value}: key {status}, {base_url}")
    console.print()
    console.print("[bold]Resilience:[/bold]")
    console.print(f"  Timeout: {settings.resilience.timeout_seconds}s")
    console.print(f"  Max retries: {settings.resilience.max_retries}")
    console.print()
    console.print("[bold]OpenTelemetry Settings:[/bold]")
    console.print(f"  Enabled: {settings.otel.enabled}")
    console.print(f"  Service name: {settings.otel.service_name}")
    endpoint_status = settings.otel.endpoint if settings.otel.endpoint else "(console only)"
    console.print(f"  Endpoint: {endpoint_status}")


if __name__ == "__main__":
    app()
