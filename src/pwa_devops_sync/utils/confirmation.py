"""Interactive confirmation of outgoing Project Online and Azure DevOps calls."""

import json
import logging
from typing import Any

import httpx
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

logger = logging.getLogger(__name__)
console = Console()

SENSITIVE_HEADERS = {"authorization", "cookie", "x-tfs-session"}


def _redact(value: str) -> str:
    """Keep the scheme of an auth header and the edges of anything else."""
    scheme, _, credential = value.partition(" ")
    if credential:
        return f"{scheme} {_redact(credential)}"
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"


def _redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Redact credential-bearing headers.

    Args:
        headers: Original headers dictionary.

    Returns:
        Dictionary with sensitive values redacted.
    """
    return {
        key: _redact(value) if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def _format_payload(content: bytes) -> tuple[str, bool]:
    """Format a request body for display.

    JSON-patch documents are lists, WIQL queries are objects; both are
    pretty-printed.

    Returns:
        Tuple of (text, is_json).
    """
    if not content:
        return "[no payload]", False
    try:
        data: Any = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return "[binary data]", False
    return json.dumps(data, indent=2), True


def _prompt_for_confirmation() -> bool:
    """Ask whether the displayed request should be sent."""
    while True:
        response = console.input(
            "[bold cyan]Proceed with this API call? [y/n][/bold cyan] "
        ).strip().lower()

        if response in ("y", "yes"):
            return True
        elif response in ("n", "no"):
            return False
        console.print("[yellow]Please enter 'y' or 'n'[/yellow]")


class ConfirmationTransport(httpx.BaseTransport):
    """httpx transport that shows each request and waits for a yes/no."""

    def __init__(self, transport: httpx.BaseTransport) -> None:
        """Initialize confirmation transport with underlying transport.

        Args:
            transport: The underlying httpx transport to wrap.
        """
        self.transport = transport

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """Display the request and forward it if the user agrees.

        Raises:
            httpx.RequestError: If the user declines.
        """
        console.print("\n" + "=" * 80)
        console.print(f"[bold blue]{request.method}[/bold blue] {request.url}")
        console.print("=" * 80)

        if request.headers:
            table = Table(title="Headers", show_header=True, header_style="bold magenta")
            table.add_column("Key", style="cyan")
            table.add_column("Value", style="green")
            for key, value in _redact_headers(dict(request.headers)).items():
                table.add_row(key, value)
            console.print(table)

        # Auth flows run before the transport, so content is already final here
        payload, is_json = _format_payload(request.read())
        console.print("\n[bold cyan]Payload:[/bold cyan]")
        if is_json:
            console.print(Syntax(payload, "json", theme="monokai", line_numbers=False))
        else:
            console.print(payload)
        console.print("=" * 80)

        if not _prompt_for_confirmation():
            console.print("[bold red]✗ API call cancelled by user[/bold red]\n")
            logger.info(f"User declined {request.method} {request.url}")
            raise httpx.RequestError("API call cancelled by user", request=request)

        console.print("[bold green]✓ Proceeding with API call[/bold green]\n")
        return self.transport.handle_request(request)

    def close(self) -> None:
        """Close the wrapped transport."""
        self.transport.close()


def create_confirming_client(
    base_url: str = "",
    headers: dict[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
    **kwargs: Any,
) -> httpx.Client:
    """Create an httpx client that confirms every request.

    Args:
        base_url: Base URL for the client.
        headers: Default headers for requests.
        transport: Transport to wrap; defaults to a plain HTTPTransport.
        **kwargs: Additional arguments passed to httpx.Client (auth, timeout).

    Returns:
        httpx.Client configured with confirmation transport.
    """
    return httpx.Client(
        base_url=base_url,
        headers=headers,
        transport=ConfirmationTransport(transport or httpx.HTTPTransport()),
        **kwargs,
    )
