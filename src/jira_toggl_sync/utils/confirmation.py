"""Interactive confirmation of write requests."""

import json
import logging
import threading
from typing import Any

import httpx
from rich.console import Console
from rich.syntax import Syntax

logger = logging.getLogger(__name__)
console = Console()

WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def _format_payload(content: bytes) -> str | None:
    """Pretty-print a JSON request body, or return None for non-JSON bodies."""
    try:
        return json.dumps(json.loads(content), indent=2)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def _prompt_for_confirmation() -> bool:
    """Ask until the user answers y or n."""
    while True:
        response = console.input("[bold cyan]Send this request? [y/n][/bold cyan] ").strip().lower()
        if response in ("y", "yes"):
            return True
        if response in ("n", "no"):
            return False
        console.print("[yellow]Please enter 'y' or 'n'[/yellow]")


class ConfirmWritesTransport(httpx.BaseTransport):
    """Transport that shows every write request and sends it only when confirmed.

    Reads pass through untouched. Prompts are serialized because operations
    run on several worker threads.
    """

    _prompt_lock = threading.Lock()

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        """Initialize confirmation transport.

        Args:
            transport: Underlying transport. Defaults to httpx.HTTPTransport.
        """
        self.transport = transport or httpx.HTTPTransport()

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """Handle request, prompting first if it modifies data.

        Raises:
            httpx.RequestError: If the user declines the request.
        """
        if request.method not in WRITE_METHODS:
            return self.transport.handle_request(request)

        with self._prompt_lock:
            console.print(f"\n[bold blue]{request.method}[/bold blue] {request.url}")
            if request.content:
                payload = _format_payload(request.content)
                if payload is not None:
                    console.print(Syntax(payload, "json", theme="monokai"))
            confirmed = _prompt_for_confirmation()

        if not confirmed:
            logger.info(f"Declined {request.method} {request.url}")
            raise httpx.RequestError("Request declined by user", request=request)

        return self.transport.handle_request(request)

    def close(self) -> None:
        """Close the underlying transport."""
        self.transport.close()


def create_confirming_transport(**kwargs: Any) -> ConfirmWritesTransport:
    """Create a confirming transport over a default HTTP transport.

    Args:
        **kwargs: Arguments passed to httpx.HTTPTransport.
    """
    return ConfirmWritesTransport(httpx.HTTPTransport(**kwargs))
