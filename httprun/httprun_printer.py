"""
Terminal reporting for request runs.
"""
from typing import Iterable, Optional

from rich.console import Console
from rich.markup import escape

from httprun.httprun_datatypes import HttpResponse, Request, TestOutcome
from httprun.httprun_serialize import pretty

MAX_BODY_LINES = 30


class Printer:
    """Formats requests, responses and outcomes for the terminal."""

    def __init__(self, console: Optional[Console] = None, err_console: Optional[Console] = None):
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def _out(self, text: str = ""):
        self.console.print(text, soft_wrap=True)

    def separator(self):
        self._out("[dim]" + "─" * 60 + "[/dim]")

    def request_header(self, index: int, request: Request):
        self._out()
        self._out(f"[bold cyan]\\[{index}] {escape(request.display_name)}[/bold cyan]")
        self._out(f"  [bold]{request.method}[/bold] {escape(request.url)}")

    def response_status(self, response: HttpResponse):
        status = response.status
        if 200 <= status < 300:
            style = "bold green"
        elif 300 <= status < 400:
            style = "bold yellow"
        else:
            style = "bold red"
        self._out(f"  [dim]→[/dim] [{style}]{status}[/{style}] ({response.elapsed_ms}ms)")

    def response_body(self, response: HttpResponse):
        view = response.view
        if not view.body_raw:
            return
        text = pretty(view.body_structured) if view.has_structured_body else view.body_raw
        lines = text.splitlines()
        for line in lines[:MAX_BODY_LINES]:
            self._out(f"  [dim]{escape(line)}[/dim]")
        if len(lines) > MAX_BODY_LINES:
            self._out(f"  [dim]... ({len(lines) - MAX_BODY_LINES} more lines)[/dim]")

    def verbose_request(self, request: Request):
        if request.headers:
            self._out("  [dim]Request Headers:[/dim]")
            for h in request.headers:
                self._out(f"    [dim]{escape(h.name)}: {escape(h.value)}[/dim]")
        if request.body is not None:
            self._out("  [dim]Request Body:[/dim]")
            for line in request.body.splitlines():
                self._out(f"    [dim]{escape(line)}[/dim]")

    def verbose_response(self, response: HttpResponse):
        self._out("  [dim]Response Headers:[/dim]")
        for name, values in response.view.headers:
            for value in values:
                self._out(f"    [dim]{escape(name)}: {escape(value)}[/dim]")
        self._out("  [dim]Response Body:[/dim]")
        self.response_body(response)

    def test_results(self, results: Iterable[TestOutcome]):
        for result in results:
            if result.passed:
                self._out(f"  [bold green]PASS[/bold green] {escape(result.name)}")
            else:
                message = result.failure_message or "Assertion failed"
                self._out(f"  [bold red]FAIL[/bold red] {escape(result.name)} - [red]{escape(message)}[/red]")

    def log_output(self, lines: Iterable[str]):
        for line in lines:
            self._out(f"  [bold blue]LOG[/bold blue] {escape(line)}")

    def error(self, message: str):
        self.err_console.print(f"  [bold red]ERROR[/bold red] [red]{escape(message)}[/red]", soft_wrap=True)

    def summary(self, total: int, passed: int, failed: int, errors: int):
        self._out()
        self.separator()
        text = f"Requests: {total}  |  Tests passed: {passed}  |  Tests failed: {failed}  |  Errors: {errors}"
        style = "bold green" if failed == 0 and errors == 0 else "bold red"
        self._out(f"[{style}]{text}[/{style}]")

    def dry_run_header(self, count: int, path: str):
        self._out(f"Dry run: {count} request(s) from {escape(path)}")

    def dry_run_request(self, index: int, request: Request):
        self.request_header(index, request)
        for h in request.headers:
            self._out(f"    {escape(h.name)}: {escape(h.value)}")
        if request.body is not None:
            self._out()
            for line in request.body.splitlines():
                self._out(f"    {escape(line)}")
        if request.handler is not None:
            self._out("    [dim](has response handler)[/dim]")

    def environments(self, names: Iterable[str]):
        for name in names:
            self._out(escape(name))
