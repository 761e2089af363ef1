"""Terminal front end for the chat client."""

import argparse
import asyncio
import sys
from collections.abc import Sequence

from loguru import logger
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from .client import ChatClient
from .models import Turn, UsageReport
from .storage import TranscriptStore

DEFAULT_HISTORY_FILE = "~/.chat_proxy/history.json"
PROMPT = "[bold cyan]You[/bold cyan] (/reset, /quit): "


def usage_line(usage: UsageReport) -> str:
    return (
        f"Tokens: {usage.input_tokens} in / {usage.output_tokens} out • "
        f"Cost: ${usage.total_cost} (${usage.input_cost} in / ${usage.output_cost} out)"
    )


class ChatUI:
    """Renders turns with rich: user text as-is, assistant text as Markdown."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_turn(self, turn: Turn) -> None:
        if turn.role == "user":
            self.console.print(Panel(Text(turn.content), title="You", title_align="left"))
            return

        if turn.is_error:
            self.console.print(
                Panel(Text(turn.content, style="bold red"), title="Error", border_style="red")
            )
            return

        subtitle = f"[dim]{usage_line(turn.usage)}[/dim]" if turn.usage else None
        self.console.print(
            Panel(
                Markdown(turn.content),
                title="[cyan]Assistant[/cyan]",
                title_align="left",
                subtitle=subtitle,
                border_style="blue",
                padding=(0, 1),
            )
        )

    def render_transcript(self, turns: Sequence[Turn]) -> None:
        if not turns:
            self.console.print("[dim]No messages yet. Say hello![/dim]")
            return
        for turn in turns:
            self.render_turn(turn)

    def info(self, text: str) -> None:
        self.console.print(f"[dim]{text}[/dim]")


async def run(client: ChatClient, ui: ChatUI) -> None:
    """Read-eval-print loop until /quit or end of input."""
    ui.render_transcript(client.transcript)

    while True:
        try:
            line = await asyncio.to_thread(ui.console.input, PROMPT)
        except (EOFError, KeyboardInterrupt):
            break

        command = line.strip()
        if command == "/quit":
            break
        if command == "/reset":
            client.reset()
            ui.info("History cleared.")
            continue
        if not command:
            continue

        with ui.console.status("[bold green]Thinking...[/bold green]", spinner="dots"):
            reply = await client.send(line)
        if reply is not None:
            ui.render_turn(reply)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Chat with the proxy from a terminal.")
    parser.add_argument("--url", default="http://localhost:8000", help="Proxy base URL")
    parser.add_argument(
        "--history-file",
        default=DEFAULT_HISTORY_FILE,
        help="Where the transcript is persisted",
    )
    parser.add_argument(
        "--single-turn",
        action="store_true",
        help="Send only the latest message instead of the whole transcript",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Console script entry point."""
    args = build_parser().parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level="WARNING")

    async def _main() -> None:
        async with ChatClient(
            base_url=args.url,
            store=TranscriptStore(args.history_file),
            single_turn=args.single_turn,
        ) as client:
            await run(client, ChatUI())

    asyncio.run(_main())


if __name__ == "__main__":
    main()
