#!/usr/bin/env python3
"""Interactive chat CLI for the betting assistant."""

import sys

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt


class ChatCLI:
    """Interactive chat interface that streams replies from the service."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.messages: list[dict] = []
        self.console = Console()
        self.client = httpx.Client(timeout=httpx.Timeout(10.0, read=70.0))

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]⚽ Wager Wizard - Interactive Chat[/bold blue]\n"
                "Ask about upcoming matches, odds and betting angles.\n"
                "Commands: /help, /history, /clear, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]❌ Cannot connect to the service at {self.base_url}.[/red]")
            return

        self.console.print("[green]✅ Connected to Wager Wizard[/green]")
        self._load_history(show=False)

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")
                command = user_input.strip().lower()

                if command in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif command == "/help":
                    self._show_help()
                    continue
                elif command == "/history":
                    self._load_history(show=True)
                    continue
                elif command == "/clear":
                    self.messages = []
                    self.console.print("[yellow]🔄 Local conversation cleared[/yellow]")
                    continue
                elif command == "":
                    continue

                reply = self._send_message(user_input)
                if reply is not None:
                    self._display_response(reply)

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]👋 Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _load_history(self, show: bool) -> None:
        """Replace the local conversation with the stored one."""
        try:
            response = self.client.get(f"{self.base_url}/api/history")
            response.raise_for_status()
        except httpx.HTTPError as e:
            self.console.print(f"[red]❌ Could not load history: {e}[/red]")
            return

        self.messages = response.json().get("messages", [])
        self.console.print(f"[dim]📜 {len(self.messages) // 2} earlier exchanges loaded[/dim]")
        if show:
            for message in self.messages:
                text = "".join(part.get("text", "") for part in message.get("parts", []))
                style = "cyan" if message.get("role") == "user" else "green"
                self.console.print(f"[bold {style}]{message.get('role')}:[/bold {style}] {text}")

    def _send_message(self, message: str) -> str | None:
        """Send the conversation and print the reply as it streams."""
        self.messages.append({"role": "user", "parts": [{"type": "text", "text": message}]})
        chunks: list[str] = []

        try:
            with self.client.stream("POST", f"{self.base_url}/api/chat", json={"messages": self.messages}) as response:
                if response.status_code != 200:
                    response.read()
                    self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")
                    self.messages.pop()
                    return None

                self.console.print("[bold green]🧙 Wizard[/bold green]")
                for chunk in response.iter_text():
                    chunks.append(chunk)
                    self.console.print(chunk, end="", markup=False, highlight=False)
                self.console.print()

        except httpx.HTTPError as e:
            self.console.print(f"[red]❌ Connection error: {e}[/red]")
            self.messages.pop()
            return None

        reply = "".join(chunks)
        self.messages.append({"role": "assistant", "parts": [{"type": "text", "text": reply}]})
        return reply

    def _display_response(self, reply: str) -> None:
        """Re-render the finished reply as markdown."""
        self.console.print(Panel(Markdown(reply), border_style="green", padding=(1, 2)))

    def _show_help(self) -> None:
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /history - Reload and show the stored conversation
• /clear - Forget the local conversation (stored history is kept)
• /quit or /exit - Exit the chat

[bold]Example Questions:[/bold]
1. "What's on in the Premier League this weekend?"
2. "Who is the favourite in Arsenal vs Chelsea and what's the implied probability?"
3. "Show me Champions League odds from UK bookmakers"
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]❓ Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

    chat = ChatCLI(base_url)
    chat.start()


if __name__ == "__main__":
    main()
