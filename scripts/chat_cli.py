#!/usr/bin/env python3
"""Interactive streaming chat CLI for the coaching service."""

import json
import sys
from collections.abc import Iterator

import httpx
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

PLANS = ("general", "badminton", "weight-loss", "muscle-gain")


def iter_sse_events(lines: Iterator[str]) -> Iterator[tuple[str, dict]]:
    """Group raw SSE lines into (event, data) pairs."""
    event = "message"
    data_lines: list[str] = []
    for line in lines:
        if line.startswith("event:"):
            event = line[len("event:") :].strip()
        elif line.startswith("data:"):
            data_lines.append(line[len("data:") :].strip())
        elif line == "" and data_lines:
            yield event, json.loads("\n".join(data_lines))
            event = "message"
            data_lines = []


class ChatCLI:
    """Interactive chat interface for the coaching service."""

    def __init__(self, base_url: str = "http://localhost:8000", user_id: str = "u1"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.user_id = user_id
        self.plan = "general"
        self.history: list[dict] = []
        self.console = Console()
        self.client = httpx.Client(timeout=60.0)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]🏋️ Coachlix - Interactive Chat[/bold blue]\n"
                "Type your messages to chat with your coach.\n"
                "Commands: /help, /plan <name>, /clear, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print("[red]❌ Cannot connect to the service. Make sure it's running.[/red]")
            return

        self.console.print(f"[green]✅ Connected as user {self.user_id}, plan {self.plan}[/green]\n")

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")

                if user_input.lower() in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif user_input.lower() == "/help":
                    self._show_help()
                    continue
                elif user_input.lower() == "/clear":
                    self.history = []
                    self.console.print("[yellow]🔄 Conversation cleared[/yellow]")
                    continue
                elif user_input.lower().startswith("/plan"):
                    self._switch_plan(user_input)
                    continue
                elif user_input.strip() == "":
                    continue

                answer = self._stream_message(user_input)
                if answer is not None:
                    self.history.append({"role": "user", "content": user_input})
                    self.history.append({"role": "assistant", "content": answer})

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]👋 Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _switch_plan(self, command: str) -> None:
        parts = command.split(maxsplit=1)
        if len(parts) < 2 or parts[1] not in PLANS:
            self.console.print(f"[yellow]Available plans: {', '.join(PLANS)}[/yellow]")
            return
        self.plan = parts[1]
        self.console.print(f"[yellow]🔄 Switched to the {self.plan} coach[/yellow]")

    def _stream_message(self, message: str) -> str | None:
        """Send a message and print the answer as it streams in."""
        payload = {
            "message": message,
            "userId": self.user_id,
            "plan": self.plan,
            "conversationHistory": self.history,
        }

        try:
            with self.client.stream("POST", f"{self.base_url}/chat", json=payload) as response:
                if response.status_code != 200:
                    response.read()
                    self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")
                    return None

                self.console.print("[bold green]Coach:[/bold green] ", end="")
                answer = ""
                for event, data in iter_sse_events(response.iter_lines()):
                    if event == "word" and not data.get("isComplete"):
                        self.console.print(data.get("word", ""), end=" ")
                    elif event == "complete":
                        answer = data.get("fullResponse", "")
                        tools = data.get("usedTools") or []
                        self.console.print()
                        if tools:
                            self.console.print(f"[dim]🔧 Tools used: {', '.join(tools)}[/dim]")
                    elif event == "error":
                        self.console.print(f"\n[red]❌ {data.get('error')}[/red]")
                        return None
                return answer

        except httpx.HTTPError as e:
            self.console.print(f"[red]❌ Connection error: {e}[/red]")
            return None

    def _show_help(self) -> None:
        """Show help information."""
        help_text = f"""
[bold]Available Commands:[/bold]
• /help - Show this help message
• /plan <name> - Switch coach ({", ".join(PLANS)})
• /clear - Clear the conversation history
• /quit or /exit - Exit the chat

[bold]Example Questions:[/bold]
1. "What's my workout plan this week?"
2. "Calculate my BMI and daily calories"
3. "Create a 7 day diet plan for weight loss"
4. "How much protein is in chicken breast?"
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]❓ Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
    user_id = sys.argv[2] if len(sys.argv) > 2 else "u1"

    chat = ChatCLI(base_url, user_id)
    chat.start()


if __name__ == "__main__":
    main()
