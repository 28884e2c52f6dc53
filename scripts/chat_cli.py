#!/usr/bin/env python3
"""
Terminal chat against a running campusbot server.

    python scripts/chat_cli.py --url http://127.0.0.1:8000

Type a question and press Enter. ":sources N" toggles the source list of
message N, ":quit" exits.
"""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from campusbot.client import ChatSession, fetch_short_name


def render(session: ChatSession, start: int = 0, stop=None) -> None:
    stop = len(session.messages) if stop is None else stop
    for index in range(start, stop):
        m = session.messages[index]
        label = "you" if m.role == "user" else "bot"
        print(f"[{index}] {label}> {m.content}")
        urls = session.sources.get(index)
        if urls:
            if session.expanded(index):
                for url in urls:
                    print(f"      ↗ {url}")
            else:
                print(f"      Sources ({len(urls)}) - ':sources {index}' to show")


def main() -> int:
    parser = argparse.ArgumentParser(description="Chat with the campus chatbot from a terminal.")
    parser.add_argument("--url", default="http://127.0.0.1:8000", help="server base URL")
    parser.add_argument("--name", default=None, help="institution short name for the greeting (default: ask the server)")
    args = parser.parse_args()

    name = args.name or fetch_short_name(args.url)
    session = ChatSession(args.url, greeting_name=name)
    render(session)

    while True:
        try:
            line = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return 0
        if not line:
            continue
        if line in (":quit", ":q"):
            return 0
        if line.startswith(":sources"):
            try:
                index = int(line.split()[1])
            except (IndexError, ValueError):
                print("usage: :sources N")
                continue
            if not 0 <= index < len(session.messages):
                print(f"no message {index}")
                continue
            session.toggle_sources(index)
            render(session, start=index, stop=index + 1)
            continue

        shown = len(session.messages)
        session.send(line)
        render(session, start=shown + 1)


if __name__ == "__main__":
    sys.exit(main())
