#!/usr/bin/env python3
"""
Terminal chat client for roomrelay

Usage:
    python ws_client.py <server_url> <room_id> [name]

Examples:
    python ws_client.py ws://localhost:8000 lobby
    python ws_client.py wss://your-server.com lobby Alice

Commands (while connected):
    - Type any message and press Enter to send it
    - /edit <n> <text>   replace the content of message #n (as listed)
    - /list              reprint the room's messages
    - Type 'quit' or 'exit' to disconnect
    - Press Ctrl+C to force disconnect
"""

import asyncio
import json
import random
import secrets
import string
import sys
from datetime import datetime, timezone

import websockets

NAMES = [
    "Alice", "Bob", "Charlie", "David", "Eve", "Frank", "Grace", "Heidi",
    "Ivan", "Judy", "Mallory", "Niaj", "Olivia", "Peggy", "Rupert", "Sybil",
    "Trent", "Victor", "Walter",
]
COLORS = ["#e6194b", "#3cb44b", "#4363d8", "#f58231", "#911eb4", "#42d4f4", "#f032e6"]
NEUTRAL_COLOR = "#808080"

_ID_ALPHABET = string.ascii_letters + string.digits + "_-"


def new_message_id(length: int = 8) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_timestamp(ts: str) -> str:
    """Format a timestamp for display."""
    try:
        dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
        return dt.strftime("%H:%M:%S")
    except (ValueError, AttributeError):
        return str(ts)


def colorize(text: str, hex_color: str | None) -> str:
    hex_color = (hex_color or NEUTRAL_COLOR).lstrip("#")
    try:
        r, g, b = (int(hex_color[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return text
    return f"\x1b[38;2;{r};{g};{b}m{text}\x1b[0m"


class ChatView:
    """Local mirror of the room, merged by id the same way the server does."""

    def __init__(self) -> None:
        self.messages: dict[str, dict] = {}

    def apply(self, msg: dict) -> None:
        msg_type = msg.get("type")
        if msg_type == "all":
            self.messages = {m["id"]: m for m in msg.get("messages", [])}
        elif msg_type in ("add", "update"):
            payload = {k: v for k, v in msg.items() if k != "type"}
            self.messages[payload["id"]] = payload

    def nth(self, n: int) -> dict | None:
        items = list(self.messages.values())
        if 1 <= n <= len(items):
            return items[n - 1]
        return None

    def render_line(self, n: int, m: dict) -> str:
        ts = format_timestamp(m.get("timestamp", ""))
        user = colorize(m.get("user", "?"), m.get("color"))
        return f"  #{n:<3} [{ts}] {user}: {m.get('content', '')}"

    def print_all(self) -> None:
        print(f"📜 {len(self.messages)} message(s) in room")
        for n, m in enumerate(self.messages.values(), start=1):
            print(self.render_line(n, m))


def print_message(view: ChatView, msg: dict) -> None:
    """Pretty print a received frame after merging it into the view."""
    msg_type = msg.get("type", "unknown")
    view.apply(msg)

    print()
    if msg_type == "all":
        view.print_all()
    elif msg_type in ("add", "update"):
        n = list(view.messages).index(msg["id"]) + 1
        marker = "💬" if msg_type == "add" else "✏️ "
        print(marker, view.render_line(n, view.messages[msg["id"]]).strip())
    else:
        print(f"📨 UNKNOWN MESSAGE TYPE: {msg_type}")
        print(f"   {json.dumps(msg, indent=2, default=str)}")


async def receive_messages(websocket, view: ChatView) -> None:
    """Task to continuously receive and print messages."""
    try:
        async for message in websocket:
            try:
                print_message(view, json.loads(message))
            except (json.JSONDecodeError, KeyError, TypeError):
                print(f"\n⚠️  Received unreadable frame: {message!r}")
            print("[You] > ", end="", flush=True)
    except websockets.exceptions.ConnectionClosed as e:
        print(f"\n❌ Connection closed: {e}")


async def send_messages(websocket, view: ChatView, name: str, color: str) -> None:
    """Task to read user input and send add/update events."""
    loop = asyncio.get_running_loop()

    print(f"\n✅ Connected as {colorize(name, color)}! Type a message and press Enter to send.")
    print("   /edit <n> <text> edits message #n, /list reprints, 'quit' disconnects.\n")

    while True:
        try:
            print("[You] > ", end="", flush=True)
            user_input = await loop.run_in_executor(None, sys.stdin.readline)
            if not user_input:
                await websocket.close()
                break
            user_input = user_input.strip()

            if not user_input:
                continue

            if user_input.lower() in ("quit", "exit"):
                print("👋 Disconnecting...")
                await websocket.close()
                break

            if user_input == "/list":
                view.print_all()
                continue

            if user_input.startswith("/edit "):
                parts = user_input.split(" ", 2)
                target = view.nth(int(parts[1])) if len(parts) == 3 and parts[1].isdigit() else None
                if target is None:
                    print("   usage: /edit <n> <text>  (n from /list)")
                    continue
                event = dict(target, type="update", content=parts[2])
            else:
                event = {
                    "type": "add",
                    "id": new_message_id(),
                    "user": name,
                    "role": "user",
                    "content": user_input,
                    "timestamp": now_iso(),
                    "color": color,
                }

            # the server does not echo to the sender
            view.apply(event)
            await websocket.send(json.dumps(event))
            print(f"   ✓ Sent {event['type']} {event['id']}")

        except websockets.exceptions.ConnectionClosed:
            print("\n❌ Connection was closed")
            break


async def main(server_url: str, room_id: str, name: str) -> None:
    """Connect to the room and run the reader and writer side by side."""
    ws_url = f"{server_url}/{room_id}"
    color = random.choice(COLORS)
    view = ChatView()

    print(f"🔌 Connecting to: {ws_url}")
    print("-" * 60)

    try:
        async with websockets.connect(ws_url) as websocket:
            receive_task = asyncio.create_task(receive_messages(websocket, view))
            send_task = asyncio.create_task(send_messages(websocket, view, name, color))

            done, pending = await asyncio.wait(
                [receive_task, send_task],
                return_when=asyncio.FIRST_COMPLETED
            )

            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    except websockets.exceptions.InvalidStatus as e:
        print(f"❌ Connection failed with status code: {e.response.status_code}")
    except websockets.exceptions.InvalidURI as e:
        print(f"❌ Invalid URI: {e}")
        print("   Make sure the server URL starts with ws:// or wss://")
    except ConnectionRefusedError:
        print("❌ Connection refused. Is the server running?")


if __name__ == "__main__":
    if len(sys.argv) not in (3, 4):
        print(__doc__)
        print(f"Usage: python {sys.argv[0]} <server_url> <room_id> [name]")
        sys.exit(1)

    server_url = sys.argv[1].rstrip("/")
    room_id = sys.argv[2]
    name = sys.argv[3] if len(sys.argv) == 4 else random.choice(NAMES)

    if not server_url.startswith(("ws://", "wss://")):
        print("⚠️  Warning: URL should start with ws:// or wss://")
        print("   Assuming ws:// prefix...")
        server_url = f"ws://{server_url}"

    try:
        asyncio.run(main(server_url, room_id, name))
    except KeyboardInterrupt:
        print("\n\n👋 Interrupted by user. Goodbye!")
        sys.exit(0)
