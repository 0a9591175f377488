#!/usr/bin/env python3
"""
Interactive terminal client for the streaming chat endpoint.

Usage:
  python chat.py --url http://localhost:8000

Tokens are printed as they arrive. The last 10 turns are sent as history.
"""
import argparse
import sys
from pathlib import Path

import httpx

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from posh_assistant.core.config import settings
from posh_assistant.core.errors import StreamRelayError
from posh_assistant.llm.streaming import iter_sse_tokens

APOLOGY = "I'm sorry, I couldn't process that. Please try again or contact your HR directly."


def ask(client: httpx.Client, message: str, history: list) -> str:
    """Send one message and print the streamed answer"""
    answer = []
    with client.stream(
        "POST",
        "/chat",
        json={"message": message, "history": history[-settings.HISTORY_WINDOW:]},
    ) as response:
        response.raise_for_status()
        for token in iter_sse_tokens(response.iter_lines()):
            answer.append(token)
            print(token, end="", flush=True)
    print()
    return "".join(answer)


def main() -> int:
    parser = argparse.ArgumentParser(description="Chat with the POSH assistant")
    parser.add_argument("--url", default=f"http://localhost:{settings.PORT}", help="Server base URL")
    args = parser.parse_args()

    history = []
    with httpx.Client(base_url=args.url, timeout=None) as client:
        while True:
            try:
                message = input("you> ").strip()
            except (EOFError, KeyboardInterrupt):
                print()
                return 0
            if not message:
                continue

            print("aasha> ", end="", flush=True)
            try:
                answer = ask(client, message, history)
            except (httpx.HTTPError, StreamRelayError) as e:
                # Partial answers are not kept in history
                print(f"\n{APOLOGY} ({e})")
                continue

            history.append({"role": "user", "content": message})
            history.append({"role": "assistant", "content": answer})


if __name__ == "__main__":
    raise SystemExit(main())
