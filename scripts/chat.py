"""Interactive sommelier chat in the terminal.

Usage:
    python scripts/chat.py --user <user_id>
    python scripts/chat.py --user <user_id> --conversation <conversation_id>

Prerequisites:
    - The database is initialized: python scripts/init_db.py
    - The model provider API key is set in .env
"""
import argparse

from sommelier.agents import create_sommelier_agent
from sommelier.exceptions import SommelierError


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Chat with the sommelier about your cellar")
    parser.add_argument("--user", "-u", type=str, required=True, help="User ID")
    parser.add_argument("--conversation", "-c", type=str, help="Conversation ID to continue")

    return parser.parse_args()


def main() -> None:

    args = parse_args()
    agent = create_sommelier_agent()
    conversation_id = args.conversation

    print("Sommelier ready. Type 'exit' to quit.")
    while True:
        message = input("\nYou: ").strip()
        if message.lower() in ("exit", "quit"):
            break
        if not message:
            continue

        try:
            result = agent.converse(args.user, message, conversation_id=conversation_id)
        except SommelierError as e:
            print(f"Error: {e.message}")
            continue

        conversation_id = result.conversation_id
        print(f"\nSommelier: {result.answer_text}")
        if result.truncated:
            print("(answer truncated: too many tool calls)")
        for wine in result.wine_references:
            vintage = f" {wine.vintage}" if wine.vintage else ""
            print(f"  - {wine.name}{vintage} ({wine.producer or 'unknown producer'}) [{wine.id}]")
        if result.persistence_warning:
            print(f"Warning: conversation not saved ({result.persistence_warning})")
        if result.reference_warning:
            print(f"Warning: {result.reference_warning}")


if __name__ == "__main__":
    main()
