#!/usr/bin/env python3
import argparse
import asyncio
import logging
import pathlib
import sys

from json_assistant.services.config import load_config
from json_assistant.services.error_handler import ConfigurationError
from json_assistant.services.pipeline import ask_json_assistant


def read_json_file(path: str) -> str:
    """Read the JSON document to ask about."""
    try:
        return pathlib.Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: JSON file not found at {path}")
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description="Ask a question about a JSON file")
    parser.add_argument("json_file", type=str, help="Path to the JSON file")
    parser.add_argument("question", type=str, help="Question to ask about the file")
    parser.add_argument("--config", type=str, default=None, help="Path to an assistant YAML config")
    parser.add_argument("--show-sql", action="store_true", help="Print the queries used for the answer")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Error: {e}")
        sys.exit(1)

    json_text = read_json_file(args.json_file)
    response = asyncio.run(ask_json_assistant(
        args.question,
        json_text,
        json_name=pathlib.Path(args.json_file).name,
        config=config,
    ))

    print(response.answer)
    if args.show_sql:
        for sql in response.queries:
            print(f"\n-- query\n{sql}")
    if response.error:
        sys.exit(1)


if __name__ == "__main__":
    main()
