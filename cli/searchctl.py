#!/usr/bin/env python3
"""
searchctl - Command-line administration for the catalog search bridge.

Usage:
    searchctl configure              # Set up API connection
    searchctl test                   # Check the search engine connection
    searchctl status                 # Per-collection existence and document counts
    searchctl create products        # Create a collection (or: all)
    searchctl sync all               # Index the catalog into every collection
    searchctl delete brands          # Delete a collection
"""

import os
import sys
import json
import argparse
from pathlib import Path
from typing import Any, Dict, List

import requests
from requests.exceptions import ConnectionError, Timeout
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import Prompt

# Configuration
CONFIG_DIR = Path.home() / ".searchctl"
CONFIG_FILE = CONFIG_DIR / "config.json"

COLLECTION_TYPES = ["products", "categories", "brands"]

console = Console()


def print_error(text: str):
    console.print(f"[red]Error:[/red] {text}")


def print_success(text: str):
    console.print(f"[green]✓[/green] {text}")


class SearchCtlClient:
    """Admin API client."""

    def __init__(self, base_url: str = None, admin_key: str = None):
        self.config = self._load_config()
        self.base_url = (base_url or self.config.get("base_url", "")).rstrip("/")
        self.admin_key = admin_key or self.config.get("admin_key")
        # Syncing a large catalog takes a while
        self.timeout = 300

    def _load_config(self) -> dict:
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    return json.load(f)
            except (OSError, ValueError):
                return {}
        return {}

    def _save_config(self, config: dict):
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w") as f:
            json.dump(config, f, indent=2)
        os.chmod(CONFIG_FILE, 0o600)

    def configure(self, base_url: str, admin_key: str):
        self.base_url = base_url.rstrip("/")
        self.admin_key = admin_key
        self._save_config({
            "base_url": self.base_url,
            "admin_key": self.admin_key,
        })
        print_success(f"Configuration saved to {CONFIG_FILE}")

    def _request(self, method: str, endpoint: str, **kwargs) -> dict:
        if not self.base_url or not self.admin_key:
            print_error("Not configured. Run: searchctl configure")
            sys.exit(1)

        url = f"{self.base_url}/api/v1/admin{endpoint}"
        headers = {"X-Admin-Key": self.admin_key, "Content-Type": "application/json"}

        try:
            response = requests.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json() if response.content else {}
        except ConnectionError:
            print_error(f"Cannot connect to {self.base_url}")
            sys.exit(1)
        except Timeout:
            print_error("Request timed out")
            sys.exit(1)
        except requests.HTTPError as e:
            try:
                error_detail = e.response.json().get("detail", str(e))
            except ValueError:
                error_detail = str(e)
            print_error(f"API error: {error_detail}")
            sys.exit(1)

    def test_connection(self) -> dict:
        return self._request("GET", "/connection")

    def status(self) -> dict:
        return self._request("GET", "/collections/status")

    def create(self, collection_type: str) -> dict:
        return self._request("POST", f"/collections/{collection_type}")

    def delete(self, collection_type: str) -> dict:
        return self._request("DELETE", f"/collections/{collection_type}")

    def sync(self, collection_type: str) -> dict:
        return self._request("POST", f"/collections/{collection_type}/sync")


def expand_types(value: str) -> List[str]:
    return list(COLLECTION_TYPES) if value == "all" else [value]


def cmd_configure(args):
    client = SearchCtlClient()
    console.print(Panel.fit(
        "[bold]searchctl configuration[/bold]\n\n"
        "You'll need:\n"
        "1. The bridge API base URL (e.g., http://localhost:8000)\n"
        "2. The ADMIN_API_KEY configured on the server",
        title="Setup"
    ))
    base_url = Prompt.ask("API Base URL", default=client.base_url or "http://localhost:8000")
    admin_key = Prompt.ask("Admin Key", password=True)

    if not admin_key:
        print_error("Admin key is required")
        return

    client.configure(base_url, admin_key)
    cmd_test(args)


def cmd_test(args):
    result = SearchCtlClient().test_connection()
    if result.get("ok"):
        print_success(f"Search engine reachable at {result.get('url')}")
    else:
        print_error(f"Search engine at {result.get('url')}: {result.get('message')}")
        sys.exit(1)


def cmd_status(args):
    result = SearchCtlClient().status()

    table = Table(title="Collections")
    table.add_column("Type", style="cyan")
    table.add_column("Name")
    table.add_column("Exists")
    table.add_column("Documents", justify="right")

    for item in result.get("collections", []):
        exists = "[green]yes[/green]" if item.get("exists") else "[red]no[/red]"
        table.add_row(item.get("type", ""), item.get("name", ""), exists, str(item.get("documents", 0)))

    console.print(table)


def _report(action: str, collection_type: str, result: Dict[str, Any]):
    inner = result.get("result", result)
    if action == "sync":
        print_success(f"{collection_type}: {inner.get('message')}")
        for error in inner.get("errors") or []:
            console.print(f"  [yellow]![/yellow] {error}")
    else:
        status = inner.get("status") or ("created" if action == "create" else "deleted")
        print_success(f"{collection_type}: {status}")


def cmd_collection_action(args):
    client = SearchCtlClient()
    handlers = {"create": client.create, "delete": client.delete, "sync": client.sync}
    handler = handlers[args.command]
    for collection_type in expand_types(args.type):
        with console.status(f"{args.command} {collection_type}..."):
            result = handler(collection_type)
        _report(args.command, collection_type, result)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="searchctl - administer the catalog search bridge",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  searchctl configure              # Set up API connection
  searchctl create all             # Create every collection
  searchctl sync products          # Re-index products
  searchctl status                 # Show collection status
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("configure", help="Configure API connection")
    subparsers.add_parser("test", help="Test the search engine connection")
    subparsers.add_parser("status", help="Show collection status")

    for action, help_text in (
        ("create", "Create a collection"),
        ("delete", "Delete a collection"),
        ("sync", "Index catalog rows into a collection"),
    ):
        action_parser = subparsers.add_parser(action, help=help_text)
        action_parser.add_argument("type", choices=COLLECTION_TYPES + ["all"], help="Collection type")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    if args.command == "configure":
        cmd_configure(args)
    elif args.command == "test":
        cmd_test(args)
    elif args.command == "status":
        cmd_status(args)
    elif args.command in ("create", "delete", "sync"):
        cmd_collection_action(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
