"""Entry point for tasklists.

Runs a single command against the configured database and prints the
result as JSON:

    python -m tasklists --user alice list-create "Groceries"
    python -m tasklists --user alice task-reorder 1 3 1 2

Or as an installed command:
    tasklists --user alice bootstrap
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from rich.console import Console

from tasklists.config import Config
from tasklists.logging_config import get_logger, setup_logging
from tasklists.services.errors import TaskListsError

logger = get_logger(__name__)

console = Console()
error_console = Console(stderr=True)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one sub-command per command."""
    parser = argparse.ArgumentParser(prog="tasklists", description="Ordered lists and tasks")
    parser.add_argument("--user", help="Caller user id")
    parser.add_argument("--config", type=Path, help="Path to settings.ini")
    parser.add_argument("--database-url", help="Override the database URL")
    parser.add_argument("--log-level", help="Override the log level")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("bootstrap", help="Show every list and task")

    sub.add_parser("lists", help="Show lists in order")
    p = sub.add_parser("list-get", help="Show one list")
    p.add_argument("list_id")
    p = sub.add_parser("list-create", help="Append a list")
    p.add_argument("name")
    p.add_argument("--slug")
    p = sub.add_parser("list-update", help="Rename a list")
    p.add_argument("list_id")
    p.add_argument("--name")
    p.add_argument("--slug")
    p = sub.add_parser("list-delete", help="Delete a list and its tasks")
    p.add_argument("list_id")
    p = sub.add_parser("list-reorder", help="Set the full list order")
    p.add_argument("list_order", nargs="*")

    p = sub.add_parser("tasks", help="Show tasks in order")
    p.add_argument("--list", dest="list_id")
    p = sub.add_parser("task-get", help="Show one task")
    p.add_argument("task_id")
    p = sub.add_parser("task-create", help="Append a task to a list")
    p.add_argument("list_id")
    p.add_argument("title")
    p.add_argument("--description")
    p.add_argument("--due", dest="due_date")
    p.add_argument("--starred", action="store_true")
    p = sub.add_parser("task-update", help="Patch a task, optionally moving it")
    p.add_argument("task_id")
    p.add_argument("--title")
    p.add_argument("--description")
    p.add_argument("--due", dest="due_date")
    p.add_argument("--list", dest="list_id")
    p.add_argument("--completed", action=argparse.BooleanOptionalAction, default=None)
    p.add_argument("--starred", action=argparse.BooleanOptionalAction, default=None)
    p = sub.add_parser("task-delete", help="Delete a task")
    p.add_argument("task_id")
    p = sub.add_parser("task-reorder", help="Move tasks into a list in the given order")
    p.add_argument("list_id")
    p.add_argument("task_order", nargs="*")
    p = sub.add_parser("task-clear-completed", help="Delete completed tasks of a list")
    p.add_argument("list_id")

    return parser


def _present(namespace: argparse.Namespace, *names: str) -> Dict[str, Any]:
    """Collect options that were actually given on the command line."""
    return {
        name: getattr(namespace, name)
        for name in names
        if getattr(namespace, name, None) is not None
    }


async def run_command(commands: Any, ns: argparse.Namespace) -> Any:
    """Dispatch parsed arguments to the command layer."""
    user = ns.user
    name = ns.command

    if name == "bootstrap":
        return await commands.bootstrap(user)
    if name == "lists":
        return await commands.get_lists(user)
    if name == "list-get":
        return await commands.get_list(user, ns.list_id)
    if name == "list-create":
        return await commands.create_list(user, _present(ns, "name", "slug"))
    if name == "list-update":
        return await commands.update_list(user, ns.list_id, _present(ns, "name", "slug"))
    if name == "list-delete":
        return await commands.delete_list(user, ns.list_id)
    if name == "list-reorder":
        return await commands.reorder_lists(user, {"list_order": ns.list_order})
    if name == "tasks":
        return await commands.get_tasks(user, _present(ns, "list_id"))
    if name == "task-get":
        return await commands.get_task(user, ns.task_id)
    if name == "task-create":
        return await commands.create_task(
            user,
            _present(ns, "list_id", "title", "description", "due_date", "starred"),
        )
    if name == "task-update":
        return await commands.update_task(
            user,
            ns.task_id,
            _present(ns, "title", "description", "due_date", "list_id", "completed", "starred"),
        )
    if name == "task-delete":
        return await commands.delete_task(user, ns.task_id)
    if name == "task-reorder":
        return await commands.reorder_tasks(
            user, {"list_id": ns.list_id, "task_order": ns.task_order}
        )
    if name == "task-clear-completed":
        return await commands.delete_completed_tasks(user, ns.list_id)
    raise ValueError(f"Unknown command: {name}")


def _to_jsonable(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if isinstance(result, list):
        return [_to_jsonable(item) for item in result]
    return result


async def _main_async(ns: argparse.Namespace, config: Config) -> Any:
    from tasklists.commands import TaskCommands
    from tasklists.database import init_database

    db_config = config.get_database_config()
    db_manager = await init_database(
        ns.database_url or db_config['url'],
        echo=db_config['echo'],
    )
    try:
        commands = TaskCommands(
            db_manager,
            strict_reorder=config.get_ordering_config()['strict_reorder'],
        )
        return await run_command(commands, ns)
    finally:
        await db_manager.close()


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for tasklists.

    Args:
        args: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if args is None:
        args = sys.argv[1:]

    ns = build_parser().parse_args(args)
    config = Config(ns.config)

    # Initialize logging before any other operations
    setup_logging(ns.log_level or config.get_logging_config()['level'])

    try:
        result = asyncio.run(_main_async(ns, config))
    except TaskListsError as e:
        logger.info(f"Command {ns.command} failed: {e.code}")
        error_console.print_json(json.dumps(e.to_dict()))
        return 1
    except Exception:
        logger.error(f"Error running command {ns.command}", exc_info=True)
        error_console.print("[red]Unexpected error, see the log for details[/red]")
        return 2

    console.print_json(json.dumps(_to_jsonable(result)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
