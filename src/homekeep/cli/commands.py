# src/homekeep/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import cast

from ..home.models import MaintenanceTask, TaskStatus
from ..home.service import HomeData
from ..storage.keys import Collection

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[HomeData, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[HomeData, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Command:
    name: str
    handler: CommandHandler
    help_text: str
    wants_emit: bool


def _wants_emit(handler: CommandHandler) -> bool:
    try:
        return len(inspect.signature(handler).parameters) >= 3
    except (TypeError, ValueError):
        return True


class CommandRegistry:
    """Slash commands over one HomeData (/tasks, /complete, /budget, ...)."""

    def __init__(self) -> None:
        self._commands: dict[str, _Command] = {}
        self._aliases: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        key = name.lower()
        self._commands[key] = _Command(key, handler, help_text, _wants_emit(handler))
        for alias in aliases or []:
            self._aliases[alias.lower()] = key

    def lookup(self, name: str) -> _Command | None:
        key = name.lower()
        return self._commands.get(self._aliases.get(key, key))

    async def handle(
        self,
        data: HomeData,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Run one console line such as "/complete task-1" against the home data.

        Returns the text to show, or None when the line is not a slash command.
        Handlers that take an emitter get it for progress lines during slow
        operations (reset, recurring completion).
        """
        if not line.startswith("/"):
            return None

        name, *args = line[1:].split() or [""]
        if not name:
            return "Type a command after '/', e.g. /tasks. /help lists them all."

        command = self.lookup(name)
        if command is None:
            return f"No such command: /{name.lower()}. /help lists the homekeep commands."

        logger.debug("Command /%s args=%s", command.name, args)
        if command.wants_emit:
            return await cast(CommandHandler3, command.handler)(data, args, emit)
        return await cast(CommandHandler2, command.handler)(data, args)

    def build_help(self) -> str:
        lines = ["homekeep commands:"]
        for command in self._commands.values():
            lines.append(f"  /{command.name} - {command.help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _format_task(t: MaintenanceTask) -> str:
    repeat = f" every {t['recurring_interval']}d" if t.get("recurring") and t.get("recurring_interval") else ""
    return f"  {t['id']}  {t.get('due_date', '?')}  [{t.get('status', '?')}] {t.get('title', '')}{repeat}"


async def cmd_help(data: HomeData, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(data: HomeData, args: list[str]) -> str:
    await data.ensure_ready()
    version = await data.initializer.migrator.current_version()
    tasks = await data.items(Collection.TASKS)
    appliances = await data.items(Collection.APPLIANCES)
    budget = await data.monthly_budget()
    spent = await data.total_spent()
    return (
        "Status:\n"
        f"  Schema version: v{version}\n"
        f"  Appliances: {len(appliances)}\n"
        f"  Tasks: {len(tasks)} ({len(await data.overdue_tasks())} overdue)\n"
        f"  Budget this month: {spent:.2f} / {budget:.2f}"
    )


async def cmd_tasks(data: HomeData, args: list[str]) -> str:
    """
    /tasks            -> active tasks
    /tasks upcoming   -> upcoming only (sorted by due date)
    /tasks overdue|completed|archived|all
    """
    sub = args[0].lower() if args else "active"

    if sub == "active":
        tasks = await data.active_tasks()
    elif sub == "all":
        tasks = list(await data.items(Collection.TASKS))
    elif sub == "upcoming":
        tasks = await data.upcoming_tasks()
    elif sub in ("overdue", "completed", "archived"):
        tasks = await data.tasks_with_status(TaskStatus(sub))
    else:
        return "Usage: /tasks [all|upcoming|overdue|completed|archived]"

    if not tasks:
        return f"No {sub} tasks."
    return "\n".join([f"Tasks ({sub}):", *(_format_task(t) for t in tasks)])


async def cmd_complete(data: HomeData, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /complete <task-id>"
    task_id = args[0]
    task = await data.get_task(task_id)
    if task is None:
        return f"No task with id {task_id}."
    if task.get("status") == TaskStatus.COMPLETED:
        return f"Task {task_id} is already completed."

    successor = await data.complete_task(task_id)
    if successor is None:
        return f"Completed: {task.get('title', task_id)}"
    if emit:
        with contextlib.suppress(Exception):
            emit(f"[tasks] next occurrence scheduled as {successor['id']}")
    return f"Completed: {task.get('title', task_id)}. Next due: {successor['due_date']}"


async def cmd_archive(data: HomeData, args: list[str]) -> str:
    if not args:
        return "Usage: /archive <task-id>"
    if await data.get_task(args[0]) is None:
        return f"No task with id {args[0]}."
    await data.archive_task(args[0])
    return f"Archived {args[0]}."


async def cmd_overdue(data: HomeData, args: list[str]) -> str:
    changed = await data.mark_overdue_tasks()
    return f"Marked {changed} task(s) overdue." if changed else "No tasks became overdue."


async def cmd_budget(data: HomeData, args: list[str]) -> str:
    """
    /budget         -> show monthly budget and spend
    /budget 1800    -> set monthly budget
    """
    if args:
        try:
            amount = float(args[0])
        except ValueError:
            return "Usage: /budget [amount]"
        if amount < 0:
            return "Budget must be zero or positive."
        await data.set_monthly_budget(amount)
        return f"Monthly budget set to {amount:.2f}."

    budget = await data.monthly_budget()
    spent = await data.total_spent()
    return f"Spent {spent:.2f} of {budget:.2f} this month."


async def cmd_reset(data: HomeData, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args or args[0].lower() != "confirm":
        return "This deletes all data and restores the samples. Run /reset confirm to proceed."
    if emit:
        with contextlib.suppress(Exception):
            emit("[reset] removing stored data...")
    failures = await data.reset_all()
    await data.refresh_all()
    if failures:
        return f"Reset finished with {failures} key(s) not removed; see the log."
    return "All data reset to defaults."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Schema version, counts and budget.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [all|upcoming|overdue|completed|archived].")
registry.register("complete", cmd_complete, help_text="Complete a task: /complete <task-id>.", aliases=["done"])
registry.register("archive", cmd_archive, help_text="Archive a task: /archive <task-id>.")
registry.register("overdue", cmd_overdue, help_text="Mark past-due upcoming tasks as overdue.")
registry.register("budget", cmd_budget, help_text="Show or set the monthly budget: /budget [amount].")
registry.register("reset", cmd_reset, help_text="Delete all data and re-seed: /reset confirm.")
