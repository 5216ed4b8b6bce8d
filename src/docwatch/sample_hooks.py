"""Example hook callbacks that can be referenced from configuration."""
from __future__ import annotations

import logging
import shlex
import subprocess
from typing import Any, Dict, List, Optional, Tuple

from .events import WatcherEvent
from .hooks import HookContext

logger = logging.getLogger(__name__)


def log_event(context: HookContext, options: Dict[str, Any]) -> None:
    """Log watcher events at a configurable level."""

    level_name = str(options.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    message = options.get("message", "Watcher event")
    logger.log(level, "%s: %s", message, _describe_event(context))


def run_shell_command(context: HookContext, options: Dict[str, Any]) -> None:
    """Execute a templated shell command once per affected file.

    Placeholder values are shell-quoted, so file names arriving from outside
    are always passed as single arguments.
    """

    template = options.get("command")
    if not template:
        logger.error("run_shell_command requires a 'command' option")
        return

    for name, previous_name in _affected_files(context):
        values = {
            "name": name,
            "path": str(context.watch_path / name),
            "directory": str(context.watch_path),
            "event": context.event.value,
            "previous_name": previous_name or "",
        }
        values = {key: shlex.quote(value) for key, value in values.items()}
        try:
            command = str(template).format(**values)
        except KeyError as exc:
            logger.error("run_shell_command missing placeholder value for '%s'", exc)
            return

        logger.info("Executing shell command for %s: %s", name, command)
        try:
            subprocess.run(command, shell=True, check=True)
        except subprocess.CalledProcessError as exc:
            logger.error("Shell command failed (exit %s): %s", exc.returncode, command)


def _affected_files(context: HookContext) -> List[Tuple[str, Optional[str]]]:
    if context.event is WatcherEvent.FILES_RENAMED:
        return [(new, old) for old, new in (context.payload or {}).items()]
    if context.event in (WatcherEvent.FILES_ADDED, WatcherEvent.FILES_DELETED):
        return [(name, None) for name in context.payload or []]
    return []


def _describe_event(context: HookContext) -> str:
    details = [f"type={context.event.value}", f"directory={context.watch_path}"]
    if context.event is WatcherEvent.FILES_RENAMED:
        pairs = ", ".join(f"{old} -> {new}" for old, new in (context.payload or {}).items())
        details.append(f"files=[{pairs}]")
    elif context.payload:
        details.append(f"files={list(context.payload)}")
    return ", ".join(details)
