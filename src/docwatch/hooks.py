"""Dynamic hook loading and subscription helpers."""
from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Dict, Iterable, List, cast

from .config import HookConfig
from .events import EventBus, WatcherEvent

logger = logging.getLogger(__name__)


HookCallback = Callable[["HookContext", Dict[str, Any]], None]


@dataclass(frozen=True)
class HookContext:
    """Context passed to hook callbacks."""

    watch_path: Path
    event: WatcherEvent
    payload: Any = None


@dataclass
class Hook:
    """Callable wrapper associated with configuration metadata."""

    name: str
    callback: HookCallback
    options: Dict[str, Any]
    events: List[WatcherEvent]
    watch_path: Path

    def __call__(self, event: WatcherEvent, payload: Any) -> None:
        logger.debug("Dispatching hook %s for %s", self.name, event.value)
        try:
            self.callback(HookContext(watch_path=self.watch_path, event=event, payload=payload), self.options)
        except Exception:
            logger.exception("Hook %s failed for %s", self.name, event.value)


class HookRegistry:
    """Loads configured hooks and subscribes them to an event bus."""

    def __init__(self, hooks: Iterable[HookConfig], *, watch_path: Path):
        self._hooks: List[Hook] = [self._load_hook(cfg, watch_path) for cfg in hooks]

    def __iter__(self):
        return iter(self._hooks)

    def __len__(self) -> int:
        return len(self._hooks)

    def attach(self, bus: EventBus) -> None:
        for hook in self._hooks:
            for event in hook.events:
                bus.subscribe(event, hook)

    def detach(self, bus: EventBus) -> None:
        for hook in self._hooks:
            for event in hook.events:
                bus.unsubscribe(event, hook)

    def _load_hook(self, config: HookConfig, watch_path: Path) -> Hook:
        module = _import_module(config.module)
        try:
            callback = getattr(module, config.function)
        except AttributeError as exc:
            raise RuntimeError(
                f"Hook '{config.name}' could not find function '{config.function}' in {config.module}"
            ) from exc

        if not callable(callback):
            raise RuntimeError(
                f"Hook '{config.name}' attribute '{config.function}' in {config.module} is not callable"
            )

        return Hook(
            name=config.name,
            callback=cast(HookCallback, callback),
            options=dict(config.options or {}),
            events=list(config.events),
            watch_path=watch_path,
        )


def _import_module(module_path: str) -> ModuleType:
    try:
        return importlib.import_module(module_path)
    except ImportError as exc:
        raise RuntimeError(f"Unable to import hook module '{module_path}'") from exc
