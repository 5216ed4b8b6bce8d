"""Configuration loading utilities for the directory watcher."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml # type: ignore

from .activity import DEFAULT_MARKER_PATTERNS, DEFAULT_STABILITY_TICKS
from .events import WatcherEvent
from .paths import default_cache_dir


logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


@dataclass
class WatcherConfig:
    """Options describing which directory is watched and how."""

    watch_path: Path
    cache_dir: Path = field(default_factory=default_cache_dir)
    poll_interval: float = 1.0
    stability_ticks: int = DEFAULT_STABILITY_TICKS
    include_patterns: List[str] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=lambda: [".*"])
    marker_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_MARKER_PATTERNS))


@dataclass
class HookConfig:
    """Callback subscribed to watcher events, loaded from the configuration file."""

    name: str
    module: str
    function: str
    events: List[WatcherEvent] = field(default_factory=lambda: list(WatcherEvent))
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AppConfig:
    """Top-level configuration structure."""

    watcher: WatcherConfig
    hooks: List[HookConfig] = field(default_factory=list)


def load_config(path: Path) -> AppConfig:
    """Load and validate the YAML configuration file."""

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse YAML configuration: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")

    watcher_cfg = _parse_watcher_config(data.get("watcher"), config_path=path)
    hooks_cfg = _parse_hooks_config(data.get("hooks", []))

    return AppConfig(watcher=watcher_cfg, hooks=hooks_cfg)


def _parse_watcher_config(raw: Any, *, config_path: Path) -> WatcherConfig:
    if not isinstance(raw, dict):
        raise ConfigError("'watcher' section must be a mapping")

    watch_path = _parse_path(raw.get("watch_path"), "watcher.watch_path", config_path=config_path)
    if watch_path is None:
        raise ConfigError("watcher.watch_path must be a string")

    cache_dir = _parse_path(raw.get("cache_dir"), "watcher.cache_dir", config_path=config_path)
    if cache_dir is None:
        cache_dir = default_cache_dir()
    if cache_dir == watch_path or watch_path in cache_dir.parents:
        raise ConfigError("watcher.cache_dir must be outside watcher.watch_path")

    poll_interval = raw.get("poll_interval", 1.0)
    try:
        poll_interval_val = float(poll_interval)
    except (TypeError, ValueError) as exc:
        raise ConfigError("watcher.poll_interval must be numeric") from exc
    if poll_interval_val <= 0:
        raise ConfigError("watcher.poll_interval must be positive")

    stability_ticks = raw.get("stability_ticks", DEFAULT_STABILITY_TICKS)
    if isinstance(stability_ticks, bool) or not isinstance(stability_ticks, int):
        raise ConfigError("watcher.stability_ticks must be an integer")
    if stability_ticks < 1:
        raise ConfigError("watcher.stability_ticks must be at least 1")

    include_patterns = _ensure_str_list(raw.get("include_patterns", []), "watcher.include_patterns")
    exclude_patterns = _ensure_str_list(raw.get("exclude_patterns", [".*"]), "watcher.exclude_patterns")
    marker_patterns = _ensure_str_list(
        raw.get("marker_patterns", list(DEFAULT_MARKER_PATTERNS)),
        "watcher.marker_patterns",
    )

    return WatcherConfig(
        watch_path=watch_path,
        cache_dir=cache_dir,
        poll_interval=poll_interval_val,
        stability_ticks=stability_ticks,
        include_patterns=include_patterns,
        exclude_patterns=exclude_patterns,
        marker_patterns=marker_patterns,
    )


def _parse_hooks_config(raw: Any) -> List[HookConfig]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError("'hooks' section must be a list")

    hooks: List[HookConfig] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ConfigError(f"hooks[{index}] must be a mapping")

        name = item.get("name") or f"hook_{index}"
        module = item.get("module")
        function = item.get("function")
        options = item.get("options", {})

        if not isinstance(module, str) or not isinstance(function, str):
            raise ConfigError(f"hooks[{index}] must include 'module' and 'function' strings")
        if options is None:
            options = {}
        if not isinstance(options, dict):
            raise ConfigError(f"hooks[{index}].options must be a mapping if provided")

        events = _parse_hook_events(item.get("events"), hook_index=index)

        hook_cfg = HookConfig(
            name=str(name),
            module=module,
            function=function,
            events=events,
            options=options,
        )
        logger.info(
            "Loaded hook '%s' (%s.%s) events=%s",
            hook_cfg.name,
            hook_cfg.module,
            hook_cfg.function,
            ",".join(event.value for event in hook_cfg.events),
        )
        hooks.append(hook_cfg)

    return hooks


def _parse_hook_events(raw: Any, *, hook_index: int) -> List[WatcherEvent]:
    if raw is None:
        return list(WatcherEvent)
    names = _ensure_str_list(raw, f"hooks[{hook_index}].events")
    events: List[WatcherEvent] = []
    for name in names:
        try:
            event = WatcherEvent(name)
        except ValueError as exc:
            allowed = ", ".join(option.value for option in WatcherEvent)
            raise ConfigError(f"hooks[{hook_index}].events entries must be one of: {allowed}") from exc
        if event not in events:
            events.append(event)
    if not events:
        raise ConfigError(f"hooks[{hook_index}].events must not be empty")
    return events


def _parse_path(value: Any, field_name: str, *, config_path: Path) -> Optional[Path]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{field_name} must be a string")
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (config_path.parent / path).resolve()
    return path


def _ensure_str_list(value: Any, field_name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError(f"{field_name} must be a list of strings")
    items: List[str] = []
    for elem in value:
        if not isinstance(elem, str):
            raise ConfigError(f"{field_name} must contain only strings")
        items.append(elem)
    return items
