"""
Shared CLI state: the loaded configuration and the contract store.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from contractwatch.core.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_app_config
from contractwatch.core.config.models import AppConfig
from contractwatch.persistence.db import init_db
from contractwatch.persistence.store import ContractStore

err_console = Console(stderr=True)


def config_path(ctx: typer.Context) -> Path:
    obj = ctx.find_root().obj or {}
    return obj.get("config_path", DEFAULT_CONFIG_PATH)


def get_app_config(ctx: typer.Context) -> AppConfig:
    """Load the configuration selected by ``--config`` once per invocation."""
    root = ctx.find_root()
    root.obj = root.obj or {}

    config = root.obj.get("app_config")
    if config is None:
        path = config_path(ctx)
        try:
            config = load_app_config(path)
        except ConfigError as e:
            err_console.print(f"[red]Error loading config {path}:[/red] {e.message}")
            if e.details:
                err_console.print(f"[dim]{e.details}[/dim]")
            raise typer.Exit(1)
        root.obj["app_config"] = config

    return config


def open_store(config: AppConfig) -> ContractStore:
    """Contract store on the configured database, creating tables if needed."""
    init_db(config.database.url, echo=config.database.echo)
    return ContractStore()
