from __future__ import annotations

import os
import yaml
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_CONFIG_PATH = "config.yaml"


@dataclass
class OutlookConfig:
    profile: Optional[str] = None
    mail_folder: str = "Inbox"
    folder_aliases: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class ExportConfig:
    limit: int = 0
    output_dir: str = "."
    table_width_cap: int = 50
    contacts_table_width_cap: int = 40


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class AppConfig:
    outlook: OutlookConfig = field(default_factory=OutlookConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load the YAML config onto defaults.

    With no path the default ``config.yaml`` is optional; a path given
    explicitly must exist.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
        if not os.path.exists(path):
            return AppConfig()
    if not os.path.exists(path):
        raise FileNotFoundError(f"Config not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    def dict_get(d: Dict[str, Any], key: str, default):
        v = d.get(key, None)
        return v if v is not None else default

    outlook = dict_get(data, "outlook", {}) or {}
    export = dict_get(data, "export", {}) or {}
    logging_cfg = dict_get(data, "logging", {}) or {}

    aliases = dict_get(outlook, "folder_aliases", {}) or {}
    cfg = AppConfig(
        outlook=OutlookConfig(
            profile=outlook.get("profile"),
            mail_folder=dict_get(outlook, "mail_folder", "Inbox"),
            folder_aliases={str(k): [str(p) for p in (v or [])] for k, v in aliases.items()},
        ),
        export=ExportConfig(
            limit=int(dict_get(export, "limit", 0)),
            output_dir=str(dict_get(export, "output_dir", ".")),
            table_width_cap=int(dict_get(export, "table_width_cap", 50)),
            contacts_table_width_cap=int(dict_get(export, "contacts_table_width_cap", 40)),
        ),
        logging=LoggingConfig(level=str(dict_get(logging_cfg, "level", "INFO"))),
    )
    return cfg
