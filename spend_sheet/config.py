from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from spend_sheet.layout import SheetLayout, load_layout

DEFAULT_PORT = 3001
DEFAULT_API_PATH = "/api/spending-data"


@dataclass(frozen=True)
class Settings:
    sheet_id: str | None
    api_key: str | None
    access_token: str | None
    layout: SheetLayout
    port: int = DEFAULT_PORT
    api_alias: str | None = None
    credentials: str | None = None


def load_env_file(path: Path | None = None) -> None:
    """Load ``.env`` from ``path`` or the working directory without clobbering the environment."""
    load_dotenv(dotenv_path=path or Path.cwd() / ".env", override=False)


def settings_from_env(environ: dict[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    layout_path = env.get("SPEND_SHEET_LAYOUT")
    layout = load_layout(Path(layout_path)) if layout_path else SheetLayout()
    port_text = env.get("PORT", "")
    port = int(port_text) if port_text.isdigit() else DEFAULT_PORT
    alias = (env.get("SPEND_SHEET_API_ALIAS") or "").strip() or None
    if alias and not alias.startswith("/"):
        alias = "/" + alias
    return Settings(
        sheet_id=env.get("SHEET_ID") or None,
        api_key=env.get("GOOGLE_API_KEY") or None,
        access_token=env.get("GOOGLE_ACCESS_TOKEN") or None,
        layout=layout,
        port=port,
        api_alias=alias,
        credentials=env.get("GOOGLE_CREDENTIALS") or None,
    )
