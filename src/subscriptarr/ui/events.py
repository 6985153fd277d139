from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

_UI_PREFIX = "__SUBSCRIPTARR_UI__ "


def ui_events_enabled() -> bool:
    return os.environ.get("SUBSCRIPTARR_UI") == "1"


def emit_ui_event(event: str, **payload: Any) -> None:
    """Emit a single-line machine-readable event on stdout. No-op unless UI events are enabled."""
    if not ui_events_enabled():
        return

    msg = {"event": event, **payload}
    print(_UI_PREFIX + json.dumps(msg, ensure_ascii=False), flush=True)


def try_parse_ui_event(line: str) -> Optional[Dict[str, Any]]:
    if not line.startswith(_UI_PREFIX):
        return None

    try:
        data = json.loads(line[len(_UI_PREFIX) :])
    except ValueError:
        return None
    return data if isinstance(data, dict) else None
