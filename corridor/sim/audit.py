import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from corridor.core.config import DispatchConfig

AUDIT_FILE_NAME = "events.jsonl"


def audit_file(config: Optional[DispatchConfig] = None) -> Path:
    config = config or DispatchConfig()
    return Path(config.audit_dir) / AUDIT_FILE_NAME


def write_audit(event: Dict[str, Any], config: Optional[DispatchConfig] = None) -> None:
    # append a JSONL entry
    config = config or DispatchConfig()
    if not config.audit_enabled:
        return
    path = audit_file(config)
    path.parent.mkdir(parents=True, exist_ok=True)
    entry = {"ts": datetime.now(timezone.utc).isoformat(), **event}
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
