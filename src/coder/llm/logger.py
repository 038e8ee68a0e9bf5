"""
Append-only audit log of model transport traffic.

Each request/response/error triple is written as one JSON object per line.
Failures to write are logged and otherwise ignored; the log never affects
control flow.
"""

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger()


def _to_jsonable(value: Any) -> Any:
    if value is None:
        return None
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return value


class APILogger:
    """Writes API interactions to `<logs_dir>/api_logs_<timestamp>.jsonl`."""

    def __init__(self, logs_dir: str | Path):
        self.logs_dir = Path(logs_dir).expanduser()
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        self.log_file = self.logs_dir / f"api_logs_{timestamp}.jsonl"

        try:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Could not create logs directory", path=str(self.logs_dir), error=str(e))

    def log_interaction(self, request: Any, response: Any, error: BaseException | None) -> None:
        """Append one entry. Errors take precedence over the response."""
        entry: dict[str, Any] = {
            "timestamp": datetime.now().astimezone().isoformat(),
            "request": _to_jsonable(request),
        }
        if error is not None:
            entry["error"] = str(error) or type(error).__name__
        elif response is not None:
            entry["response"] = _to_jsonable(response)

        try:
            line = json.dumps(entry, default=str)
        except (TypeError, ValueError) as e:
            logger.warning("Could not serialize API log entry", error=str(e))
            return

        try:
            with self.log_file.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.warning("Could not write API log entry", path=str(self.log_file), error=str(e))
