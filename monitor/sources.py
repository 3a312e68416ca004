"""Event sources for the monitor."""

import json
import logging
from pathlib import Path
from typing import Iterator, Union

from projection import ContractEvent, InvalidEventError, parse_event

logger = logging.getLogger(__name__)

def read_events_jsonl(path: Union[str, Path]) -> Iterator[ContractEvent]:
    """Yield events from a JSON-lines file, one event object per line.

    Blank lines and lines starting with '#' are ignored.

    Raises:
        InvalidEventError: If a line is not valid JSON or not a valid event
    """
    path = Path(path)
    with path.open() as f:
        for line_number, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError as e:
                raise InvalidEventError(f"{path}:{line_number}: invalid JSON: {e}") from e
            if not isinstance(payload, dict):
                raise InvalidEventError(f"{path}:{line_number}: expected an object")
            try:
                yield parse_event(payload)
            except InvalidEventError as e:
                raise InvalidEventError(f"{path}:{line_number}: {e}") from e
