import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol, Union

from .models import RewardsState

logger = logging.getLogger(__name__)


class Storage(Protocol):
    def load(self) -> Optional[RewardsState]:
        ...

    def save(self, state: RewardsState) -> None:
        ...


class InMemoryStorage:
    def __init__(self, state: Optional[RewardsState] = None):
        self.state = state
        self.save_count = 0

    def load(self) -> Optional[RewardsState]:
        if self.state is None:
            return None
        return self.state.model_copy(deep=True)

    def save(self, state: RewardsState) -> None:
        self.state = state.model_copy(deep=True)
        self.save_count += 1


class JsonFileStorage:
    """Whole-state JSON snapshot, replaced atomically on every save."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[RewardsState]:
        if not self.path.exists():
            logger.info("No saved rewards state at %s", self.path)
            return None
        return RewardsState.model_validate_json(self.path.read_text(encoding="utf-8"))

    def save(self, state: RewardsState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(state.model_dump_json(indent=2))
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved rewards state revision %s to %s", state.revision, self.path)
