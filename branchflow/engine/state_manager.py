"""
Run state persistence with atomic file writes.

State File Structure:
    One JSON file per repository in the state directory, named after the
    repository root (``<dirname>-<sha1 of the path>.json``) so that runs in
    different repositories never collide. The document is a serialized
    ``RunState``.

The state file doubles as the lock that keeps a second run from starting
while one is paused. Files that cannot be read back (corrupt JSON, a
different schema version, unknown step types) are never guessed at;
``PersistenceError`` tells the user to discard them.

Example:
    >>> manager = StateManager("~/.branchflow/state")
    >>> await manager.save_state(state)
    >>> state = await manager.load_state("/home/dev/project")
    >>> await manager.clear_state("/home/dev/project")
"""

import hashlib
import json
import re
from pathlib import Path

import aiofiles
import structlog
from pydantic import ValidationError

from branchflow.engine.types import RUN_STATE_VERSION, RunState, utc_now
from branchflow.exceptions import PersistenceError

log = structlog.get_logger(__name__)

DISCARD_HINT = "run 'branchflow discard' to remove it and clean up the repository manually"


class StateManager:
    """Persist run state as JSON, one file per repository.

    Attributes:
        state_dir: Directory where state files are stored.
    """

    def __init__(self, state_dir: str | Path) -> None:
        """Initialize the state manager with a storage directory.

        The directory is created on the first write.
        """
        self.state_dir = Path(state_dir).expanduser()

    def state_path(self, repository: str | Path) -> Path:
        """Compute the filesystem path of a repository's state file.

        Example:
            >>> manager.state_path("/home/dev/project")
            PosixPath('~/.branchflow/state/project-5d41402abc4b.json')
        """
        resolved = str(Path(repository).resolve())
        digest = hashlib.sha1(resolved.encode("utf-8")).hexdigest()[:12]
        slug = re.sub(r"[^A-Za-z0-9._-]+", "-", Path(resolved).name).strip("-") or "repository"
        return self.state_dir / f"{slug}-{digest}.json"

    async def load_state(self, repository: str | Path) -> RunState | None:
        """Load the persisted run of a repository.

        Returns:
            The run state, or None if no run is persisted.

        Raises:
            PersistenceError: If the file cannot be read, is not valid JSON,
                or does not match the supported schema version.
        """
        path = self.state_path(repository)
        if not path.exists():
            return None

        try:
            async with aiofiles.open(path) as f:
                content = await f.read()
        except OSError as e:
            raise PersistenceError(f"cannot read run state: {e.strerror or e}", path=str(path)) from e

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"run state is not valid JSON; {DISCARD_HINT}", path=str(path)) from e

        version = data.get("version") if isinstance(data, dict) else None
        if version != RUN_STATE_VERSION:
            raise PersistenceError(
                f"run state has version {version!r} but this branchflow supports version "
                f"{RUN_STATE_VERSION}; {DISCARD_HINT}",
                path=str(path),
            )

        try:
            return RunState.model_validate(data)
        except ValidationError as e:
            raise PersistenceError(f"run state is invalid ({e.error_count()} errors); {DISCARD_HINT}", path=str(path)) from e

    async def save_state(self, state: RunState) -> None:
        """Atomically save a run state.

        State is first written to a temporary file, then renamed to the
        target path. ``updated_at`` is refreshed in place.

        Raises:
            PersistenceError: If the state cannot be written.
        """
        path = self.state_path(state.repository)
        state.updated_at = utc_now()
        tmp_path = path.with_suffix(".tmp")
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w") as f:
                await f.write(state.model_dump_json(indent=2))
            # Atomic rename - safe on POSIX when same filesystem
            tmp_path.replace(path)
        except OSError as e:
            raise PersistenceError(f"cannot write run state: {e.strerror or e}", path=str(path)) from e

        log.debug("run_state_saved", path=str(path), status=str(state.status))

    async def clear_state(self, repository: str | Path) -> bool:
        """Delete the persisted run of a repository.

        Returns:
            Whether a state file existed.

        Raises:
            PersistenceError: If the file exists but cannot be deleted.
        """
        path = self.state_path(repository)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise PersistenceError(f"cannot delete run state: {e.strerror or e}", path=str(path)) from e

        log.debug("run_state_cleared", path=str(path))
        return True
