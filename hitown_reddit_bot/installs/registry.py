"""
Install registry with snapshot-file persistence.

Keeps every group installation in memory, keyed by install token, and
writes the whole map to a JSON file after each change. Persistence is
fail-open: a failed write is logged and the in-memory change stands.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from hitown_reddit_bot.models.bot import BotConfigValue, GroupInstall
from hitown_reddit_bot.reddit.exceptions import ValidationError
from hitown_reddit_bot.utils.logger import get_logger

logger = get_logger(__name__)


class PersistError(Exception):
    """Raised when the state snapshot cannot be written."""

    def __init__(self, path: Path, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to save state to {path}: {cause}")


class InstallRegistry:
    """
    Token -> GroupInstall map backed by a snapshot file.

    Mutations of the same token are serialized with a per-token lock;
    snapshot writes are serialized with a registry-wide lock and written
    atomically (temp file, then rename).

    Attributes:
        path: Location of the snapshot file

    Example:
        >>> registry = InstallRegistry("./bot_state.json")
        >>> await registry.load()
        >>> await registry.install("tok", "g-1", "Group", "https://hook", [])
        >>> registry.get("tok").group_name
        'Group'
    """

    def __init__(self, path: "str | os.PathLike[str]") -> None:
        self.path = Path(path)
        self._installs: Dict[str, GroupInstall] = {}
        self._token_locks: Dict[str, asyncio.Lock] = {}
        self._save_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._installs)

    def __contains__(self, token: object) -> bool:
        return token in self._installs

    def tokens(self) -> List[str]:
        """Return all installed tokens."""
        return list(self._installs)

    def get(self, token: str) -> Optional[GroupInstall]:
        """
        Look up an installation.

        Returns:
            GroupInstall, or None if ``token`` is not installed
        """
        return self._installs.get(token)

    async def load(self) -> None:
        """
        Replace the in-memory map with the snapshot file's contents.

        A missing file starts an empty registry. An unreadable or corrupt
        file is logged and also starts empty.
        """
        if not self.path.exists():
            logger.info("state_file_missing", path=str(self.path))
            self._installs = {}
            return

        try:
            raw = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("state file must contain a JSON object")
            installs = {
                token: GroupInstall.model_validate({**record, "token": token})
                for token, record in data.items()
            }
        except (OSError, ValueError, TypeError, PydanticValidationError) as e:
            logger.error(
                "state_load_failed",
                path=str(self.path),
                error=str(e),
                error_type=type(e).__name__,
            )
            self._installs = {}
            return

        self._installs = installs
        logger.info("state_loaded", path=str(self.path), installs=len(installs))
        for install in installs.values():
            logger.info(
                "install_loaded",
                group_id=install.group_id,
                group_name=install.group_name,
                paused=install.is_paused,
            )

    async def install(
        self,
        token: str,
        group_id: str,
        group_name: str,
        webhook: str,
        config: Optional[Iterable[BotConfigValue]] = None,
    ) -> GroupInstall:
        """
        Register (or overwrite) an installation.

        Raises:
            ValidationError: If token, group id, group name or webhook is empty
        """
        for field, value in (
            ("token", token),
            ("groupId", group_id),
            ("groupName", group_name),
            ("webhook", webhook),
        ):
            if not value or not value.strip():
                raise ValidationError("must not be empty", field=field)

        async with self._token_locks.setdefault(token, asyncio.Lock()):
            install = GroupInstall(
                token=token,
                group_id=group_id,
                group_name=group_name,
                webhook=webhook,
                config=list(config or []),
                is_paused=False,
            )
            self._installs[token] = install
            logger.info(
                "bot_installed",
                group_id=group_id,
                group_name=group_name,
                config_keys=[entry.key for entry in install.config],
            )
            await self._persist()
            return install

    async def reinstall(
        self, token: str, config: Optional[Iterable[BotConfigValue]]
    ) -> None:
        """Replace the config of an installation; no-op if not installed."""
        lock = self._lock_if_installed(token)
        if lock is None:
            logger.info("reinstall_unknown_token")
            return
        async with lock:
            install = self._installs.get(token)
            if install is None:
                logger.info("reinstall_unknown_token")
                return
            self._installs[token] = install.model_copy(
                update={"config": list(config or [])}
            )
            logger.info("bot_reinstalled", group_id=install.group_id)
            await self._persist()

    async def uninstall(self, token: str) -> None:
        """Remove an installation and its lock; no-op if not installed."""
        lock = self._lock_if_installed(token)
        if lock is None:
            logger.info("uninstall_unknown_token")
            return
        async with lock:
            install = self._installs.pop(token, None)
            if install is None:
                logger.info("uninstall_unknown_token")
                return
            # Tasks already waiting on this lock see the token gone and return
            self._token_locks.pop(token, None)
            logger.info("bot_uninstalled", group_id=install.group_id)
            await self._persist()

    async def pause(self, token: str) -> None:
        """Pause an installation; no-op if not installed."""
        await self._set_paused(token, True)

    async def resume(self, token: str) -> None:
        """Resume a paused installation; no-op if not installed."""
        await self._set_paused(token, False)

    async def _set_paused(self, token: str, paused: bool) -> None:
        lock = self._lock_if_installed(token)
        if lock is None:
            logger.info("pause_state_unknown_token", paused=paused)
            return
        async with lock:
            install = self._installs.get(token)
            if install is None:
                logger.info("pause_state_unknown_token", paused=paused)
                return
            self._installs[token] = install.model_copy(update={"is_paused": paused})
            logger.info(
                "bot_paused" if paused else "bot_resumed",
                group_id=install.group_id,
            )
            await self._persist()

    def _lock_if_installed(self, token: str) -> Optional[asyncio.Lock]:
        """Return the token's lock, or None without creating one if not installed."""
        if token not in self._installs:
            return None
        return self._token_locks.setdefault(token, asyncio.Lock())

    def snapshot(self) -> Dict[str, dict]:
        """Serialize the registry as the state file stores it."""
        return {
            token: install.model_dump(by_alias=True, exclude={"token"})
            for token, install in self._installs.items()
        }

    async def _persist(self) -> None:
        """Write the snapshot, logging and swallowing failures."""
        async with self._save_lock:
            data = self.snapshot()
            try:
                await asyncio.to_thread(self._write_snapshot, data)
            except PersistError as e:
                logger.error(
                    "state_save_failed",
                    path=str(e.path),
                    error=str(e.cause),
                    error_type=type(e.cause).__name__,
                )
                return
        logger.debug("state_saved", path=str(self.path), installs=len(data))

    def _write_snapshot(self, data: Dict[str, dict]) -> None:
        """
        Atomically replace the state file with ``data``.

        Raises:
            PersistError: If the file cannot be written
        """
        tmp_path = None
        try:
            directory = self.path.parent
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PersistError(self.path, e) from e
