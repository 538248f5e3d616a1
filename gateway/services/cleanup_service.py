"""Background purge of expired authorization requests and codes."""

import asyncio

from core.errors import StoreError
from core.store.oauth_store import OAuthStore
from core.utils.logging import get_logger

logger = get_logger(__name__)


async def purge_once(store: OAuthStore) -> int:
    """Run one purge pass; store failures are logged, not raised."""
    try:
        removed = await store.purge_expired()
    except StoreError as ex:
        logger.warning("oauth.cleanup.failed", error=str(ex))
        return 0
    if removed:
        logger.info("oauth.cleanup.purged", removed=removed)
    return removed


async def run_cleanup_loop(store: OAuthStore, interval: float) -> None:
    """Purge every `interval` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        await purge_once(store)


async def stop_cleanup_task(task: "asyncio.Task | None") -> None:
    """Cancel the purge task; a crashed task is logged so shutdown continues."""
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.exception("oauth.cleanup.crashed")
