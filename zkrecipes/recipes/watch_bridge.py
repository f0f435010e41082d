"""
Bridge dari one-shot watch callback ke blocking wait (asyncio).

Watch callback dipanggil oleh coordination client, bisa dari thread lain
(event thread kazoo) atau dari thread event loop sendiri (in-memory service).
Setiap arm_and_wait membuat OneShotSignal baru, jadi wait yang berbeda tidak
pernah berbagi primitive yang sama.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from ..coordination.client import CoordinationClient, WatchEvent
from ..utils.metrics import metrics

logger = logging.getLogger(__name__)


class OneShotSignal:
    """
    Single-use signal berbasis asyncio.Future.

    fire() aman dipanggil dari thread mana pun dan boleh dipanggil berkali-kali;
    hanya event pertama yang dipakai.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self._future: asyncio.Future = loop.create_future()

    def fire(self, event: WatchEvent):
        try:
            self._loop.call_soon_threadsafe(self._resolve, event)
        except RuntimeError:
            # Loop sudah ditutup, tidak ada yang menunggu lagi
            logger.debug(f"Dropped {event.type.value} event for {event.path}: loop closed")

    def _resolve(self, event: WatchEvent):
        if not self._future.done():
            self._future.set_result(event)

    @property
    def fired(self) -> bool:
        return self._future.done() and not self._future.cancelled()

    async def wait(self, timeout: Optional[float] = None) -> WatchEvent:
        return await asyncio.wait_for(self._future, timeout)


class WatchBridge:
    """
    Arm satu watch lalu suspend sampai watch fire.

    Jika kondisi sudah berubah saat watch di-arm (race antara check dan arm),
    method return False tanpa menunggu, dan caller harus re-evaluate.
    """

    def __init__(self, client: CoordinationClient):
        self.client = client

    async def arm_and_wait_deleted(self, path: str, timeout: Optional[float] = None) -> bool:
        """
        Tunggu sampai node di path berubah (biasanya dihapus).

        Returns:
            False jika node sudah tidak ada saat watch di-arm,
            True jika watch fire.

        Raises:
            asyncio.TimeoutError: watch tidak fire dalam timeout
        """
        signal = OneShotSignal(asyncio.get_running_loop())
        stat = await self.client.exists(path, watch=signal.fire)
        if stat is None:
            logger.debug(f"{path} already gone, re-evaluating")
            await self.client.remove_watch(path, signal.fire)
            return False

        logger.debug(f"Watching {path} for deletion")
        event = await signal.wait(timeout)
        metrics.record_wakeup('node', event.type.value)
        return True

    async def arm_and_wait_children(self,
                                    path: str,
                                    still_blocked: Callable[[List[str]], bool],
                                    timeout: Optional[float] = None) -> bool:
        """
        Tunggu perubahan children di bawah path.

        Args:
            path: Parent node yang di-watch
            still_blocked: Predicate atas children saat watch di-arm. Jika False,
                kondisi sudah berubah dan method langsung return.
            timeout: Maximum wait (seconds)

        Returns:
            False jika kondisi sudah berubah saat arm, True jika watch fire.
        """
        signal = OneShotSignal(asyncio.get_running_loop())
        children = await self.client.get_children(path, watch=signal.fire)
        if not still_blocked(children):
            logger.debug(f"Children of {path} changed before wait ({len(children)} now), re-evaluating")
            return False

        logger.debug(f"Watching children of {path} ({len(children)} now)")
        event = await signal.wait(timeout)
        metrics.record_wakeup('children', event.type.value)
        return True
