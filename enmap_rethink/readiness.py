from __future__ import annotations

import asyncio


class ReadinessSignal:
    """
    One-shot readiness flag.

    resolve() flips it exactly once; later calls are ignored. Awaiting the
    signal (or wait()) blocks until resolved and can be repeated any number of
    times. Safe to construct outside a running event loop.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._resolved = False

    @property
    def resolved(self) -> bool:
        return self._resolved

    def resolve(self) -> bool:
        """Resolve the signal. Returns False if it was already resolved."""
        if self._resolved:
            return False
        self._resolved = True
        self._event.set()
        return True

    async def wait(self) -> None:
        if self._resolved:
            return
        await self._event.wait()

    def __await__(self):
        return self.wait().__await__()

    def __repr__(self) -> str:
        state = "resolved" if self._resolved else "pending"
        return f"<ReadinessSignal {state}>"
