import asyncio
import logging

from activity.interfaces import AliasSnapshotStore, DomainResolutionService


class AliasCache:
    """
    Address to domain alias cache with periodic eviction of negative results.

    An empty alias means "checked, nothing found". Such entries are dropped
    by the sweep every ``sweep_interval`` seconds so the address is looked up
    again on the next prefetch; resolved aliases are never evicted.

    Parameters
    ----------
    resolver : DomainResolutionService
        Reverse domain lookup
    store : AliasSnapshotStore
        Durable snapshot of the cache
    logger : logging.Logger
        Logger instance
    sweep_interval : float
        Seconds between two sweeps
    """

    def __init__(
        self,
        resolver: DomainResolutionService,
        store: AliasSnapshotStore,
        logger: logging.Logger,
        sweep_interval: float = 300.0
    ):
        self.resolver = resolver
        self.store = store
        self.logger = logger
        self.sweep_interval = sweep_interval

        self._aliases: dict[str, str] = {}
        self._lock = asyncio.Lock()
        self._save_lock = asyncio.Lock()
        self._resolving: set[str] = set()
        self._pending: set[asyncio.Task] = set()
        self._sweep_task: asyncio.Task | None = None

    async def load(self) -> int:
        """
        Seed the cache from the persisted snapshot.

        Returns
        -------
        int
            Number of entries loaded
        """
        try:
            entries = await self.store.load()
        except Exception as e:
            self.logger.warning(f"Could not load alias snapshot: {e}")
            return 0

        async with self._lock:
            for address, alias in entries:
                self._aliases[address] = alias or ""
        self.logger.info(f"Loaded {len(entries)} cached aliases")
        return len(entries)

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """Arm the periodic sweep. Calling it again while running is a no-op."""
        if self.running:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(), name="alias-cache-sweep")

    async def stop(self) -> None:
        """Cancel the sweep and wait for outstanding prefetches."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            await self.evict_unresolved()

    async def evict_unresolved(self) -> int:
        """
        Drop every entry whose alias is empty.

        Returns
        -------
        int
            Number of evicted entries
        """
        async with self._lock:
            unresolved = [address for address, alias in self._aliases.items() if not alias]
            for address in unresolved:
                del self._aliases[address]

        if unresolved:
            self.logger.info(f"Evicted {len(unresolved)} unresolved aliases")
        else:
            self.logger.debug("Alias sweep: nothing to evict")
        return len(unresolved)

    def get_alias(self, address: str) -> str | None:
        """
        Look up a cached alias.

        Returns
        -------
        str | None
            The alias, "" when known to have none, None when never checked
        """
        return self._aliases.get(address)

    def __contains__(self, address: str) -> bool:
        return address in self._aliases

    def __len__(self) -> int:
        return len(self._aliases)

    def schedule_prefetch(self, address: str) -> asyncio.Task | None:
        """
        Start ``prefetch_alias`` in the background.

        Returns
        -------
        asyncio.Task | None
            The scheduled task, None when the address needs no lookup
        """
        if not address or address in self._aliases or address in self._resolving:
            return None

        task = asyncio.create_task(self.prefetch_alias(address))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def prefetch_alias(self, address: str) -> bool:
        """
        Resolve and cache the alias of an address that was never checked.

        Failures are logged and leave the address unresolved so the next
        prefetch retries it.

        Parameters
        ----------
        address : str
            Address to resolve

        Returns
        -------
        bool
            True if a result (possibly empty) was stored
        """
        async with self._lock:
            if address in self._aliases or address in self._resolving:
                return False
            self._resolving.add(address)

        try:
            domain = await self.resolver.get_domain_from_address(address)
        except Exception as e:
            self.logger.warning(f"Alias lookup failed for {address}: {e}")
            return False
        else:
            async with self._lock:
                self._aliases[address] = domain or ""
            await self._persist()
            return True
        finally:
            self._resolving.discard(address)

    async def _persist(self) -> None:
        # Snapshot is taken inside the save lock so the last write is the newest.
        async with self._save_lock:
            async with self._lock:
                snapshot = list(self._aliases.items())
            try:
                await self.store.save(snapshot)
            except Exception as e:
                self.logger.warning(f"Could not persist alias snapshot: {e}")
