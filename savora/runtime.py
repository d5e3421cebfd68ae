"""Background asyncio loop that owns all dashboard state.

Flask serves requests on its own threads; dashboards, their stores and the
backend clients live on this single loop. Request threads hand work over
with ``run`` (coroutines) or ``call`` (plain functions) and block for the
result.
"""

import asyncio
import logging
import threading

logger = logging.getLogger(__name__)


class EventLoopThread:

    def __init__(self, name='savora-loop'):
        self.name = name
        self.loop = None
        self._thread = None
        self._ready = threading.Event()

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return self
        self._ready.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        self._ready.wait()
        return self

    def _run(self):
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self._ready.set()
        try:
            self.loop.run_forever()
        finally:
            self.loop.close()
            logger.debug('Event loop %s closed', self.name)

    def run(self, coro, timeout=None):
        """Run ``coro`` on the loop and wait for its result.

        Raises TimeoutError when ``timeout`` seconds pass first; the
        coroutine keeps running on the loop.
        """
        if not self.running:
            coro.close()
            raise RuntimeError('event loop is not running')
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        try:
            return future.result(timeout)
        except TimeoutError:
            logger.warning('Timed out after %ss waiting on %s', timeout, getattr(coro, '__name__', coro))
            raise

    def call(self, fn, *args, timeout=None):
        """Run a plain function on the loop thread and return its result."""
        async def invoke():
            return fn(*args)
        return self.run(invoke(), timeout)

    def stop(self):
        if not self.running:
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5)
        self._thread = None
