'''
syncthing_timers - Single-shot timers on top of asyncio tasks

A timer is an asyncio task sleeping for the interval and then invoking its
handler in the event loop thread. Restarting a running timer cancels the
pending task first, so at most one expiry is outstanding per timer.
'''

import asyncio
import logging
from typing import Callable, Optional

log = logging.getLogger('SyncthingTimers')


class SingleShotTimer:
    '''
    Timer firing its handler once after Interval milliseconds

    The handler may be a plain function or a coroutine function; it receives
    the timer as the only argument.
    '''

    def __init__(self, handler: Callable, interval: int = 0, name: str = ''):
        self._handler: Callable = handler
        self._interval: int = interval
        self._task: Optional[asyncio.Task] = None
        self.Name: str = name

    @property
    def Interval(self) -> int:
        '''Interval in milliseconds'''
        return self._interval

    @Interval.setter
    def Interval(self, value: int):
        self._interval = max(0, int(value))

    @property
    def IsActive(self) -> bool:
        return self._task is not None and not self._task.done()

    def Start(self, interval: Optional[int] = None):
        '''(Re)starts the timer, optionally with a new interval'''
        if interval is not None:
            self.Interval = interval
        self.Stop()
        self._task = asyncio.ensure_future(self._timer_loop(self._interval / 1000.0))

    def Stop(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _timer_loop(self, interval_sec: float):
        '''Sleeps and calls the handler'''
        try:
            await asyncio.sleep(interval_sec)
        except asyncio.CancelledError:
            return
        # the handler may restart this timer
        self._task = None
        try:
            if asyncio.iscoroutinefunction(self._handler):
                await self._handler(self)
            else:
                self._handler(self)
        except Exception:
            log.exception('Error in timer handler %s', self.Name or self._handler)
