'''
syncthing_reconnect - Automatic reconnect after connection failures
'''

import logging
from typing import Callable

from syncthing_timers import SingleShotTimer

log = logging.getLogger('SyncthingReconnect')


class SyncthingReconnectController:
    '''
    Timer driven reconnect with an attempt counter

    Arm() starts the timer if an interval is configured. On expiry the connect
    callback is invoked and afterwards the number of tries is incremented (the
    connect callback itself resets Tries, being a regular connection attempt).
    '''

    def __init__(self, connect: Callable, interval: int = 0):
        self._connect = connect
        self._timer = SingleShotTimer(self.TimerReconnectHandler, interval, name='reconnect')
        self.Tries: int = 0

    @property
    def Interval(self) -> int:
        '''Interval in milliseconds; 0 disables auto-reconnect'''
        return self._timer.Interval

    @Interval.setter
    def Interval(self, value: int):
        self._timer.Interval = value

    @property
    def IsActive(self) -> bool:
        return self._timer.IsActive

    def Arm(self) -> bool:
        '''Starts the timer; returns False if auto-reconnect is disabled'''
        if not self._timer.Interval:
            return False
        log.debug('Reconnecting in %d ms (tries so far: %d)', self._timer.Interval, self.Tries)
        self._timer.Start()
        return True

    def Stop(self):
        self._timer.Stop()

    def Reset(self):
        self._timer.Stop()
        self.Tries = 0

    def TimerReconnectHandler(self, Sender: SingleShotTimer):
        '''Timer handler for auto-reconnect'''
        tries = self.Tries
        self._connect()
        self.Tries = tries + 1
