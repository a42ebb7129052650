'''
syncthing_signals - Observer registry used by SyncthingConnection

Every notification channel is a Signal; collaborators subscribe callbacks with
Connect() and are called in subscription order whenever the connection emits.
Coroutine functions are scheduled on the running loop instead of being awaited.
'''

import asyncio
import logging
from typing import Callable, List

log = logging.getLogger('SyncthingSignals')


class Signal:
    '''Single notification channel'''

    def __init__(self, name: str):
        self.Name: str = name
        self._slots: List[Callable] = []

    def Connect(self, callback: Callable) -> Callable:
        '''Subscribes callback; returns it so Connect can be used as decorator'''
        if callback not in self._slots:
            self._slots.append(callback)
        return callback

    def Disconnect(self, callback: Callable):
        if callback in self._slots:
            self._slots.remove(callback)

    def DisconnectAll(self):
        self._slots.clear()

    @property
    def SubscriberCount(self) -> int:
        return len(self._slots)

    def Emit(self, *args):
        # copy: slots may (un)subscribe while being called
        for callback in list(self._slots):
            try:
                if asyncio.iscoroutinefunction(callback):
                    asyncio.ensure_future(callback(*args))
                else:
                    callback(*args)
            except Exception:
                log.exception('Error in subscriber of %s', self.Name)

    def __repr__(self):
        return f'<Signal {self.Name} ({len(self._slots)} subscribers)>'


class SyncthingConnectionSignals:
    '''
    All notification channels of a SyncthingConnection

    Arguments passed to the subscribers:
        NewConfig(config: dict)                 - raw config; empty dict when the config got invalidated
        NewDirs(dirs: list)                     - folder list has been replaced
        NewDevices(devs: list)                  - device list has been replaced
        NewEvents(events: list)                 - raw event batch
        DirStatusChanged(dir, row)
        DevStatusChanged(dev, row)
        DownloadProgressChanged()
        TrafficChanged(total_in: int, total_out: int)
        NewNotification(when, message, category)
        Error(message: str, category: SyncthingErrorCategory)
        StatusChanged(status: SyncthingStatus)
        ConfigDirChanged(path: str)
        MyIdChanged(my_id: str)
        RescanTriggered(dir_id), PauseTriggered(dev_id), ResumeTriggered(dev_id)
        RestartTriggered(), ShutdownTriggered()
    '''

    _NAMES = (
        'NewConfig', 'NewDirs', 'NewDevices', 'NewEvents',
        'DirStatusChanged', 'DevStatusChanged', 'DownloadProgressChanged', 'TrafficChanged',
        'NewNotification', 'Error', 'StatusChanged', 'ConfigDirChanged', 'MyIdChanged',
        'RescanTriggered', 'PauseTriggered', 'ResumeTriggered', 'RestartTriggered', 'ShutdownTriggered',
    )

    def __init__(self):
        for name in self._NAMES:
            setattr(self, name, Signal(name))

    def All(self) -> List[Signal]:
        return [getattr(self, name) for name in self._NAMES]

    def DisconnectAll(self):
        for signal in self.All():
            signal.DisconnectAll()
