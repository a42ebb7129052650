'''
syncthing_notifications - Human readable notifications derived from errors and events
'''

import logging
from collections import deque
from datetime import datetime
from typing import Callable, Deque, Optional, Tuple

from dateutil import tz

from syncthing_model import SyncthingNotificationCategory
from syncthing_signals import Signal

log = logging.getLogger('SyncthingNotifier')

# number of recent notifications remembered for duplicate detection
RECENT_NOTIFICATIONS = 64


class SyncthingNotifier:
    '''
    Emits notifications via the NewNotification signal

    Exact duplicates (same time and message) of recently emitted notifications
    are dropped. Emitting sets the unread flag and calls on_emit so the owner
    can recompute its status.
    '''

    def __init__(self, signal: Signal, on_emit: Optional[Callable] = None):
        self._signal = signal
        self._on_emit = on_emit
        self._recent: Deque[Tuple[Optional[datetime], str]] = deque(maxlen=RECENT_NOTIFICATIONS)
        self.HasUnreadNotifications: bool = False

    def Emit(self, when: Optional[datetime], message: str,
             category: SyncthingNotificationCategory = SyncthingNotificationCategory.SYSTEM_ERROR) -> bool:
        '''Returns whether the notification has been emitted'''
        if when is not None and (when, message) in self._recent:
            log.debug('Dropping duplicate notification: %s', message)
            return False
        if when is None:
            when = datetime.now(tz.tzlocal())
        self._recent.append((when, message))

        self.HasUnreadNotifications = True
        if self._on_emit:
            self._on_emit()
        self._signal.Emit(when, message, category)
        return True

    def ConsiderAllRead(self):
        self.HasUnreadNotifications = False

    def Reset(self):
        '''Forgets everything, used when the connection starts over'''
        self._recent.clear()
        self.HasUnreadNotifications = False
