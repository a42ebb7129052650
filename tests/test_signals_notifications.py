"""Tests for signals and the notification emitter"""

import asyncio
import logging
from datetime import datetime, timezone

from syncthing_model import SyncthingNotificationCategory
from syncthing_notifications import RECENT_NOTIFICATIONS, SyncthingNotifier
from syncthing_signals import Signal, SyncthingConnectionSignals

T0 = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


class TestSignal:
    def test_subscribers_called_in_order(self):
        calls = []
        signal = Signal("Test")
        signal.Connect(lambda value: calls.append(("first", value)))
        signal.Connect(lambda value: calls.append(("second", value)))
        signal.Emit(1)
        assert calls == [("first", 1), ("second", 1)]

    def test_connect_twice_subscribes_once(self):
        calls = []
        signal = Signal("Test")

        def slot():
            calls.append(1)

        signal.Connect(slot)
        signal.Connect(slot)
        signal.Emit()
        assert calls == [1]
        assert signal.SubscriberCount == 1

    def test_disconnect(self):
        calls = []
        signal = Signal("Test")

        @signal.Connect
        def slot():
            calls.append(1)

        signal.Disconnect(slot)
        signal.Emit()
        assert calls == []

    def test_failing_subscriber_does_not_stop_others(self, caplog):
        calls = []
        signal = Signal("Test")

        def failing():
            raise RuntimeError("broken subscriber")

        signal.Connect(failing)
        signal.Connect(lambda: calls.append(1))
        with caplog.at_level(logging.ERROR, logger="SyncthingSignals"):
            signal.Emit()
        assert calls == [1]
        assert "Error in subscriber of Test" in caplog.text

    async def test_coroutine_subscriber_is_scheduled(self):
        received = []
        signal = Signal("Test")

        async def slot(value):
            received.append(value)

        signal.Connect(slot)
        signal.Emit("x")
        assert received == []
        await asyncio.sleep(0)
        assert received == ["x"]

    def test_connection_signals(self):
        signals = SyncthingConnectionSignals()
        names = [s.Name for s in signals.All()]
        assert "NewNotification" in names and "StatusChanged" in names
        assert len(names) == len(set(names))
        signals.Error.Connect(lambda *args: None)
        signals.DisconnectAll()
        assert signals.Error.SubscriberCount == 0


class TestNotifier:
    def setup_method(self):
        self.signal = Signal("NewNotification")
        self.received = []
        self.signal.Connect(lambda *args: self.received.append(args))
        self.emitted = 0
        self.notifier = SyncthingNotifier(self.signal, self._on_emit)

    def _on_emit(self):
        self.emitted += 1

    def test_emit(self):
        assert self.notifier.Emit(T0, "disk full", SyncthingNotificationCategory.FOLDER_ERROR)
        assert self.received == [(T0, "disk full", SyncthingNotificationCategory.FOLDER_ERROR)]
        assert self.notifier.HasUnreadNotifications
        assert self.emitted == 1

    def test_duplicates_are_dropped(self):
        self.notifier.Emit(T0, "disk full")
        assert not self.notifier.Emit(T0, "disk full")
        assert self.notifier.Emit(T0, "other message")
        assert len(self.received) == 2

    def test_duplicate_window_is_limited(self):
        self.notifier.Emit(T0, "old")
        for i in range(RECENT_NOTIFICATIONS):
            self.notifier.Emit(T0, f"message {i}")
        assert self.notifier.Emit(T0, "old")

    def test_missing_time_is_stamped(self):
        self.notifier.Emit(None, "no time")
        self.notifier.Emit(None, "no time")
        assert len(self.received) == 2
        when, message, category = self.received[0]
        assert when is not None and when.tzinfo is not None
        assert category == SyncthingNotificationCategory.SYSTEM_ERROR

    def test_consider_all_read(self):
        self.notifier.Emit(T0, "x")
        self.notifier.ConsiderAllRead()
        assert not self.notifier.HasUnreadNotifications

    def test_reset_forgets_recent(self):
        self.notifier.Emit(T0, "x")
        self.notifier.Reset()
        assert not self.notifier.HasUnreadNotifications
        assert self.notifier.Emit(T0, "x")
