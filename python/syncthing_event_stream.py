'''
syncthing_event_stream - Long polling of the Syncthing event API

Mixin of SyncthingConnection. Events are requested with since=<last id>; each
batch is processed completely before the next request is issued, so causally
related changes are applied in order.

A timeout of the long-poll request only means "no new events". An aborted
request ends polling: if a reconnect has been requested it starts the new
connection, otherwise the connection is considered disconnected.
'''

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from AsyncHTTP import HttpRequest
from syncthing_model import (
    SyncthingDevStatus, SyncthingDir, SyncthingDirError, SyncthingDirStatus, SyncthingErrorCategory,
    SyncthingNotificationCategory, SyncthingStatus
)
from syncthing_parsing import AsDict, AsInt, AsList, AsStr, ParseJsonArray, ParseTimestamp, SyncthingParseError

log = logging.getLogger('SyncthingConnection')

# Syncthing answers a long-poll request after 60 s at the latest
EVENTS_LONG_POLL_INTERVAL = 60000    # ms
EVENTS_IO_TIMEOUT = EVENTS_LONG_POLL_INTERVAL + 5000


class EventStreamConsumer:
    '''Requests events and dispatches them to the handlers updating the model'''

    def RequestEvents(self):
        '''Requests events since the last seen event; NewEvents is emitted on success'''
        params = {'since': str(self._last_event_id)} if self._last_event_id else None
        self._events_request = self._get('events', self.HTTP_Events, params=params, io_timeout=EVENTS_IO_TIMEOUT)

    def HTTP_Events(self, Request: HttpRequest):
        '''Callback of RequestEvents()'''
        is_current = Request is self._events_request
        if is_current:
            self._events_request = None

        if Request.IsCanceled:
            # intended disconnect, not an error
            if self._reconnecting:
                self._continue_reconnecting()
            elif is_current:
                self._set_status(SyncthingStatus.DISCONNECTED)
            return

        if Request.IsTimeout:
            log.debug('No new events, polling again')
        elif not Request.Succeeded:
            self._fail_connection(f'Unable to request Syncthing events: {self._error_string(Request)}',
                                  SyncthingErrorCategory.OVERALL_CONNECTION)
            return
        else:
            try:
                events = ParseJsonArray(Request)
            except SyncthingParseError as e:
                self._fail_connection(f'Unable to parse Syncthing events: {e}', SyncthingErrorCategory.PARSING)
                return
            self.HandleEvents(events)

        if self._keep_polling:
            self.RequestEvents()
            self._set_status(SyncthingStatus.IDLE)
        else:
            self._set_status(SyncthingStatus.DISCONNECTED)

    def HandleEvents(self, events: List[Any]):
        '''Processes an event batch'''
        self.Signals.NewEvents.Emit(events)
        for event in events:
            if isinstance(event, dict):
                self.ProcessEvent(event)

    def ProcessEvent(self, event: Dict[str, Any]):
        '''Dispatches a single event to its handler'''
        event_id = AsInt(event.get('id'), -1)
        if event_id > self._last_event_id:
            self._last_event_id = event_id
        event_time = ParseTimestamp(event.get('time'))
        event_type = AsStr(event.get('type'))
        data = AsDict(event.get('data'))

        if event_type == 'Starting':
            self._on_starting_event(data)
        elif event_type == 'StateChanged':
            self._on_state_changed_event(event_time, data)
        elif event_type == 'DownloadProgress':
            self._on_download_progress_event(data)
        elif event_type.startswith('Folder'):
            self._on_dir_event(event_time, event_type, data)
        elif event_type.startswith('Device'):
            self._on_device_event(event_type, data)
        elif event_type == 'ItemStarted':
            self._on_item_started(event_time, data)
        elif event_type == 'ItemFinished':
            self._on_item_finished(event_time, data)
        elif event_type == 'ConfigSaved':
            self.RequestConfig()  # just consider the current config as invalidated

    def _on_starting_event(self, data: Dict[str, Any]):
        home = AsStr(data.get('home'))
        if home != self._config_dir:
            self._config_dir = home
            self.Signals.ConfigDirChanged.Emit(home)
        my_id = AsStr(data.get('myID'))
        if my_id != self._my_id:
            self._set_my_id(my_id)

    def _on_state_changed_event(self, event_time: Optional[datetime], data: Dict[str, Any]):
        dir_id = AsStr(data.get('folder'))
        if not dir_id:
            return
        dir_info, row = self._dirs.Find(dir_id)
        if dir_info is not None:
            if dir_info.AssignStatus(AsStr(data.get('to')), event_time):
                self.Signals.DirStatusChanged.Emit(dir_info, row)
                self._update_status()
            return

        # unknown folder: add it and fetch the config for its meta data
        log.debug('StateChanged for unknown folder %s, requesting config', dir_id)
        dir_info = SyncthingDir(Id=dir_id)
        dir_info.AssignStatus(AsStr(data.get('to')), event_time)
        self._dirs.Append(dir_info)
        self._update_status()
        self.RequestConfig()

    def _on_download_progress_event(self, data: Dict[str, Any]):
        # items which disappeared are finished, so all lists are rebuilt
        for dir_info in self._dirs:
            dir_info.UpdateDownloadProgress(AsDict(data.get(dir_info.Id)))
        self.Signals.DownloadProgressChanged.Emit()

    def _on_dir_event(self, event_time: Optional[datetime], event_type: str, data: Dict[str, Any]):
        dir_id = AsStr(data.get('folder'))
        if not dir_id:
            return
        dir_info, row = self._dirs.Find(dir_id)
        if dir_info is None:
            return

        if event_type == 'FolderErrors':
            errors = AsList(data.get('errors'))
            if not errors:
                return
            for error in errors:
                error = AsDict(error)
                if not error:
                    continue
                dir_error = SyncthingDirError(Message=AsStr(error.get('error')), Path=AsStr(error.get('path')))
                if dir_error in dir_info.Errors:
                    continue
                dir_info.Errors.append(dir_error)
                dir_info.AssignStatus(SyncthingDirStatus.OUT_OF_SYNC, event_time)
                # notify only about errors not present before the last synchronization
                if dir_error not in dir_info.PreviousErrors:
                    self._emit_notification(event_time, dir_error.Message, SyncthingNotificationCategory.FOLDER_ERROR)
            self.Signals.DirStatusChanged.Emit(dir_info, row)
            self._update_status()

        elif event_type == 'FolderSummary':
            summary = AsDict(data.get('summary'))
            if not summary:
                return
            dir_info.GlobalBytes = AsInt(summary.get('globalBytes'))
            dir_info.GlobalDeleted = AsInt(summary.get('globalDeleted'))
            dir_info.GlobalFiles = AsInt(summary.get('globalFiles'))
            dir_info.LocalBytes = AsInt(summary.get('localBytes'))
            dir_info.LocalDeleted = AsInt(summary.get('localDeleted'))
            dir_info.LocalFiles = AsInt(summary.get('localFiles'))
            dir_info.NeededBytes = AsInt(summary.get('needBytes'))
            dir_info.NeededFiles = AsInt(summary.get('needFiles'))
            # the "state" of the summary is not used, status comes from StateChanged only
            self.Signals.DirStatusChanged.Emit(dir_info, row)

        elif event_type == 'FolderCompletion':
            # reported per device, the smallest percentage is kept
            percentage = AsInt(data.get('completion'))
            if 0 < percentage < 100 and (dir_info.ProgressPercentage <= 0 or percentage < dir_info.ProgressPercentage):
                dir_info.ProgressPercentage = percentage
                self.Signals.DirStatusChanged.Emit(dir_info, row)

        elif event_type == 'FolderScanProgress':
            current = AsInt(data.get('current'))
            total = AsInt(data.get('total'))
            if current > 0 and total > 0:
                dir_info.ProgressPercentage = min(100, current * 100 // total)
                dir_info.ProgressRate = AsInt(data.get('rate'))
                dir_info.AssignStatus(SyncthingDirStatus.SCANNING, event_time)
                self.Signals.DirStatusChanged.Emit(dir_info, row)
                self._update_status()

    def _on_device_event(self, event_type: str, data: Dict[str, Any]):
        dev_id = AsStr(data.get('device')) or AsStr(data.get('id'))
        if not dev_id:
            return
        dev, row = self._devs.Find(dev_id)
        if dev is None:
            return

        status = dev.Status
        paused = dev.Paused
        if event_type == 'DeviceConnected':
            status = SyncthingDevStatus.IDLE
        elif event_type == 'DeviceDisconnected':
            status = SyncthingDevStatus.DISCONNECTED
        elif event_type == 'DevicePaused':
            paused = True
        elif event_type == 'DeviceRejected':
            status = SyncthingDevStatus.REJECTED
        elif event_type == 'DeviceResumed':
            paused = False
            # TODO: query system/connections instead of assuming a resumed device is disconnected
            status = SyncthingDevStatus.DISCONNECTED
        elif event_type == 'DeviceDiscovered':
            # known already, but the status might still be unknown
            if status == SyncthingDevStatus.UNKNOWN:
                status = SyncthingDevStatus.DISCONNECTED
        else:
            return

        if dev.Status != status or dev.Paused != paused:
            # the status of the own device is never touched
            if dev.Status != SyncthingDevStatus.OWN_DEVICE:
                dev.Status = status
            dev.Paused = paused
            self.Signals.DevStatusChanged.Emit(dev, row)
            self._update_status()

    def _on_item_started(self, event_time: Optional[datetime], data: Dict[str, Any]):
        pass

    def _on_item_finished(self, event_time: Optional[datetime], data: Dict[str, Any]):
        dir_id = AsStr(data.get('folder'))
        if not dir_id:
            return
        dir_info, row = self._dirs.Find(dir_id)
        if dir_info is None:
            return

        error = AsStr(data.get('error'))
        item = AsStr(data.get('item'))
        if not error:
            if dir_info.LastFileTime is None or (event_time is not None and event_time > dir_info.LastFileTime):
                dir_info.LastFileTime = event_time
                dir_info.LastFileName = item
                dir_info.LastFileDeleted = AsStr(data.get('action')) == 'delete'
                self._track_last_file(dir_info)
                self.Signals.DirStatusChanged.Emit(dir_info, row)
        elif dir_info.Status == SyncthingDirStatus.OUT_OF_SYNC:
            dir_info.Errors.append(SyncthingDirError(Message=error, Path=item))
            self.Signals.DirStatusChanged.Emit(dir_info, row)
            self._emit_notification(event_time, error, SyncthingNotificationCategory.ITEM_ERROR)
