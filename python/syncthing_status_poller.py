'''
syncthing_status_poller - Periodically polled Syncthing endpoints

Mixin of SyncthingConnection handling system/status, system/connections,
stats/folder, stats/device and system/error. Except for system/status, failures
of these requests are reported via the Error signal only; they never trigger a
reconnect on their own.
'''

import logging
from typing import Any, Dict

from AsyncHTTP import HttpRequest
from syncthing_model import SyncthingDevStatus, SyncthingDir, SyncthingErrorCategory, SyncthingNotificationCategory
from syncthing_parsing import (
    AsBool, AsDict, AsInt, AsList, AsStr, ParseJsonObject, ParseLastSeen, ParseTimestamp,
    SyncthingParseError, TransferRate
)

log = logging.getLogger('SyncthingConnection')

# Syncthing has no events for these, so they are polled
DIR_STATS_POLL_INTERVAL = 60000    # ms
ERRORS_POLL_INTERVAL = 30000       # ms


class StatusPoller:
    '''Requests and reads the polled endpoints'''

    # Requests

    def RequestStatus(self):
        '''Requests system/status; MyIdChanged is emitted when the own device ID changed'''
        if self._status_request is not None:
            self._transport.Abort(self._status_request)
        self._status_request = self._get('system/status', self.HTTP_Status)

    def RequestConnections(self):
        '''Requests system/connections; TrafficChanged and DevStatusChanged are emitted on success'''
        self._connections_request = self._get('system/connections', self.HTTP_Connections)

    def RequestDirStatistics(self):
        self._dir_stats_request = self._get('stats/folder', self.HTTP_DirStatistics)

    def RequestDeviceStatistics(self):
        self._dev_stats_request = self._get('stats/device', self.HTTP_DeviceStatistics)

    def RequestErrors(self):
        '''Requests system/error; NewNotification is emitted for each new error'''
        self._errors_request = self._get('system/error', self.HTTP_Errors)

    # Callbacks

    def _read_poll_reply(self, Request: HttpRequest, what: str) -> Any:
        '''Returns the parsed JSON object or None if the reply is not usable'''
        if Request.IsCanceled:
            return None  # intended, not an error
        if not Request.Succeeded:
            self._emit_error(f'Unable to request {what}: {self._error_string(Request)}',
                             SyncthingErrorCategory.OVERALL_CONNECTION)
            return None
        try:
            return ParseJsonObject(Request)
        except SyncthingParseError as e:
            self._emit_error(f'Unable to parse {what}: {e}', SyncthingErrorCategory.PARSING)
            return None

    def HTTP_Status(self, Request: HttpRequest):
        '''Callback of RequestStatus()'''
        if Request is self._status_request:
            self._status_request = None
        if Request.IsCanceled:
            return
        if not Request.Succeeded:
            self._fail_connection(f'Unable to request Syncthing status: {self._error_string(Request)}',
                                  SyncthingErrorCategory.OVERALL_CONNECTION)
            return
        try:
            reply = ParseJsonObject(Request)
        except SyncthingParseError as e:
            self._fail_connection(f'Unable to parse Syncthing status: {e}', SyncthingErrorCategory.PARSING)
            return

        my_id = AsStr(reply.get('myID'))
        if my_id != self._my_id:
            self._set_my_id(my_id)
        # other values are currently not interesting
        self._has_status = True
        self._continue_connecting()

    def HTTP_Connections(self, Request: HttpRequest):
        '''Callback of RequestConnections()'''
        if Request is self._connections_request:
            self._connections_request = None
        reply = self._read_poll_reply(Request, 'connections')
        if reply is None:
            return
        self.ApplyConnections(reply)
        if self._keep_polling:
            self._traffic_timer.Start(self._traffic_poll_interval)

    def ApplyConnections(self, reply: Dict[str, Any]):
        '''Updates traffic totals, rates and per device connection info'''
        total = AsDict(reply.get('total'))
        total_in = AsInt(total.get('inBytesTotal'))
        total_out = AsInt(total.get('outBytesTotal'))
        now = self._clock()
        elapsed = None if self._last_connections_update is None else now - self._last_connections_update
        self._total_incoming_rate = TransferRate(total_in, self._total_incoming_traffic, elapsed)
        self._total_outgoing_rate = TransferRate(total_out, self._total_outgoing_traffic, elapsed)
        self._total_incoming_traffic = total_in
        self._total_outgoing_traffic = total_out
        self.Signals.TrafficChanged.Emit(total_in, total_out)

        connections = AsDict(reply.get('connections'))
        for row, dev in enumerate(self._devs):
            connection = AsDict(connections.get(dev.Id))
            if not connection:
                continue
            connected = AsBool(connection.get('connected'))
            if dev.Status == SyncthingDevStatus.OWN_DEVICE:
                pass
            elif dev.Status in (SyncthingDevStatus.DISCONNECTED, SyncthingDevStatus.UNKNOWN):
                dev.Status = SyncthingDevStatus.IDLE if connected else SyncthingDevStatus.DISCONNECTED
            elif not connected:
                dev.Status = SyncthingDevStatus.DISCONNECTED
            dev.Paused = AsBool(connection.get('paused'))
            dev.TotalIncomingTraffic = AsInt(connection.get('inBytesTotal'))
            dev.TotalOutgoingTraffic = AsInt(connection.get('outBytesTotal'))
            dev.ConnectionAddress = AsStr(connection.get('address'))
            dev.ConnectionType = AsStr(connection.get('type'))
            dev.ClientVersion = AsStr(connection.get('clientVersion'))
            self.Signals.DevStatusChanged.Emit(dev, row)

        self._last_connections_update = now
        self._update_status()

    def HTTP_DirStatistics(self, Request: HttpRequest):
        '''Callback of RequestDirStatistics()'''
        if Request is self._dir_stats_request:
            self._dir_stats_request = None
        reply = self._read_poll_reply(Request, 'directory statistics')
        if reply is None:
            return
        for row, dir_info in enumerate(self._dirs):
            stats = AsDict(reply.get(dir_info.Id))
            if not stats:
                continue
            dir_info.LastScanTime = ParseTimestamp(stats.get('lastScan'))
            last_file = AsDict(stats.get('lastFile'))
            if last_file:
                dir_info.LastFileName = AsStr(last_file.get('filename'))
                if dir_info.LastFileName:
                    dir_info.LastFileDeleted = AsBool(last_file.get('deleted'))
                    dir_info.LastFileTime = ParseTimestamp(last_file.get('at'))
                    self._track_last_file(dir_info)
            self.Signals.DirStatusChanged.Emit(dir_info, row)
        if self._keep_polling:
            self._dir_stats_timer.Start(DIR_STATS_POLL_INTERVAL)

    def _track_last_file(self, dir_info: SyncthingDir):
        '''Keeps the most recently synchronized file over all folders'''
        if dir_info.LastFileTime is None:
            return
        if self._last_file_time is None or dir_info.LastFileTime > self._last_file_time:
            self._last_file_time = dir_info.LastFileTime
            self._last_file_name = dir_info.LastFileName
            self._last_file_deleted = dir_info.LastFileDeleted

    def HTTP_DeviceStatistics(self, Request: HttpRequest):
        '''Callback of RequestDeviceStatistics()'''
        if Request is self._dev_stats_request:
            self._dev_stats_request = None
        reply = self._read_poll_reply(Request, 'device statistics')
        if reply is None:
            return
        for row, dev in enumerate(self._devs):
            stats = AsDict(reply.get(dev.Id))
            if not stats:
                continue
            dev.LastSeen = ParseLastSeen(stats.get('lastSeen'))
            self.Signals.DevStatusChanged.Emit(dev, row)
        if self._keep_polling:
            self._dev_stats_timer.Start(self._dev_stats_poll_interval)

    def HTTP_Errors(self, Request: HttpRequest):
        '''Callback of RequestErrors()'''
        if Request is self._errors_request:
            self._errors_request = None
        if Request.IsCanceled:
            return
        # ignore errors which occurred before connecting
        if self._last_error_time is None:
            self._last_error_time = self._now()
        if not Request.Succeeded:
            self._emit_error(f'Unable to request errors: {self._error_string(Request)}',
                             SyncthingErrorCategory.OVERALL_CONNECTION)
            return
        try:
            reply = ParseJsonObject(Request)
        except SyncthingParseError as e:
            # a malformed reply does not end polling
            self._emit_error(f'Unable to parse errors: {e}', SyncthingErrorCategory.PARSING)
            reply = {}
        for error in AsList(reply.get('errors')):
            error = AsDict(error)
            when = ParseTimestamp(error.get('when'))
            if when is None or when <= self._last_error_time:
                continue
            self._last_error_time = when
            self._emit_notification(when, AsStr(error.get('message')), SyncthingNotificationCategory.SYSTEM_ERROR)
        if self._keep_polling:
            self._errors_timer.Start(ERRORS_POLL_INTERVAL)
