'''
syncthing_connection - Mirrors the state of a Syncthing instance

SyncthingConnection polls the REST API of Syncthing and consumes its event
stream, keeping folders, devices, traffic and notifications in memory. Other
code observes it via the signals in SyncthingConnection.Signals and drives it
with the public commands (Connect, Pause, Rescan, ...). Commands return
immediately; their outcome is reported via signals only.

Threading Model:
- Uses asyncio; all request callbacks run in the event loop thread
- The model is mutated by request callbacks only, so no locking is required
- Records returned by lookups stay valid until the next NewDirs/NewDevices
  signal; use DirHandle()/ResolveDir() for a checked reference

Connection flow:
    Connect() -> system/config + system/status
              -> once both succeeded: connections, statistics, errors, events
              -> every event batch updates the model and the overall status
    Disconnect() or a failure aborts everything; after failures the
    reconnect timer is armed if AutoReconnectInterval is non-zero
'''

import asyncio
import logging
import os
import ssl
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from dateutil import tz

from AsyncHTTP import AsyncHTTP, HttpRequest
from syncthing_config import HTTPS_CERT_FILE_NAME, LocateHttpsCertificate
from syncthing_config_sync import ConfigSynchronizer
from syncthing_event_stream import EventStreamConsumer
from syncthing_model import (
    EntityHandle, SyncthingDev, SyncthingDevStatus, SyncthingDir, SyncthingDirStatus, SyncthingEntityList,
    SyncthingErrorCategory, SyncthingNotificationCategory, SyncthingStatus
)
from syncthing_notifications import SyncthingNotifier
from syncthing_parsing import ParseJsonObject, ParseLogEntries, SyncthingParseError
from syncthing_reconnect import SyncthingReconnectController
from syncthing_settings import (
    DEFAULT_DEV_STATS_POLL_INTERVAL, DEFAULT_TRAFFIC_POLL_INTERVAL, BuildSslContext, IsLocalUrl,
    ReadPemCertificates, SyncthingConnectionSettings
)
from syncthing_signals import SyncthingConnectionSignals
from syncthing_status_poller import StatusPoller
from syncthing_timers import SingleShotTimer

log = logging.getLogger('SyncthingConnection')

_STATUS_TEXTS = {
    SyncthingStatus.DISCONNECTED: 'disconnected',
    SyncthingStatus.RECONNECTING: 'reconnecting',
    SyncthingStatus.IDLE: 'connected',
    SyncthingStatus.SCANNING: 'connected, scanning',
    SyncthingStatus.PAUSED: 'connected, paused',
    SyncthingStatus.SYNCHRONIZING: 'connected, synchronizing',
}


class SyncthingConnection(ConfigSynchronizer, StatusPoller, EventStreamConsumer):
    '''
    Connection to a Syncthing instance

    THREADING MODEL:
    All commands must be invoked from the event loop thread; signals are
    emitted from it as well.

    STATUS:
    The overall status is derived from the folders and devices whenever
    something changes: SYNCHRONIZING if a folder synchronizes, else SCANNING if
    a folder scans, else PAUSED if a device is paused, else IDLE. DISCONNECTED
    and RECONNECTING are set explicitly and take precedence. When
    synchronization ends, the folders which have been synchronizing are
    available via CompletedDirs.
    '''

    def __init__(self, syncthing_url: str = '', api_key: str = '',
                 transport: Optional[AsyncHTTP] = None, clock: Optional[Callable[[], float]] = None):
        '''Creates the connection without starting any network activity'''
        # Server settings
        self._syncthing_url: str = syncthing_url
        self._api_key: str = api_key
        self._user: str = ''
        self._password: str = ''
        self._expected_ssl_certificates: List[str] = []

        # HTTP client; an injected transport is not destroyed by Destroy()
        self._owns_transport: bool = transport is None
        self._transport = transport if transport is not None else AsyncHTTP()
        self._clock: Callable[[], float] = clock or time.monotonic

        self.Signals = SyncthingConnectionSignals()
        self._notifier = SyncthingNotifier(self.Signals.NewNotification, self._on_notification_emitted)
        self._reconnect = SyncthingReconnectController(self.Connect)

        # Poll timers
        self._traffic_poll_interval: int = DEFAULT_TRAFFIC_POLL_INTERVAL
        self._dev_stats_poll_interval: int = DEFAULT_DEV_STATS_POLL_INTERVAL
        self._traffic_timer = SingleShotTimer(lambda t: self.RequestConnections(), name='connections')
        self._dir_stats_timer = SingleShotTimer(lambda t: self.RequestDirStatistics(), name='stats/folder')
        self._dev_stats_timer = SingleShotTimer(lambda t: self.RequestDeviceStatistics(), name='stats/device')
        self._errors_timer = SingleShotTimer(lambda t: self.RequestErrors(), name='errors')

        # Requests in flight
        self._config_request: Optional[HttpRequest] = None
        self._status_request: Optional[HttpRequest] = None
        self._connections_request: Optional[HttpRequest] = None
        self._dir_stats_request: Optional[HttpRequest] = None
        self._dev_stats_request: Optional[HttpRequest] = None
        self._errors_request: Optional[HttpRequest] = None
        self._events_request: Optional[HttpRequest] = None

        # Connection state
        self._status: SyncthingStatus = SyncthingStatus.DISCONNECTED
        self._keep_polling: bool = False
        self._reconnecting: bool = False
        self._has_config: bool = False
        self._has_status: bool = False
        self._last_event_id: int = 0
        self._config_dir: str = ''
        self._my_id: str = ''

        # Traffic
        self._total_incoming_traffic: int = 0
        self._total_outgoing_traffic: int = 0
        self._total_incoming_rate: float = 0.0
        self._total_outgoing_rate: float = 0.0
        self._last_connections_update: Optional[float] = None

        # Model
        self._dirs: SyncthingEntityList = SyncthingEntityList()
        self._devs: SyncthingEntityList = SyncthingEntityList()
        self._synced_dirs: List[str] = []
        self._completed_dirs: List[str] = []
        self._last_file_time: Optional[datetime] = None
        self._last_file_name: str = ''
        self._last_file_deleted: bool = False
        self._last_error_time: Optional[datetime] = None

    async def Destroy(self):
        '''
        Async cleanup method
        Enters BEING_DESTROYED (no further status changes) and aborts everything.
        Call this explicitly before program exit for clean shutdown
        '''
        self._status = SyncthingStatus.BEING_DESTROYED
        self.Signals.StatusChanged.Emit(self._status)
        self._keep_polling = self._reconnecting = False
        self._reconnect.Reset()
        self._stop_poll_timers()
        self._abort_requests()
        if self._owns_transport:
            await self._transport.Destroy()
        else:
            # let the aborted requests finish
            await asyncio.sleep(0)

    # HTTP helpers

    def _build_url(self, path: str, rest: bool = True) -> str:
        base = self._syncthing_url.rstrip('/')
        return base + '/rest/' + path if rest else base + path

    def _headers(self) -> Dict[str, str]:
        return {
            'X-API-Key': self._api_key,
            'Content-Type': 'application/x-www-form-urlencoded',
        }

    def _get(self, path: str, callback: Callable, params: Optional[Dict[str, str]] = None,
             rest: bool = True, user_object: Any = None, io_timeout: int = 0) -> HttpRequest:
        '''Internal helper for GET requests'''
        return self._transport.Get(
            self._build_url(path, rest),
            callback,
            headers=self._headers(),
            params=params,
            operation_name=path,
            user_object=user_object,
            io_timeout=io_timeout
        )

    def _post(self, path: str, callback: Callable, params: Optional[Dict[str, str]] = None,
              user_object: Any = None) -> HttpRequest:
        '''Internal helper for POST requests'''
        return self._transport.Post(
            self._build_url(path),
            '',
            callback,
            headers=self._headers(),
            params=params,
            operation_name=path,
            user_object=user_object
        )

    @staticmethod
    def _error_string(Request: HttpRequest) -> str:
        return Request.ErrorString or f'HTTP status {Request.Status}'

    def _abort_requests(self):
        '''Aborts the requests made for keeping the model up to date'''
        for request in (self._config_request, self._status_request, self._connections_request,
                        self._dir_stats_request, self._dev_stats_request, self._errors_request,
                        self._events_request):
            if request is not None:
                self._transport.Abort(request)

    def _forget_requests(self):
        self._config_request = self._status_request = self._connections_request = None
        self._dir_stats_request = self._dev_stats_request = self._errors_request = None
        self._events_request = None

    def _stop_poll_timers(self):
        for timer in (self._traffic_timer, self._dir_stats_timer, self._dev_stats_timer, self._errors_timer):
            timer.Stop()

    # Error and notification helpers

    def _emit_error(self, message: str, category: SyncthingErrorCategory):
        log.warning('%s', message)
        self.Signals.Error.Emit(message, category)

    def _fail_connection(self, message: str, category: SyncthingErrorCategory):
        '''
        Reports a failure of config/status/events; the connection is considered lost

        All requests are aborted, including the event long poll, so the next
        Connect() starts polling from scratch.
        '''
        self._emit_error(message, category)
        self._stop_poll_timers()
        self._abort_requests()
        self._forget_requests()
        self._has_config = self._has_status = False
        self._set_status(SyncthingStatus.DISCONNECTED)
        self._reconnect.Arm()

    def _emit_notification(self, when: Optional[datetime], message: str,
                           category: SyncthingNotificationCategory):
        self._notifier.Emit(when, message, category)

    def _on_notification_emitted(self):
        self._set_status(self._status)

    @staticmethod
    def _now() -> datetime:
        return datetime.now(tz.tzlocal())

    @staticmethod
    def _invoke_callback_sync(callback: Callable, *args):
        '''Invoke callback synchronously (for both sync and async functions)'''
        if asyncio.iscoroutinefunction(callback):
            asyncio.ensure_future(callback(*args))
        else:
            callback(*args)

    def _check_configuration(self) -> bool:
        if not self._api_key or not self._syncthing_url:
            self._emit_error('Connection configuration is insufficient.', SyncthingErrorCategory.OVERALL_CONNECTION)
            return False
        return True

    # Connection state machine

    def _continue_connecting(self):
        '''Starts polling once config and status have been read'''
        if not (self._keep_polling and self._has_config and self._has_status):
            return
        if self._events_request is not None:
            return
        log.debug('Config and status available, start polling')
        self.RequestConnections()
        self.RequestDirStatistics()
        self.RequestDeviceStatistics()
        self.RequestErrors()
        self._last_event_id = 0
        self.RequestEvents()

    def _continue_reconnecting(self):
        '''Starts over with empty caches'''
        self.Signals.NewConfig.Emit({})  # the config is invalidated
        self._set_status(SyncthingStatus.RECONNECTING)
        self._keep_polling = True
        self._reconnecting = False
        self._last_event_id = 0
        self._config_dir = ''
        self._my_id = ''
        self._total_incoming_traffic = self._total_outgoing_traffic = 0
        self._total_incoming_rate = self._total_outgoing_rate = 0.0
        self._notifier.Reset()
        self._has_config = self._has_status = False
        self._dirs.Clear()
        self._devs.Clear()
        self._synced_dirs = []
        self._completed_dirs = []
        self._last_connections_update = None
        self._last_file_time = None
        self._last_file_name = ''
        self._last_file_deleted = False
        self._last_error_time = None
        self._stop_poll_timers()
        self._abort_requests()
        self._forget_requests()
        if not self._check_configuration():
            return
        self.RequestConfig()
        self.RequestStatus()

    def _set_my_id(self, my_id: str):
        self._my_id = my_id
        self.Signals.MyIdChanged.Emit(my_id)
        dev, row = self._devs.Find(my_id)
        if dev is not None and dev.Status != SyncthingDevStatus.OWN_DEVICE:
            dev.Status = SyncthingDevStatus.OWN_DEVICE
            self.Signals.DevStatusChanged.Emit(dev, row)

    def _update_status(self):
        '''Recomputes the overall status after the model changed'''
        if self.IsConnected:
            self._set_status(SyncthingStatus.IDLE)

    def _set_status(self, status: SyncthingStatus):
        '''
        Sets the overall status; emits StatusChanged

        Only DISCONNECTED and RECONNECTING are taken as they are, any other
        value triggers the computation from the folder and device states.
        '''
        if self._status == SyncthingStatus.BEING_DESTROYED:
            return
        if status in (SyncthingStatus.DISCONNECTED, SyncthingStatus.RECONNECTING):
            # synchronization has not been finished in this case
            self._synced_dirs = []
        else:
            self._reconnect.Tries = 0
            synchronizing = [d.Id for d in self._dirs if d.Status == SyncthingDirStatus.SYNCHRONIZING]
            if synchronizing:
                status = SyncthingStatus.SYNCHRONIZING
                for dir_id in synchronizing:
                    if dir_id not in self._synced_dirs:
                        self._synced_dirs.append(dir_id)
            elif any(d.Status == SyncthingDirStatus.SCANNING for d in self._dirs):
                status = SyncthingStatus.SCANNING
            elif any(d.Paused for d in self._devs):
                status = SyncthingStatus.PAUSED
                self._synced_dirs = []
            else:
                status = SyncthingStatus.IDLE

            if status == SyncthingStatus.SYNCHRONIZING:
                if self._status != SyncthingStatus.SYNCHRONIZING:
                    self._completed_dirs = []
            elif self._status == SyncthingStatus.SYNCHRONIZING:
                self._completed_dirs = self._synced_dirs
                self._synced_dirs = []

        if self._status != status:
            log.debug('Status changed: %s -> %s', self._status.value, status.value)
            self._status = status
            self.Signals.StatusChanged.Emit(status)

    # Public API methods

    def Connect(self, settings: Optional[SyncthingConnectionSettings] = None):
        '''
        Connects asynchronously; does nothing if already connected

        With settings, the settings are applied first and a reconnect is done
        only if properties requiring it have changed.
        '''
        if settings is not None and self.ApplySettings(settings):
            self.Reconnect()
            return
        self._reconnect.Reset()
        if self.IsConnected:
            return
        self._reconnecting = self._has_config = self._has_status = False
        if not self._check_configuration():
            return
        log.debug('Connecting to %s', self._syncthing_url)
        self.RequestConfig()
        self.RequestStatus()
        self._keep_polling = True

    def Disconnect(self):
        '''Aborts all requests and stops polling'''
        self._reconnecting = self._has_config = self._has_status = False
        self._keep_polling = False
        self._reconnect.Reset()
        self._stop_poll_timers()
        self._abort_requests()
        self._set_status(SyncthingStatus.DISCONNECTED)

    def Reconnect(self, settings: Optional[SyncthingConnectionSettings] = None):
        '''
        Disconnects if connected, then connects again with empty caches

        An explicit reconnect resets AutoReconnectTries.
        '''
        if settings is not None:
            self.ApplySettings(settings)
        self._reconnect.Reset()
        if self.IsConnected and self._events_request is not None:
            # the aborted events request continues reconnecting
            self._reconnecting = True
            self._has_config = self._has_status = False
            self._abort_requests()
        else:
            self._continue_reconnecting()

    def Pause(self, dev_id: str) -> HttpRequest:
        '''Requests pausing the device; PauseTriggered is emitted on success'''
        return self._post('system/pause', self.HTTP_PauseResume, params={'device': dev_id},
                          user_object={'devId': dev_id, 'resume': False})

    def Resume(self, dev_id: str) -> HttpRequest:
        '''Requests resuming the device; ResumeTriggered is emitted on success'''
        return self._post('system/resume', self.HTTP_PauseResume, params={'device': dev_id},
                          user_object={'devId': dev_id, 'resume': True})

    def PauseAll(self):
        for dev in self._devs:
            if dev.Status != SyncthingDevStatus.OWN_DEVICE:
                self.Pause(dev.Id)

    def ResumeAll(self):
        for dev in self._devs:
            if dev.Status != SyncthingDevStatus.OWN_DEVICE:
                self.Resume(dev.Id)

    def Rescan(self, dir_id: str) -> HttpRequest:
        '''Requests rescanning the folder; RescanTriggered is emitted on success'''
        return self._post('db/scan', self.HTTP_Rescan, params={'folder': dir_id}, user_object={'dirId': dir_id})

    def RescanAll(self):
        for dir_info in self._dirs:
            self.Rescan(dir_info.Id)

    def Restart(self) -> HttpRequest:
        return self._post('system/restart', self.HTTP_Restart)

    def Shutdown(self) -> HttpRequest:
        '''Requests Syncthing to exit and not restart'''
        return self._post('system/shutdown', self.HTTP_Shutdown)

    def RequestLog(self, callback: Callable) -> HttpRequest:
        '''
        Requests the Syncthing log

        callback receives a list of SyncthingLogEntry on success;
        otherwise Error is emitted
        '''
        return self._get('system/log', lambda r: self.HTTP_Log(r, callback))

    def RequestQrCode(self, text: str, callback: Callable) -> HttpRequest:
        '''
        Requests a QR code for text

        callback receives the image data (bytes) on success; otherwise Error is emitted
        '''
        return self._get('/qr/', lambda r: self.HTTP_QrCode(r, callback), params={'text': text}, rest=False)

    def ConsiderAllNotificationsRead(self):
        self._notifier.ConsiderAllRead()
        self._set_status(self._status)

    def ApplySettings(self, settings: SyncthingConnectionSettings) -> bool:
        '''
        Applies the settings; they are used on the next (re)connect

        If settings carries no certificates, the certificate of a local
        Syncthing instance is loaded and stored in settings.

        Returns:
            Whether a property requiring a reconnect has changed
        '''
        reconnect_required = False
        if self._syncthing_url != settings.SyncthingUrl:
            self._syncthing_url = settings.SyncthingUrl
            reconnect_required = True
        if self._api_key != settings.ApiKey:
            self._api_key = settings.ApiKey
            reconnect_required = True
        if settings.AuthEnabled:
            if (self._user, self._password) != (settings.UserName, settings.Password):
                self.SetCredentials(settings.UserName, settings.Password)
                reconnect_required = True
        elif self._user or self._password:
            self.SetCredentials('', '')
            reconnect_required = True

        if not settings.ExpectedSslCertificates:
            had_certificates = bool(self._expected_ssl_certificates)
            loaded = self.LoadSelfSignedCertificate()
            settings.ExpectedSslCertificates = list(self._expected_ssl_certificates)
            if loaded or had_certificates:
                reconnect_required = True
        elif settings.ExpectedSslCertificates != self._expected_ssl_certificates:
            self._expected_ssl_certificates = list(settings.ExpectedSslCertificates)
            self._apply_ssl_context()
            reconnect_required = True

        self._traffic_poll_interval = settings.TrafficPollInterval
        self._dev_stats_poll_interval = settings.DevStatsPollInterval
        self._reconnect.Interval = settings.ReconnectInterval
        return reconnect_required

    def LoadSelfSignedCertificate(self) -> bool:
        '''
        Locates and loads the (self-signed) certificate used by the Syncthing GUI

        Previously trusted certificates are dropped in any case. Loading is only
        done for https URLs pointing to the local machine; otherwise nothing
        else happens and no error is emitted.

        Returns:
            Whether a certificate could be loaded
        '''
        self._expected_ssl_certificates = []
        self._transport.SslContext = None

        if urlparse(self._syncthing_url).scheme != 'https':
            return False
        if not IsLocalUrl(self._syncthing_url):
            return False

        if self._config_dir:
            cert_path = os.path.join(self._config_dir, HTTPS_CERT_FILE_NAME)
        else:
            cert_path = LocateHttpsCertificate()
        if not cert_path:
            self._emit_error('Unable to locate certificate used by Syncthing GUI.',
                             SyncthingErrorCategory.OVERALL_CONNECTION)
            return False
        if not ReadPemCertificates(cert_path):
            self._emit_error('Unable to load certificate used by Syncthing GUI.',
                             SyncthingErrorCategory.OVERALL_CONNECTION)
            return False

        self._expected_ssl_certificates = [cert_path]
        return self._apply_ssl_context()

    def _apply_ssl_context(self) -> bool:
        try:
            self._transport.SslContext = BuildSslContext(self._expected_ssl_certificates)
        except (ssl.SSLError, OSError) as e:
            self._transport.SslContext = None
            self._emit_error(f'Unable to load certificate used by Syncthing GUI: {e}',
                             SyncthingErrorCategory.OVERALL_CONNECTION)
            return False
        return self._transport.SslContext is not None

    def SetCredentials(self, user: str, password: str):
        '''Sets the credentials for basic auth; empty values disable it'''
        self._user = user
        self._password = password
        self._transport.Credentials = (user, password) if (user or password) else None

    # Callbacks of one-off commands

    def HTTP_PauseResume(self, Request: HttpRequest):
        if Request.IsCanceled:
            return
        if not Request.Succeeded:
            self._emit_error(f'Unable to request pause/resume: {self._error_string(Request)}',
                             SyncthingErrorCategory.SPECIFIC_REQUEST)
            return
        if Request.UserObject['resume']:
            self.Signals.ResumeTriggered.Emit(Request.UserObject['devId'])
        else:
            self.Signals.PauseTriggered.Emit(Request.UserObject['devId'])

    def HTTP_Rescan(self, Request: HttpRequest):
        if Request.IsCanceled:
            return
        if not Request.Succeeded:
            self._emit_error(f'Unable to request rescan: {self._error_string(Request)}',
                             SyncthingErrorCategory.SPECIFIC_REQUEST)
            return
        self.Signals.RescanTriggered.Emit(Request.UserObject['dirId'])

    def HTTP_Restart(self, Request: HttpRequest):
        if Request.IsCanceled:
            return
        if not Request.Succeeded:
            self._emit_error(f'Unable to request restart: {self._error_string(Request)}',
                             SyncthingErrorCategory.SPECIFIC_REQUEST)
            return
        self.Signals.RestartTriggered.Emit()

    def HTTP_Shutdown(self, Request: HttpRequest):
        if Request.IsCanceled:
            return
        if not Request.Succeeded:
            self._emit_error(f'Unable to request shutdown: {self._error_string(Request)}',
                             SyncthingErrorCategory.SPECIFIC_REQUEST)
            return
        self.Signals.ShutdownTriggered.Emit()

    def HTTP_Log(self, Request: HttpRequest, callback: Callable):
        if Request.IsCanceled:
            return
        if not Request.Succeeded:
            self._emit_error(f'Unable to request system log: {self._error_string(Request)}',
                             SyncthingErrorCategory.SPECIFIC_REQUEST)
            return
        try:
            entries = ParseLogEntries(ParseJsonObject(Request))
        except SyncthingParseError as e:
            self._emit_error(f'Unable to parse Syncthing log: {e}', SyncthingErrorCategory.PARSING)
            return
        self._invoke_callback_sync(callback, entries)

    def HTTP_QrCode(self, Request: HttpRequest, callback: Callable):
        if Request.IsCanceled:
            return
        if not Request.Succeeded:
            self._emit_error(f'Unable to request QR-Code: {self._error_string(Request)}',
                             SyncthingErrorCategory.SPECIFIC_REQUEST)
            return
        self._invoke_callback_sync(callback, Request.ReadAll())

    # Lookups

    def FindDirInfo(self, dir_id: str) -> Tuple[Optional[SyncthingDir], int]:
        '''Returns (folder, row) or (None, -1)'''
        return self._dirs.Find(dir_id)

    def FindDevInfo(self, dev_id: str) -> Tuple[Optional[SyncthingDev], int]:
        '''Returns (device, row) or (None, -1)'''
        return self._devs.Find(dev_id)

    def FindDevInfoByName(self, name: str) -> Tuple[Optional[SyncthingDev], int]:
        '''Returns the first device with the given name as (device, row) or (None, -1)'''
        for row, dev in enumerate(self._devs):
            if dev.Name == name:
                return dev, row
        return None, -1

    def DirHandle(self, row: int) -> EntityHandle:
        return self._dirs.Handle(row)

    def DevHandle(self, row: int) -> EntityHandle:
        return self._devs.Handle(row)

    def ResolveDir(self, handle: EntityHandle) -> Optional[SyncthingDir]:
        '''Returns the folder or None if the handle became invalid'''
        return self._dirs.Resolve(handle)

    def ResolveDev(self, handle: EntityHandle) -> Optional[SyncthingDev]:
        '''Returns the device or None if the handle became invalid'''
        return self._devs.Resolve(handle)

    # Properties

    @property
    def Status(self) -> SyncthingStatus:
        return self._status

    @property
    def StatusText(self) -> str:
        return _STATUS_TEXTS.get(self._status, 'unknown')

    @property
    def IsConnected(self) -> bool:
        return self._status not in (SyncthingStatus.DISCONNECTED, SyncthingStatus.RECONNECTING,
                                    SyncthingStatus.BEING_DESTROYED)

    @property
    def HasOutOfSyncDirs(self) -> bool:
        return any(d.Status == SyncthingDirStatus.OUT_OF_SYNC for d in self._dirs)

    @property
    def HasUnreadNotifications(self) -> bool:
        return self._notifier.HasUnreadNotifications

    @property
    def HasConfig(self) -> bool:
        return self._has_config

    @property
    def HasStatus(self) -> bool:
        return self._has_status

    @property
    def Dirs(self) -> List[SyncthingDir]:
        return self._dirs.AsList()

    @property
    def Devs(self) -> List[SyncthingDev]:
        return self._devs.AsList()

    @property
    def CompletedDirs(self) -> List[SyncthingDir]:
        '''Folders which have been synchronizing when synchronization finished the last time'''
        result = []
        for dir_id in self._completed_dirs:
            dir_info, _ = self._dirs.Find(dir_id)
            if dir_info is not None:
                result.append(dir_info)
        return result

    @property
    def SyncthingUrl(self) -> str:
        return self._syncthing_url

    @SyncthingUrl.setter
    def SyncthingUrl(self, value: str):
        self._syncthing_url = value

    @property
    def ApiKey(self) -> str:
        return self._api_key

    @ApiKey.setter
    def ApiKey(self, value: str):
        self._api_key = value

    @property
    def User(self) -> str:
        return self._user

    @property
    def Password(self) -> str:
        return self._password

    @property
    def ExpectedSslCertificates(self) -> List[str]:
        return list(self._expected_ssl_certificates)

    @property
    def ConfigDir(self) -> str:
        return self._config_dir

    @property
    def MyId(self) -> str:
        return self._my_id

    @property
    def LastEventId(self) -> int:
        return self._last_event_id

    @property
    def TotalIncomingTraffic(self) -> int:
        return self._total_incoming_traffic

    @property
    def TotalOutgoingTraffic(self) -> int:
        return self._total_outgoing_traffic

    @property
    def TotalIncomingRate(self) -> float:
        '''Incoming transfer rate in kbit/s'''
        return self._total_incoming_rate

    @property
    def TotalOutgoingRate(self) -> float:
        '''Outgoing transfer rate in kbit/s'''
        return self._total_outgoing_rate

    @property
    def LastFileName(self) -> str:
        return self._last_file_name

    @property
    def LastFileTime(self) -> Optional[datetime]:
        return self._last_file_time

    @property
    def LastFileDeleted(self) -> bool:
        return self._last_file_deleted

    @property
    def LastErrorTime(self) -> Optional[datetime]:
        return self._last_error_time

    @property
    def AutoReconnectTries(self) -> int:
        return self._reconnect.Tries

    @property
    def AutoReconnectInterval(self) -> int:
        '''Interval for auto-reconnect in milliseconds; 0 disables it'''
        return self._reconnect.Interval

    @AutoReconnectInterval.setter
    def AutoReconnectInterval(self, value: int):
        self._reconnect.Interval = value

    @property
    def TrafficPollInterval(self) -> int:
        return self._traffic_poll_interval

    @TrafficPollInterval.setter
    def TrafficPollInterval(self, value: int):
        self._traffic_poll_interval = value

    @property
    def DevStatsPollInterval(self) -> int:
        return self._dev_stats_poll_interval

    @DevStatsPollInterval.setter
    def DevStatsPollInterval(self, value: int):
        self._dev_stats_poll_interval = value
