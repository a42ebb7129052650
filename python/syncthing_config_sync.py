'''
syncthing_config_sync - Fetching the Syncthing config and reconciling folders/devices

Mixin of SyncthingConnection; relies on the request helpers and state of the
connection (_get, _dirs, _devs, _my_id, readiness flags).
'''

import logging
from typing import Any, Dict

from AsyncHTTP import HttpRequest
from syncthing_model import SyncthingErrorCategory
from syncthing_parsing import ParseJsonObject, ReconcileDevs, ReconcileDirs, SyncthingParseError

log = logging.getLogger('SyncthingConnection')


class ConfigSynchronizer:
    '''Requests system/config and replaces the folder and device lists'''

    def RequestConfig(self):
        '''
        Requests the Syncthing configuration

        Signals NewConfig, NewDirs and NewDevices are emitted on success;
        otherwise Error is emitted. A config request still in flight is aborted.
        '''
        if self._config_request is not None:
            self._transport.Abort(self._config_request)
        self._config_request = self._get('system/config', self.HTTP_Config)

    def HTTP_Config(self, Request: HttpRequest):
        '''Callback of RequestConfig()'''
        if Request is self._config_request:
            self._config_request = None
        if Request.IsCanceled:
            return  # intended, not an error
        if not Request.Succeeded:
            self._fail_connection(f'Unable to request Syncthing config: {self._error_string(Request)}',
                                  SyncthingErrorCategory.OVERALL_CONNECTION)
            return
        try:
            config = ParseJsonObject(Request)
        except SyncthingParseError as e:
            self._fail_connection(f'Unable to parse Syncthing config: {e}', SyncthingErrorCategory.PARSING)
            return
        self.ApplyConfig(config)

    def ApplyConfig(self, config: Dict[str, Any]):
        '''Reconciles the parsed config against the known folders and devices'''
        self.Signals.NewConfig.Emit(config)

        self._dirs.Replace(ReconcileDirs(self._dirs, config.get('folders')))
        self.Signals.NewDirs.Emit(self._dirs.AsList())

        self._devs.Replace(ReconcileDevs(self._devs, config.get('devices'), self._my_id))
        self.Signals.NewDevices.Emit(self._devs.AsList())

        log.debug('Config applied: %d folders, %d devices', len(self._dirs), len(self._devs))
        self._has_config = True
        if not self.IsConnected:
            self._continue_connecting()
        else:
            self._update_status()
