'''
syncthing_parsing - Decoding of Syncthing REST responses

JSON bodies that cannot be decoded raise SyncthingParseError; the request
handlers of SyncthingConnection turn that into a PARSING error. Individual
timestamp fields never raise: ParseTimestamp returns None for anything that is
not a usable ISO 8601 date, and callers treat None as "no timestamp".
'''

import json
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from dateutil import parser as dateparser
from dateutil import tz

from AsyncHTTP import HttpRequest
from syncthing_model import (
    SyncthingDev, SyncthingDevStatus, SyncthingDir, SyncthingEntityList, SyncthingLogEntry
)


# Syncthing reports a "last seen" time of 1970 for devices never seen
NEVER = datetime(1971, 1, 1, 1, 1, 1, tzinfo=tz.tzlocal())

# Go writes up to nanosecond precision, datetime handles microseconds only
_FRACTION_RE = re.compile(r'(\.\d{6})\d+')


class SyncthingParseError(ValueError):
    '''Raised when a response of Syncthing can not be parsed'''


def ParseJson(Request: HttpRequest) -> Any:
    '''Decodes the JSON body of a finished request'''
    data = Request.ReadAll()
    try:
        return json.loads(data.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SyncthingParseError(str(e)) from e


def ParseJsonObject(Request: HttpRequest) -> Dict[str, Any]:
    value = ParseJson(Request)
    if not isinstance(value, dict):
        raise SyncthingParseError(f'expected JSON object, got {type(value).__name__}')
    return value


def ParseJsonArray(Request: HttpRequest) -> List[Any]:
    value = ParseJson(Request)
    if not isinstance(value, list):
        raise SyncthingParseError(f'expected JSON array, got {type(value).__name__}')
    return value


def ParseTimestamp(value: Any) -> Optional[datetime]:
    '''
    Parses an ISO 8601 timestamp as sent by Syncthing

    Returns:
        A timezone aware datetime (local time zone assumed for naive values)
        or None when the value is missing or malformed
    '''
    if not isinstance(value, str) or not value:
        return None
    try:
        result = dateparser.isoparse(_FRACTION_RE.sub(r'\1', value))
    except (ValueError, OverflowError):
        return None
    if result.tzinfo is None:
        result = result.replace(tzinfo=tz.tzlocal())
    return result


def ParseLastSeen(value: Any) -> Optional[datetime]:
    '''Like ParseTimestamp but treats dates before 1971 as "never"'''
    result = ParseTimestamp(value)
    if result is None or result < NEVER:
        return None
    return result


def TransferRate(current: int, previous: int, elapsed: Optional[float]) -> float:
    '''Transfer rate in kbit/s; 0 without a previous sample or without elapsed time'''
    if not elapsed:
        return 0.0
    return (current - previous) * 0.008 / elapsed


# Tolerant accessors; wrong types give the default

def AsStr(value: Any, default: str = '') -> str:
    return value if isinstance(value, str) else default


def AsBool(value: Any, default: bool = False) -> bool:
    return value if isinstance(value, bool) else default


def AsInt(value: Any, default: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return int(value)


def AsDict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def AsList(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def ParseMinDiskFree(value: Any) -> int:
    '''minDiskFreePct is a number in old configs and {value, unit} in newer ones'''
    if isinstance(value, dict):
        if value.get('unit', '%') != '%':
            return -1
        value = value.get('value')
    return AsInt(value, -1)


def ReconcileDirs(existing: SyncthingEntityList, folders: Any) -> List[SyncthingDir]:
    '''
    Builds the new folder list from the "folders" array of the config

    Records already known by id are reused so runtime state (status, errors,
    counters) survives; only the configured fields are overwritten.
    '''
    new_dirs: List[SyncthingDir] = []
    seen = set()
    for folder in AsList(folders):
        folder = AsDict(folder)
        dir_id = AsStr(folder.get('id'))
        if not dir_id or dir_id in seen:
            continue
        seen.add(dir_id)
        dir_info, _ = existing.Find(dir_id)
        if dir_info is None:
            dir_info = SyncthingDir(Id=dir_id)
        dir_info.Label = AsStr(folder.get('label'))
        dir_info.Path = AsStr(folder.get('path'))
        dir_info.Devices = set()
        for dev in AsList(folder.get('devices')):
            dev_id = AsStr(AsDict(dev).get('deviceID'))
            if dev_id:
                dir_info.Devices.add(dev_id)
        dir_info.ReadOnly = AsBool(folder.get('readOnly'))
        dir_info.RescanInterval = AsInt(folder.get('rescanIntervalS'), -1)
        dir_info.IgnorePermissions = AsBool(folder.get('ignorePerms'))
        dir_info.AutoNormalize = AsBool(folder.get('autoNormalize'))
        dir_info.MinDiskFreePercentage = ParseMinDiskFree(folder.get('minDiskFreePct'))
        new_dirs.append(dir_info)
    return new_dirs


def ReconcileDevs(existing: SyncthingEntityList, devices: Any, my_id: str) -> List[SyncthingDev]:
    '''Builds the new device list from the "devices" array of the config'''
    new_devs: List[SyncthingDev] = []
    seen = set()
    for device in AsList(devices):
        device = AsDict(device)
        dev_id = AsStr(device.get('deviceID'))
        if not dev_id or dev_id in seen:
            continue
        seen.add(dev_id)
        dev_info, _ = existing.Find(dev_id)
        if dev_info is None:
            dev_info = SyncthingDev(Id=dev_id)
        dev_info.Name = AsStr(device.get('name'))
        dev_info.Addresses = [AsStr(a) for a in AsList(device.get('addresses'))]
        dev_info.Compression = AsStr(device.get('compression'))
        dev_info.CertName = AsStr(device.get('certName'))
        dev_info.Introducer = AsBool(device.get('introducer'))
        if my_id and dev_id == my_id:
            dev_info.Status = SyncthingDevStatus.OWN_DEVICE
        elif dev_info.Status == SyncthingDevStatus.OWN_DEVICE:
            dev_info.Status = SyncthingDevStatus.UNKNOWN
        new_devs.append(dev_info)
    return new_devs


def ParseLogEntries(obj: Dict[str, Any]) -> List[SyncthingLogEntry]:
    '''Reads the "messages" array returned by system/log'''
    entries = []
    for message in AsList(obj.get('messages')):
        message = AsDict(message)
        entries.append(SyncthingLogEntry(When=AsStr(message.get('when')), Message=AsStr(message.get('message'))))
    return entries
