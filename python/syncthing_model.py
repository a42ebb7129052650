'''
syncthing_model - Entities mirrored from a Syncthing instance

Plain records for folders ("directories") and devices plus the small amount of
derivation logic that belongs to them (status assignment, display names,
download progress aggregation). The records carry no networking code; they are
owned and mutated by SyncthingConnection only.

References handed out to other code are advisory: the lists are replaced as a
whole whenever a new configuration arrives. Use EntityHandle + Resolve() to get
a checked lookup instead of keeping records around.
'''

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, Iterator, List, NamedTuple, Optional, Set, Tuple, TypeVar


# Size of a block as used by Syncthing's block exchange protocol
SYNCTHING_BLOCK_SIZE = 128 * 1024


class SyncthingStatus(Enum):
    '''Overall connection status'''
    DISCONNECTED = 'disconnected'
    RECONNECTING = 'reconnecting'
    IDLE = 'idle'
    SCANNING = 'scanning'
    SYNCHRONIZING = 'synchronizing'
    PAUSED = 'paused'
    BEING_DESTROYED = 'beingDestroyed'


class SyncthingDirStatus(Enum):
    '''Folder status'''
    UNKNOWN = 'unknown'
    IDLE = 'idle'
    UNSHARED = 'unshared'
    SCANNING = 'scanning'
    SYNCHRONIZING = 'synchronizing'
    PAUSED = 'paused'
    OUT_OF_SYNC = 'outOfSync'


class SyncthingDevStatus(Enum):
    '''Device status'''
    UNKNOWN = 'unknown'
    OWN_DEVICE = 'ownDevice'
    IDLE = 'idle'
    DISCONNECTED = 'disconnected'
    SYNCHRONIZING = 'synchronizing'
    OUT_OF_SYNC = 'outOfSync'
    REJECTED = 'rejected'


class SyncthingErrorCategory(Enum):
    '''Category of errors passed to the Error signal'''
    OVERALL_CONNECTION = 'overallConnection'   # config/status/events/polling could not be done
    SPECIFIC_REQUEST = 'specificRequest'       # one-off command (pause, rescan, log, ...) failed
    PARSING = 'parsing'                        # response could not be parsed


class SyncthingNotificationCategory(Enum):
    '''Category of human readable notifications'''
    SYSTEM_ERROR = 'systemError'
    FOLDER_ERROR = 'folderError'
    ITEM_ERROR = 'itemError'


# Mapping of the folder states reported by Syncthing
_DIR_STATUS_BY_STRING = {
    'idle': SyncthingDirStatus.IDLE,
    'scanning': SyncthingDirStatus.SCANNING,
    'scan-waiting': SyncthingDirStatus.SCANNING,
    'syncing': SyncthingDirStatus.SYNCHRONIZING,
    'sync-preparing': SyncthingDirStatus.SYNCHRONIZING,
    'sync-waiting': SyncthingDirStatus.SYNCHRONIZING,
    'error': SyncthingDirStatus.OUT_OF_SYNC,
    'unshared': SyncthingDirStatus.UNSHARED,
}

_DIR_STATUS_STRINGS = {
    SyncthingDirStatus.UNKNOWN: 'unknown',
    SyncthingDirStatus.IDLE: 'idle',
    SyncthingDirStatus.UNSHARED: 'unshared',
    SyncthingDirStatus.SCANNING: 'scanning',
    SyncthingDirStatus.SYNCHRONIZING: 'synchronizing',
    SyncthingDirStatus.PAUSED: 'paused',
    SyncthingDirStatus.OUT_OF_SYNC: 'out of sync',
}

_DEV_STATUS_STRINGS = {
    SyncthingDevStatus.UNKNOWN: 'unknown',
    SyncthingDevStatus.OWN_DEVICE: 'own device',
    SyncthingDevStatus.IDLE: 'idle',
    SyncthingDevStatus.DISCONNECTED: 'disconnected',
    SyncthingDevStatus.SYNCHRONIZING: 'synchronizing',
    SyncthingDevStatus.OUT_OF_SYNC: 'out of sync',
    SyncthingDevStatus.REJECTED: 'rejected',
}


def DirStatusFromString(value: str) -> SyncthingDirStatus:
    '''Maps a folder state string as reported by Syncthing, unknown strings give UNKNOWN'''
    return _DIR_STATUS_BY_STRING.get(value, SyncthingDirStatus.UNKNOWN)


def DataSizeToString(size: int) -> str:
    '''Returns a human readable data size'''
    if size >= 1024 ** 4:
        return f'{size / 1024 ** 4:.2f} TiB'
    elif size >= 1024 ** 3:
        return f'{size / 1024 ** 3:.2f} GiB'
    elif size >= 1024 ** 2:
        return f'{size / 1024 ** 2:.2f} MiB'
    elif size >= 1024:
        return f'{size / 1024:.2f} KiB'
    else:
        return f'{max(size, 0)} bytes'


def ProgressLabel(done_bytes: int, total_bytes: int, percentage: int) -> str:
    return f'{DataSizeToString(max(done_bytes, 0))} / {DataSizeToString(max(total_bytes, 0))} - {percentage} %'


def ComputePercentage(done: int, total: int) -> int:
    '''Integer percentage within [0, 100]; 0 when nothing is to be done'''
    if done <= 0 or total <= 0:
        return 0
    return min(100, done * 100 // total)


@dataclass
class SyncthingDirError:
    '''Error reported for an item of a folder'''
    Message: str = ''
    Path: str = ''


@dataclass
class SyncthingLogEntry:
    '''Entry of the Syncthing log'''
    When: str = ''
    Message: str = ''


def _progress_value(values: Dict[str, Any], key: str) -> int:
    # newer versions use lower camel case, older ones capitalised keys
    value = values.get(key)
    if value is None:
        value = values.get(key[0].upper() + key[1:])
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


@dataclass
class SyncthingItemDownloadProgress:
    '''Download progress of a single item within a folder'''
    RelativePath: str = ''
    FilePath: str = ''
    BlocksCurrentlyDownloading: int = 0
    BlocksAlreadyDownloaded: int = 0
    TotalNumberOfBlocks: int = 0
    DownloadPercentage: int = 0
    BlocksCopiedFromOrigin: int = 0
    BlocksCopiedFromElsewhere: int = 0
    BlocksReused: int = 0
    BytesAlreadyHandled: int = 0
    TotalNumberOfBytes: int = 0
    Label: str = ''

    @classmethod
    def FromJson(cls, dir_path: str, relative_path: str, values: Dict[str, Any]) -> 'SyncthingItemDownloadProgress':
        '''Creates the progress record from one entry of a DownloadProgress event'''
        if not isinstance(values, dict):
            values = {}
        item = cls(RelativePath=relative_path)
        item.FilePath = dir_path.rstrip('/\\') + '/' + relative_path.replace('\\', '/') if dir_path else relative_path.replace('\\', '/')
        item.BlocksCurrentlyDownloading = _progress_value(values, 'pulling')
        item.BlocksCopiedFromOrigin = _progress_value(values, 'copiedFromOrigin')
        item.BlocksCopiedFromElsewhere = _progress_value(values, 'copiedFromElsewhere')
        item.BlocksReused = _progress_value(values, 'reused')
        item.BlocksAlreadyDownloaded = (_progress_value(values, 'pulled') + item.BlocksCopiedFromOrigin
                                        + item.BlocksCopiedFromElsewhere + item.BlocksReused)
        item.TotalNumberOfBlocks = _progress_value(values, 'total')
        item.BytesAlreadyHandled = _progress_value(values, 'bytesDone')
        item.TotalNumberOfBytes = _progress_value(values, 'bytesTotal')
        item.DownloadPercentage = ComputePercentage(item.BlocksAlreadyDownloaded, item.TotalNumberOfBlocks)
        item.Label = ProgressLabel(item.BytesAlreadyHandled, item.TotalNumberOfBytes, item.DownloadPercentage)
        return item


@dataclass
class SyncthingDir:
    '''A folder shared by Syncthing'''
    Id: str
    Label: str = ''
    Path: str = ''
    Devices: Set[str] = field(default_factory=set)
    ReadOnly: bool = False
    RescanInterval: int = -1
    IgnorePermissions: bool = False
    AutoNormalize: bool = False
    MinDiskFreePercentage: int = -1
    Status: SyncthingDirStatus = SyncthingDirStatus.UNKNOWN
    LastStatusUpdate: Optional[datetime] = None
    Errors: List[SyncthingDirError] = field(default_factory=list)
    PreviousErrors: List[SyncthingDirError] = field(default_factory=list)

    # counters as reported by FolderSummary
    GlobalBytes: int = 0
    GlobalDeleted: int = 0
    GlobalFiles: int = 0
    LocalBytes: int = 0
    LocalDeleted: int = 0
    LocalFiles: int = 0
    NeededBytes: int = 0
    NeededFiles: int = 0

    # download progress
    DownloadingItems: List[SyncthingItemDownloadProgress] = field(default_factory=list)
    BlocksAlreadyDownloaded: int = 0
    BlocksToBeDownloaded: int = 0
    DownloadPercentage: int = 0
    DownloadLabel: str = ''

    LastScanTime: Optional[datetime] = None
    LastFileTime: Optional[datetime] = None
    LastFileName: str = ''
    LastFileDeleted: bool = False
    ProgressPercentage: int = 0
    ProgressRate: int = 0

    @property
    def DisplayName(self) -> str:
        return self.Label or self.Id

    @property
    def StatusString(self) -> str:
        return _DIR_STATUS_STRINGS.get(self.Status, 'unknown')

    def AssignStatus(self, new_status, when: Optional[datetime] = None) -> bool:
        '''
        Assigns the status from a state string or SyncthingDirStatus

        Transitions older than the last one are ignored. Entering SYNCHRONIZING
        makes current errors obsolete; entering IDLE with outstanding errors
        gives OUT_OF_SYNC instead.

        Returns:
            Whether the status has been changed
        '''
        if isinstance(new_status, str):
            new_status = DirStatusFromString(new_status)
        if when is not None:
            if self.LastStatusUpdate is not None and when < self.LastStatusUpdate:
                return False
            self.LastStatusUpdate = when

        if new_status == SyncthingDirStatus.SYNCHRONIZING:
            self.PreviousErrors = self.Errors
            self.Errors = []
            self.ProgressPercentage = 0
            self.ProgressRate = 0
        elif new_status == SyncthingDirStatus.IDLE:
            if self.Errors:
                new_status = SyncthingDirStatus.OUT_OF_SYNC
            self.ProgressPercentage = 0
            self.ProgressRate = 0

        if self.Status != new_status:
            self.Status = new_status
            return True
        return False

    def UpdateDownloadProgress(self, items: Dict[str, Any]):
        '''Replaces the in-flight items with the entries from a DownloadProgress event'''
        self.DownloadingItems = []
        self.BlocksAlreadyDownloaded = self.BlocksToBeDownloaded = 0
        if isinstance(items, dict):
            for relative_path, values in items.items():
                item = SyncthingItemDownloadProgress.FromJson(self.Path, relative_path, values)
                self.DownloadingItems.append(item)
                self.BlocksAlreadyDownloaded += item.BlocksAlreadyDownloaded
                self.BlocksToBeDownloaded += item.TotalNumberOfBlocks
        self.DownloadPercentage = ComputePercentage(self.BlocksAlreadyDownloaded, self.BlocksToBeDownloaded)
        self.DownloadLabel = ProgressLabel(self.BlocksAlreadyDownloaded * SYNCTHING_BLOCK_SIZE,
                                           self.BlocksToBeDownloaded * SYNCTHING_BLOCK_SIZE,
                                           self.DownloadPercentage)


@dataclass
class SyncthingDev:
    '''A device known to Syncthing'''
    Id: str
    Name: str = ''
    Addresses: List[str] = field(default_factory=list)
    Compression: str = ''
    CertName: str = ''
    Introducer: bool = False
    Status: SyncthingDevStatus = SyncthingDevStatus.UNKNOWN
    Paused: bool = False
    TotalIncomingTraffic: int = 0
    TotalOutgoingTraffic: int = 0
    ConnectionAddress: str = ''
    ConnectionType: str = ''
    ClientVersion: str = ''
    LastSeen: Optional[datetime] = None

    @property
    def DisplayName(self) -> str:
        return self.Name or self.Id

    @property
    def StatusString(self) -> str:
        if self.Paused and self.Status != SyncthingDevStatus.OWN_DEVICE:
            return 'paused'
        return _DEV_STATUS_STRINGS.get(self.Status, 'unknown')


class EntityHandle(NamedTuple):
    '''Checked reference to an entry of a SyncthingEntityList'''
    Generation: int
    Row: int
    Id: str


T = TypeVar('T')


class SyncthingEntityList(Generic[T]):
    '''
    List of folders or devices with unique ids

    The generation counter is bumped whenever the list is replaced or cleared,
    which invalidates all handles created before. Appending keeps handles valid.
    '''

    def __init__(self):
        self._items: List[T] = []
        self._generation: int = 0

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, row: int) -> T:
        return self._items[row]

    @property
    def Generation(self) -> int:
        return self._generation

    def Find(self, entity_id: str) -> Tuple[Optional[T], int]:
        '''Returns (record, row) or (None, -1)'''
        for row, item in enumerate(self._items):
            if item.Id == entity_id:
                return item, row
        return None, -1

    def Append(self, item: T) -> int:
        '''Appends a record whose id is not present yet; returns its row'''
        existing, row = self.Find(item.Id)
        if existing is not None:
            raise ValueError(f'duplicate id {item.Id!r}')
        self._items.append(item)
        return len(self._items) - 1

    def Replace(self, items: List[T]):
        ids = [item.Id for item in items]
        if len(ids) != len(set(ids)):
            raise ValueError('duplicate ids in replacement list')
        self._items = list(items)
        self._generation += 1

    def Clear(self):
        self._items = []
        self._generation += 1

    def Handle(self, row: int) -> EntityHandle:
        return EntityHandle(self._generation, row, self._items[row].Id)

    def Resolve(self, handle: EntityHandle) -> Optional[T]:
        '''Returns the record the handle refers to or None if the handle is stale'''
        if handle.Generation != self._generation or not 0 <= handle.Row < len(self._items):
            return None
        item = self._items[handle.Row]
        return item if item.Id == handle.Id else None

    def AsList(self) -> List[T]:
        return list(self._items)
