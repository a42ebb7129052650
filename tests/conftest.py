"""
pytest fixtures: a scripted transport replacing AsyncHTTP and a connection using it
"""

import asyncio
import copy
import json
import platform
import time
from functools import partial
from typing import Any, Dict, List, Optional

import pytest

from AsyncHTTP import (
    HTTPErrorCode_ClientClosed,
    HTTPErrorCode_SocketIOTimeout,
    HttpRequest,
    OperationState,
)
from syncthing_connection import SyncthingConnection

SYNCTHING_URL = "http://127.0.0.1:8384"
API_KEY = "test-api-key"

CONFIG = {
    "version": 37,
    "folders": [
        {
            "id": "a",
            "label": "Folder A",
            "path": "/data/a",
            "devices": [{"deviceID": "dev1"}, {"deviceID": "dev2"}],
            "rescanIntervalS": 3600,
            "ignorePerms": False,
            "autoNormalize": True,
            "minDiskFreePct": {"value": 5, "unit": "%"},
        },
        {
            "id": "b",
            "label": "",
            "path": "/data/b",
            "devices": [{"deviceID": "dev1"}],
            "readOnly": True,
            "minDiskFreePct": 1,
        },
    ],
    "devices": [
        {"deviceID": "dev1", "name": "this machine", "addresses": ["dynamic"], "compression": "metadata"},
        {
            "deviceID": "dev2",
            "name": "laptop",
            "addresses": ["tcp://192.168.1.2:22000"],
            "compression": "always",
            "introducer": True,
        },
    ],
}


@pytest.fixture(autouse=True)
def set_timezone(monkeypatch):
    monkeypatch.setenv("TZ", "UTC")
    if platform.system() != "Windows":
        time.tzset()
    yield
    monkeypatch.undo()
    if platform.system() != "Windows":
        time.tzset()


class FakeClock:
    """Monotonic clock controlled by the test"""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeTransport:
    """
    Stand-in for AsyncHTTP recording requests instead of sending them.

    Tests complete requests explicitly with Respond/Fail/Timeout. Aborted
    requests are completed from the event loop like AsyncHTTP does.
    """

    def __init__(self):
        self.Requests: List[HttpRequest] = []
        self._pending: List[HttpRequest] = []
        self.SslContext = None
        self.Credentials = None
        self.Destroyed = False

    def HttpMethod(self, method, url, callback=None, headers=None, params=None, data="",
                   operation_name="", user_object=None, io_timeout=0) -> HttpRequest:
        request = HttpRequest()
        request.HTTPMethod = method
        request.Url = url
        request.Callback = callback
        request.Headers = dict(headers or {})
        request.Params = dict(params or {})
        request.Data = data
        request.OperationName = operation_name
        request.UserObject = user_object
        request.IOTimeout = io_timeout
        request.State = OperationState.PROCESSING
        self.Requests.append(request)
        self._pending.append(request)
        return request

    def Get(self, url, callback=None, **kwargs) -> HttpRequest:
        return self.HttpMethod("GET", url, callback, **kwargs)

    def Post(self, url, data="", callback=None, **kwargs) -> HttpRequest:
        return self.HttpMethod("POST", url, callback, data=data, **kwargs)

    def Abort(self, request: HttpRequest):
        if request not in self._pending:
            return
        self._pending.remove(request)
        request.Status = HTTPErrorCode_ClientClosed
        request.ErrorString = "Operation canceled"
        request.Succeeded = False
        asyncio.get_running_loop().call_soon(self._deliver, request)

    def AbortAll(self):
        for request in list(self._pending):
            self.Abort(request)

    async def Destroy(self):
        self.AbortAll()
        self.Destroyed = True
        await asyncio.sleep(0)

    # helpers for tests

    def Pending(self, operation_name: Optional[str] = None) -> List[HttpRequest]:
        return [r for r in self._pending if operation_name is None or r.OperationName == operation_name]

    def PendingNames(self) -> List[str]:
        return [r.OperationName for r in self._pending]

    def Find(self, operation_name: str) -> HttpRequest:
        pending = self.Pending(operation_name)
        assert pending, f"no pending request for {operation_name}, pending: {self.PendingNames()}"
        return pending[-1]

    def Respond(self, operation_name: str, payload: Any, status: int = 200) -> HttpRequest:
        request = self.Find(operation_name)
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
        request.Status = status
        request.Succeeded = 200 <= status < 400
        request.Response.write(body)
        request.Response.seek(0)
        self._complete(request)
        return request

    def Fail(self, operation_name: str, status: int = 500, error: str = "Internal Server Error") -> HttpRequest:
        request = self.Find(operation_name)
        request.Status = status
        request.ErrorString = error
        request.Succeeded = False
        self._complete(request)
        return request

    def Timeout(self, operation_name: str) -> HttpRequest:
        request = self.Find(operation_name)
        request.Status = HTTPErrorCode_SocketIOTimeout
        request.ErrorString = "Operation timed out"
        request.Succeeded = False
        self._complete(request)
        return request

    def _complete(self, request: HttpRequest):
        self._pending.remove(request)
        self._deliver(request)

    def _deliver(self, request: HttpRequest):
        request.State = OperationState.DONE
        if request.Callback:
            request.Callback(request)


class SignalRecorder:
    """Records the arguments of every signal emitted by a connection"""

    def __init__(self, signals):
        self.Calls: Dict[str, List[tuple]] = {}
        for signal in signals.All():
            self.Calls[signal.Name] = []
            signal.Connect(partial(self._record, signal.Name))

    def _record(self, name, *args):
        self.Calls[name].append(args)

    def Count(self, name: str) -> int:
        return len(self.Calls[name])

    def Last(self, name: str) -> tuple:
        return self.Calls[name][-1]

    def Clear(self):
        for calls in self.Calls.values():
            calls.clear()


async def settle():
    """Lets callbacks scheduled on the loop (e.g. of aborted requests) run"""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def config_payload():
    return copy.deepcopy(CONFIG)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
async def connection(transport, clock):
    conn = SyncthingConnection(SYNCTHING_URL, API_KEY, transport=transport, clock=clock)
    yield conn
    await conn.Destroy()


@pytest.fixture
def recorder(connection):
    return SignalRecorder(connection.Signals)


@pytest.fixture
def establish(connection, transport, config_payload):
    """Returns a function connecting and answering config, status and a first event batch"""

    def _establish(config=None, my_id="dev1", events=None):
        connection.Connect()
        transport.Respond("system/config", config if config is not None else config_payload)
        transport.Respond("system/status", {"myID": my_id})
        transport.Respond("events", events or [])

    return _establish
