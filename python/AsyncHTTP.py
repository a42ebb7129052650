'''
AsyncHTTP - Asynchronous HTTP requests with callback support

Uses aiohttp for HTTP operations. Every request runs as its own asyncio task,
so several requests (e.g. a long-polling request and regular REST calls) can
be in flight at the same time.

Threading Model:
- Uses asyncio for asynchronous operations
- Callbacks can be both sync and async functions
- All callbacks are executed in the event loop thread
- The request callback is ALWAYS called exactly once, even when the request
  was aborted before it started
'''

import asyncio
import logging
import ssl
from enum import Enum
from io import BytesIO
from typing import Any, Callable, Dict, Optional, Tuple

import aiohttp

log = logging.getLogger('AsyncHTTP')


# Operation status for a request lifecycle
class OperationState(Enum):
    '''Operation lifecycle states'''
    CREATED = 'osCreated'          # Operation just created (empty object)
    PROCESSING = 'osProcessing'    # Operation task is running
    DONE = 'osDone'                # Operation finished, callback has been invoked


# HTTP Error codes (used in HttpRequest.Status when no HTTP status is available)
HTTPErrorCode_ClientClosed = 16499
HTTPErrorCode_UnknownException = 16001
HTTPErrorCode_HTTPClientException = 16002
HTTPErrorCode_SocketConnectFailed = 16007
HTTPErrorCode_SocketIOTimeout = 16009


class HttpRequest:
    '''
    Request object passed to user callback
    '''

    def __init__(self):
        # HTTP response status code or HTTPErrorCode_* on transport errors
        self.Status: int = 0

        # Response stream containing server data (position reset to 0 before callback)
        self.Response: BytesIO = BytesIO()

        # True if connection and request succeeded, false otherwise
        self.Succeeded: bool = False

        # Human readable description of the failure (empty on success)
        self.ErrorString: str = ''

        # Request URL and query parameters for reference
        self.Url: str = ''
        self.Params: Dict[str, str] = {}

        # HTTP method (GET/POST/...) for reference
        self.HTTPMethod: str = ''

        # Operation state for this request lifecycle
        self.State: OperationState = OperationState.CREATED

        # Request headers
        self.Headers: Dict[str, str] = {}

        # Optional request body for POST/other methods
        self.Data: str = ''

        # Optional I/O timeout override in milliseconds (0 means no timeout)
        self.IOTimeout: int = 0

        # User callback to be invoked
        self.Callback: Optional[Callable] = None

        # Optional operation name for external tracking
        self.OperationName: str = ''

        # User-provided data (not owned by this class)
        self.UserObject: Any = None

    @property
    def IsCanceled(self) -> bool:
        '''True if the request was aborted by this client'''
        return self.Status == HTTPErrorCode_ClientClosed

    @property
    def IsTimeout(self) -> bool:
        '''True if no data arrived within the I/O timeout'''
        return self.Status == HTTPErrorCode_SocketIOTimeout

    def ReadAll(self) -> bytes:
        '''Returns the complete response body'''
        self.Response.seek(0)
        return self.Response.read()


class AsyncHTTP:
    '''
    Asynchronous HTTP client

    CALLBACK BEHAVIOR:
    - Request callback is ALWAYS called, even on errors
    - On error: Request.Status contains HTTP status or HTTPErrorCode_* and Request.Succeeded = False
    - On abort: Request.Status = HTTPErrorCode_ClientClosed
    '''

    def __init__(self):
        # TLS and authentication
        self._ssl_context: Optional[ssl.SSLContext] = None
        self._basic_auth: Optional[aiohttp.BasicAuth] = None

        # Requests in flight, mapped to their tasks
        self._active: Dict[HttpRequest, asyncio.Task] = {}

        # Shared session (keep-alive)
        self._session: Optional[aiohttp.ClientSession] = None

        self._terminated: bool = False

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def _process_request(self, request: HttpRequest):
        '''Perform a single HTTP request; cancellation is handled by _on_task_done'''
        request.State = OperationState.PROCESSING
        request.Response.seek(0)
        request.Response.truncate(0)

        # only reading is limited; an unreachable daemon fails with a connect error
        timeout = aiohttp.ClientTimeout(
            total=None,
            sock_read=request.IOTimeout / 1000.0 if request.IOTimeout > 0 else None
        )

        kwargs = {
            'headers': request.Headers,
            'params': request.Params,
            'timeout': timeout,
            'allow_redirects': True
        }
        if request.Data:
            kwargs['data'] = request.Data
        if self._ssl_context is not None:
            kwargs['ssl'] = self._ssl_context
        if self._basic_auth is not None:
            kwargs['auth'] = self._basic_auth

        try:
            session = await self._get_session()
            async with session.request(request.HTTPMethod, request.Url, **kwargs) as response:
                body = await response.read()
                request.Status = response.status
                request.Response.write(body)
                request.Response.seek(0)
                request.Succeeded = 200 <= request.Status < 400
                if not request.Succeeded:
                    request.ErrorString = f'HTTP {response.status} {response.reason or ""}'.strip()

        except asyncio.TimeoutError:
            request.Status = HTTPErrorCode_SocketIOTimeout
            request.ErrorString = 'Operation timed out'
            request.Succeeded = False

        except aiohttp.ClientConnectorError as e:
            request.Status = HTTPErrorCode_SocketConnectFailed
            request.ErrorString = str(e)
            request.Succeeded = False

        except aiohttp.ClientError as e:
            request.Status = HTTPErrorCode_HTTPClientException
            request.ErrorString = str(e) or type(e).__name__
            request.Succeeded = False

        except (OSError, ValueError) as e:
            request.Status = HTTPErrorCode_UnknownException
            request.ErrorString = str(e)
            request.Succeeded = False
            log.warning('Unexpected error for %s %s: %s', request.HTTPMethod, request.Url, e)

    def _on_task_done(self, request: HttpRequest, task: asyncio.Task):
        '''Finalizes a request and fires its callback'''
        self._active.pop(request, None)

        if task.cancelled():
            request.Status = HTTPErrorCode_ClientClosed
            request.ErrorString = 'Operation canceled'
            request.Succeeded = False
        elif task.exception() is not None:
            request.Status = HTTPErrorCode_UnknownException
            request.ErrorString = str(task.exception())
            request.Succeeded = False
            log.error('AsyncHTTP unexpected error', exc_info=task.exception())

        request.State = OperationState.DONE
        if request.Callback:
            self._invoke_callback(request.Callback, request)

    def _invoke_callback(self, callback: Callable, *args):
        '''Invoke callback, handling both sync and async functions'''
        try:
            if asyncio.iscoroutinefunction(callback):
                asyncio.ensure_future(callback(*args))
            else:
                callback(*args)
        except Exception:
            log.exception('Error in callback')

    def _start_request(self, request: HttpRequest) -> HttpRequest:
        if self._terminated:
            raise RuntimeError('AsyncHTTP instance has been destroyed')
        task = asyncio.ensure_future(self._process_request(request))
        self._active[request] = task
        task.add_done_callback(lambda t, r=request: self._on_task_done(r, t))
        return request

    # Public API methods

    def HttpMethod(self, method: str, url: str, callback: Optional[Callable] = None,
                   headers: Optional[Dict[str, str]] = None, params: Optional[Dict[str, str]] = None,
                   data: str = '', operation_name: str = '', user_object: Any = None,
                   io_timeout: int = 0) -> HttpRequest:
        '''
        Start a request with custom HTTP method

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, etc)
            url: Request URL
            callback: Callback function to invoke when done
            headers: Request headers
            params: Query parameters
            data: Request body
            operation_name: Optional name for tracking
            user_object: User-provided object
            io_timeout: I/O timeout override in milliseconds

        Returns:
            The request object; it is passed to the callback when done
        '''
        request = HttpRequest()
        request.HTTPMethod = method.upper().strip() or 'GET'
        request.Url = url
        request.Params = dict(params or {})
        request.Headers = dict(headers or {})
        request.Data = data
        request.Callback = callback
        request.OperationName = operation_name
        request.UserObject = user_object
        request.IOTimeout = io_timeout
        return self._start_request(request)

    def Get(self, url: str, callback: Optional[Callable] = None, **kwargs) -> HttpRequest:
        '''Start a GET request (see HttpMethod for arguments)'''
        return self.HttpMethod('GET', url, callback, **kwargs)

    def Post(self, url: str, data: str = '', callback: Optional[Callable] = None, **kwargs) -> HttpRequest:
        '''Start a POST request (see HttpMethod for arguments)'''
        return self.HttpMethod('POST', url, callback, data=data, **kwargs)

    def Abort(self, request: HttpRequest):
        '''
        Abort a single in-flight request
        The callback is called with Request.Status = HTTPErrorCode_ClientClosed
        '''
        task = self._active.get(request)
        if task is not None and not task.done():
            task.cancel()

    def AbortAll(self):
        '''
        Abort all in-flight requests
        Callbacks are called later from the event loop with Request.Status = HTTPErrorCode_ClientClosed
        '''
        for task in list(self._active.values()):
            if not task.done():
                task.cancel()

    # Properties

    @property
    def SslContext(self) -> Optional[ssl.SSLContext]:
        '''TLS context used for https URLs (None means default verification)'''
        return self._ssl_context

    @SslContext.setter
    def SslContext(self, value: Optional[ssl.SSLContext]):
        self._ssl_context = value

    @property
    def Credentials(self) -> Optional[Tuple[str, str]]:
        '''Basic auth user name and password, or None'''
        if self._basic_auth is None:
            return None
        return (self._basic_auth.login, self._basic_auth.password)

    @Credentials.setter
    def Credentials(self, value: Optional[Tuple[str, str]]):
        if value and (value[0] or value[1]):
            self._basic_auth = aiohttp.BasicAuth(value[0], value[1])
        else:
            self._basic_auth = None

    async def Destroy(self):
        '''
        Async cleanup method
        Call this explicitly before program exit for clean shutdown
        '''
        self._terminated = True
        tasks = [t for t in self._active.values() if not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self._session:
            await self._session.close()
            self._session = None
