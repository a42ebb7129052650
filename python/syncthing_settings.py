'''
syncthing_settings - Connection settings and certificate trust

SyncthingConnectionSettings is accepted by SyncthingConnection.ApplySettings()
at any time; the values are used on the next (re)connect.
'''

import ipaddress
import logging
import os
import re
import socket
import ssl
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlparse

log = logging.getLogger('SyncthingSettings')

DEFAULT_TRAFFIC_POLL_INTERVAL = 2000       # ms
DEFAULT_DEV_STATS_POLL_INTERVAL = 60000    # ms

_PEM_CERT_RE = re.compile(r'-----BEGIN CERTIFICATE-----.+?-----END CERTIFICATE-----', re.DOTALL)


@dataclass
class SyncthingConnectionSettings:
    '''Settings for connecting to a Syncthing instance'''
    SyncthingUrl: str = ''
    ApiKey: str = ''
    AuthEnabled: bool = False
    UserName: str = ''
    Password: str = ''
    ExpectedSslCertificates: List[str] = field(default_factory=list)   # paths of trusted PEM files
    TrafficPollInterval: int = DEFAULT_TRAFFIC_POLL_INTERVAL
    DevStatsPollInterval: int = DEFAULT_DEV_STATS_POLL_INTERVAL
    ReconnectInterval: int = 0                                           # ms, 0 disables auto-reconnect


def IsLocalUrl(url: str) -> bool:
    '''Whether the URL points to the local machine'''
    host = urlparse(url).hostname
    if not host:
        return False
    host = host.lower()
    if host == 'localhost' or host.endswith('.localhost'):
        return True
    try:
        return ipaddress.ip_address(host).is_loopback or host in _local_addresses()
    except ValueError:
        pass
    try:
        return host in (socket.gethostname().lower(), socket.getfqdn().lower())
    except OSError:
        return False


def _local_addresses() -> List[str]:
    try:
        return socket.gethostbyname_ex(socket.gethostname())[2]
    except OSError:
        return []


def ReadPemCertificates(path: str) -> List[str]:
    '''Returns the PEM encoded certificates contained in the file, empty when unreadable'''
    if not path or not os.path.isfile(path):
        return []
    try:
        with open(path, 'r', encoding='ascii', errors='replace') as f:
            return _PEM_CERT_RE.findall(f.read())
    except OSError as e:
        log.warning('Unable to read certificate %s: %s', path, e)
        return []


def BuildSslContext(cert_paths: List[str]) -> Optional[ssl.SSLContext]:
    '''
    Creates a context trusting the given (usually self-signed) certificates

    The host name is not checked since the certificate Syncthing generates
    for its GUI is issued for "syncthing" rather than the actual host.

    Returns:
        The context or None if no certificate could be loaded
    '''
    pem_certs = []
    for path in cert_paths:
        pem_certs.extend(ReadPemCertificates(path))
    if not pem_certs:
        return None
    context = ssl.create_default_context()
    context.check_hostname = False
    context.load_verify_locations(cadata='\n'.join(pem_certs))
    return context
