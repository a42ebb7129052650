'''
syncthing_config - Reading the config.xml of a local Syncthing instance

Used to find the GUI address, API key and the GUI certificate of the
Syncthing instance running on this machine.
'''

import logging
import os
import sys
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import List, Optional

from syncthing_settings import SyncthingConnectionSettings

log = logging.getLogger('SyncthingConfig')

CONFIG_FILE_NAME = 'config.xml'
HTTPS_CERT_FILE_NAME = 'https-cert.pem'


def GetXmlNode(node: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    '''Returns the child node with the given name or None'''
    if node is not None:
        return node.find(name)
    return None


def GetXmlText(node: Optional[ET.Element], name: str) -> str:
    child = GetXmlNode(node, name)
    if child is None or not child.text:
        return ''
    return child.text.strip()


def CandidateConfigDirs() -> List[str]:
    '''Directories Syncthing might use for its config, most likely first'''
    dirs = []
    home_dir = os.environ.get('STHOMEDIR')
    if home_dir:
        dirs.append(home_dir)
    home = os.path.expanduser('~')
    if sys.platform == 'win32':
        local_app_data = os.environ.get('LOCALAPPDATA') or os.path.join(home, 'AppData', 'Local')
        dirs.append(os.path.join(local_app_data, 'Syncthing'))
    elif sys.platform == 'darwin':
        dirs.append(os.path.join(home, 'Library', 'Application Support', 'Syncthing'))
    else:
        state_home = os.environ.get('XDG_STATE_HOME') or os.path.join(home, '.local', 'state')
        config_home = os.environ.get('XDG_CONFIG_HOME') or os.path.join(home, '.config')
        dirs.append(os.path.join(state_home, 'syncthing'))
        dirs.append(os.path.join(config_home, 'syncthing'))
    return dirs


def LocateConfigDir() -> str:
    '''Returns the first candidate directory containing config.xml or an empty string'''
    for path in CandidateConfigDirs():
        if os.path.isfile(os.path.join(path, CONFIG_FILE_NAME)):
            return path
    return ''


def LocateHttpsCertificate(config_dir: str = '') -> str:
    '''Returns the path of the certificate used by the GUI or an empty string'''
    config_dir = config_dir or LocateConfigDir()
    if not config_dir:
        return ''
    path = os.path.join(config_dir, HTTPS_CERT_FILE_NAME)
    return path if os.path.isfile(path) else ''


@dataclass
class SyncthingConfig:
    '''GUI related settings from config.xml'''
    GuiEnabled: bool = False
    GuiTls: bool = False
    GuiAddress: str = ''
    GuiUser: str = ''
    GuiPasswordHash: str = ''
    GuiApiKey: str = ''

    @classmethod
    def Restore(cls, path: str) -> Optional['SyncthingConfig']:
        '''
        Reads config.xml

        Returns:
            The config or None if the file does not exist or can not be parsed
        '''
        if not path or not os.path.isfile(path):
            return None
        try:
            root = ET.parse(path).getroot()
        except (ET.ParseError, OSError) as e:
            log.warning('Error parsing %s: %s', path, e)
            return None

        config = cls()
        gui = root.find('.//gui')
        if gui is not None:
            config.GuiEnabled = gui.get('enabled', 'false').lower() == 'true'
            config.GuiTls = gui.get('tls', 'false').lower() == 'true'
            config.GuiAddress = GetXmlText(gui, 'address')
            config.GuiUser = GetXmlText(gui, 'user')
            config.GuiPasswordHash = GetXmlText(gui, 'password')
            config.GuiApiKey = GetXmlText(gui, 'apikey')
        return config

    def SyncthingUrl(self) -> str:
        '''URL of the GUI; wildcard listen addresses are mapped to the loopback address'''
        if not self.GuiAddress:
            return ''
        address = self.GuiAddress
        if address.startswith('0.0.0.0'):
            address = '127.0.0.1' + address[len('0.0.0.0'):]
        elif address.startswith('[::]'):
            address = '[::1]' + address[len('[::]'):]
        elif address.startswith(':'):
            address = '127.0.0.1' + address
        return ('https://' if self.GuiTls else 'http://') + address


def SettingsFromLocalConfig(config_dir: str = '') -> Optional[SyncthingConnectionSettings]:
    '''Settings for connecting to the local instance or None if no usable config.xml was found'''
    config_dir = config_dir or LocateConfigDir()
    if not config_dir:
        return None
    config = SyncthingConfig.Restore(os.path.join(config_dir, CONFIG_FILE_NAME))
    if config is None or not config.GuiAddress:
        return None
    settings = SyncthingConnectionSettings(SyncthingUrl=config.SyncthingUrl(), ApiKey=config.GuiApiKey)
    if config.GuiTls:
        cert_path = LocateHttpsCertificate(config_dir)
        if cert_path:
            settings.ExpectedSslCertificates = [cert_path]
    log.debug('Settings loaded from %s', config_dir)
    return settings
