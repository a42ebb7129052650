"""Tests for connection settings and reading the local config.xml"""

import os

import pytest

from syncthing_config import (
    CONFIG_FILE_NAME,
    HTTPS_CERT_FILE_NAME,
    CandidateConfigDirs,
    LocateConfigDir,
    LocateHttpsCertificate,
    SettingsFromLocalConfig,
    SyncthingConfig,
)
from syncthing_settings import BuildSslContext, IsLocalUrl, ReadPemCertificates, SyncthingConnectionSettings

CONFIG_XML = """<configuration version="37">
    <folder id="a" label="Folder A" path="/data/a"></folder>
    <gui enabled="true" tls="{tls}" debugging="false">
        <address>{address}</address>
        <user>admin</user>
        <password>$2a$10$hash</password>
        <apikey>secret-key</apikey>
        <theme>default</theme>
    </gui>
</configuration>
"""

PEM = """-----BEGIN CERTIFICATE-----
MIIBfake
-----END CERTIFICATE-----
"""


def write_config(config_dir, address="127.0.0.1:8384", tls="false"):
    path = os.path.join(str(config_dir), CONFIG_FILE_NAME)
    with open(path, "w") as f:
        f.write(CONFIG_XML.format(address=address, tls=tls))
    return path


@pytest.mark.parametrize(
    "url, expected",
    [
        ("http://localhost:8384", True),
        ("https://sync.localhost", True),
        ("http://127.0.0.1:8384/", True),
        ("http://[::1]:8384", True),
        ("http://192.0.2.17:8384", False),
        ("", False),
    ],
)
def test_is_local_url(url, expected):
    assert IsLocalUrl(url) == expected


def test_settings_defaults():
    settings = SyncthingConnectionSettings()
    assert settings.TrafficPollInterval == 2000
    assert settings.DevStatsPollInterval == 60000
    assert settings.ReconnectInterval == 0
    assert settings.ExpectedSslCertificates == []


class TestCertificates:
    def test_read_pem_certificates(self, tmp_path):
        path = tmp_path / "cert.pem"
        path.write_text("garbage\n" + PEM + PEM)
        assert len(ReadPemCertificates(str(path))) == 2

    def test_unreadable_certificate(self, tmp_path):
        assert ReadPemCertificates(str(tmp_path / "missing.pem")) == []
        assert ReadPemCertificates("") == []

    def test_no_context_without_certificates(self, tmp_path):
        path = tmp_path / "empty.pem"
        path.write_text("nothing here")
        assert BuildSslContext([str(path)]) is None
        assert BuildSslContext([]) is None


class TestLocalConfig:
    def test_restore(self, tmp_path):
        config = SyncthingConfig.Restore(write_config(tmp_path, tls="true"))
        assert config.GuiEnabled
        assert config.GuiTls
        assert config.GuiAddress == "127.0.0.1:8384"
        assert config.GuiUser == "admin"
        assert config.GuiPasswordHash == "$2a$10$hash"
        assert config.GuiApiKey == "secret-key"
        assert config.SyncthingUrl() == "https://127.0.0.1:8384"

    def test_restore_missing_or_broken(self, tmp_path):
        assert SyncthingConfig.Restore(str(tmp_path / CONFIG_FILE_NAME)) is None
        broken = tmp_path / CONFIG_FILE_NAME
        broken.write_text("<configuration><gui>")
        assert SyncthingConfig.Restore(str(broken)) is None

    @pytest.mark.parametrize(
        "address, expected",
        [
            ("0.0.0.0:8384", "http://127.0.0.1:8384"),
            ("[::]:8384", "http://[::1]:8384"),
            (":8384", "http://127.0.0.1:8384"),
            ("localhost:8080", "http://localhost:8080"),
            ("", ""),
        ],
    )
    def test_url_of_listen_address(self, address, expected):
        assert SyncthingConfig(GuiAddress=address).SyncthingUrl() == expected

    def test_locate_via_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STHOMEDIR", str(tmp_path))
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
        assert CandidateConfigDirs()[0] == str(tmp_path)
        assert LocateConfigDir() == ""
        write_config(tmp_path)
        assert LocateConfigDir() == str(tmp_path)
        assert LocateHttpsCertificate() == ""
        (tmp_path / HTTPS_CERT_FILE_NAME).write_text(PEM)
        assert LocateHttpsCertificate() == os.path.join(str(tmp_path), HTTPS_CERT_FILE_NAME)

    def test_settings_from_local_config(self, tmp_path):
        write_config(tmp_path, address="0.0.0.0:8384", tls="true")
        (tmp_path / HTTPS_CERT_FILE_NAME).write_text(PEM)
        settings = SettingsFromLocalConfig(str(tmp_path))
        assert settings.SyncthingUrl == "https://127.0.0.1:8384"
        assert settings.ApiKey == "secret-key"
        assert settings.ExpectedSslCertificates == [os.path.join(str(tmp_path), HTTPS_CERT_FILE_NAME)]

    def test_settings_without_config(self, tmp_path):
        assert SettingsFromLocalConfig(str(tmp_path)) is None
