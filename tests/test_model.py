"""Tests for the folder and device records"""

from datetime import datetime, timedelta, timezone

import pytest

from syncthing_model import (
    DataSizeToString,
    DirStatusFromString,
    EntityHandle,
    SyncthingDev,
    SyncthingDevStatus,
    SyncthingDir,
    SyncthingDirError,
    SyncthingDirStatus,
    SyncthingEntityList,
    SyncthingItemDownloadProgress,
)

T0 = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


class TestDirStatus:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("idle", SyncthingDirStatus.IDLE),
            ("scanning", SyncthingDirStatus.SCANNING),
            ("scan-waiting", SyncthingDirStatus.SCANNING),
            ("syncing", SyncthingDirStatus.SYNCHRONIZING),
            ("sync-preparing", SyncthingDirStatus.SYNCHRONIZING),
            ("error", SyncthingDirStatus.OUT_OF_SYNC),
            ("unshared", SyncthingDirStatus.UNSHARED),
            ("something-new", SyncthingDirStatus.UNKNOWN),
            ("", SyncthingDirStatus.UNKNOWN),
        ],
    )
    def test_status_from_string(self, value, expected):
        assert DirStatusFromString(value) == expected

    def test_assign_status_from_string(self):
        dir_info = SyncthingDir(Id="a")
        assert dir_info.AssignStatus("syncing", T0)
        assert dir_info.Status == SyncthingDirStatus.SYNCHRONIZING
        assert dir_info.LastStatusUpdate == T0

    def test_assign_same_status_reports_no_change(self):
        dir_info = SyncthingDir(Id="a", Status=SyncthingDirStatus.IDLE)
        assert not dir_info.AssignStatus(SyncthingDirStatus.IDLE, T0)

    def test_older_transition_is_ignored(self):
        dir_info = SyncthingDir(Id="a")
        dir_info.AssignStatus("idle", T0)
        assert not dir_info.AssignStatus("syncing", T0 - timedelta(seconds=1))
        assert dir_info.Status == SyncthingDirStatus.IDLE
        assert dir_info.LastStatusUpdate == T0

    def test_transition_without_time_is_applied(self):
        dir_info = SyncthingDir(Id="a")
        dir_info.AssignStatus("idle", T0)
        assert dir_info.AssignStatus("scanning", None)
        assert dir_info.LastStatusUpdate == T0

    def test_synchronizing_moves_errors_to_previous_errors(self):
        error = SyncthingDirError("permission denied", "x/y")
        dir_info = SyncthingDir(Id="a", Errors=[error], ProgressPercentage=40)
        dir_info.AssignStatus("syncing", T0)
        assert dir_info.Errors == []
        assert dir_info.PreviousErrors == [error]
        assert dir_info.ProgressPercentage == 0

    def test_idle_with_errors_is_out_of_sync(self):
        dir_info = SyncthingDir(Id="a", Errors=[SyncthingDirError("boom", "f")])
        dir_info.AssignStatus("idle", T0)
        assert dir_info.Status == SyncthingDirStatus.OUT_OF_SYNC

    def test_display_name(self):
        assert SyncthingDir(Id="abcd-1234").DisplayName == "abcd-1234"
        assert SyncthingDir(Id="abcd-1234", Label="Photos").DisplayName == "Photos"
        assert SyncthingDev(Id="DEV").DisplayName == "DEV"
        assert SyncthingDev(Id="DEV", Name="laptop").DisplayName == "laptop"

    def test_status_strings(self):
        assert SyncthingDir(Id="a", Status=SyncthingDirStatus.OUT_OF_SYNC).StatusString == "out of sync"
        assert SyncthingDev(Id="d", Status=SyncthingDevStatus.IDLE, Paused=True).StatusString == "paused"
        assert SyncthingDev(Id="d", Status=SyncthingDevStatus.OWN_DEVICE, Paused=True).StatusString == "own device"


class TestDownloadProgress:
    def test_item_from_lowercase_keys(self):
        item = SyncthingItemDownloadProgress.FromJson(
            "/data/a/",
            "sub/file.bin",
            {"pulling": 1, "pulled": 1, "copiedFromOrigin": 1, "reused": 1, "total": 8,
             "bytesDone": 1024, "bytesTotal": 2048},
        )
        assert item.FilePath == "/data/a/sub/file.bin"
        assert item.BlocksAlreadyDownloaded == 3
        assert item.BlocksCurrentlyDownloading == 1
        assert item.DownloadPercentage == 37
        assert item.Label == "1.00 KiB / 2.00 KiB - 37 %"

    def test_item_from_capitalised_keys(self):
        item = SyncthingItemDownloadProgress.FromJson("/data", "f", {"Pulled": 2, "Total": 4})
        assert item.BlocksAlreadyDownloaded == 2
        assert item.DownloadPercentage == 50

    @pytest.mark.parametrize(
        "values, expected",
        [
            ({"pulled": 10, "total": 4}, 100),
            ({"pulled": 0, "total": 4}, 0),
            ({"pulled": 3, "total": 0}, 0),
            ({"pulled": "many", "total": 4}, 0),
        ],
    )
    def test_percentage_is_bounded(self, values, expected):
        item = SyncthingItemDownloadProgress.FromJson("/data", "f", values)
        assert item.DownloadPercentage == expected

    def test_dir_aggregates_items(self):
        dir_info = SyncthingDir(Id="a", Path="/data/a")
        dir_info.UpdateDownloadProgress({"x": {"pulled": 1, "total": 4}, "y": {"pulled": 3, "total": 4}})
        assert len(dir_info.DownloadingItems) == 2
        assert dir_info.BlocksAlreadyDownloaded == 4
        assert dir_info.BlocksToBeDownloaded == 8
        assert dir_info.DownloadPercentage == 50
        assert dir_info.DownloadLabel == "512.00 KiB / 1.00 MiB - 50 %"

        dir_info.UpdateDownloadProgress({})
        assert dir_info.DownloadingItems == []
        assert dir_info.DownloadPercentage == 0


@pytest.mark.parametrize(
    "size, expected",
    [
        (0, "0 bytes"),
        (1023, "1023 bytes"),
        (1536, "1.50 KiB"),
        (5 * 1024 ** 2, "5.00 MiB"),
        (3 * 1024 ** 3, "3.00 GiB"),
        (2 * 1024 ** 4, "2.00 TiB"),
    ],
)
def test_data_size_to_string(size, expected):
    assert DataSizeToString(size) == expected


class TestEntityList:
    def test_find_and_append(self):
        entities = SyncthingEntityList()
        assert entities.Append(SyncthingDir(Id="a")) == 0
        assert entities.Append(SyncthingDir(Id="b")) == 1
        dir_info, row = entities.Find("b")
        assert dir_info.Id == "b" and row == 1
        assert entities.Find("c") == (None, -1)
        with pytest.raises(ValueError):
            entities.Append(SyncthingDir(Id="a"))

    def test_handle_survives_append(self):
        entities = SyncthingEntityList()
        entities.Append(SyncthingDir(Id="a"))
        handle = entities.Handle(0)
        entities.Append(SyncthingDir(Id="b"))
        assert entities.Resolve(handle).Id == "a"

    def test_handle_is_stale_after_replace(self):
        entities = SyncthingEntityList()
        entities.Replace([SyncthingDir(Id="a")])
        handle = entities.Handle(0)
        entities.Replace([SyncthingDir(Id="a")])
        assert entities.Resolve(handle) is None

    def test_handle_is_stale_after_clear(self):
        entities = SyncthingEntityList()
        entities.Replace([SyncthingDev(Id="d")])
        handle = entities.Handle(0)
        entities.Clear()
        assert len(entities) == 0
        assert entities.Resolve(handle) is None
        assert entities.Resolve(EntityHandle(entities.Generation, 0, "d")) is None

    def test_replace_rejects_duplicates(self):
        entities = SyncthingEntityList()
        with pytest.raises(ValueError):
            entities.Replace([SyncthingDir(Id="a"), SyncthingDir(Id="a")])
