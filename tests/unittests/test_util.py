# This file is part of cloudmeta. See LICENSE file for license information.

import logging
from unittest import mock

import pytest

from cloudmeta import util
from cloudmeta.subp import ProcessExecutionError, SubpResult
from tests.unittests.helpers import does_not_raise

M_PATH = "cloudmeta.util."


class TestGenerateBlkidCommand:
    @pytest.mark.parametrize(
        "label, expectation",
        [
            pytest.param("config-2", does_not_raise(), id="label"),
            pytest.param("", pytest.raises(ValueError), id="empty"),
            pytest.param(None, pytest.raises(ValueError), id="none"),
        ],
    )
    def test_generate(self, label, expectation):
        with expectation:
            cmd = util.generate_blkid_command(label)
            assert [
                "blkid",
                "-l",
                "-o",
                "device",
                "-t",
                "LABEL=config-2",
            ] == cmd


class TestFindDevsWith:
    @mock.patch(M_PATH + "subp.subp")
    def test_returns_output_lines(self, m_subp):
        m_subp.return_value = SubpResult("/dev/sr0\n\n", "")
        assert ["/dev/sr0"] == util.find_devs_with("config-2")
        m_subp.assert_called_once_with(
            ["blkid", "-l", "-o", "device", "-t", "LABEL=config-2"]
        )

    @mock.patch(M_PATH + "subp.subp")
    def test_blkid_error_propagates(self, m_subp):
        m_subp.side_effect = ProcessExecutionError(exit_code=2)
        with pytest.raises(ProcessExecutionError):
            util.find_devs_with("config-2")


class TestTemporaryMount:
    @pytest.fixture
    def mountpoint(self, mocker, tmp_path):
        path = tmp_path / "mnt"
        path.mkdir()
        mocker.patch(M_PATH + "tempfile.mkdtemp", return_value=str(path))
        return path

    def test_requires_mount_type(self):
        with pytest.raises(ValueError):
            util.TemporaryMount("/dev/sr0", [])

    @mock.patch(M_PATH + "unmount")
    @mock.patch(M_PATH + "mount")
    def test_first_type_mounts(self, m_mount, m_unmount, mountpoint):
        with util.TemporaryMount("/dev/sr0", ["iso9660", "vfat"]) as mp:
            assert str(mountpoint) == mp
        m_mount.assert_called_once_with(
            "/dev/sr0", str(mountpoint), "iso9660", ["ro"]
        )
        m_unmount.assert_called_once_with(str(mountpoint))
        assert not mountpoint.exists()

    @mock.patch(M_PATH + "unmount")
    @mock.patch(M_PATH + "mount")
    def test_falls_back_to_next_type(self, m_mount, m_unmount, mountpoint):
        m_mount.side_effect = [ProcessExecutionError(exit_code=32), None]
        with util.TemporaryMount("/dev/sr0", ["iso9660", "vfat"]):
            pass
        assert [
            mock.call("/dev/sr0", str(mountpoint), "iso9660", ["ro"]),
            mock.call("/dev/sr0", str(mountpoint), "vfat", ["ro"]),
        ] == m_mount.call_args_list
        m_unmount.assert_called_once_with(str(mountpoint))

    @mock.patch(M_PATH + "unmount")
    @mock.patch(M_PATH + "mount")
    def test_all_types_fail(self, m_mount, m_unmount, mountpoint):
        last = ProcessExecutionError(exit_code=32, stderr="wrong fs type")
        m_mount.side_effect = [ProcessExecutionError(exit_code=32), last]
        with pytest.raises(util.TemporaryMountError) as exc_info:
            with util.TemporaryMount("/dev/sr0", ["iso9660", "vfat"]):
                pass
        assert last is exc_info.value.__cause__
        m_unmount.assert_not_called()
        assert not mountpoint.exists()

    @mock.patch(M_PATH + "unmount")
    @mock.patch(M_PATH + "mount")
    def test_unmounts_on_error_in_block(self, m_mount, m_unmount, mountpoint):
        with pytest.raises(KeyError):
            with util.TemporaryMount("/dev/sr0", ["iso9660"]):
                raise KeyError("boom")
        m_unmount.assert_called_once_with(str(mountpoint))
        assert not mountpoint.exists()

    @mock.patch(M_PATH + "unmount")
    @mock.patch(M_PATH + "mount")
    def test_unmount_failure_is_logged(
        self, m_mount, m_unmount, mountpoint, caplog
    ):
        m_unmount.side_effect = ProcessExecutionError(exit_code=32)
        with caplog.at_level(logging.WARNING):
            with util.TemporaryMount("/dev/sr0", ["iso9660"]) as mp:
                result = mp
        assert str(mountpoint) == result
        assert "Failed to unmount" in caplog.text


class TestMountCommands:
    @mock.patch(M_PATH + "subp.subp")
    def test_mount(self, m_subp):
        util.mount("/dev/sr0", "/mnt", "vfat", ["ro"])
        m_subp.assert_called_once_with(
            ["mount", "-o", "ro", "-t", "vfat", "/dev/sr0", "/mnt"]
        )

    @mock.patch(M_PATH + "subp.subp")
    def test_unmount(self, m_subp):
        util.unmount("/mnt")
        m_subp.assert_called_once_with(["umount", "/mnt"])


class TestReadConf:
    def test_missing_file(self, tmp_path):
        assert {} == util.read_conf(str(tmp_path / "absent.cfg"))

    def test_empty_file(self, tmp_path):
        cfg = tmp_path / "empty.cfg"
        cfg.write_text("")
        assert {} == util.read_conf(str(cfg))

    def test_mapping(self, tmp_path):
        cfg = tmp_path / "cloudmeta.cfg"
        cfg.write_text("log_level: DEBUG\n")
        assert {"log_level": "DEBUG"} == util.read_conf(str(cfg))

    def test_not_a_mapping(self, tmp_path):
        cfg = tmp_path / "list.cfg"
        cfg.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            util.read_conf(str(cfg))


class TestLogexc:
    def test_logs_warning_and_traceback(self, caplog):
        log = logging.getLogger("cloudmeta.test")
        with caplog.at_level(logging.DEBUG):
            try:
                raise RuntimeError("kaboom")
            except RuntimeError:
                util.logexc(log, "Failed %s", "thing")
        warning, debug = caplog.records
        assert logging.WARNING == warning.levelno
        assert "Failed thing" == warning.getMessage()
        assert debug.exc_info is not None
