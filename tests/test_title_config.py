"""Tests for nhddl.title_config: global/title argument files and lastTitle.txt."""

from pathlib import Path

import pytest

from nhddl.arguments import Argument, ArgumentList
from nhddl.config import LauncherConfig
from nhddl.errors import NotFoundError, StorageIOError
from nhddl.paths import DeviceMap
from nhddl.title_config import (
    Title,
    find_title_config,
    get_global_arguments,
    get_last_launched_title,
    get_title_arguments,
    load_launch_arguments,
    save_title_arguments,
    title_config_path,
    update_last_launched_title,
)


@pytest.fixture()
def cfg(tmp_path: Path) -> LauncherConfig:
    (tmp_path / "mass" / "config").mkdir(parents=True)
    (tmp_path / "mass0").mkdir()
    devices = DeviceMap({"mass:": tmp_path / "mass", "mass0:": tmp_path / "mass0"})
    return LauncherConfig(root=tmp_path, devices=devices, storage="mass:")


@pytest.fixture()
def title() -> Title:
    return Title.from_path("mass:/DVD/Game.iso", "SLUS_200.02")


def _write(cfg: LauncherConfig, device_path: str, text: str) -> Path:
    path = cfg.devices.resolve(device_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestTitle:
    def test_from_path(self) -> None:
        t = Title.from_path("mass0:/DVD/Some Game.iso", "SLES_123.45")
        assert t.name == "Some Game"
        assert t.id == "SLES_123.45"
        assert title_config_path(t) == "mass0:/config/Some Game.yaml"


class TestGlobalArguments:
    def test_marked_global(self, cfg: LauncherConfig) -> None:
        _write(cfg, "mass:/config/global.yaml", "mt: 2\n$dbc:\n")
        result = get_global_arguments(cfg)
        assert result.names == ["mt", "dbc"]
        assert all(arg.is_global_origin for arg in result)

    def test_missing(self, cfg: LauncherConfig) -> None:
        with pytest.raises(NotFoundError):
            get_global_arguments(cfg)


class TestFindTitleConfig:
    def test_name_wins_over_id(self, cfg: LauncherConfig, title: Title) -> None:
        by_id = _write(cfg, "mass:/config/SLUS_200.02.yaml", "a: 1\n")
        by_name = _write(cfg, "mass:/config/Game.yaml", "b: 1\n")
        assert find_title_config(cfg, title) == by_name
        by_name.unlink()
        assert find_title_config(cfg, title) == by_id

    def test_none(self, cfg: LauncherConfig, title: Title) -> None:
        _write(cfg, "mass:/config/Other.yaml", "a: 1\n")
        assert find_title_config(cfg, title) is None

    def test_missing_dir(self, cfg: LauncherConfig) -> None:
        t = Title.from_path("mass0:/DVD/Game.iso", "SLUS_200.02")
        with pytest.raises(NotFoundError):
            find_title_config(cfg, t)

    def test_title_arguments_empty_without_file(self, cfg: LauncherConfig, title: Title) -> None:
        assert len(get_title_arguments(cfg, title)) == 0


class TestLoadLaunchArguments:
    def test_merge(self, cfg: LauncherConfig, title: Title) -> None:
        _write(cfg, "mass:/config/global.yaml", "gc: 1\nmt: 2\nlogo:\n")
        _write(cfg, "mass:/config/Game.yaml", "mt: 5\n$logo:\ndbc:\n")
        result = load_launch_arguments(cfg, title)
        assert result.names == ["gc", "mt", "logo", "dbc"]
        assert result.get("mt") == Argument("mt", "5")
        logo = result.get("logo")
        assert logo.disabled
        assert logo.is_global_origin
        assert result.get("gc").is_global_origin
        assert result.flatten() == ["-gc=1", "-mt=5", "-dbc"]

    def test_only_global(self, cfg: LauncherConfig, title: Title) -> None:
        _write(cfg, "mass:/config/global.yaml", "mt: 2\n")
        result = load_launch_arguments(cfg, title)
        assert result.names == ["mt"]
        assert result[0].is_global_origin

    def test_nothing_at_all(self, cfg: LauncherConfig) -> None:
        t = Title.from_path("mass0:/DVD/Game.iso", "SLUS_200.02")
        assert len(load_launch_arguments(cfg, t)) == 0

    def test_unreadable_title_file_falls_back_to_global(self, cfg: LauncherConfig, title: Title) -> None:
        _write(cfg, "mass:/config/global.yaml", "mt: 2\nlogo:\n")
        cfg.devices.resolve("mass:/config/Game.yaml").write_bytes(b"dbc:\nmt: \xff\xfe\n")
        result = load_launch_arguments(cfg, title)
        assert result.names == ["mt", "logo"]
        assert all(arg.is_global_origin for arg in result)
        assert result.flatten() == ["-mt=2", "-logo"]

    def test_unreadable_global_file_keeps_title(self, cfg: LauncherConfig, title: Title) -> None:
        cfg.devices.resolve("mass:/config/global.yaml").write_bytes(b"logo:\ncwd: \xff\n")
        _write(cfg, "mass:/config/Game.yaml", "mt: 5\n")
        result = load_launch_arguments(cfg, title)
        assert result.names == ["mt"]
        assert not result[0].is_global_origin
        assert result.flatten() == ["-mt=5"]

    def test_host_path_title_has_no_config(self, cfg: LauncherConfig) -> None:
        _write(cfg, "mass:/config/global.yaml", "mt: 2\n")
        t = Title.from_path("/home/user/DVD/Game.iso", "SLUS_200.02")
        assert load_launch_arguments(cfg, t).names == ["mt"]


class TestSaveTitleArguments:
    def test_save_creates_dir(self, cfg: LauncherConfig) -> None:
        t = Title.from_path("mass0:/DVD/Game.iso", "SLUS_200.02")
        args = ArgumentList(
            [
                Argument("gc", "13"),
                Argument("mt", "2", is_global_origin=True),
                Argument("logo", "", disabled=True, is_global_origin=True),
            ]
        )
        path = save_title_arguments(cfg, t, args)
        assert path == cfg.devices.root("mass0:") / "config" / "Game.yaml"
        assert path.read_text() == "gc: 13\n$logo:\n"

    def test_save_host_path_rejected(self, cfg: LauncherConfig) -> None:
        t = Title.from_path("/home/user/DVD/Game.iso", "SLUS_200.02")
        with pytest.raises(StorageIOError):
            save_title_arguments(cfg, t, ArgumentList([Argument("mt", "2")]))

    def test_save_then_load(self, cfg: LauncherConfig, title: Title) -> None:
        _write(cfg, "mass:/config/global.yaml", "mt: 2\nlogo:\n")
        args = load_launch_arguments(cfg, title)
        args.toggle("logo")
        args.set_compat_modes(0b101)
        save_title_arguments(cfg, title, args)

        reloaded = load_launch_arguments(cfg, title)
        assert reloaded.flatten() == ["-gc=02", "-mt=2"]


class TestLastLaunchedTitle:
    def test_roundtrip(self, cfg: LauncherConfig) -> None:
        path = update_last_launched_title(cfg, "mass:/DVD/Game.iso")
        assert path.read_bytes() == b"mass:/DVD/Game.iso\x00"
        assert get_last_launched_title(cfg) == "mass:/DVD/Game.iso"

    def test_creates_config_dir(self, cfg: LauncherConfig) -> None:
        path = update_last_launched_title(cfg, "mass0:/DVD/Game.iso")
        assert path == cfg.devices.root("mass0:") / "config" / "lastTitle.txt"

    def test_missing(self, cfg: LauncherConfig) -> None:
        with pytest.raises(NotFoundError):
            get_last_launched_title(cfg)

    def test_host_path_rejected(self, cfg: LauncherConfig) -> None:
        with pytest.raises(StorageIOError):
            update_last_launched_title(cfg, "/home/user/DVD/Game.iso")
