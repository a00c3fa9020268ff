"""Tests for Source descriptors and SourceFilter semantics."""

from __future__ import annotations

import os

from wufei.models.sources import TERMINAL_TARGET, Source, SourceFilter, SourceKey


class TestSource:
    def test_identity_is_pod_and_container(self) -> None:
        a = Source.build("web-1", "app", "/tmp/wufei")
        b = Source.build("web-1", "app")
        assert a.key == b.key == SourceKey("web-1", "app")

    def test_display_prefix(self) -> None:
        assert Source.build("web-1", "app").display_prefix == "[web-1][app]"

    def test_terminal_target_without_output_dir(self) -> None:
        source = Source.build("web-1", "app")
        assert source.sink_target == TERMINAL_TARGET
        assert not source.writes_to_file

    def test_file_target_naming_convention(self) -> None:
        source = Source.build("web-1", "app", "/tmp/wufei/")
        assert source.sink_target == os.path.join("/tmp/wufei/", "web-1-app.txt")
        assert source.writes_to_file

    def test_key_str(self) -> None:
        assert str(SourceKey("web-1", "app")) == "web-1/app"


class TestSourceFilter:
    def test_empty_filter_matches_everything(self) -> None:
        f = SourceFilter()
        assert not f.is_active
        assert f.matches("anything", "at-all")

    def test_pod_dimension_only(self) -> None:
        f = SourceFilter.of(pods=["web-1"])
        assert f.is_active
        assert f.matches("web-1", "app")
        assert f.matches("web-1", "sidecar")
        assert not f.matches("web-2", "app")

    def test_container_dimension_only(self) -> None:
        f = SourceFilter.of(containers=["app"])
        assert f.matches("web-1", "app")
        assert f.matches("web-2", "app")
        assert not f.matches("web-1", "sidecar")

    def test_both_dimensions_are_anded(self) -> None:
        f = SourceFilter.of(pods=["web-1", "web-2"], containers=["app"])
        assert f.matches("web-2", "app")
        assert not f.matches("web-2", "sidecar")
        assert not f.matches("web-3", "app")
