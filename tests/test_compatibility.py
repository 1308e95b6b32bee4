"""Tests for the dependency compatibility resolver."""

import pytest

from descriptors.package_path import PackagePath
from compatibility.resolver import get_compatibility, is_bridging_module


def _paths(*items):
    return [PackagePath.from_string(i) for i in items]


class TestBridgingModules:
    """Detection of modules compatible across minor/patch versions."""

    @pytest.mark.parametrize("name", ["foo-api", "foo-api-impl", "react-native-electrode-bridge"])
    def test_bridging(self, name):
        assert is_bridging_module(name)

    @pytest.mark.parametrize("name", ["plugin", "react-native", "apis", None, ""])
    def test_not_bridging(self, name):
        assert not is_bridging_module(name)


class TestGetCompatibility:
    """Classification of remote dependencies against local ones."""

    def test_identical_sets_are_all_compatible(self):
        deps = _paths("react-native@0.72.0", "foo-api@1.0.0", "plugin@2.1.0")
        report = get_compatibility(deps, deps)
        assert report.incompatible == []
        assert report.compatible_non_strict == []
        assert [e.dependency_name for e in report.compatible] == ["react-native", "foo-api", "plugin"]
        assert report.is_compatible

    def test_bridging_same_major_local_older_is_non_strict(self):
        report = get_compatibility(_paths("foo-api@1.0.0"), _paths("foo-api@1.1.0"))
        assert len(report.compatible_non_strict) == 1
        entry = report.compatible_non_strict[0]
        assert entry.local_version == "1.0.0"
        assert entry.remote_version == "1.1.0"
        assert report.is_compatible

    def test_bridging_local_newer_is_incompatible(self):
        report = get_compatibility(_paths("foo-api@2.0.0"), _paths("foo-api@1.1.0"))
        assert [e.dependency_name for e in report.incompatible] == ["foo-api"]
        assert not report.is_compatible

    def test_bridging_same_major_local_newer_is_incompatible(self):
        report = get_compatibility(_paths("foo-api@1.2.0"), _paths("foo-api@1.1.0"))
        assert len(report.incompatible) == 1

    def test_non_bridging_difference_is_incompatible(self):
        report = get_compatibility(_paths("plugin@1.0.0"), _paths("plugin@1.1.0"))
        assert [e.dependency_name for e in report.incompatible] == ["plugin"]

    def test_remote_without_local_counterpart_is_omitted(self):
        report = get_compatibility(_paths("plugin@1.0.0"), _paths("plugin@1.0.0", "other@3.0.0"))
        assert [e.dependency_name for e in report.compatible] == ["plugin"]
        assert report.incompatible == []

    def test_missing_remote_reported_when_flag_set(self):
        report = get_compatibility(_paths("bar@1.0.0"), [], treat_missing_remote_as_incompatible=True)
        assert len(report.incompatible) == 1
        entry = report.incompatible[0]
        assert entry.dependency_name == "bar"
        assert entry.local_version == "1.0.0"
        assert entry.remote_version == "MISSING"

    def test_missing_remote_ignored_without_flag(self):
        report = get_compatibility(_paths("bar@1.0.0"), [])
        assert report.compatible == []
        assert report.compatible_non_strict == []
        assert report.incompatible == []

    def test_to_dict_uses_camel_case(self):
        report = get_compatibility(_paths("foo-api@1.0.0"), _paths("foo-api@1.1.0"))
        data = report.to_dict()
        assert set(data) == {"compatible", "compatibleNonStrict", "incompatible"}
        assert data["compatibleNonStrict"][0]["dependencyName"] == "foo-api"
