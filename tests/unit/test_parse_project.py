"""Tests for project file parsing."""

import pytest

from core.errors import ProjectParseError
from core.models import PackageReference, ProjectShape
from core.parse_project import find_project_files, scan, scan_directory


class TestProjectParser:
    """Test .csproj parsing for both project shapes."""

    def test_parse_modern_project(self, modern_project):
        """Should read framework and attribute-style references."""
        project = scan(modern_project)

        assert project.name == "WebApp"
        assert project.shape is ProjectShape.MODERN
        assert project.target_frameworks == ["netcoreapp3.1"]
        assert project.framework_property == "TargetFramework"
        assert project.needs_migration is True
        assert project.packages == [
            PackageReference("Newtonsoft.Json", "12.0.1"),
            PackageReference("Serilog", "2.10.0"),
            PackageReference("System.Text.Json", "4.7.2"),
        ]

    def test_parse_legacy_project(self, legacy_project):
        """Should read namespaced elements and child Version nodes."""
        project = scan(legacy_project)

        assert project.shape is ProjectShape.LEGACY
        assert project.target_frameworks == ["v4.7.2"]
        assert project.framework_property == "TargetFrameworkVersion"
        assert project.needs_migration is True
        assert [p.name for p in project.packages] == ["Dapper", "Internal.Logging"]
        assert project.packages[0].version == "1.50.5"

    def test_parse_multi_target(self, tmp_path):
        """Should take the first moniker of TargetFrameworks."""
        path = tmp_path / "Lib.csproj"
        path.write_text(
            '<Project Sdk="Microsoft.NET.Sdk"><PropertyGroup>'
            "<TargetFrameworks>net6.0;netstandard2.0</TargetFrameworks>"
            "</PropertyGroup></Project>"
        )

        project = scan(path)

        assert project.target_frameworks == ["net6.0", "netstandard2.0"]
        assert project.target_framework == "net6.0"
        assert project.framework_property == "TargetFrameworks"

    def test_single_target_wins_over_multi_target(self, tmp_path):
        path = tmp_path / "Lib.csproj"
        path.write_text(
            '<Project Sdk="Microsoft.NET.Sdk"><PropertyGroup>'
            "<TargetFrameworks>net6.0;net7.0</TargetFrameworks>"
            "<TargetFramework>net8.0</TargetFramework>"
            "</PropertyGroup></Project>"
        )

        project = scan(path)

        assert project.target_frameworks == ["net8.0"]
        assert project.needs_migration is False

    def test_duplicate_references_keep_first(self, tmp_path):
        path = tmp_path / "App.csproj"
        path.write_text(
            '<Project Sdk="Microsoft.NET.Sdk"><ItemGroup>'
            '<PackageReference Include="Polly" Version="7.2.0" />'
            '<PackageReference Include="polly" Version="8.0.0" />'
            "</ItemGroup></Project>"
        )

        project = scan(path)

        assert project.packages == [PackageReference("Polly", "7.2.0")]

    def test_reference_without_version(self, tmp_path):
        path = tmp_path / "App.csproj"
        path.write_text(
            '<Project Sdk="Microsoft.NET.Sdk"><ItemGroup>'
            '<PackageReference Include="Polly" />'
            "</ItemGroup></Project>"
        )

        project = scan(path)

        assert project.packages == [PackageReference("Polly", "")]
        assert project.target_frameworks == []
        assert project.needs_migration is False

    def test_malformed_xml_raises(self, tmp_path):
        path = tmp_path / "Broken.csproj"
        path.write_text("<Project><PropertyGroup></Project>")

        with pytest.raises(ProjectParseError):
            scan(path)


class TestProjectDiscovery:
    """Test finding project files in a checkout."""

    def test_find_skips_build_output(self, tmp_path, modern_project, legacy_project):
        obj = tmp_path / "WebApp" / "obj"
        obj.mkdir()
        (obj / "Generated.csproj").write_text("<Project/>")
        (tmp_path / "Tool.fsproj").write_text("<Project/>")
        (tmp_path / "README.md").write_text("readme")

        found = find_project_files(tmp_path)

        assert found == sorted([legacy_project, modern_project, tmp_path / "Tool.fsproj"])

    def test_scan_directory_skips_broken_files(self, tmp_path, modern_project):
        (tmp_path / "Broken.csproj").write_text("<Project>")

        projects = scan_directory(tmp_path)

        assert [project.name for project in projects] == ["WebApp"]
