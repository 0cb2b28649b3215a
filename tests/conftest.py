"""Pytest configuration and fixtures."""


import pytest

from core.config import MigrationSettings

MODERN_PROJECT = """<Project Sdk="Microsoft.NET.Sdk">

  <PropertyGroup>
    <OutputType>Exe</OutputType>
    <TargetFramework>netcoreapp3.1</TargetFramework>
  </PropertyGroup>

  <!-- third party -->
  <ItemGroup>
    <PackageReference Include="Newtonsoft.Json" Version="12.0.1" />
    <PackageReference Include="Serilog" Version="2.10.0" />
    <PackageReference Include="System.Text.Json" Version="4.7.2" />
  </ItemGroup>

</Project>
"""

LEGACY_PROJECT = """<?xml version="1.0" encoding="utf-8"?>
<Project ToolsVersion="15.0" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
  <PropertyGroup>
    <TargetFrameworkVersion>v4.7.2</TargetFrameworkVersion>
  </PropertyGroup>
  <ItemGroup>
    <PackageReference Include="Dapper">
      <Version>1.50.5</Version>
    </PackageReference>
    <PackageReference Include="Internal.Logging">
      <Version>2.0.0</Version>
    </PackageReference>
  </ItemGroup>
</Project>
"""


@pytest.fixture
def modern_project(tmp_path):
    """SDK-style project file on disk."""
    path = tmp_path / "WebApp" / "WebApp.csproj"
    path.parent.mkdir()
    path.write_text(MODERN_PROJECT, encoding="utf-8")
    return path


@pytest.fixture
def legacy_project(tmp_path):
    """Namespaced MSBuild 2003 project file on disk."""
    path = tmp_path / "Legacy" / "Legacy.csproj"
    path.parent.mkdir()
    path.write_text(LEGACY_PROJECT, encoding="utf-8")
    return path


@pytest.fixture
def settings():
    """Settings targeting net8.0 with no private feeds."""
    return MigrationSettings(target_framework="net8.0")


def registration_index(versions):
    """Build a registration index document.

    Args:
        versions: mapping of version -> list of target frameworks (None for no groups)
    """
    leaves = []
    for version, frameworks in versions.items():
        entry = {"version": version}
        if frameworks is not None:
            entry["dependencyGroups"] = [
                {"targetFramework": framework} for framework in frameworks
            ]
        leaves.append({"catalogEntry": entry})
    return {"count": 1, "items": [{"count": len(leaves), "items": leaves}]}
