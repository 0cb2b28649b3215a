"""Test that project structure is correct and modules can be imported."""

import core.detect
import core.models
import core.parse_project
import core.planner
import core.registry
import core.report
import core.versions
from core.models import PackageReference, ProjectDescriptor


def test_core_modules_importable():
    """Ensure core modules can be imported."""
    # This will fail if modules have syntax errors or missing dependencies

    # Basic smoke test - ensure key classes exist
    assert hasattr(core.models, "ProjectDescriptor")
    assert hasattr(core.models, "PackageCompatibilityRecord")
    assert hasattr(core.models, "MigrationReport")
    assert hasattr(core.detect, "needs_migration")
    assert hasattr(core.parse_project, "scan")
    assert hasattr(core.registry, "NuGetRegistryClient")
    assert hasattr(core.versions, "select_best")
    assert hasattr(core.planner, "MigrationPlanner")
    assert hasattr(core.report, "render_html")


def test_model_creation():
    """Test that basic models can be instantiated."""
    reference = PackageReference(name="Serilog", version="2.10.0")
    assert reference.name == "Serilog"
    assert reference.version == "2.10.0"

    project = ProjectDescriptor(name="App", path="App.csproj", target_frameworks=["net6.0"], packages=[reference])
    assert project.target_framework == "net6.0"
    assert len(project.packages) == 1
    assert project.records == []
