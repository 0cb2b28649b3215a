"""External tools: environment checks, git clone, dotnet build and analysis."""

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from .errors import SetupError
from .models import BuildResult

logger = logging.getLogger(__name__)

ANALYSIS_TOOL = "upgrade-assistant"
BUILD_OUTPUT_LIMIT = 4000

_SCP_STYLE_URL = re.compile(r"^[\w.-]+@[\w.-]+:[\w./~-]+$")


class SetupStatus(str, Enum):
    READY = "ready"
    DEGRADED = "degraded"
    FATAL = "fatal"


@dataclass
class SetupResult:
    """What the environment can do for this run."""

    status: SetupStatus = SetupStatus.READY
    messages: list[str] = field(default_factory=list)
    can_build: bool = True
    can_analyze: bool = True

    def degrade(self, message: str) -> None:
        if self.status is SetupStatus.READY:
            self.status = SetupStatus.DEGRADED
        self.messages.append(message)

    def fail(self, message: str) -> None:
        self.status = SetupStatus.FATAL
        self.messages.append(message)

    @property
    def is_fatal(self) -> bool:
        return self.status is SetupStatus.FATAL


def _run(
    command: list[str],
    cwd: str | Path | None = None,
    timeout: float | None = None,
    display: str | None = None,
) -> subprocess.CompletedProcess:
    logger.debug("Running %s", display or " ".join(command))
    return subprocess.run(
        command,
        cwd=cwd,
        capture_output=True,
        text=True,
        timeout=timeout,
    )


def check_environment(
    require_git: bool = True,
    want_build: bool = True,
    want_analysis: bool = False,
) -> SetupResult:
    """Check the external tools a run depends on.

    git is required for cloning; a missing dotnet CLI only disables build
    verification and analysis.
    """
    result = SetupResult(can_build=want_build, can_analyze=want_analysis)

    if require_git and shutil.which("git") is None:
        result.fail("git is not installed or not on PATH")

    if (want_build or want_analysis) and shutil.which("dotnet") is None:
        result.can_build = False
        result.can_analyze = False
        result.degrade("dotnet CLI not found; build verification and analysis skipped")
        return result

    if want_analysis and not ensure_analysis_tool():
        result.can_analyze = False
        result.degrade(f"{ANALYSIS_TOOL} unavailable; analysis skipped")

    return result


def ensure_analysis_tool() -> bool:
    """Install the migration analysis tool as a global dotnet tool if missing."""
    if shutil.which(ANALYSIS_TOOL) is not None:
        return True

    logger.info("Installing %s", ANALYSIS_TOOL)
    try:
        completed = _run(["dotnet", "tool", "install", "-g", ANALYSIS_TOOL], timeout=600)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("Installing %s failed: %s", ANALYSIS_TOOL, e)
        return False

    if completed.returncode != 0:
        logger.warning("Installing %s failed: %s", ANALYSIS_TOOL, completed.stderr.strip())
        return False
    return shutil.which(ANALYSIS_TOOL) is not None


def validate_repository_url(url: str) -> None:
    """Raise SetupError unless the URL looks like a git remote."""
    if _SCP_STYLE_URL.match(url):
        return
    parts = urlsplit(url)
    if parts.scheme in ("https", "http", "ssh") and parts.netloc and parts.path.strip("/"):
        return
    raise SetupError(f"Invalid repository URL: {url}")


def authenticated_url(url: str, token: str | None) -> str:
    """Embed a personal access token into an HTTPS clone URL."""
    if not token:
        return url
    parts = urlsplit(url)
    if parts.scheme not in ("https", "http"):
        return url
    host = parts.netloc.rsplit("@", 1)[-1]
    return urlunsplit((parts.scheme, f"{token}@{host}", parts.path, parts.query, parts.fragment))


def mask_url(url: str) -> str:
    parts = urlsplit(url)
    if "@" not in parts.netloc or parts.scheme not in ("https", "http"):
        return url
    host = parts.netloc.rsplit("@", 1)[-1]
    return urlunsplit((parts.scheme, f"***@{host}", parts.path, parts.query, parts.fragment))


def clone_repository(
    url: str,
    branch: str,
    destination: str | Path,
    token: str | None = None,
) -> Path:
    """Shallow-clone a branch into the destination folder.

    Raises:
        SetupError: The URL is invalid or git fails
    """
    validate_repository_url(url)
    clone_url = authenticated_url(url, token)
    destination = Path(destination)

    command = ["git", "clone", "--depth", "1", "--branch", branch, clone_url, str(destination)]
    # the clone URL may carry the access token
    display = " ".join(command[:-2] + [mask_url(clone_url), str(destination)])

    logger.info("Cloning %s (%s) into %s", mask_url(clone_url), branch, destination)
    try:
        completed = _run(command, display=display)
    except OSError as e:
        raise SetupError(f"Cannot run git: {e}") from e

    if completed.returncode != 0:
        stderr = completed.stderr.strip()
        if token:
            stderr = stderr.replace(token, "***")
        raise SetupError(f"git clone failed: {stderr}")
    return destination


def cleanup_workspace(path: str | Path) -> None:
    """Remove the cloned workspace; failures are logged, never raised."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove %s: %s", path, e)


def _tail(text: str, limit: int = BUILD_OUTPUT_LIMIT) -> str:
    return text if len(text) <= limit else text[-limit:]


def verify_build(project_path: str | Path, name: str | None = None) -> BuildResult:
    """Restore and build a project, capturing exit code and output."""
    project_path = Path(project_path)
    name = name or project_path.stem
    output = []

    for command in (
        ["dotnet", "restore", str(project_path)],
        ["dotnet", "build", str(project_path), "--nologo", "--no-restore"],
    ):
        try:
            completed = _run(command, cwd=project_path.parent)
        except OSError as e:
            return BuildResult(project=name, succeeded=False, exit_code=-1, output=str(e))

        output.append(completed.stdout + completed.stderr)
        if completed.returncode != 0:
            logger.warning("%s failed for %s (exit %d)", command[1], name, completed.returncode)
            return BuildResult(
                project=name,
                succeeded=False,
                exit_code=completed.returncode,
                output=_tail("".join(output)),
            )

    return BuildResult(project=name, succeeded=True, exit_code=0, output=_tail("".join(output)))


def list_packages(project_path: str | Path, include_transitive: bool = True) -> str:
    """Return the dotnet CLI's package listing for a project."""
    command = ["dotnet", "list", str(project_path), "package"]
    if include_transitive:
        command.append("--include-transitive")
    try:
        completed = _run(command)
    except OSError as e:
        return f"dotnet list failed: {e}"
    return completed.stdout if completed.returncode == 0 else completed.stdout + completed.stderr


def run_analysis(project_path: str | Path) -> BuildResult:
    """Run the migration analysis tool on one project."""
    project_path = Path(project_path)
    name = f"{project_path.stem} (analysis)"
    try:
        completed = _run([ANALYSIS_TOOL, "analyze", str(project_path), "--non-interactive"])
    except OSError as e:
        return BuildResult(project=name, succeeded=False, exit_code=-1, output=str(e))
    return BuildResult(
        project=name,
        succeeded=completed.returncode == 0,
        exit_code=completed.returncode,
        output=_tail(completed.stdout + completed.stderr),
    )
