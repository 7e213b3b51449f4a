"""Cross-platform helpers for locating and running git."""

import platform
import subprocess
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, Union


class PlatformType(Enum):
    """Supported platform types."""
    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"
    UNKNOWN = "unknown"


def detect_platform() -> PlatformType:
    """Detect the current platform."""
    system = platform.system().lower()

    if system == "windows":
        return PlatformType.WINDOWS
    elif system == "darwin":
        return PlatformType.MACOS
    elif system == "linux":
        return PlatformType.LINUX
    else:
        return PlatformType.UNKNOWN


def normalize_path(path: Union[str, Path]) -> Path:
    """
    Normalize a path for the current platform.

    Args:
        path: Path to normalize

    Returns:
        Absolute Path with ``~`` expanded
    """
    if isinstance(path, str):
        path = Path(path)

    return path.expanduser().resolve()


def get_platform_specific_defaults() -> Dict[str, Any]:
    """
    Get platform-specific configuration defaults.

    Returns:
        Dictionary of platform-specific defaults
    """
    platform_type = detect_platform()

    defaults = {
        'repo_dir': Path.home() / ".wikisync" / "wiki",
        'log_level': "INFO",
        'git_retry_attempts': 3,
        'git_retry_delay': 0.5,
    }

    if platform_type == PlatformType.WINDOWS:
        # Antivirus scanners on Windows hold .git files open for a while
        defaults.update({
            'git_retry_attempts': 5,
            'git_retry_delay': 1.5,
        })
    elif platform_type == PlatformType.MACOS:
        defaults.update({
            'git_retry_delay': 0.8,
        })

    return defaults


def get_git_executable() -> str:
    """
    Get the git executable name for the current platform.

    Returns:
        Git executable name
    """
    if detect_platform() == PlatformType.WINDOWS:
        return "git.exe"
    return "git"


def validate_git_availability() -> tuple[bool, Optional[str]]:
    """
    Validate that git is available on the current platform.

    Returns:
        Tuple of (is_available, error_message)
    """
    git_cmd = get_git_executable()

    try:
        result = subprocess.run(
            [git_cmd, "--version"],
            capture_output=True,
            text=True,
            timeout=10
        )

        if result.returncode == 0:
            return True, None
        else:
            return False, f"Git command failed: {result.stderr}"

    except FileNotFoundError:
        return False, f"Git executable '{git_cmd}' not found"
    except subprocess.TimeoutExpired:
        return False, "Git command timed out"
    except OSError as e:
        return False, f"Error checking Git availability: {e}"
