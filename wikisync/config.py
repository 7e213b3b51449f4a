"""Configuration management for wikisync."""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List

from dotenv import load_dotenv

from .platform import get_platform_specific_defaults, normalize_path, validate_git_availability
from .git_sync.interface import DefaultGitInfo, GitUserInfo


@dataclass
class Config:
    """Configuration for the sync tools, validated on construction."""

    # Repository
    repo_dir: Path = field(default_factory=lambda: Path.home() / ".wikisync" / "wiki")
    remote_url: Optional[str] = None

    # Identity used for commits and for the credential embedded in the remote URL
    git_user_name: str = DefaultGitInfo.git_user_name
    email: str = DefaultGitInfo.email
    branch: str = DefaultGitInfo.branch
    remote: str = DefaultGitInfo.remote
    access_token: Optional[str] = None

    # Retry policy for network operations
    git_retry_attempts: int = 3
    git_retry_delay: float = 0.5

    # Logging
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.repo_dir, str):
            self.repo_dir = Path(self.repo_dir)
        self.repo_dir = normalize_path(self.repo_dir)

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        self.log_level = self.log_level.upper()
        if self.log_level not in valid_log_levels:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {valid_log_levels}")

        if self.git_retry_attempts < 1:
            raise ValueError("git_retry_attempts must be at least 1")

        if self.git_retry_delay < 0:
            raise ValueError("git_retry_delay must be non-negative")

        if not self.branch:
            raise ValueError("branch must not be empty")

        if not self.remote:
            raise ValueError("remote must not be empty")

    def default_git_info(self) -> DefaultGitInfo:
        """Fallback identity used when a call carries no user info."""
        return DefaultGitInfo(
            git_user_name=self.git_user_name,
            email=self.email,
            branch=self.branch,
            remote=self.remote,
        )

    def user_info(self) -> GitUserInfo:
        """Identity and credential for credentialed operations."""
        return GitUserInfo(
            git_user_name=self.git_user_name,
            email=self.email,
            branch=self.branch,
            remote=self.remote,
            access_token=self.access_token,
        )


def load_configuration() -> Config:
    """Load configuration from environment variables (and a .env file) with platform-specific defaults."""
    load_dotenv()
    platform_defaults = get_platform_specific_defaults()

    try:
        return Config(
            repo_dir=Path(os.getenv("WIKISYNC_DIR", str(platform_defaults['repo_dir']))),
            remote_url=os.getenv("WIKISYNC_REMOTE_URL") or None,
            git_user_name=os.getenv("WIKISYNC_USER_NAME", DefaultGitInfo.git_user_name),
            email=os.getenv("WIKISYNC_EMAIL", DefaultGitInfo.email),
            branch=os.getenv("WIKISYNC_BRANCH", DefaultGitInfo.branch),
            remote=os.getenv("WIKISYNC_REMOTE", DefaultGitInfo.remote),
            access_token=os.getenv("WIKISYNC_ACCESS_TOKEN") or None,
            log_level=os.getenv("WIKISYNC_LOG_LEVEL", platform_defaults['log_level']),
            git_retry_attempts=int(os.getenv("WIKISYNC_GIT_RETRY_ATTEMPTS", str(platform_defaults['git_retry_attempts']))),
            git_retry_delay=float(os.getenv("WIKISYNC_GIT_RETRY_DELAY", str(platform_defaults['git_retry_delay']))),
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")


def validate_configuration(config: Config) -> List[str]:
    """Validate configuration and return ERROR:/WARNING: prefixed issues."""
    errors = []

    git_available, git_error = validate_git_availability()
    if not git_available:
        errors.append(f"ERROR: Git not available: {git_error}")

    if config.repo_dir.exists() and not config.repo_dir.is_dir():
        errors.append(f"ERROR: Repository path is not a directory: {config.repo_dir}")

    if config.remote_url:
        if not config.remote_url.startswith(("http://", "https://", "git@", "ssh://", "/", "file://")):
            errors.append(f"WARNING: Git remote URL may be invalid: {config.remote_url}")
        elif not config.remote_url.startswith("https://"):
            errors.append("WARNING: Access token is only embedded into https:// remote URLs")
        if not config.access_token:
            errors.append("WARNING: No access token configured, only commit-only sync will work")
    else:
        logging.getLogger('wikisync.config').debug("No remote URL configured, running in local commit mode")

    return errors
