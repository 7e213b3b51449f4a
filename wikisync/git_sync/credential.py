"""Embed and remove inline https credentials on a named remote."""

import re
from contextlib import contextmanager
from typing import Generator, Optional

from .engine import run_git
from .inspect import get_remote_url

_HTTPS_URL = re.compile(r"^https://", re.IGNORECASE)
# userinfo of any form, up to the last @ before the path
_HTTPS_USERINFO = re.compile(r"^https://[^/\s]*@", re.IGNORECASE)
# only a "user:secret@" pair counts as a credential
_HTTPS_CREDENTIAL = re.compile(r"^(https://)[^/\s:@]*:[^/\s]*@", re.IGNORECASE)


def _clean_url(url: str) -> str:
    return url.replace("\n", "").strip()


def get_git_url_with_credential(raw_url: str, username: str, access_token: str) -> str:
    """
    Insert ``username:access_token@`` after the scheme of an https URL.

    URLs that are not https (ssh, local paths) and https URLs that already
    carry userinfo are returned unchanged. The scheme keeps its spelling.
    """
    url = _clean_url(raw_url)
    scheme = _HTTPS_URL.match(url)
    if not scheme or _HTTPS_USERINFO.match(url):
        return url
    prefix = scheme.group(0)
    return f"{prefix}{username}:{access_token}@{url[len(prefix):]}"


def get_git_url_without_credential(url_with_credential: str) -> str:
    return _HTTPS_CREDENTIAL.sub(r"\1", _clean_url(url_with_credential), count=1)


def credential_on(
    wiki_folder_path: str,
    remote_url: str,
    username: str,
    access_token: str,
    remote_name: str = "origin",
) -> None:
    """Point ``remote_name`` at ``remote_url`` with credentials, adding the remote if needed."""
    git_url_with_credential = get_git_url_with_credential(remote_url, username, access_token)
    remotes = run_git(["remote"], wiki_folder_path).stdout.split("\n")
    if remote_name not in remotes:
        run_git(["remote", "add", remote_name, git_url_with_credential], wiki_folder_path)
    run_git(["remote", "set-url", remote_name, git_url_with_credential], wiki_folder_path)


def credential_off(wiki_folder_path: str, remote_name: str = "origin", remote_url: Optional[str] = None) -> None:
    """
    Set ``remote_name`` back to the credential-free URL.

    ``remote_url`` is restored as given; without it the credential is
    stripped from the URL currently configured.
    """
    if remote_url is not None:
        url = _clean_url(remote_url)
    else:
        url = get_git_url_without_credential(get_remote_url(wiki_folder_path, remote_name))
    if not url:
        return
    run_git(["remote", "set-url", remote_name, url], wiki_folder_path)


@contextmanager
def credential_bracket(
    wiki_folder_path: str,
    remote_url: str,
    username: str,
    access_token: str,
    remote_name: str = "origin",
) -> Generator[None, None, None]:
    """
    Keep credentials on the remote only for the duration of the block.

    ``credential_off`` runs on every exit path, including exceptions, so the
    token never stays in ``.git/config``.
    """
    credential_on(wiki_folder_path, remote_url, username, access_token, remote_name)
    try:
        yield
    finally:
        credential_off(wiki_folder_path, remote_name, remote_url)
