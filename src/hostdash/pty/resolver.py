"""Shell resolution — which program counts as "the user's shell"."""

from __future__ import annotations

import logging
import os
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_UNIX_SHELL = "/bin/sh"
DEFAULT_WINDOWS_SHELL = "cmd.exe"

# Interactive login session, so rc files and the prompt behave normally
LOGIN_ARGS = ["-i", "-l"]


class ShellResolver(Protocol):
    def resolve(self) -> tuple[str, list[str]]: ...


class UnixShellResolver:
    """$SHELL, then the account database entry, then /bin/sh."""

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def resolve(self) -> tuple[str, list[str]]:
        shell = self._environ.get("SHELL", "")
        if shell.strip():
            return shell, list(LOGIN_ARGS)
        login_shell = self._login_shell()
        if login_shell:
            return login_shell, list(LOGIN_ARGS)
        logger.debug("No configured shell found, using %s", DEFAULT_UNIX_SHELL)
        return DEFAULT_UNIX_SHELL, list(LOGIN_ARGS)

    @staticmethod
    def _login_shell() -> str | None:
        try:
            import pwd

            entry = pwd.getpwuid(os.getuid())
        except (ImportError, KeyError, OSError) as e:
            logger.debug("Account database lookup failed: %s", e)
            return None
        return entry.pw_shell.strip() or None


class WindowsShellResolver:
    """%COMSPEC%, else cmd.exe. No arguments."""

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def resolve(self) -> tuple[str, list[str]]:
        comspec = self._environ.get("COMSPEC", "")
        return (comspec if comspec.strip() else DEFAULT_WINDOWS_SHELL), []


def resolver_for_platform(name: str | None = None) -> ShellResolver:
    """Pick the resolver for ``name`` (defaults to ``os.name``)."""
    if (name or os.name) == "nt":
        return WindowsShellResolver()
    return UnixShellResolver()


def resolve() -> tuple[str, list[str]]:
    """Resolve the current user's shell program and arguments."""
    return resolver_for_platform().resolve()
