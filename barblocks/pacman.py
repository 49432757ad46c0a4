"""Block showing pending pacman and AUR package updates."""

from __future__ import annotations

import os
import re
import shutil
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from barblocks.template import (
    BlockError,
    MouseButton,
    State,
    Widget,
    placeholders,
    render,
)

_BLOCK = "pacman"
_DEFAULT_FORMAT = "{pacman}"


class WatchedKind(Enum):
    """Which package sources the block has to query."""

    NONE = "none"
    PACMAN = "pacman"
    AUR = "aur"
    BOTH = "both"


@dataclass(frozen=True)
class Watched:
    """The sources to watch, with the AUR command where one is needed."""

    kind: WatchedKind
    aur_command: str | None = None


def watched(format, format_singular, format_up_to_date, aur_command):
    """Work out which sources the given formats refer to."""
    used = set()
    for fmt in (format, format_singular, format_up_to_date):
        used.update(placeholders(fmt))

    aur = "aur" in used
    pacman = "pacman" in used or "count" in used
    both = "both" in used

    if both or (pacman and aur):
        if aur_command is None:
            raise BlockError(
                _BLOCK,
                "{aur} or {both} found in format string but no aur_command supplied",
            )
        return Watched(WatchedKind.BOTH, aur_command)
    if pacman:
        return Watched(WatchedKind.PACMAN)
    if aur:
        if aur_command is None:
            raise BlockError(
                _BLOCK, "{aur} found in format string but no aur_command supplied"
            )
        return Watched(WatchedKind.AUR, aur_command)
    return Watched(WatchedKind.NONE)


def run_command(command):
    """Run ``command`` through the shell, discarding its output, and wait."""
    try:
        process = subprocess.Popen(["sh", "-c", command], stdout=subprocess.DEVNULL)
    except OSError as exc:
        raise BlockError(_BLOCK, f"Failed to run command '{command}'") from exc
    try:
        process.wait()
    except OSError as exc:
        raise BlockError(_BLOCK, f"Failed to wait for command '{command}'") from exc


def has_fake_root():
    """Whether the ``fakeroot`` command is available."""
    return shutil.which("fakeroot") is not None


def _check_fakeroot_command_exists():
    if not has_fake_root():
        raise BlockError(_BLOCK, "fakeroot not found")


def get_updates_db_dir():
    """Directory holding the private copy of the sync database."""
    override = os.environ.get("CHECKUPDATES_DB")
    if override is not None:
        return override
    tmp_dir = os.environ.get("TMPDIR") or "/tmp"
    user = os.environ.get("USER", "")
    return f"{tmp_dir}/checkup-db-{user}"


def get_pacman_available_updates():
    """Sync a private database copy and list the pending pacman updates."""
    updates_db = get_updates_db_dir()
    db_path = Path(os.environ.get("DBPath", "/var/lib/pacman/"))

    try:
        Path(updates_db).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BlockError(
            _BLOCK, f"Failed to create checkup-db path '{updates_db}'"
        ) from exc

    local_cache = Path(updates_db) / "local"
    if not local_cache.exists():
        try:
            local_cache.symlink_to(db_path / "local")
        except OSError as exc:
            raise BlockError(_BLOCK, "Failed to created required symlink") from exc

    run_command(
        f'fakeroot -- pacman -Sy --dbpath "{updates_db}" --logfile /dev/null'
    )

    env = dict(os.environ, LC_ALL="C")
    try:
        result = subprocess.run(
            ["sh", "-c", f'fakeroot pacman -Qu --dbpath "{updates_db}"'],
            capture_output=True,
            env=env,
            check=False,
        )
    except OSError as exc:
        raise BlockError(
            _BLOCK, "There was a problem running the pacman commands"
        ) from exc
    try:
        return result.stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise BlockError(
            _BLOCK,
            "There was a problem while converting the output of the pacman "
            "command to a string",
        ) from exc


def get_aur_available_updates(aur_command):
    """Run the AUR helper command and return its output."""
    try:
        result = subprocess.run(
            ["sh", "-c", aur_command], capture_output=True, check=False
        )
    except OSError as exc:
        raise BlockError(_BLOCK, f"aur command: {aur_command} failed") from exc
    try:
        return result.stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise BlockError(
            _BLOCK,
            "There was a problem while converting the aur command output to a string",
        ) from exc


def get_update_count(updates):
    """Count update lines that are not marked as ignored."""
    return sum(1 for line in updates.splitlines() if "[ignored]" not in line)


def has_matching_update(updates, regex):
    """Whether any update line matches ``regex``."""
    pattern = re.compile(regex) if isinstance(regex, str) else regex
    return any(pattern.search(line) for line in updates.splitlines())


def _compile(pattern, what):
    if pattern is None:
        return None
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise BlockError(_BLOCK, f"invalid {what} updates regex") from exc


class Pacman:
    """Shows how many package updates are pending."""

    def __init__(
        self,
        block_id,
        interval=600.0,
        format=None,
        format_singular=None,
        format_up_to_date=None,
        warning_updates_regex=None,
        critical_updates_regex=None,
        aur_command=None,
        hide_when_uptodate=False,
    ):
        self.id = block_id
        self.update_interval = interval
        self.widget = Widget(icon="update")
        self.format = format or _DEFAULT_FORMAT
        self.format_singular = format_singular or _DEFAULT_FORMAT
        self.format_up_to_date = format_up_to_date or _DEFAULT_FORMAT
        self.warning_updates_regex = _compile(warning_updates_regex, "warning")
        self.critical_updates_regex = _compile(critical_updates_regex, "critical")
        self.watched = watched(
            self.format, self.format_singular, self.format_up_to_date, aur_command
        )
        self.uptodate = False
        self.hide_when_uptodate = hide_when_uptodate

    def _matches(self, regex, outputs):
        return regex is not None and any(
            has_matching_update(output, regex) for output in outputs
        )

    def update(self):
        """Query the watched sources; return the delay until the next update."""
        kind = self.watched.kind
        outputs: list[str] = []
        values: dict[str, int] = {}
        total = 0

        if kind is WatchedKind.PACMAN:
            _check_fakeroot_command_exists()
            pacman_updates = get_pacman_available_updates()
            total = get_update_count(pacman_updates)
            values = {"count": total, "pacman": total}
            outputs = [pacman_updates]
        elif kind is WatchedKind.AUR:
            aur_updates = get_aur_available_updates(self.watched.aur_command)
            total = get_update_count(aur_updates)
            values = {"aur": total}
            outputs = [aur_updates]
        elif kind is WatchedKind.BOTH:
            _check_fakeroot_command_exists()
            pacman_updates = get_pacman_available_updates()
            aur_updates = get_aur_available_updates(self.watched.aur_command)
            pacman_count = get_update_count(pacman_updates)
            aur_count = get_update_count(aur_updates)
            total = pacman_count + aur_count
            values = {
                "count": pacman_count,
                "pacman": pacman_count,
                "aur": aur_count,
                "both": total,
            }
            outputs = [aur_updates, pacman_updates]

        warning = self._matches(self.warning_updates_regex, outputs)
        critical = self._matches(self.critical_updates_regex, outputs)

        if total == 0:
            fmt = self.format_up_to_date
        elif total == 1:
            fmt = self.format_singular
        else:
            fmt = self.format
        self.widget.text = render(fmt, values)

        if total == 0:
            self.widget.state = State.IDLE
        elif critical:
            self.widget.state = State.CRITICAL
        elif warning:
            self.widget.state = State.WARNING
        else:
            self.widget.state = State.INFO

        self.uptodate = total == 0
        return self.update_interval

    def view(self):
        if self.uptodate and self.hide_when_uptodate:
            return []
        return [self.widget]

    def click(self, button):
        if button is MouseButton.LEFT:
            self.update()