"""A log file writer that rotates its output file by time and size."""

from __future__ import annotations

import enum
import glob
import os
import re
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import BinaryIO, Callable, Optional, Union

from imtools.fileutil import Clock, _compile_pattern, create_file, generate_fn


def local_clock() -> datetime:
    """Return the current time in the local time zone."""
    return datetime.now().astimezone()


def utc_clock() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


def location_clock(tz: tzinfo) -> Clock:
    """Return a clock that reports the current time in the given zone."""

    def clock() -> datetime:
        return datetime.now(tz)

    return clock


class EventType(enum.IntEnum):
    INVALID = 0
    FILE_ROTATED = 1


@dataclass(frozen=True)
class FileRotatedEvent:
    """Sent to the handler when output moves to a new file."""

    previous_file: str
    current_file: str

    @property
    def type(self) -> EventType:
        return EventType.FILE_ROTATED


Handler = Callable[[FileRotatedEvent], None]

_PATTERN_CONVERSIONS = (
    re.compile(r"%[%+A-Za-z]"),
    re.compile(r"\*+"),
)


def glob_pattern(pattern: str) -> str:
    """Turn a strftime file pattern into a glob matching every file it can produce."""
    for regex in _PATTERN_CONVERSIONS:
        pattern = regex.sub("*", pattern)
    return pattern


class RotateLogs:
    """A writable log file that switches to a new file as time passes or size grows."""

    def __init__(
        self,
        pattern: Union[str, os.PathLike],
        *,
        clock: Clock = local_clock,
        handler: Optional[Handler] = None,
        link_name: str = "",
        max_age: timedelta = timedelta(0),
        rotation_time: timedelta = timedelta(hours=24),
        rotation_size: int = 0,
        rotation_count: int = 0,
        force_new_file: bool = False,
    ) -> None:
        pattern = os.fspath(pattern)
        try:
            _compile_pattern(pattern)
        except ValueError as exc:
            raise ValueError(f"invalid strftime pattern: {exc}") from exc
        if rotation_count < 0:
            raise ValueError("rotation_count must not be negative")

        max_age = max(max_age, timedelta(0))
        if max_age > timedelta(0) and rotation_count > 0:
            raise ValueError("options max_age and rotation_count cannot be both set")
        if max_age == timedelta(0) and rotation_count == 0:
            max_age = timedelta(days=7)

        self._pattern = pattern
        self._glob_pattern = glob_pattern(pattern)
        self._clock = clock
        self._handler = handler
        self._link_name = link_name
        self._max_age = max_age
        self._rotation_time = max(rotation_time, timedelta(0))
        self._rotation_size = max(rotation_size, 0)
        self._rotation_count = rotation_count
        self._force_new_file = force_new_file

        self._lock = threading.Lock()
        self._out: Optional[BinaryIO] = None
        self._cur_fn = ""
        self._cur_base_fn = ""
        self._generation = 0

    def write(self, data: Union[bytes, str]) -> int:
        """Write to the current file, rotating first if it is due; return the byte count."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        with self._lock:
            out = self._get_writer(use_generational_names=False)
            if out is None:
                raise ValueError("I/O operation on closed log file")
            return out.write(data)

    def rotate(self) -> None:
        """Force a switch to a new file, adding a numeric suffix if the name is taken."""
        with self._lock:
            self._get_writer(use_generational_names=True)

    def close(self) -> None:
        """Close the current output file."""
        with self._lock:
            if self._out is not None:
                self._out.close()
                self._out = None

    def current_filename(self) -> str:
        """Return the name of the file currently written to."""
        with self._lock:
            return self._cur_fn

    def __enter__(self) -> "RotateLogs":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _current_size(self) -> Optional[int]:
        if not self._cur_fn:
            return None
        try:
            return os.stat(self._cur_fn).st_size
        except OSError:
            return None

    def _get_writer(self, use_generational_names: bool) -> Optional[BinaryIO]:
        generation = self._generation
        previous_fn = self._cur_fn

        base_fn = generate_fn(self._pattern, self._clock, self._rotation_time)
        filename = base_fn
        force_new = False

        size = self._current_size()
        size_rotation = (
            size is not None and 0 < self._rotation_size <= size
        )
        if size_rotation:
            force_new = True

        if base_fn != self._cur_base_fn:
            generation = 0
            if self._force_new_file:
                force_new = True
        else:
            if not use_generational_names and not size_rotation:
                return self._out
            force_new = True
            generation += 1

        if force_new:
            while True:
                name = filename if generation == 0 else f"{filename}.{generation}"
                if not os.path.exists(name):
                    filename = name
                    break
                generation += 1

        fh = create_file(filename)
        try:
            self._rotate_files(filename)
        except OSError:
            # A failed cleanup or link update must not stop logging.
            pass

        if self._out is not None:
            self._out.close()
        self._out = fh
        self._cur_base_fn = base_fn
        self._cur_fn = filename
        self._generation = generation

        if self._handler is not None:
            event = FileRotatedEvent(previous_file=previous_fn, current_file=filename)
            threading.Thread(target=self._handler, args=(event,), daemon=True).start()

        return fh

    def _rotate_files(self, filename: str) -> None:
        lock_fn = filename + "_lock"
        fd = os.open(lock_fn, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        try:
            if self._link_name:
                self._update_link(filename)
            for path in self._files_to_purge():
                try:
                    os.remove(path)
                except OSError:
                    pass
        finally:
            os.close(fd)
            try:
                os.remove(lock_fn)
            except OSError:
                pass

    def _update_link(self, filename: str) -> None:
        tmp_link = filename + "_symlink"
        link_dir = os.path.dirname(self._link_name) or "."
        base_dir = os.path.dirname(filename) or "."

        link_dest = filename
        if base_dir in self._link_name:
            link_dest = os.path.relpath(filename, link_dir)

        os.symlink(link_dest, tmp_link)
        os.makedirs(link_dir, mode=0o755, exist_ok=True)
        os.replace(tmp_link, self._link_name)

    def _files_to_purge(self) -> list[str]:
        cutoff = (self._clock() - self._max_age).timestamp()
        candidates = []
        for path in sorted(glob.glob(self._glob_pattern)):
            if path.endswith("_lock") or path.endswith("_symlink"):
                continue
            try:
                st = os.stat(path)
                is_link = os.path.islink(path)
            except OSError:
                continue
            if self._max_age > timedelta(0) and st.st_mtime > cutoff:
                continue
            if self._rotation_count > 0 and is_link:
                continue
            candidates.append(path)

        if self._rotation_count > 0:
            if self._rotation_count >= len(candidates):
                return []
            candidates = candidates[: len(candidates) - self._rotation_count]
        return candidates