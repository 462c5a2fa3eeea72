"""Service toolkit: rotating log files, structured logging, request context, a memory queue and middleware helpers."""

__version__ = "0.1.0"
__all__ = [
    "colors",
    "fileutil",
    "logger",
    "mcontext",
    "memqueue",
    "middleware",
    "rotatelogs",
    "specialerror",
    "sqllogger",
]