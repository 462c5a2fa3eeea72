# imtools

A small toolkit for backend services. It has no third-party dependencies.

| Module | What it provides |
| --- | --- |
| `imtools.fileutil` | strftime-style file names truncated to a rotation period, and safe log file creation |
| `imtools.rotatelogs` | `RotateLogs`, a log file writer that rotates by time or size and purges old files |
| `imtools.logger` | `StructuredLogger` with console or JSON output, request-context fields and package-wide `z*` functions |
| `imtools.colors` | ANSI colours for level labels |
| `imtools.mcontext` | an immutable `Context` that carries operation, user, platform and connection IDs |
| `imtools.memqueue` | `MemoryQueue`, a bounded task queue drained by worker threads |
| `imtools.specialerror` | `CodeError` and a registry that maps exceptions to coded errors |
| `imtools.middleware` | interceptor chaining, filling of `None` containers in dataclasses, error trace formatting |
| `imtools.sqllogger` | `SqlLogger` for SQL tracing and `ZkLogger` for ZooKeeper client output, both routed to the package logger |

## Installation

```
pip install .
```

## Rotating log files

```python
from datetime import timedelta
from imtools.rotatelogs import RotateLogs

with RotateLogs("logs/app.%Y-%m-%d", rotation_count=7) as out:
    out.write(b"service started\n")
    print(out.current_filename())  # logs/app.<date>
    out.rotate()                   # force a new file: logs/app.<date>.1
```

Keyword options of `RotateLogs`:

- `clock`: a callable that returns the current `datetime`. The default is `local_clock`. `utc_clock` and `location_clock(tz)` are also provided.
- `rotation_time`: the period that file names are truncated to. The default is 24 hours.
- `rotation_size`: start a new generational file once the current file reaches this many bytes. `0` turns this off.
- `max_age` / `rotation_count`: purge files older than `max_age`, or keep only the newest `rotation_count` files. The two cannot both be set, and a `ValueError` is raised if they are. When neither is set, `max_age` defaults to 7 days.
- `link_name`: keep a symlink at this path that points to the current file.
- `force_new_file`: never append to an existing file on the first write; take the next free `.N` name instead.
- `handler`: called in a background thread with a `FileRotatedEvent(previous_file, current_file)` each time output moves to a new file.

`glob_pattern(pattern)` turns a strftime pattern into the glob that matches every file the pattern can produce. The rotation code uses that glob when it purges old files.

`imtools.fileutil.generate_fn(pattern, clock, rotation_time)` builds a file name from the clock's wall time truncated to the rotation period. `create_file(filename)` opens a file for appending and creates its parent directories as needed.

## Structured logging

```python
from imtools import logger, mcontext

logger.init_logger_from_config(
    "service", "api", "", "", logger.Level.DEBUG,
    True, False, "./logs", 1, 24, "1.0.0", False,
)

ctx = mcontext.new_ctx("op-123")
logger.zinfo(ctx, "user logged in", "userID", "u1")
logger.zwarn(ctx, "slow request", None, "elapsed", 1.2)
```

The arguments, in order, are: logger prefix name, module name, SDK type, platform name, level, write to stdout, JSON output, log directory, rotate count, rotation time in hours, module version, and simplify.

- Levels run from `Level.FATAL` (0) up to `Level.DEBUG_WITH_SQL` (6). Records below the configured level are dropped.
- Console records carry a timestamp, a coloured level, the PID, the module name and version, the caller, a message padded to 50 characters, and the key/value pairs as JSON. JSON records hold the same data as one object.
- Context fields that are present (remote address, platform, trigger ID, connection ID, operation ID, user ID) are put in front of the key/value pairs.
- `zdebug`, `zinfo`, `zwarn`, `zerror` and `zpanic` log through the package logger. If `init_logger_from_config` has not been called, the first call sets up a default logger. That logger writes debug-level console records to stdout and to daily files under `./logs/`.
- `cinfo` logs through a stdout-only logger. It does nothing until `init_console_logger` has been called.
- `sdk_log(ctx, level, file, line, msg, err, keys_and_values)` tags a record with `native_caller` set to `[file:line]`.
- With simplify on, values that implement `LogFormatter` are logged as their `format()` result.

## Request context

```python
from imtools import mcontext

ctx = mcontext.set_op_user_id(mcontext.new_ctx("op-1"), "user-1")
info = mcontext.get_ctx_infos(ctx)
print(info.operation_id, info.op_user_id)
```

The `get_*` functions return `""` when a value is missing. `get_ctx_infos` requires an operation ID. `get_must_ctx_info` also requires a user ID and a platform. Both raise `MissingContextError` when a required value is missing. `with_must_info_ctx(values)` builds a context from values given in this order: operation ID, user ID, platform, connection ID.

## Memory queue

```python
import threading
from imtools.memqueue import MemoryQueue

with MemoryQueue(worker_count=4, buffer_size=100) as queue:
    queue.push(lambda: print("work"))             # waits up to 3 s for room
    queue.push_nowait(lambda: print("now"))       # fails at once if full
    cancel = threading.Event()
    queue.push_until(lambda: print("later"), cancel)
```

- A push that finds no room raises `QueueFullError`.
- A push to a stopped queue raises `QueueStoppedError`.
- A cancelled push raises `concurrent.futures.CancelledError`. For `batch_push_until`, the raised error's `pushed` attribute holds how many tasks were queued.
- `stop()` waits for pending pushes, runs the queued tasks and ends the workers.

## Middleware helpers

- `intercept_chain(*interceptors)` combines interceptors of the form `interceptor(ctx, req, info, handler)` into one. The first one given runs outermost.
- `replace_nil(obj)` walks a dataclass tree in place. It sets `None` fields typed as lists to `[]` and `None` fields typed as dicts to `{}`. It leaves `Optional` fields and fields whose names start with an underscore as they are.
- `format_error(err)` returns a new exception whose message includes the call path from `err`'s traceback. An exception without a traceback is returned unchanged.
- `simplify_func_name(name)` reduces a qualified function name to its last component.
- `imtools.specialerror` keeps an ordered list of handlers. `err_code(err)` returns `err` itself if it is a `CodeError`. Otherwise it returns the first non-`None` handler result, or `None` if no handler matches. `add_replace(target, code_err)` maps one exact exception object to a coded error. `ErrorCodeRegistry` provides the same behaviour as a separate instance.

## SQL and ZooKeeper adapters

```python
from datetime import datetime, timedelta
from imtools.sqllogger import SqlLogger, SqlLogLevel

sql_log = SqlLogger(SqlLogLevel.WARN, True, timedelta(milliseconds=200))
begin = datetime.now()
sql_log.trace(None, begin, lambda: ("SELECT 1", 1), None)
```

`trace` behaves according to the level, the error and the elapsed time:

- It logs errors at error level. A `RecordNotFoundError` is skipped when `ignore_record_not_found_error` is set.
- It logs statements slower than the threshold at warn level.
- At `SqlLogLevel.INFO`, it logs every statement at debug level.

`ZkLogger().printf(fmt, *args)` logs `%`-formatted text at info level.

## What this package does not do

The package has no network parts. It contains no message-broker producer or consumer, no HTTP or RPC server, and no token handling. `intercept_chain` and the error-code mapping work on plain callables and exceptions, so you have to connect them to a transport yourself. The package also has no command-line program.

## Running the tests

```
pip install .[test]
pytest
```