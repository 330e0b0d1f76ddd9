import logging
import sys
import json
import inspect
import time
from pathlib import Path
from functools import wraps
import traceback

from kanban_engine.core.config import get_settings
from kanban_engine.core.exceptions import KanbanError

# Console colours
BLUE = '\033[94m'
GREEN = '\033[92m'
YELLOW = '\033[93m'
RED = '\033[91m'
PURPLE = '\033[95m'
END = '\033[0m'

RESULT_PREVIEW_LIMIT = 1000
TRACKED_ARGS = ("card_id", "board_id", "actor_role")


def format_object(obj):
    """Render cards, keys and requests as indented JSON for the debug log"""
    if hasattr(obj, 'model_dump'):
        payload = obj.model_dump(mode="json")
    elif isinstance(obj, (list, dict, tuple, set)):
        payload = obj
    else:
        return str(obj)
    try:
        return json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(obj)


def _short_path(filename):
    marker = filename.rfind("kanban_engine")
    return filename[marker:] if marker != -1 else filename


class DebugLogger:
    """Engine debug logger.

    Debug lines carry the calling location; every line is coloured by level.
    When ``LOG_DIR`` is configured the same records also go to ``debug.log``.
    """

    def __init__(self, name="kanban_engine.debug", level=None):
        settings = get_settings()
        if level is None:
            level = logging.DEBUG if settings.DEBUG else logging.INFO

        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.propagate = False
        self.logger.handlers.clear()

        formatter = logging.Formatter('%(asctime)s %(levelname)-7s %(name)s: %(message)s')
        handlers = [logging.StreamHandler(sys.stdout)]
        if settings.LOG_DIR:
            log_dir = Path(settings.LOG_DIR)
            log_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_dir / "debug.log", encoding='utf-8'))
        for handler in handlers:
            handler.setFormatter(formatter)
            handler.setLevel(level)
            self.logger.addHandler(handler)

    def debug(self, message, *args, **kwargs):
        if not self.logger.isEnabledFor(logging.DEBUG):
            return
        caller = inspect.currentframe().f_back
        location = f"{_short_path(caller.f_code.co_filename)}:{caller.f_lineno} {caller.f_code.co_name}"
        self.logger.debug(f"{BLUE}[{location}]{END} {message}", *args, **kwargs)

    def info(self, message, *args, **kwargs):
        self.logger.info(f"{GREEN}{message}{END}", *args, **kwargs)

    def warning(self, message, *args, **kwargs):
        self.logger.warning(f"{YELLOW}{message}{END}", *args, **kwargs)

    def error(self, message, *args, **kwargs):
        self.logger.error(f"{RED}{message}{END}", *args, **kwargs)

    def log_exception(self, message="Unhandled exception"):
        """Error line with the traceback of the exception being handled"""
        exc_type, exc_value, exc_tb = sys.exc_info()
        if exc_type is None:
            self.error(message)
            return
        trace = ''.join(traceback.format_exception(exc_type, exc_value, exc_tb))
        self.error(f"{message}: {exc_type.__name__}: {exc_value}\n{trace}")


def _context(func, args, kwargs):
    bound = dict(zip(inspect.getfullargspec(func).args, args))
    bound.update(kwargs)
    bound.pop('self', None)
    bound.pop('cls', None)
    tags = " ".join(f"{name}={bound[name]}" for name in TRACKED_ARGS if bound.get(name) is not None)
    return bound, tags


class _Call:
    """Timing and reporting of one decorated call"""

    def __init__(self, logger, func, args, kwargs):
        self.logger = logger
        self.name = func.__qualname__
        params, tags = _context(func, args, kwargs)
        self.label = f"{self.name} [{tags}]" if tags else self.name
        self.started = time.perf_counter()
        if params:
            logger.debug(f"{PURPLE}-> {self.label}{END} {format_object(params)}")
        else:
            logger.debug(f"{PURPLE}-> {self.label}{END}")

    def finished(self, result):
        elapsed = time.perf_counter() - self.started
        rendered = "" if result is None else format_object(result)
        if len(rendered) > RESULT_PREVIEW_LIMIT:
            rendered = rendered[:RESULT_PREVIEW_LIMIT] + "... [truncated]"
        self.logger.debug(f"{PURPLE}<- {self.label}{END} {elapsed:.4f}s {rendered}".rstrip())
        return result

    def failed(self, error):
        if isinstance(error, KanbanError):
            self.logger.warning(f"{self.name} rejected: {error.kind}: {error.detail}")
        else:
            self.logger.log_exception(f"Error in {self.label}")


def log_function(logger=None):
    """Decorator tracing entry, exit and failures of store operations.

    Domain errors (``KanbanError``) are logged as rejections at warning
    level; anything else is logged with its traceback. Both are re-raised.
    Plain and coroutine functions are supported.
    """
    def decorator(func):
        active_logger = logger or debug_logger

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                call = _Call(active_logger, func, args, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    call.failed(e)
                    raise
                return call.finished(result)

            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            call = _Call(active_logger, func, args, kwargs)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                call.failed(e)
                raise
            return call.finished(result)

        return wrapper

    return decorator


debug_logger = DebugLogger()
