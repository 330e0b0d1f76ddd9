from kanban_engine.logs.debug_log import debug_logger, log_function, DebugLogger
from kanban_engine.logs.engine_log import engine_logger
