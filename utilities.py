import inspect
import time
from datetime import datetime, timezone
import os

import psutil
from rich import print as _print

# Mapping of logType to symbols
LOG_TYPE_SYMBOLS = {
    'SUCCESS': ('^^^', '^^^'),
    'FAILURE': ('###', '###'),
    'STATE': ('~~~', '~~~'),
    'INFO': ('---', '---'),
    'IMPORTANT': ('===', '==='),
    'CRITICAL': ('***', '***'),
    'EXCEPTION': ('!!!', '!!!'),
    'WARNING': ('(((', ')))'),
    'DEBUG': ('[[[', ']]]'),
    'ATTEMPT': ('???', '???'),
    'STARTING': ('>>>', '>>>'),
    'PROGRESS': ('vvv', 'vvv'),
    'COMPLETED': ('<<<', '<<<'),
    'HEADER': ('###', '###'),
}

# Mapping of logType to styles
LOG_TYPE_STYLES = {
    'SUCCESS': 'green',
    'FAILURE': 'red bold',
    'STATE': 'cyan',
    'INFO': 'blue',
    'IMPORTANT': 'magenta',
    'CRITICAL': 'red bold',
    'EXCEPTION': 'red bold',
    'WARNING': 'yellow',
    'DEBUG': 'white',
    'ATTEMPT': 'cyan',
    'STARTING': 'green',
    'PROGRESS': 'blue',
    'COMPLETED': 'green',
    'HEADER': 'bold magenta',
}

# DEBUG lines are dropped unless verbose logging is switched on
_QUIET_TYPES = {'DEBUG'}
_show_debug = False


def set_log_level(verbose: bool) -> None:
    """
    Enable or disable DEBUG output for every subsequent Print call.
    """
    global _show_debug
    _show_debug = verbose


def Print(logType: str, message: str) -> None:
    """
    Prints a log message with timestamp, function name, symbols wrapping the logType, and the message.
    """
    logTypeUpper = logType.upper()
    if logTypeUpper in _QUIET_TYPES and not _show_debug:
        return

    try:
        # Get current timestamp with microseconds
        current_time = time.time()
        timestamp = datetime.fromtimestamp(current_time, tz=timezone.utc).isoformat(timespec='microseconds').replace('+00:00', 'Z')

        before_symbol, after_symbol = LOG_TYPE_SYMBOLS.get(logTypeUpper, ('', ''))
        formattedLogType = f"{before_symbol} {logTypeUpper} {after_symbol}"

        style = LOG_TYPE_STYLES.get(logTypeUpper, '')
        if style:
            formattedLogType = f"[{style}]{formattedLogType}[/{style}]"

        # Caller of Print
        caller_frame = inspect.currentframe().f_back
        function_name = caller_frame.f_code.co_name if caller_frame else '<unknown>'

        functionNamePadding = 40
        paddedFunctionName = function_name.ljust(functionNamePadding)

        output_line = f"{timestamp} {formattedLogType} {paddedFunctionName} {message}"
        _print(output_line)

    except Exception as e:
        error_message = f"Something went wrong when attempting to print.\nError: {e}"
        print(error_message)


def human_size(num_bytes: int) -> str:
    """Format a byte count as B/KB/MB."""
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 ** 2:
        return f"{num_bytes / 1024:.1f} KB"
    return f"{num_bytes / (1024 ** 2):.2f} MB"


def CPU_and_Mem_usage() -> str:
    """
    Returns a string with the CPU usage and memory usage of the current process.
    """
    current_process = psutil.Process(os.getpid())
    cpu_usage = psutil.cpu_percent(interval=0.1)
    memory_info = current_process.memory_info()
    memory_usage_mb = memory_info.rss / (1024 ** 2)
    return f"CPU Usage: {cpu_usage}%, Process Memory Usage: {memory_usage_mb:.2f} MB"
