#!/usr/bin/env python3
"""Pretty-print the recipe API's JSON logs.

Usage:
    uvicorn recipe_server.app:app 2>&1 | python scripts/format_logs.py
    python scripts/format_logs.py --slow-only < server.log
"""

import argparse
import json
import re
import sys
from datetime import datetime
from typing import Any, Dict, Optional


class Colors:
    """ANSI color codes for terminal output."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'
    WHITE = '\033[37m'
    BRIGHT_RED = '\033[91m'
    BRIGHT_GREEN = '\033[92m'
    BRIGHT_YELLOW = '\033[93m'
    BRIGHT_BLUE = '\033[94m'
    BRIGHT_MAGENTA = '\033[95m'
    BRIGHT_CYAN = '\033[96m'
    BRIGHT_WHITE = '\033[97m'
    BG_RED = '\033[41m'


# Shown first, in this order, after the main line
IMPORTANT_FIELDS = [
    'request_id',
    'error_id',
    'operation_type',
    'operation_id',
    'method',
    'endpoint',
    'status_code',
    'duration_ms',
    'threshold_ms',
]
SKIP_FIELDS = {'timestamp', 'level', 'message', 'module', 'function'}


def format_timestamp(timestamp_str: str) -> str:
    """Format ISO timestamp as HH:MM:SS.mmm."""
    try:
        dt = datetime.fromisoformat(timestamp_str.replace('Z', '+00:00'))
        return f"{Colors.DIM}{dt.strftime('%H:%M:%S.%f')[:-3]}{Colors.RESET}"
    except ValueError:
        return f"{Colors.DIM}{timestamp_str}{Colors.RESET}"


def get_level_color(level: str) -> str:
    level = level.upper()
    if level == 'ERROR':
        return f"{Colors.BG_RED}{Colors.WHITE}{Colors.BOLD}"
    elif level in ('WARNING', 'WARN'):
        return f"{Colors.BRIGHT_YELLOW}{Colors.BOLD}"
    elif level == 'INFO':
        return Colors.BRIGHT_CYAN
    elif level == 'DEBUG':
        return Colors.DIM
    return Colors.WHITE


def duration_color(duration_ms: float, threshold_ms: Optional[float] = None) -> str:
    """Red above the operation's threshold (or 1s), yellow above half of it."""
    limit = threshold_ms or 1000
    if duration_ms > limit:
        return Colors.BRIGHT_RED
    if duration_ms > limit / 2:
        return Colors.BRIGHT_YELLOW
    return Colors.BRIGHT_GREEN


def status_color(status: int) -> str:
    if status < 400:
        return Colors.BRIGHT_GREEN
    if status < 500:
        return Colors.BRIGHT_YELLOW
    return Colors.BRIGHT_RED


def highlight_message(message: str) -> str:
    message = re.sub(r'\[(PERF SLOW|SLOW REQUEST)\]', f'{Colors.BRIGHT_RED}[\\1]{Colors.RESET}', message)
    message = re.sub(r'\[(PERF|ERROR[^\]]*)\]', f'{Colors.BRIGHT_MAGENTA}[\\1]{Colors.RESET}', message)
    message = re.sub(r'\b(GET|POST|PUT|DELETE|PATCH|OPTIONS)\b',
                     f'{Colors.BOLD}{Colors.BRIGHT_BLUE}\\1{Colors.RESET}', message)
    return message


def format_field(field: str, value: Any, log_dict: Dict[str, Any]) -> str:
    label = f"{Colors.DIM}{field}:{Colors.RESET}"
    if field == 'duration_ms':
        color = duration_color(float(value), log_dict.get('threshold_ms'))
        return f"{label} {color}{float(value):.1f}ms{Colors.RESET}"
    if field == 'status_code':
        return f"{label} {status_color(int(value))}{value}{Colors.RESET}"
    str_value = value if isinstance(value, str) else json.dumps(value, default=str)
    if len(str_value) > 100:
        str_value = str_value[:97] + '...'
    return f"{label} {Colors.BRIGHT_WHITE}{str_value}{Colors.RESET}"


def format_json_log(log_dict: Dict[str, Any]) -> str:
    """Format one structured log entry."""
    parts = []
    if 'timestamp' in log_dict:
        parts.append(format_timestamp(log_dict['timestamp']))
    if 'level' in log_dict:
        level = log_dict['level']
        parts.append(f"{get_level_color(level)}{level:7s}{Colors.RESET}")
    if 'message' in log_dict:
        parts.append(highlight_message(log_dict['message']))

    main_line = ' │ '.join(parts)

    context = [
        format_field(field, log_dict[field], log_dict)
        for field in IMPORTANT_FIELDS
        if log_dict.get(field) is not None
    ]
    for key, value in log_dict.items():
        if key in SKIP_FIELDS or key in IMPORTANT_FIELDS or value is None:
            continue
        if key == 'exception' and isinstance(value, dict):
            continue
        context.append(format_field(key, value, log_dict))

    result = main_line
    if context:
        result += f"\n  {Colors.DIM}↳{Colors.RESET} " + f" {Colors.DIM}•{Colors.RESET} ".join(context)

    exception = log_dict.get('exception')
    if isinstance(exception, dict) and exception.get('traceback'):
        result += f"\n{Colors.BRIGHT_RED}{exception['traceback']}{Colors.RESET}"

    return result


def is_slow_entry(log_dict: Dict[str, Any]) -> bool:
    message = log_dict.get('message', '')
    return '[PERF SLOW]' in message or '[SLOW REQUEST]' in message or 'Slow request' in message


def format_log_line(line: str, slow_only: bool = False) -> str:
    """Format a single log line. Non-JSON lines are dimmed, or hidden with slow_only."""
    line = line.rstrip()
    if not line:
        return ''

    if line.startswith('{'):
        try:
            log_dict = json.loads(line)
        except json.JSONDecodeError:
            pass
        else:
            if slow_only and not is_slow_entry(log_dict):
                return ''
            return format_json_log(log_dict)

    if slow_only:
        return ''
    return f"{Colors.DIM}{line}{Colors.RESET}"


def main():
    """Read log lines from stdin and print them formatted."""
    parser = argparse.ArgumentParser(description='Format recipe API JSON logs')
    parser.add_argument('--slow-only', action='store_true', help='Only show slow operations/requests')
    args = parser.parse_args()

    sys.stdout.reconfigure(line_buffering=True)

    try:
        for line in sys.stdin:
            formatted = format_log_line(line, slow_only=args.slow_only)
            if formatted:
                print(formatted, flush=True)
    except KeyboardInterrupt:
        pass
    except BrokenPipeError:
        sys.stderr.close()


if __name__ == '__main__':
    main()
