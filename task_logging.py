"""
Task log: one line per remote change, written to a file and echoed to the console.
"""

import logging

from rich.logging import RichHandler

TASK_LOGGER_NAME = 'task_processor'


def setup_task_logging(log_file='task_log.txt', verbose=False):
    """Setup file + console logging for task processing"""
    task_logger = logging.getLogger(TASK_LOGGER_NAME)
    task_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    task_logger.propagate = False

    # Remove existing handlers to avoid duplicates
    for handler in task_logger.handlers[:]:
        task_logger.removeHandler(handler)
        handler.close()

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        task_logger.addHandler(file_handler)

    console_handler = RichHandler(show_path=False, markup=False)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    task_logger.addHandler(console_handler)

    return task_logger


def log_task_action(task_logger, task_id, task_content, action, **kwargs):
    """Log task processing action with details"""
    # Truncate very long content for readability
    content_preview = task_content[:100] + "..." if len(task_content) > 100 else task_content

    log_parts = [
        f"Task {task_id}",
        f"Content: {content_preview!r}",
        f"Action: {action}",
    ]

    for key in ('source_task', 'parent', 'due', 'labels', 'rule', 'reason'):
        value = kwargs.get(key)
        if value is not None and value != "":
            log_parts.append(f"{key.replace('_', ' ').title()}: {value}")

    task_logger.info(" | ".join(log_parts))
