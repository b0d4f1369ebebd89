"""Agents module for WOLRAM.

- TodoGenerator: Break a free-text prompt into prioritized TODO items
"""

from .todo_agent import TodoGenerator, infer_priority, parse_todo_response

__all__ = [
    "TodoGenerator",
    "infer_priority",
    "parse_todo_response",
]
