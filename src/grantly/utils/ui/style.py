"""
Shared styling for interactive prompts.
"""

from __future__ import annotations

from typing import Dict

from InquirerPy.utils import InquirerPyStyle

from .theme import THEME


def get_inquirer_style() -> InquirerPyStyle:
    """
    Build and return the InquirerPy style used across prompts.

    Returns:
        InquirerPyStyle instance.
    """
    style_dict: Dict[str, str] = {
        "questionmark": THEME["warning"],
        "answermark": THEME["success"],
        "answer": THEME["success"],
        "input": THEME["text"],
        "question": THEME["text"],
        "answered_question": THEME["muted"],
        "instruction": THEME["muted"],
        "pointer": f"{THEME['success']} bold",
        "separator": THEME["border"],
        "skipped": THEME["muted"],
        "validator": THEME["error"],
    }
    return InquirerPyStyle(style_dict)
