"""
Advisory prompt templates (goal, event, action) plus the shared system prompt.
Templates are plain text with str.format placeholders.
"""

from functools import lru_cache
from pathlib import Path

PROMPTS_DIR = Path(__file__).parent

SYSTEM = "system"
GOAL = "goal"
EVENT = "event"
ACTION = "action"

PROMPT_NAMES = (SYSTEM, GOAL, EVENT, ACTION)


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """Read a template once per process."""
    path = PROMPTS_DIR / f"{name}.txt"
    if not path.exists():
        raise FileNotFoundError(f"Prompt template not found: {path}")
    return path.read_text(encoding="utf-8")


def render_prompt(name: str, **kwargs) -> str:
    return load_prompt(name).format(**kwargs)
