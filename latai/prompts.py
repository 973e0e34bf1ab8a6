"""
Prompt sources for latency sampling.

Default prompts ship with the package and are loaded once at startup;
operator prompts are `*.prompt` files in a directory (by default
`~/.latai/prompts`) and take precedence when present.
"""

import logging
from importlib import resources
from pathlib import Path
from typing import Iterable, Protocol

from latai.exceptions import NoPromptError
from latai.models import Prompt, PromptKind

logger = logging.getLogger(__name__)

PROMPT_SUFFIX = ".prompt"


class PromptSource(Protocol):
    """Supplies an ordered, non-empty collection of prompts."""

    def get_prompts(self) -> list[Prompt]:
        ...


def load_default_prompts() -> tuple[Prompt, ...]:
    """
    Load the prompts bundled with the package.

    Returns:
        Default prompts ordered by file name
    """
    root = resources.files("latai").joinpath("default_prompts")
    entries = sorted(
        (entry for entry in root.iterdir() if entry.name.endswith(PROMPT_SUFFIX)),
        key=lambda entry: entry.name,
    )
    prompts = tuple(
        Prompt(
            description=f"Default prompt {entry.name}",
            content=entry.read_text(encoding="utf-8"),
            kind=PromptKind.DEFAULT,
        )
        for entry in entries
    )
    logger.debug("Loaded %d default prompts", len(prompts))
    return prompts


def load_user_prompts(directory: Path) -> list[Prompt]:
    """
    Load prompt files from a directory.

    Missing directories yield no prompts. Files which can't be read are
    skipped.

    Args:
        directory: Directory holding `*.prompt` files

    Returns:
        User prompts ordered by file name
    """
    if not directory.is_dir():
        return []

    prompts = []
    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.suffix != PROMPT_SUFFIX:
            continue
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable prompt file %s: %s", path, e)
            continue
        prompts.append(Prompt(
            description=f"User prompt {path.name}",
            content=content,
            kind=PromptKind.USER,
        ))

    return prompts


class StaticPromptSource:
    """Prompt source backed by a fixed collection."""

    def __init__(self, prompts: Iterable[Prompt]):
        self._prompts = tuple(prompts)

    def get_prompts(self) -> list[Prompt]:
        if not self._prompts:
            raise NoPromptError()
        return list(self._prompts)


class FilePromptSource:
    """
    Prompt source reading operator prompt files with a fallback set.

    Files are re-read on every call so edits apply to the next
    measurement without restarting.
    """

    def __init__(self, directory: Path, defaults: Iterable[Prompt]):
        """
        Initialize the prompt source.

        Args:
            directory: Directory with operator `*.prompt` files
            defaults: Prompts used when the directory yields none
        """
        self.directory = Path(directory)
        self._defaults = tuple(defaults)

    def get_prompts(self) -> list[Prompt]:
        try:
            prompts = load_user_prompts(self.directory)
        except OSError as e:
            logger.warning("Failed to read prompts from %s: %s", self.directory, e)
            prompts = []

        if not prompts:
            prompts = list(self._defaults)

        if not prompts:
            raise NoPromptError()

        return prompts
