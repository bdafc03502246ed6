"""Custom completer for RecipeFlow CLI with file autocompletion."""

from pathlib import Path
from typing import Iterable, Optional

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from common.constants import UPLOAD_TYPES
from cli.constants import COMMANDS, RECIPE_FILE_EXTENSIONS, UPLOAD_FILE_EXTENSIONS


class RecipeFlowCompleter(Completer):
    """
    Custom completer that provides:
    - Command name completion for the first token
    - Recipe file completion for 'sync' arguments
    - File then payload type completion for 'upload'
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = base_dir

    def get_completions(
        self, document: Document, complete_event
    ) -> Iterable[Completion]:
        text = document.text_before_cursor
        tokens = text.split()

        is_typing_new_token = text.endswith(" ") or not tokens

        if not tokens or (len(tokens) == 1 and not is_typing_new_token):
            yield from self._complete_words(tokens[0] if tokens else "", COMMANDS)
            return

        command = tokens[0].lower()
        current_word = "" if is_typing_new_token else tokens[-1]
        args = tokens[1:] if is_typing_new_token else tokens[1:-1]

        if command == "sync":
            yield from self._complete_files(current_word, RECIPE_FILE_EXTENSIONS, set(args))
        elif command == "upload":
            if not args:
                yield from self._complete_files(current_word, UPLOAD_FILE_EXTENSIONS, set())
            elif len(args) == 1:
                yield from self._complete_words(current_word, UPLOAD_TYPES)
            elif len(args) == 2:
                yield from self._complete_words(current_word, ["--resume"])

    def _complete_words(self, partial: str, words: Iterable[str]) -> Iterable[Completion]:
        """Complete words matching the partial input."""
        partial_lower = partial.lower()
        for word in words:
            if word.startswith(partial_lower):
                yield Completion(word, start_position=-len(partial))

    def _complete_files(
        self, partial: str, extensions: tuple, exclude_files: set
    ) -> Iterable[Completion]:
        """
        Complete file paths relative to the working directory.

        The directory part of the partial input selects the directory to list;
        only files with matching extensions and sub-directories are offered.
        """
        base = self.base_dir or Path.cwd()
        directory, _, prefix = partial.rpartition("/")
        search_dir = base / directory if directory else base

        if not search_dir.is_dir():
            return

        candidates = []
        for item in search_dir.iterdir():
            rel_path = f"{directory}/{item.name}" if directory else item.name
            if item.is_dir():
                candidates.append(rel_path + "/")
            elif item.name.lower().endswith(extensions) and rel_path not in exclude_files:
                candidates.append(rel_path)

        prefix_path = f"{directory}/{prefix}" if directory else prefix
        for candidate in sorted(candidates):
            if candidate.startswith(prefix_path):
                yield Completion(candidate, start_position=-len(partial))
