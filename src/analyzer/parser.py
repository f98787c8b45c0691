"""Tree-sitter parser for C# script analysis."""
from pathlib import Path
from typing import Optional
from tree_sitter import Language, Parser, Tree
import tree_sitter_c_sharp as tscsharp


class LanguageParser:
    """Source parser using the tree-sitter v0.22+ API."""

    def __init__(self, language: str = 'c_sharp'):
        """Initialize parser for given language.

        Args:
            language: Currently only 'c_sharp'

        Raises:
            ValueError: If language is not supported
        """
        self.language = language
        self.parser = self._create_parser()

    def _create_parser(self) -> Parser:
        """Factory method using the Parser(Language(capsule)) syntax.

        Raises:
            ValueError: If language is not supported
        """
        if self.language == 'c_sharp':
            lang = Language(tscsharp.language())
        else:
            raise ValueError(f"Unsupported language: {self.language}")

        return Parser(lang)

    def parse_source(self, source_code: bytes) -> Tree:
        """Parse in-memory source bytes."""
        return self.parser.parse(source_code)

    def parse_file(self, file_path: str | Path) -> Optional[tuple[Tree, bytes]]:
        """Parse file and return the tree together with the bytes it was built from.

        Args:
            file_path: Path to source file to parse

        Returns:
            (Tree, source bytes), or None if the file is missing or unreadable
        """
        file_path = Path(file_path)

        if not file_path.exists():
            return None

        try:
            source_code = file_path.read_bytes()
        except OSError:
            return None
        return self.parser.parse(source_code), source_code
