"""Decide whether a MonoBehaviour component actually uses its script.

The script's behaviour class is located with tree-sitter, its field and
property names are normalized, and the component's serialized keys are
compared against them.
"""
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Optional

from .extractor import SymbolExtractor
from .parser import LanguageParser
from .scene_parser import ComponentRef
from ..utils.logger import get_logger

logger = get_logger("analyzer.usage")


class UsagePolicy(str, Enum):
    """How a component with no matching serialized field is judged.

    LEGACY reproduces the historical result, where every existing script
    counted as used whatever its fields. STRICT reports it unused when the
    script declares members and none of them match.
    """
    STRICT = "strict"
    LEGACY = "legacy"


DEFAULT_POLICY = UsagePolicy.STRICT
DEFAULT_BASE_TYPES = ("MonoBehaviour",)


def normalize_name(name: str) -> str:
    """Canonical form used to compare serialized keys with declared members.

    'm_Speed' -> 'speed', '_speed' -> 'speed', 'm__Speed' -> 'speed'
    """
    if not name:
        return name
    if name.startswith("m_"):
        name = name[2:]
    return name.lstrip("_").lower()


@dataclass(frozen=True)
class ScriptSymbols:
    """Normalized member names of a script's behaviour class."""
    type_name: Optional[str]  # None when the script declares no class
    members: FrozenSet[str]


class UsageResolver:
    """Match component serialized fields against script declarations.

    Safe to share between threads: each thread gets its own tree-sitter
    parser and extracted symbols are memoized per script for the run.
    """

    def __init__(self, base_types: Iterable[str] = DEFAULT_BASE_TYPES,
                 policy: UsagePolicy | str = DEFAULT_POLICY):
        self.base_types = list(base_types)
        self.policy = UsagePolicy(policy)
        self.extractor = SymbolExtractor()
        self._local = threading.local()
        self._symbols: Dict[Path, Optional[ScriptSymbols]] = {}
        self._lock = threading.Lock()

    def _parser(self) -> LanguageParser:
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = LanguageParser('c_sharp')
            self._local.parser = parser
        return parser

    def script_symbols(self, script_path: str | Path) -> Optional[ScriptSymbols]:
        """Extract (or recall) the normalized members of a script.

        Returns:
            ScriptSymbols, or None if the script cannot be read
        """
        script_path = Path(script_path)
        with self._lock:
            if script_path in self._symbols:
                return self._symbols[script_path]

        symbols = self._extract(script_path)
        with self._lock:
            self._symbols.setdefault(script_path, symbols)
        return symbols

    def _extract(self, script_path: Path) -> Optional[ScriptSymbols]:
        parsed = self._parser().parse_file(script_path)
        if parsed is None:
            return None
        tree, source_code = parsed

        declarations = self.extractor.extract_types(tree, source_code)
        declaration = self.extractor.select_behaviour_type(declarations, self.base_types)
        if declaration is None:
            return ScriptSymbols(type_name=None, members=frozenset())

        return ScriptSymbols(
            type_name=declaration.name,
            members=frozenset(normalize_name(m) for m in declaration.member_names),
        )

    def is_used(self, artifact_location: str | Path, component: ComponentRef) -> bool:
        """Decide whether component counts as a use of the script at artifact_location.

        A missing script is unused. A script without a class, or whose class
        declares no fields or properties, is used. Otherwise the script is
        used when a serialized field matches a declared member; under the
        LEGACY policy it is used regardless.
        """
        symbols = self.script_symbols(artifact_location)
        if symbols is None:
            return False
        if symbols.type_name is None or not symbols.members:
            return True

        matched = any(
            normalize_name(name) in symbols.members
            for name in component.serialized_fields
        )
        if not matched:
            logger.debug("No serialized field of %s matches %s (%s)",
                         component.anchor or "component", symbols.type_name, artifact_location)
        return matched or self.policy is UsagePolicy.LEGACY
