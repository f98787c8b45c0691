"""Unity scene document parsing.

A scene file is a YAML stream where every document is one serialized object:

    --- !u!1 &963194225
    GameObject:
      m_Name: Main Camera

The anchor (`&963194225`) is the object's fileID inside the scene and the
single top-level key is its class. PyYAML composes each document into a
node tree; the loader below keeps the anchor of each root node, which the
stock composer only keeps in its per-document alias table.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

import yaml
from yaml.events import AliasEvent
from yaml.nodes import MappingNode, ScalarNode

from .errors import SceneParseError

ROOT_REFERENCE = "0"
UNNAMED = "Unnamed"

OBJECT_KINDS = frozenset({"GameObject"})
TRANSFORM_KINDS = frozenset({"Transform", "RectTransform"})
BEHAVIOUR_KINDS = frozenset({"MonoBehaviour"})

# Keys every MonoBehaviour carries regardless of its script
RESERVED_BEHAVIOUR_KEYS = frozenset({
    "m_ObjectHideFlags",
    "m_CorrespondingSourceObject",
    "m_PrefabInstance",
    "m_PrefabAsset",
    "m_GameObject",
    "m_Enabled",
    "m_EditorHideFlags",
    "m_EditorClassIdentifier",
    "m_Script",
})

# The !u! handle is declared once per file but PyYAML resets handles per document
_UNITY_TAG = re.compile(r'^---[ \t]+!\w*!\S*', re.MULTILINE)
# Prefab instances mark stripped objects with a trailing keyword PyYAML rejects
_STRIPPED_HEADER = re.compile(r'^(---[^\n]*?&\S+)[ \t]+stripped[ \t]*$', re.MULTILINE)


def normalize_headers(text: str) -> str:
    """Rewrite `--- !u!1 &123 stripped` headers to plain `--- &123`.

    CRLF line endings are folded to LF first so the header patterns see bare lines.
    """
    text = text.replace("\r\n", "\n")
    text = _UNITY_TAG.sub('---', text)
    return _STRIPPED_HEADER.sub(r'\1', text)


@dataclass
class SceneNode:
    """A GameObject."""
    name: str


@dataclass
class TransformRef:
    """One hierarchy edge: the transform `own_anchor` belongs to `owner_anchor`
    and is parented under `parent_anchor` ('0' for roots)."""
    own_anchor: str
    owner_anchor: str
    parent_anchor: str

    @property
    def is_root(self) -> bool:
        return self.parent_anchor == ROOT_REFERENCE


@dataclass
class ComponentRef:
    """A MonoBehaviour attachment."""
    artifact_identifier: str  # Empty when the script reference is missing
    serialized_fields: List[str] = field(default_factory=list)
    anchor: str = ""


SceneEntity = Union[SceneNode, TransformRef, ComponentRef]


@dataclass
class SceneBlock:
    """One anchored document of a scene file before typing."""
    anchor: str
    kind: str
    properties: Optional[MappingNode]


@dataclass
class ParsedScene:
    """Typed entities of one scene, keyed by anchor where the kind needs it."""
    nodes: Dict[str, SceneNode] = field(default_factory=dict)
    transforms: Dict[str, TransformRef] = field(default_factory=dict)
    components: List[ComponentRef] = field(default_factory=list)

    @property
    def entity_count(self) -> int:
        return len(self.nodes) + len(self.transforms) + len(self.components)


class AnchoredLoader(yaml.SafeLoader):
    """SafeLoader whose composed nodes remember the anchor they were declared with."""

    def compose_node(self, parent, index):
        event = self.peek_event()
        node = super().compose_node(parent, index)
        if not isinstance(event, AliasEvent):
            node.anchor = event.anchor
        return node


def scalar_value(mapping: Optional[MappingNode], key: str) -> Optional[str]:
    """Value of a scalar entry, or None if the key is absent or not a scalar."""
    if not isinstance(mapping, MappingNode):
        return None
    for key_node, value_node in mapping.value:
        if isinstance(key_node, ScalarNode) and key_node.value == key:
            return value_node.value if isinstance(value_node, ScalarNode) else None
    return None


def mapping_value(mapping: Optional[MappingNode], key: str) -> Optional[MappingNode]:
    """Nested mapping stored under key, or None."""
    if not isinstance(mapping, MappingNode):
        return None
    for key_node, value_node in mapping.value:
        if isinstance(key_node, ScalarNode) and key_node.value == key:
            return value_node if isinstance(value_node, MappingNode) else None
    return None


def file_id_reference(mapping: Optional[MappingNode], key: str) -> str:
    """Read `key: {fileID: N}` as a canonical anchor string.

    Missing, non-mapping or non-numeric references degrade to ROOT_REFERENCE.
    """
    raw = scalar_value(mapping_value(mapping, key), "fileID")
    if raw is None:
        return ROOT_REFERENCE
    try:
        return str(int(raw.strip()))
    except ValueError:
        return ROOT_REFERENCE


def canonical_anchor(anchor: str) -> str:
    try:
        return str(int(anchor))
    except ValueError:
        return anchor


class SceneDocumentParser:
    """Split scene text into anchored blocks and type the ones we understand."""

    def __init__(self, source: str = "<scene>"):
        """
        Args:
            source: Name used in error messages (usually the scene path)
        """
        self.source = source

    def iter_blocks(self, text: str) -> Iterable[SceneBlock]:
        """Yield every anchored block in document order.

        Raises:
            SceneParseError: If the text is not a valid YAML stream
        """
        text = normalize_headers(text)
        try:
            documents = list(yaml.compose_all(text, Loader=AnchoredLoader))
        except yaml.YAMLError as e:
            raise SceneParseError(self.source, str(e)) from e

        for root in documents:
            if not isinstance(root, MappingNode) or not root.value:
                continue
            anchor = getattr(root, "anchor", None)
            if not anchor:
                continue
            kind_node, body = root.value[0]
            if not isinstance(kind_node, ScalarNode):
                continue
            yield SceneBlock(
                anchor=canonical_anchor(anchor),
                kind=kind_node.value,
                properties=body if isinstance(body, MappingNode) else None,
            )

    def parse(self, text: str) -> ParsedScene:
        """Parse a scene into nodes, transforms and components.

        Unrecognized kinds are ignored.
        """
        scene = ParsedScene()
        for block in self.iter_blocks(text):
            entity = self.build_entity(block)
            if isinstance(entity, SceneNode):
                scene.nodes[block.anchor] = entity
            elif isinstance(entity, TransformRef):
                scene.transforms[block.anchor] = entity
            elif isinstance(entity, ComponentRef):
                scene.components.append(entity)
        return scene

    def build_entity(self, block: SceneBlock) -> Optional[SceneEntity]:
        if block.kind in OBJECT_KINDS:
            return self._parse_game_object(block.properties)
        if block.kind in TRANSFORM_KINDS:
            return self._parse_transform(block.properties, block.anchor)
        if block.kind in BEHAVIOUR_KINDS:
            return self._parse_component(block.properties, block.anchor)
        return None

    def _parse_game_object(self, properties: Optional[MappingNode]) -> SceneNode:
        name = scalar_value(properties, "m_Name")
        return SceneNode(name=UNNAMED if name is None else name)

    def _parse_transform(self, properties: Optional[MappingNode], own_anchor: str) -> TransformRef:
        return TransformRef(
            own_anchor=own_anchor,
            owner_anchor=file_id_reference(properties, "m_GameObject"),
            parent_anchor=file_id_reference(properties, "m_Father"),
        )

    def _parse_component(self, properties: Optional[MappingNode], anchor: str) -> ComponentRef:
        guid = scalar_value(mapping_value(properties, "m_Script"), "guid") or ""
        serialized_fields = []
        if properties is not None:
            for key_node, _ in properties.value:
                if isinstance(key_node, ScalarNode) and key_node.value not in RESERVED_BEHAVIOUR_KEYS:
                    serialized_fields.append(key_node.value)
        return ComponentRef(
            artifact_identifier=guid.strip(),
            serialized_fields=serialized_fields,
            anchor=anchor,
        )


def parse_scene(text: str, source: str = "<scene>") -> ParsedScene:
    """Convenience wrapper around SceneDocumentParser.parse."""
    return SceneDocumentParser(source).parse(text)
