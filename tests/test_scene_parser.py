"""Tests for Unity scene document parsing."""
import pytest

from src.analyzer.errors import SceneParseError
from src.analyzer.scene_parser import (
    ComponentRef,
    SceneDocumentParser,
    SceneNode,
    TransformRef,
    normalize_headers,
    parse_scene,
)
from helpers import scene_text


MIXED_SCENE = """
--- !u!1 &10
GameObject:
  m_Name: Player
--- !u!1 &20
GameObject:
  m_Name: Enemy
--- !u!4 &11
Transform:
  m_GameObject: {fileID: 10}
  m_Father: {fileID: 0}
--- !u!224 &21
RectTransform:
  m_GameObject: {fileID: 20}
  m_Father: {fileID: 11}
--- !u!114 &12
MonoBehaviour:
  m_GameObject: {fileID: 10}
  m_Script: {fileID: 11500000, guid: aaa111, type: 3}
  m_Health: 10
--- !u!108 &13
Light:
  m_GameObject: {fileID: 10}
  m_Intensity: 1
"""


class TestBlocks:
    """Splitting a scene into anchored blocks."""

    def test_blocks_carry_anchor_and_kind(self):
        blocks = list(SceneDocumentParser().iter_blocks(scene_text(MIXED_SCENE)))

        assert [(b.anchor, b.kind) for b in blocks] == [
            ('10', 'GameObject'),
            ('20', 'GameObject'),
            ('11', 'Transform'),
            ('21', 'RectTransform'),
            ('12', 'MonoBehaviour'),
            ('13', 'Light'),
        ]

    def test_block_without_anchor_is_skipped(self):
        text = scene_text("""
        --- !u!1
        GameObject:
          m_Name: Ghost
        --- !u!1 &5
        GameObject:
          m_Name: Real
        """)

        scene = parse_scene(text)

        assert list(scene.nodes) == ['5']
        assert scene.entity_count == 1

    def test_stripped_prefab_header_is_tolerated(self):
        text = scene_text("""
        --- !u!1001 &700 stripped
        PrefabInstance:
          m_ObjectHideFlags: 0
        --- !u!1 &701
        GameObject:
          m_Name: AfterPrefab
        """)

        blocks = list(SceneDocumentParser().iter_blocks(text))

        assert [b.anchor for b in blocks] == ['700', '701']

    def test_stripped_header_with_crlf_line_endings(self):
        text = scene_text("""
        --- !u!1001 &700 stripped
        PrefabInstance:
          m_ObjectHideFlags: 0
        --- !u!1 &701
        GameObject:
          m_Name: AfterPrefab
        """).replace("\n", "\r\n")

        scene = parse_scene(text)

        assert scene.nodes['701'].name == 'AfterPrefab'
        assert [b.anchor for b in SceneDocumentParser().iter_blocks(text)] == ['700', '701']

    def test_normalize_headers(self):
        assert normalize_headers("--- !u!4 &12 stripped\nTransform:\n") == "--- &12\nTransform:\n"
        assert normalize_headers("--- !u!4 &12\n") == "--- &12\n"
        assert normalize_headers("--- !u!4 &12 stripped\r\nTransform:\r\n") == "--- &12\nTransform:\n"

    def test_invalid_yaml_raises_scene_parse_error(self):
        text = scene_text("""
        --- !u!1 &1
        GameObject: {m_Name: Broken
        """)

        with pytest.raises(SceneParseError) as excinfo:
            SceneDocumentParser('Broken.unity').parse(text)

        assert excinfo.value.source == 'Broken.unity'


class TestEntities:
    """Typing recognized blocks."""

    def test_entity_counts_match_recognized_blocks(self):
        scene = parse_scene(scene_text(MIXED_SCENE))

        assert len(scene.nodes) == 2
        assert len(scene.transforms) == 2
        assert len(scene.components) == 1
        # The Light block is an unrecognized kind
        assert scene.entity_count == 5

    def test_game_object_name(self):
        scene = parse_scene(scene_text(MIXED_SCENE))
        assert scene.nodes['10'] == SceneNode(name='Player')

    def test_game_object_without_name_gets_placeholder(self):
        scene = parse_scene(scene_text("""
        --- !u!1 &3
        GameObject:
          m_Layer: 0
        """))
        assert scene.nodes['3'].name == 'Unnamed'

    def test_transform_references(self):
        scene = parse_scene(scene_text(MIXED_SCENE))

        assert scene.transforms['11'] == TransformRef(own_anchor='11', owner_anchor='10', parent_anchor='0')
        assert scene.transforms['11'].is_root
        assert scene.transforms['21'].parent_anchor == '11'
        assert not scene.transforms['21'].is_root

    @pytest.mark.parametrize('father', [
        'm_Father: {fileID: not-a-number}',
        'm_Father: 42',
        'm_Father: {guid: abc}',
        'm_LocalScale: {x: 1, y: 1, z: 1}',
    ])
    def test_malformed_parent_reference_degrades_to_root(self, father):
        scene = parse_scene(scene_text(f"""
        --- !u!4 &8
        Transform:
          m_GameObject: {{fileID: 7}}
          {father}
        """))
        assert scene.transforms['8'].parent_anchor == '0'

    def test_missing_owner_reference_degrades_to_sentinel(self):
        scene = parse_scene(scene_text("""
        --- !u!4 &8
        Transform:
          m_Father: {fileID: 0}
        """))
        assert scene.transforms['8'].owner_anchor == '0'

    def test_component_fields_skip_reserved_keys(self):
        scene = parse_scene(scene_text("""
        --- !u!114 &30
        MonoBehaviour:
          m_ObjectHideFlags: 0
          m_CorrespondingSourceObject: {fileID: 0}
          m_PrefabInstance: {fileID: 0}
          m_PrefabAsset: {fileID: 0}
          m_GameObject: {fileID: 1}
          m_Enabled: 1
          m_EditorHideFlags: 0
          m_Script: {fileID: 11500000, guid: beef42, type: 3}
          m_EditorClassIdentifier:
          m_Speed: 3
          _target: {fileID: 0}
          jumpHeight: 2
        """))

        assert scene.components == [ComponentRef(
            artifact_identifier='beef42',
            serialized_fields=['m_Speed', '_target', 'jumpHeight'],
            anchor='30',
        )]

    def test_component_without_script_has_empty_identifier(self):
        scene = parse_scene(scene_text("""
        --- !u!114 &31
        MonoBehaviour:
          m_Script: {fileID: 0}
          m_Value: 1
        """))

        assert scene.components[0].artifact_identifier == ''
        assert scene.components[0].serialized_fields == ['m_Value']

    def test_fixture_scene(self, unity_project):
        text = (unity_project / 'Assets' / 'Scenes' / 'Main.unity').read_text(encoding='utf-8')

        scene = parse_scene(text)

        assert {a: n.name for a, n in scene.nodes.items()} == {'100': 'Root', '200': 'Camera'}
        assert set(scene.transforms) == {'101', '201', '301'}
        assert [c.artifact_identifier for c in scene.components] == ['abc123', '777aaa', 'fff000']
