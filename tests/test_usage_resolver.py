"""Tests for component usage resolution.

The legacy policy preserves the historical "every existing script is used"
answer; TestStrictPolicy covers the corrected comparison.
"""
import pytest

from src.analyzer.scene_parser import ComponentRef
from src.analyzer.usage_resolver import UsagePolicy, UsageResolver, normalize_name
from helpers import write_script


MOVER = """
using UnityEngine;

public class Mover : MonoBehaviour
{
    [SerializeField] private float speed;
    public Vector3 Direction { get; set; }
}
"""


def component(*fields, guid='abc123'):
    return ComponentRef(artifact_identifier=guid, serialized_fields=list(fields))


@pytest.fixture
def mover(tmp_path):
    return write_script(tmp_path, 'Assets/Scripts/Mover.cs', MOVER)


class TestNormalizeName:
    """Canonical member names."""

    @pytest.mark.parametrize('raw, expected', [
        ('m_Speed', 'speed'),
        ('_speed', 'speed'),
        ('__Speed', 'speed'),
        ('m__speed', 'speed'),
        ('Speed', 'speed'),
        ('jumpHeight', 'jumpheight'),
        ('m_', ''),
        ('', ''),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_name(raw) == expected

    def test_prefix_only_stripped_once(self):
        assert normalize_name('m_m_Speed') == 'm_speed'


class TestCommonRules:
    """Outcomes that do not depend on the policy."""

    @pytest.mark.parametrize('policy', list(UsagePolicy))
    def test_missing_script_is_unused(self, tmp_path, policy):
        resolver = UsageResolver(policy=policy)
        assert resolver.is_used(tmp_path / 'Gone.cs', component('m_Speed')) is False

    @pytest.mark.parametrize('policy', list(UsagePolicy))
    def test_script_without_class_is_used(self, tmp_path, policy):
        script = write_script(tmp_path, 'IThing.cs', "public interface IThing { void Run(); }")
        assert UsageResolver(policy=policy).is_used(script, component('m_Other')) is True

    @pytest.mark.parametrize('policy', list(UsagePolicy))
    def test_class_without_members_is_used(self, tmp_path, policy):
        script = write_script(tmp_path, 'Empty.cs', """
        public class Empty : MonoBehaviour
        {
            void Start() { }
        }
        """)
        assert UsageResolver(policy=policy).is_used(script, component('m_Other')) is True

    @pytest.mark.parametrize('policy', list(UsagePolicy))
    def test_matching_field_is_used(self, mover, policy):
        assert UsageResolver(policy=policy).is_used(mover, component('m_Speed')) is True

    @pytest.mark.parametrize('policy', list(UsagePolicy))
    def test_matching_property_is_used(self, mover, policy):
        assert UsageResolver(policy=policy).is_used(mover, component('_direction')) is True


class TestLegacyPolicy:
    """Behaviour preserved from the historical tool."""

    def test_no_matching_field_still_counts_as_used(self, mover):
        resolver = UsageResolver(policy=UsagePolicy.LEGACY)
        assert resolver.is_used(mover, component('m_Unrelated')) is True

    def test_component_without_fields_counts_as_used(self, mover):
        resolver = UsageResolver(policy='legacy')
        assert resolver.is_used(mover, component()) is True


class TestStrictPolicy:
    """Fixed bug: a component whose fields match nothing no longer counts as a use."""

    def test_no_matching_field_is_unused(self, mover):
        resolver = UsageResolver(policy=UsagePolicy.STRICT)
        assert resolver.is_used(mover, component('m_Unrelated', 'm_Other')) is False

    def test_component_without_fields_is_unused(self, mover):
        assert UsageResolver(policy='strict').is_used(mover, component()) is False

    def test_default_policy_is_strict(self, mover):
        assert UsageResolver().policy is UsagePolicy.STRICT
        assert UsageResolver().is_used(mover, component('m_Unrelated')) is False

    def test_members_come_from_the_behaviour_class(self, tmp_path):
        script = write_script(tmp_path, 'Spinner.cs', """
        public class SpinSettings { public int unrelated; }
        public class Spinner : UnityEngine.MonoBehaviour { public float _speed; }
        """)
        resolver = UsageResolver()

        assert resolver.is_used(script, component('m_Speed')) is True
        assert resolver.is_used(script, component('unrelated')) is False

    def test_allow_list_controls_behaviour_class(self, tmp_path):
        script = write_script(tmp_path, 'Net.cs', """
        public class Plain { public int plain; }
        public class Synced : NetworkBehaviour { public int synced; }
        """)

        assert UsageResolver(base_types=['NetworkBehaviour']).is_used(script, component('m_Synced')) is True
        # Without the allow-list entry the first class wins
        assert UsageResolver().is_used(script, component('m_Synced')) is False


class TestSymbolCache:
    """Per-run memoization."""

    def test_symbols_are_extracted_once_per_script(self, mover):
        resolver = UsageResolver()

        first = resolver.script_symbols(mover)
        second = resolver.script_symbols(mover)

        assert first is second
        assert first.type_name == 'Mover'
        assert first.members == frozenset({'speed', 'direction'})

    def test_missing_script_symbols(self, tmp_path):
        assert UsageResolver().script_symbols(tmp_path / 'Nope.cs') is None
