"""Builders for throwaway Unity projects used across the test modules."""
import textwrap
from pathlib import Path

SCENE_HEADER = "%YAML 1.1\n%TAG !u! tag:unity3d.com,2011:\n"


def scene_text(body: str) -> str:
    """Prefix a dedented block list with the standard Unity scene header."""
    return SCENE_HEADER + textwrap.dedent(body).lstrip("\n")


def write_script(root: Path, relative: str, source: str, guid: str | None = None) -> Path:
    """Write a C# script (and its .meta sidecar when guid is given)."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source).lstrip("\n"), encoding='utf-8')
    if guid is not None:
        path.with_name(path.name + '.meta').write_text(
            f"fileFormatVersion: 2\nguid: {guid}\n", encoding='utf-8'
        )
    return path


def write_scene(root: Path, relative: str, body: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(scene_text(body), encoding='utf-8')
    return path
