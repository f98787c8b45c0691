"""Exception types raised by the scene and script analyzers."""


class JanitorError(Exception):
    """Base class for analyzer failures."""


class SceneParseError(JanitorError):
    """A scene document could not be split into well-formed blocks."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class HierarchyCycleError(JanitorError):
    """A transform hierarchy refers back to one of its own ancestors."""

    def __init__(self, anchors: list[str]):
        self.anchors = anchors
        super().__init__("Transform cycle: " + " -> ".join(anchors))
