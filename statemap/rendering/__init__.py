"""
Statemap rendering.
Provides the viewport transform and the renderer contract. The Qt scene
renderer lives in statemap.rendering.qt_renderer.
"""

from .viewport import IDENTITY, Viewport, ViewportTransform
from .renderer import Anchor, MarkerKind, RecordingRenderer, Renderer

__all__ = [
    'IDENTITY',
    'Viewport',
    'ViewportTransform',
    'Anchor',
    'MarkerKind',
    'RecordingRenderer',
    'Renderer'
]
