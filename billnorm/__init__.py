"""
Bill Normalization Engine - Source Package.

This package contains the document normalization and field resolution
core of the bill processing pipeline. Each module has a single
responsibility.

Modules:
    - imaging: Page raster I/O, rotation and bounding-box geometry
    - orientation: Rotation detection, deskew and corrected page output
    - cleanup: Repeated header/footer detection and cleanup shields
    - resolution: Field candidate normalization, resolution and validation
    - reporting: JSON and Excel review output
    - pipeline: Document-level orchestration

Architecture:
    Pages → Orientation → Multi-page cleanup → (external extraction) → Resolution
                                                                            ↓
                                                                        Reporting
"""

__version__ = "1.0.0"

__all__ = [
    'imaging',
    'orientation',
    'cleanup',
    'resolution',
    'reporting',
    'pipeline',
    'utils'
]
