"""
LabelCanvas - interactive annotation geometry and interaction engine.

This package contains the annotation editor modules:
- editor: View transform, annotation models and the per-kind canvases
- services: Application services (config, logging, export)
"""

__version__ = "0.1.0"
