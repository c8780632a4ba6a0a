"""
Payload staging and removal.
"""

from .stager import ArtifactStager, load_payload

__all__ = ["ArtifactStager", "load_payload"]
