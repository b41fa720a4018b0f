"""Service adapters: image generation, choice generation, vision grounding."""

from .base import BaseAdapter, ServiceResult
from .choice_generator import ChoiceGenerator, ChoiceSet
from .image_generator import GeneratedImage, ImageGenerator
from .vision_grounder import SceneDescription, VisionGrounder

__all__ = [
    "BaseAdapter",
    "ServiceResult",
    "ChoiceGenerator",
    "ChoiceSet",
    "GeneratedImage",
    "ImageGenerator",
    "SceneDescription",
    "VisionGrounder",
]
