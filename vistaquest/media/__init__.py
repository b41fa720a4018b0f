"""Image processing helpers and scene image handles."""

from .handles import SceneImageHandle
from .images import downsample_image, to_data_url

__all__ = ["SceneImageHandle", "downsample_image", "to_data_url"]
