from .paragraph_detector import ParagraphDetector, link_density

__all__ = ["ParagraphDetector", "link_density"]
