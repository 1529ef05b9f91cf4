"""figmadl: download rendered Figma node images within Figma's rate limits."""

__version__ = "1.0.0"
