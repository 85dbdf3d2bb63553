"""Multi-platform clip acquisition and social-media transcoding."""

__version__ = "1.0.0"
