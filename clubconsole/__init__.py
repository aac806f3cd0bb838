"""Club Console: session resolution and moderation workflows for a membership club."""

__version__ = "0.1.0"
