"""repohooks - repository policy hooks for pre-commit and post-merge events."""

__version__ = "0.1.0"
