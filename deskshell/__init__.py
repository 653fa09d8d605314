"""DeskShell: desktop chat shell over a remote agent session."""

__version__ = "0.1.0"
