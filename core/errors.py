# core/errors.py


class XRayError(Exception):
    """Base class for all scanner errors"""


class ExternalToolError(XRayError):
    """
    A required external program (ffmpeg, ffprobe) is missing or hung.

    Every later comparison depends on the tool, so this aborts the run.
    """

    def __init__(self, tool: str, reason: str):
        self.tool = tool
        self.reason = reason
        super().__init__(f"{tool}: {reason}")


class ConfigError(XRayError, ValueError):
    """Invalid configuration value"""
