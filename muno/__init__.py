"""muno - navigate and operate a multi-repository workspace as one tree."""

__version__ = "0.5.0"
