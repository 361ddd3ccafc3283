"""infinitecal: data and state engine for an infinitely scrolling month calendar."""

__version__ = "0.1.0"
