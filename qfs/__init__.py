"""Quick Ftrace Symbolizer (QFS): resolve kernel function-trace addresses to symbols."""

__version__ = "0.1.0"
