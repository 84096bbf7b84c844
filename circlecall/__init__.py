"""CircleCall - moderated circle-talking calls and room discipline."""

__version__ = "0.1.0"
