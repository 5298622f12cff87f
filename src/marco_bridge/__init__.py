"""Marco: a bridge between Matrix rooms and Minecraft servers."""

__version__ = "0.1.0"
