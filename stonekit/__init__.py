"""Stone package archives, build recipes, virtual filesystem trees and terminal helpers."""

__version__ = "0.1.0"