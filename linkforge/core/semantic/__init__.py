"""Semantic model of a C# program: class/method symbols and controller discovery."""

from .adapter import SemanticModel
from .models import ClassSymbol, MethodSymbol, ParameterSymbol, attribute_name

__all__ = [
    "SemanticModel",
    "ClassSymbol",
    "MethodSymbol",
    "ParameterSymbol",
    "attribute_name",
]
