# Lazy imports so that `from linkforge.core.config import Settings` does not
# load tree-sitter and the C# grammar.

__all__ = [
    "LinkGenerator",
    "GenerationResult",
    "generate_links",
    "SemanticModel",
    "Settings",
    "load_settings",
    "Diagnostic",
    "DiagnosticKind",
    "LinkForgeError",
    "ConfigurationError",
    "PersistenceError",
]

_IMPORT_MAP = {
    "LinkGenerator": ".generator",
    "GenerationResult": ".generator",
    "generate_links": ".generator",
    "SemanticModel": ".semantic",
    "Settings": ".config",
    "load_settings": ".config",
    "Diagnostic": ".diagnostics",
    "DiagnosticKind": ".diagnostics",
    "LinkForgeError": ".errors",
    "ConfigurationError": ".errors",
    "PersistenceError": ".errors",
}


def __getattr__(name):
    if name in _IMPORT_MAP:
        import importlib
        module = importlib.import_module(_IMPORT_MAP[name], __package__)
        return getattr(module, name)
    raise AttributeError(f"module 'linkforge.core' has no attribute {name}")
