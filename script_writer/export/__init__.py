from .exporter import ScriptExporter, EXPORT_FORMATS

__all__ = ["ScriptExporter", "EXPORT_FORMATS"]
