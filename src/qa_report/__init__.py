"""
QA Sprint Report

Builds the QA status report for a sprint from Azure DevOps and publishes it to Confluence.
"""

try:
    from importlib.metadata import version
    __version__ = version("qa-sprint-report")
except Exception:
    __version__ = "0.0.0"  # Fallback for development

__all__ = ["__version__"]
