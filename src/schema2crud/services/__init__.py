"""
Services that sit between the schema document and the HTTP surface:
validation, field mapping, model registry and the schema orchestrator.
"""
