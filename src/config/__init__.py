"""
Bundled default configuration (keytrace.yaml)
"""
