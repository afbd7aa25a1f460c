"""
Repository tree management: request path resolution and artifact storage.
"""
