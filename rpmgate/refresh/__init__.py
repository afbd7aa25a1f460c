"""
Metadata refresh: serialized invocation of the external repository indexer.
"""
